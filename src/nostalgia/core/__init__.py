"""Core layer providing the foundation for all Nostalgia services.

Sits in the middle of the diamond DAG -- depends on ``nostalgia.models``,
``nostalgia.nips`` and ``nostalgia.utils`` and is depended upon by
``nostalgia.services``.

Attributes:
    RelayPool: Fan-out query and publish across relay endpoints.
        See [RelayPool][nostalgia.core.pool.RelayPool].
    Session: Relay pool plus the active signer, with login and logout.
        See [Session][nostalgia.core.session.Session].
    BaseService: Abstract generic base class with lifecycle management
        ([run()][nostalgia.core.base_service.BaseService.run] /
        [run_forever()][nostalgia.core.base_service.BaseService.run_forever] /
        shutdown), factory methods and Prometheus metrics integration.
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.

Examples:
    ```python
    from nostalgia.core import Session, SessionConfig

    async with Session.from_config(SessionConfig()) as session:
        notes = await session.pool.query(Filter.of(kinds=[1], limit=50))
    ```
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    RELAY_OPERATION_SECONDS,
    RELAY_OPERATIONS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import (
    PublishAck,
    RelayClient,
    RelayLimitsConfig,
    RelayPool,
    RelayPoolConfig,
    RelayTimeoutsConfig,
)
from .session import Session, SessionConfig
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "RELAY_OPERATIONS",
    "RELAY_OPERATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "PublishAck",
    "RelayClient",
    "RelayLimitsConfig",
    "RelayPool",
    "RelayPoolConfig",
    "RelayTimeoutsConfig",
    "Session",
    "SessionConfig",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
