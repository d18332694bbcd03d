"""
Prometheus metrics and HTTP exposition.

Module-level metric objects are shared by every component of the process.
[BaseService.run_forever()][nostalgia.core.base_service.BaseService.run_forever]
records cycle counts and durations;
[RelayPool][nostalgia.core.pool.RelayPool] records one
``RELAY_OPERATIONS`` sample per endpoint per operation.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (current state).
    SERVICE_COUNTER:            Cumulative totals.
    CYCLE_DURATION_SECONDS:     Service cycle latency histogram.
    RELAY_OPERATIONS:           Per-endpoint outcomes, labelled by
                                operation (query, publish) and outcome
                                (success, rejected, timeout, error).
    RELAY_OPERATION_SECONDS:    Per-endpoint latency histogram.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Enable the metrics endpoint")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Service metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "nostalgia_service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "nostalgia_cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)

SERVICE_GAUGE = Gauge(
    "nostalgia_service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "nostalgia_service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# Relay pool metrics
# ---------------------------------------------------------------------------

RELAY_OPERATIONS = Counter(
    "nostalgia_relay_operations",
    "Per-endpoint relay operation outcomes",
    ["operation", "outcome"],
)

RELAY_OPERATION_SECONDS = Histogram(
    "nostalgia_relay_operation_seconds",
    "Per-endpoint relay operation latency in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus ``/metrics`` endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening, or do nothing when metrics are disabled.

        Raises:
            OSError: If the port is already in use.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Stop the server. Idempotent."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a [MetricsServer][nostalgia.core.metrics.MetricsServer].

    The caller must ``stop()`` it during shutdown to release the port.
    """
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
