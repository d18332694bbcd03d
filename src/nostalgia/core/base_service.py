"""
Abstract base class for periodically refreshed Nostalgia services.

``BaseService[ConfigT]`` provides the standard lifecycle: structured logging
via [Logger][nostalgia.core.logger.Logger], graceful shutdown via
``asyncio.Event``, interval-based cycling with
[run_forever()][nostalgia.core.base_service.BaseService.run_forever],
consecutive failure limits, and automatic Prometheus metrics.

Services reach relays only through the
[Session][nostalgia.core.session.Session] injected into the constructor.
State lives in memory and is rebuilt from relays after a restart.

See Also:
    [FeedAssembler][nostalgia.services.feed.FeedAssembler]: The refresh
        loop built on this class.
    [BaseServiceConfig][nostalgia.core.base_service.BaseServiceConfig]: Base
        configuration model for all services.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .session import Session
from .yaml import load_yaml


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all services that run in a loop.

    See Also:
        [BaseService][nostalgia.core.base_service.BaseService]: The abstract
            service class that consumes this configuration.
        [MetricsConfig][nostalgia.core.metrics.MetricsConfig]: Embedded
            configuration for the Prometheus metrics endpoint.
    """

    interval: float = Field(
        default=10.0,
        ge=1.0,
        description="Seconds between run cycles",
    )
    max_consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for all Nostalgia services.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][nostalgia.core.base_service.BaseService.run].

    Attributes:
        SERVICE_NAME: Identifier used in logging and metrics.
        CONFIG_CLASS: Pydantic model class used by the factory methods.
        CONFIG_SECTION: Top-level YAML key holding the service config, or
            ``None`` when the whole file is the config.
        _session: [Session][nostalgia.core.session.Session] holding the
            relay pool and the active signer.
        _config: Typed service configuration.
        _logger: [Logger][nostalgia.core.logger.Logger] named after the service.
        _shutdown_event: Clear while running; set once shutdown is requested.

    Note:
        The lifecycle is ``async with session:`` then
        ``async with service:`` then
        [run_forever()][nostalgia.core.base_service.BaseService.run_forever]
        (or a single [run()][nostalgia.core.base_service.BaseService.run]
        with ``--once``).
    """

    SERVICE_NAME: ClassVar[str]
    CONFIG_CLASS: ClassVar[type[BaseModel]]
    CONFIG_SECTION: ClassVar[str | None] = None

    def __init__(self, session: Session, config: ConfigT | None = None) -> None:
        self._session = session
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def session(self) -> Session:
        return self._session

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's main logic.

        Called repeatedly by
        [run_forever()][nostalgia.core.base_service.BaseService.run_forever].
        Implementations perform a bounded unit of work and return.
        """
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown. Safe to call from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether the service is still active (shutdown not yet requested)."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Wait for a shutdown request or *timeout* seconds.

        Returns:
            ``True`` if shutdown was requested during the wait, ``False`` if
            the timeout expired.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Call [run()][nostalgia.core.base_service.BaseService.run] every ``config.interval`` seconds.

        Exits when shutdown is requested or when
        ``config.max_consecutive_failures`` consecutive cycles have failed
        (``0`` disables the limit). ``CancelledError``, ``KeyboardInterrupt``
        and ``SystemExit`` always propagate without being counted.

        Metrics recorded: ``cycles_success``, ``cycles_failed`` and
        ``errors_{ExceptionType}`` counters; ``consecutive_failures`` and
        ``last_cycle_timestamp`` gauges; ``cycle_duration_seconds``.
        """
        interval = self._config.interval
        max_consecutive_failures = self._config.max_consecutive_failures
        metrics_enabled = self._config.metrics.enabled

        if metrics_enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})

        self._logger.info(
            "run_forever_started",
            interval=interval,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0

        while self.is_running:
            cycle_start = time.monotonic()

            try:
                await self.run()

                duration = time.monotonic() - cycle_start
                self.inc_counter("cycles_success")
                if metrics_enabled:
                    CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
                self.set_gauge("last_cycle_timestamp", time.time())
                self.set_gauge("consecutive_failures", 0)

                consecutive_failures = 0
                self._logger.debug("cycle_completed", duration_s=round(duration, 3))

            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise

            except Exception as e:  # noqa: BLE001  # top-level error boundary for run_forever
                consecutive_failures += 1

                self.inc_counter("cycles_failed")
                self.set_gauge("consecutive_failures", consecutive_failures)
                self.inc_counter(f"errors_{type(e).__name__}")

                self._logger.error(
                    "run_cycle_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    consecutive_failures=consecutive_failures,
                )

                if 0 < max_consecutive_failures <= consecutive_failures:
                    self._logger.critical(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, session: Session, **kwargs: Any) -> Self:
        """Create a service from a YAML configuration file."""
        data = load_yaml(config_path)
        if cls.CONFIG_SECTION is not None:
            data = data.get(cls.CONFIG_SECTION, {})
        return cls.from_dict(data, session=session, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], session: Session, **kwargs: Any) -> Self:
        """Create a service, parsing *data* into ``CONFIG_CLASS``."""
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(session=session, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge for this service. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter for this service. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
