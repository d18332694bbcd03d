"""
Fan-out pool of Nostr relay connections.

[RelayPool][nostalgia.core.pool.RelayPool] treats a set of independent,
unreliable relays as one logical store:

* [query()][nostalgia.core.pool.RelayPool.query] asks every endpoint
  concurrently, waits for each one to finish or time out, verifies every
  returned event and merges the results by id. A single endpoint's failure
  is logged and counted, never raised; only when *every* endpoint failed
  does the caller see a [QueryFailure][nostalgia.exceptions.QueryFailure].
* [publish()][nostalgia.core.pool.RelayPool.publish] writes to every
  endpoint concurrently and returns as soon as one of them accepts the
  event. The remaining writes keep running in the background and their
  outcomes are only logged. If every endpoint fails, the caller gets an
  [AggregateFailure][nostalgia.exceptions.AggregateFailure] with one cause
  per endpoint.

Connections are created lazily, one per endpoint, and reused across
operations.

Examples:
    ```python
    pool = RelayPool.from_dict({"relays": ["wss://nos.lol", "wss://relay.damus.io"]})

    async with pool:
        notes = await pool.query(Filter.of(kinds=[1], limit=50))
        ack = await pool.publish(signed_event)
    ```

See Also:
    [RelayConnection][nostalgia.utils.transport.RelayConnection]: The
        per-endpoint nostr-sdk client used by default.
    [parse_event()][nostalgia.nips.codec.parse_event]: Verification applied
        to every relay-supplied event.
    [RelayPoolConfig][nostalgia.core.pool.RelayPoolConfig]: Relays, timeouts
        and limits.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol, Self

from pydantic import BaseModel, Field, field_validator

from nostalgia.exceptions import (
    AggregateFailure,
    EndpointError,
    EndpointTimeout,
    QueryFailure,
    ValidationError,
)
from nostalgia.models.constants import DEFAULT_RELAYS
from nostalgia.models.event import Event
from nostalgia.models.filter import Filter
from nostalgia.models.relay import RelayEndpoint
from nostalgia.nips.codec import parse_event
from nostalgia.utils.transport import DEFAULT_MAX_MESSAGE_SIZE, RelayConnection

from .logger import Logger
from .metrics import RELAY_OPERATION_SECONDS, RELAY_OPERATIONS
from .yaml import load_yaml


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class RelayTimeoutsConfig(BaseModel):
    """Per-endpoint timeouts (in seconds).

    ``query`` and ``publish`` bound one endpoint's whole operation,
    including connecting. Slow endpoints never delay the others beyond
    these limits.
    """

    connect: float = Field(default=10.0, gt=0.0, description="Relay connection timeout")
    query: float = Field(default=10.0, gt=0.0, description="Per-endpoint query timeout")
    publish: float = Field(default=10.0, gt=0.0, description="Per-endpoint publish timeout")


class RelayLimitsConfig(BaseModel):
    """Resource limits applied to every relay connection."""

    max_message_size: int = Field(
        default=DEFAULT_MAX_MESSAGE_SIZE,
        ge=1024,
        description="Largest accepted relay message in bytes",
    )


class RelayPoolConfig(BaseModel):
    """Aggregate configuration for the relay pool.

    See Also:
        [RelayTimeoutsConfig][nostalgia.core.pool.RelayTimeoutsConfig]:
            Per-endpoint timeouts.
        [RelayLimitsConfig][nostalgia.core.pool.RelayLimitsConfig]:
            Message size limits.
    """

    relays: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RELAYS),
        description="Initial relay endpoints (ws:// or wss://)",
    )
    timeouts: RelayTimeoutsConfig = Field(default_factory=RelayTimeoutsConfig)
    limits: RelayLimitsConfig = Field(default_factory=RelayLimitsConfig)

    @field_validator("relays")
    @classmethod
    def validate_relays(cls, v: list[str]) -> list[str]:
        """Reject malformed URLs at load time and drop duplicates."""
        seen: dict[str, None] = {}
        for url in v:
            seen[RelayEndpoint(url).url] = None
        return list(seen)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class RelayClient(Protocol):
    """Operations the pool needs from a per-endpoint connection."""

    async def request(self, query: Filter) -> list[Any]: ...

    async def send_event(self, event: Event) -> tuple[bool, str]: ...

    async def close(self) -> None: ...


ConnectionFactory = Callable[[RelayEndpoint], RelayClient]


@dataclass(frozen=True, slots=True)
class PublishAck:
    """First acceptance of a published event.

    Attributes:
        event_id: Id of the published event.
        relay: URL of the endpoint that accepted it first, or ``None`` when
            the pool had no endpoints.
        message: Reason string from the relay's ``OK`` reply.
    """

    event_id: str
    relay: str | None
    message: str = ""


# ---------------------------------------------------------------------------
# Pool Class
# ---------------------------------------------------------------------------


class RelayPool:
    """Ordered set of relay endpoints with fan-out query and publish.

    Args:
        config: Pool configuration; defaults to the bootstrap relay list.
        connection_factory: Builds the per-endpoint connection. Defaults to
            [RelayConnection][nostalgia.utils.transport.RelayConnection].

    Note:
        ``CancelledError`` from the caller always propagates. Per-endpoint
        errors never do; they are folded into the aggregate failures
        described in the module docstring.
    """

    def __init__(
        self,
        config: RelayPoolConfig | None = None,
        *,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self._config = config or RelayPoolConfig()
        self._connection_factory = connection_factory or self._default_connection
        self._endpoints: dict[RelayEndpoint, None] = {}
        self._connections: dict[RelayEndpoint, RelayClient] = {}
        self._background: set[asyncio.Task[PublishAck]] = set()
        self._logger = Logger("relay_pool")

        for url in self._config.relays:
            self.add_endpoint(url)

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a pool from a YAML file containing a ``RelayPoolConfig`` mapping."""
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Create a pool from a ``RelayPoolConfig`` dictionary."""
        return cls(config=RelayPoolConfig(**data), **kwargs)

    @property
    def config(self) -> RelayPoolConfig:
        return self._config

    @property
    def endpoints(self) -> tuple[RelayEndpoint, ...]:
        """Current endpoints in insertion order."""
        return tuple(self._endpoints)

    @property
    def pending_publishes(self) -> int:
        """Number of detached publish writes still running."""
        return len(self._background)

    # -------------------------------------------------------------------------
    # Endpoint Management
    # -------------------------------------------------------------------------

    def add_endpoint(self, url: str | RelayEndpoint) -> RelayEndpoint:
        """Add an endpoint; adding an existing one is a no-op.

        Raises:
            ValueError: If *url* is not a valid ``ws://``/``wss://`` URL.
        """
        endpoint = url if isinstance(url, RelayEndpoint) else RelayEndpoint(url)
        if endpoint not in self._endpoints:
            self._endpoints[endpoint] = None
            self._logger.debug("endpoint_added", relay=endpoint.url)
        return endpoint

    async def remove_endpoint(self, url: str | RelayEndpoint) -> bool:
        """Remove an endpoint and close its connection.

        Returns:
            ``True`` if the endpoint was present.
        """
        endpoint = url if isinstance(url, RelayEndpoint) else RelayEndpoint(url)
        if endpoint not in self._endpoints:
            return False
        del self._endpoints[endpoint]
        connection = self._connections.pop(endpoint, None)
        if connection is not None:
            await connection.close()
        self._logger.debug("endpoint_removed", relay=endpoint.url)
        return True

    def _resolve(self, endpoints: Iterable[str | RelayEndpoint] | None) -> list[RelayEndpoint]:
        if endpoints is None:
            return list(self._endpoints)
        resolved: dict[RelayEndpoint, None] = {}
        for url in endpoints:
            resolved[url if isinstance(url, RelayEndpoint) else RelayEndpoint(url)] = None
        return list(resolved)

    def _default_connection(self, endpoint: RelayEndpoint) -> RelayClient:
        return RelayConnection(
            endpoint,
            connect_timeout=self._config.timeouts.connect,
            request_timeout=self._config.timeouts.query,
            max_message_size=self._config.limits.max_message_size,
        )

    def _connection(self, endpoint: RelayEndpoint) -> RelayClient:
        connection = self._connections.get(endpoint)
        if connection is None:
            connection = self._connection_factory(endpoint)
            self._connections[endpoint] = connection
        return connection

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    async def query(
        self,
        query: Filter,
        endpoints: Iterable[str | RelayEndpoint] | None = None,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> set[Event]:
        """Return the union of verified events from every endpoint.

        Args:
            query: Filter sent unchanged to every endpoint.
            endpoints: Subset to query; defaults to all endpoints.
            timeout: Per-endpoint timeout; defaults to
                ``config.timeouts.query``.

        Returns:
            Distinct verified events (by id) matching *query*. Empty when
            there are no endpoints or no endpoint had matching events.

        Raises:
            QueryFailure: If every queried endpoint failed.
        """
        targets = self._resolve(endpoints)
        if not targets:
            return set()
        per_endpoint = self._config.timeouts.query if timeout is None else timeout

        results = await asyncio.gather(
            *(self._query_one(endpoint, query, per_endpoint) for endpoint in targets),
            return_exceptions=True,
        )

        merged: dict[str, Event] = {}
        failures: list[EndpointError] = []
        for endpoint, result in zip(targets, results, strict=True):
            if isinstance(result, BaseException):
                failures.append(self._as_endpoint_error(endpoint, result))
                continue
            for event in result:
                merged.setdefault(event.id, event)

        if len(failures) == len(targets):
            self._logger.error("query_failed", endpoints=len(targets))
            raise QueryFailure("every endpoint failed the query", failures)

        self._logger.debug(
            "query_completed",
            events=len(merged),
            endpoints=len(targets),
            failed=len(failures),
        )
        return set(merged.values())

    async def _query_one(self, endpoint: RelayEndpoint, query: Filter, timeout: float) -> list[Event]:  # noqa: ASYNC109
        start = time.monotonic()
        try:
            async with asyncio.timeout(timeout):
                raw_events = await self._connection(endpoint).request(query)
        except TimeoutError:
            self._record("query", "timeout", start)
            self._logger.warning("query_timeout", relay=endpoint.url, timeout_s=timeout)
            raise EndpointTimeout(endpoint.url, f"query timed out after {timeout}s") from None
        except EndpointError as e:
            self._record("query", "error", start)
            self._logger.warning("query_endpoint_failed", relay=endpoint.url, error=e.message)
            raise

        self._record("query", "success", start)
        events: list[Event] = []
        dropped = 0
        for raw in raw_events:
            try:
                event = parse_event(raw)
            except ValidationError as e:
                dropped += 1
                self._logger.debug("event_dropped", relay=endpoint.url, reason=str(e))
                continue
            if not query.matches(event):
                dropped += 1
                self._logger.debug("event_dropped", relay=endpoint.url, reason="filter mismatch")
                continue
            events.append(event)
        if dropped:
            self._logger.debug("invalid_events_dropped", relay=endpoint.url, count=dropped)
        return events

    # -------------------------------------------------------------------------
    # Publish
    # -------------------------------------------------------------------------

    async def publish(
        self,
        event: Event,
        endpoints: Iterable[str | RelayEndpoint] | None = None,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> PublishAck:
        """Write *event* to every endpoint; return on the first acceptance.

        Writes still running when the first acceptance arrives are left to
        finish in the background (they are not cancelled) and their
        outcomes are logged.

        Args:
            event: A signed, validated event.
            endpoints: Subset to publish to; defaults to all endpoints.
            timeout: Per-endpoint timeout; defaults to
                ``config.timeouts.publish``.

        Returns:
            The first [PublishAck][nostalgia.core.pool.PublishAck]. With no
            endpoints, an ack with ``relay=None`` and no I/O.

        Raises:
            AggregateFailure: If every endpoint rejected the event, failed,
                or timed out. ``causes`` holds one error per endpoint, in
                endpoint order.
        """
        targets = self._resolve(endpoints)
        if not targets:
            self._logger.warning("publish_without_endpoints", event_id=event.id)
            return PublishAck(event_id=event.id, relay=None, message="no endpoints configured")
        per_endpoint = self._config.timeouts.publish if timeout is None else timeout

        tasks = {
            asyncio.create_task(self._publish_one(endpoint, event, per_endpoint)): endpoint
            for endpoint in targets
        }
        failures: dict[RelayEndpoint, EndpointError] = {}
        pending: set[asyncio.Task[PublishAck]] = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                acks: list[PublishAck] = []
                for task in done:
                    error = task.exception()
                    if error is None:
                        acks.append(task.result())
                    else:
                        failures[tasks[task]] = self._as_endpoint_error(tasks[task], error)
                if acks:
                    self._detach(pending, event.id)
                    self._logger.info("event_published", event_id=event.id, relay=acks[0].relay)
                    return acks[0]
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise

        self._logger.error("publish_failed", event_id=event.id, endpoints=len(targets))
        raise AggregateFailure(
            f"no endpoint accepted event {event.id}",
            [failures[endpoint] for endpoint in targets],
        )

    async def _publish_one(self, endpoint: RelayEndpoint, event: Event, timeout: float) -> PublishAck:  # noqa: ASYNC109
        start = time.monotonic()
        try:
            async with asyncio.timeout(timeout):
                accepted, reason = await self._connection(endpoint).send_event(event)
        except TimeoutError:
            self._record("publish", "timeout", start)
            raise EndpointTimeout(endpoint.url, f"publish timed out after {timeout}s") from None
        except EndpointError:
            self._record("publish", "error", start)
            raise

        if not accepted:
            self._record("publish", "rejected", start)
            raise EndpointError(endpoint.url, f"rejected: {reason}")
        self._record("publish", "success", start)
        return PublishAck(event_id=event.id, relay=endpoint.url, message=reason)

    def _detach(self, pending: set[asyncio.Task[PublishAck]], event_id: str) -> None:
        for task in pending:
            self._background.add(task)
            task.add_done_callback(lambda t, eid=event_id: self._on_background_done(t, eid))

    def _on_background_done(self, task: asyncio.Task[PublishAck], event_id: str) -> None:
        self._background.discard(task)
        if task.cancelled():
            self._logger.debug("background_publish_cancelled", event_id=event_id)
            return
        error = task.exception()
        if error is None:
            self._logger.debug("background_publish_accepted", event_id=event_id, relay=task.result().relay)
        else:
            self._logger.debug("background_publish_failed", event_id=event_id, error=str(error))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _as_endpoint_error(self, endpoint: RelayEndpoint, error: BaseException) -> EndpointError:
        """Fold a per-endpoint task outcome into an ``EndpointError``.

        Shutdown signals are re-raised; anything else is attributed to the
        endpoint so that one misbehaving connection cannot fail the whole
        operation.
        """
        if isinstance(error, asyncio.CancelledError | KeyboardInterrupt | SystemExit):
            raise error
        if isinstance(error, EndpointError):
            return error
        self._logger.warning(
            "endpoint_unexpected_error",
            relay=endpoint.url,
            error=str(error),
            error_type=type(error).__name__,
        )
        wrapped = EndpointError(endpoint.url, f"{type(error).__name__}: {error}")
        wrapped.__cause__ = error
        return wrapped

    @staticmethod
    def _record(operation: str, outcome: str, start: float) -> None:
        RELAY_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
        RELAY_OPERATION_SECONDS.labels(operation=operation).observe(time.monotonic() - start)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Cancel detached publishes and close every connection."""
        background = list(self._background)
        for task in background:
            task.cancel()
        if background:
            await asyncio.gather(*background, return_exceptions=True)

        connections = list(self._connections.values())
        self._connections.clear()
        results = await asyncio.gather(
            *(connection.close() for connection in connections), return_exceptions=True
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                self._logger.debug("connection_close_failed", error=str(result))
        self._logger.debug("pool_closed", connections=len(connections))

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"RelayPool(endpoints={len(self._endpoints)}, connections={len(self._connections)})"
