"""Nostr-sdk transport for a single Nostr relay.

Provides [RelayConnection][nostalgia.utils.transport.RelayConnection], a
lazily connected, reused nostr-sdk ``Client`` bound to exactly one relay.
Queries go through ``Client.fetch_events()`` (REQ until EOSE or the request
timeout) and publishes through ``Client.send_event()``, whose per-relay
``success`` / ``failed`` output becomes the ``(accepted, reason)`` pair the
pool expects.

Operations on one connection are serialized by an ``asyncio.Lock``. Any
failure, including cancellation by a caller's timeout, shuts the client
down so that the next operation reconnects from a clean state.

Note:
    Events handed back by ``request()`` are plain JSON objects re-encoded
    from the SDK's events. They are checked again by the caller with
    [parse_event()][nostalgia.nips.codec.parse_event].

See Also:
    [create_client()][nostalgia.utils.transport.create_client]: Builds the
        underlying ``Client``.
    [RelayPool][nostalgia.core.pool.RelayPool]: Owns one connection per
        endpoint and applies per-endpoint timeouts.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Final

from nostr_sdk import Client, ClientBuilder, ClientOptions, NostrSdkError, RelayLimits, RelayUrl
from nostr_sdk import Event as NostrEvent
from nostr_sdk import Filter as NostrFilter

from nostalgia.exceptions import EndpointError


if TYPE_CHECKING:
    from nostalgia.models.event import Event
    from nostalgia.models.filter import Filter
    from nostalgia.models.relay import RelayEndpoint


DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
DEFAULT_REQUEST_TIMEOUT: Final[float] = 10.0
DEFAULT_MAX_MESSAGE_SIZE: Final[int] = 4 * 1024 * 1024
_CLOSE_TIMEOUT: Final[float] = 5.0

logger = logging.getLogger(__name__)


def create_client(max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE) -> Client:
    """Create a read/write nostr-sdk client with no signer attached.

    Events are signed before they reach the transport, so the client never
    needs keys.

    Args:
        max_message_size: Largest accepted relay message in bytes.

    Returns:
        Configured ``Client`` (call ``add_relay()`` before use).
    """
    limits = RelayLimits().message_max_size(max_message_size)
    return ClientBuilder().opts(ClientOptions().relay_limits(limits)).build()


class RelayConnection:
    """Reusable nostr-sdk client connected to one relay.

    Args:
        endpoint: Relay to connect to.
        connect_timeout: Seconds allowed for the initial connection.
        request_timeout: Seconds ``fetch_events`` waits for ``EOSE``.
        max_message_size: Largest accepted relay message in bytes.

    Raises:
        EndpointError: From every operation, for connection failures and
            errors reported by nostr-sdk.
    """

    def __init__(
        self,
        endpoint: RelayEndpoint,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ) -> None:
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._max_message_size = max_message_size
        self._client: Client | None = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self._endpoint.url

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def request(self, query: Filter) -> list[Any]:
        """Fetch the events stored for *query* and return them as JSON objects."""
        nostr_filter = NostrFilter.from_json(json.dumps(query.to_dict()))
        async with self._lock:
            try:
                client = await self._connect()
                events = await client.fetch_events(
                    nostr_filter, timedelta(seconds=self._request_timeout)
                )
            except NostrSdkError as e:
                await self._reset()
                logger.debug("fetch_failed url=%s error=%s", self.url, e)
                raise EndpointError(self.url, f"request failed: {e}") from e
            except BaseException:
                await self._reset()
                raise
        return [json.loads(event.as_json()) for event in events.to_vec()]

    async def send_event(self, event: Event) -> tuple[bool, str]:
        """Publish *event* and report the relay's verdict.

        Returns:
            ``(accepted, reason)``; ``reason`` is empty on acceptance.
        """
        nostr_event = NostrEvent.from_json(event.to_json())
        async with self._lock:
            try:
                client = await self._connect()
                output = await client.send_event(nostr_event)
            except NostrSdkError as e:
                await self._reset()
                logger.debug("send_failed url=%s error=%s", self.url, e)
                raise EndpointError(self.url, f"send failed: {e}") from e
            except BaseException:
                await self._reset()
                raise
        if output.success:
            return True, ""
        return False, next(iter(output.failed.values()), "")

    async def close(self) -> None:
        """Shut the client down. Safe to call repeatedly."""
        async with self._lock:
            await self._reset()

    async def _connect(self) -> Client:
        if self._client is not None:
            return self._client

        client = create_client(self._max_message_size)
        try:
            await client.add_relay(RelayUrl.parse(self.url))
            output = await client.try_connect(timedelta(seconds=self._connect_timeout))
        except NostrSdkError as e:
            await _shutdown(client)
            raise EndpointError(self.url, f"connection failed: {e}") from e
        except BaseException:
            await _shutdown(client)
            raise

        if not output.success:
            await _shutdown(client)
            error = next(iter(output.failed.values()), "unknown error")
            logger.debug("connect_failed url=%s error=%s", self.url, error)
            raise EndpointError(self.url, f"connection failed: {error}")

        logger.debug("relay_connected url=%s", self.url)
        self._client = client
        return client

    async def _reset(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await _shutdown(client)

    def __repr__(self) -> str:
        return f"RelayConnection(url={self.url!r}, connected={self.is_connected})"


async def _shutdown(client: Client) -> None:
    # nostr-sdk client.shutdown() can raise arbitrary errors from the Rust side
    with contextlib.suppress(Exception):
        await asyncio.wait_for(client.shutdown(), timeout=_CLOSE_TIMEOUT)
