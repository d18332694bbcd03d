"""Fake relay connections, signing keys and event helpers shared across tests.

Usage: Registered via ``pytest_plugins`` in the root ``conftest.py``; the
``FakeRelay`` class and helpers are imported directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import pytest
from nostr_sdk import Keys

from nostalgia.core.pool import RelayPool, RelayPoolConfig, RelayTimeoutsConfig
from nostalgia.models import Event, EventTemplate, Filter
from nostalgia.nips.signer import LocalKeySigner


# NIP-19 test vector
VALID_HEX_KEY = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
VALID_NSEC_KEY = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret

RELAY_A = "wss://a.relay.example"
RELAY_B = "wss://b.relay.example"
RELAY_C = "wss://c.relay.example"


class FakeRelay:
    """In-memory stand-in for a RelayConnection.

    Args:
        events: Events (or raw objects) returned by every ``request``.
        error: Exception raised by every operation.
        delay: Seconds to sleep before answering.
        accept: ``OK`` flag returned by ``send_event``.
        reason: ``OK`` reason returned by ``send_event``.
    """

    def __init__(
        self,
        events: Iterable[Event | Any] = (),
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
        accept: bool = True,
        reason: str = "",
    ) -> None:
        self.events = list(events)
        self.error = error
        self.delay = delay
        self.accept = accept
        self.reason = reason
        self.requests: list[Filter] = []
        self.sent: list[Event] = []
        self.finished: list[str] = []
        self.closed = False

    async def _answer(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def request(self, query: Filter) -> list[Any]:
        self.requests.append(query)
        await self._answer()
        self.finished.append("request")
        return [e.to_dict() if isinstance(e, Event) else e for e in self.events]

    async def send_event(self, event: Event) -> tuple[bool, str]:
        self.sent.append(event)
        await self._answer()
        self.finished.append("send_event")
        return self.accept, self.reason

    async def close(self) -> None:
        self.closed = True


def make_pool(
    relays: Mapping[str, FakeRelay],
    *,
    query_timeout: float = 0.5,
    publish_timeout: float = 0.5,
) -> RelayPool:
    """Build a pool whose endpoints are served by *relays*, keyed by URL."""
    config = RelayPoolConfig(
        relays=list(relays),
        timeouts=RelayTimeoutsConfig(query=query_timeout, publish=publish_timeout),
    )
    return RelayPool(config, connection_factory=lambda endpoint: relays[endpoint.url])


async def sign_event(
    signer: LocalKeySigner,
    *,
    kind: int = 1,
    content: str = "",
    created_at: int = 1_700_000_000,
    tags: list[list[str]] | None = None,
) -> Event:
    """Sign a fresh template with *signer*."""
    template = EventTemplate(kind=kind, content=content, tags=tags or [], created_at=created_at)
    return await signer.sign(template)


@pytest.fixture
def signer() -> LocalKeySigner:
    """Signer for the NIP-19 test key."""
    return LocalKeySigner(VALID_HEX_KEY)


@pytest.fixture
def other_signer() -> LocalKeySigner:
    """Signer for a freshly generated key."""
    return LocalKeySigner.from_keys(Keys.generate())
