"""
Signing backends: local secret key, external signing agent, or none.

Every backend turns an [EventTemplate][nostalgia.models.event.EventTemplate]
into a validated [Event][nostalgia.models.event.Event] or raises a
[SigningError][nostalgia.exceptions.SigningError]. The variant is chosen
once per session by [select_signer()][nostalgia.nips.signer.select_signer];
callers only ever see the [Signer][nostalgia.nips.signer.Signer] interface.

Attributes:
    LocalKeySigner: Holds a secret key in memory and signs with ``nostr_sdk``.
    ExternalSigner: Delegates to a NIP-07 style agent (browser extension,
        remote bunker) implementing [SigningAgent][nostalgia.nips.signer.SigningAgent].
    NullSigner: Logged-out state. Every ``sign`` call fails without I/O.

Warning:
    Secret keys are never logged. Only the public key appears in log lines.

See Also:
    [Session][nostalgia.core.session.Session]: Owns the active signer.
    [nostalgia.nips.codec][]: Validation applied to every signed event.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from nostr_sdk import EventBuilder, Keys, Kind, NostrSdkError, Tag, Timestamp

from nostalgia.exceptions import (
    InvalidKey,
    SigningUnavailable,
    UserRejected,
    ValidationError,
)
from nostalgia.models.event import Event, EventTemplate

from .codec import parse_event, validate


logger = logging.getLogger(__name__)


class Signer(ABC):
    """Abstract signing backend."""

    @property
    @abstractmethod
    def public_key(self) -> str | None:
        """Hex public key of the signing identity, or ``None`` when logged out."""

    @abstractmethod
    async def sign(self, template: EventTemplate) -> Event:
        """Sign *template* and return a validated event.

        The template is consumed; signing it a second time raises
        ``ValueError``.

        Raises:
            SigningUnavailable: No signing backend is reachable.
            UserRejected: An external agent declined the request.
            ValidationError: The produced event does not verify.
        """


class LocalKeySigner(Signer):
    """Signs with a secret key held in process memory.

    Args:
        secret_key: 64 hex characters or an ``nsec1`` bech32 string.

    Raises:
        InvalidKey: If *secret_key* cannot be parsed.
    """

    def __init__(self, secret_key: str) -> None:
        try:
            self._keys = Keys.parse(secret_key.strip())
        except NostrSdkError as e:
            raise InvalidKey("secret key must be 64 hex chars or nsec1 bech32") from e
        self._public_key: str = self._keys.public_key().to_hex()

    @classmethod
    def from_keys(cls, keys: Keys) -> LocalKeySigner:
        """Wrap an already parsed ``nostr_sdk.Keys`` instance."""
        signer = cls.__new__(cls)
        signer._keys = keys
        signer._public_key = keys.public_key().to_hex()
        return signer

    @property
    def public_key(self) -> str:
        return self._public_key

    async def sign(self, template: EventTemplate) -> Event:
        template.consume()
        builder = (
            EventBuilder(Kind(int(template.kind)), template.content)
            .tags([Tag.parse(list(tag)) for tag in template.tags])
            .custom_created_at(Timestamp.from_secs(template.created_at))
        )
        signed = builder.sign_with_keys(self._keys)
        event = Event.from_dict(json.loads(signed.as_json()))
        return validate(event)

    def __repr__(self) -> str:
        return f"LocalKeySigner(public_key={self._public_key!r})"


@runtime_checkable
class SigningAgent(Protocol):
    """NIP-07 style signing agent.

    ``sign_event`` receives the unsigned event object and returns the signed
    object, or ``None`` when the user declines. An agent may also raise
    [UserRejected][nostalgia.exceptions.UserRejected] directly.
    """

    async def get_public_key(self) -> str: ...

    async def sign_event(self, unsigned: dict[str, Any]) -> dict[str, Any] | None: ...


class ExternalSigner(Signer):
    """Delegates signing to an external [SigningAgent][nostalgia.nips.signer.SigningAgent].

    At most one request is outstanding at a time. A request is never
    retried; a slow agent is bounded only by *timeout*.

    Args:
        agent: The signing agent.
        public_key: Hex public key already obtained from the agent.
        timeout: Seconds to wait for each agent call, or ``None`` to wait
            for the user indefinitely.
    """

    def __init__(self, agent: SigningAgent, public_key: str, timeout: float | None = None) -> None:
        self._agent = agent
        self._public_key = public_key
        self._timeout = timeout
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, agent: SigningAgent, timeout: float | None = None) -> ExternalSigner:  # noqa: ASYNC109
        """Fetch the public key from *agent* and return a signer bound to it.

        Raises:
            SigningUnavailable: If the agent is unreachable or returns a
                malformed public key.
        """
        try:
            async with asyncio.timeout(timeout):
                public_key = await agent.get_public_key()
        except (OSError, TimeoutError) as e:
            raise SigningUnavailable(f"signing agent unreachable: {e}") from e
        if not isinstance(public_key, str) or len(public_key) != 64:  # noqa: PLR2004
            raise SigningUnavailable("signing agent returned a malformed public key")
        logger.info("signing_agent_connected pubkey=%s", public_key)
        return cls(agent, public_key.lower(), timeout)

    @property
    def public_key(self) -> str:
        return self._public_key

    async def sign(self, template: EventTemplate) -> Event:
        template.consume()
        unsigned = template.to_unsigned(self._public_key)
        async with self._lock:
            try:
                async with asyncio.timeout(self._timeout):
                    signed = await self._agent.sign_event(unsigned)
            except (OSError, TimeoutError) as e:
                raise SigningUnavailable(f"signing agent unreachable: {e}") from e
        if signed is None:
            raise UserRejected("signing agent declined the request")

        event = parse_event(signed)
        if event.pubkey != self._public_key:
            raise ValidationError(f"signing agent returned event for pubkey {event.pubkey}")
        if (event.kind, event.created_at, event.content, event.tags) != (
            template.kind,
            template.created_at,
            template.content,
            tuple(tuple(tag) for tag in template.tags),
        ):
            raise ValidationError("signing agent altered the event")
        return event

    def __repr__(self) -> str:
        return f"ExternalSigner(public_key={self._public_key!r})"


class NullSigner(Signer):
    """Signer for the logged-out state."""

    @property
    def public_key(self) -> None:
        return None

    async def sign(self, template: EventTemplate) -> Event:
        raise SigningUnavailable("no secret key configured and no signing agent connected")

    def __repr__(self) -> str:
        return "NullSigner()"


async def select_signer(
    secret_key: str | None = None,
    agent: SigningAgent | None = None,
    *,
    agent_timeout: float | None = None,
) -> Signer:
    """Pick the signing backend once, preferring a local key over an agent.

    Raises:
        InvalidKey: If *secret_key* is given but malformed.
        SigningUnavailable: If an *agent* is given but unreachable.
    """
    if secret_key:
        return LocalKeySigner(secret_key)
    if agent is not None:
        return await ExternalSigner.connect(agent, timeout=agent_timeout)
    return NullSigner()
