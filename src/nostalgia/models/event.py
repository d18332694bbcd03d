"""
Immutable Nostr event and mutable pre-signing template.

[Event][nostalgia.models.event.Event] is a frozen dataclass mirroring the
NIP-01 wire object. Construction only checks structure (types, hex
lengths); identity and signature checks live in
[nostalgia.nips.codec][] so that the models layer stays free of
cryptography.

[EventTemplate][nostalgia.models.event.EventTemplate] is the draft handed to
a [Signer][nostalgia.nips.signer.Signer]. It carries everything except
``id``, ``pubkey`` and ``sig``, and can be consumed exactly once.

See Also:
    [nostalgia.nips.codec][]: Canonical serialization, id computation and
        verification for [Event][nostalgia.models.event.Event].
    [nostalgia.nips.signer][]: Turns an
        [EventTemplate][nostalgia.models.event.EventTemplate] into an
        [Event][nostalgia.models.event.Event].
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from time import time
from typing import Any

from .constants import EVENT_KIND_MAX
from ._validation import (
    freeze_tags,
    validate_hex,
    validate_instance,
    validate_int,
    validate_tags,
)


_ID_LENGTH = 64
_PUBKEY_LENGTH = 64
_SIG_LENGTH = 128


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable, structurally valid Nostr event.

    Attributes:
        id: SHA-256 of the canonical serialization, 64 lowercase hex chars.
        pubkey: Author x-only public key, 64 lowercase hex chars.
        created_at: Unix timestamp in seconds.
        kind: Integer event category (0-65535).
        tags: Ordered tuple of tag tuples, e.g. ``(("t", "upload"),)``.
        content: Arbitrary text content.
        sig: Schnorr signature over ``id``, 128 lowercase hex chars.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a hex field has the wrong length or alphabet, or the
            kind/timestamp is out of range.

    Note:
        A structurally valid event is not necessarily authentic. Only events
        that passed [validate()][nostalgia.nips.codec.validate] may enter a
        cache.
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_hex(self.id, "id", _ID_LENGTH)
        validate_hex(self.pubkey, "pubkey", _PUBKEY_LENGTH)
        validate_int(self.created_at, "created_at")
        validate_int(self.kind, "kind", maximum=EVENT_KIND_MAX)
        validate_tags(self.tags, "tags")
        validate_instance(self.content, str, "content")
        validate_hex(self.sig, "sig", _SIG_LENGTH)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Build an event from a decoded NIP-01 JSON object.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If a field has the wrong type.
            ValueError: If a field is out of range.
        """
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            created_at=data["created_at"],
            kind=data["kind"],
            tags=freeze_tags(data["tags"]),
            content=data["content"],
            sig=data["sig"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Return the compact JSON encoding of [to_dict()][nostalgia.models.event.Event.to_dict]."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


@dataclass(slots=True)
class EventTemplate:
    """Mutable draft of an event that has not been signed yet.

    Owned by whichever component composes the event; handed to
    [Signer.sign()][nostalgia.nips.signer.Signer.sign] exactly once.

    Attributes:
        kind: Integer event category.
        content: Text content.
        tags: Ordered list of tag lists.
        created_at: Unix timestamp in seconds (defaults to now).
        consumed: Set by the signer; a consumed template cannot be signed
            again.
    """

    kind: int
    content: str = ""
    tags: list[list[str]] = field(default_factory=list)
    created_at: int = field(default_factory=lambda: int(time()))
    consumed: bool = field(default=False, compare=False)

    def consume(self) -> None:
        """Mark the template as used.

        Raises:
            ValueError: If the template was already consumed.
        """
        if self.consumed:
            raise ValueError("EventTemplate was already signed")
        self.consumed = True

    def to_unsigned(self, pubkey: str) -> dict[str, Any]:
        """Return the unsigned NIP-01 object for *pubkey* (NIP-07 ``signEvent`` input)."""
        return {
            "pubkey": pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }
