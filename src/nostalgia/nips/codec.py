"""
Canonical NIP-01 serialization, event identity and verification.

An event's ``id`` is the SHA-256 of a fixed JSON array encoding; the
signature is a BIP-340 Schnorr signature over that id. Both checks are
mandatory before any relay-supplied event is trusted.

Note:
    Schnorr verification is delegated to ``nostr_sdk`` (Rust-backed). The id
    check is done here, in pure Python, so that a tampered ``id`` is
    rejected even if it happens to carry a valid signature for the
    tampered value.

See Also:
    [Event][nostalgia.models.event.Event]: The structure being validated.
    [RelayPool.query()][nostalgia.core.pool.RelayPool.query]: Runs
        [parse_event()][nostalgia.nips.codec.parse_event] on every raw event
        and drops the ones that fail.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from nostr_sdk import Event as NostrEvent
from nostr_sdk import NostrSdkError

from nostalgia.exceptions import ValidationError
from nostalgia.models.event import Event


logger = logging.getLogger(__name__)


def serialize(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
) -> str:
    """Return the canonical serialization ``[0,pubkey,created_at,kind,tags,content]``.

    Compact separators, UTF-8 characters left unescaped, so the byte
    sequence matches every other NIP-01 implementation.
    """
    return json.dumps(
        [0, pubkey, created_at, kind, [list(tag) for tag in tags], content],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def compute_id(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
) -> str:
    """Return the lowercase hex SHA-256 of [serialize()][nostalgia.nips.codec.serialize]."""
    payload = serialize(pubkey, created_at, kind, tags, content)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def event_id(event: Event) -> str:
    """Recompute the id of *event* from its signed fields."""
    return compute_id(event.pubkey, event.created_at, event.kind, event.tags, event.content)


def _verify_signature(event: Event) -> bool:
    try:
        return bool(NostrEvent.from_json(event.to_json()).verify())
    except NostrSdkError as e:
        logger.debug("signature_check_failed id=%s error=%s", event.id, e)
        return False


def _id_matches(event: Event) -> bool:
    try:
        return event_id(event) == event.id
    except UnicodeEncodeError:
        # lone surrogates have no UTF-8 encoding, so no id can match
        logger.debug("unencodable_event id=%s", event.id)
        return False


def verify(event: Event) -> bool:
    """Return ``True`` iff both the id and the signature of *event* check out."""
    if not _id_matches(event):
        return False
    return _verify_signature(event)


def validate(event: Event) -> Event:
    """Return *event* unchanged if it verifies.

    Raises:
        ValidationError: If the id does not match the content or the
            signature does not verify against ``pubkey``.
    """
    if not _id_matches(event):
        raise ValidationError(f"event id mismatch: {event.id}")
    if not _verify_signature(event):
        raise ValidationError(f"invalid signature for event {event.id}")
    return event


def parse_event(raw: Mapping[str, Any] | Any) -> Event:
    """Parse and validate a decoded relay-supplied event object.

    Args:
        raw: Whatever the relay put in the event slot of an ``EVENT``
            message. Anything other than a well-formed, authentic event
            object is rejected.

    Raises:
        ValidationError: On any structural, identity or signature failure.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(f"event must be an object, got {type(raw).__name__}")
    try:
        event = Event.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed event: {e}") from e
    return validate(event)
