"""Event template builders for every kind the client publishes.

Standalone functions returning unsigned
[EventTemplate][nostalgia.models.event.EventTemplate] objects. Used by the
[Publisher][nostalgia.services.publisher.Publisher] for text notes (Kind 1)
and relay lists (Kind 10002), and by the
[MediaUploader][nostalgia.services.uploader.MediaUploader] for upload
authorization (Kind 24242).

See Also:
    [nostalgia.nips.signer][]: Turns the returned templates into events.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable, Sequence
from time import time
from typing import TYPE_CHECKING

from nostalgia.models.constants import EventKind
from nostalgia.models.event import EventTemplate


if TYPE_CHECKING:
    from nostalgia.models.event import Event
    from nostalgia.models.relay import RelayEndpoint


# =============================================================================
# Kind 1 (NIP-01)
# =============================================================================


def append_attachments(content: str, attachments: Sequence[str]) -> str:
    """Append attachment URLs to note *content*, one per line after a blank line."""
    if not attachments:
        return content
    return content + "\n\n" + "\n".join(attachments)


def build_text_note(content: str, attachments: Sequence[str] = ()) -> EventTemplate:
    """Build a Kind 1 text note with attachment URLs appended to the content."""
    return EventTemplate(kind=EventKind.TEXT_NOTE, content=append_attachments(content, attachments))


# =============================================================================
# Kind 10002 (NIP-65)
# =============================================================================


def build_relay_list(endpoints: Iterable[RelayEndpoint]) -> EventTemplate:
    """Build a Kind 10002 relay list with one ``r`` tag per endpoint.

    No read/write marker is set, so every relay is advertised for both.
    """
    tags = [["r", endpoint.url] for endpoint in endpoints]
    return EventTemplate(kind=EventKind.RELAY_LIST, tags=tags)


# =============================================================================
# Kind 24242 (BUD-01)
# =============================================================================


def build_upload_authorization(
    sha256_hex: str,
    *,
    ttl: int,
    description: str = "",
    now: int | None = None,
) -> EventTemplate:
    """Build a Kind 24242 Blossom upload authorization for one blob.

    Args:
        sha256_hex: Hex SHA-256 of the exact bytes being uploaded.
        ttl: Seconds until the authorization expires.
        description: Human-readable content shown by some servers.
        now: Creation time; defaults to the current time.
    """
    created_at = int(time()) if now is None else now
    tags = [
        ["t", "upload"],
        ["x", sha256_hex],
        ["expiration", str(created_at + ttl)],
    ]
    return EventTemplate(
        kind=EventKind.BLOSSOM_AUTH,
        content=description or "Upload Blob",
        tags=tags,
        created_at=created_at,
    )


def authorization_header(event: Event) -> str:
    """Return the ``Authorization`` header value ``Nostr <base64(json(event))>``."""
    encoded = base64.b64encode(event.to_json().encode("utf-8")).decode("ascii")
    return f"Nostr {encoded}"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "append_attachments",
    "authorization_header",
    "build_relay_list",
    "build_text_note",
    "build_upload_authorization",
]
