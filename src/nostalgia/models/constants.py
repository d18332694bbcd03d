"""Shared constants for the models layer.

Defines the event kinds the client reads and writes, plus the bootstrap relay
and media server lists used when no configuration is supplied.

See Also:
    [nostalgia.nips.event_builders][]: Build
        templates for each [EventKind][nostalgia.models.constants.EventKind].
"""

from __future__ import annotations

from enum import IntEnum


class EventKind(IntEnum):
    """Well-known Nostr event kinds used by the client.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note, the main feed content (NIP-01).
        RELAY_LIST: Kind 10002 -- relay list metadata (NIP-65).
        BLOSSOM_AUTH: Kind 24242 -- media server authorization (BUD-01).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    RELAY_LIST = 10_002
    BLOSSOM_AUTH = 24_242


EVENT_KIND_MAX = 65_535

DEFAULT_RELAYS: tuple[str, ...] = (
    "wss://relay.ditto.pub",
    "wss://relay.primal.net",
    "wss://relay.damus.io",
    "wss://nos.lol",
    "wss://relay.nostr.bg",
    "wss://nostr.wine",
    "wss://relay.snort.social",
    "wss://nostr.mom",
    "wss://relay.nostr.wirednet.jp",
    "wss://nostr.oxtr.dev",
    "wss://relay.mostr.pub",
    "wss://nostr-pub.wellorder.net",
    "wss://nostr.fmt.wiz.biz",
    "wss://relay.siamstr.com",
    "wss://relay.orangepill.dev",
)

DEFAULT_MEDIA_SERVERS: tuple[str, ...] = (
    "https://blossom.nostr.wine",
    "https://satellite.earth",
    "https://nostrcheck.me",
)
