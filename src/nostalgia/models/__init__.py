"""Pure frozen dataclasses with zero I/O for Nostr events, relays and profiles.

The models layer is the foundation of the diamond DAG. It has no dependencies
on any other Nostalgia package except [nostalgia.exceptions][], and uses only
the standard library plus ``rfc3986`` for URL parsing. Every value model uses
``@dataclass(frozen=True, slots=True)``; all validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    Event: Immutable NIP-01 event with structural validation.
    EventTemplate: Mutable draft consumed once by a signer.
    Filter: Subscription filter (kinds, authors, limit).
    RelayEndpoint: Normalized ``ws://``/``wss://`` relay URL.
    ProfileMetadata: Parsed kind 0 profile content.
    CachedNote: Feed cache entry.
    CachedProfile: Metadata cache entry (possibly "no profile").
    EventKind: Kinds the client reads and writes.

Note:
    Identity and signature checks are not part of the models; see
    [nostalgia.nips.codec][].

See Also:
    [nostalgia.models.event][]: Event and EventTemplate.
    [nostalgia.models.relay][]: Relay URL normalization.
    [nostalgia.models.filter][]: Query filter.
    [nostalgia.models.profile][]: Profile parsing and cache entries.
    [nostalgia.models.constants][]: Kinds and bootstrap lists.
"""

from .constants import DEFAULT_MEDIA_SERVERS, DEFAULT_RELAYS, EVENT_KIND_MAX, EventKind
from .event import Event, EventTemplate
from .filter import Filter
from .profile import (
    CachedNote,
    CachedProfile,
    ProfileMetadata,
    author_label,
    parse_profile,
    profile_from_event,
)
from .relay import RelayEndpoint


__all__ = [
    "DEFAULT_MEDIA_SERVERS",
    "DEFAULT_RELAYS",
    "EVENT_KIND_MAX",
    "CachedNote",
    "CachedProfile",
    "Event",
    "EventKind",
    "EventTemplate",
    "Filter",
    "ProfileMetadata",
    "RelayEndpoint",
    "author_label",
    "parse_profile",
    "profile_from_event",
]
