"""
Author profile metadata (kind 0 content) and cache entries.

Profile content is untrusted peer data. [parse_profile()][nostalgia.models.profile.parse_profile]
returns ``None`` for anything that is not a JSON object, so "no metadata" is
part of the return type instead of an exception the caller has to remember
to catch.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .event import Event


_AVATAR_FALLBACK = "https://robohash.org/{pubkey}?set=set4"
_LABEL_PREFIX_LENGTH = 8


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True, slots=True)
class ProfileMetadata:
    """Parsed profile of one author.

    Only ``name``, ``display_name``, ``picture`` and ``nip05`` are
    interpreted; every other field is kept opaque in ``raw``.

    Attributes:
        pubkey: Author public key (hex).
        name: Short handle.
        display_name: Longer display name.
        picture: Avatar URL.
        nip05: NIP-05 internet identifier.
        raw: Read-only view of the full decoded JSON object.
        created_at: ``created_at`` of the kind 0 event it came from.
    """

    pubkey: str
    name: str | None = None
    display_name: str | None = None
    picture: str | None = None
    nip05: str | None = None
    raw: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    created_at: int = 0

    def author_label(self) -> str:
        """Name to show for the author: name, then display name, then pubkey prefix."""
        return self.name or self.display_name or self.pubkey[:_LABEL_PREFIX_LENGTH]

    def avatar_url(self) -> str:
        """Avatar to show for the author, falling back to a generated image."""
        return self.picture or _AVATAR_FALLBACK.format(pubkey=self.pubkey)


def parse_profile(pubkey: str, content: str, created_at: int = 0) -> ProfileMetadata | None:
    """Parse kind 0 *content* for *pubkey*.

    Returns:
        The parsed profile, or ``None`` if *content* is not valid JSON or
        does not decode to an object.
    """
    try:
        data = json.loads(content)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    return ProfileMetadata(
        pubkey=pubkey,
        name=_optional_str(data, "name"),
        display_name=_optional_str(data, "display_name"),
        picture=_optional_str(data, "picture"),
        nip05=_optional_str(data, "nip05"),
        raw=MappingProxyType(data),
        created_at=created_at,
    )


def profile_from_event(event: Event) -> ProfileMetadata | None:
    """Parse the content of a kind 0 *event*; ``None`` if unparsable."""
    return parse_profile(event.pubkey, event.content, event.created_at)


def author_label(pubkey: str, profile: ProfileMetadata | None) -> str:
    """Display label for *pubkey* whether or not a profile is known."""
    if profile is None:
        return pubkey[:_LABEL_PREFIX_LENGTH]
    return profile.author_label()


@dataclass(frozen=True, slots=True)
class CachedProfile:
    """Metadata cache entry; ``profile`` is ``None`` when the author has no usable profile."""

    profile: ProfileMetadata | None
    refreshed_at: float


@dataclass(frozen=True, slots=True)
class CachedNote:
    """Feed cache entry."""

    event: Event
    cached_at: float
