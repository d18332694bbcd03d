"""
Per-author profile cache backed by kind 0 queries.

[MetadataCache.get()][nostalgia.services.metadata.MetadataCache.get] answers
from memory for authors refreshed within the staleness window (10 minutes by
default) and issues one kind 0 query, restricted to the missing or stale
authors, for everyone else. Concurrent callers asking for the same stale
author share one in-flight query.

Authors that were queried but have no usable profile are remembered as such
for the same window, so a feed full of profile-less authors does not cause a
query per refresh.

See Also:
    [FeedAssembler][nostalgia.services.feed.FeedAssembler]: Main caller,
        once per feed refresh.
    [ProfileMetadata][nostalgia.models.profile.ProfileMetadata]: Cached value.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from nostalgia.core.logger import Logger
from nostalgia.exceptions import QueryFailure
from nostalgia.models.constants import EventKind
from nostalgia.models.filter import Filter
from nostalgia.models.profile import (
    CachedProfile,
    ProfileMetadata,
    author_label,
    profile_from_event,
)


if TYPE_CHECKING:
    from nostalgia.core.pool import RelayPool
    from nostalgia.models.event import Event


class MetadataCacheConfig(BaseModel):
    """Configuration for [MetadataCache][nostalgia.services.metadata.MetadataCache]."""

    staleness_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="Seconds before a cached profile is refreshed",
    )
    query_timeout: float | None = Field(
        default=None,
        gt=0.0,
        description="Per-endpoint timeout for kind 0 queries (pool default if unset)",
    )


def _newer(candidate: Event, current: Event | None) -> bool:
    # Replaceable event rule: newest created_at, lowest id on ties
    if current is None:
        return True
    if candidate.created_at != current.created_at:
        return candidate.created_at > current.created_at
    return candidate.id < current.id


class MetadataCache:
    """Time-bounded cache of author profiles.

    Args:
        pool: Relay pool used for kind 0 queries.
        config: Staleness window and query timeout.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        pool: RelayPool,
        config: MetadataCacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._pool = pool
        self._config = config or MetadataCacheConfig()
        self._clock = clock
        self._entries: dict[str, CachedProfile] = {}
        self._inflight: dict[str, asyncio.Task[None]] = {}
        self._logger = Logger("metadata")

    @property
    def config(self) -> MetadataCacheConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pubkey: object) -> bool:
        return pubkey in self._entries

    def is_fresh(self, pubkey: str, now: float | None = None) -> bool:
        """Whether *pubkey* was refreshed within the staleness window."""
        entry = self._entries.get(pubkey)
        if entry is None:
            return False
        now = self._clock() if now is None else now
        return now - entry.refreshed_at < self._config.staleness_seconds

    def peek(self, pubkey: str) -> ProfileMetadata | None:
        """Return the cached profile without any I/O, stale or not."""
        entry = self._entries.get(pubkey)
        return entry.profile if entry is not None else None

    def label(self, pubkey: str) -> str:
        """Display label for *pubkey* from whatever is cached."""
        return author_label(pubkey, self.peek(pubkey))

    def invalidate(self, pubkey: str | None = None) -> None:
        """Forget one author, or every author when *pubkey* is ``None``."""
        if pubkey is None:
            self._entries.clear()
        else:
            self._entries.pop(pubkey, None)

    async def get(self, pubkeys: Iterable[str]) -> dict[str, ProfileMetadata]:
        """Return profiles for *pubkeys*, refreshing absent or stale authors.

        Only requested authors are queried. Authors without a usable profile
        are absent from the result.

        A failed refresh (every relay failed) is logged; previously cached
        entries are returned unchanged. A successful refresh evicts every
        other entry that has outlived the staleness window.
        """
        requested = list(dict.fromkeys(pubkeys))
        if not requested:
            return {}

        now = self._clock()
        waiting: dict[int, asyncio.Task[None]] = {}
        to_fetch: list[str] = []
        for pubkey in requested:
            if self.is_fresh(pubkey, now):
                continue
            task = self._inflight.get(pubkey)
            if task is not None:
                waiting[id(task)] = task
            else:
                to_fetch.append(pubkey)

        if to_fetch:
            task = asyncio.create_task(self._refresh(to_fetch))
            for pubkey in to_fetch:
                self._inflight[pubkey] = task
            task.add_done_callback(lambda t, keys=tuple(to_fetch): self._release(t, keys))
            waiting[id(task)] = task

        if waiting:
            # Shielded so that one cancelled caller does not cancel a shared query
            await asyncio.gather(*(asyncio.shield(task) for task in waiting.values()))

        result: dict[str, ProfileMetadata] = {}
        for pubkey in requested:
            profile = self.peek(pubkey)
            if profile is not None:
                result[pubkey] = profile
        return result

    def _release(self, task: asyncio.Task[None], pubkeys: tuple[str, ...]) -> None:
        for pubkey in pubkeys:
            if self._inflight.get(pubkey) is task:
                del self._inflight[pubkey]

    async def _refresh(self, pubkeys: list[str]) -> None:
        query = Filter.of(kinds=[EventKind.SET_METADATA], authors=pubkeys)
        try:
            events = await self._pool.query(query, timeout=self._config.query_timeout)
        except QueryFailure as e:
            self._logger.warning("metadata_refresh_failed", authors=len(pubkeys), error=str(e))
            return

        wanted = set(pubkeys)
        newest: dict[str, Event] = {}
        for event in events:
            if event.pubkey in wanted and _newer(event, newest.get(event.pubkey)):
                newest[event.pubkey] = event

        refreshed_at = self._clock()
        found = 0
        for pubkey in pubkeys:
            event = newest.get(pubkey)
            profile = profile_from_event(event) if event is not None else None
            if profile is not None:
                found += 1
            self._entries[pubkey] = CachedProfile(profile=profile, refreshed_at=refreshed_at)
        evicted = self._evict_stale(refreshed_at)

        self._logger.debug(
            "metadata_refreshed", authors=len(pubkeys), profiles=found, evicted=evicted
        )

    def _evict_stale(self, now: float) -> int:
        # Entries with a refresh in flight are kept as its failure fallback
        stale = [
            pubkey
            for pubkey, entry in self._entries.items()
            if now - entry.refreshed_at >= self._config.staleness_seconds
            and pubkey not in self._inflight
        ]
        for pubkey in stale:
            del self._entries[pubkey]
        return len(stale)
