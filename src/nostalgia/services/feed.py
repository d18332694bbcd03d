"""
Global feed service: periodic kind 1 snapshot with author metadata.

Each cycle queries every relay for the most recent text notes, keeps the
newest ``limit`` of them ordered by ``created_at`` (descending, ties broken
by ascending id), and asks the
[MetadataCache][nostalgia.services.metadata.MetadataCache] for the profiles
of the authors on screen.

Notes published locally are put at the head of the feed immediately by
[insert_local()][nostalgia.services.feed.FeedAssembler.insert_local] and
stay there until the next refresh returns them from a relay.

See Also:
    [BaseService][nostalgia.core.base_service.BaseService]: Provides
        [run_forever()][nostalgia.core.base_service.BaseService.run_forever].
    [Publisher][nostalgia.services.publisher.Publisher]: Calls
        [insert_local()][nostalgia.services.feed.FeedAssembler.insert_local]
        after a successful publish.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import ClassVar

from pydantic import Field

from nostalgia.core.base_service import BaseService, BaseServiceConfig
from nostalgia.core.session import Session
from nostalgia.models.constants import EventKind
from nostalgia.models.event import Event
from nostalgia.models.filter import Filter
from nostalgia.models.profile import CachedNote, ProfileMetadata

from .metadata import MetadataCache, MetadataCacheConfig


class FeedConfig(BaseServiceConfig):
    """Configuration for [FeedAssembler][nostalgia.services.feed.FeedAssembler]."""

    limit: int = Field(default=50, ge=1, le=5000, description="Notes kept in the feed")
    kinds: list[int] = Field(
        default_factory=lambda: [int(EventKind.TEXT_NOTE)],
        min_length=1,
        description="Event kinds shown in the feed",
    )
    metadata: MetadataCacheConfig = Field(default_factory=MetadataCacheConfig)


def feed_order(event: Event) -> tuple[int, str]:
    """Sort key: newest first, then lowest id."""
    return (-event.created_at, event.id)


class FeedAssembler(BaseService[FeedConfig]):
    """Periodically rebuilt snapshot of the global feed.

    Args:
        session: Session whose pool is queried.
        config: Feed configuration.
        metadata: Shared metadata cache; built from ``config.metadata`` when
            omitted.
        clock: Wall-clock source for ``CachedNote.cached_at``.
    """

    SERVICE_NAME: ClassVar[str] = "feed"
    CONFIG_CLASS: ClassVar[type[FeedConfig]] = FeedConfig
    CONFIG_SECTION: ClassVar[str | None] = "feed"

    def __init__(
        self,
        session: Session,
        config: FeedConfig | None = None,
        *,
        metadata: MetadataCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(session=session, config=config)
        self._metadata = metadata or MetadataCache(session.pool, self._config.metadata)
        self._clock = clock
        self._notes: list[CachedNote] = []

    @property
    def metadata(self) -> MetadataCache:
        return self._metadata

    @property
    def notes(self) -> list[CachedNote]:
        """Current feed, head first. A copy; the feed is replaced on refresh."""
        return list(self._notes)

    @property
    def events(self) -> list[Event]:
        return [note.event for note in self._notes]

    def authors(self) -> list[str]:
        """Distinct authors in feed order."""
        return list(dict.fromkeys(note.event.pubkey for note in self._notes))

    def profile(self, pubkey: str) -> ProfileMetadata | None:
        return self._metadata.peek(pubkey)

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Execute one refresh cycle."""
        await self.refresh()

    async def refresh(self) -> list[CachedNote]:
        """Replace the feed with a fresh snapshot and update author metadata.

        Returns:
            The new feed, head first.

        Raises:
            QueryFailure: If every relay failed. The previous feed is kept.
        """
        start = time.monotonic()
        query = Filter.of(kinds=self._config.kinds, limit=self._config.limit)
        events = await self._session.pool.query(query)

        ordered = sorted(events, key=feed_order)[: self._config.limit]
        cached_at = self._clock()
        self._notes = [CachedNote(event=event, cached_at=cached_at) for event in ordered]

        authors = self.authors()
        profiles = await self._metadata.get(authors)

        self.set_gauge("notes", len(self._notes))
        self.set_gauge("authors", len(authors))
        self._logger.info(
            "feed_refreshed",
            notes=len(self._notes),
            authors=len(authors),
            profiles=len(profiles),
            duration_s=round(time.monotonic() - start, 3),
        )
        return self.notes

    def insert_local(self, event: Event) -> bool:
        """Put a just-published *event* at the head of the feed.

        Returns:
            ``False`` if the event was already in the feed.
        """
        if any(note.event.id == event.id for note in self._notes):
            return False
        self._notes.insert(0, CachedNote(event=event, cached_at=self._clock()))
        self._logger.debug("local_note_inserted", event_id=event.id)
        return True
