"""
Authoring: note composition, signing and publishing.

[Composer][nostalgia.services.publisher.Composer] holds the draft being
written, including the URLs of media already uploaded for it.
[Publisher][nostalgia.services.publisher.Publisher] turns drafts into signed
events and publishes them through the session's pool:

* Text notes (kind 1) with attachment URLs appended to the content. A
  published note appears at the head of the feed immediately.
* The relay list (kind 10002, NIP-65) advertising the configured endpoints.

Signing always happens before any network I/O, so a logged-out session
fails with [SigningUnavailable][nostalgia.exceptions.SigningUnavailable]
without touching a relay.

See Also:
    [RelayPool.publish()][nostalgia.core.pool.RelayPool.publish]:
        At-least-one-acceptance publish semantics.
    [MediaUploader][nostalgia.services.uploader.MediaUploader]: Resolves
        attachment URLs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from nostalgia.core.logger import Logger
from nostalgia.nips.event_builders import build_relay_list, build_text_note


if TYPE_CHECKING:
    from nostalgia.core.pool import PublishAck
    from nostalgia.core.session import Session
    from nostalgia.models.event import Event, EventTemplate

    from .feed import FeedAssembler
    from .uploader import MediaUploader


class Composer:
    """Draft note content plus uploaded attachment URLs.

    Args:
        uploader: Uploader used by [attach()][nostalgia.services.publisher.Composer.attach].
    """

    def __init__(self, uploader: MediaUploader) -> None:
        self._uploader = uploader
        self.content = ""
        self._attachments: list[str] = []
        self._logger = Logger("composer")

    @property
    def attachments(self) -> tuple[str, ...]:
        return tuple(self._attachments)

    @property
    def is_empty(self) -> bool:
        return not self.content.strip() and not self._attachments

    async def attach(
        self,
        payload: bytes,
        session: Session,
        *,
        name: str = "",
        content_type: str | None = None,
    ) -> str:
        """Upload *payload* with the session's signer and record its URL.

        The URL is appended only if the upload succeeds.

        Raises:
            UploadError: If the upload failed for any reason.
        """
        url = await self._uploader.upload(
            payload, session.signer, name=name, content_type=content_type
        )
        self._attachments.append(url)
        self._logger.debug("attachment_added", url=url, count=len(self._attachments))
        return url

    def remove_attachment(self, url: str) -> bool:
        """Remove *url* from the draft; ``False`` if it was not attached."""
        try:
            self._attachments.remove(url)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        self.content = ""
        self._attachments.clear()


class Publisher:
    """Signs and publishes events for the session's identity.

    Args:
        session: Provides the signer and the relay pool.
        feed: Feed to update after a note is published, if any.
    """

    def __init__(self, session: Session, feed: FeedAssembler | None = None) -> None:
        self._session = session
        self._feed = feed
        self._logger = Logger("publisher")

    async def _sign_and_publish(self, template: EventTemplate) -> tuple[Event, PublishAck]:
        event = await self._session.signer.sign(template)
        ack = await self._session.pool.publish(event)
        return event, ack

    async def publish_note(self, content: str, attachments: Sequence[str] = ()) -> Event:
        """Publish a text note and put it at the head of the feed.

        Returns:
            The signed, published event.

        Raises:
            SigningUnavailable: No signer; nothing was sent.
            UserRejected: The signing agent declined.
            AggregateFailure: No relay accepted the note.
        """
        event, ack = await self._sign_and_publish(build_text_note(content, attachments))
        if self._feed is not None:
            self._feed.insert_local(event)
        self._logger.info(
            "note_published",
            event_id=event.id,
            relay=ack.relay,
            attachments=len(attachments),
        )
        return event

    async def publish_composed(self, composer: Composer) -> Event:
        """Publish the composer's draft and clear it on success.

        On failure the draft is kept so the user can retry.
        """
        event = await self.publish_note(composer.content, composer.attachments)
        composer.clear()
        return event

    async def publish_relay_list(self) -> Event:
        """Publish a NIP-65 relay list naming every configured endpoint.

        Raises:
            SigningUnavailable: No signer; nothing was sent.
            AggregateFailure: No relay accepted the list.
        """
        endpoints = self._session.pool.endpoints
        event, ack = await self._sign_and_publish(build_relay_list(endpoints))
        self._logger.info(
            "relay_list_published",
            event_id=event.id,
            relay=ack.relay,
            relays=len(endpoints),
        )
        return event
