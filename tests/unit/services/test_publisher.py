"""
Unit tests for services.publisher module.

Tests:
- Publisher.publish_note(): signing, attachments, feed insertion
- Logged-out publishing fails without network I/O
- Publisher.publish_composed() clears the draft only on success
- Publisher.publish_relay_list()
- Composer attachment management
"""

from unittest.mock import AsyncMock

import pytest

from nostalgia.core.session import Session
from nostalgia.exceptions import AggregateFailure, SigningUnavailable, UploadError
from nostalgia.nips.codec import verify
from nostalgia.services.feed import FeedAssembler
from nostalgia.services.publisher import Composer, Publisher
from tests.fixtures.relays import RELAY_A, RELAY_B, FakeRelay, make_pool


@pytest.fixture
def relays() -> dict[str, FakeRelay]:
    return {RELAY_A: FakeRelay(), RELAY_B: FakeRelay()}


@pytest.fixture
def session(relays, signer) -> Session:
    return Session(make_pool(relays), signer)


def _uploader(*urls: str, error: Exception | None = None) -> AsyncMock:
    uploader = AsyncMock()
    uploader.upload.side_effect = error if error is not None else list(urls)
    return uploader


class TestPublishNote:
    """Publisher.publish_note()."""

    async def test_publishes_signed_note(self, session, relays, signer):
        event = await Publisher(session).publish_note("hello")

        assert verify(event)
        assert event.kind == 1
        assert event.content == "hello"
        assert event.pubkey == signer.public_key
        assert relays[RELAY_A].sent == [event] or relays[RELAY_B].sent == [event]
        await session.close()

    async def test_attachments_appended(self, session):
        event = await Publisher(session).publish_note("look", ["https://cdn.example/a.png"])
        assert event.content == "look\n\nhttps://cdn.example/a.png"
        await session.close()

    async def test_inserted_into_feed(self, session):
        feed = FeedAssembler(session)
        event = await Publisher(session, feed).publish_note("hello")
        assert feed.events == [event]
        await session.close()

    async def test_logged_out_sends_nothing(self, relays):
        session = Session(make_pool(relays))
        with pytest.raises(SigningUnavailable):
            await Publisher(session).publish_note("hello")
        assert all(r.sent == [] for r in relays.values())

    async def test_every_relay_rejects(self, signer):
        relays = {
            RELAY_A: FakeRelay(accept=False, reason="blocked"),
            RELAY_B: FakeRelay(accept=False, reason="blocked"),
        }
        session = Session(make_pool(relays), signer)
        feed = FeedAssembler(session)
        with pytest.raises(AggregateFailure) as exc_info:
            await Publisher(session, feed).publish_note("hello")
        assert len(exc_info.value.causes) == 2
        assert feed.events == []


class TestPublishComposed:
    """Publisher.publish_composed()."""

    async def test_clears_draft(self, session):
        composer = Composer(_uploader("https://cdn.example/a.png"))
        composer.content = "draft"
        await composer.attach(b"img", session, name="a.png")

        event = await Publisher(session).publish_composed(composer)

        assert event.content == "draft\n\nhttps://cdn.example/a.png"
        assert composer.is_empty
        assert composer.attachments == ()
        await session.close()

    async def test_keeps_draft_on_failure(self, relays):
        session = Session(make_pool(relays))
        composer = Composer(_uploader())
        composer.content = "draft"
        with pytest.raises(SigningUnavailable):
            await Publisher(session).publish_composed(composer)
        assert composer.content == "draft"


class TestPublishRelayList:
    """Publisher.publish_relay_list()."""

    async def test_lists_endpoints(self, session):
        event = await Publisher(session).publish_relay_list()
        assert event.kind == 10002
        assert event.tags == (("r", RELAY_A), ("r", RELAY_B))
        await session.close()


class TestComposer:
    """Composer."""

    async def test_attach_records_url(self, session, signer):
        uploader = _uploader("https://cdn.example/a.png", "https://cdn.example/b.png")
        composer = Composer(uploader)

        await composer.attach(b"a", session, name="a.png", content_type="image/png")
        await composer.attach(b"b", session)

        assert composer.attachments == ("https://cdn.example/a.png", "https://cdn.example/b.png")
        uploader.upload.assert_any_await(b"a", signer, name="a.png", content_type="image/png")

    async def test_failed_upload_not_recorded(self, session):
        composer = Composer(_uploader(error=UploadError("server down", 503)))
        with pytest.raises(UploadError):
            await composer.attach(b"a", session)
        assert composer.attachments == ()
        assert composer.is_empty

    async def test_remove_and_clear(self, session):
        composer = Composer(_uploader("https://cdn.example/a.png"))
        await composer.attach(b"a", session)
        composer.content = "text"

        assert composer.remove_attachment("https://cdn.example/a.png") is True
        assert composer.remove_attachment("https://cdn.example/a.png") is False
        assert not composer.is_empty

        composer.clear()
        assert composer.is_empty
