"""
Unit tests for core.pool module.

Tests:
- RelayPoolConfig relay normalization and deduplication
- Endpoint management (add, remove, connection reuse)
- RelayPool.query(): merge by id, partial failure, total failure, timeouts,
  dropping of invalid and non-matching events
- RelayPool.publish(): first acceptance wins, background writes, aggregate
  failure with one cause per endpoint, empty pool
- RelayPool.close()
"""

import asyncio
from dataclasses import replace

import pytest
from pydantic import ValidationError as PydanticValidationError

from nostalgia.core.pool import PublishAck, RelayPool, RelayPoolConfig
from nostalgia.exceptions import (
    AggregateFailure,
    EndpointError,
    EndpointTimeout,
    QueryFailure,
)
from nostalgia.models import DEFAULT_RELAYS, Filter
from tests.fixtures.relays import RELAY_A, RELAY_B, RELAY_C, FakeRelay, make_pool, sign_event


NOTES = Filter.of(kinds=[1], limit=50)


class TestRelayPoolConfig:
    """Configuration model."""

    def test_defaults_to_bootstrap_relays(self):
        assert RelayPoolConfig().relays == list(DEFAULT_RELAYS)

    def test_normalizes_and_dedups(self):
        config = RelayPoolConfig(relays=["WSS://Nos.lol/", "wss://nos.lol", "wss://nostr.mom"])
        assert config.relays == ["wss://nos.lol", "wss://nostr.mom"]

    def test_rejects_bad_url(self):
        with pytest.raises(PydanticValidationError):
            RelayPoolConfig(relays=["https://not-a-relay.example"])

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(PydanticValidationError):
            RelayPoolConfig(timeouts={"query": 0})


class TestEndpoints:
    """Endpoint management."""

    def test_initial_order(self):
        pool = make_pool({RELAY_A: FakeRelay(), RELAY_B: FakeRelay()})
        assert [e.url for e in pool.endpoints] == [RELAY_A, RELAY_B]

    def test_add_is_idempotent(self):
        pool = make_pool({RELAY_A: FakeRelay()})
        pool.add_endpoint("WSS://a.relay.example/")
        assert len(pool.endpoints) == 1

    def test_add_invalid(self):
        pool = make_pool({})
        with pytest.raises(ValueError):
            pool.add_endpoint("http://relay.example")

    async def test_remove_closes_connection(self):
        relay = FakeRelay()
        pool = make_pool({RELAY_A: relay, RELAY_B: FakeRelay()})
        await pool.query(NOTES)
        assert await pool.remove_endpoint(RELAY_A) is True
        assert relay.closed
        assert [e.url for e in pool.endpoints] == [RELAY_B]
        assert await pool.remove_endpoint(RELAY_A) is False

    async def test_connection_reused(self):
        created = []
        relay = FakeRelay()

        def factory(endpoint):
            created.append(endpoint)
            return relay

        pool = RelayPool(RelayPoolConfig(relays=[RELAY_A]), connection_factory=factory)
        await pool.query(NOTES)
        await pool.query(NOTES)
        assert len(created) == 1
        assert len(relay.requests) == 2


class TestQuery:
    """RelayPool.query()."""

    async def test_merges_and_dedups_by_id(self, signer):
        e1 = await sign_event(signer, content="one", created_at=100)
        e2 = await sign_event(signer, content="two", created_at=200)
        e3 = await sign_event(signer, content="three", created_at=300)
        pool = make_pool(
            {
                RELAY_A: FakeRelay([e1, e2]),
                RELAY_B: FakeRelay([e2, e3]),
                RELAY_C: FakeRelay([e1]),
            }
        )
        assert await pool.query(NOTES) == {e1, e2, e3}

    async def test_sends_same_filter_everywhere(self):
        relays = {RELAY_A: FakeRelay(), RELAY_B: FakeRelay()}
        await make_pool(relays).query(NOTES)
        assert all(r.requests == [NOTES] for r in relays.values())

    async def test_partial_failure(self, signer):
        e1 = await sign_event(signer, content="one")
        pool = make_pool(
            {
                RELAY_A: FakeRelay([e1]),
                RELAY_B: FakeRelay(error=EndpointError(RELAY_B, "refused")),
                RELAY_C: FakeRelay(delay=5.0),
            },
            query_timeout=0.1,
        )
        assert await pool.query(NOTES) == {e1}

    async def test_every_endpoint_failed(self):
        pool = make_pool(
            {
                RELAY_A: FakeRelay(error=EndpointError(RELAY_A, "refused")),
                RELAY_B: FakeRelay(delay=5.0),
            },
            query_timeout=0.1,
        )
        with pytest.raises(QueryFailure) as exc_info:
            await pool.query(NOTES)
        causes = exc_info.value.causes
        assert len(causes) == 2
        assert causes[0].url == RELAY_A
        assert isinstance(causes[1], EndpointTimeout)

    async def test_no_results_is_not_failure(self):
        pool = make_pool({RELAY_A: FakeRelay(), RELAY_B: FakeRelay()})
        assert await pool.query(NOTES) == set()

    async def test_empty_pool(self):
        assert await make_pool({}).query(NOTES) == set()

    async def test_unexpected_error_is_attributed(self):
        pool = make_pool(
            {
                RELAY_A: FakeRelay(error=RuntimeError("bug")),
                RELAY_B: FakeRelay(),
            }
        )
        assert await pool.query(NOTES) == set()

    async def test_drops_invalid_events(self, signer):
        good = await sign_event(signer, content="good")
        tampered = replace(await sign_event(signer, content="x"), content="y").to_dict()
        pool = make_pool({RELAY_A: FakeRelay([good, tampered, {"id": "broken"}, "garbage"])})
        assert await pool.query(NOTES) == {good}

    async def test_unencodable_event_does_not_fail_endpoint(self, signer):
        good = await sign_event(signer, content="good")
        surrogate = {**good.to_dict(), "content": "\ud800"}
        pool = make_pool({RELAY_A: FakeRelay([good, surrogate])})
        assert await pool.query(NOTES) == {good}

    async def test_drops_events_outside_filter(self, signer, other_signer):
        note = await sign_event(signer, kind=1)
        metadata = await sign_event(signer, kind=0, content="{}")
        foreign = await sign_event(other_signer, kind=1)
        pool = make_pool({RELAY_A: FakeRelay([note, metadata, foreign])})
        query = Filter.of(kinds=[1], authors=[signer.public_key])
        assert await pool.query(query) == {note}

    async def test_endpoint_subset(self, signer):
        e1 = await sign_event(signer, content="one")
        relays = {RELAY_A: FakeRelay([e1]), RELAY_B: FakeRelay()}
        pool = make_pool(relays)
        assert await pool.query(NOTES, endpoints=[RELAY_A]) == {e1}
        assert relays[RELAY_B].requests == []

    async def test_explicit_timeout(self):
        pool = make_pool({RELAY_A: FakeRelay(delay=5.0)}, query_timeout=30.0)
        with pytest.raises(QueryFailure):
            await pool.query(NOTES, timeout=0.05)


class TestPublish:
    """RelayPool.publish()."""

    async def test_first_acceptance_returns(self, signer):
        event = await sign_event(signer, content="hello")
        slow = FakeRelay(delay=0.3)
        pool = make_pool({RELAY_A: slow, RELAY_B: FakeRelay(reason="saved")})

        ack = await pool.publish(event)

        assert ack == PublishAck(event_id=event.id, relay=RELAY_B, message="saved")
        assert pool.pending_publishes == 1
        assert slow.finished == []
        await asyncio.sleep(0.5)
        assert slow.finished == ["send_event"]
        assert pool.pending_publishes == 0
        await pool.close()

    async def test_one_of_many_accepts(self, signer):
        event = await sign_event(signer)
        pool = make_pool(
            {
                RELAY_A: FakeRelay(accept=False, reason="blocked: spam"),
                RELAY_B: FakeRelay(error=EndpointError(RELAY_B, "refused")),
                RELAY_C: FakeRelay(delay=0.05),
            }
        )
        ack = await pool.publish(event)
        assert ack.relay == RELAY_C
        await pool.close()

    async def test_every_endpoint_failed(self, signer):
        event = await sign_event(signer)
        pool = make_pool(
            {
                RELAY_A: FakeRelay(delay=5.0),
                RELAY_B: FakeRelay(accept=False, reason="blocked: spam"),
                RELAY_C: FakeRelay(error=EndpointError(RELAY_C, "refused")),
            },
            publish_timeout=0.1,
        )
        with pytest.raises(AggregateFailure) as exc_info:
            await pool.publish(event)

        causes = exc_info.value.causes
        assert [c.url for c in causes] == [RELAY_A, RELAY_B, RELAY_C]
        assert isinstance(causes[0], EndpointTimeout)
        assert "blocked: spam" in causes[1].message
        assert not isinstance(exc_info.value, QueryFailure)

    async def test_empty_pool(self, signer):
        event = await sign_event(signer)
        ack = await make_pool({}).publish(event)
        assert ack.event_id == event.id
        assert ack.relay is None

    async def test_close_cancels_background_writes(self, signer):
        event = await sign_event(signer)
        slow = FakeRelay(delay=5.0)
        pool = make_pool({RELAY_A: FakeRelay(), RELAY_B: slow}, publish_timeout=10.0)
        await pool.publish(event)
        assert pool.pending_publishes == 1
        await pool.close()
        assert pool.pending_publishes == 0
        assert slow.finished == []
        assert slow.closed

    async def test_caller_cancellation_propagates(self, signer):
        event = await sign_event(signer)
        slow = FakeRelay(delay=5.0)
        pool = make_pool({RELAY_A: slow}, publish_timeout=10.0)
        task = asyncio.create_task(pool.publish(event))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert slow.finished == []


class TestLifecycle:
    """close() and context manager."""

    async def test_context_manager_closes(self):
        relays = {RELAY_A: FakeRelay(), RELAY_B: FakeRelay()}
        async with make_pool(relays) as pool:
            await pool.query(NOTES)
        assert all(r.closed for r in relays.values())

    def test_from_dict(self):
        pool = RelayPool.from_dict({"relays": [RELAY_A], "timeouts": {"query": 2}})
        assert pool.config.timeouts.query == 2
        assert [e.url for e in pool.endpoints] == [RELAY_A]
