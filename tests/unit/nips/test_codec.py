"""
Unit tests for nips.codec module.

Tests:
- serialize() canonical encoding
- compute_id() / event_id()
- verify() and validate() on authentic and tampered events
- parse_event() rejection of malformed input
"""

import hashlib
from dataclasses import replace

import pytest

from nostalgia.exceptions import ValidationError
from nostalgia.nips.codec import compute_id, event_id, parse_event, serialize, validate, verify
from tests.fixtures.relays import sign_event


class TestSerialize:
    """Canonical serialization."""

    def test_compact_array(self):
        text = serialize("ab" * 32, 1, 1, [["t", "x"]], "hi")
        assert text == f'[0,"{"ab" * 32}",1,1,[["t","x"]],"hi"]'

    def test_unicode_unescaped(self):
        assert "ünï" in serialize("ab" * 32, 1, 1, [], "ünï")

    def test_escapes_control_characters(self):
        assert '"a\\nb\\"c"' in serialize("ab" * 32, 1, 1, [], 'a\nb"c')

    def test_compute_id_is_sha256(self):
        text = serialize("ab" * 32, 5, 0, [], "{}")
        assert compute_id("ab" * 32, 5, 0, [], "{}") == hashlib.sha256(text.encode()).hexdigest()


class TestVerify:
    """Identity and signature checks."""

    async def test_signed_event_verifies(self, signer):
        event = await sign_event(signer, content="gm")
        assert event_id(event) == event.id
        assert verify(event)
        assert validate(event) is event

    async def test_tampered_content(self, signer):
        event = await sign_event(signer, content="gm")
        tampered = replace(event, content="gn")
        assert not verify(tampered)
        with pytest.raises(ValidationError, match="id mismatch"):
            validate(tampered)

    async def test_tampered_tags(self, signer):
        event = await sign_event(signer, tags=[["t", "a"]])
        assert not verify(replace(event, tags=(("t", "b"),)))

    async def test_foreign_signature(self, signer, other_signer):
        event = await sign_event(signer, content="gm")
        foreign = await sign_event(other_signer, content="gm")
        forged = replace(event, sig=foreign.sig)
        assert not verify(forged)
        with pytest.raises(ValidationError, match="signature"):
            validate(forged)

    async def test_unencodable_content_does_not_verify(self, signer):
        event = replace(await sign_event(signer), content="\ud800")
        assert not verify(event)

    async def test_recomputed_id_without_resigning(self, signer):
        event = await sign_event(signer, content="gm")
        new_id = compute_id(event.pubkey, event.created_at, event.kind, event.tags, "gn")
        assert not verify(replace(event, content="gn", id=new_id))


class TestParseEvent:
    """parse_event()."""

    async def test_accepts_authentic_dict(self, signer):
        event = await sign_event(signer, content="gm")
        assert parse_event(event.to_dict()) == event

    @pytest.mark.parametrize("raw", [None, "event", 5, ["id"]])
    def test_rejects_non_objects(self, raw):
        with pytest.raises(ValidationError, match="object"):
            parse_event(raw)

    def test_rejects_missing_fields(self):
        with pytest.raises(ValidationError, match="malformed"):
            parse_event({"id": "a" * 64})

    async def test_rejects_wrong_types(self, signer):
        data = (await sign_event(signer)).to_dict()
        data["created_at"] = "yesterday"
        with pytest.raises(ValidationError, match="malformed"):
            parse_event(data)

    async def test_rejects_lone_surrogate_content(self, signer):
        data = (await sign_event(signer)).to_dict()
        data["content"] = "\ud800"
        with pytest.raises(ValidationError, match="id mismatch"):
            parse_event(data)

    async def test_rejects_lone_surrogate_tag(self, signer):
        data = (await sign_event(signer)).to_dict()
        data["tags"] = [["t", "\udfff"]]
        with pytest.raises(ValidationError):
            parse_event(data)
