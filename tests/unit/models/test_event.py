"""
Unit tests for models.event module.

Tests:
- Event construction and structural validation
- Event.from_dict() / to_dict() / to_json()
- EventTemplate.consume() single-use semantics
- EventTemplate.to_unsigned()
"""

import json
from dataclasses import FrozenInstanceError

import pytest

from nostalgia.models import Event, EventTemplate


ID = "a" * 64
PUBKEY = "b" * 64
SIG = "c" * 128


def _raw(**overrides):
    data = {
        "id": ID,
        "pubkey": PUBKEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [["e", "d" * 64], ["t", "nostr"]],
        "content": "hello",
        "sig": SIG,
    }
    data.update(overrides)
    return data


class TestEventConstruction:
    """Structural validation in Event.__post_init__."""

    def test_from_dict_freezes_tags(self):
        event = Event.from_dict(_raw())
        assert event.tags == (("e", "d" * 64), ("t", "nostr"))
        assert isinstance(event.tags[0], tuple)

    def test_is_frozen(self):
        event = Event.from_dict(_raw())
        with pytest.raises(FrozenInstanceError):
            event.content = "changed"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("id", "a" * 63),
            ("pubkey", "B" * 64),
            ("sig", "c" * 127),
            ("kind", 70000),
            ("kind", -1),
            ("created_at", -5),
        ],
    )
    def test_rejects_out_of_range_values(self, field, value):
        with pytest.raises(ValueError):
            Event.from_dict(_raw(**{field: value}))

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("id", 123),
            ("kind", "1"),
            ("kind", True),
            ("content", None),
        ],
    )
    def test_rejects_wrong_types(self, field, value):
        with pytest.raises(TypeError):
            Event.from_dict(_raw(**{field: value}))

    def test_rejects_empty_tag(self):
        with pytest.raises(ValueError):
            Event.from_dict(_raw(tags=[[]]))

    def test_rejects_non_string_tag_value(self):
        with pytest.raises(TypeError):
            Event.from_dict(_raw(tags=[["p", 5]]))

    def test_missing_field_raises_key_error(self):
        data = _raw()
        del data["sig"]
        with pytest.raises(KeyError):
            Event.from_dict(data)


class TestEventSerialization:
    """to_dict() and to_json()."""

    def test_to_dict_round_trips_wire_object(self):
        data = _raw()
        assert Event.from_dict(data).to_dict() == data

    def test_to_json_is_compact(self):
        event = Event.from_dict(_raw(content="héllo"))
        text = event.to_json()
        assert " " not in text.replace("héllo", "")
        assert "héllo" in text
        assert json.loads(text)["content"] == "héllo"


class TestEventTemplate:
    """EventTemplate lifecycle."""

    def test_defaults(self):
        template = EventTemplate(kind=1)
        assert template.content == ""
        assert template.tags == []
        assert template.created_at > 0
        assert template.consumed is False

    def test_consume_once(self):
        template = EventTemplate(kind=1, content="x")
        template.consume()
        assert template.consumed is True
        with pytest.raises(ValueError, match="already signed"):
            template.consume()

    def test_to_unsigned(self):
        template = EventTemplate(kind=1, content="x", tags=[["t", "a"]], created_at=42)
        assert template.to_unsigned(PUBKEY) == {
            "pubkey": PUBKEY,
            "created_at": 42,
            "kind": 1,
            "tags": [["t", "a"]],
            "content": "x",
        }
