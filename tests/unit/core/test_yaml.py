"""
Unit tests for core.yaml module.

Tests:
- load_yaml() success, empty file, missing file, invalid YAML, non-mapping
- The bundled configuration file parses into every config model
"""

from pathlib import Path

import pytest

from nostalgia.core.session import SessionConfig
from nostalgia.core.yaml import load_yaml
from nostalgia.exceptions import ConfigurationError
from nostalgia.services.feed import FeedConfig
from nostalgia.services.uploader import UploaderConfig


BUNDLED_CONFIG = Path(__file__).parents[3] / "config" / "nostalgia.yaml"


class TestLoadYaml:
    """load_yaml()."""

    def test_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("pool:\n  relays: [wss://nos.lol]\n")
        assert load_yaml(path) == {"pool": {"relays": ["wss://nos.lol"]}}

    def test_empty(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(str(path)) == {}

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "nope.yaml")

    def test_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml(path)

    def test_no_object_construction(self, tmp_path):
        path = tmp_path / "evil.yaml"
        path.write_text("x: !!python/object/apply:os.system ['true']\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)


class TestBundledConfig:
    """config/nostalgia.yaml."""

    def test_sections_validate(self):
        data = load_yaml(BUNDLED_CONFIG)
        session = SessionConfig(**data["session"])
        feed = FeedConfig(**data["feed"])
        uploader = UploaderConfig(**data["uploader"])
        assert session.pool.relays
        assert feed.kinds == [1]
        assert uploader.server.startswith("https://")
