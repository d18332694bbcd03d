"""
Unit tests for utils.http module.

Tests:
- read_bounded_json() with chunked bodies, oversize bodies and bad JSON
- read_bounded_text() truncation behavior
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from nostalgia.utils.http import read_bounded_json, read_bounded_text


def _response(*chunks: bytes) -> MagicMock:
    response = MagicMock()
    response.content.read = AsyncMock(side_effect=[*chunks, b""])
    return response


class TestReadBoundedJson:
    """read_bounded_json()."""

    async def test_single_chunk(self):
        assert await read_bounded_json(_response(b'{"url": "https://x"}'), 1024) == {"url": "https://x"}

    async def test_multiple_chunks(self):
        response = _response(b'{"url"', b': "https', b'://x"}')
        assert await read_bounded_json(response, 1024) == {"url": "https://x"}

    async def test_too_large(self):
        with pytest.raises(ValueError, match="too large"):
            await read_bounded_json(_response(b"x" * 11), 10)

    async def test_invalid_json(self):
        with pytest.raises(ValueError):
            await read_bounded_json(_response(b"<html>"), 1024)


class TestReadBoundedText:
    """read_bounded_text()."""

    async def test_decodes(self):
        assert await read_bounded_text(_response(b"file too big"), 1024) == "file too big"

    async def test_replaces_invalid_utf8(self):
        assert await read_bounded_text(_response(b"bad \xff"), 1024) == "bad �"

    async def test_oversize_returns_empty(self):
        assert await read_bounded_text(_response(b"x" * 100), 10) == ""
