"""HTTP utilities for Nostalgia.

Provides bounded JSON reading for HTTP responses to prevent memory
exhaustion from oversized payloads returned by media servers.

Note:
    This module sits in the ``utils`` layer and depends only on stdlib and
    third-party libraries (``aiohttp``). It is importable from ``services``
    without violating the diamond DAG.

See Also:
    [MediaUploader][nostalgia.services.uploader.MediaUploader]: Reads upload
        descriptors with [read_bounded_json][nostalgia.utils.http.read_bounded_json].
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks from the response stream until EOF or the size limit
    is exceeded. Unlike a single ``response.content.read(n)`` call, this
    correctly handles chunked transfer-encoding where a single read may
    return fewer bytes than requested even when more data is available.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON response body with size enforcement.

    Args:
        response: An aiohttp response whose body has not yet been consumed.
        max_size: Maximum allowed response body size in bytes.

    Returns:
        The parsed JSON value.

    Raises:
        ValueError: If the response body exceeds *max_size* or is not valid
            JSON (``json.JSONDecodeError`` is a ``ValueError``).
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body)


async def read_bounded_text(response: aiohttp.ClientResponse, max_size: int) -> str:
    """Read a response body as text for error reporting, truncating silently."""
    try:
        body = await _read_bounded(response, max_size)
    except ValueError:
        return ""
    return body.decode("utf-8", errors="replace")
