"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used exclusively by
``__post_init__`` methods in sibling model modules to enforce runtime
type constraints and hex-encoding rules.
"""

from __future__ import annotations

from typing import Any


_HEX_DIGITS = frozenset("0123456789abcdef")


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str, *, minimum: int = 0, maximum: int | None = None) -> None:
    """Raise if *value* is not an ``int`` (``bool`` excluded) within bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be <= {maximum}")


def validate_hex(value: Any, name: str, length: int) -> None:
    """Raise if *value* is not a lowercase hex string of exactly *length* chars."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if len(value) != length:
        raise ValueError(f"{name} must be {length} hex chars, got {len(value)}")
    if not set(value) <= _HEX_DIGITS:
        raise ValueError(f"{name} must be lowercase hex")


def validate_tags(value: Any, name: str) -> None:
    """Raise if *value* is not a tuple of non-empty tuples of ``str``."""
    validate_instance(value, tuple, name)
    for tag in value:
        if not isinstance(tag, tuple) or not tag:
            raise ValueError(f"{name} entries must be non-empty tuples")
        for item in tag:
            if not isinstance(item, str):
                raise TypeError(f"{name} values must be str, got {type(item).__name__}")


def freeze_tags(tags: Any) -> tuple[tuple[str, ...], ...]:
    """Convert a JSON-style list of lists into nested tuples.

    Non-sequence entries are passed through untouched so that
    [validate_tags][nostalgia.models._validation.validate_tags] reports them.
    """
    if not isinstance(tags, list | tuple):
        return tags
    return tuple(tuple(tag) if isinstance(tag, list | tuple) else tag for tag in tags)
