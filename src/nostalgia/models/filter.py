"""Query predicate sent identically to every relay of a query."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .constants import EVENT_KIND_MAX
from ._validation import validate_hex, validate_int


if TYPE_CHECKING:
    from .event import Event


@dataclass(frozen=True, slots=True)
class Filter:
    """NIP-01 subscription filter restricted to kinds, authors and limit.

    Attributes:
        kinds: Event kinds to match.
        authors: Author pubkeys to match, or ``None`` for any author.
        limit: Maximum number of events each relay should return, or
            ``None`` to let the relay decide.

    Examples:
        ```python
        Filter.of(kinds=[1], limit=50).to_dict()
        # {'kinds': [1], 'limit': 50}
        ```
    """

    kinds: frozenset[int]
    authors: frozenset[str] | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        for kind in self.kinds:
            validate_int(kind, "kinds", maximum=EVENT_KIND_MAX)
        if self.authors is not None:
            for author in self.authors:
                validate_hex(author, "authors", 64)
        if self.limit is not None:
            validate_int(self.limit, "limit", minimum=1)

    @classmethod
    def of(
        cls,
        *,
        kinds: Iterable[int],
        authors: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> Filter:
        """Build a filter from any iterables."""
        return cls(
            kinds=frozenset(kinds),
            authors=frozenset(authors) if authors is not None else None,
            limit=limit,
        )

    def matches(self, event: Event) -> bool:
        """Whether *event* satisfies the kind and author constraints."""
        if event.kind not in self.kinds:
            return False
        return self.authors is None or event.pubkey in self.authors

    def to_dict(self) -> dict[str, Any]:
        """Return the wire JSON object with deterministically sorted lists."""
        data: dict[str, Any] = {"kinds": sorted(self.kinds)}
        if self.authors is not None:
            data["authors"] = sorted(self.authors)
        if self.limit is not None:
            data["limit"] = self.limit
        return data
