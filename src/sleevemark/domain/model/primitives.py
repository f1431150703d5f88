"""Domain primitives: scalar aliases + small value objects."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

type ElementId = int
type InstanceId = int
type AttributeValue = str | int | float

_WHITESPACE = re.compile(r"\s+")


def normalize_key(value: str) -> str:
    """Case-fold and collapse whitespace; the canonical form for free-text keys."""

    return _WHITESPACE.sub(" ", value.strip()).casefold()


class CaseInsensitiveMap[V](Mapping[str, V]):
    """Read-only mapping whose string keys compare case-insensitively.

    The original spelling of each key is kept for iteration; on duplicate keys the
    first occurrence wins.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, V] | Iterable[tuple[str, V]] = ()) -> None:
        pairs = items.items() if isinstance(items, Mapping) else items
        self._items: dict[str, tuple[str, V]] = {}
        for key, value in pairs:
            self._items.setdefault(normalize_key(key), (key, value))

    def __getitem__(self, key: str) -> V:
        return self._items[normalize_key(key)][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"CaseInsensitiveMap({dict(self.items())!r})"


@dataclass(frozen=True, slots=True)
class Point:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __composite_values__(self) -> tuple[float, float, float]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.x, self.y, self.z)


@dataclass(frozen=True, slots=True)
class Extent:
    """Axis-aligned bounding box used to scope reset operations."""

    minimum: Point
    maximum: Point

    def contains(self, point: Point) -> bool:
        return (
            self.minimum.x <= point.x <= self.maximum.x
            and self.minimum.y <= point.y <= self.maximum.y
            and self.minimum.z <= point.z <= self.maximum.z
        )
