"""Mark prefix settings and system-type override maps.

Settings are loaded once at the start of a marking run and never mutated during it.
System-type labels are user vocabulary; keys are normalized when an override map is
built so lookups only ever compare canonical forms.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from sleevemark.domain.model.enums import Category
from sleevemark.domain.model.primitives import normalize_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

MIXED_PROVENANCE_PREFIX: Final[str] = "MEP"
UNMAPPED_CATEGORY_PREFIX: Final[str] = "OPN"
DEFAULT_NUMBER_FORMAT: Final[str] = "000"

DEFAULT_CATEGORY_PREFIXES: Final[Mapping[Category, str]] = MappingProxyType(
    {
        Category.DUCTS: "DCT",
        Category.PIPES: "PLU",
        Category.CABLE_TRAYS: "ELE",
        Category.DUCT_ACCESSORIES: "DMP",
    }
)

CHILLED_WATER_KEYWORDS: Final[tuple[str, ...]] = ("chilled", "chw", "chrw", "chrss")
HOT_WATER_KEYWORDS: Final[tuple[str, ...]] = ("hot water", "hws", "hwr")

_SEPARATORS = re.compile(r"[-_/.]+")


def normalize_system_type(label: str) -> str:
    """Canonical form of a system/service type label."""

    return normalize_key(_SEPARATORS.sub(" ", label))


def is_chilled_water(label: str) -> bool:
    folded = label.casefold()
    return any(keyword in folded for keyword in CHILLED_WATER_KEYWORDS)


def system_type_theme(label: str) -> str | None:
    """Group labels that name the same service differently (``CHWS`` vs ``Chilled Water``)."""

    if is_chilled_water(label):
        return "chilled_water"
    folded = label.casefold()
    if any(keyword in folded for keyword in HOT_WATER_KEYWORDS):
        return "hot_water"
    return None


class DuplicateOverrideError(ValueError):
    """Raised when two override keys collapse to the same normalized label."""


class OverrideMap:
    """Ordered, case-insensitive map of system-type label to prefix."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        self._entries: dict[str, tuple[str, str]] = {}
        for label, prefix in pairs:
            normalized = normalize_system_type(label)
            cleaned_prefix = prefix.strip()
            if not normalized or not cleaned_prefix:
                raise ValueError(f"Override entries need a label and a prefix: {label!r}")
            if normalized in self._entries:
                existing = self._entries[normalized][0]
                raise DuplicateOverrideError(
                    f"Override {label!r} duplicates {existing!r} after normalization"
                )
            self._entries[normalized] = (label.strip(), cleaned_prefix)

    def lookup(self, label: str) -> str | None:
        """Return the prefix for ``label``: exact match first, then same theme."""

        if not label or not label.strip():
            return None
        entry = self._entries.get(normalize_system_type(label))
        if entry is not None:
            return entry[1]
        theme = system_type_theme(label)
        if theme is None:
            return None
        for original, prefix in self._entries.values():
            if system_type_theme(original) == theme:
                return prefix
        return None

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"OverrideMap({dict(self.items())!r})"


@dataclass(slots=True, frozen=True, kw_only=True)
class MarkPrefixSettings:
    project_prefix: str = ""
    category_prefixes: Mapping[Category, str] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_PREFIXES)
    )
    unmapped_prefix: str = UNMAPPED_CATEGORY_PREFIX
    remark_flags: Mapping[Category, bool] = field(default_factory=dict[Category, bool])
    remark_all: bool = False
    number_format: str = DEFAULT_NUMBER_FORMAT
    start_number: int | None = None
    continue_from_scope: str | None = None
    use_advanced_resolution: bool = True
    overrides: Mapping[Category, OverrideMap] = field(
        default_factory=dict[Category, OverrideMap]
    )

    def __post_init__(self) -> None:
        if not self.number_format or set(self.number_format) != {"0"}:
            raise ValueError(
                f"Number format must be a run of zeros, got {self.number_format!r}"
            )
        if self.start_number is not None and self.start_number < 1:
            raise ValueError("Start number must be positive")
        if self.continue_from_scope is not None and not self.continue_from_scope.strip():
            raise ValueError("Continue-from scope must name a level or scope key")

    @property
    def number_width(self) -> int:
        return len(self.number_format)

    def default_prefix(self, category: Category | None) -> str:
        if category is None:
            return self.unmapped_prefix
        return self.category_prefixes.get(category) or self.unmapped_prefix

    def should_remark(self, category: Category | None) -> bool:
        if self.remark_all:
            return True
        return category is not None and self.remark_flags.get(category, False)

    def override_for(self, category: Category | None, label: str) -> str | None:
        if category is None:
            return None
        overrides = self.overrides.get(category)
        if overrides is None:
            return None
        return overrides.lookup(label)

    def known_prefixes(self) -> frozenset[str]:
        """Every full prefix (project prefix included) these settings can write."""

        prefixes = {
            *self.category_prefixes.values(),
            self.unmapped_prefix,
            MIXED_PROVENANCE_PREFIX,
        }
        for overrides in self.overrides.values():
            prefixes.update(prefix for _, prefix in overrides.items())
        return frozenset(f"{self.project_prefix}{prefix}" for prefix in prefixes if prefix)

    def with_category_prefixes(self, prefixes: Mapping[Category, str]) -> MarkPrefixSettings:
        """Return a copy whose defaults are replaced by the non-blank ``prefixes``."""

        merged = dict(self.category_prefixes)
        merged.update({category: value for category, value in prefixes.items() if value})
        return replace(self, category_prefixes=merged)
