"""Source value resolution for parameter mappings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from sleevemark.domain.model import (
    COMBINED_SOURCE_TYPE,
    DEFAULT_AGGREGATION_SEPARATOR,
    TransferKind,
    normalize_key,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sleevemark.domain.model import ParameterMapping, SleeveSnapshotView

# Names in one group may stand in for each other when the requested name is absent.
ATTRIBUTE_ALIASES: Final[tuple[tuple[str, ...], ...]] = (
    ("Size", "MEP Size"),
    ("System Type", "Service Type"),
    ("Level", "Reference Level", "Schedule Level", "Schedule of Level"),
)


def candidate_names(name: str) -> tuple[str, ...]:
    """``name`` followed by its aliases, if it belongs to an alias group."""

    wanted = normalize_key(name)
    for group in ATTRIBUTE_ALIASES:
        if any(normalize_key(alias) == wanted for alias in group):
            return (name, *(alias for alias in group if normalize_key(alias) != wanted))
    return (name,)


def lookup_attribute(attributes: Mapping[str, str], name: str) -> str | None:
    for candidate in candidate_names(name):
        value = attributes.get(candidate)
        if value is not None and value.strip():
            return value.strip()
    return None


def apply_separator(
    value: str,
    separator: str | None,
    *,
    joined_with: str = DEFAULT_AGGREGATION_SEPARATOR,
) -> str:
    """Re-join an aggregated multi-value (joined with ``joined_with``) using ``separator``."""

    if separator is None or not joined_with.strip():
        return value
    parts = [part.strip() for part in value.split(joined_with.strip()) if part.strip()]
    return separator.join(parts)


def resolve_source_value(
    view: SleeveSnapshotView,
    mapping: ParameterMapping,
    *,
    aggregation_separator: str = DEFAULT_AGGREGATION_SEPARATOR,
) -> str | None:
    """Pick the value ``mapping`` asks for from the right namespace of ``view``.

    The mapping's separator only re-joins values of a combined view; a value read
    from a single snapshot is returned as captured, commas included.
    """

    source = mapping.source_parameter
    if mapping.transfer_kind is TransferKind.HOST_TO_OPENING:
        value = lookup_attribute(view.host_attributes, source)
    elif mapping.transfer_kind is TransferKind.LEVEL_TO_OPENING:
        value = lookup_attribute(view.conduit_attributes, source) or lookup_attribute(
            view.host_attributes, source
        )
    else:
        value = lookup_attribute(view.conduit_attributes, source)
    if value is None:
        return None
    if view.source_type != COMBINED_SOURCE_TYPE:
        return value
    return apply_separator(value, mapping.separator, joined_with=aggregation_separator)
