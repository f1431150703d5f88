"""Prefix resolution for individual, cluster and combined sleeves.

Rules are evaluated in a fixed priority order and the first match wins:

1. multi-link: zones from more than one source link always get ``MEP``.
2. chilled-water exception: a single-link combined sleeve serving chilled water keeps
   the user's override for that system type, if one is configured.
3. same system type: zones sharing one normalized type label use its override when
   that override differs from the category default.
4. combined default: any other combined sleeve gets ``MEP``.
5. fallback: the override for the sleeve's own type label, else the category default.

Every resolution reports the rule that produced it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from sleevemark.domain.model import (
    MIXED_PROVENANCE_PREFIX,
    PrefixRule,
    is_chilled_water,
    normalize_system_type,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sleevemark.domain.model import Category, ClashZone, MarkPrefixSettings, Sleeve

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PrefixResolution:
    prefix: str
    rule: PrefixRule


class ZoneLookup(Protocol):
    def ordered_constituent_zones(self, sleeve: Sleeve) -> Sequence[ClashZone]: ...


def _distinct_categories(zones: Iterable[ClashZone]) -> tuple[Category, ...]:
    return tuple(dict.fromkeys(zone.category for zone in zones))


def _find_override(
    settings: MarkPrefixSettings,
    categories: Iterable[Category],
    label: str,
) -> tuple[Category, str] | None:
    for category in categories:
        override = settings.override_for(category, label)
        if override:
            return category, override
    return None


def resolve_prefix_from_zones(
    zones: Sequence[ClashZone],
    *,
    is_combined: bool,
    default_prefix: str,
    settings: MarkPrefixSettings,
    primary_zone: ClashZone | None = None,
) -> PrefixResolution:
    """Apply the prefix rule chain to an already resolved constituent zone list."""

    if zones and settings.use_advanced_resolution:
        if len({zone.link_id for zone in zones}) > 1:
            return PrefixResolution(MIXED_PROVENANCE_PREFIX, PrefixRule.MULTI_LINK)

        if is_combined:
            chilled = next((zone for zone in zones if is_chilled_water(zone.type_label)), None)
            if chilled is not None:
                categories = (chilled.category, *_distinct_categories(zones))
                found = _find_override(settings, dict.fromkeys(categories), chilled.type_label)
                if found is not None:
                    return PrefixResolution(found[1], PrefixRule.CHILLED_WATER_EXCEPTION)
                log.info(
                    "No override configured for chilled water type %r; continuing",
                    chilled.type_label,
                )

        labels = {normalize_system_type(zone.type_label) for zone in zones}
        if len(labels) == 1 and "" not in labels:
            label = zones[0].type_label
            for category in _distinct_categories(zones):
                override = settings.override_for(category, label)
                if override and override != settings.default_prefix(category):
                    return PrefixResolution(override, PrefixRule.SAME_SYSTEM_TYPE)

        if is_combined:
            return PrefixResolution(MIXED_PROVENANCE_PREFIX, PrefixRule.COMBINED_DEFAULT)

    if primary_zone is not None:
        override = settings.override_for(primary_zone.category, primary_zone.type_label)
        if override:
            return PrefixResolution(override, PrefixRule.FALLBACK)
    return PrefixResolution(default_prefix, PrefixRule.FALLBACK)


class PrefixResolver:
    """Resolve sleeve prefixes against one consistent zone lookup."""

    def __init__(self, zones: ZoneLookup, settings: MarkPrefixSettings) -> None:
        self._zones = zones
        self._settings = settings

    def resolve(
        self,
        sleeve: Sleeve,
        *,
        category: Category | None,
        default_prefix: str | None = None,
    ) -> PrefixResolution:
        effective_default = default_prefix or self._settings.default_prefix(category)
        try:
            zones = tuple(self._zones.ordered_constituent_zones(sleeve))
        except Exception:  # noqa: BLE001
            log.warning(
                "Zone lookup failed for sleeve %s; using fallback prefix",
                sleeve.id,
                exc_info=True,
            )
            zones = ()

        primary_zone = zones[0] if zones and not (sleeve.is_cluster or sleeve.is_combined) else None
        resolution = resolve_prefix_from_zones(
            zones,
            is_combined=sleeve.is_combined,
            default_prefix=effective_default,
            settings=self._settings,
            primary_zone=primary_zone,
        )
        log.debug(
            "Sleeve %s (%s, %d zones): prefix %r via %s",
            sleeve.id,
            sleeve.kind,
            len(zones),
            resolution.prefix,
            resolution.rule,
        )
        return resolution
