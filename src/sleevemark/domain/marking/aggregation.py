"""Constituent zone resolution for cluster/combined sleeves and snapshot aggregation.

A ``ZoneIndex`` is built from one read of the clash zone store and answers every
constituent query of a marking pass, so a sleeve's rule decisions cannot change
half-way through a batch.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from sleevemark.domain.model import (
    COMBINED_SOURCE_TYPE,
    AggregationPolicy,
    AttributeNamespace,
    CaseInsensitiveMap,
    ClashZone,
    CombinedConstituent,
    ConstituentKind,
    SleeveKind,
    SleeveSnapshotView,
    normalize_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from sleevemark.domain.model import Category, InstanceId, Sleeve
    from sleevemark.domain.ports import ClashZoneRepository

log = logging.getLogger(__name__)


def _zone_order(zone: ClashZone) -> tuple[int, str]:
    return (zone.id or 0, zone.guid)


@dataclass(slots=True, frozen=True)
class ZoneIndex:
    """Immutable lookup over clash zones and combined-group membership."""

    zones: tuple[ClashZone, ...] = ()
    constituents: tuple[CombinedConstituent, ...] = ()
    _by_guid: Mapping[str, ClashZone] = field(default_factory=dict[str, ClashZone])
    _by_sleeve: Mapping[InstanceId, tuple[ClashZone, ...]] = field(
        default_factory=dict[int, tuple[ClashZone, ...]]
    )
    _by_cluster: Mapping[InstanceId, tuple[ClashZone, ...]] = field(
        default_factory=dict[int, tuple[ClashZone, ...]]
    )
    _by_combined: Mapping[InstanceId, tuple[ClashZone, ...]] = field(
        default_factory=dict[int, tuple[ClashZone, ...]]
    )
    _constituents_by_combined: Mapping[InstanceId, tuple[CombinedConstituent, ...]] = field(
        default_factory=dict[int, tuple[CombinedConstituent, ...]]
    )

    @classmethod
    def load(
        cls,
        repository: ClashZoneRepository,
        *,
        categories: Iterable[Category] | None = None,
    ) -> ZoneIndex:
        zones = repository.list_all(categories=categories)
        constituents = repository.list_combined_constituents()
        log.debug("Loaded %d clash zones and %d combined members", len(zones), len(constituents))
        return cls.from_zones(zones, constituents)

    @classmethod
    def from_zones(
        cls,
        zones: Iterable[ClashZone],
        constituents: Iterable[CombinedConstituent] = (),
    ) -> ZoneIndex:
        ordered = tuple(sorted(zones, key=_zone_order))
        by_guid: dict[str, ClashZone] = {}
        by_sleeve: defaultdict[int, list[ClashZone]] = defaultdict(list)
        by_cluster: defaultdict[int, list[ClashZone]] = defaultdict(list)
        by_combined: defaultdict[int, list[ClashZone]] = defaultdict(list)
        for zone in ordered:
            by_guid.setdefault(normalize_key(zone.guid), zone)
            if zone.sleeve_instance_id:
                by_sleeve[zone.sleeve_instance_id].append(zone)
            if zone.cluster_instance_id and zone.is_cluster_resolved:
                by_cluster[zone.cluster_instance_id].append(zone)
            if zone.combined_instance_id:
                by_combined[zone.combined_instance_id].append(zone)

        members: defaultdict[int, list[CombinedConstituent]] = defaultdict(list)
        constituent_rows = tuple(constituents)
        for constituent in constituent_rows:
            members[constituent.combined_instance_id].append(constituent)

        return cls(
            zones=ordered,
            constituents=constituent_rows,
            _by_guid=MappingProxyType(by_guid),
            _by_sleeve=MappingProxyType({key: tuple(value) for key, value in by_sleeve.items()}),
            _by_cluster=MappingProxyType(
                {key: tuple(value) for key, value in by_cluster.items()}
            ),
            _by_combined=MappingProxyType(
                {key: tuple(value) for key, value in by_combined.items()}
            ),
            _constituents_by_combined=MappingProxyType(
                {key: tuple(value) for key, value in members.items()}
            ),
        )

    @property
    def categories(self) -> tuple[Category, ...]:
        """Distinct categories present, in first-seen order."""

        return tuple(dict.fromkeys(zone.category for zone in self.zones))

    def zone_by_guid(self, guid: str) -> ClashZone | None:
        return self._by_guid.get(normalize_key(guid))

    def resolve_constituent_zones(self, sleeve: Sleeve) -> frozenset[ClashZone]:
        return frozenset(self.ordered_constituent_zones(sleeve))

    def ordered_constituent_zones(self, sleeve: Sleeve) -> tuple[ClashZone, ...]:
        """Constituent zones of ``sleeve`` in stable zone order."""

        if sleeve.kind is SleeveKind.CLUSTER:
            return self._by_cluster.get(sleeve.id, ())
        if sleeve.kind is SleeveKind.COMBINED:
            return self._combined_zones(sleeve.id)
        return self._by_sleeve.get(sleeve.id, ())

    def categories_for(self, sleeve: Sleeve) -> tuple[Category, ...]:
        if sleeve.category is not None:
            return (sleeve.category,)
        zones = self.ordered_constituent_zones(sleeve)
        return tuple(dict.fromkeys(zone.category for zone in zones))

    def _combined_zones(self, combined_instance_id: InstanceId) -> tuple[ClashZone, ...]:
        collected: dict[int, ClashZone] = {}
        for constituent in self._constituents_by_combined.get(combined_instance_id, ()):
            if constituent.kind is ConstituentKind.CLUSTER:
                for zone in self._by_cluster.get(constituent.cluster_instance_id, ()):
                    collected.setdefault(id(zone), zone)
                continue
            if not constituent.clash_zone_guid:
                continue
            zone = self.zone_by_guid(constituent.clash_zone_guid)
            if zone is None:
                log.debug(
                    "Combined sleeve %s references unknown zone %s",
                    combined_instance_id,
                    constituent.clash_zone_guid,
                )
                continue
            collected.setdefault(id(zone), zone)
        for zone in self._by_combined.get(combined_instance_id, ()):
            collected.setdefault(id(zone), zone)
        return tuple(sorted(collected.values(), key=_zone_order))


# Snapshot aggregation --------------------------------------------------------


def normalize_size_value(value: str) -> str:
    """Collapse a duplicated size pair (``"475x200-475x200"``) to one size."""

    parts = [part.strip() for part in value.split("-")]
    if len(parts) == 2 and parts[0] and normalize_key(parts[0]) == normalize_key(parts[1]):  # noqa: PLR2004
        return parts[0]
    return value.strip()


def concatenate_values(values: Iterable[str], separator: str) -> str:
    """Split on commas, de-duplicate case-insensitively, sort and join."""

    unique: dict[str, str] = {}
    for value in values:
        for part in value.split(","):
            cleaned = normalize_size_value(part)
            if cleaned:
                unique.setdefault(normalize_key(cleaned), cleaned)
    return separator.join(sorted(unique.values(), key=str.casefold))


def _first_non_empty(values: Sequence[str]) -> str:
    return values[0] if values else ""


def _collect(
    views: Sequence[SleeveSnapshotView], namespace: AttributeNamespace
) -> dict[str, list[str]]:
    collected: dict[str, tuple[str, list[str]]] = {}
    for view in views:
        for name, value in view.attributes(namespace).items():
            entry = collected.setdefault(normalize_key(name), (name, []))
            if value and value.strip():
                entry[1].append(value.strip())
    return {name: values for name, values in collected.values()}


def _aggregate_namespace(
    values_by_name: Mapping[str, list[str]],
    *,
    policy_for: Callable[[str], AggregationPolicy],
    separator: str,
    host_values: Mapping[str, list[str]] | None = None,
) -> CaseInsensitiveMap[str]:
    host_lookup = CaseInsensitiveMap(host_values or {})
    aggregated: list[tuple[str, str]] = []
    for name, values in values_by_name.items():
        policy = policy_for(name)
        if policy is AggregationPolicy.FIRST_NON_EMPTY:
            value = _first_non_empty(values)
        elif policy is AggregationPolicy.PREFER_HOST and host_lookup.get(name):
            value = concatenate_values(host_lookup[name], separator)
        else:
            value = concatenate_values(values, separator)
        if value:
            aggregated.append((name, value))
    return CaseInsensitiveMap(aggregated)


def aggregate_snapshots(
    views: Sequence[SleeveSnapshotView],
    *,
    policy_for: Callable[[str], AggregationPolicy],
    separator: str = ", ",
) -> SleeveSnapshotView:
    """Merge constituent snapshots into the view of one combined sleeve.

    Conduit and host namespaces are aggregated independently. ``prefer_host`` only
    affects the conduit namespace: a conduit attribute takes the host value of the
    same name whenever a constituent host provides one.
    """

    conduit_values = _collect(views, AttributeNamespace.CONDUIT)
    host_values = _collect(views, AttributeNamespace.HOST)
    return SleeveSnapshotView(
        source_type=COMBINED_SOURCE_TYPE,
        conduit_attributes=_aggregate_namespace(
            conduit_values,
            policy_for=policy_for,
            separator=separator,
            host_values=host_values,
        ),
        host_attributes=_aggregate_namespace(
            host_values,
            policy_for=lambda name: (
                AggregationPolicy.CONCATENATE
                if policy_for(name) is AggregationPolicy.PREFER_HOST
                else policy_for(name)
            ),
            separator=separator,
        ),
    )
