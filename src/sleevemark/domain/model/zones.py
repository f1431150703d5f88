"""Clash zones, sleeves and the records that link them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from sleevemark.domain.model.enums import Category, ConstituentKind, SleeveKind
from sleevemark.domain.model.primitives import ElementId, Extent, InstanceId, Point


@dataclass(eq=False, kw_only=True)
class ClashZone:
    """One detected conduit/host intersection.

    Zones are produced by clash detection and are read-only here apart from the
    resolution flags. Instance ids use ``0`` for "not linked".
    """

    guid: str
    category: Category
    id: int | None = None
    system_type: str = ""
    service_type: str = ""
    link_id: int = 0
    sleeve_instance_id: InstanceId = 0
    cluster_instance_id: InstanceId = 0
    combined_instance_id: InstanceId = 0
    is_resolved: bool = False
    is_cluster_resolved: bool = False
    level_name: str | None = None
    point: Point = field(default_factory=Point)

    @property
    def type_label(self) -> str:
        """Service type for cable trays, system type for everything else."""
        if self.category is Category.CABLE_TRAYS:
            return self.service_type or self.system_type
        return self.system_type or self.service_type

    @property
    def is_host_document(self) -> bool:
        return self.link_id == 0

    def mark_resolved(self) -> None:
        self.is_resolved = True


@dataclass(eq=False, kw_only=True)
class Sleeve:
    """A placed penetration component (an element of the host document)."""

    id: ElementId
    kind: SleeveKind = SleeveKind.INDIVIDUAL
    category: Category | None = None
    level_name: str | None = None
    point: Point = field(default_factory=Point)
    cluster_instance_id: InstanceId = 0
    combined_instance_id: InstanceId = 0

    @property
    def is_combined(self) -> bool:
        return self.kind is SleeveKind.COMBINED

    @property
    def is_cluster(self) -> bool:
        return self.kind is SleeveKind.CLUSTER


@dataclass(slots=True, frozen=True, kw_only=True)
class SleeveScope:
    """Filter describing a view/selection of sleeves.

    Every populated criterion must match; an empty scope matches everything. The
    counter key is the level name, so numbering history stays per level unless an
    explicit ``counter_scope`` is given.
    """

    level_name: str | None = None
    extent: Extent | None = None
    element_ids: frozenset[ElementId] | None = None
    categories: frozenset[Category] | None = None
    counter_scope: str | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.level_name is None and self.extent is None and self.element_ids is None

    @property
    def counter_key(self) -> str:
        if self.counter_scope is not None:
            return self.counter_scope
        return self.level_name or ""

    def includes(self, sleeve: Sleeve) -> bool:
        if self.level_name is not None and (sleeve.level_name or "") != self.level_name:
            return False
        if self.extent is not None and not self.extent.contains(sleeve.point):
            return False
        if self.element_ids is not None and sleeve.id not in self.element_ids:
            return False
        return self.categories is None or sleeve.category in self.categories


@dataclass(eq=False, kw_only=True)
class CombinedConstituent:
    """Join row between a combined sleeve and one of its members."""

    combined_instance_id: InstanceId
    kind: ConstituentKind
    id: int | None = None
    clash_zone_guid: str | None = None
    cluster_instance_id: InstanceId = 0


@dataclass(eq=False, kw_only=True)
class NumberingCounter:
    """Highest sequence number handed out for a prefix within a scope."""

    series: str
    scope: str = ""
    last_number: int = 0
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def advance_to(self, number: int) -> None:
        if number > self.last_number:
            self.last_number = number
            self.updated_at = datetime.now(UTC)
