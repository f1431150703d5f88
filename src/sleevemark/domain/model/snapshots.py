"""Captured attribute snapshots and the identities used to find them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from sleevemark.domain.model.enums import AttributeNamespace, ConstituentKind
from sleevemark.domain.model.primitives import CaseInsensitiveMap, ElementId, InstanceId

# Source type of views merged from several constituent snapshots.
COMBINED_SOURCE_TYPE: Final[str] = "combined"


def _empty_attributes() -> CaseInsensitiveMap[str]:
    return CaseInsensitiveMap[str]()


@dataclass(slots=True, frozen=True, kw_only=True)
class SleeveSnapshotView:
    """Attribute values captured from the conduit and the host of one sleeve."""

    sleeve_instance_id: InstanceId = 0
    cluster_instance_id: InstanceId = 0
    clash_zone_guid: str | None = None
    source_type: str | None = None
    conduit_attributes: CaseInsensitiveMap[str] = field(default_factory=_empty_attributes)
    host_attributes: CaseInsensitiveMap[str] = field(default_factory=_empty_attributes)

    def attributes(self, namespace: AttributeNamespace) -> CaseInsensitiveMap[str]:
        if namespace is AttributeNamespace.HOST:
            return self.host_attributes
        return self.conduit_attributes

    @property
    def is_empty(self) -> bool:
        return not self.conduit_attributes and not self.host_attributes


@dataclass(slots=True, frozen=True, kw_only=True)
class SnapshotConstituentRef:
    """One member of a combined sleeve as referenced from the snapshot index."""

    kind: ConstituentKind
    clash_zone_guid: str | None = None
    cluster_instance_id: InstanceId = 0


@dataclass(slots=True, frozen=True, kw_only=True)
class SleeveIdentity:
    """Ids read off a target element; ``0`` means the element carries none."""

    element_id: ElementId
    sleeve_instance_id: InstanceId = 0
    cluster_instance_id: InstanceId = 0
    combined_instance_id: InstanceId = 0
