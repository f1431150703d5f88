"""Public domain model surface."""

from __future__ import annotations

from sleevemark.domain.model.enums import (
    AggregationPolicy,
    AttributeKind,
    AttributeNamespace,
    Category,
    ConstituentKind,
    MarkingMode,
    PrefixRule,
    SleeveKind,
    TransferKind,
)
from sleevemark.domain.model.primitives import (
    AttributeValue,
    CaseInsensitiveMap,
    ElementId,
    Extent,
    InstanceId,
    Point,
    normalize_key,
)
from sleevemark.domain.model.settings import (
    DEFAULT_CATEGORY_PREFIXES,
    MIXED_PROVENANCE_PREFIX,
    UNMAPPED_CATEGORY_PREFIX,
    DuplicateOverrideError,
    MarkPrefixSettings,
    OverrideMap,
    is_chilled_water,
    normalize_system_type,
)
from sleevemark.domain.model.snapshots import (
    COMBINED_SOURCE_TYPE,
    SleeveIdentity,
    SleeveSnapshotView,
    SnapshotConstituentRef,
)
from sleevemark.domain.model.transfer import (
    DEFAULT_AGGREGATION_SEPARATOR,
    ParameterMapping,
    ParameterTransferConfiguration,
    ParameterUpdateAction,
    RenamingCondition,
    TransferResult,
    TransferValidationError,
)
from sleevemark.domain.model.zones import (
    ClashZone,
    CombinedConstituent,
    NumberingCounter,
    Sleeve,
    SleeveScope,
)

__all__ = [
    "COMBINED_SOURCE_TYPE",
    "DEFAULT_AGGREGATION_SEPARATOR",
    "DEFAULT_CATEGORY_PREFIXES",
    "MIXED_PROVENANCE_PREFIX",
    "UNMAPPED_CATEGORY_PREFIX",
    "AggregationPolicy",
    "AttributeKind",
    "AttributeNamespace",
    "AttributeValue",
    "CaseInsensitiveMap",
    "Category",
    "ClashZone",
    "CombinedConstituent",
    "ConstituentKind",
    "DuplicateOverrideError",
    "ElementId",
    "Extent",
    "InstanceId",
    "MarkPrefixSettings",
    "MarkingMode",
    "NumberingCounter",
    "OverrideMap",
    "ParameterMapping",
    "ParameterTransferConfiguration",
    "ParameterUpdateAction",
    "Point",
    "PrefixRule",
    "RenamingCondition",
    "Sleeve",
    "SleeveIdentity",
    "SleeveKind",
    "SleeveScope",
    "SleeveSnapshotView",
    "SnapshotConstituentRef",
    "TransferKind",
    "TransferResult",
    "TransferValidationError",
    "is_chilled_water",
    "normalize_key",
    "normalize_system_type",
]
