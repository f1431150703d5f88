"""Parameter transfer configuration, update actions and results."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sleevemark.domain.model.enums import AggregationPolicy, TransferKind
from sleevemark.domain.model.primitives import normalize_key

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sleevemark.domain.model.primitives import AttributeValue, ElementId

SLEEVE_INSTANCE_ID_ATTRIBUTE: Final[str] = "Sleeve Instance ID"
CLUSTER_INSTANCE_ID_ATTRIBUTE: Final[str] = "Cluster Sleeve Instance ID"
COMBINED_INSTANCE_ID_ATTRIBUTE: Final[str] = "Combined Sleeve Instance ID"
DEFAULT_AGGREGATION_SEPARATOR: Final[str] = ", "
DEFAULT_MAX_WORKERS: Final[int] = 4


class TransferValidationError(ValueError):
    """Raised when a transfer request cannot be executed as configured."""


@dataclass(slots=True, frozen=True, kw_only=True)
class ParameterMapping:
    source_parameter: str
    target_parameter: str
    transfer_kind: TransferKind = TransferKind.CONDUIT_TO_OPENING
    enabled: bool = True
    separator: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class RenamingCondition:
    """Rewrite ``original_value`` to ``new_value`` for one parameter."""

    parameter_name: str
    original_value: str
    new_value: str
    enabled: bool = True

    def matches(self, parameter_name: str, value: str) -> bool:
        return (
            self.enabled
            and normalize_key(self.parameter_name) == normalize_key(parameter_name)
            and normalize_key(self.original_value) == normalize_key(value)
        )


@dataclass(slots=True, frozen=True, kw_only=True)
class ParameterTransferConfiguration:
    mappings: tuple[ParameterMapping, ...] = ()
    renaming_conditions: tuple[RenamingCondition, ...] = ()
    aggregation_policies: Mapping[str, AggregationPolicy] = field(
        default_factory=dict[str, AggregationPolicy]
    )
    aggregation_separator: str = DEFAULT_AGGREGATION_SEPARATOR
    max_workers: int = DEFAULT_MAX_WORKERS
    sleeve_id_attribute: str = SLEEVE_INSTANCE_ID_ATTRIBUTE
    cluster_id_attribute: str = CLUSTER_INSTANCE_ID_ATTRIBUTE
    combined_id_attribute: str = COMBINED_INSTANCE_ID_ATTRIBUTE

    @property
    def enabled_mappings(self) -> tuple[ParameterMapping, ...]:
        return tuple(mapping for mapping in self.mappings if mapping.enabled)

    def validate(self) -> None:
        """Reject configurations that would make a transfer ambiguous or empty."""

        enabled = self.enabled_mappings
        if not enabled:
            raise TransferValidationError("No parameter mappings are enabled")
        for index, mapping in enumerate(enabled, start=1):
            if not mapping.source_parameter.strip():
                raise TransferValidationError(f"Mapping {index} has no source parameter")
            if not mapping.target_parameter.strip():
                raise TransferValidationError(f"Mapping {index} has no target parameter")
        targets = Counter(normalize_key(mapping.target_parameter) for mapping in enabled)
        duplicates = sorted(name for name, count in targets.items() if count > 1)
        if duplicates:
            raise TransferValidationError(
                "Several enabled mappings write the same target parameter: "
                + ", ".join(duplicates)
            )
        if self.max_workers < 1:
            raise TransferValidationError("max_workers must be at least 1")

    def rename(self, value: str, *parameter_names: str) -> str:
        """Apply the first enabled renaming condition matching any of ``parameter_names``."""

        for condition in self.renaming_conditions:
            if any(condition.matches(name, value) for name in parameter_names):
                return condition.new_value
        return value

    def policy_for(self, attribute: str) -> AggregationPolicy:
        wanted = normalize_key(attribute)
        for name, policy in self.aggregation_policies.items():
            if normalize_key(name) == wanted:
                return policy
        return AggregationPolicy.CONCATENATE


@dataclass(slots=True, frozen=True, kw_only=True)
class ParameterUpdateAction:
    """A pending write computed in the calculation phase."""

    element_id: ElementId
    parameter_name: str
    value: AttributeValue
    mapping_index: int = 0


@dataclass(slots=True, kw_only=True)
class TransferResult:
    success: bool = True
    message: str = ""
    transferred: int = 0
    failed: int = 0
    attempted: int = 0
    warnings: list[str] = field(default_factory=list[str])
    errors: list[str] = field(default_factory=list[str])
    transfer_date: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def failure(cls, message: str) -> TransferResult:
        return cls(success=False, message=message, errors=[message])
