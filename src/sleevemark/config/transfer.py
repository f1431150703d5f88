"""Persisted parameter transfer configuration."""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sleevemark.domain.model import (
    AggregationPolicy,
    ParameterMapping,
    ParameterTransferConfiguration,
    RenamingCondition,
    TransferKind,
)
from sleevemark.domain.model.transfer import (
    CLUSTER_INSTANCE_ID_ATTRIBUTE,
    COMBINED_INSTANCE_ID_ATTRIBUTE,
    DEFAULT_AGGREGATION_SEPARATOR,
    DEFAULT_MAX_WORKERS,
    SLEEVE_INSTANCE_ID_ATTRIBUTE,
)

from .env import env_int
from .errors import ConfigurationError, MissingConfigurationError
from .storage import get_storage_config

log = logging.getLogger(__name__)

MAX_WORKERS_ENV_VAR = "SLEEVEMARK_MAX_WORKERS"


class TransferBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ParameterMappingModel(TransferBaseModel):
    source_parameter: str
    target_parameter: str
    transfer_kind: TransferKind = TransferKind.CONDUIT_TO_OPENING
    enabled: bool = True
    separator: str | None = None


class RenamingConditionModel(TransferBaseModel):
    parameter_name: str
    original_value: str
    new_value: str
    enabled: bool = True


class TransferConfigurationDocument(TransferBaseModel):
    mappings: list[ParameterMappingModel] = Field(default_factory=list["ParameterMappingModel"])
    renaming_conditions: list[RenamingConditionModel] = Field(
        default_factory=list["RenamingConditionModel"]
    )
    aggregation_policies: dict[str, AggregationPolicy] = Field(default_factory=dict)
    aggregation_separator: str = DEFAULT_AGGREGATION_SEPARATOR
    max_workers: int | None = None
    sleeve_id_attribute: str = SLEEVE_INSTANCE_ID_ATTRIBUTE
    cluster_id_attribute: str = CLUSTER_INSTANCE_ID_ATTRIBUTE
    combined_id_attribute: str = COMBINED_INSTANCE_ID_ATTRIBUTE

    def to_configuration(self) -> ParameterTransferConfiguration:
        max_workers = self.max_workers or env_int(MAX_WORKERS_ENV_VAR, DEFAULT_MAX_WORKERS)
        return ParameterTransferConfiguration(
            mappings=tuple(ParameterMapping(**item.model_dump()) for item in self.mappings),
            renaming_conditions=tuple(
                RenamingCondition(**item.model_dump()) for item in self.renaming_conditions
            ),
            aggregation_policies=dict(self.aggregation_policies),
            aggregation_separator=self.aggregation_separator,
            max_workers=max_workers,
            sleeve_id_attribute=self.sleeve_id_attribute,
            cluster_id_attribute=self.cluster_id_attribute,
            combined_id_attribute=self.combined_id_attribute,
        )

    @classmethod
    def from_configuration(cls, config: ParameterTransferConfiguration) -> Self:
        return cls(
            mappings=[
                ParameterMappingModel(
                    source_parameter=mapping.source_parameter,
                    target_parameter=mapping.target_parameter,
                    transfer_kind=mapping.transfer_kind,
                    enabled=mapping.enabled,
                    separator=mapping.separator,
                )
                for mapping in config.mappings
            ],
            renaming_conditions=[
                RenamingConditionModel(
                    parameter_name=condition.parameter_name,
                    original_value=condition.original_value,
                    new_value=condition.new_value,
                    enabled=condition.enabled,
                )
                for condition in config.renaming_conditions
            ],
            aggregation_policies=dict(config.aggregation_policies),
            aggregation_separator=config.aggregation_separator,
            max_workers=config.max_workers,
            sleeve_id_attribute=config.sleeve_id_attribute,
            cluster_id_attribute=config.cluster_id_attribute,
            combined_id_attribute=config.combined_id_attribute,
        )


def load_transfer_configuration(path: Path | None = None) -> ParameterTransferConfiguration:
    config_path = path or get_storage_config().transfer_config_path()
    if not config_path.exists():
        raise MissingConfigurationError(
            f"No transfer configuration at {config_path}", source=config_path
        )
    try:
        document = TransferConfigurationDocument.model_validate_json(
            config_path.read_text(encoding="utf-8")
        )
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid transfer configuration in {config_path}: {exc}", source=config_path
        ) from exc
    log.debug("Loaded %d parameter mappings from %s", len(document.mappings), config_path)
    return document.to_configuration()


def save_transfer_configuration(
    config: ParameterTransferConfiguration, path: Path | None = None
) -> Path:
    config_path = path or get_storage_config().transfer_config_path(ensure=True)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    document = TransferConfigurationDocument.from_configuration(config)
    config_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    log.info("Saved transfer configuration to %s", config_path)
    return config_path
