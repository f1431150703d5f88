"""Persisted mark prefix settings (JSON document validated with pydantic)."""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sleevemark.domain.model import (
    DEFAULT_CATEGORY_PREFIXES,
    UNMAPPED_CATEGORY_PREFIX,
    Category,
    MarkPrefixSettings,
    OverrideMap,
)
from sleevemark.domain.model.settings import DEFAULT_NUMBER_FORMAT

from .errors import ConfigurationError
from .storage import get_storage_config

log = logging.getLogger(__name__)


class SettingsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class OverrideEntry(SettingsBaseModel):
    system_type: str
    prefix: str


class MarkPrefixSettingsDocument(SettingsBaseModel):
    """On-disk shape of ``MarkPrefixSettings``; categories are keyed by label."""

    project_prefix: str = ""
    category_prefixes: dict[str, str] = Field(
        default_factory=lambda: {
            category.value: prefix for category, prefix in DEFAULT_CATEGORY_PREFIXES.items()
        }
    )
    unmapped_prefix: str = UNMAPPED_CATEGORY_PREFIX
    remark_flags: dict[str, bool] = Field(default_factory=dict)
    remark_all: bool = False
    number_format: str = DEFAULT_NUMBER_FORMAT
    start_number: int | None = None
    continue_from_scope: str | None = None
    use_advanced_resolution: bool = True
    overrides: dict[str, list[OverrideEntry]] = Field(default_factory=dict)

    @field_validator("number_format")
    @classmethod
    def _zero_pattern(cls, value: str) -> str:
        if not value or set(value) != {"0"}:
            raise ValueError("number_format must be a run of zeros such as '000'")
        return value

    @field_validator("start_number")
    @classmethod
    def _positive_start(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("start_number must be positive")
        return value

    @field_validator("continue_from_scope")
    @classmethod
    def _blank_scope(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    def to_settings(self) -> MarkPrefixSettings:
        """Build domain settings, normalizing and validating override keys."""

        try:
            category_prefixes = dict(DEFAULT_CATEGORY_PREFIXES)
            category_prefixes.update(
                {
                    Category.parse(label): prefix.strip()
                    for label, prefix in self.category_prefixes.items()
                    if prefix.strip()
                }
            )
            return MarkPrefixSettings(
                project_prefix=self.project_prefix.strip(),
                category_prefixes=category_prefixes,
                unmapped_prefix=self.unmapped_prefix.strip() or UNMAPPED_CATEGORY_PREFIX,
                remark_flags={
                    Category.parse(label): flag for label, flag in self.remark_flags.items()
                },
                remark_all=self.remark_all,
                number_format=self.number_format,
                start_number=self.start_number,
                continue_from_scope=self.continue_from_scope,
                use_advanced_resolution=self.use_advanced_resolution,
                overrides={
                    Category.parse(label): OverrideMap(
                        (entry.system_type, entry.prefix) for entry in entries
                    )
                    for label, entries in self.overrides.items()
                },
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid mark prefix settings: {exc}") from exc

    @classmethod
    def from_settings(cls, settings: MarkPrefixSettings) -> Self:
        return cls(
            project_prefix=settings.project_prefix,
            category_prefixes={
                category.value: prefix for category, prefix in settings.category_prefixes.items()
            },
            unmapped_prefix=settings.unmapped_prefix,
            remark_flags={category.value: flag for category, flag in settings.remark_flags.items()},
            remark_all=settings.remark_all,
            number_format=settings.number_format,
            start_number=settings.start_number,
            continue_from_scope=settings.continue_from_scope,
            use_advanced_resolution=settings.use_advanced_resolution,
            overrides={
                category.value: [
                    OverrideEntry(system_type=label, prefix=prefix)
                    for label, prefix in overrides.items()
                ]
                for category, overrides in settings.overrides.items()
            },
        )


def load_mark_settings(path: Path | None = None) -> MarkPrefixSettings:
    """Load settings from ``path`` (defaults to the data dir); absent file means defaults."""

    settings_path = path or get_storage_config().mark_settings_path()
    if not settings_path.exists():
        log.info("No mark settings at %s; using defaults", settings_path)
        return MarkPrefixSettings()
    try:
        document = MarkPrefixSettingsDocument.model_validate_json(
            settings_path.read_text(encoding="utf-8")
        )
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid mark settings in {settings_path}: {exc}", source=settings_path
        ) from exc
    try:
        settings = document.to_settings()
    except ConfigurationError as exc:
        raise ConfigurationError(str(exc), source=settings_path) from exc
    log.debug("Loaded mark settings from %s", settings_path)
    return settings


def save_mark_settings(settings: MarkPrefixSettings, path: Path | None = None) -> Path:
    settings_path = path or get_storage_config().mark_settings_path(ensure=True)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    document = MarkPrefixSettingsDocument.from_settings(settings)
    settings_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    log.info("Saved mark settings to %s", settings_path)
    return settings_path
