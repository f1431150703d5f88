from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from sleevemark.config import (
    ConfigurationError,
    MissingConfigurationError,
    load_mark_settings,
    load_transfer_configuration,
    save_mark_settings,
    save_transfer_configuration,
)
from sleevemark.domain.model import (
    AggregationPolicy,
    Category,
    MarkPrefixSettings,
    OverrideMap,
    ParameterMapping,
    ParameterTransferConfiguration,
    TransferKind,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_missing_mark_settings_mean_defaults(data_dir: Path) -> None:
    settings = load_mark_settings()

    assert settings == MarkPrefixSettings()
    assert not (data_dir / "mark_settings.json").exists()


def test_mark_settings_round_trip(data_dir: Path) -> None:
    settings = MarkPrefixSettings(
        project_prefix="P7-",
        remark_flags={Category.PIPES: True},
        number_format="0000",
        start_number=100,
        continue_from_scope="L01",
        overrides={Category.DUCTS: OverrideMap({"Chilled Water Supply": "CHW"})},
    )

    path = save_mark_settings(settings)
    loaded = load_mark_settings()

    assert path == data_dir.resolve() / "mark_settings.json"
    assert loaded.project_prefix == "P7-"
    assert loaded.remark_flags == {Category.PIPES: True}
    assert loaded.number_width == 4
    assert loaded.start_number == 100
    assert loaded.continue_from_scope == "L01"
    assert loaded.override_for(Category.DUCTS, "chilled water supply") == "CHW"


def test_mark_settings_accept_lenient_category_labels(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "category_prefixes": {"cable_trays": "CT", "pipes": " "},
                "overrides": {"ducts": [{"system_type": "Exhaust", "prefix": "EXH"}]},
            }
        ),
        encoding="utf-8",
    )

    settings = load_mark_settings(path)

    assert settings.default_prefix(Category.CABLE_TRAYS) == "CT"
    assert settings.default_prefix(Category.PIPES) == "PLU"
    assert settings.override_for(Category.DUCTS, "EXHAUST") == "EXH"


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        json.dumps({"number_format": "0#0"}),
        json.dumps({"remark_flags": {"Conduits": True}}),
        json.dumps(
            {
                "overrides": {
                    "Ducts": [
                        {"system_type": "Supply Air", "prefix": "SA"},
                        {"system_type": "supply-air", "prefix": "SUP"},
                    ]
                }
            }
        ),
    ],
)
def test_invalid_mark_settings_raise_configuration_error(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "settings.json"
    path.write_text(payload, encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mark_settings(path)

    assert excinfo.value.source == str(path)


def test_missing_transfer_configuration_is_reported(data_dir: Path) -> None:
    with pytest.raises(MissingConfigurationError, match="No transfer configuration") as excinfo:
        load_transfer_configuration()

    assert excinfo.value.source == str(data_dir.resolve() / "transfer_config.json")


def test_transfer_configuration_round_trip(
    data_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SLEEVEMARK_MAX_WORKERS", raising=False)
    config = ParameterTransferConfiguration(
        mappings=(
            ParameterMapping(source_parameter="Size", target_parameter="MEP Size"),
            ParameterMapping(
                source_parameter="Fire Rating",
                target_parameter="MEP Fire Rating",
                transfer_kind=TransferKind.HOST_TO_OPENING,
                enabled=False,
            ),
        ),
        aggregation_policies={"Fire Rating": AggregationPolicy.PREFER_HOST},
        max_workers=2,
    )

    save_transfer_configuration(config)
    loaded = load_transfer_configuration()

    assert loaded.mappings == config.mappings
    assert loaded.policy_for("fire rating") is AggregationPolicy.PREFER_HOST
    assert loaded.max_workers == 2
    assert [mapping.target_parameter for mapping in loaded.enabled_mappings] == ["MEP Size"]


def test_transfer_max_workers_fall_back_to_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SLEEVEMARK_MAX_WORKERS", "7")
    path = tmp_path / "transfer.json"
    path.write_text(
        json.dumps({"mappings": [{"source_parameter": "Size", "target_parameter": "MEP Size"}]}),
        encoding="utf-8",
    )

    loaded = load_transfer_configuration(path)

    assert loaded.max_workers == 7
    assert loaded.mappings[0].transfer_kind is TransferKind.CONDUIT_TO_OPENING


def test_invalid_transfer_configuration(tmp_path: Path) -> None:
    path = tmp_path / "transfer.json"
    path.write_text(json.dumps({"mappings": [{"source_parameter": "Size"}]}), encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid transfer configuration"):
        load_transfer_configuration(path)


def test_blank_continue_from_scope_means_none(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"continue_from_scope": "  "}), encoding="utf-8")

    assert load_mark_settings(path).continue_from_scope is None
