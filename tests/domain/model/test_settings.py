from __future__ import annotations

import pytest

from sleevemark.domain.model import (
    AggregationPolicy,
    CaseInsensitiveMap,
    Category,
    DuplicateOverrideError,
    Extent,
    MarkPrefixSettings,
    OverrideMap,
    ParameterMapping,
    ParameterTransferConfiguration,
    Point,
    RenamingCondition,
    SleeveScope,
    TransferValidationError,
    normalize_system_type,
)
from tests.helpers.factories import make_sleeve


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Ducts", Category.DUCTS),
        ("cable_trays", Category.CABLE_TRAYS),
        ("  Duct-Accessories ", Category.DUCT_ACCESSORIES),
    ],
)
def test_category_parse_is_lenient(label: str, expected: Category) -> None:
    assert Category.parse(label) is expected


def test_category_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown category"):
        Category.parse("Conduits")


def test_normalize_system_type() -> None:
    assert normalize_system_type("  Chilled_Water-Supply ") == "chilled water supply"


def test_override_keys_conflicting_after_normalization_are_rejected() -> None:
    with pytest.raises(DuplicateOverrideError):
        OverrideMap([("Chilled Water", "CHW"), ("chilled-water", "CW")])


def test_override_entries_need_label_and_prefix() -> None:
    with pytest.raises(ValueError, match="label and a prefix"):
        OverrideMap({"Supply Air": "  "})


def test_override_lookup_exact_then_theme() -> None:
    overrides = OverrideMap({"Chilled Water Supply": "CHW", "Exhaust": "EXH"})

    assert overrides.lookup("CHILLED WATER SUPPLY") == "CHW"
    assert overrides.lookup("CHWR") == "CHW"
    assert overrides.lookup("Supply Air") is None
    assert overrides.lookup("") is None


def test_settings_defaults_and_unmapped_prefix() -> None:
    settings = MarkPrefixSettings()

    assert settings.default_prefix(Category.CABLE_TRAYS) == "ELE"
    assert settings.default_prefix(None) == "OPN"
    assert settings.number_width == 3


@pytest.mark.parametrize("number_format", ["", "00#", "12"])
def test_settings_reject_bad_number_format(number_format: str) -> None:
    with pytest.raises(ValueError, match="run of zeros"):
        MarkPrefixSettings(number_format=number_format)


def test_should_remark_respects_flags_and_remark_all() -> None:
    settings = MarkPrefixSettings(remark_flags={Category.PIPES: True})

    assert settings.should_remark(Category.PIPES)
    assert not settings.should_remark(Category.DUCTS)
    assert not settings.should_remark(None)
    assert MarkPrefixSettings(remark_all=True).should_remark(None)


def test_case_insensitive_map_keeps_first_spelling() -> None:
    attributes = CaseInsensitiveMap([("Size", "a"), ("SIZE", "b")])

    assert attributes["size"] == "a"
    assert list(attributes) == ["Size"]
    assert "sIzE" in attributes


def test_scope_filters_and_counter_key() -> None:
    scope = SleeveScope(
        extent=Extent(Point(0, 0, 0), Point(10, 10, 10)),
        categories=frozenset({Category.DUCTS}),
        counter_scope="zone-a",
    )

    assert scope.includes(make_sleeve(1, point=Point(5, 5, 5)))
    assert not scope.includes(make_sleeve(2, point=Point(11, 5, 5)))
    assert not scope.includes(make_sleeve(3, Category.PIPES, point=Point(1, 1, 1)))
    assert scope.counter_key == "zone-a"
    assert SleeveScope(level_name="L04").counter_key == "L04"
    assert SleeveScope().is_unbounded


def test_transfer_configuration_validation() -> None:
    with pytest.raises(TransferValidationError, match="No parameter mappings"):
        ParameterTransferConfiguration().validate()
    with pytest.raises(TransferValidationError, match="no target"):
        ParameterTransferConfiguration(
            mappings=(ParameterMapping(source_parameter="Size", target_parameter=" "),)
        ).validate()
    with pytest.raises(TransferValidationError, match="max_workers"):
        ParameterTransferConfiguration(
            mappings=(ParameterMapping(source_parameter="Size", target_parameter="MEP Size"),),
            max_workers=0,
        ).validate()


def test_rename_uses_first_enabled_match() -> None:
    config = ParameterTransferConfiguration(
        renaming_conditions=(
            RenamingCondition(
                parameter_name="System", original_value="SA", new_value="x", enabled=False
            ),
            RenamingCondition(parameter_name="system", original_value="sa", new_value="Supply"),
            RenamingCondition(parameter_name="System", original_value="SA", new_value="Other"),
        )
    )

    assert config.rename("SA", "MEP System", "System") == "Supply"
    assert config.rename("EA", "System") == "EA"


def test_policy_for_matches_case_insensitively() -> None:
    config = ParameterTransferConfiguration(
        aggregation_policies={"Fire Rating": AggregationPolicy.PREFER_HOST}
    )

    assert config.policy_for("fire  rating") is AggregationPolicy.PREFER_HOST
    assert config.policy_for("Size") is AggregationPolicy.CONCATENATE


def test_with_category_prefixes_ignores_blank_values() -> None:
    settings = MarkPrefixSettings().with_category_prefixes(
        {Category.DUCTS: "AIR", Category.PIPES: ""}
    )

    assert settings.default_prefix(Category.DUCTS) == "AIR"
    assert settings.default_prefix(Category.PIPES) == "PLU"


def test_known_prefixes_include_project_prefix_and_overrides() -> None:
    settings = MarkPrefixSettings(
        project_prefix="P7-",
        overrides={Category.DUCTS: OverrideMap({"Chilled Water Supply": "CHW2"})},
    )

    known = settings.known_prefixes()

    assert {"P7-DCT", "P7-PLU", "P7-OPN", "P7-MEP", "P7-CHW2"} <= known
    assert "DCT" not in known


def test_blank_continue_from_scope_is_rejected() -> None:
    with pytest.raises(ValueError, match="Continue-from scope"):
        MarkPrefixSettings(continue_from_scope=" ")
