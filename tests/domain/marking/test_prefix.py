from __future__ import annotations

from collections.abc import Sequence

import pytest

from sleevemark.domain.marking import PrefixResolver, ZoneIndex, resolve_prefix_from_zones
from sleevemark.domain.model import (
    Category,
    ClashZone,
    MarkPrefixSettings,
    OverrideMap,
    PrefixRule,
    Sleeve,
    SleeveKind,
)
from tests.helpers.factories import make_constituent, make_sleeve, make_zone


def _settings(**overrides: dict[str, str]) -> MarkPrefixSettings:
    return MarkPrefixSettings(
        overrides={Category(label): OverrideMap(entries) for label, entries in overrides.items()}
    )


def _duct_overrides(entries: dict[str, str]) -> MarkPrefixSettings:
    return MarkPrefixSettings(overrides={Category.DUCTS: OverrideMap(entries)})


def test_cluster_sharing_system_type_uses_override() -> None:
    zones = [
        make_zone(
            "z1",
            system_type="Chilled Water Supply",
            cluster_instance_id=10,
            is_cluster_resolved=True,
            zone_id=1,
        ),
        make_zone(
            "z2",
            system_type="Chilled Water Supply",
            cluster_instance_id=10,
            is_cluster_resolved=True,
            zone_id=2,
        ),
    ]
    settings = _duct_overrides({"Chilled Water Supply": "CHW"})
    resolver = PrefixResolver(ZoneIndex.from_zones(zones), settings)
    sleeve = make_sleeve(10, kind=SleeveKind.CLUSTER)

    resolution = resolver.resolve(sleeve, category=Category.DUCTS)

    assert resolution.prefix == "CHW"
    assert resolution.rule is PrefixRule.SAME_SYSTEM_TYPE


def test_combined_across_links_is_mixed_provenance() -> None:
    zones = [
        make_zone("d1", Category.DUCTS, system_type="Supply Air", link_id=1, zone_id=1),
        make_zone("p1", Category.PIPES, system_type="Domestic Cold", link_id=2, zone_id=2),
    ]
    constituents = [
        make_constituent(50, clash_zone_guid="d1"),
        make_constituent(50, clash_zone_guid="p1"),
    ]
    resolver = PrefixResolver(ZoneIndex.from_zones(zones, constituents), MarkPrefixSettings())
    sleeve = make_sleeve(50, None, kind=SleeveKind.COMBINED)

    resolution = resolver.resolve(sleeve, category=None)

    assert resolution.prefix == "MEP"
    assert resolution.rule is PrefixRule.MULTI_LINK


def test_multi_link_wins_over_chilled_water_override() -> None:
    zones = [
        make_zone("a", system_type="CHWS", link_id=1, combined_instance_id=7, zone_id=1),
        make_zone("b", system_type="CHWS", link_id=2, combined_instance_id=7, zone_id=2),
    ]
    settings = _duct_overrides({"CHWS": "CHW"})

    resolution = resolve_prefix_from_zones(
        zones, is_combined=True, default_prefix="DCT", settings=settings
    )

    assert resolution.rule is PrefixRule.MULTI_LINK
    assert resolution.prefix == "MEP"


def test_chilled_water_exception_applies_to_single_link_combined() -> None:
    zones = [
        make_zone("a", Category.PIPES, system_type="CHWS", link_id=3, zone_id=1),
        make_zone("b", Category.DUCTS, system_type="Supply Air", link_id=3, zone_id=2),
    ]
    settings = _settings(Pipes={"CHWS": "CHW"})

    resolution = resolve_prefix_from_zones(
        zones, is_combined=True, default_prefix="MEP", settings=settings
    )

    assert resolution.prefix == "CHW"
    assert resolution.rule is PrefixRule.CHILLED_WATER_EXCEPTION


def test_chilled_water_exception_does_not_apply_to_clusters() -> None:
    zones = [
        make_zone("a", Category.PIPES, system_type="CHWS", zone_id=1),
        make_zone("b", Category.PIPES, system_type="Sanitary", zone_id=2),
    ]
    settings = _settings(Pipes={"CHWS": "CHW"})

    resolution = resolve_prefix_from_zones(
        zones, is_combined=False, default_prefix="PLU", settings=settings
    )

    assert resolution.prefix == "PLU"
    assert resolution.rule is PrefixRule.FALLBACK


def test_chilled_water_without_override_continues_to_combined_default() -> None:
    zones = [
        make_zone("a", Category.PIPES, system_type="CHWS", zone_id=1),
        make_zone("b", Category.DUCTS, system_type="Supply Air", zone_id=2),
    ]

    resolution = resolve_prefix_from_zones(
        zones, is_combined=True, default_prefix="PLU", settings=MarkPrefixSettings()
    )

    assert resolution.prefix == "MEP"
    assert resolution.rule is PrefixRule.COMBINED_DEFAULT


def test_same_system_type_ignores_override_equal_to_default() -> None:
    zones = [
        make_zone("a", system_type="Supply Air", zone_id=1),
        make_zone("b", system_type="supply-air", zone_id=2),
    ]
    settings = _duct_overrides({"Supply Air": "DCT"})

    resolution = resolve_prefix_from_zones(
        zones, is_combined=True, default_prefix="DCT", settings=settings
    )

    assert resolution.rule is PrefixRule.COMBINED_DEFAULT


def test_cable_trays_compare_service_type() -> None:
    zones = [
        make_zone("a", Category.CABLE_TRAYS, system_type="Tray", service_type="Power", zone_id=1),
        make_zone("b", Category.CABLE_TRAYS, system_type="Tray", service_type="Power", zone_id=2),
    ]
    settings = _settings(**{"Cable Trays": {"Power": "PWR"}})

    resolution = resolve_prefix_from_zones(
        zones, is_combined=False, default_prefix="ELE", settings=settings
    )

    assert resolution.prefix == "PWR"


def test_fallback_uses_primary_zone_override() -> None:
    zone = make_zone("a", Category.PIPES, system_type="Fire Protection", zone_id=1)
    settings = _settings(Pipes={"Fire Protection": "FP"})

    resolution = resolve_prefix_from_zones(
        [zone],
        is_combined=False,
        default_prefix="PLU",
        settings=MarkPrefixSettings(use_advanced_resolution=False, overrides=settings.overrides),
        primary_zone=zone,
    )

    assert resolution.prefix == "FP"
    assert resolution.rule is PrefixRule.FALLBACK


@pytest.mark.parametrize("kind", [SleeveKind.INDIVIDUAL, SleeveKind.CLUSTER, SleeveKind.COMBINED])
def test_no_zones_falls_back_to_category_default(kind: SleeveKind) -> None:
    resolver = PrefixResolver(ZoneIndex(), MarkPrefixSettings())
    sleeve = make_sleeve(99, Category.DUCT_ACCESSORIES, kind=kind)

    resolution = resolver.resolve(sleeve, category=Category.DUCT_ACCESSORIES)

    assert resolution.prefix == "DMP"
    assert resolution.rule is PrefixRule.FALLBACK


def test_unknown_category_uses_unmapped_prefix() -> None:
    resolver = PrefixResolver(ZoneIndex(), MarkPrefixSettings(unmapped_prefix="GEN"))

    resolution = resolver.resolve(make_sleeve(1, None), category=None)

    assert resolution.prefix == "GEN"


class _BrokenLookup:
    def ordered_constituent_zones(self, sleeve: Sleeve) -> Sequence[ClashZone]:
        raise RuntimeError(f"lookup failed for {sleeve.id}")


def test_lookup_failure_falls_back_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    resolver = PrefixResolver(_BrokenLookup(), MarkPrefixSettings())

    resolution = resolver.resolve(make_sleeve(3), category=Category.DUCTS)

    assert resolution.prefix == "DCT"
    assert resolution.rule is PrefixRule.FALLBACK
    assert "Zone lookup failed" in caplog.text


def test_resolution_is_idempotent() -> None:
    zones = [
        make_zone("a", system_type="Exhaust", sleeve_instance_id=5, zone_id=1),
    ]
    settings = _duct_overrides({"Exhaust": "EXH"})
    resolver = PrefixResolver(ZoneIndex.from_zones(zones), settings)
    sleeve = make_sleeve(5)

    first = resolver.resolve(sleeve, category=Category.DUCTS)
    second = resolver.resolve(sleeve, category=Category.DUCTS)

    assert first == second
    assert first.prefix == "EXH"
