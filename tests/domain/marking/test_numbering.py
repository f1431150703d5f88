from __future__ import annotations

import pytest

from sleevemark.domain.marking import assign_numbers, reset_marks, split_mark
from sleevemark.domain.model import Category, NumberingCounter, SleeveScope
from tests.helpers.factories import make_sleeve
from tests.helpers.fakes import FakeCounterRepository, FakeHostDocument, place_sleeve


@pytest.mark.parametrize(
    ("mark", "expected"),
    [
        ("DCT007", ("DCT", "007")),
        ("MEP", ("MEP", "")),
        ("P1-DCT012", ("P1-DCT", "012")),
        ("", ("", "")),
    ],
)
def test_split_mark(mark: str, expected: tuple[str, str]) -> None:
    assert split_mark(mark) == expected


@pytest.mark.parametrize(
    ("mark", "expected"),
    [
        ("CHW2", ("CHW2", "")),
        ("CHW2007", ("CHW2", "007")),
        ("CHW", ("CHW", "")),
        ("DCT2x", ("DCT2x", "")),
    ],
)
def test_split_mark_prefers_known_prefixes(mark: str, expected: tuple[str, str]) -> None:
    assert split_mark(mark, known_prefixes={"CHW", "CHW2"}) == expected


def test_numbers_continue_after_highest_existing_mark() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="DCT004")
    place_sleeve(document, make_sleeve(3), mark="DCT")
    place_sleeve(document, make_sleeve(2), mark="DCT")
    counters = FakeCounterRepository()

    result = assign_numbers(document, document.sleeves(), counters=counters)

    assert result.assigned == 2
    assert document.read_attribute(2, "Mark") == "DCT005"
    assert document.read_attribute(3, "Mark") == "DCT006"
    assert counters.last("DCT") == 6


def test_counter_history_prevents_reuse_after_deletion() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="PLU")
    counters = FakeCounterRepository()
    first = assign_numbers(document, document.sleeves(), counters=counters)
    assert first.assignments == {1: "PLU001"}

    # the numbered sleeve is deleted and a new one placed
    fresh = FakeHostDocument()
    place_sleeve(fresh, make_sleeve(2), mark="PLU")
    assign_numbers(fresh, fresh.sleeves(), counters=counters)

    assert fresh.read_attribute(2, "Mark") == "PLU002"


def test_numbering_is_idempotent_once_every_sleeve_is_numbered() -> None:
    document = FakeHostDocument()
    for element_id in (1, 2, 3):
        place_sleeve(document, make_sleeve(element_id), mark="ELE")
    counters = FakeCounterRepository()

    assign_numbers(document, document.sleeves(), counters=counters)
    writes_after_first_run = len(document.writes)
    second = assign_numbers(document, document.sleeves(), counters=counters)

    assert second.assigned == 0
    assert len(document.writes) == writes_after_first_run


def test_number_width_and_start_number() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="DMP")

    assign_numbers(
        document,
        document.sleeves(),
        counters=FakeCounterRepository(),
        number_format="0000",
        start_number=100,
    )

    assert document.read_attribute(1, "Mark") == "DMP0100"


def test_counters_are_kept_per_scope() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, level_name="L01"), mark="DCT")
    place_sleeve(document, make_sleeve(2, level_name="L02"), mark="DCT")
    counters = FakeCounterRepository()

    assign_numbers(
        document, document.sleeves(SleeveScope(level_name="L01")), counters=counters, scope="L01"
    )
    assign_numbers(
        document, document.sleeves(SleeveScope(level_name="L02")), counters=counters, scope="L02"
    )

    assert document.read_attribute(1, "Mark") == "DCT001"
    assert document.read_attribute(2, "Mark") == "DCT001"


def test_failed_write_does_not_consume_a_number() -> None:
    document = FakeHostDocument()
    document.add_sleeve(make_sleeve(1))
    document.define_attribute(1, "Mark", value="DCT", read_only=True)
    place_sleeve(document, make_sleeve(2), mark="DCT")
    counters = FakeCounterRepository()

    result = assign_numbers(document, document.sleeves(), counters=counters)

    assert result.errors == 1
    assert result.assignments == {2: "DCT001"}
    assert counters.last("DCT") == 1


def test_allowed_prefixes_limit_numbering() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="DCT")
    place_sleeve(document, make_sleeve(2), mark="PLU")

    assign_numbers(
        document, document.sleeves(), counters=FakeCounterRepository(), allowed_prefixes={"dct"}
    )

    assert document.read_attribute(1, "Mark") == "DCT001"
    assert document.read_attribute(2, "Mark") == "PLU"


def test_mep_mark_attribute_is_preferred() -> None:
    document = FakeHostDocument()
    sleeve = place_sleeve(document, make_sleeve(1), mark="")
    document.define_attribute(sleeve.id, "MEP Mark", value="MEP")

    assign_numbers(document, document.sleeves(), counters=FakeCounterRepository())

    assert document.read_attribute(1, "MEP Mark") == "MEP001"
    assert document.read_attribute(1, "Mark") is None


def test_reset_requires_a_bounded_scope() -> None:
    with pytest.raises(ValueError, match="project_wide"):
        reset_marks(FakeHostDocument(), FakeCounterRepository(), scope=SleeveScope())


def test_reset_clears_level_marks_and_counters_only_for_that_level() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, level_name="L01"), mark="DCT")
    place_sleeve(document, make_sleeve(2, level_name="L02"), mark="DCT")
    counters = FakeCounterRepository()
    for level in ("L01", "L02"):
        assign_numbers(
            document, document.sleeves(SleeveScope(level_name=level)), counters=counters, scope=level
        )

    result = reset_marks(document, counters, scope=SleeveScope(level_name="L01"))

    assert result.cleared == 1
    assert result.counters_reset == 1
    assert document.read_attribute(1, "Mark") is None
    assert document.read_attribute(2, "Mark") == "DCT001"
    assert counters.last("DCT", "L01") == 0
    assert counters.last("DCT", "L02") == 1


def test_category_filtered_reset_keeps_other_series() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, Category.DUCTS), mark="DCT")
    place_sleeve(document, make_sleeve(2, Category.PIPES), mark="PLU")
    counters = FakeCounterRepository()
    assign_numbers(document, document.sleeves(), counters=counters, scope="L01")

    reset_marks(
        document,
        counters,
        scope=SleeveScope(level_name="L01", categories=frozenset({Category.DUCTS})),
    )

    assert counters.last("DCT", "L01") == 0
    assert counters.last("PLU", "L01") == 1
    assert document.read_attribute(2, "Mark") == "PLU001"


def test_project_wide_reset_can_keep_counters() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="DCT")
    counters = FakeCounterRepository()
    assign_numbers(document, document.sleeves(), counters=counters)

    result = reset_marks(
        document, counters, scope=SleeveScope(), project_wide=True, reset_counters=False
    )

    assert result.cleared == 1
    assert result.counters_reset == 0
    assert counters.last("DCT") == 1


def test_known_prefix_with_trailing_digit_is_numbered() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1), mark="CHW2")
    place_sleeve(document, make_sleeve(2), mark="CHW2")
    counters = FakeCounterRepository()

    result = assign_numbers(
        document, document.sleeves(), counters=counters, known_prefixes={"CHW2"}
    )

    assert result.assignments == {1: "CHW2001", 2: "CHW2002"}
    assert counters.last("CHW2") == 2
    assert counters.last("CHW") == 0


def test_continue_from_reads_source_scope_and_saves_target_scope() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, level_name="L02"), mark="PLU")
    counters = FakeCounterRepository()
    counters.save(NumberingCounter(series="PLU", scope="L01", last_number=12))

    assign_numbers(
        document, document.sleeves(), counters=counters, scope="L02", continue_from="L01"
    )

    assert document.read_attribute(1, "Mark") == "PLU013"
    assert counters.last("PLU", "L02") == 13
    assert counters.last("PLU", "L01") == 12


def test_continue_from_keeps_target_history_when_it_is_ahead() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, level_name="L02"), mark="PLU")
    counters = FakeCounterRepository()
    counters.save(NumberingCounter(series="PLU", scope="L01", last_number=2))
    counters.save(NumberingCounter(series="PLU", scope="L02", last_number=20))

    assign_numbers(
        document, document.sleeves(), counters=counters, scope="L02", continue_from="L01"
    )

    assert document.read_attribute(1, "Mark") == "PLU021"


def test_reset_uses_known_prefixes_to_find_counters() -> None:
    document = FakeHostDocument()
    place_sleeve(document, make_sleeve(1, Category.DUCTS), mark="CHW2")
    counters = FakeCounterRepository()
    assign_numbers(
        document, document.sleeves(), counters=counters, scope="L01", known_prefixes={"CHW2"}
    )

    result = reset_marks(
        document,
        counters,
        scope=SleeveScope(level_name="L01", categories=frozenset({Category.DUCTS})),
        known_prefixes={"CHW2"},
    )

    assert result.counters_reset == 1
    assert counters.last("CHW2", "L01") == 0
