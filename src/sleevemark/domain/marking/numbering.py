"""Sequential numbering of sleeve marks and scoped resets."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sleevemark.domain.marking.marks import (
    clear_mark,
    format_mark,
    read_mark,
    split_mark,
    write_mark,
)
from sleevemark.domain.model import NumberingCounter
from sleevemark.domain.model.settings import DEFAULT_NUMBER_FORMAT
from sleevemark.domain.ports import AttributeWriteError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from sleevemark.domain.model import ElementId, Sleeve, SleeveScope
    from sleevemark.domain.ports import CounterRepository, HostDocument

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class NumberingResult:
    assigned: int = 0
    errors: int = 0
    assignments: dict[ElementId, str] = field(default_factory=dict[int, str])


@dataclass(slots=True, kw_only=True)
class ResetResult:
    cleared: int = 0
    errors: int = 0
    counters_reset: int = 0


def _is_allowed(prefix: str, allowed_prefixes: Collection[str] | None) -> bool:
    if allowed_prefixes is None:
        return True
    folded = prefix.casefold()
    return any(folded.startswith(allowed.casefold()) for allowed in allowed_prefixes)


def _number_width(number_format: str) -> int:
    if not number_format or set(number_format) != {"0"}:
        raise ValueError(f"Number format must be a run of zeros, got {number_format!r}")
    return len(number_format)


def assign_numbers(
    document: HostDocument,
    sleeves: Iterable[Sleeve],
    *,
    counters: CounterRepository,
    number_format: str = DEFAULT_NUMBER_FORMAT,
    scope: str = "",
    allowed_prefixes: Collection[str] | None = None,
    start_number: int | None = None,
    known_prefixes: Collection[str] = (),
    continue_from: str | None = None,
) -> NumberingResult:
    """Give every unnumbered sleeve the next free number of its prefix.

    The highest number in use per prefix is the larger of the marks found on
    ``sleeves`` and the stored counter for ``(prefix, scope)``. Unnumbered sleeves are
    numbered in ascending id order. ``allowed_prefixes=None`` numbers every sleeve that
    has a prefix.

    A mark equal to one of ``known_prefixes`` is unnumbered even when the prefix ends
    in digits. With ``continue_from`` the series also starts after the counter kept
    under that scope key; progress is only ever saved under ``scope``.
    """

    width = _number_width(number_format)
    result = NumberingResult()
    highest: dict[str, int] = {}
    pending: defaultdict[str, list[Sleeve]] = defaultdict(list)

    for sleeve in sorted(sleeves, key=lambda item: item.id):
        mark = read_mark(document, sleeve.id)
        prefix, digits = split_mark(mark, known_prefixes)
        if not prefix:
            log.debug("Sleeve %s has no prefix to number", sleeve.id)
            continue
        if not _is_allowed(prefix, allowed_prefixes):
            continue
        if digits:
            highest[prefix] = max(highest.get(prefix, 0), int(digits))
        else:
            pending[prefix].append(sleeve)

    for prefix in sorted(highest.keys() | pending.keys()):
        counter = counters.get(prefix, scope) or NumberingCounter(series=prefix, scope=scope)
        counter.advance_to(highest.get(prefix, 0))
        if continue_from is not None and continue_from != scope:
            source = counters.get(prefix, continue_from)
            if source is not None:
                log.debug(
                    "Prefix %s continues from scope %r at %d",
                    prefix,
                    continue_from,
                    source.last_number,
                )
                counter.advance_to(source.last_number)
        next_number = counter.last_number + 1
        if start_number is not None:
            next_number = max(next_number, start_number)

        for sleeve in pending.get(prefix, ()):
            mark = format_mark(prefix, next_number, width)
            try:
                write_mark(document, sleeve.id, mark)
            except AttributeWriteError:
                result.errors += 1
                log.warning("Could not write mark %s on sleeve %s", mark, sleeve.id, exc_info=True)
                continue
            result.assigned += 1
            result.assignments[sleeve.id] = mark
            counter.advance_to(next_number)
            next_number += 1

        counters.save(counter)
        log.debug("Prefix %s in scope %r now at %d", prefix, scope, counter.last_number)

    log.info(
        "Numbering finished: assigned=%d, errors=%d, prefixes=%d",
        result.assigned,
        result.errors,
        len(pending),
    )
    return result


def reset_marks(
    document: HostDocument,
    counters: CounterRepository,
    *,
    scope: SleeveScope,
    project_wide: bool = False,
    reset_counters: bool = True,
    known_prefixes: Collection[str] = (),
) -> ResetResult:
    """Clear marks in ``scope`` and forget the counters kept for that scope.

    When ``scope`` names categories only the counters of the prefixes that were
    cleared are reset; other counters in the scope keep their history.
    """

    if scope.is_unbounded and not project_wide:
        raise ValueError(
            "Refusing to reset marks without a level, extent or selection; "
            "pass project_wide=True to reset the whole project"
        )

    result = ResetResult()
    cleared_prefixes: set[str] = set()
    for sleeve in document.sleeves(scope):
        mark = read_mark(document, sleeve.id)
        if not mark:
            continue
        try:
            clear_mark(document, sleeve.id)
        except AttributeWriteError:
            result.errors += 1
            log.warning("Could not clear mark on sleeve %s", sleeve.id, exc_info=True)
            continue
        result.cleared += 1
        prefix, _ = split_mark(mark, known_prefixes)
        if prefix:
            cleared_prefixes.add(prefix)

    if reset_counters:
        series = cleared_prefixes if scope.categories is not None else None
        if series is None or series:
            result.counters_reset = counters.reset(scope.counter_key, series=series)

    log.info(
        "Reset marks in scope %r: cleared=%d, errors=%d, counters_reset=%d",
        scope.counter_key,
        result.cleared,
        result.errors,
        result.counters_reset,
    )
    return result
