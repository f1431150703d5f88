"""Mark orchestration: prefix resolution then numbering inside one unit of work."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from sleevemark.domain.marking.aggregation import ZoneIndex
from sleevemark.domain.marking.marks import read_mark, split_mark, write_mark
from sleevemark.domain.marking.numbering import assign_numbers
from sleevemark.domain.marking.prefix import PrefixResolver
from sleevemark.domain.model import (
    Category,
    MarkingMode,
    MarkPrefixSettings,
    PrefixRule,
    SleeveScope,
)
from sleevemark.domain.ports import AttributeWriteError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from sleevemark.domain.model import Sleeve
    from sleevemark.domain.ports import ClashZoneRepository, HostDocument, SleeveUnitOfWork

log = logging.getLogger(__name__)


class MarkRequestError(ValueError):
    """Raised when a mark request is inconsistent."""


@dataclass(slots=True, frozen=True, kw_only=True)
class MarkRequest:
    """Everything a marking run needs.

    ``categories=None`` processes every category present in the clash zone store.
    ``selected_only`` narrows the run to categories whose remark flag is set. Blank
    discipline prefixes keep the configured category default. ``continue_from_scope``
    starts each series after the counter of another scope, such as a previous level.
    """

    settings: MarkPrefixSettings = field(default_factory=MarkPrefixSettings)
    mode: MarkingMode = MarkingMode.FULL
    categories: frozenset[Category] | None = None
    selected_only: bool = False
    project_prefix: str | None = None
    discipline_prefixes: Mapping[Category, str] = field(default_factory=dict[Category, str])
    remark_all: bool | None = None
    continue_from_scope: str | None = None
    scope: SleeveScope = field(default_factory=SleeveScope)

    def effective_settings(self) -> MarkPrefixSettings:
        settings = self.settings.with_category_prefixes(self.discipline_prefixes)
        if self.project_prefix is not None:
            settings = replace(settings, project_prefix=self.project_prefix.strip())
        if self.remark_all is not None:
            settings = replace(settings, remark_all=self.remark_all)
        if self.continue_from_scope is not None:
            settings = replace(settings, continue_from_scope=self.continue_from_scope.strip())
        return settings

    def target_categories(self, present: Sequence[Category]) -> frozenset[Category]:
        settings = self.settings
        candidates = self.categories if self.categories is not None else frozenset(present)
        if not self.selected_only:
            return frozenset(candidates)
        remark_all = self.remark_all if self.remark_all is not None else settings.remark_all
        if remark_all:
            return frozenset(candidates)
        return frozenset(
            category for category in candidates if settings.remark_flags.get(category, False)
        )


@dataclass(slots=True, kw_only=True)
class MarkResult:
    processed: int = 0
    prefixed: int = 0
    numbered: int = 0
    errors: int = 0
    rules: Counter[PrefixRule] = field(default_factory=Counter[PrefixRule])


class MarkOrchestrator:
    """Sequence zone aggregation, prefix resolution and numbering across categories."""

    def __init__(self, unit_of_work_factory: Callable[[], SleeveUnitOfWork]) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def run(self, request: MarkRequest) -> MarkResult:
        settings = request.effective_settings()
        result = MarkResult()

        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            document = repositories.document
            zone_index = self._load_zone_index(repositories.clash_zones)
            categories = request.target_categories(
                zone_index.categories or tuple(Category)
            )
            if not categories:
                raise MarkRequestError("No categories selected for marking")

            sleeves = [
                sleeve
                for sleeve in document.sleeves(request.scope)
                if categories.intersection(zone_index.categories_for(sleeve))
            ]
            result.processed = len(sleeves)
            log.info(
                "Marking %d sleeves: mode=%s, categories=%s",
                len(sleeves),
                request.mode,
                ", ".join(sorted(categories)),
            )

            known_prefixes = set(settings.known_prefixes())
            if request.mode is not MarkingMode.NUMBER_ONLY:
                known_prefixes |= self._apply_prefixes(
                    document,
                    sleeves,
                    zone_index=zone_index,
                    settings=settings,
                    mode=request.mode,
                    result=result,
                )

            if request.mode is not MarkingMode.PREFIX_ONLY:
                numbering = assign_numbers(
                    document,
                    sleeves,
                    counters=repositories.counters,
                    number_format=settings.number_format,
                    scope=request.scope.counter_key,
                    allowed_prefixes=None,
                    start_number=settings.start_number,
                    known_prefixes=known_prefixes,
                    continue_from=settings.continue_from_scope,
                )
                result.numbered = numbering.assigned
                result.errors += numbering.errors

            uow.commit()

        log.info(
            "Marking finished: processed=%d, prefixed=%d, numbered=%d, errors=%d",
            result.processed,
            result.prefixed,
            result.numbered,
            result.errors,
        )
        return result

    @staticmethod
    def _load_zone_index(repository: ClashZoneRepository) -> ZoneIndex:
        try:
            return ZoneIndex.load(repository)
        except Exception:  # noqa: BLE001
            log.exception("Clash zone lookup failed; every sleeve falls back to its default prefix")
            return ZoneIndex()

    @staticmethod
    def _apply_prefixes(
        document: HostDocument,
        sleeves: Sequence[Sleeve],
        *,
        zone_index: ZoneIndex,
        settings: MarkPrefixSettings,
        mode: MarkingMode,
        result: MarkResult,
    ) -> set[str]:
        """Write resolved prefixes and return every prefix that was resolved."""

        resolver = PrefixResolver(zone_index, settings)
        resolved: set[str] = set()
        known_prefixes = settings.known_prefixes()
        for sleeve in sorted(sleeves, key=lambda item: item.id):
            categories = zone_index.categories_for(sleeve)
            category = categories[0] if categories else sleeve.category
            current = read_mark(document, sleeve.id)
            if current and not settings.should_remark(category):
                continue

            resolution = resolver.resolve(sleeve, category=category)
            result.rules[resolution.rule] += 1
            new_prefix = f"{settings.project_prefix}{resolution.prefix}"
            resolved.add(new_prefix)
            current_prefix, digits = split_mark(current, known_prefixes)
            if mode is MarkingMode.PREFIX_ONLY:
                new_mark = f"{new_prefix}{digits}"
            elif current and current_prefix == new_prefix:
                new_mark = current
            else:
                new_mark = new_prefix

            if new_mark == current:
                continue
            try:
                write_mark(document, sleeve.id, new_mark)
            except AttributeWriteError:
                result.errors += 1
                log.warning("Could not write prefix on sleeve %s", sleeve.id, exc_info=True)
                continue
            result.prefixed += 1
            for zone in zone_index.ordered_constituent_zones(sleeve):
                zone.mark_resolved()
        return resolved
