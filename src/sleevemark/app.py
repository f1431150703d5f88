"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from sleevemark.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemySleeveUnitOfWork,
    is_started,
    startup,
)
from sleevemark.config import load_transfer_configuration
from sleevemark.domain.marking import MarkOrchestrator, MarkRequest, MarkResult, ResetResult
from sleevemark.domain.marking import reset_marks as reset_marks_in_scope
from sleevemark.domain.model import TransferResult
from sleevemark.domain.ports import SleeveUnitOfWork, TransactionError
from sleevemark.domain.transfer import execute_batch_transfer
from sleevemark.domain.transfer import (
    reset_transferred_parameters as reset_transferred_parameters_on,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Collection, Iterable

    from sleevemark.domain.model import ElementId, ParameterTransferConfiguration, SleeveScope

UnitOfWorkFactory = Callable[[], SleeveUnitOfWork]


log = getLogger(__name__)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemySleeveUnitOfWork


def mark_sleeves(
    request: MarkRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MarkResult:
    """Prefix and number the sleeves selected by ``request``."""

    log.info(
        "Starting marking: mode=%s, categories=%s, selected_only=%s",
        request.mode,
        "all" if request.categories is None else ", ".join(sorted(request.categories)),
        request.selected_only,
    )
    orchestrator = MarkOrchestrator(_unit_of_work_factory(unit_of_work_factory))
    result = orchestrator.run(request)
    log.info(
        f"Finished marking: processed={result.processed}, prefixed={result.prefixed}, "
        f"numbered={result.numbered}, errors={result.errors}"
    )
    return result


def reset_marks(
    scope: SleeveScope,
    *,
    project_wide: bool = False,
    reset_counters: bool = True,
    known_prefixes: Collection[str] = (),
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ResetResult:
    """Clear marks (and their numbering counters) inside ``scope``.

    ``known_prefixes`` lets marks whose prefix ends in digits reset the right counter.
    """

    log.info("Starting mark reset: scope=%r, project_wide=%s", scope.counter_key, project_wide)
    factory = _unit_of_work_factory(unit_of_work_factory)
    with factory() as uow:
        repositories = uow.repositories
        result = reset_marks_in_scope(
            repositories.document,
            repositories.counters,
            scope=scope,
            project_wide=project_wide,
            reset_counters=reset_counters,
            known_prefixes=known_prefixes,
        )
        uow.commit()
    log.info(
        f"Finished mark reset: cleared={result.cleared}, errors={result.errors}, "
        f"counters_reset={result.counters_reset}"
    )
    return result


def transfer_parameters(
    target_ids: Iterable[ElementId] | None = None,
    *,
    config: ParameterTransferConfiguration | None = None,
    cancel: threading.Event | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> TransferResult:
    """Copy snapshot values onto sleeves; all sleeves are targeted when ``target_ids`` is None."""

    effective_config = config or load_transfer_configuration()
    factory = _unit_of_work_factory(unit_of_work_factory)
    with factory() as uow:
        repositories = uow.repositories
        targets = (
            list(target_ids)
            if target_ids is not None
            else [sleeve.id for sleeve in repositories.document.sleeves()]
        )
        log.info(
            "Starting parameter transfer: targets=%d, mappings=%d",
            len(targets),
            len(effective_config.enabled_mappings),
        )
        result = execute_batch_transfer(
            repositories.document,
            repositories.snapshots,
            targets,
            effective_config,
            cancel=cancel,
        )
        if not result.success:
            uow.rollback()
            return result
        try:
            uow.commit()
        except TransactionError as exc:
            log.exception("Parameter transfer could not be committed")
            return TransferResult.failure(f"Transaction failed: {exc}")
    return result


def reset_transferred_parameters(
    target_ids: Iterable[ElementId] | None = None,
    *,
    config: ParameterTransferConfiguration | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> TransferResult:
    """Clear the target parameters of every enabled mapping."""

    effective_config = config or load_transfer_configuration()
    factory = _unit_of_work_factory(unit_of_work_factory)
    with factory() as uow:
        document = uow.repositories.document
        targets = (
            list(target_ids)
            if target_ids is not None
            else [sleeve.id for sleeve in document.sleeves()]
        )
        log.info("Starting parameter reset: targets=%d", len(targets))
        result = reset_transferred_parameters_on(document, targets, effective_config)
        if not result.success:
            uow.rollback()
            return result
        try:
            uow.commit()
        except TransactionError as exc:
            log.exception("Parameter reset could not be committed")
            return TransferResult.failure(f"Transaction failed: {exc}")
    log.info("Finished parameter reset: %s", result.message)
    return result
