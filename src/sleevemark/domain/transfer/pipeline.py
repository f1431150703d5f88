"""Batch parameter transfer from captured snapshots onto sleeves.

The pipeline runs four phases in order:

``load``
    read the snapshot store into an immutable ``SnapshotIndex``.
``identities``
    read the sleeve/cluster/combined ids off each target element.
``calculate``
    resolve every enabled mapping per target on a thread pool. Workers only read the
    index and append to a lock-guarded list; they never touch the document.
``write``
    apply the pending actions one by one on the calling thread.

Cancellation is checked before each phase and by every calculation work item. Once
the write phase has started it runs to the end; the caller's unit of work decides
whether the writes are committed.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sleevemark.domain.marking.aggregation import aggregate_snapshots
from sleevemark.domain.model import (
    ParameterUpdateAction,
    SleeveIdentity,
    TransferResult,
    TransferValidationError,
)
from sleevemark.domain.ports import AttributeWriteError, SnapshotLoadError
from sleevemark.domain.transfer.index import SnapshotIndex
from sleevemark.domain.transfer.values import resolve_source_value

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sleevemark.domain.model import (
        AttributeValue,
        ElementId,
        ParameterMapping,
        ParameterTransferConfiguration,
        SleeveSnapshotView,
    )
    from sleevemark.domain.ports import HostDocument, SnapshotRepository

log = logging.getLogger(__name__)


class TransferCancelledError(RuntimeError):
    """Raised when the caller cancels a transfer before its write phase."""


class PendingUpdates:
    """Thread-safe accumulation of update actions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: list[ParameterUpdateAction] = []

    def extend(self, actions: Iterable[ParameterUpdateAction]) -> None:
        batch = list(actions)
        if not batch:
            return
        with self._lock:
            self._actions.extend(batch)

    def drain(self) -> list[ParameterUpdateAction]:
        with self._lock:
            actions, self._actions = self._actions, []
        return actions

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)


@dataclass(slots=True)
class TransferContext:
    document: HostDocument
    snapshots: SnapshotRepository
    target_ids: tuple[ElementId, ...]
    config: ParameterTransferConfiguration
    cancel: threading.Event | None = None
    result: TransferResult = field(default_factory=TransferResult)
    index: SnapshotIndex = field(default_factory=SnapshotIndex)
    identities: list[SleeveIdentity] = field(default_factory=list[SleeveIdentity])
    pending: PendingUpdates = field(default_factory=PendingUpdates)
    finished: bool = False

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()


class TransferPhase(Protocol):
    """Contract implemented by each transfer phase."""

    name: str

    def run(self, context: TransferContext) -> None: ...


class LoadSnapshotsPhase:
    name = "load"

    def run(self, context: TransferContext) -> None:
        try:
            context.index = SnapshotIndex.load(context.snapshots)
        except SnapshotLoadError as exc:
            log.exception("Snapshot index could not be loaded")
            context.result.success = False
            context.result.message = str(exc)
            context.result.errors.append(str(exc))
            context.finished = True
            return

        if context.index.never_captured:
            message = "No snapshots have been captured yet; nothing to transfer"
            log.warning(message)
            context.result.message = message
            context.result.warnings.append(message)
            context.finished = True


def _as_instance_id(value: AttributeValue | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return 0


class ReadIdentitiesPhase:
    name = "identities"

    def run(self, context: TransferContext) -> None:
        document = context.document
        config = context.config
        for element_id in context.target_ids:
            sleeve = document.get_sleeve(element_id)
            if sleeve is None:
                context.result.warnings.append(f"Element {element_id} not found")
                continue
            combined_id = _as_instance_id(
                document.read_attribute(element_id, config.combined_id_attribute)
            ) or sleeve.combined_instance_id
            if not combined_id and sleeve.is_combined:
                combined_id = sleeve.id
            cluster_id = _as_instance_id(
                document.read_attribute(element_id, config.cluster_id_attribute)
            ) or sleeve.cluster_instance_id
            context.identities.append(
                SleeveIdentity(
                    element_id=element_id,
                    sleeve_instance_id=_as_instance_id(
                        document.read_attribute(element_id, config.sleeve_id_attribute)
                    ),
                    cluster_instance_id=cluster_id,
                    combined_instance_id=combined_id,
                )
            )
        log.debug("Read %d sleeve identities", len(context.identities))


class CalculateUpdatesPhase:
    name = "calculate"

    def run(self, context: TransferContext) -> None:
        config = context.config
        mappings = [
            (position, mapping)
            for position, mapping in enumerate(config.mappings)
            if mapping.enabled
        ]
        workers = min(config.max_workers, max(len(context.identities), 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="transfer") as executor:
            futures = [
                executor.submit(self._calculate, identity, mappings, context)
                for identity in context.identities
            ]
            for future in futures:
                future.result()
        log.debug(
            "Calculated %d update actions for %d identities",
            len(context.pending),
            len(context.identities),
        )

    @staticmethod
    def snapshot_for(
        identity: SleeveIdentity,
        index: SnapshotIndex,
        config: ParameterTransferConfiguration,
    ) -> SleeveSnapshotView | None:
        """Combined beats individual, individual beats cluster."""

        if index.has_combined(identity.combined_instance_id):
            views = index.combined_views(identity.combined_instance_id)
            if views:
                return aggregate_snapshots(
                    views,
                    policy_for=config.policy_for,
                    separator=config.aggregation_separator,
                )
        view = index.individual(identity.sleeve_instance_id)
        if view is not None:
            return view
        return index.cluster(identity.cluster_instance_id)

    def _calculate(
        self,
        identity: SleeveIdentity,
        mappings: Sequence[tuple[int, ParameterMapping]],
        context: TransferContext,
    ) -> None:
        if context.cancelled:
            return
        config = context.config
        view = self.snapshot_for(identity, context.index, config)
        if view is None:
            return
        actions: list[ParameterUpdateAction] = []
        for position, mapping in mappings:
            value = resolve_source_value(
                view, mapping, aggregation_separator=config.aggregation_separator
            )
            if value is None:
                continue
            actions.append(
                ParameterUpdateAction(
                    element_id=identity.element_id,
                    parameter_name=mapping.target_parameter,
                    value=config.rename(value, mapping.target_parameter, mapping.source_parameter),
                    mapping_index=position,
                )
            )
        context.pending.extend(actions)


class WriteUpdatesPhase:
    name = "write"

    def run(self, context: TransferContext) -> None:
        result = context.result
        actions = sorted(
            context.pending.drain(),
            key=lambda action: (action.mapping_index, action.element_id),
        )
        written: set[ElementId] = set()
        for action in actions:
            result.attempted += 1
            try:
                context.document.write_attribute(
                    action.element_id, action.parameter_name, action.value
                )
            except AttributeWriteError as exc:
                result.failed += 1
                result.errors.append(str(exc))
                log.warning("Parameter write failed: %s", exc)
                continue
            written.add(action.element_id)
        result.transferred = len(written)


def default_phases() -> tuple[TransferPhase, ...]:
    return (
        LoadSnapshotsPhase(),
        ReadIdentitiesPhase(),
        CalculateUpdatesPhase(),
        WriteUpdatesPhase(),
    )


@dataclass(slots=True)
class BatchTransferPipeline:
    """Compose and execute the ordered transfer phases."""

    phases: Sequence[TransferPhase] = field(default_factory=default_phases)

    def execute(
        self,
        document: HostDocument,
        snapshots: SnapshotRepository,
        target_ids: Iterable[ElementId],
        config: ParameterTransferConfiguration,
        *,
        cancel: threading.Event | None = None,
    ) -> TransferResult:
        targets = tuple(dict.fromkeys(target_ids))
        try:
            if not targets:
                raise TransferValidationError("No target elements were given")  # noqa: TRY301
            config.validate()
        except TransferValidationError as exc:
            log.warning("Transfer rejected: %s", exc)
            return TransferResult.failure(str(exc))

        context = TransferContext(
            document=document,
            snapshots=snapshots,
            target_ids=targets,
            config=config,
            cancel=cancel,
        )
        try:
            for phase in self.phases:
                if context.finished:
                    break
                if context.cancelled:
                    raise TransferCancelledError(f"Transfer cancelled before the {phase.name} phase")
                started = time.perf_counter()
                phase.run(context)
                log.debug("Phase %s took %.3fs", phase.name, time.perf_counter() - started)
        except TransferCancelledError as exc:
            log.warning("%s", exc)
            return TransferResult.failure(str(exc))

        result = context.result
        if result.success and not result.message:
            result.message = (
                f"Transferred parameters to {result.transferred} of {len(targets)} elements"
                f" ({result.failed} failed writes)"
            )
        log.info(
            "Transfer finished: success=%s, transferred=%d, failed=%d, attempted=%d, warnings=%d",
            result.success,
            result.transferred,
            result.failed,
            result.attempted,
            len(result.warnings),
        )
        return result


def execute_batch_transfer(
    document: HostDocument,
    snapshots: SnapshotRepository,
    target_ids: Iterable[ElementId],
    config: ParameterTransferConfiguration,
    *,
    cancel: threading.Event | None = None,
) -> TransferResult:
    """Run the default four-phase transfer pipeline."""

    return BatchTransferPipeline().execute(document, snapshots, target_ids, config, cancel=cancel)
