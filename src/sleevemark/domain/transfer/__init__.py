"""Snapshot-indexed batch parameter transfer."""

from __future__ import annotations

from .index import SnapshotIndex
from .pipeline import (
    BatchTransferPipeline,
    CalculateUpdatesPhase,
    LoadSnapshotsPhase,
    PendingUpdates,
    ReadIdentitiesPhase,
    TransferCancelledError,
    TransferContext,
    TransferPhase,
    WriteUpdatesPhase,
    execute_batch_transfer,
)
from .reset import reset_transferred_parameters
from .values import ATTRIBUTE_ALIASES, candidate_names, resolve_source_value

__all__ = [
    "ATTRIBUTE_ALIASES",
    "BatchTransferPipeline",
    "CalculateUpdatesPhase",
    "LoadSnapshotsPhase",
    "PendingUpdates",
    "ReadIdentitiesPhase",
    "SnapshotIndex",
    "TransferCancelledError",
    "TransferContext",
    "TransferPhase",
    "WriteUpdatesPhase",
    "candidate_names",
    "execute_batch_transfer",
    "reset_transferred_parameters",
    "resolve_source_value",
]
