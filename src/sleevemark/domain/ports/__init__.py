"""Domain port definitions for adapters."""

from __future__ import annotations

from .document import AttributeWriteError, HostDocument, TransactionError
from .persistence import (
    ClashZoneRepository,
    CounterRepository,
    Repository,
    SnapshotLoadError,
    SnapshotRepository,
)
from .unit_of_work import (
    RepositoryCollection,
    SleeveRepositories,
    SleeveUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "AttributeWriteError",
    "ClashZoneRepository",
    "CounterRepository",
    "HostDocument",
    "Repository",
    "RepositoryCollection",
    "SleeveRepositories",
    "SleeveUnitOfWork",
    "SnapshotLoadError",
    "SnapshotRepository",
    "TransactionError",
    "UnitOfWork",
]
