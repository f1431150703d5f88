"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from sleevemark.domain.ports.document import HostDocument
    from sleevemark.domain.ports.persistence import (
        ClashZoneRepository,
        CounterRepository,
        SnapshotRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    The unit of work is the single host transaction: ``commit`` raises
    ``TransactionError`` when the store refuses the batch.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class SleeveRepositories(RepositoryCollection):
    """Everything a marking or transfer run reads and writes."""

    document: HostDocument
    clash_zones: ClashZoneRepository
    snapshots: SnapshotRepository
    counters: CounterRepository


type SleeveUnitOfWork = UnitOfWork[SleeveRepositories]
