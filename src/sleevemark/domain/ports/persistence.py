"""Ports for the clash zone, snapshot and counter stores."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sleevemark.domain.model import (
    Category,
    ClashZone,
    CombinedConstituent,
    NumberingCounter,
    SleeveSnapshotView,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sleevemark.domain.model import InstanceId


class SnapshotLoadError(RuntimeError):
    """Raised when stored snapshots exist but cannot be read back."""


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ClashZoneRepository(Repository[ClashZone], Protocol):
    """Query surface over detected clash zones. Empty results never raise."""

    def list_all(self, *, categories: Iterable[Category] | None = None) -> list[ClashZone]: ...

    def list_by_category(self, category: Category) -> list[ClashZone]: ...

    def list_by_cluster(self, cluster_instance_id: InstanceId) -> list[ClashZone]: ...

    def list_by_combined_instance(self, combined_instance_id: InstanceId) -> list[ClashZone]: ...

    def list_combined_constituents(self) -> list[CombinedConstituent]: ...

    def add_constituent(self, constituent: CombinedConstituent) -> None: ...

    def distinct_categories(self) -> list[Category]: ...


@runtime_checkable
class SnapshotRepository(Protocol):
    """Read access to captured sleeve snapshots."""

    def count(self) -> int: ...

    def list_snapshots(self) -> list[SleeveSnapshotView]: ...

    def list_combined_constituents(self) -> list[CombinedConstituent]: ...

    def sleeve_aliases(self) -> dict[InstanceId, str]:
        """Map legacy sleeve instance ids to the clash zone guid they were captured under."""
        ...


@runtime_checkable
class CounterRepository(Protocol):
    """Persistent running counters keyed by ``(series, scope)``."""

    def get(self, series: str, scope: str) -> NumberingCounter | None: ...

    def save(self, counter: NumberingCounter) -> None: ...

    def reset(self, scope: str, *, series: Iterable[str] | None = None) -> int: ...
