"""In-memory snapshot index shared read-only by the transfer calculation workers."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from sleevemark.domain.model import (
    CaseInsensitiveMap,
    ConstituentKind,
    SleeveSnapshotView,
    SnapshotConstituentRef,
)
from sleevemark.domain.ports import SnapshotLoadError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sleevemark.domain.model import CombinedConstituent, InstanceId
    from sleevemark.domain.ports import SnapshotRepository

log = logging.getLogger(__name__)


def _empty_views() -> Mapping[int, SleeveSnapshotView]:
    return MappingProxyType({})


@dataclass(slots=True, frozen=True, kw_only=True)
class SnapshotIndex:
    """Snapshots keyed by sleeve id, cluster id and combined id.

    ``aliases`` redirects legacy sleeve instance ids to the clash zone guid their
    snapshot was captured under. ``stored_count`` is the number of rows the store
    reported, so an empty index can tell "never captured" from "not loadable".
    """

    by_sleeve: Mapping[InstanceId, SleeveSnapshotView] = field(default_factory=_empty_views)
    by_cluster: Mapping[InstanceId, SleeveSnapshotView] = field(default_factory=_empty_views)
    by_zone_guid: CaseInsensitiveMap[SleeveSnapshotView] = field(
        default_factory=CaseInsensitiveMap[SleeveSnapshotView]
    )
    by_combined: Mapping[InstanceId, tuple[SnapshotConstituentRef, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    aliases: Mapping[InstanceId, str] = field(default_factory=lambda: MappingProxyType({}))
    stored_count: int = 0

    @classmethod
    def build(
        cls,
        snapshots: Iterable[SleeveSnapshotView],
        *,
        constituents: Iterable[CombinedConstituent] = (),
        aliases: Mapping[InstanceId, str] | None = None,
        stored_count: int | None = None,
    ) -> SnapshotIndex:
        by_sleeve: dict[int, SleeveSnapshotView] = {}
        by_cluster: dict[int, SleeveSnapshotView] = {}
        guid_pairs: list[tuple[str, SleeveSnapshotView]] = []
        count = 0
        for view in snapshots:
            count += 1
            if view.sleeve_instance_id:
                by_sleeve.setdefault(view.sleeve_instance_id, view)
            if view.cluster_instance_id:
                by_cluster.setdefault(view.cluster_instance_id, view)
            if view.clash_zone_guid:
                guid_pairs.append((view.clash_zone_guid, view))

        by_combined: defaultdict[int, list[SnapshotConstituentRef]] = defaultdict(list)
        for constituent in constituents:
            by_combined[constituent.combined_instance_id].append(
                SnapshotConstituentRef(
                    kind=constituent.kind,
                    clash_zone_guid=constituent.clash_zone_guid,
                    cluster_instance_id=constituent.cluster_instance_id,
                )
            )

        return cls(
            by_sleeve=MappingProxyType(by_sleeve),
            by_cluster=MappingProxyType(by_cluster),
            by_zone_guid=CaseInsensitiveMap(guid_pairs),
            by_combined=MappingProxyType({key: tuple(refs) for key, refs in by_combined.items()}),
            aliases=MappingProxyType(dict(aliases or {})),
            stored_count=count if stored_count is None else stored_count,
        )

    @classmethod
    def load(cls, repository: SnapshotRepository) -> SnapshotIndex:
        """Load every stored snapshot.

        Returns an empty index when nothing was ever captured and raises
        ``SnapshotLoadError`` when rows exist but none could be indexed.
        """

        stored = repository.count()
        if stored == 0:
            return cls()
        index = cls.build(
            repository.list_snapshots(),
            constituents=repository.list_combined_constituents(),
            aliases=repository.sleeve_aliases(),
            stored_count=stored,
        )
        if index.is_empty:
            raise SnapshotLoadError(
                f"{stored} snapshots are stored but none could be indexed; refresh the snapshots"
            )
        log.info(
            "Snapshot index loaded: sleeves=%d, clusters=%d, combined=%d, aliases=%d",
            len(index.by_sleeve),
            len(index.by_cluster),
            len(index.by_combined),
            len(index.aliases),
        )
        return index

    @property
    def is_empty(self) -> bool:
        return not (self.by_sleeve or self.by_cluster or self.by_zone_guid or self.by_combined)

    @property
    def never_captured(self) -> bool:
        return self.stored_count == 0

    def individual(self, sleeve_instance_id: InstanceId) -> SleeveSnapshotView | None:
        if not sleeve_instance_id:
            return None
        view = self.by_sleeve.get(sleeve_instance_id)
        if view is not None:
            return view
        guid = self.aliases.get(sleeve_instance_id)
        if guid:
            return self.by_zone_guid.get(guid)
        return None

    def cluster(self, cluster_instance_id: InstanceId) -> SleeveSnapshotView | None:
        if not cluster_instance_id:
            return None
        return self.by_cluster.get(cluster_instance_id)

    def has_combined(self, combined_instance_id: InstanceId) -> bool:
        return bool(combined_instance_id) and combined_instance_id in self.by_combined

    def combined_views(self, combined_instance_id: InstanceId) -> list[SleeveSnapshotView]:
        """Snapshots of every resolvable member of a combined sleeve, in member order."""

        views: list[SleeveSnapshotView] = []
        for ref in self.by_combined.get(combined_instance_id, ()):
            if ref.kind is ConstituentKind.CLUSTER:
                view = self.cluster(ref.cluster_instance_id)
            elif ref.clash_zone_guid:
                view = self.by_zone_guid.get(ref.clash_zone_guid)
            else:
                view = None
            if view is not None:
                views.append(view)
        return views
