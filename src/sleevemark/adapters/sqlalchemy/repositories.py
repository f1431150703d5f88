"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, distinct, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from sleevemark.adapters.sqlalchemy.mappings import (
    clash_zone_table,
    combined_constituent_table,
    numbering_counter_table,
    sleeve_attribute_table,
    sleeve_snapshot_table,
    sleeve_table,
)
from sleevemark.domain.model import (
    AttributeKind,
    CaseInsensitiveMap,
    Category,
    ClashZone,
    CombinedConstituent,
    NumberingCounter,
    Sleeve,
    SleeveSnapshotView,
    normalize_key,
)
from sleevemark.domain.ports import AttributeWriteError, SnapshotLoadError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.orm import Session

    from sleevemark.domain.model import AttributeValue, ElementId, InstanceId, SleeveScope

log = logging.getLogger(__name__)


class SqlAlchemyClashZoneRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ClashZone) -> None:
        self.session.add(entity)

    def list_all(self, *, categories: Iterable[Category] | None = None) -> list[ClashZone]:
        stmt = select(ClashZone).order_by(clash_zone_table.c.id)
        if categories is not None:
            stmt = stmt.where(clash_zone_table.c.category.in_(list(categories)))
        return list(self.session.execute(stmt).scalars())

    def list_by_category(self, category: Category) -> list[ClashZone]:
        return self.list_all(categories=(category,))

    def list_by_cluster(self, cluster_instance_id: InstanceId) -> list[ClashZone]:
        stmt = (
            select(ClashZone)
            .where(clash_zone_table.c.cluster_instance_id == cluster_instance_id)
            .order_by(clash_zone_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_combined_instance(self, combined_instance_id: InstanceId) -> list[ClashZone]:
        stmt = (
            select(ClashZone)
            .where(clash_zone_table.c.combined_instance_id == combined_instance_id)
            .order_by(clash_zone_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_combined_constituents(self) -> list[CombinedConstituent]:
        return _list_constituents(self.session)

    def add_constituent(self, constituent: CombinedConstituent) -> None:
        self.session.add(constituent)

    def distinct_categories(self) -> list[Category]:
        stmt = select(distinct(clash_zone_table.c.category))
        return sorted(self.session.execute(stmt).scalars(), key=lambda category: category.value)


class SqlAlchemySnapshotRepository:
    """Snapshot rows store attribute dictionaries as JSON text."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SleeveSnapshotView) -> None:
        self.session.execute(
            insert(sleeve_snapshot_table).values(
                sleeve_instance_id=entity.sleeve_instance_id,
                cluster_instance_id=entity.cluster_instance_id,
                clash_zone_guid=entity.clash_zone_guid,
                source_type=entity.source_type,
                conduit_attributes=json.dumps(dict(entity.conduit_attributes)),
                host_attributes=json.dumps(dict(entity.host_attributes)),
            )
        )

    def count(self) -> int:
        stmt = select(func.count()).select_from(sleeve_snapshot_table)
        try:
            return int(self.session.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise SnapshotLoadError(f"Cannot count sleeve snapshots: {exc}") from exc

    def list_snapshots(self) -> list[SleeveSnapshotView]:
        stmt = select(sleeve_snapshot_table).order_by(sleeve_snapshot_table.c.id)
        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise SnapshotLoadError(f"Cannot read sleeve snapshots: {exc}") from exc

        views: list[SleeveSnapshotView] = []
        for row in rows:
            try:
                conduit = _decode_attributes(row["conduit_attributes"])
                host = _decode_attributes(row["host_attributes"])
            except ValueError as exc:
                log.warning("Skipping unreadable snapshot row %s: %s", row["id"], exc)
                continue
            views.append(
                SleeveSnapshotView(
                    sleeve_instance_id=row["sleeve_instance_id"],
                    cluster_instance_id=row["cluster_instance_id"],
                    clash_zone_guid=row["clash_zone_guid"],
                    source_type=row["source_type"],
                    conduit_attributes=conduit,
                    host_attributes=host,
                )
            )
        return views

    def list_combined_constituents(self) -> list[CombinedConstituent]:
        try:
            return _list_constituents(self.session)
        except SQLAlchemyError as exc:
            raise SnapshotLoadError(f"Cannot read combined constituents: {exc}") from exc

    def sleeve_aliases(self) -> dict[InstanceId, str]:
        stmt = (
            select(clash_zone_table.c.sleeve_instance_id, clash_zone_table.c.guid)
            .where(clash_zone_table.c.sleeve_instance_id != 0)
            .order_by(clash_zone_table.c.id)
        )
        aliases: dict[InstanceId, str] = {}
        for sleeve_instance_id, guid in self.session.execute(stmt):
            aliases.setdefault(sleeve_instance_id, guid)
        return aliases


class SqlAlchemyCounterRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, series: str, scope: str) -> NumberingCounter | None:
        return self.session.get(NumberingCounter, (series, scope))

    def save(self, counter: NumberingCounter) -> None:
        self.session.add(counter)

    def reset(self, scope: str, *, series: Iterable[str] | None = None) -> int:
        stmt = select(NumberingCounter).where(numbering_counter_table.c.scope == scope)
        if series is not None:
            stmt = stmt.where(numbering_counter_table.c.series.in_(list(series)))
        counters = list(self.session.execute(stmt).scalars())
        for counter in counters:
            self.session.delete(counter)
        log.debug("Reset %d numbering counters in scope %r", len(counters), scope)
        return len(counters)


class SqlAlchemyHostDocument:
    """Host document stored in the ``sleeve`` and ``sleeve_attribute`` tables.

    Attributes must be defined on an element before they can be written, and each
    carries a storage kind that writes are coerced to.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_sleeve(self, sleeve: Sleeve) -> None:
        self.session.add(sleeve)

    def get_sleeve(self, element_id: ElementId) -> Sleeve | None:
        return self.session.get(Sleeve, element_id)

    def sleeves(self, scope: SleeveScope | None = None) -> list[Sleeve]:
        stmt = select(Sleeve).order_by(sleeve_table.c.id)
        if scope is not None and scope.level_name is not None:
            stmt = stmt.where(sleeve_table.c.level_name == scope.level_name)
        found = self.session.execute(stmt).scalars()
        if scope is None:
            return list(found)
        return [sleeve for sleeve in found if scope.includes(sleeve)]

    def define_attribute(
        self,
        element_id: ElementId,
        name: str,
        *,
        kind: AttributeKind = AttributeKind.STRING,
        value: AttributeValue | None = None,
        read_only: bool = False,
    ) -> None:
        self.session.flush()
        self.session.execute(
            delete(sleeve_attribute_table)
            .where(sleeve_attribute_table.c.sleeve_id == element_id)
            .where(sleeve_attribute_table.c.name_key == normalize_key(name))
        )
        stored = None if value is None else _coerce(kind, value)
        self.session.execute(
            insert(sleeve_attribute_table).values(
                sleeve_id=element_id,
                name_key=normalize_key(name),
                name=name,
                kind=kind,
                value=stored,
                read_only=read_only,
            )
        )

    def has_attribute(self, element_id: ElementId, name: str) -> bool:
        return self._attribute_row(element_id, name) is not None

    def read_attribute(self, element_id: ElementId, name: str) -> AttributeValue | None:
        row = self._attribute_row(element_id, name)
        if row is None or row["value"] is None:
            return None
        return _decode(row["kind"], row["value"])

    def write_attribute(self, element_id: ElementId, name: str, value: AttributeValue) -> None:
        row = self._writable_row(element_id, name)
        try:
            stored = _coerce(row["kind"], value)
        except ValueError as exc:
            raise AttributeWriteError(element_id, name, str(exc)) from exc
        self._store(element_id, name, stored)

    def clear_attribute(self, element_id: ElementId, name: str) -> None:
        if self._attribute_row(element_id, name) is None:
            return
        self._writable_row(element_id, name)
        self._store(element_id, name, None)

    def _writable_row(self, element_id: ElementId, name: str) -> Any:
        if self.get_sleeve(element_id) is None:
            raise AttributeWriteError(element_id, name, "element not found")
        row = self._attribute_row(element_id, name)
        if row is None:
            raise AttributeWriteError(element_id, name, "attribute not defined")
        if row["read_only"]:
            raise AttributeWriteError(element_id, name, "attribute is read-only")
        return row

    def _attribute_row(self, element_id: ElementId, name: str) -> Any:
        stmt = (
            select(sleeve_attribute_table)
            .where(sleeve_attribute_table.c.sleeve_id == element_id)
            .where(sleeve_attribute_table.c.name_key == normalize_key(name))
        )
        return self.session.execute(stmt).mappings().one_or_none()

    def _store(self, element_id: ElementId, name: str, stored: str | None) -> None:
        self.session.execute(
            update(sleeve_attribute_table)
            .where(sleeve_attribute_table.c.sleeve_id == element_id)
            .where(sleeve_attribute_table.c.name_key == normalize_key(name))
            .values(value=stored)
        )


def _list_constituents(session: Session) -> list[CombinedConstituent]:
    stmt = select(CombinedConstituent).order_by(combined_constituent_table.c.id)
    return list(session.execute(stmt).scalars())


def _decode_attributes(raw: str | None) -> CaseInsensitiveMap[str]:
    if not raw:
        return CaseInsensitiveMap[str]()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON ({exc.msg})") from exc
    if not isinstance(payload, dict):
        raise ValueError("attribute payload is not an object")
    return CaseInsensitiveMap[str](
        (str(key), "" if value is None else str(value))
        for key, value in payload.items()  # pyright: ignore[reportUnknownVariableType]
    )


def _coerce(kind: AttributeKind, value: AttributeValue) -> str:
    match kind:
        case AttributeKind.STRING:
            return str(value)
        case AttributeKind.NUMBER:
            try:
                return repr(float(value))
            except ValueError as exc:
                raise ValueError(f"expected a number, got {value!r}") from exc
        case AttributeKind.ID:
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(f"expected an element id, got {value!r}")
                value = int(value)
            try:
                return str(int(value))
            except ValueError as exc:
                raise ValueError(f"expected an element id, got {value!r}") from exc


def _decode(kind: AttributeKind, stored: str) -> AttributeValue:
    match kind:
        case AttributeKind.STRING:
            return stored
        case AttributeKind.NUMBER:
            return float(stored)
        case AttributeKind.ID:
            return int(stored)


if TYPE_CHECKING:
    from sleevemark.domain.ports import (
        ClashZoneRepository,
        CounterRepository,
        HostDocument,
        SnapshotRepository,
    )

    _session_stub = cast("Session", object())
    _zone_check: ClashZoneRepository = SqlAlchemyClashZoneRepository(_session_stub)
    _snapshot_check: SnapshotRepository = SqlAlchemySnapshotRepository(_session_stub)
    _counter_check: CounterRepository = SqlAlchemyCounterRepository(_session_stub)
    _document_check: HostDocument = SqlAlchemyHostDocument(_session_stub)
