"""The sleeve store transaction.

Every marking or transfer run works inside one ``SqlAlchemySleeveUnitOfWork``: the
host document, clash zones, snapshots and numbering counters share its session, so
a run either lands completely on ``commit`` or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from sleevemark.adapters.sqlalchemy.mappings import start_mappers
from sleevemark.adapters.sqlalchemy.migrations import upgrade_head
from sleevemark.adapters.sqlalchemy.repositories import (
    SqlAlchemyClashZoneRepository,
    SqlAlchemyCounterRepository,
    SqlAlchemyHostDocument,
    SqlAlchemySnapshotRepository,
)
from sleevemark.config import get_database_uri
from sleevemark.domain.ports import SleeveRepositories, TransactionError

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The sleeve store was used before ``startup`` or in the wrong order."""


@dataclass(slots=True)
class _StoreBinding:
    """The engine the process talks to and the sessions handed out for it."""

    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        # Snapshots and counters are read after commit, so loaded rows must stay usable.
        self.sessions = (
            sessionmaker(bind=engine, expire_on_commit=False) if engine is not None else None
        )

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "The sleeve store is not open; call "
                "sleevemark.adapters.sqlalchemy.startup() first"
            )
        return self.sessions()


_BINDING = _StoreBinding()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Open the sleeve store and bring its schema to the latest revision.

    ``engine`` wins over ``database_uri``; with neither, ``DATABASE_URI`` or the
    SQLite file in the data directory is used. A second call needs ``force=True``.
    """

    if _BINDING.engine is not None and not force:
        raise StartupError("The sleeve store is already open; pass force=True to reopen it")

    resolved = engine or create_engine(database_uri or get_database_uri(), future=True)
    start_mappers()
    upgrade_head(engine=resolved)
    _BINDING.bind(resolved)
    log.debug("Sleeve store open at %s", resolved.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _BINDING.engine is not None


def shutdown() -> None:
    """Close the sleeve store; a later unit of work needs a fresh ``startup``."""

    if _BINDING.engine is not None:
        _BINDING.engine.dispose()
        log.debug("Sleeve store closed")
    _BINDING.bind(None)


class SqlAlchemySleeveUnitOfWork:
    """One host transaction spanning the document, zones, snapshots and counters.

    Leaving the ``with`` block on an exception rolls back. A failed commit is rolled
    back too and surfaces as ``TransactionError`` carrying the driver's error code.
    """

    def __init__(self) -> None:
        if not is_started():
            raise StartupError(
                "The sleeve store is not open; call "
                "sleevemark.adapters.sqlalchemy.startup() first"
            )
        self._session: Session | None = None
        self._repositories: SleeveRepositories | None = None

    def __enter__(self) -> SqlAlchemySleeveUnitOfWork:
        if self._session is not None:
            raise StartupError("This unit of work is already in use")
        session = _BINDING.open_session()
        self._session = session
        self._repositories = SleeveRepositories(
            document=SqlAlchemyHostDocument(session),
            clash_zones=SqlAlchemyClashZoneRepository(session),
            snapshots=SqlAlchemySnapshotRepository(session),
            counters=SqlAlchemyCounterRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                log.debug("Rolling back sleeve store changes after %s", exc_type.__name__)
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its with block")
        return self._session

    @property
    def repositories(self) -> SleeveRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its with block")
        return self._repositories

    def commit(self) -> None:
        session = self.session
        try:
            session.commit()
        except SQLAlchemyError as exc:
            log.warning("Sleeve store refused the commit (%s); rolling back", exc.code)
            session.rollback()
            raise TransactionError(f"Commit failed: {exc}", status=exc.code) from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from sleevemark.domain.ports import SleeveUnitOfWork

    _uow_check: SleeveUnitOfWork = SqlAlchemySleeveUnitOfWork()
