"""SQLAlchemy adapter package for sleevemark."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyClashZoneRepository,
    SqlAlchemyCounterRepository,
    SqlAlchemyHostDocument,
    SqlAlchemySnapshotRepository,
)
from .unit_of_work import (
    SqlAlchemySleeveUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyClashZoneRepository",
    "SqlAlchemyCounterRepository",
    "SqlAlchemyHostDocument",
    "SqlAlchemySleeveUnitOfWork",
    "SqlAlchemySnapshotRepository",
    "StartupError",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
