"""Console logging for the sleevemark CLI."""

from __future__ import annotations

import logging
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Alembic reports every migration step and SQLAlchemy every statement at INFO.
LIBRARY_LOGGERS: Final[tuple[str, ...]] = ("alembic", "sqlalchemy.engine")


def quiet_library_loggers(level: int) -> None:
    """Keep store internals at WARNING unless sleevemark itself logs at DEBUG."""

    library_level = logging.INFO if level <= logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    quiet_library_loggers(level)
