from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from sleevemark.config import quiet_library_loggers
from sleevemark.config.logging import LIBRARY_LOGGERS

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _restore_library_levels() -> Iterator[None]:
    levels = {name: logging.getLogger(name).level for name in LIBRARY_LOGGERS}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_library_loggers_only_warn_at_info() -> None:
    quiet_library_loggers(logging.INFO)

    assert logging.getLogger("alembic").level == logging.WARNING
    assert not logging.getLogger("sqlalchemy.engine").isEnabledFor(logging.INFO)


def test_library_loggers_open_up_in_debug_mode() -> None:
    quiet_library_loggers(logging.DEBUG)

    assert logging.getLogger("alembic.runtime.migration").isEnabledFor(logging.INFO)
    assert not logging.getLogger("sqlalchemy.engine").isEnabledFor(logging.DEBUG)
