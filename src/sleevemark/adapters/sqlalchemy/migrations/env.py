"""Alembic entry point for the sleeve store schema.

``upgrade_head`` hands in the engine's open connection so the schema is brought up
to date inside the caller's transaction. The ``alembic`` CLI has no connection and
opens one from ``sqlalchemy.url`` or the configured sleevemark database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from alembic import context
from sqlalchemy import create_engine, make_url, pool

from sleevemark.adapters.sqlalchemy import mapper_registry, start_mappers
from sleevemark.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

log = logging.getLogger("alembic.env")

start_mappers()

# SQLite cannot ALTER most columns in place; batch mode copies the table instead.
MIGRATION_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _store_url() -> str:
    return context.config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit the migration SQL for the sleeve store without connecting to it."""

    context.configure(url=_store_url(), literal_binds=True, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    shared: Connection | None = context.config.attributes.get("connection")
    if shared is not None:
        _migrate(shared)
        return

    url = _store_url()
    log.info("Migrating sleeve store at %s", make_url(url).render_as_string(hide_password=True))
    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _migrate(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
