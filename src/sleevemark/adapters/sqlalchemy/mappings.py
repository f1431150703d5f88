"""SQLAlchemy mapping metadata for the sleevemark domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import composite

from sleevemark.domain.model import (
    AttributeKind,
    Category,
    ClashZone,
    CombinedConstituent,
    ConstituentKind,
    NumberingCounter,
    Point,
    Sleeve,
    SleeveKind,
)

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Clash zones ------------------------------------------------------------------

clash_zone_table = Table(
    "clash_zone",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("guid", String(64), nullable=False, unique=True),
    Column("category", Enum(Category, native_enum=False), nullable=False),
    Column("system_type", String, nullable=False, default=""),
    Column("service_type", String, nullable=False, default=""),
    Column("link_id", Integer, nullable=False, default=0),
    Column("sleeve_instance_id", Integer, nullable=False, default=0),
    Column("cluster_instance_id", Integer, nullable=False, default=0),
    Column("combined_instance_id", Integer, nullable=False, default=0),
    Column("is_resolved", Boolean, nullable=False, default=False),
    Column("is_cluster_resolved", Boolean, nullable=False, default=False),
    Column("level_name", String, nullable=True),
    Column("x", Float, nullable=False, default=0.0),
    Column("y", Float, nullable=False, default=0.0),
    Column("z", Float, nullable=False, default=0.0),
    Index("ix_clash_zone_category", "category"),
    Index("ix_clash_zone_cluster_instance_id", "cluster_instance_id"),
    Index("ix_clash_zone_combined_instance_id", "combined_instance_id"),
)

combined_constituent_table = Table(
    "combined_constituent",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("combined_instance_id", Integer, nullable=False),
    Column("kind", Enum(ConstituentKind, native_enum=False), nullable=False),
    Column("clash_zone_guid", String(64), nullable=True),
    Column("cluster_instance_id", Integer, nullable=False, default=0),
    Index("ix_combined_constituent_combined_instance_id", "combined_instance_id"),
)

# Host document ------------------------------------------------------------------

sleeve_table = Table(
    "sleeve",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("kind", Enum(SleeveKind, native_enum=False), nullable=False),
    Column("category", Enum(Category, native_enum=False), nullable=True),
    Column("level_name", String, nullable=True),
    Column("x", Float, nullable=False, default=0.0),
    Column("y", Float, nullable=False, default=0.0),
    Column("z", Float, nullable=False, default=0.0),
    Column("cluster_instance_id", Integer, nullable=False, default=0),
    Column("combined_instance_id", Integer, nullable=False, default=0),
    Index("ix_sleeve_level_name", "level_name"),
)

# Attribute names compare case-insensitively; ``name_key`` holds the normalized form.
sleeve_attribute_table = Table(
    "sleeve_attribute",
    mapper_registry.metadata,
    Column("sleeve_id", Integer, ForeignKey("sleeve.id", ondelete="CASCADE"), primary_key=True),
    Column("name_key", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("kind", Enum(AttributeKind, native_enum=False), nullable=False),
    Column("value", Text, nullable=True),
    Column("read_only", Boolean, nullable=False, default=False),
)

# Snapshots and counters -----------------------------------------------------------

sleeve_snapshot_table = Table(
    "sleeve_snapshot",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sleeve_instance_id", Integer, nullable=False, default=0),
    Column("cluster_instance_id", Integer, nullable=False, default=0),
    Column("clash_zone_guid", String(64), nullable=True),
    Column("source_type", String, nullable=True),
    Column("conduit_attributes", Text, nullable=False, default="{}"),
    Column("host_attributes", Text, nullable=False, default="{}"),
    Column("captured_at", UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)),
    Index("ix_sleeve_snapshot_sleeve_instance_id", "sleeve_instance_id"),
    Index("ix_sleeve_snapshot_cluster_instance_id", "cluster_instance_id"),
)

numbering_counter_table = Table(
    "numbering_counter",
    mapper_registry.metadata,
    Column("series", String, primary_key=True),
    Column("scope", String, primary_key=True),
    Column("last_number", Integer, nullable=False, default=0),
    Column("updated_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        ClashZone,
        clash_zone_table,
        properties={
            "point": composite(
                Point,
                clash_zone_table.c.x,
                clash_zone_table.c.y,
                clash_zone_table.c.z,
            ),
        },
    )
    mapper_registry.map_imperatively(CombinedConstituent, combined_constituent_table)
    mapper_registry.map_imperatively(
        Sleeve,
        sleeve_table,
        properties={
            "point": composite(
                Point,
                sleeve_table.c.x,
                sleeve_table.c.y,
                sleeve_table.c.z,
            ),
        },
    )
    mapper_registry.map_imperatively(NumberingCounter, numbering_counter_table)

    return mapper_registry
