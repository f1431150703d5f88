"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "clash_zone",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("guid", sa.String(64), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("system_type", sa.String(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column("sleeve_instance_id", sa.Integer(), nullable=False),
        sa.Column("cluster_instance_id", sa.Integer(), nullable=False),
        sa.Column("combined_instance_id", sa.Integer(), nullable=False),
        sa.Column("is_resolved", sa.Boolean(), nullable=False),
        sa.Column("is_cluster_resolved", sa.Boolean(), nullable=False),
        sa.Column("level_name", sa.String(), nullable=True),
        sa.Column("x", sa.Float(), nullable=False),
        sa.Column("y", sa.Float(), nullable=False),
        sa.Column("z", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_clash_zone"),
        sa.UniqueConstraint("guid", name="uq_clash_zone_guid"),
    )
    op.create_index("ix_clash_zone_category", "clash_zone", ["category"])
    op.create_index("ix_clash_zone_cluster_instance_id", "clash_zone", ["cluster_instance_id"])
    op.create_index("ix_clash_zone_combined_instance_id", "clash_zone", ["combined_instance_id"])

    op.create_table(
        "combined_constituent",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("combined_instance_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("clash_zone_guid", sa.String(64), nullable=True),
        sa.Column("cluster_instance_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_combined_constituent"),
    )
    op.create_index(
        "ix_combined_constituent_combined_instance_id",
        "combined_constituent",
        ["combined_instance_id"],
    )

    op.create_table(
        "sleeve",
        sa.Column("id", sa.Integer(), autoincrement=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("category", sa.String(32), nullable=True),
        sa.Column("level_name", sa.String(), nullable=True),
        sa.Column("x", sa.Float(), nullable=False),
        sa.Column("y", sa.Float(), nullable=False),
        sa.Column("z", sa.Float(), nullable=False),
        sa.Column("cluster_instance_id", sa.Integer(), nullable=False),
        sa.Column("combined_instance_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_sleeve"),
    )
    op.create_index("ix_sleeve_level_name", "sleeve", ["level_name"])

    op.create_table(
        "sleeve_attribute",
        sa.Column("sleeve_id", sa.Integer(), nullable=False),
        sa.Column("name_key", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("read_only", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["sleeve_id"],
            ["sleeve.id"],
            name="fk_sleeve_attribute_sleeve_id_sleeve",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("sleeve_id", "name_key", name="pk_sleeve_attribute"),
    )

    op.create_table(
        "sleeve_snapshot",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("sleeve_instance_id", sa.Integer(), nullable=False),
        sa.Column("cluster_instance_id", sa.Integer(), nullable=False),
        sa.Column("clash_zone_guid", sa.String(64), nullable=True),
        sa.Column("source_type", sa.String(), nullable=True),
        sa.Column("conduit_attributes", sa.Text(), nullable=False),
        sa.Column("host_attributes", sa.Text(), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_sleeve_snapshot"),
    )
    op.create_index(
        "ix_sleeve_snapshot_sleeve_instance_id", "sleeve_snapshot", ["sleeve_instance_id"]
    )
    op.create_index(
        "ix_sleeve_snapshot_cluster_instance_id", "sleeve_snapshot", ["cluster_instance_id"]
    )

    op.create_table(
        "numbering_counter",
        sa.Column("series", sa.String(), nullable=False),
        sa.Column("scope", sa.String(), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("series", "scope", name="pk_numbering_counter"),
    )


def downgrade() -> None:
    op.drop_table("numbering_counter")
    op.drop_index("ix_sleeve_snapshot_cluster_instance_id", table_name="sleeve_snapshot")
    op.drop_index("ix_sleeve_snapshot_sleeve_instance_id", table_name="sleeve_snapshot")
    op.drop_table("sleeve_snapshot")
    op.drop_table("sleeve_attribute")
    op.drop_index("ix_sleeve_level_name", table_name="sleeve")
    op.drop_table("sleeve")
    op.drop_index(
        "ix_combined_constituent_combined_instance_id", table_name="combined_constituent"
    )
    op.drop_table("combined_constituent")
    op.drop_index("ix_clash_zone_combined_instance_id", table_name="clash_zone")
    op.drop_index("ix_clash_zone_cluster_instance_id", table_name="clash_zone")
    op.drop_index("ix_clash_zone_category", table_name="clash_zone")
    op.drop_table("clash_zone")
