"""Initial sync tables: field maps and object maps.

Revision ID: 001_initial_sync_tables
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_sync_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "object_sync_field_map",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(128), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("local_object_type", sa.String(128), nullable=False),
        sa.Column("remote_object_type", sa.String(128), nullable=False),
        sa.Column("allowed_remote_subtypes", sa.JSON(), nullable=False),
        sa.Column("default_remote_subtype", sa.String(128), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("pull_trigger_field", sa.String(128), nullable=True),
        sa.Column("sync_triggers", sa.JSON(), nullable=False),
        sa.Column("push_async", sa.Boolean(), nullable=False),
        sa.Column("push_drafts", sa.Boolean(), nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_field_map_objects",
        "object_sync_field_map",
        ["local_object_type", "remote_object_type"],
    )

    op.create_table(
        "object_sync_object_map",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("local_id", sa.String(128), nullable=False),
        sa.Column("local_object_type", sa.String(128), nullable=False),
        sa.Column("remote_id", sa.String(128), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("object_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_action", sa.String(128), nullable=True),
        sa.Column("last_sync_status", sa.String(16), nullable=True),
        sa.Column("last_sync_message", sa.Text(), nullable=True),
        sa.UniqueConstraint("remote_id", name="uq_object_map_remote_id"),
    )
    op.create_index(
        "ix_object_map_local",
        "object_sync_object_map",
        ["local_object_type", "local_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_object_map_local", table_name="object_sync_object_map")
    op.drop_table("object_sync_object_map")
    op.drop_index("ix_field_map_objects", table_name="object_sync_field_map")
    op.drop_table("object_sync_field_map")
