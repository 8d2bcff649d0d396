"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

events, event_values (unique per event and day, cascading from events)
and app_settings. Mirrors what Database.open() creates on first start.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.Enum(
            "boolean", "number", "string",
            name="event_type_enum", native_enum=False, create_constraint=True,
        ), nullable=False),
        sa.Column("unit", sa.String(64), nullable=True),
        sa.Column("color", sa.String(32), nullable=False, server_default="#3b82f6"),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_events_order", "events", ["order"])

    # --- event_values ---
    op.create_table(
        "event_values",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("event_id", "date", name="uq_event_values_event_date"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_event_values_event_id", "event_values", ["event_id"])
    op.create_index("ix_event_values_date", "event_values", ["date"])

    # --- app_settings ---
    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_index("ix_event_values_date", table_name="event_values")
    op.drop_index("ix_event_values_event_id", table_name="event_values")
    op.drop_table("event_values")
    op.drop_index("ix_events_order", table_name="events")
    op.drop_table("events")
