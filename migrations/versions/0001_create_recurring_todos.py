"""create recurring todos table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_recurring_todos"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "recurring_todos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("interval_unit", sa.String(length=20), nullable=False, server_default="day"),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("is_whole_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_recurring_todos_user_id", "recurring_todos", ["user_id"], unique=False)
    op.create_index("ix_recurring_todos_state", "recurring_todos", ["state"], unique=False)
    op.create_index(
        "ix_recurring_todos_start_time_end_time",
        "recurring_todos",
        ["start_time", "end_time"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_recurring_todos_start_time_end_time", table_name="recurring_todos")
    op.drop_index("ix_recurring_todos_state", table_name="recurring_todos")
    op.drop_index("ix_recurring_todos_user_id", table_name="recurring_todos")
    op.drop_table("recurring_todos")
