"""create todos table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_create_todos"
down_revision = "0001_create_recurring_todos"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "todos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column(
            "recurring_todo_id",
            sa.Integer(),
            sa.ForeignKey("recurring_todos.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("due_time", sa.DateTime(), nullable=True),
        sa.Column("is_whole_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            "recurring_todo_id",
            "due_time",
            name="uq_todos_recurring_todo_id_due_time",
        ),
    )
    op.create_index("ix_todos_user_id", "todos", ["user_id"], unique=False)
    op.create_index("ix_todos_recurring_todo_id", "todos", ["recurring_todo_id"], unique=False)
    op.create_index("ix_todos_state", "todos", ["state"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_todos_state", table_name="todos")
    op.drop_index("ix_todos_recurring_todo_id", table_name="todos")
    op.drop_index("ix_todos_user_id", table_name="todos")
    op.drop_table("todos")
