from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from .clock import utcnow
from .db import Base


class RecurringTodoModel(Base):
    __tablename__ = "recurring_todos"
    __table_args__ = (
        Index("ix_recurring_todos_start_time_end_time", "start_time", "end_time"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    interval = Column(Integer, nullable=False, default=1)
    interval_unit = Column(String(20), nullable=False, default="day")
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    is_whole_day = Column(Boolean, nullable=False, default=False)
    state = Column(String(20), nullable=False, default="active", index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)


class TodoModel(Base):
    __tablename__ = "todos"
    __table_args__ = (
        UniqueConstraint("recurring_todo_id", "due_time", name="uq_todos_recurring_todo_id_due_time"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=True, index=True)
    recurring_todo_id = Column(
        Integer,
        ForeignKey("recurring_todos.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    due_time = Column(DateTime, nullable=True)
    is_whole_day = Column(Boolean, nullable=False, default=False)
    state = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
