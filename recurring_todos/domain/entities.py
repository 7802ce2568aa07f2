from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import IntervalUnit, RuleState, TodoState


@dataclass(frozen=True)
class RecurringTodoEntity:
    id: int | None
    title: str
    note: str | None
    interval: int
    interval_unit: IntervalUnit
    start_time: datetime
    end_time: Optional[datetime]
    state: RuleState
    user_id: int | None = None
    is_whole_day: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.state == RuleState.ACTIVE and self.deleted_at is None


@dataclass(frozen=True)
class TodoEntity:
    id: int | None
    recurring_todo_id: int | None
    title: str
    note: str | None
    due_time: Optional[datetime]
    state: TodoState
    user_id: int | None = None
    is_whole_day: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
