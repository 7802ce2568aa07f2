from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import RuleState, TodoState


@dataclass(frozen=True)
class TodoFilters:
    state: TodoState | None = None
    recurring_todo_id: int | None = None
    include_deleted: bool = False
    due_before: Optional[datetime] = None
    search: str | None = None
    page: int = 1
    per_page: int | None = None


@dataclass(frozen=True)
class RuleFilters:
    state: RuleState | None = None
    include_deleted: bool = False
    page: int = 1
    per_page: int | None = None
