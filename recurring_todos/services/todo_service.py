from __future__ import annotations

from recurring_todos.domain.entities import TodoEntity
from recurring_todos.domain.enums import TodoState
from recurring_todos.domain.errors import NotFoundError
from recurring_todos.domain.filters import TodoFilters
from recurring_todos.domain.validation import validate_paging, validate_todo
from recurring_todos.infra.clock import utcnow
from recurring_todos.infra.repository import RecurringTodoRepository, TodoRepository

_EDITABLE_FIELDS = (
    "user_id",
    "recurring_todo_id",
    "title",
    "note",
    "due_time",
    "is_whole_day",
    "state",
)


class TodoService:
    def __init__(self, repo: TodoRepository, rule_repo: RecurringTodoRepository) -> None:
        self._repo = repo
        self._rule_repo = rule_repo

    def list_todos(self, filters: TodoFilters) -> list[TodoEntity]:
        validate_paging(filters.page, filters.per_page)
        return self._repo.list_todos(filters)

    def get_todo(self, todo_id: int) -> TodoEntity:
        todo = self._repo.get_todo(todo_id)
        if not todo:
            raise NotFoundError(f"Todo {todo_id} not found")
        return todo

    def create_todo(self, data: dict) -> TodoEntity:
        normalized = self._normalize_data(data)
        normalized.setdefault("state", TodoState.PENDING.value)
        validate_todo(normalized, rule_exists=self._rule_exists(normalized.get("recurring_todo_id")))
        if normalized["state"] == TodoState.COMPLETED.value:
            normalized["completed_at"] = utcnow()
        return self._repo.create_todo(normalized)

    def update_todo(self, todo_id: int, data: dict) -> TodoEntity:
        current = self.get_todo(todo_id)
        normalized = self._normalize_data(data)
        normalized.pop("recurring_todo_id", None)
        validate_todo({"title": current.title, "state": current.state, **normalized})

        state = normalized.get("state")
        if state == TodoState.COMPLETED.value and current.state != TodoState.COMPLETED:
            normalized["completed_at"] = utcnow()
        if state and state != TodoState.COMPLETED.value:
            normalized["completed_at"] = None

        todo = self._repo.update_todo(todo_id, normalized)
        if not todo:
            raise NotFoundError(f"Todo {todo_id} not found")
        return todo

    def start_todo(self, todo_id: int) -> TodoEntity:
        return self.update_todo(todo_id, {"state": TodoState.IN_PROGRESS.value})

    def complete_todo(self, todo_id: int) -> TodoEntity:
        return self.update_todo(todo_id, {"state": TodoState.COMPLETED.value})

    def cancel_todo(self, todo_id: int) -> TodoEntity:
        return self.update_todo(todo_id, {"state": TodoState.CANCELLED.value})

    def delete_todo(self, todo_id: int) -> None:
        if not self._repo.soft_delete_todo(todo_id):
            raise NotFoundError(f"Todo {todo_id} not found")

    def restore_todo(self, todo_id: int) -> TodoEntity:
        todo = self._repo.restore_todo(todo_id)
        if not todo:
            raise NotFoundError(f"Todo {todo_id} not found")
        return todo

    def force_delete_todo(self, todo_id: int) -> None:
        if not self._repo.hard_delete_todo(todo_id):
            raise NotFoundError(f"Todo {todo_id} not found")

    def _rule_exists(self, rule_id) -> bool:
        if rule_id is None:
            return True
        # soft-deleted rules still count as existing
        return self._rule_repo.get_rule(rule_id, include_deleted=True) is not None

    def _normalize_data(self, data: dict) -> dict:
        normalized = {key: value for key, value in data.items() if key in _EDITABLE_FIELDS}
        if "state" in normalized and isinstance(normalized["state"], TodoState):
            normalized["state"] = normalized["state"].value
        return normalized
