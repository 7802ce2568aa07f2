from __future__ import annotations


class RecurringTodosError(Exception):
    pass


class ValidationError(RecurringTodosError):
    """Field-keyed input errors, e.g. {"interval": ["must be at least 1"]}."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        details = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        super().__init__(f"Validation failed ({details})")


class NotFoundError(RecurringTodosError):
    pass


class StoreError(RecurringTodosError):
    pass


class DuplicateOccurrenceError(StoreError):
    def __init__(self, rule_id: int, due_time) -> None:
        self.rule_id = rule_id
        self.due_time = due_time
        super().__init__(f"Todo for recurring_todo_id={rule_id} at {due_time} already exists")
