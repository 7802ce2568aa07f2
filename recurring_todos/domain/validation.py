from __future__ import annotations

from datetime import datetime

from .enums import IntervalUnit, RuleState, TodoState
from .errors import ValidationError

TITLE_MAX_LENGTH = 255
MAX_PER_PAGE = 100


def _check_title(title, errors: dict[str, list[str]]) -> None:
    if not isinstance(title, str) or not title.strip():
        errors.setdefault("title", []).append("The title field is required.")
    elif len(title) > TITLE_MAX_LENGTH:
        errors.setdefault("title", []).append(f"The title may not be greater than {TITLE_MAX_LENGTH} characters.")


def _check_choice(field: str, value, enum_cls, errors: dict[str, list[str]]) -> None:
    try:
        enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors.setdefault(field, []).append(f"The {field} must be one of: {allowed}.")


def validate_rule(data: dict) -> None:
    """Validate a complete recurring todo record (create, or update merged onto the stored one)."""
    errors: dict[str, list[str]] = {}

    _check_title(data.get("title"), errors)

    interval = data.get("interval")
    if isinstance(interval, bool) or not isinstance(interval, int):
        errors.setdefault("interval", []).append("The interval must be an integer.")
    elif interval < 1:
        errors.setdefault("interval", []).append("The interval must be at least 1.")

    _check_choice("interval_unit", data.get("interval_unit"), IntervalUnit, errors)
    _check_choice("state", data.get("state", RuleState.ACTIVE), RuleState, errors)

    start_time = data.get("start_time")
    end_time = data.get("end_time")
    if not isinstance(start_time, datetime):
        errors.setdefault("start_time", []).append("The start time is required.")
    if end_time is not None:
        if not isinstance(end_time, datetime):
            errors.setdefault("end_time", []).append("The end time must be a datetime.")
        elif isinstance(start_time, datetime) and end_time < start_time:
            errors.setdefault("end_time", []).append("The end time must be a date after or equal to start time.")

    if errors:
        raise ValidationError(errors)


def validate_todo(data: dict, rule_exists: bool = True) -> None:
    """``rule_exists`` is False when ``recurring_todo_id`` names no stored recurring todo."""
    errors: dict[str, list[str]] = {}

    _check_title(data.get("title"), errors)
    _check_choice("state", data.get("state", TodoState.PENDING), TodoState, errors)

    due_time = data.get("due_time")
    if due_time is not None and not isinstance(due_time, datetime):
        errors.setdefault("due_time", []).append("The due time must be a datetime.")

    if not rule_exists:
        errors.setdefault("recurring_todo_id", []).append("The selected recurring todo id is invalid.")

    if errors:
        raise ValidationError(errors)


def validate_paging(page: int, per_page: int | None) -> None:
    errors: dict[str, list[str]] = {}
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        errors.setdefault("page", []).append("The page must be at least 1.")
    if per_page is not None and (
        isinstance(per_page, bool) or not isinstance(per_page, int) or not 1 <= per_page <= MAX_PER_PAGE
    ):
        errors.setdefault("per_page", []).append(f"The per page must be between 1 and {MAX_PER_PAGE}.")
    if errors:
        raise ValidationError(errors)
