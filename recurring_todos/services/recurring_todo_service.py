from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import timedelta

from recurring_todos.domain.entities import RecurringTodoEntity
from recurring_todos.domain.enums import IntervalUnit, RuleState
from recurring_todos.domain.errors import NotFoundError
from recurring_todos.domain.filters import RuleFilters
from recurring_todos.domain.validation import validate_paging, validate_rule
from recurring_todos.infra.repository import RecurringTodoRepository

from .expansion_service import ExpansionReport, ExpansionService

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "user_id",
    "title",
    "note",
    "interval",
    "interval_unit",
    "start_time",
    "end_time",
    "is_whole_day",
    "state",
)


class RecurringTodoService:
    def __init__(self, repo: RecurringTodoRepository, expansion: ExpansionService | None = None) -> None:
        self._repo = repo
        self._expansion = expansion

    def list_rules(
        self,
        state: RuleState | str | None = None,
        include_deleted: bool = False,
        page: int = 1,
        per_page: int | None = None,
    ) -> list[RecurringTodoEntity]:
        validate_paging(page, per_page)
        filters = RuleFilters(
            state=RuleState(state) if state else None,
            include_deleted=include_deleted,
            page=page,
            per_page=per_page,
        )
        return self._repo.list_rules(filters)

    def get_rule(self, rule_id: int, include_deleted: bool = False) -> RecurringTodoEntity:
        rule = self._repo.get_rule(rule_id, include_deleted=include_deleted)
        if not rule:
            raise NotFoundError(f"Recurring todo {rule_id} not found")
        return rule

    def create_rule(self, data: dict) -> RecurringTodoEntity:
        normalized = self._normalize_data(data)
        normalized.setdefault("state", RuleState.ACTIVE.value)
        normalized.setdefault("interval", 1)
        normalized.setdefault("interval_unit", IntervalUnit.DAY.value)
        validate_rule(normalized)
        rule = self._repo.create_rule(normalized)
        logger.info("Created recurring todo id=%s every %s %s", rule.id, rule.interval, rule.interval_unit)
        return rule

    def update_rule(self, rule_id: int, data: dict) -> RecurringTodoEntity:
        current = self.get_rule(rule_id)
        normalized = self._normalize_data(data)
        merged = {key: value for key, value in asdict(current).items() if key in _EDITABLE_FIELDS}
        merged.update(normalized)
        validate_rule(merged)
        # generated todos keep the title and note they were created with
        return self._update_or_raise(rule_id, normalized)

    def pause_rule(self, rule_id: int) -> RecurringTodoEntity:
        return self._update_or_raise(rule_id, {"state": RuleState.PAUSED.value})

    def resume_rule(self, rule_id: int) -> RecurringTodoEntity:
        return self._update_or_raise(rule_id, {"state": RuleState.ACTIVE.value})

    def delete_rule(self, rule_id: int) -> None:
        if not self._repo.soft_delete_rule(rule_id):
            raise NotFoundError(f"Recurring todo {rule_id} not found")

    def restore_rule(self, rule_id: int) -> RecurringTodoEntity:
        rule = self._repo.restore_rule(rule_id)
        if not rule:
            raise NotFoundError(f"Recurring todo {rule_id} not found")
        return rule

    def force_delete_rule(self, rule_id: int) -> None:
        """Remove the rule permanently. Todos it generated are kept and lose their link."""
        if not self._repo.hard_delete_rule(rule_id):
            raise NotFoundError(f"Recurring todo {rule_id} not found")
        logger.info("Permanently deleted recurring todo id=%s", rule_id)

    def generate(self, time_ahead: str | timedelta = "1h") -> ExpansionReport:
        if self._expansion is None:
            raise RuntimeError("RecurringTodoService was created without an ExpansionService")
        return self._expansion.run_expansion(time_ahead)

    def _update_or_raise(self, rule_id: int, data: dict) -> RecurringTodoEntity:
        rule = self._repo.update_rule(rule_id, data)
        if not rule:
            raise NotFoundError(f"Recurring todo {rule_id} not found")
        return rule

    def _normalize_data(self, data: dict) -> dict:
        normalized = {key: value for key, value in data.items() if key in _EDITABLE_FIELDS}
        for key in ("state", "interval_unit"):
            if isinstance(normalized.get(key), (RuleState, IntervalUnit)):
                normalized[key] = normalized[key].value
        return normalized
