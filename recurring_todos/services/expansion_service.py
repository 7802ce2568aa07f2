from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from recurring_todos.domain.entities import RecurringTodoEntity, TodoEntity
from recurring_todos.domain.enums import TodoState
from recurring_todos.domain.errors import DuplicateOccurrenceError, StoreError
from recurring_todos.domain.recurrence import expand
from recurring_todos.infra.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_TIME_AHEAD = timedelta(days=7)

_TIME_AHEAD_RE = re.compile(r"^(\d+)([smhdw])$")
_TIME_AHEAD_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


class RuleStore(Protocol):
    def list_active(
        self,
        window_end: datetime | None = None,
        window_start: datetime | None = None,
    ) -> list[RecurringTodoEntity]: ...


class TaskStore(Protocol):
    def existing_occurrences(self, rule_id: int) -> set[datetime]: ...

    def insert_occurrence(self, data: dict) -> TodoEntity: ...


@dataclass(frozen=True)
class RuleFailure:
    rule_id: int
    reason: str


@dataclass
class ExpansionReport:
    window_end: datetime
    rules_processed: int = 0
    occurrences_created: int = 0
    rules_failed: list[RuleFailure] = field(default_factory=list)
    created_by_rule: dict[int, int] = field(default_factory=dict)

    @property
    def rules_succeeded(self) -> int:
        return self.rules_processed - len(self.rules_failed)

    def summary(self) -> str:
        noun = "todo" if self.occurrences_created == 1 else "todos"
        text = (
            f"Generated {self.occurrences_created} {noun} from "
            f"{self.rules_processed} recurring todos"
        )
        if self.rules_failed:
            text += f" ({len(self.rules_failed)} failed)"
        return text


def parse_time_ahead(time_ahead: str) -> timedelta:
    """Parse ``30s``, ``30m``, ``1h``, ``2d`` or ``1w``; anything else means 7 days."""
    match = _TIME_AHEAD_RE.match(time_ahead.strip().lower())
    if not match:
        logger.warning("Invalid time ahead format: %s, defaulting to 7d", time_ahead)
        return DEFAULT_TIME_AHEAD
    value, unit = match.groups()
    return _TIME_AHEAD_UNITS[unit] * int(value)


class ExpansionService:
    """Materializes todos for every active rule up to ``now + lookahead``.

    With ``backfill`` enabled each run walks every rule from its ``start_time``,
    so missed occurrences are recovered but the work per run grows with the
    rule's age; a year-old ``second`` rule means millions of candidate instants.
    Set ``backfill=False`` (``EXPANSION_BACKFILL=false``) to bound a run to the
    occurrences inside ``[now, now + lookahead]``.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        task_store: TaskStore,
        clock: Clock | None = None,
        backfill: bool = True,
    ) -> None:
        self._rules = rule_store
        self._tasks = task_store
        self._clock = clock or SystemClock()
        self._backfill = backfill

    def run_expansion(self, lookahead: timedelta | str) -> ExpansionReport:
        if isinstance(lookahead, str):
            lookahead = parse_time_ahead(lookahead)

        now = self._clock.now()
        window_end = now + lookahead
        window_start = None if self._backfill else now
        report = ExpansionReport(window_end=window_end)

        for rule in self._rules.list_active(window_end=window_end, window_start=window_start):
            report.rules_processed += 1
            try:
                self._expand_rule(rule, window_end, window_start, report)
            except StoreError as exc:
                logger.warning("Expansion failed for recurring_todo_id=%s: %s", rule.id, exc)
                report.rules_failed.append(RuleFailure(rule_id=rule.id, reason=str(exc)))

        logger.info(
            "Expansion completed. Generated %s todos for lookahead=%s (window_end=%s).",
            report.occurrences_created,
            lookahead,
            window_end.isoformat(),
        )
        return report

    def _expand_rule(
        self,
        rule: RecurringTodoEntity,
        window_end: datetime,
        window_start: datetime | None,
        report: ExpansionReport,
    ) -> None:
        existing = self._tasks.existing_occurrences(rule.id)
        occurrences = expand(rule, window_end, existing, window_start=window_start)

        for due_time in occurrences:
            try:
                self._tasks.insert_occurrence(self._occurrence_data(rule, due_time))
            except DuplicateOccurrenceError:
                logger.debug("Occurrence %s of recurring_todo_id=%s already exists", due_time, rule.id)
                continue
            report.occurrences_created += 1
            report.created_by_rule[rule.id] = report.created_by_rule.get(rule.id, 0) + 1

    @staticmethod
    def _occurrence_data(rule: RecurringTodoEntity, due_time: datetime) -> dict:
        return {
            "user_id": rule.user_id,
            "recurring_todo_id": rule.id,
            "title": rule.title,
            "note": rule.note,
            "due_time": due_time,
            "is_whole_day": rule.is_whole_day,
            "state": TodoState.PENDING.value,
        }
