"""Expansion of recurring todo rules into concrete occurrence instants.

Occurrence ``n`` of a rule is always computed from the rule's anchor
(``start_time + n * interval units``) rather than by stepping from the
previous occurrence. Month and year steps keep the anchor's day of month and
clamp it to the last day of the target month, so a rule starting on Jan 31
yields Feb 29/28, Mar 31, Apr 30 and so on, and a rule starting on Feb 29
yields Feb 28 in common years.
"""
from __future__ import annotations

import calendar
from collections.abc import Collection
from datetime import datetime, timedelta

from .entities import RecurringTodoEntity
from .enums import IntervalUnit, RuleState

_FIXED_STEPS = {
    IntervalUnit.SECOND: timedelta(seconds=1),
    IntervalUnit.MINUTE: timedelta(minutes=1),
    IntervalUnit.HOUR: timedelta(hours=1),
    IntervalUnit.DAY: timedelta(days=1),
    IntervalUnit.WEEK: timedelta(weeks=1),
}

_MONTHS_PER_UNIT = {
    IntervalUnit.MONTH: 1,
    IntervalUnit.YEAR: 12,
}


def add_interval(instant: datetime, amount: int, unit: IntervalUnit | str) -> datetime:
    unit = IntervalUnit(unit)
    if unit in _FIXED_STEPS:
        return instant + _FIXED_STEPS[unit] * amount
    return _add_months(instant, amount * _MONTHS_PER_UNIT[unit])


def occurrence_at(start: datetime, index: int, interval: int, unit: IntervalUnit | str) -> datetime:
    return add_interval(start, index * interval, unit)


def expand(
    rule: RecurringTodoEntity,
    window_end: datetime,
    existing_occurrences: Collection[datetime],
    window_start: datetime | None = None,
) -> list[datetime]:
    """Return the occurrences of ``rule`` that still need a todo.

    Both window ends are inclusive, as is ``rule.end_time``. Instants in
    ``existing_occurrences`` are skipped by exact equality. With
    ``window_start`` the occurrences before it are skipped as well.
    """
    if rule.state != RuleState.ACTIVE or rule.deleted_at is not None:
        raise ValueError(f"Recurring todo {rule.id} is not active")
    if rule.interval < 1:
        raise ValueError(f"Recurring todo {rule.id} has invalid interval {rule.interval}")

    unit = IntervalUnit(rule.interval_unit)
    index = _first_index(rule.start_time, window_start, rule.interval, unit)
    occurrence = occurrence_at(rule.start_time, index, rule.interval, unit)

    emitted: list[datetime] = []
    while occurrence <= window_end and (rule.end_time is None or occurrence <= rule.end_time):
        if occurrence not in existing_occurrences:
            emitted.append(occurrence)
        index += 1
        occurrence = occurrence_at(rule.start_time, index, rule.interval, unit)
    return emitted


def _first_index(start: datetime, window_start: datetime | None, interval: int, unit: IntervalUnit) -> int:
    if window_start is None or window_start <= start:
        return 0

    if unit in _FIXED_STEPS:
        periods, remainder = divmod(window_start - start, _FIXED_STEPS[unit] * interval)
        return periods + (1 if remainder else 0)

    months_per_step = interval * _MONTHS_PER_UNIT[unit]
    months_diff = (window_start.year - start.year) * 12 + window_start.month - start.month
    # lands in window_start's month or earlier, so at most one step short
    index = months_diff // months_per_step
    while occurrence_at(start, index, interval, unit) < window_start:
        index += 1
    return index


def _add_months(base: datetime, months: int) -> datetime:
    year = base.year + (base.month - 1 + months) // 12
    month = (base.month - 1 + months) % 12 + 1
    day = min(base.day, _days_in_month(year, month))
    return base.replace(year=year, month=month, day=day)


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]
