from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from recurring_todos.domain.entities import RecurringTodoEntity
from recurring_todos.domain.enums import IntervalUnit, RuleState
from recurring_todos.domain.recurrence import add_interval, expand, occurrence_at


def make_rule(**overrides) -> RecurringTodoEntity:
    data = {
        "id": 1,
        "title": "Water plants",
        "note": None,
        "interval": 1,
        "interval_unit": IntervalUnit.DAY,
        "start_time": datetime(2024, 1, 1),
        "end_time": None,
        "state": RuleState.ACTIVE,
    }
    data.update(overrides)
    return RecurringTodoEntity(**data)


def test_daily_rule_includes_both_window_ends() -> None:
    rule = make_rule()

    result = expand(rule, datetime(2024, 1, 4), set())

    assert result == [
        datetime(2024, 1, 1),
        datetime(2024, 1, 2),
        datetime(2024, 1, 3),
        datetime(2024, 1, 4),
    ]


def test_second_call_with_existing_occurrences_is_empty() -> None:
    rule = make_rule()
    first = expand(rule, datetime(2024, 1, 4), set())

    assert expand(rule, datetime(2024, 1, 4), set(first)) == []


def test_ten_day_window_yields_eleven_evenly_spaced_instants() -> None:
    start = datetime(2024, 3, 1, 8, 30)
    rule = make_rule(start_time=start)

    result = expand(rule, start + timedelta(days=10), set())

    assert len(result) == 11
    assert all(later - earlier == timedelta(days=1) for earlier, later in zip(result, result[1:]))


def test_results_stay_inside_window_and_end_time() -> None:
    rule = make_rule(
        interval=5,
        interval_unit=IntervalUnit.HOUR,
        start_time=datetime(2024, 1, 1, 3),
        end_time=datetime(2024, 1, 3, 0),
    )
    window_end = datetime(2024, 1, 10)

    result = expand(rule, window_end, set())

    assert result
    assert all(rule.start_time <= t <= window_end and t <= rule.end_time for t in result)
    assert result[-1] == datetime(2024, 1, 3, 0)
    assert result == sorted(result)


def test_window_before_start_is_empty() -> None:
    rule = make_rule(start_time=datetime(2024, 6, 1))

    assert expand(rule, datetime(2024, 5, 31, 23, 59, 59), set()) == []


def test_start_equal_to_end_yields_single_occurrence() -> None:
    rule = make_rule(start_time=datetime(2024, 1, 1, 9), end_time=datetime(2024, 1, 1, 9))

    assert expand(rule, datetime(2024, 2, 1), set()) == [datetime(2024, 1, 1, 9)]


def test_month_end_is_clamped_in_leap_year() -> None:
    rule = make_rule(interval_unit=IntervalUnit.MONTH, start_time=datetime(2024, 1, 31, 9))

    result = expand(rule, datetime(2024, 5, 31, 9), set())

    assert result == [
        datetime(2024, 1, 31, 9),
        datetime(2024, 2, 29, 9),
        datetime(2024, 3, 31, 9),
        datetime(2024, 4, 30, 9),
        datetime(2024, 5, 31, 9),
    ]


def test_month_end_is_clamped_in_common_year() -> None:
    rule = make_rule(interval_unit=IntervalUnit.MONTH, start_time=datetime(2023, 1, 31))

    result = expand(rule, datetime(2023, 3, 31), set())

    assert result == [datetime(2023, 1, 31), datetime(2023, 2, 28), datetime(2023, 3, 31)]


def test_leap_day_yearly_rule_clamps_to_february_28() -> None:
    rule = make_rule(interval_unit=IntervalUnit.YEAR, start_time=datetime(2024, 2, 29))

    result = expand(rule, datetime(2028, 3, 1), set())

    assert result == [
        datetime(2024, 2, 29),
        datetime(2025, 2, 28),
        datetime(2026, 2, 28),
        datetime(2027, 2, 28),
        datetime(2028, 2, 29),
    ]


def test_existing_check_uses_exact_instants() -> None:
    rule = make_rule()
    existing = {datetime(2024, 1, 2), datetime(2024, 1, 3, 0, 0, 1)}

    result = expand(rule, datetime(2024, 1, 3), existing)

    assert result == [datetime(2024, 1, 1), datetime(2024, 1, 3)]


def test_window_start_skips_earlier_occurrences() -> None:
    rule = make_rule()

    result = expand(rule, datetime(2024, 1, 6), set(), window_start=datetime(2024, 1, 3, 12))

    assert result == [datetime(2024, 1, 4), datetime(2024, 1, 5), datetime(2024, 1, 6)]


def test_window_start_on_an_occurrence_includes_it() -> None:
    rule = make_rule(interval=2, interval_unit=IntervalUnit.WEEK)

    result = expand(rule, datetime(2024, 2, 12), set(), window_start=datetime(2024, 1, 29))

    assert result == [datetime(2024, 1, 29), datetime(2024, 2, 12)]


def test_window_start_with_clamped_months() -> None:
    rule = make_rule(interval_unit=IntervalUnit.MONTH, start_time=datetime(2024, 1, 31))

    result = expand(rule, datetime(2024, 4, 30), set(), window_start=datetime(2024, 3, 1))

    assert result == [datetime(2024, 3, 31), datetime(2024, 4, 30)]


def test_paused_rule_is_a_precondition_violation() -> None:
    with pytest.raises(ValueError):
        expand(make_rule(state=RuleState.PAUSED), datetime(2024, 1, 4), set())


def test_zero_interval_is_a_precondition_violation() -> None:
    with pytest.raises(ValueError):
        expand(make_rule(interval=0), datetime(2024, 1, 4), set())


def test_add_interval_units() -> None:
    base = datetime(2024, 1, 31, 12)

    assert add_interval(base, 90, IntervalUnit.SECOND) == datetime(2024, 1, 31, 12, 1, 30)
    assert add_interval(base, 15, "minute") == datetime(2024, 1, 31, 12, 15)
    assert add_interval(base, 2, IntervalUnit.WEEK) == datetime(2024, 2, 14, 12)
    assert add_interval(base, 13, IntervalUnit.MONTH) == datetime(2025, 2, 28, 12)
    assert occurrence_at(base, 3, 2, IntervalUnit.MONTH) == datetime(2024, 7, 31, 12)
