from __future__ import annotations

from datetime import datetime

import pytest

from conftest import FixedClock
from recurring_todos.domain.enums import RuleState, TodoState
from recurring_todos.domain.errors import DuplicateOccurrenceError, NotFoundError, StoreError, ValidationError
from recurring_todos.domain.filters import RuleFilters, TodoFilters
from recurring_todos.infra.repository import RecurringTodoRepository, TodoRepository
from recurring_todos.services.expansion_service import ExpansionService
from recurring_todos.services.recurring_todo_service import RecurringTodoService
from recurring_todos.services.todo_service import TodoService


def rule_data(**overrides) -> dict:
    data = {
        "title": "Stretch",
        "note": "10 minutes",
        "interval": 1,
        "interval_unit": "day",
        "start_time": datetime(2024, 1, 1, 7),
        "state": "active",
    }
    data.update(overrides)
    return data


def occurrence_data(rule_id: int, due_time: datetime) -> dict:
    return {
        "recurring_todo_id": rule_id,
        "title": "Stretch",
        "note": None,
        "due_time": due_time,
        "state": TodoState.PENDING.value,
    }


def test_list_active_excludes_paused_deleted_and_out_of_window(session_factory) -> None:
    repo = RecurringTodoRepository(session_factory)
    active = repo.create_rule(rule_data())
    repo.create_rule(rule_data(state="paused"))
    deleted = repo.create_rule(rule_data())
    repo.soft_delete_rule(deleted.id)
    repo.create_rule(rule_data(start_time=datetime(2025, 1, 1)))
    repo.create_rule(rule_data(end_time=datetime(2024, 1, 2)))

    rules = repo.list_active(window_end=datetime(2024, 6, 1), window_start=datetime(2024, 3, 1))

    assert [r.id for r in rules] == [active.id]
    assert rules[0].state == RuleState.ACTIVE


def test_list_rules_and_restore(session_factory) -> None:
    repo = RecurringTodoRepository(session_factory)
    rule = repo.create_rule(rule_data())
    repo.soft_delete_rule(rule.id)

    assert repo.list_rules(RuleFilters()) == []
    assert len(repo.list_rules(RuleFilters(include_deleted=True))) == 1
    assert repo.get_rule(rule.id) is None
    assert repo.restore_rule(rule.id).deleted_at is None
    assert repo.get_rule(rule.id).title == "Stretch"


def test_rules_are_paged_newest_first(session_factory) -> None:
    repo = RecurringTodoRepository(session_factory)
    ids = [repo.create_rule(rule_data(title=f"Rule {n}")).id for n in range(5)]

    first = repo.list_rules(RuleFilters(per_page=2))
    last = repo.list_rules(RuleFilters(page=3, per_page=2))

    assert [r.id for r in first] == [ids[4], ids[3]]
    assert [r.id for r in last] == [ids[0]]
    assert repo.list_rules(RuleFilters(page=4, per_page=2)) == []


def test_hard_delete_rule_keeps_generated_todos(session_factory) -> None:
    rules = RecurringTodoRepository(session_factory)
    todos = TodoRepository(session_factory)
    rule = rules.create_rule(rule_data())
    todo = todos.insert_occurrence(occurrence_data(rule.id, datetime(2024, 1, 1, 7)))

    assert rules.hard_delete_rule(rule.id) is True

    assert rules.get_rule(rule.id, include_deleted=True) is None
    assert rules.restore_rule(rule.id) is None
    assert todos.get_todo(todo.id).recurring_todo_id is None
    assert rules.hard_delete_rule(rule.id) is False


def test_insert_occurrence_rejects_duplicates(session_factory) -> None:
    rules = RecurringTodoRepository(session_factory)
    todos = TodoRepository(session_factory)
    rule = rules.create_rule(rule_data())
    due = datetime(2024, 1, 1, 7)

    todos.insert_occurrence(occurrence_data(rule.id, due))
    with pytest.raises(DuplicateOccurrenceError):
        todos.insert_occurrence(occurrence_data(rule.id, due))

    assert todos.existing_occurrences(rule.id) == {due}


def test_manual_todos_share_due_times_freely(session_factory) -> None:
    todos = TodoRepository(session_factory)
    due = datetime(2024, 1, 1, 7)

    todos.create_todo({"title": "One", "due_time": due})
    todos.create_todo({"title": "Two", "due_time": due})

    assert len(todos.list_todos(TodoFilters())) == 2


def test_soft_deleted_todo_still_counts_as_existing(session_factory) -> None:
    rules = RecurringTodoRepository(session_factory)
    todos = TodoRepository(session_factory)
    rule = rules.create_rule(rule_data())
    todo = todos.insert_occurrence(occurrence_data(rule.id, datetime(2024, 1, 1, 7)))

    todos.soft_delete_todo(todo.id)

    assert todos.list_todos(TodoFilters(recurring_todo_id=rule.id)) == []
    assert todos.existing_occurrences(rule.id) == {datetime(2024, 1, 1, 7)}


def test_todo_filters(session_factory) -> None:
    todos = TodoRepository(session_factory)
    todos.create_todo({"title": "Buy milk", "due_time": datetime(2024, 1, 2), "state": "completed"})
    todos.create_todo({"title": "Buy bread", "due_time": datetime(2024, 1, 5)})
    todos.create_todo({"title": "Call mom"})

    assert [t.title for t in todos.list_todos(TodoFilters(search="buy"))] == ["Buy milk", "Buy bread"]
    assert [t.title for t in todos.list_todos(TodoFilters(state=TodoState.PENDING))] == ["Buy bread", "Call mom"]
    assert [t.title for t in todos.list_todos(TodoFilters(due_before=datetime(2024, 1, 3)))] == ["Buy milk"]


def test_todos_are_paged_by_due_time(session_factory) -> None:
    todos = TodoRepository(session_factory)
    for day in (3, 1, 2):
        todos.create_todo({"title": f"Day {day}", "due_time": datetime(2024, 1, day)})

    page = todos.list_todos(TodoFilters(page=2, per_page=2))

    assert [t.title for t in page] == ["Day 3"]


def test_hard_delete_todo_removes_soft_deleted_rows_too(session_factory) -> None:
    todos = TodoRepository(session_factory)
    todo = todos.create_todo({"title": "Old"})
    todos.soft_delete_todo(todo.id)

    assert todos.hard_delete_todo(todo.id) is True

    assert todos.get_todo(todo.id, include_deleted=True) is None
    assert todos.list_todos(TodoFilters(include_deleted=True)) == []
    assert todos.hard_delete_todo(todo.id) is False


def test_sqlalchemy_errors_surface_as_store_errors(session_factory) -> None:
    todos = TodoRepository(session_factory)

    with pytest.raises(StoreError):
        todos.create_todo({"title": None})


def test_generation_end_to_end(session_factory) -> None:
    rule_repo = RecurringTodoRepository(session_factory)
    todo_repo = TodoRepository(session_factory)
    clock = FixedClock(datetime(2024, 1, 3, 7))
    rules = RecurringTodoService(rule_repo, ExpansionService(rule_repo, todo_repo, clock))
    todos = TodoService(todo_repo, rule_repo)
    rule = rules.create_rule(rule_data())

    first = rules.generate("1d")
    second = rules.generate("1d")

    assert first.occurrences_created == 4
    assert second.occurrences_created == 0
    generated = todos.list_todos(TodoFilters(recurring_todo_id=rule.id))
    assert [t.due_time.day for t in generated] == [1, 2, 3, 4]
    assert all(t.title == "Stretch" and t.note == "10 minutes" for t in generated)

    rules.update_rule(rule.id, {"title": "Long stretch", "note": None})
    todos.complete_todo(generated[0].id)
    rules.pause_rule(rule.id)
    assert rules.generate("1w").occurrences_created == 0

    rules.resume_rule(rule.id)
    third = rules.generate("1w")

    assert third.occurrences_created == 6
    by_day = {t.due_time.day: t for t in todos.list_todos(TodoFilters(recurring_todo_id=rule.id))}
    assert by_day[1].title == "Stretch"
    assert by_day[1].state == TodoState.COMPLETED
    assert by_day[10].title == "Long stretch"
    assert by_day[10].state == TodoState.PENDING


def test_todo_must_reference_a_stored_rule(session_factory) -> None:
    rule_repo = RecurringTodoRepository(session_factory)
    todos = TodoService(TodoRepository(session_factory), rule_repo)
    rule = rule_repo.create_rule(rule_data())
    rule_repo.soft_delete_rule(rule.id)

    with pytest.raises(ValidationError) as excinfo:
        todos.create_todo({"title": "Orphan", "recurring_todo_id": rule.id + 1})
    assert excinfo.value.errors == {"recurring_todo_id": ["The selected recurring todo id is invalid."]}

    linked = todos.create_todo({"title": "Linked", "recurring_todo_id": rule.id})
    assert linked.recurring_todo_id == rule.id


def test_force_delete_through_services(session_factory) -> None:
    rule_repo = RecurringTodoRepository(session_factory)
    todo_repo = TodoRepository(session_factory)
    rules = RecurringTodoService(rule_repo)
    todos = TodoService(todo_repo, rule_repo)
    rule = rules.create_rule(rule_data())
    todo = todos.create_todo({"title": "Linked", "recurring_todo_id": rule.id})

    rules.force_delete_rule(rule.id)
    with pytest.raises(NotFoundError):
        rules.force_delete_rule(rule.id)
    assert todos.get_todo(todo.id).recurring_todo_id is None

    todos.force_delete_todo(todo.id)
    with pytest.raises(NotFoundError):
        todos.get_todo(todo.id)
    with pytest.raises(NotFoundError):
        todos.force_delete_todo(todo.id)
