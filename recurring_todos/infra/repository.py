from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from recurring_todos.domain.entities import RecurringTodoEntity, TodoEntity
from recurring_todos.domain.enums import IntervalUnit, RuleState, TodoState
from recurring_todos.domain.errors import DuplicateOccurrenceError, StoreError
from recurring_todos.domain.filters import RuleFilters, TodoFilters

from .clock import utcnow
from .db import SessionLocal
from .models import RecurringTodoModel, TodoModel


def _to_rule_entity(model: RecurringTodoModel) -> RecurringTodoEntity:
    return RecurringTodoEntity(
        id=model.id,
        title=model.title,
        note=model.note,
        interval=model.interval,
        interval_unit=IntervalUnit(model.interval_unit),
        start_time=model.start_time,
        end_time=model.end_time,
        state=RuleState(model.state),
        user_id=model.user_id,
        is_whole_day=model.is_whole_day,
        created_at=model.created_at,
        updated_at=model.updated_at,
        deleted_at=model.deleted_at,
    )


def _to_todo_entity(model: TodoModel) -> TodoEntity:
    return TodoEntity(
        id=model.id,
        recurring_todo_id=model.recurring_todo_id,
        title=model.title,
        note=model.note,
        due_time=model.due_time,
        state=TodoState(model.state),
        user_id=model.user_id,
        is_whole_day=model.is_whole_day,
        created_at=model.created_at,
        updated_at=model.updated_at,
        completed_at=model.completed_at,
        deleted_at=model.deleted_at,
    )


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


def _paginate(stmt, page: int, per_page: int | None):
    if per_page is None:
        return stmt
    return stmt.limit(per_page).offset((page - 1) * per_page)


class _BaseRepository:
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def _session(self) -> Session:
        return self._session_factory()


class RecurringTodoRepository(_BaseRepository):
    def list_active(
        self,
        window_end: Optional[datetime] = None,
        window_start: Optional[datetime] = None,
    ) -> list[RecurringTodoEntity]:
        with _store_errors("Listing active recurring todos"), self._session() as session:
            stmt = select(RecurringTodoModel).where(
                RecurringTodoModel.state == RuleState.ACTIVE.value,
                RecurringTodoModel.deleted_at.is_(None),
            )
            if window_end is not None:
                stmt = stmt.where(RecurringTodoModel.start_time <= window_end)
            if window_start is not None:
                stmt = stmt.where(
                    or_(
                        RecurringTodoModel.end_time.is_(None),
                        RecurringTodoModel.end_time >= window_start,
                    )
                )
            stmt = stmt.order_by(RecurringTodoModel.id.asc())
            return [_to_rule_entity(rule) for rule in session.scalars(stmt)]

    def list_rules(self, filters: RuleFilters) -> list[RecurringTodoEntity]:
        with _store_errors("Listing recurring todos"), self._session() as session:
            stmt = select(RecurringTodoModel)
            if filters.state is not None:
                stmt = stmt.where(RecurringTodoModel.state == RuleState(filters.state).value)
            if not filters.include_deleted:
                stmt = stmt.where(RecurringTodoModel.deleted_at.is_(None))
            stmt = stmt.order_by(RecurringTodoModel.created_at.desc(), RecurringTodoModel.id.desc())
            stmt = _paginate(stmt, filters.page, filters.per_page)
            return [_to_rule_entity(rule) for rule in session.scalars(stmt)]

    def get_rule(self, rule_id: int, include_deleted: bool = False) -> Optional[RecurringTodoEntity]:
        with _store_errors("Reading recurring todo"), self._session() as session:
            rule = session.get(RecurringTodoModel, rule_id)
            if not rule or (rule.deleted_at is not None and not include_deleted):
                return None
            return _to_rule_entity(rule)

    def create_rule(self, data: dict) -> RecurringTodoEntity:
        with _store_errors("Creating recurring todo"), self._session() as session:
            rule = RecurringTodoModel(**data)
            session.add(rule)
            session.commit()
            session.refresh(rule)
            return _to_rule_entity(rule)

    def update_rule(self, rule_id: int, data: dict) -> Optional[RecurringTodoEntity]:
        with _store_errors("Updating recurring todo"), self._session() as session:
            rule = session.get(RecurringTodoModel, rule_id)
            if not rule or rule.deleted_at is not None:
                return None
            for key, value in data.items():
                setattr(rule, key, value)
            session.commit()
            session.refresh(rule)
            return _to_rule_entity(rule)

    def soft_delete_rule(self, rule_id: int) -> Optional[RecurringTodoEntity]:
        return self.update_rule(rule_id, {"deleted_at": utcnow()})

    def restore_rule(self, rule_id: int) -> Optional[RecurringTodoEntity]:
        with _store_errors("Restoring recurring todo"), self._session() as session:
            rule = session.get(RecurringTodoModel, rule_id)
            if not rule:
                return None
            rule.deleted_at = None
            session.commit()
            session.refresh(rule)
            return _to_rule_entity(rule)

    def hard_delete_rule(self, rule_id: int) -> bool:
        with _store_errors("Deleting recurring todo"), self._session() as session:
            rule = session.get(RecurringTodoModel, rule_id)
            if not rule:
                return False
            # generated todos outlive their rule; SQLite does not enforce ON DELETE SET NULL
            session.execute(
                update(TodoModel)
                .where(TodoModel.recurring_todo_id == rule_id)
                .values(recurring_todo_id=None)
            )
            session.delete(rule)
            session.commit()
            return True


def _apply_todo_filters(stmt, filters: TodoFilters) -> object:
    if filters.state is not None:
        stmt = stmt.where(TodoModel.state == TodoState(filters.state).value)

    if filters.recurring_todo_id is not None:
        stmt = stmt.where(TodoModel.recurring_todo_id == filters.recurring_todo_id)

    if not filters.include_deleted:
        stmt = stmt.where(TodoModel.deleted_at.is_(None))

    if filters.due_before is not None:
        stmt = stmt.where(TodoModel.due_time.is_not(None), TodoModel.due_time <= filters.due_before)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TodoModel.title.ilike(pattern),
                TodoModel.note.ilike(pattern),
            )
        )

    return stmt


class TodoRepository(_BaseRepository):
    def list_todos(self, filters: TodoFilters) -> list[TodoEntity]:
        with _store_errors("Listing todos"), self._session() as session:
            stmt = select(TodoModel)
            stmt = _apply_todo_filters(stmt, filters)
            stmt = stmt.order_by(
                TodoModel.due_time.is_(None),
                TodoModel.due_time.asc(),
                TodoModel.id.asc(),
            )
            stmt = _paginate(stmt, filters.page, filters.per_page)
            return [_to_todo_entity(todo) for todo in session.scalars(stmt)]

    def get_todo(self, todo_id: int, include_deleted: bool = False) -> Optional[TodoEntity]:
        with _store_errors("Reading todo"), self._session() as session:
            todo = session.get(TodoModel, todo_id)
            if not todo or (todo.deleted_at is not None and not include_deleted):
                return None
            return _to_todo_entity(todo)

    def create_todo(self, data: dict) -> TodoEntity:
        with _store_errors("Creating todo"), self._session() as session:
            todo = TodoModel(**data)
            session.add(todo)
            session.commit()
            session.refresh(todo)
            return _to_todo_entity(todo)

    def update_todo(self, todo_id: int, data: dict) -> Optional[TodoEntity]:
        with _store_errors("Updating todo"), self._session() as session:
            todo = session.get(TodoModel, todo_id)
            if not todo or todo.deleted_at is not None:
                return None
            for key, value in data.items():
                setattr(todo, key, value)
            session.commit()
            session.refresh(todo)
            return _to_todo_entity(todo)

    def soft_delete_todo(self, todo_id: int) -> Optional[TodoEntity]:
        return self.update_todo(todo_id, {"deleted_at": utcnow()})

    def restore_todo(self, todo_id: int) -> Optional[TodoEntity]:
        with _store_errors("Restoring todo"), self._session() as session:
            todo = session.get(TodoModel, todo_id)
            if not todo:
                return None
            todo.deleted_at = None
            session.commit()
            session.refresh(todo)
            return _to_todo_entity(todo)

    def hard_delete_todo(self, todo_id: int) -> bool:
        with _store_errors("Deleting todo"), self._session() as session:
            todo = session.get(TodoModel, todo_id)
            if not todo:
                return False
            session.delete(todo)
            session.commit()
            return True

    def existing_occurrences(self, rule_id: int) -> set[datetime]:
        # soft-deleted todos count, so a todo the user removed is not generated again
        with _store_errors("Reading existing occurrences"), self._session() as session:
            stmt = select(TodoModel.due_time).where(
                TodoModel.recurring_todo_id == rule_id,
                TodoModel.due_time.is_not(None),
            )
            return set(session.scalars(stmt))

    def insert_occurrence(self, data: dict) -> TodoEntity:
        rule_id = data["recurring_todo_id"]
        due_time = data["due_time"]
        with _store_errors("Inserting occurrence"), self._session() as session:
            todo = TodoModel(**data)
            session.add(todo)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                exists = session.scalar(
                    select(TodoModel.id).where(
                        TodoModel.recurring_todo_id == rule_id,
                        TodoModel.due_time == due_time,
                    )
                )
                if exists is not None:
                    raise DuplicateOccurrenceError(rule_id, due_time) from None
                raise
            session.refresh(todo)
            return _to_todo_entity(todo)
