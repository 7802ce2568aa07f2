from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone

from recurring_todos.config import SETTINGS
from recurring_todos.domain.enums import IntervalUnit, RuleState, TodoState
from recurring_todos.domain.errors import RecurringTodosError
from recurring_todos.domain.filters import TodoFilters
from recurring_todos.infra.db import init_db
from recurring_todos.infra.logging import setup_logging
from recurring_todos.infra.repository import RecurringTodoRepository, TodoRepository
from recurring_todos.services.expansion_service import ExpansionService
from recurring_todos.services.recurring_todo_service import RecurringTodoService
from recurring_todos.services.todo_service import TodoService

logger = logging.getLogger(__name__)


def _parse_instant(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO 8601 datetime: {value!r}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _add_paging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--per-page", type=int, help="Rows per page, 1 to 100 (default: all)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recurring-todos",
        description="Generate and manage todos from recurring todo rules.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Generate todos for the coming period")
    generate.add_argument(
        "--time-ahead",
        default=SETTINGS.generation_period,
        help="How far ahead to generate, e.g. 30m, 1h, 2d, 1w (default: %(default)s)",
    )

    rules = commands.add_parser("rules", help="Manage recurring todos")
    rule_commands = rules.add_subparsers(dest="rules_command", required=True)

    rule_list = rule_commands.add_parser("list", help="List recurring todos")
    rule_list.add_argument("--state", choices=[state.value for state in RuleState])
    rule_list.add_argument("--include-deleted", action="store_true")
    _add_paging_arguments(rule_list)

    rule_add = rule_commands.add_parser("add", help="Create a recurring todo")
    rule_add.add_argument("title")
    rule_add.add_argument("--interval", type=int, default=1)
    rule_add.add_argument("--unit", choices=[unit.value for unit in IntervalUnit], default=IntervalUnit.DAY.value)
    rule_add.add_argument("--start", type=_parse_instant, required=True, help="ISO 8601, naive values are UTC")
    rule_add.add_argument("--end", type=_parse_instant)
    rule_add.add_argument("--note")
    rule_add.add_argument("--whole-day", action="store_true")
    rule_add.add_argument("--paused", action="store_true")

    rule_update = rule_commands.add_parser("update", help="Change a recurring todo")
    rule_update.add_argument("rule_id", type=int)
    rule_update.add_argument("--title")
    rule_update.add_argument("--interval", type=int)
    rule_update.add_argument("--unit", choices=[unit.value for unit in IntervalUnit])
    rule_update.add_argument("--start", type=_parse_instant)
    rule_update.add_argument("--end", type=_parse_instant)
    rule_update.add_argument("--note")
    rule_update.add_argument("--whole-day", action=argparse.BooleanOptionalAction)

    for name in ("pause", "resume", "delete", "restore", "force-delete"):
        action = rule_commands.add_parser(name, help=f"{name.capitalize()} a recurring todo")
        action.add_argument("rule_id", type=int)

    todos = commands.add_parser("todos", help="Manage todos")
    todo_commands = todos.add_subparsers(dest="todos_command", required=True)

    todo_list = todo_commands.add_parser("list", help="List todos")
    todo_list.add_argument("--state", choices=[state.value for state in TodoState])
    todo_list.add_argument("--rule", type=int, dest="rule_id")
    todo_list.add_argument("--include-deleted", action="store_true")
    _add_paging_arguments(todo_list)

    for name in ("start", "complete", "cancel", "delete", "restore", "force-delete"):
        action = todo_commands.add_parser(name, help=f"{name.capitalize()} a todo")
        action.add_argument("todo_id", type=int)

    return parser


def _format_rule(rule) -> str:
    end = rule.end_time.isoformat() if rule.end_time else "-"
    deleted = " (deleted)" if rule.deleted_at else ""
    return (
        f"#{rule.id} [{rule.state}] {rule.title} every {rule.interval} {rule.interval_unit} "
        f"from {rule.start_time.isoformat()} until {end}{deleted}"
    )


def _format_todo(todo) -> str:
    due = todo.due_time.isoformat() if todo.due_time else "-"
    origin = f" <- #{todo.recurring_todo_id}" if todo.recurring_todo_id else ""
    return f"#{todo.id} [{todo.state}] {todo.title} due {due}{origin}"


def _run_rules(args: argparse.Namespace, service: RecurringTodoService) -> None:
    if args.rules_command == "list":
        rules = service.list_rules(
            state=args.state,
            include_deleted=args.include_deleted,
            page=args.page,
            per_page=args.per_page,
        )
        for rule in rules:
            print(_format_rule(rule))
    elif args.rules_command == "add":
        rule = service.create_rule({
            "title": args.title,
            "note": args.note,
            "interval": args.interval,
            "interval_unit": args.unit,
            "start_time": args.start,
            "end_time": args.end,
            "is_whole_day": args.whole_day,
            "state": RuleState.PAUSED.value if args.paused else RuleState.ACTIVE.value,
        })
        print(_format_rule(rule))
    elif args.rules_command == "update":
        changes = {
            "title": args.title,
            "note": args.note,
            "interval": args.interval,
            "interval_unit": args.unit,
            "start_time": args.start,
            "end_time": args.end,
            "is_whole_day": args.whole_day,
        }
        changes = {key: value for key, value in changes.items() if value is not None}
        print(_format_rule(service.update_rule(args.rule_id, changes)))
    elif args.rules_command == "pause":
        print(_format_rule(service.pause_rule(args.rule_id)))
    elif args.rules_command == "resume":
        print(_format_rule(service.resume_rule(args.rule_id)))
    elif args.rules_command == "delete":
        service.delete_rule(args.rule_id)
        print(f"Recurring todo #{args.rule_id} deleted")
    elif args.rules_command == "restore":
        print(_format_rule(service.restore_rule(args.rule_id)))
    elif args.rules_command == "force-delete":
        service.force_delete_rule(args.rule_id)
        print(f"Recurring todo #{args.rule_id} permanently deleted")


def _run_todos(args: argparse.Namespace, service: TodoService) -> None:
    if args.todos_command == "list":
        filters = TodoFilters(
            state=TodoState(args.state) if args.state else None,
            recurring_todo_id=args.rule_id,
            include_deleted=args.include_deleted,
            page=args.page,
            per_page=args.per_page,
        )
        for todo in service.list_todos(filters):
            print(_format_todo(todo))
    elif args.todos_command == "start":
        print(_format_todo(service.start_todo(args.todo_id)))
    elif args.todos_command == "complete":
        print(_format_todo(service.complete_todo(args.todo_id)))
    elif args.todos_command == "cancel":
        print(_format_todo(service.cancel_todo(args.todo_id)))
    elif args.todos_command == "delete":
        service.delete_todo(args.todo_id)
        print(f"Todo #{args.todo_id} deleted")
    elif args.todos_command == "restore":
        print(_format_todo(service.restore_todo(args.todo_id)))
    elif args.todos_command == "force-delete":
        service.force_delete_todo(args.todo_id)
        print(f"Todo #{args.todo_id} permanently deleted")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)
    init_db()

    rule_repo = RecurringTodoRepository()
    todo_repo = TodoRepository()
    expansion = ExpansionService(rule_repo, todo_repo, backfill=SETTINGS.expansion_backfill)

    try:
        if args.command == "generate":
            report = RecurringTodoService(rule_repo, expansion).generate(args.time_ahead)
            print(report.summary())
            for failure in report.rules_failed:
                print(f"  recurring todo #{failure.rule_id}: {failure.reason}", file=sys.stderr)
        elif args.command == "rules":
            _run_rules(args, RecurringTodoService(rule_repo, expansion))
        elif args.command == "todos":
            _run_todos(args, TodoService(todo_repo, rule_repo))
    except RecurringTodosError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
