"""Command-line board client and server launcher."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TYPE_CHECKING
from uuid import UUID

from taskboard.core.config import settings
from taskboard.core.errors import TaskError
from taskboard.core.logging import configure_logging
from taskboard.models.tasks import TASK_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES
from taskboard.services.local_store import JsonFileStorage, LocalTaskStore
from taskboard.services.task_client import HttpTaskStore
from taskboard.services.task_lifecycle import TaskBoardController, ViewState
from taskboard.services.task_query import VIEW_FILTERS, build_predicate

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from taskboard.schemas.tasks import TaskRead
    from taskboard.services.task_lifecycle import BoardView
    from taskboard.services.task_store import TaskStore

SHORT_ID_LENGTH = 8
COLUMN_TITLES = {"todo": "TO DO", "doing": "DOING", "done": "DONE"}


class CommandError(Exception):
    """User-facing CLI failure (bad id, ambiguous prefix)."""


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Track tasks through todo, doing, and done.",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="Task API base URL (e.g. http://localhost:8000). Omit for the standalone board.",
    )
    parser.add_argument(
        "--data-file",
        default=str(settings.local_store_path),
        help="JSON file backing the standalone board",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the task API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    show = sub.add_parser("list", help="Show the board")
    show.add_argument("--filter", dest="active_filter", choices=VIEW_FILTERS, default="all")
    show.add_argument("--search", default="")

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("title")
    _add_field_arguments(add)

    edit = sub.add_parser("edit", help="Edit task fields")
    edit.add_argument("task_id")
    edit.add_argument("--title", default=None)
    _add_field_arguments(edit)
    edit.add_argument("--status", choices=TASK_STATUSES, default=None)
    edit.add_argument("--clear-due", action="store_true", help="Remove the due date")

    advance = sub.add_parser("advance", help="Move a task to its next status")
    advance.add_argument("task_id")

    delete = sub.add_parser("delete", help="Delete a task")
    delete.add_argument("task_id")
    delete.add_argument("--yes", action="store_true", help="Confirm the deletion")

    return parser.parse_args(argv)


def _add_field_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--description", default=None)
    parser.add_argument("--priority", choices=TASK_PRIORITIES, default=None)
    parser.add_argument("--category", choices=TASK_CATEGORIES, default=None)
    parser.add_argument("--due", default=None, help="Due date (YYYY-MM-DD)")


def _field_values(args: argparse.Namespace) -> dict[str, object]:
    values: dict[str, object] = {
        "title": getattr(args, "title", None),
        "description": args.description,
        "priority": args.priority,
        "category": args.category,
        "status": getattr(args, "status", None),
        "due_date": args.due,
    }
    fields = {name: value for name, value in values.items() if value is not None}
    if getattr(args, "clear_due", False):
        fields["due_date"] = None
    return fields


def _short_id(task_id: UUID) -> str:
    return task_id.hex[:SHORT_ID_LENGTH]


def _format_task(task: TaskRead, *, overdue: bool) -> list[str]:
    lines = [f"[{_short_id(task.id)}] {task.title}"]
    details = [task.priority, task.category]
    if task.due_date is not None:
        due = task.due_date.isoformat()
        details.append(f"{due} (overdue)" if overdue else due)
    lines.append("    " + " | ".join(details))
    if task.description:
        lines.append(f"    {task.description}")
    return lines


def render_board(view: BoardView, out: TextIO | None = None) -> None:
    """Write the board as three stacked text columns."""
    out = out or sys.stdout
    print(view.heading, file=out)
    if view.state.search:
        print(f'search: "{view.state.search}"', file=out)
    for status in TASK_STATUSES:
        tasks = view.buckets.bucket(status)
        print(f"\n{COLUMN_TITLES[status]} ({len(tasks)})", file=out)
        if not tasks:
            print("    -", file=out)
        for task in tasks:
            for line in _format_task(task, overdue=task.id in view.overdue_ids):
                print(line, file=out)


async def resolve_task_id(store: TaskStore, value: str) -> UUID:
    """Accept a full id or a unique prefix of one."""
    try:
        return UUID(value)
    except ValueError:
        pass
    prefix = value.strip().lower().replace("-", "")
    if not prefix:
        raise CommandError("Task id is required.")
    tasks = await store.list_tasks(build_predicate())
    matches = [task.id for task in tasks if task.id.hex.startswith(prefix)]
    if not matches:
        raise CommandError(f"No task matches id {value!r}.")
    if len(matches) > 1:
        raise CommandError(f"Id {value!r} is ambiguous ({len(matches)} tasks).")
    return matches[0]


async def _run_board_command(args: argparse.Namespace, store: TaskStore) -> int:
    messages: list[str] = []
    controller = TaskBoardController(store, render=render_board, notify=messages.append)
    result: object = True

    if args.command == "list":
        controller.state = ViewState(active_filter=args.active_filter, search=args.search)
        result = await controller.refresh()
    elif args.command == "add":
        result = await controller.add_task(_field_values(args))
    else:
        task_id = await resolve_task_id(store, args.task_id)
        if args.command == "edit":
            result = await controller.edit_task(task_id, _field_values(args))
        elif args.command == "advance":
            result = await controller.advance(task_id)
        elif args.command == "delete":
            if not args.yes:
                print("Refusing to delete without --yes.", file=sys.stderr)
                return 2
            result = await controller.delete_task(task_id, confirmed=True)

    for message in messages:
        print(message, file=sys.stderr)
    return 0 if result else 1


async def _run_with_store(args: argparse.Namespace) -> int:
    if args.api_url:
        async with HttpTaskStore.from_url(args.api_url) as store:
            return await _run_board_command(args, store)
    storage = JsonFileStorage(args.data_file)
    return await _run_board_command(args, LocalTaskStore(storage, key=settings.local_store_key))


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "taskboard.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level="WARNING" if args.command != "serve" else None)
    if args.command == "serve":
        return _serve(args)
    try:
        return asyncio.run(_run_with_store(args))
    except CommandError as err:
        print(str(err), file=sys.stderr)
        return 2
    except TaskError as err:
        print(err.message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
