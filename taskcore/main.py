from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from uuid import UUID

from taskcore.config import Settings, load_settings
from taskcore.domain.enums import TaskPriority, TaskStatus
from taskcore.domain.errors import TaskCoreError
from taskcore.domain.repository import TaskRepository
from taskcore.infra.db import engine_from_settings, init_db, make_session_factory
from taskcore.infra.logging import setup_logging
from taskcore.infra.repository import SqlAlchemyTaskRepository
from taskcore.services.dtos import CreateTaskInput, TaskFilterInput, TaskProjection, UpdateTaskInput
from taskcore.services.task_service import TaskService

logger = logging.getLogger(__name__)


def build_repository(settings: Settings, create_schema: bool = False) -> TaskRepository:
    engine = engine_from_settings(settings)
    init_db(engine, create_schema=create_schema)
    return SqlAlchemyTaskRepository(make_session_factory(engine))


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_task(task: TaskProjection) -> str:
    due = task.due_date.isoformat() if task.due_date else "-"
    flag = " OVERDUE" if task.is_overdue else ""
    return f"{task.id}  [{task.status}] ({task.priority}) {task.title}  due={due}{flag}"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskcore", description="Task tracking core")
    parser.add_argument("--user", required=True, help="verified identity of the caller")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create tables if missing")

    create = sub.add_parser("create", help="create a task")
    create.add_argument("title")
    create.add_argument("--description")
    create.add_argument("--priority", type=TaskPriority, choices=list(TaskPriority))
    create.add_argument("--due", type=_parse_datetime)

    listing = sub.add_parser("list", help="list tasks")
    listing.add_argument("--status", type=TaskStatus, choices=list(TaskStatus))
    listing.add_argument("--priority", type=TaskPriority, choices=list(TaskPriority))
    listing.add_argument("--overdue", action="store_true")
    listing.add_argument("--search")
    listing.add_argument("--page", type=int)
    listing.add_argument("--page-size", type=int)

    for name in ("show", "delete", "history"):
        cmd = sub.add_parser(name)
        cmd.add_argument("task_id", type=UUID)

    update = sub.add_parser("update", help="update task fields")
    update.add_argument("task_id", type=UUID)
    update.add_argument("--title")
    update.add_argument("--description")
    update.add_argument("--status", type=TaskStatus, choices=list(TaskStatus))
    update.add_argument("--priority", type=TaskPriority, choices=list(TaskPriority))
    update.add_argument("--due", type=_parse_datetime)

    sub.add_parser("stats", help="count tasks per status")
    return parser


def run(args: argparse.Namespace, service: TaskService) -> None:
    user = args.user
    if args.command == "create":
        data = CreateTaskInput(
            title=args.title,
            description=args.description,
            priority=args.priority,
            due_date=args.due,
        )
        data.validate()
        print(_format_task(service.create_task(user, data)))
    elif args.command == "list":
        page = service.list_tasks(
            user,
            TaskFilterInput(
                status=args.status,
                priority=args.priority,
                overdue_only=args.overdue,
                search=args.search,
                page=args.page,
                page_size=args.page_size,
            ),
        )
        for task in page.items:
            print(_format_task(task))
        print(f"page {page.page}/{page.total_pages} ({page.total} tasks)")
    elif args.command == "show":
        task = service.get_task(user, args.task_id)
        print(_format_task(task))
        if task.description:
            print(task.description)
    elif args.command == "update":
        data = UpdateTaskInput(
            title=args.title,
            description=args.description,
            status=args.status,
            priority=args.priority,
            due_date=args.due,
        )
        data.validate()
        print(_format_task(service.update_task(user, args.task_id, data)))
    elif args.command == "delete":
        service.delete_task(user, args.task_id)
        print(f"deleted {args.task_id}")
    elif args.command == "history":
        for entry in service.get_task_history(user, args.task_id):
            print(f"{entry.changed_at.isoformat()} {entry.field_name}: {entry.old_value!r} -> {entry.new_value!r}")
    elif args.command == "stats":
        for status, count in service.get_status_counts(user).items():
            print(f"{status}: {count}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = load_settings()
    setup_logging(settings)
    try:
        repo = build_repository(settings, create_schema=args.command == "init-db")
        if args.command == "init-db":
            logger.info("Schema ready")
            return 0
        run(args, TaskService(repo))
    except TaskCoreError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
