from __future__ import annotations

from datetime import timedelta
import uuid

import pytest
from sqlalchemy import func, select

from taskcore.domain.entities import TaskHistory, utcnow
from taskcore.domain.enums import TaskPriority, TaskStatus
from taskcore.domain.errors import ConflictError, InvalidTransitionError, NotFoundError
from taskcore.domain.filters import Pagination, TaskFilters
from taskcore.infra.models import TaskHistoryModel
from taskcore.infra.repository import SqlAlchemyTaskRepository
from taskcore.services.dtos import CreateTaskInput, UpdateTaskInput
from taskcore.services.task_service import TaskService

from .factories import ALICE, BOB, make_task


def _history_rows(repo: SqlAlchemyTaskRepository) -> int:
    with repo._session() as session:
        return session.scalar(select(func.count()).select_from(TaskHistoryModel))


def test_create_and_find_round_trip(sql_repo: SqlAlchemyTaskRepository) -> None:
    due = utcnow() + timedelta(days=2)
    task = make_task(title="Persisted", description="body", priority=TaskPriority.HIGH, due_date=due)

    sql_repo.create(task)
    found = sql_repo.find_by_id(task.id)

    assert found == task
    assert found.due_date.tzinfo is not None
    assert sql_repo.find_by_id(uuid.uuid4()) is None


def test_duplicate_id_is_conflict(sql_repo: SqlAlchemyTaskRepository) -> None:
    task = make_task()
    sql_repo.create(task)

    with pytest.raises(ConflictError):
        sql_repo.create(task)


def test_list_orders_slices_and_counts(sql_repo: SqlAlchemyTaskRepository) -> None:
    for index in range(7):
        sql_repo.create(make_task(title=f"t{index}", minutes=index))
    sql_repo.create(make_task(owner_id=BOB, title="bob", minutes=99))

    page = sql_repo.list(TaskFilters(owner_id=ALICE), Pagination(page=2, page_size=3))

    assert [task.title for task in page.items] == ["t3", "t2", "t1"]
    assert page.total == 7
    assert page.total_pages == 3

    last = sql_repo.list(TaskFilters(owner_id=ALICE), Pagination(page=3, page_size=3))
    assert [task.title for task in last.items] == ["t0"]


def test_list_filters(sql_repo: SqlAlchemyTaskRepository) -> None:
    past = utcnow() - timedelta(days=1)
    future = utcnow() + timedelta(days=1)
    sql_repo.create(make_task(title="Late invoice", minutes=1, due_date=past))
    sql_repo.create(make_task(title="Future plan", minutes=2, due_date=future))
    sql_repo.create(
        make_task(title="Done late", minutes=3, due_date=past, status=TaskStatus.COMPLETED)
    )
    sql_repo.create(
        make_task(title="Call", description="ask about 100% refund", minutes=4, priority=TaskPriority.URGENT)
    )

    def titles(**kwargs) -> list[str]:
        result = sql_repo.list(TaskFilters(owner_id=ALICE, **kwargs), Pagination())
        return [task.title for task in result.items]

    assert titles(overdue_only=True) == ["Late invoice"]
    assert titles(status=TaskStatus.COMPLETED) == ["Done late"]
    assert titles(priority=TaskPriority.URGENT) == ["Call"]
    assert titles(search="INVOICE") == ["Late invoice"]
    assert titles(search="100%") == ["Call"]
    assert titles(search="%") == ["Call"]
    assert titles(search="nothing") == []


def test_update_replaces_mutable_fields(sql_repo: SqlAlchemyTaskRepository) -> None:
    task = make_task(title="Before")
    sql_repo.create(task)

    task.rename("After")
    task.change_status(TaskStatus.IN_PROGRESS)
    task.change_status(TaskStatus.COMPLETED)
    stored = sql_repo.update(task)

    assert stored.title == "After"
    assert stored.status == TaskStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.owner_id == ALICE
    assert sql_repo.find_by_id(task.id) == stored


def test_update_missing_task_is_not_found(sql_repo: SqlAlchemyTaskRepository) -> None:
    with pytest.raises(NotFoundError):
        sql_repo.update(make_task())


def test_history_order_and_cascade(sql_repo: SqlAlchemyTaskRepository) -> None:
    task = make_task()
    sql_repo.create(task)
    start = utcnow()
    for offset, value in enumerate(["a", "b", "c"]):
        sql_repo.add_history(
            TaskHistory(
                task_id=task.id,
                user_id=ALICE,
                field_name="title",
                old_value=None,
                new_value=value,
                changed_at=start + timedelta(seconds=offset),
            )
        )

    history = sql_repo.get_history(task.id)
    assert [entry.new_value for entry in history] == ["c", "b", "a"]

    sql_repo.delete(task.id)

    assert sql_repo.find_by_id(task.id) is None
    assert sql_repo.get_history(task.id) == []
    assert _history_rows(sql_repo) == 0


def test_count_by_status(sql_repo: SqlAlchemyTaskRepository) -> None:
    sql_repo.create(make_task(minutes=1))
    sql_repo.create(make_task(minutes=2))
    sql_repo.create(make_task(minutes=3, status=TaskStatus.CANCELLED))
    sql_repo.create(make_task(owner_id=BOB, minutes=4))

    assert sql_repo.count_by_status(ALICE, TaskStatus.PENDING) == 2
    assert sql_repo.count_by_status(ALICE, TaskStatus.CANCELLED) == 1
    assert sql_repo.count_by_status(BOB, TaskStatus.COMPLETED) == 0


def test_atomic_rolls_back_on_error(sql_repo: SqlAlchemyTaskRepository) -> None:
    task = make_task()

    with pytest.raises(RuntimeError):
        with sql_repo.atomic():
            sql_repo.create(task)
            assert sql_repo.find_by_id(task.id) is not None
            raise RuntimeError("boom")

    assert sql_repo.find_by_id(task.id) is None


def test_failed_update_leaves_no_partial_history(sql_repo: SqlAlchemyTaskRepository) -> None:
    service = TaskService(sql_repo)
    created = service.create_task(ALICE, CreateTaskInput(title="Draft"))

    with pytest.raises(InvalidTransitionError):
        service.update_task(
            ALICE, created.id, UpdateTaskInput(title="Final", status=TaskStatus.COMPLETED)
        )

    assert service.get_task(ALICE, created.id).title == "Draft"
    assert [entry.field_name for entry in service.get_task_history(ALICE, created.id)] == ["created"]


def test_service_flow_over_sqlite(sql_repo: SqlAlchemyTaskRepository) -> None:
    service = TaskService(sql_repo)
    created = service.create_task(ALICE, CreateTaskInput(title="Ship release"))

    service.update_task(ALICE, created.id, UpdateTaskInput(status=TaskStatus.IN_PROGRESS))
    done = service.update_task(ALICE, created.id, UpdateTaskInput(status=TaskStatus.COMPLETED))

    assert done.completed_at is not None
    history = service.get_task_history(ALICE, created.id)
    assert [(entry.old_value, entry.new_value) for entry in history if entry.field_name == "status"] == [
        ("in_progress", "completed"),
        ("pending", "in_progress"),
    ]

    service.delete_task(ALICE, created.id)
    assert _history_rows(sql_repo) == 0
