from __future__ import annotations

import functools
import logging
import uuid
from typing import Callable, TypeVar
from uuid import UUID

from taskcore.domain import audit
from taskcore.domain.entities import Task
from taskcore.domain.enums import TaskPriority, TaskStatus
from taskcore.domain.errors import InternalError, TaskCoreError
from taskcore.domain.filters import Pagination, TaskFilters
from taskcore.domain.repository import TaskRepository

from .authorization import load_owned_task
from .dtos import (
    CreateTaskInput,
    HistoryProjection,
    PaginatedProjection,
    TaskFilterInput,
    TaskProjection,
    UpdateTaskInput,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _surface_errors(method: Callable[..., R]) -> Callable[..., R]:
    """Let domain errors through; anything else becomes InternalError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs) -> R:
        try:
            return method(*args, **kwargs)
        except TaskCoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure in %s", method.__name__)
            raise InternalError() from exc

    return wrapper


class TaskService:
    def __init__(self, repo: TaskRepository) -> None:
        self._repo = repo

    @_surface_errors
    def create_task(self, actor_id: str, data: CreateTaskInput) -> TaskProjection:
        task = Task.create(
            id=uuid.uuid4(),
            owner_id=actor_id,
            title=data.title,
            description=data.description,
            priority=data.priority or TaskPriority.MEDIUM,
            due_date=data.due_date,
        )
        with self._repo.atomic():
            saved = self._repo.create(task)
            self._repo.add_history(audit.record_creation(saved, actor_id))
        logger.info("Task %s created by %s", saved.id, actor_id)
        return TaskProjection.from_entity(saved)

    @_surface_errors
    def get_task(self, actor_id: str, task_id: UUID) -> TaskProjection:
        task = load_owned_task(self._repo, task_id, actor_id)
        return TaskProjection.from_entity(task)

    @_surface_errors
    def list_tasks(self, actor_id: str, data: TaskFilterInput) -> PaginatedProjection:
        filters = TaskFilters(
            owner_id=actor_id,
            status=data.status,
            priority=data.priority,
            overdue_only=bool(data.overdue_only),
            search=data.search or None,
        )
        pagination = Pagination.clamped(data.page, data.page_size)
        result = self._repo.list(filters, pagination)
        return PaginatedProjection(
            items=[TaskProjection.from_entity(task) for task in result.items],
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )

    @_surface_errors
    def update_task(self, actor_id: str, task_id: UUID, data: UpdateTaskInput) -> TaskProjection:
        with self._repo.atomic():
            task = load_owned_task(self._repo, task_id, actor_id)

            if data.title is not None:
                self._apply(task, actor_id, audit.FIELD_TITLE, task.rename, data.title)
            if data.description is not None:
                self._apply(
                    task, actor_id, audit.FIELD_DESCRIPTION, task.set_description, data.description
                )
            if data.status is not None:
                self._apply(task, actor_id, audit.FIELD_STATUS, task.change_status, data.status)
            if data.priority is not None:
                self._apply(task, actor_id, audit.FIELD_PRIORITY, task.set_priority, data.priority)
            if data.due_date is not None:
                self._apply(task, actor_id, audit.FIELD_DUE_DATE, task.set_due_date, data.due_date)

            updated = self._repo.update(task)
        logger.info("Task %s updated by %s", task_id, actor_id)
        return TaskProjection.from_entity(updated)

    @_surface_errors
    def delete_task(self, actor_id: str, task_id: UUID) -> None:
        with self._repo.atomic():
            load_owned_task(self._repo, task_id, actor_id)
            self._repo.delete(task_id)
        logger.info("Task %s deleted by %s", task_id, actor_id)

    @_surface_errors
    def get_task_history(self, actor_id: str, task_id: UUID) -> list[HistoryProjection]:
        load_owned_task(self._repo, task_id, actor_id)
        return [HistoryProjection.from_entity(entry) for entry in self._repo.get_history(task_id)]

    @_surface_errors
    def get_status_counts(self, actor_id: str) -> dict[TaskStatus, int]:
        return {status: self._repo.count_by_status(actor_id, status) for status in TaskStatus}

    def _apply(self, task: Task, actor_id: str, field_name: str, mutator, value) -> None:
        old_value = audit.snapshot(task, field_name)
        mutator(value)
        new_value = audit.snapshot(task, field_name)
        self._repo.add_history(
            audit.record_change(task.id, actor_id, field_name, old_value, new_value)
        )
