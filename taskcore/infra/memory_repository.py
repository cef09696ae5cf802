from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Optional
from uuid import UUID

from taskcore.domain.entities import Task, TaskHistory, utcnow
from taskcore.domain.enums import TaskStatus
from taskcore.domain.errors import ConflictError, NotFoundError
from taskcore.domain.filters import PaginatedResult, Pagination, TaskFilters


def _matches(task: Task, filters: TaskFilters, now) -> bool:
    if task.owner_id != filters.owner_id:
        return False
    if filters.status is not None and task.status != filters.status:
        return False
    if filters.priority is not None and task.priority != filters.priority:
        return False
    if filters.overdue_only and not task.is_overdue(now):
        return False
    if filters.search:
        needle = filters.search.lower()
        haystacks = (task.title, task.description or "")
        if not any(needle in text.lower() for text in haystacks):
            return False
    return True


class InMemoryTaskRepository:
    def __init__(self) -> None:
        self._tasks: dict[UUID, Task] = {}
        self._history: list[TaskHistory] = []
        self._lock = threading.RLock()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            tasks = dict(self._tasks)
            history = list(self._history)
            try:
                yield
            except BaseException:
                self._tasks = tasks
                self._history = history
                raise

    def create(self, task: Task) -> Task:
        with self._lock:
            if task.id in self._tasks:
                raise ConflictError(f"Task {task.id} already exists")
            self._tasks[task.id] = replace(task)
            return replace(task)

    def find_by_id(self, task_id: UUID) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task else None

    def list(self, filters: TaskFilters, pagination: Pagination) -> PaginatedResult[Task]:
        now = utcnow()
        with self._lock:
            matching = [task for task in self._tasks.values() if _matches(task, filters, now)]
        matching.sort(key=lambda task: (task.created_at, task.id.int), reverse=True)
        page = matching[pagination.offset:pagination.offset + pagination.page_size]
        return PaginatedResult.build([replace(task) for task in page], len(matching), pagination)

    def update(self, task: Task) -> Task:
        with self._lock:
            stored = self._tasks.get(task.id)
            if stored is None:
                raise NotFoundError()
            updated = replace(
                stored,
                title=task.title,
                description=task.description,
                status=task.status,
                priority=task.priority,
                due_date=task.due_date,
                completed_at=task.completed_at,
                updated_at=task.updated_at,
            )
            self._tasks[task.id] = updated
            return replace(updated)

    def delete(self, task_id: UUID) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                return
            self._history = [entry for entry in self._history if entry.task_id != task_id]

    def add_history(self, entry: TaskHistory) -> None:
        with self._lock:
            if entry.task_id not in self._tasks:
                raise ConflictError(f"Task {entry.task_id} does not exist")
            self._history.append(entry)

    def get_history(self, task_id: UUID) -> list[TaskHistory]:
        with self._lock:
            entries = [entry for entry in self._history if entry.task_id == task_id]
        entries.reverse()
        entries.sort(key=lambda entry: entry.changed_at, reverse=True)
        return entries

    def count_by_status(self, owner_id: str, status: TaskStatus) -> int:
        with self._lock:
            return sum(
                1
                for task in self._tasks.values()
                if task.owner_id == owner_id and task.status == status
            )
