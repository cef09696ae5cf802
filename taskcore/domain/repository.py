from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol
from uuid import UUID

from .entities import Task, TaskHistory
from .enums import TaskStatus
from .filters import PaginatedResult, Pagination, TaskFilters


class TaskRepository(Protocol):
    def create(self, task: Task) -> Task:
        ...

    def find_by_id(self, task_id: UUID) -> Task | None:
        ...

    def list(self, filters: TaskFilters, pagination: Pagination) -> PaginatedResult[Task]:
        """``total`` counts every match, ignoring the page slice."""
        ...

    def update(self, task: Task) -> Task:
        ...

    def delete(self, task_id: UUID) -> None:
        ...

    def add_history(self, entry: TaskHistory) -> None:
        ...

    def get_history(self, task_id: UUID) -> list[TaskHistory]:
        ...

    def count_by_status(self, owner_id: str, status: TaskStatus) -> int:
        ...

    def atomic(self) -> AbstractContextManager[None]:
        """One transaction: commit on clean exit, roll back on error."""
        ...
