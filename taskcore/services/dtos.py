from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from taskcore.domain.entities import Task, TaskHistory
from taskcore.domain.enums import TaskPriority, TaskStatus
from taskcore.domain.errors import ValidationError

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000


def _check_lengths(title: str | None, description: str | None) -> None:
    if title is not None and not 1 <= len(title) <= MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be between 1 and {MAX_TITLE_LENGTH} characters")
    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must not exceed {MAX_DESCRIPTION_LENGTH} characters")


@dataclass(frozen=True)
class CreateTaskInput:
    title: str
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    def validate(self) -> None:
        _check_lengths(self.title, self.description)


@dataclass(frozen=True)
class UpdateTaskInput:
    """Partial update; a field left as None is not touched."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    def validate(self) -> None:
        _check_lengths(self.title, self.description)


@dataclass(frozen=True)
class TaskFilterInput:
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    overdue_only: Optional[bool] = None
    search: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None


@dataclass(frozen=True)
class TaskProjection:
    id: UUID
    owner_id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime]
    completed_at: Optional[datetime]
    is_overdue: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, task: Task) -> TaskProjection:
        return cls(
            id=task.id,
            owner_id=task.owner_id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            completed_at=task.completed_at,
            is_overdue=task.is_overdue(),
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


@dataclass(frozen=True)
class PaginatedProjection:
    items: list[TaskProjection]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class HistoryProjection:
    id: UUID
    task_id: UUID
    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_at: datetime

    @classmethod
    def from_entity(cls, entry: TaskHistory) -> HistoryProjection:
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            field_name=entry.field_name,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_at=entry.changed_at,
        )
