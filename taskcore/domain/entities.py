from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from .enums import TaskPriority, TaskStatus
from .errors import ValidationError
from .transitions import transition

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _require_title(title: str) -> None:
    if not title or not title.strip():
        raise ValidationError("Title must not be empty")


@dataclass
class Task:
    id: uuid.UUID
    owner_id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        id: uuid.UUID,
        owner_id: str,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
    ) -> Task:
        _require_title(title)
        now = utcnow()
        return cls(
            id=id,
            owner_id=owner_id,
            title=title,
            description=description,
            status=TaskStatus.PENDING,
            priority=priority,
            due_date=_as_aware(due_date),
            completed_at=None,
            created_at=now,
            updated_at=now,
        )

    def rename(self, title: str) -> None:
        _require_title(title)
        self.title = title
        self._touch()

    def set_description(self, description: str | None) -> None:
        self.description = description
        self._touch()

    def set_priority(self, priority: TaskPriority) -> None:
        self.priority = priority
        self._touch()

    def set_due_date(self, due_date: datetime | None) -> None:
        self.due_date = _as_aware(due_date)
        self._touch()

    def change_status(self, new_status: TaskStatus) -> None:
        self.status = transition(self.status, new_status)
        self._touch()
        if self.status == TaskStatus.COMPLETED:
            self.completed_at = self.updated_at
        else:
            self.completed_at = None

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.due_date is None or self.status.is_closed:
            return False
        return self.due_date < (now or utcnow())

    def is_owned_by(self, actor_id: str) -> bool:
        return self.owner_id == actor_id

    def _touch(self) -> None:
        now = utcnow()
        if now <= self.updated_at:
            now = self.updated_at + _TICK
        self.updated_at = now


@dataclass(frozen=True)
class TaskHistory:
    task_id: uuid.UUID
    user_id: str
    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    changed_at: datetime = field(default_factory=utcnow)
