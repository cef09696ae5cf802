from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from .entities import Task, TaskHistory

FIELD_CREATED = "created"
FIELD_TITLE = "title"
FIELD_DESCRIPTION = "description"
FIELD_STATUS = "status"
FIELD_PRIORITY = "priority"
FIELD_DUE_DATE = "due_date"

TRACKED_FIELDS = (
    FIELD_TITLE,
    FIELD_DESCRIPTION,
    FIELD_STATUS,
    FIELD_PRIORITY,
    FIELD_DUE_DATE,
)


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def snapshot(task: Task, field_name: str) -> str:
    return stringify(getattr(task, field_name))


def record_change(
    task_id: UUID,
    actor_id: str,
    field_name: str,
    old_value: str | None,
    new_value: str | None,
) -> TaskHistory:
    return TaskHistory(
        task_id=task_id,
        user_id=actor_id,
        field_name=field_name,
        old_value=old_value,
        new_value=new_value,
    )


def record_creation(task: Task, actor_id: str) -> TaskHistory:
    return record_change(
        task.id,
        actor_id,
        FIELD_CREATED,
        None,
        f"Tarefa criada: {task.title}",
    )
