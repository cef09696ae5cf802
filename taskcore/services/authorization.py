from __future__ import annotations

import logging
from uuid import UUID

from taskcore.domain.entities import Task
from taskcore.domain.errors import NotFoundError, UnauthorizedError
from taskcore.domain.repository import TaskRepository

logger = logging.getLogger(__name__)


def ensure_owner(task: Task, actor_id: str) -> None:
    if not task.is_owned_by(actor_id):
        logger.info("Denied access to task %s for user %s", task.id, actor_id)
        raise UnauthorizedError()


def load_owned_task(repo: TaskRepository, task_id: UUID, actor_id: str) -> Task:
    task = repo.find_by_id(task_id)
    if task is None:
        raise NotFoundError()
    ensure_owner(task, actor_id)
    return task
