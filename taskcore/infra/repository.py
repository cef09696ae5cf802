from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from taskcore.domain.entities import Task, TaskHistory, utcnow
from taskcore.domain.enums import CLOSED_STATUSES, TaskPriority, TaskStatus
from taskcore.domain.errors import ConflictError, InternalError, NotFoundError
from taskcore.domain.filters import PaginatedResult, Pagination, TaskFilters

from .models import TaskHistoryModel, TaskModel

logger = logging.getLogger(__name__)

CLOSED_STATUS_VALUES = [status.value for status in CLOSED_STATUSES]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _to_entity(model: TaskModel) -> Task:
    return Task(
        id=model.id,
        owner_id=model.owner_id,
        title=model.title,
        description=model.description,
        status=TaskStatus(model.status),
        priority=TaskPriority(model.priority),
        due_date=_as_utc(model.due_date),
        completed_at=_as_utc(model.completed_at),
        created_at=_as_utc(model.created_at),
        updated_at=_as_utc(model.updated_at),
    )


def _to_history(model: TaskHistoryModel) -> TaskHistory:
    return TaskHistory(
        id=model.id,
        task_id=model.task_id,
        user_id=model.user_id,
        field_name=model.field_name,
        old_value=model.old_value,
        new_value=model.new_value,
        changed_at=_as_utc(model.changed_at),
    )


def _copy_mutable_fields(task: Task, model: TaskModel) -> None:
    model.title = task.title
    model.description = task.description
    model.status = task.status.value
    model.priority = task.priority.value
    model.due_date = _as_utc(task.due_date)
    model.completed_at = _as_utc(task.completed_at)
    model.updated_at = _as_utc(task.updated_at)


def _apply_filters(stmt, filters: TaskFilters) -> object:
    stmt = stmt.where(TaskModel.owner_id == filters.owner_id)

    if filters.status is not None:
        stmt = stmt.where(TaskModel.status == filters.status.value)

    if filters.priority is not None:
        stmt = stmt.where(TaskModel.priority == filters.priority.value)

    if filters.overdue_only:
        stmt = stmt.where(
            TaskModel.due_date.is_not(None),
            TaskModel.due_date < utcnow(),
            TaskModel.status.notin_(CLOSED_STATUS_VALUES),
        )

    if filters.search:
        pattern = _like_pattern(filters.search)
        stmt = stmt.where(
            or_(
                TaskModel.title.ilike(pattern, escape="\\"),
                TaskModel.description.ilike(pattern, escape="\\"),
            )
        )

    return stmt


class SqlAlchemyTaskRepository:
    """TaskRepository backed by a SQLAlchemy session factory.

    Each call runs in its own short-lived session unless it happens inside
    ``atomic()``, in which case the block's session is reused and committed
    once at the end.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._active: ContextVar[Session | None] = ContextVar(
            f"taskcore_session_{id(self)}", default=None
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        active = self._active.get()
        if active is not None:
            yield active
            return
        try:
            with self._session_factory() as session:
                yield session
                session.commit()
        except IntegrityError as exc:
            logger.warning("Integrity violation: %s", exc.orig)
            raise ConflictError("Conflicting data") from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failure")
            raise InternalError() from exc

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._active.get() is not None:
            yield
            return
        with self._session() as session:
            token = self._active.set(session)
            try:
                yield
            finally:
                self._active.reset(token)

    def create(self, task: Task) -> Task:
        with self._session() as session:
            model = TaskModel(
                id=task.id,
                owner_id=task.owner_id,
                created_at=_as_utc(task.created_at),
            )
            _copy_mutable_fields(task, model)
            session.add(model)
            session.flush()
            return _to_entity(model)

    def find_by_id(self, task_id: UUID) -> Optional[Task]:
        with self._session() as session:
            model = session.get(TaskModel, task_id)
            return _to_entity(model) if model else None

    def list(self, filters: TaskFilters, pagination: Pagination) -> PaginatedResult[Task]:
        with self._session() as session:
            base = _apply_filters(select(TaskModel), filters)
            total = session.scalar(select(func.count()).select_from(base.subquery())) or 0
            stmt = (
                base.order_by(TaskModel.created_at.desc(), TaskModel.id.desc())
                .offset(pagination.offset)
                .limit(pagination.page_size)
            )
            items = [_to_entity(model) for model in session.scalars(stmt)]
            return PaginatedResult.build(items, total, pagination)

    def update(self, task: Task) -> Task:
        with self._session() as session:
            model = session.get(TaskModel, task.id)
            if not model:
                raise NotFoundError()
            _copy_mutable_fields(task, model)
            session.flush()
            return _to_entity(model)

    def delete(self, task_id: UUID) -> None:
        with self._session() as session:
            model = session.get(TaskModel, task_id)
            if not model:
                return
            session.delete(model)
            session.flush()

    def add_history(self, entry: TaskHistory) -> None:
        with self._session() as session:
            session.add(
                TaskHistoryModel(
                    id=entry.id,
                    task_id=entry.task_id,
                    user_id=entry.user_id,
                    field_name=entry.field_name,
                    old_value=entry.old_value,
                    new_value=entry.new_value,
                    changed_at=_as_utc(entry.changed_at),
                )
            )
            session.flush()

    def get_history(self, task_id: UUID) -> list[TaskHistory]:
        with self._session() as session:
            stmt = (
                select(TaskHistoryModel)
                .where(TaskHistoryModel.task_id == task_id)
                .order_by(TaskHistoryModel.changed_at.desc())
            )
            return [_to_history(model) for model in session.scalars(stmt)]

    def count_by_status(self, owner_id: str, status: TaskStatus) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(TaskModel.owner_id == owner_id, TaskModel.status == status.value)
            ) or 0
