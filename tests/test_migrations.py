from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import Engine, delete, func, inspect, select

from taskcore.config import PROJECT_ROOT
from taskcore.domain.enums import TaskStatus
from taskcore.infra.db import create_db_engine, make_session_factory
from taskcore.infra.models import TaskHistoryModel, TaskModel
from taskcore.infra.repository import SqlAlchemyTaskRepository
from taskcore.services.dtos import CreateTaskInput, UpdateTaskInput
from taskcore.services.task_service import TaskService

from .factories import ALICE


@pytest.fixture()
def migrated_engine(tmp_path: Path) -> Engine:
    url = f"sqlite:///{tmp_path / 'migrated.sqlite3'}"
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    command.upgrade(cfg, "head")

    engine = create_db_engine(url)
    yield engine
    engine.dispose()


def test_upgrade_creates_tables_matching_models(migrated_engine: Engine) -> None:
    inspector = inspect(migrated_engine)

    assert {"tasks", "task_history"} <= set(inspector.get_table_names())
    for model in (TaskModel, TaskHistoryModel):
        table = model.__table__
        reflected = {column["name"] for column in inspector.get_columns(table.name)}
        assert reflected == set(table.columns.keys()), table.name

    indexes = {index["name"] for index in inspector.get_indexes("tasks")}
    assert {"ix_tasks_status", "ix_tasks_owner_id", "ix_tasks_owner_created"} <= indexes


def test_history_foreign_key_cascades(migrated_engine: Engine) -> None:
    (fk,) = inspect(migrated_engine).get_foreign_keys("task_history")
    assert fk["referred_table"] == "tasks"
    assert fk["options"].get("ondelete") == "CASCADE"

    service = TaskService(SqlAlchemyTaskRepository(make_session_factory(migrated_engine)))
    task = service.create_task(ALICE, CreateTaskInput(title="Migrated"))
    service.update_task(ALICE, task.id, UpdateTaskInput(status=TaskStatus.IN_PROGRESS))
    assert len(service.get_task_history(ALICE, task.id)) == 2

    # bypass the ORM so only the database constraint can remove history rows
    with migrated_engine.begin() as connection:
        connection.execute(delete(TaskModel.__table__).where(TaskModel.__table__.c.id == task.id))

    with migrated_engine.connect() as connection:
        remaining = connection.scalar(select(func.count()).select_from(TaskHistoryModel.__table__))
    assert remaining == 0
