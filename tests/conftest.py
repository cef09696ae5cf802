from __future__ import annotations

from pathlib import Path

import pytest

from taskcore.infra.db import create_db_engine, init_db, make_session_factory
from taskcore.infra.memory_repository import InMemoryTaskRepository
from taskcore.infra.repository import SqlAlchemyTaskRepository
from taskcore.services.task_service import TaskService


@pytest.fixture()
def repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def service(repo: InMemoryTaskRepository) -> TaskService:
    return TaskService(repo)


@pytest.fixture()
def sql_repo(tmp_path: Path) -> SqlAlchemyTaskRepository:
    """Repository over a throwaway SQLite file, schema created from the models."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'tasks.sqlite3'}")
    init_db(engine, create_schema=True)
    yield SqlAlchemyTaskRepository(make_session_factory(engine))
    engine.dispose()
