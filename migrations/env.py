from __future__ import annotations

from alembic import context

from taskcore.config import load_settings
from taskcore.infra import models  # noqa: F401
from taskcore.infra.db import Base, create_db_engine

target_metadata = Base.metadata


def _database_url() -> str:
    # sqlalchemy.url set on the alembic Config beats .env
    return context.config.get_main_option("sqlalchemy.url") or load_settings().database_url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_db_engine(_database_url())
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
