from __future__ import annotations

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker

from taskcore.config import Settings

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    engine = create_engine(database_url, pool_pre_ping=True, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def engine_from_settings(settings: Settings) -> Engine:
    return create_db_engine(settings.database_url, echo=settings.sql_echo)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Engine, create_schema: bool = False) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    if create_schema:
        from . import models  # noqa: F401  registers tables on Base.metadata

        Base.metadata.create_all(engine)
