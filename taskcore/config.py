from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _first_existing(name: str) -> Path | None:
    for base in (Path.cwd(), PROJECT_ROOT):
        path = base / name
        if path.exists():
            return path
    return None


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    # the environment-specific file wins over the shared one
    for name, override in ((".env", False), (f".env.{env_name}", True)):
        path = _first_existing(name)
        if path is not None:
            load_dotenv(path, override=override)


def _truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    sql_echo: bool = False


def load_settings() -> Settings:
    """Read settings from the process environment and ``.env`` files.

    Called once at startup; the resulting object is passed to whatever
    needs it.
    """
    load_env()

    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Create a .env file with your connection string.")

    return Settings(
        database_url=database_url,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        sql_echo=_truthy(os.getenv("SQL_ECHO", "")),
    )
