from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from taskcore.config import PROJECT_ROOT, Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_FILE_NAME = "taskcore.log"


def resolve_log_dir(settings: Settings) -> Path:
    log_dir = Path(settings.log_dir)
    return log_dir if log_dir.is_absolute() else PROJECT_ROOT / log_dir


def setup_logging(settings: Settings) -> Path:
    log_dir = resolve_log_dir(settings)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    # replaces handlers left by an earlier call in the same process
    logging.basicConfig(level=settings.log_level.upper(), handlers=handlers, force=True)
    return log_file
