from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from recurring_todos.config import SETTINGS, PROJECT_ROOT

LOG_FILE_NAME = "recurring_todos.log"


def setup_logging(level: str | None = None) -> None:
    """Log to ``<log_dir>/recurring_todos.log`` and the console.

    ``level`` overrides ``LOG_LEVEL``; SQLAlchemy's engine logger stays at
    WARNING unless DEBUG is requested, since it echoes every statement.
    """
    log_level = (level or SETTINGS.log_level).upper()
    log_dir = PROJECT_ROOT / SETTINGS.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_dir / LOG_FILE_NAME, maxBytes=2_000_000, backupCount=3)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=log_level,
        handlers=[file_handler, console_handler],
        force=True,
    )
    if log_level != "DEBUG":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
