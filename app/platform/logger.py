"""
Service-wide logging.

Every logger handed out by `get_logger` writes to the console and to one
rotating file under LOG_DIR. The handlers are built on first use and shared,
so the log file has a single writer per process and rotates cleanly.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

from app.platform.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_shared_handlers: List[logging.Handler] = []


def _build_handlers() -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / settings.LOG_FILE,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()

    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
    return [file_handler, console_handler]


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for `name`, at LOG_LEVEL, writing to console and the log file.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    if not _shared_handlers:
        _shared_handlers.extend(_build_handlers())

    logger.setLevel(settings.LOG_LEVEL)
    for handler in _shared_handlers:
        logger.addHandler(handler)

    return logger
