"""Logging setup for ExpenseFlow.

Modules log through ``logging.getLogger(__name__)``; this configures the
``expenseflow`` package logger once per process, for the API and for the
seed script alike.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Library loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "passlib")

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return resolved


def _build_handlers(name: str, log_dir: Optional[str], file_logging: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if file_logging:
        directory = Path(log_dir or "./logs")
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            directory / f"{name}.log",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        ))

    return handlers


def setup_logger(
    name: str,
    log_dir: Optional[str] = None,
    level: str = "INFO",
    file_logging: bool = False,
) -> logging.Logger:
    """Configure the named logger with console and optional file output.

    Calling it again only updates the level, so importing the app twice
    does not duplicate output.

    Args:
        name: Logger name, normally ``expenseflow``
        log_dir: Directory for ``<name>.log`` when file logging is on
        level: Level name such as ``INFO`` or ``DEBUG``
        file_logging: Also write to a rotating log file

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _build_handlers(name, log_dir, file_logging):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for quiet in QUIET_LOGGERS:
        logging.getLogger(quiet).setLevel(logging.WARNING)

    return logger
