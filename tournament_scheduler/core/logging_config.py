"""
Logging setup shared by the API, the Celery worker and the CLI.
"""

import logging
import sys
from typing import Optional, Union

from tournament_scheduler.core.config import LOG_LEVEL, SEARCH_LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that write once per search iteration
SEARCH_LOGGERS = (
    "tournament_scheduler.services.mutations",
    "tournament_scheduler.services.strategies",
)

# Third-party loggers kept quiet unless something goes wrong
LIBRARY_LEVELS = {
    "uvicorn": logging.WARNING,
    "fastapi": logging.WARNING,
    "celery": logging.INFO,
    "kombu": logging.WARNING,
    "amqp": logging.WARNING,
}

Level = Union[int, str]


def resolve_level(level: Optional[Level], default: str = LOG_LEVEL) -> int:
    """
    Turn a level name or number into a logging level.

    Raises:
        ValueError: If the name is not a logging level
    """
    if level is None:
        level = default
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(log_level: Optional[Level] = None, search_log_level: Optional[Level] = None) -> logging.Logger:
    """
    Send all log records to stdout.

    Args:
        log_level: Root level (defaults to LOG_LEVEL)
        search_log_level: Level of the per-iteration search loggers (defaults to SEARCH_LOG_LEVEL)

    Returns:
        The root logger
    """
    level = resolve_level(log_level)
    search_level = resolve_level(search_log_level, default=SEARCH_LOG_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    for name in SEARCH_LOGGERS:
        logging.getLogger(name).setLevel(search_level)
    for name, library_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
