"""Console logging for Passgate.

Imported for its side effect by entry points (the CLI imports it before
anything else). Passgate loggers follow LOG_LEVEL; chatty dependencies
are held at WARNING or above so security events stay readable.
"""

import logging
import sys
from typing import Literal

from passgate.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"

# Dependency loggers and the floor applied to each
QUIET_LOGGERS: dict[str, int] = {
    "aiosqlite": logging.ERROR,
    "alembic.runtime.migration": logging.WARNING,
    "asyncio": logging.WARNING,
    "httpcore": logging.WARNING,
    "httpx": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def quiet_dependency_loggers() -> None:
    """Raise dependency loggers to their floor and drop their own handlers."""
    for name, floor in QUIET_LOGGERS.items():
        dependency_logger = logging.getLogger(name)
        dependency_logger.setLevel(floor)
        dependency_logger.handlers.clear()


def configure_logging(level: LogLevel | None = None) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level for Passgate loggers and the handler; defaults to
            ``Settings.log_level``.
    """
    numeric_level = getattr(logging, level or get_settings().log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    logging.getLogger("passgate").setLevel(numeric_level)
    quiet_dependency_loggers()


configure_logging()
