"""Logging configuration for the reminder engine process."""

import logging
import os
import sys
from collections.abc import Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty libraries kept at INFO or above regardless of LOG_LEVEL
QUIET_LOGGERS = ("apscheduler", "urllib3")


def _parse_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def _set_logger_levels(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure_logging() -> None:
    """Configure process-wide logging to stdout only.

    Env vars:
      - LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default INFO)
      - LOG_SQL: true/false, echo SQLAlchemy statements (default false)
    """
    level_name = os.environ.get("LOG_LEVEL", "INFO")
    level = _parse_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Exactly one stdout handler
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    # APScheduler attaches nothing itself, but make sure it propagates to root
    scheduler_logger = logging.getLogger("apscheduler")
    scheduler_logger.handlers.clear()
    scheduler_logger.propagate = True

    _set_logger_levels(QUIET_LOGGERS, level=max(level, logging.INFO))

    sql_enabled = os.environ.get("LOG_SQL", "false").strip().lower() == "true"
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if sql_enabled else logging.WARNING
    )

    logging.getLogger(__name__).info("Logging configured: level=%s", level_name.upper())
