"""Root logger setup for the freightlink CLI."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "FREIGHTLINK_LOG_LEVEL"

# Per-request chatter from these drowns the batch summaries unless debugging.
QUIET_LOGGERS = ("httpx", "httpcore", "hishel", "alembic.runtime.migration")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger with a terse format for operator output.

    ``level`` defaults to ``FREIGHTLINK_LOG_LEVEL`` (or INFO). Third-party HTTP and
    migration loggers stay at WARNING unless the effective level is DEBUG.
    """

    effective_level = level if level is not None else _level_from_env()
    logging.basicConfig(
        level=effective_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    quiet_level = logging.DEBUG if effective_level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def _level_from_env() -> int:
    raw = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    if not raw:
        return logging.INFO
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO
