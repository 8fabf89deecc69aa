"""General utilities for the roster package."""

from __future__ import annotations

import math
import os
import sys
import uuid
from datetime import datetime, timezone

from loguru import logger

_LOGGER_CONFIGURED = False


def configure_logging(*, force: bool = False) -> None:
    """Set up the global Loguru logger with application defaults."""
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED and not force:
        return

    log_level = os.getenv("ROSTER_LOG_LEVEL", "INFO")
    diagnose = os.getenv("ROSTER_LOG_DIAGNOSE", "false").lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        backtrace=False,
        diagnose=diagnose,
        enqueue=False,
        colorize=True,
    )

    _LOGGER_CONFIGURED = True


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_instant(value: datetime) -> str:
    """Return a canonical UTC ISO string used to compare instants."""
    return as_utc(value).isoformat()


MAX_PAGE_SIZE = 100


def page_window(page: int, limit: int) -> tuple[int, int, int]:
    """Clamp paging input and return ``(page, limit, offset)``."""
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    return page, limit, (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


configure_logging()

__all__ = [
    "as_utc",
    "configure_logging",
    "logger",
    "new_id",
    "normalize_instant",
    "page_window",
    "total_pages",
    "utc_now",
]
