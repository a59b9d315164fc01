"""Logging setup for webfuzz.

Diagnostics go to stderr under the ``webfuzz`` logger namespace. Result
lines are not log records; they are written by the aggregator.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

_ROOT = "webfuzz"
_HANDLER_NAME = "webfuzz"


def _current_task_name() -> str | None:
    """Return the name of the running asyncio task, if any."""
    try:
        task = asyncio.current_task()
    except RuntimeError:
        return None
    return task.get_name() if task is not None else None


class _TaskNameFilter(logging.Filter):
    """Attach the asyncio task name (e.g. ``fuzz-worker-3``) to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.task = _current_task_name() or "-"
        return True


class _JsonFormatter(logging.Formatter):
    """One-line JSON formatter.

    Keys: timestamp, level, logger, task, message (and exception when set).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "task": getattr(record, "task", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.WARNING,
    *,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the root ``webfuzz`` logger.

    Repeated calls only update the level of the webfuzz handler, so the
    CLI and the session can both call this safely.

    Args:
        level: Logging level. The CLI passes DEBUG for ``-v``.
        json_format: Emit one JSON object per line instead of text.
        stream: Destination stream. Defaults to ``sys.stderr``.

    Returns:
        The configured ``webfuzz`` logger.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)

    # Handlers attached by others (test capture, the host app) are left alone
    for existing in logger.handlers:
        if existing.get_name() == _HANDLER_NAME:
            existing.setLevel(level)
            return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.addFilter(_TaskNameFilter())

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s (%(task)s): %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Keep diagnostics out of the root logger so result output stays clean
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger, e.g. ``get_logger("engine.pool")``."""
    return logging.getLogger(f"{_ROOT}.{name}")
