"""Logging for the dashboard: one named logger plus an in-memory ring buffer."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Deque

logger = logging.getLogger("focus_dashboard")
logger.setLevel(logging.INFO)

# Circular buffer of recent log entries (max 100)
log_buffer: Deque[dict] = deque(maxlen=100)


class LogBufferHandler(logging.Handler):
    """Logging handler that captures records into the circular buffer."""

    def emit(self, record: logging.LogRecord):
        try:
            log_buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


buffer_handler = LogBufferHandler()
buffer_handler.setLevel(logging.DEBUG)
buffer_handler.setFormatter(logging.Formatter("%(message)s"))
logger.addHandler(buffer_handler)


def recent_logs() -> list[dict]:
    """Return a copy of the buffered log entries, oldest first."""
    return list(log_buffer)


def configure_console(verbose: bool = False) -> None:
    """Attach a rich console handler; DEBUG when verbose, WARNING otherwise."""
    from rich.logging import RichHandler

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    level = logging.DEBUG if verbose else logging.WARNING
    console_handler = RichHandler(show_path=False, markup=False)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
