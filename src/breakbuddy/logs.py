"""Package logger plus an in-memory buffer of recent log lines for the live view."""

from __future__ import annotations

import logging
import sys
from collections import deque
from datetime import datetime

LOG_BUFFER_SIZE = 100

logger = logging.getLogger("breakbuddy")

# Circular buffer of {timestamp, level, message}
log_buffer: deque[dict] = deque(maxlen=LOG_BUFFER_SIZE)


class LogBufferHandler(logging.Handler):
    """Captures log records into a circular buffer."""

    def __init__(self, buffer: deque | None = None, level: int = logging.DEBUG):
        super().__init__(level)
        self.buffer = log_buffer if buffer is None else buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": self.format(record),
            })
        except Exception:
            # Never let the buffer break logging
            self.handleError(record)


def recent_logs(limit: int = 10) -> list[dict]:
    return list(log_buffer)[-limit:]


def configure_logging(verbose: bool = False, stream=None) -> LogBufferHandler:
    """Attach the buffer handler (once) and optionally a stderr handler."""
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    buffer_handler = next((h for h in logger.handlers if isinstance(h, LogBufferHandler)), None)
    if buffer_handler is None:
        buffer_handler = LogBufferHandler()
        buffer_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(buffer_handler)

    if verbose and not any(type(h) is logging.StreamHandler for h in logger.handlers):
        stream_handler = logging.StreamHandler(stream or sys.stderr)
        stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(stream_handler)

    return buffer_handler
