"""Logging filters referenced from the LOGGING dict."""

import logging
from contextvars import ContextVar

# Set by RequestIDMiddleware for the duration of one request.
current_request_id: ContextVar[str] = ContextVar("current_request_id", default="-")


class MaxLevelFilter(logging.Filter):
    """Drop records above ``level`` so a handler can leave them to a more specific file."""

    def __init__(self, level: str | int) -> None:
        super().__init__()
        if isinstance(level, str):
            level = logging.getLevelNamesMapping()[level.upper()]
        self.levelno = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.levelno


class RequestIDFilter(logging.Filter):
    """Stamp ``record.request_id``; an explicit ``extra={"request_id": ...}`` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = current_request_id.get()
        return True
