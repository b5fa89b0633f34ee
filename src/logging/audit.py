"""JSON audit log for relay requests.

One JSON object per line on stdout, plus AUDIT_LOG_FILE when set. Every
line carries the request id bound by the HTTP handler, so the rejection,
fallback, stream and transcript lines of one relay call can be joined.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from src.config.settings import get_settings

LOGGER_NAME = "relay.audit"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_BASE_FIELDS = ("timestamp", "level", "logger", "message", "request_id")


class JSONFormatter(logging.Formatter):
    """Renders a record and its ``audit_data`` extra as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        for key, value in getattr(record, "audit_data", {}).items():
            # audit fields never shadow the envelope
            log_entry.setdefault(key, value)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    settings = get_settings()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter = JSONFormatter()
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.audit_log_file:
        handlers.append(logging.FileHandler(settings.audit_log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # uvicorn and the Lambda runtime own the root logger
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_request_id() -> str:
    """Start a new relay request: mint an id and attach it to this context."""
    rid = generate_request_id()
    request_id_var.set(rid)
    return rid


class StreamTimer:
    """Measures a relay stream: time to the first fragment and total time, in ms."""

    def __init__(self):
        self.start_time: float = 0
        self.first_fragment_ms: float | None = None
        self.elapsed_ms: float = 0

    def _since_start(self) -> float:
        return round((time.perf_counter() - self.start_time) * 1000, 2)

    def mark_first_fragment(self) -> None:
        if self.first_fragment_ms is None:
            self.first_fragment_ms = self._since_start()

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = self._since_start()
