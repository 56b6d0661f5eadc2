"""JSON audit log for enhancement and validation events.

One JSON object per line on stdout, plus an optional copy in
AUDIT_LOG_FILE for the desktop shell's diagnostics export. Structured
fields travel in `extra={"audit_data": {...}}`; any field whose name
looks like a credential is masked before it is written.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from dictation_ai.config.settings import Settings, get_settings

AUDIT_LOGGER_NAME = "dictation_ai.audit"
REDACTED = "***"

# Substrings of audit_data keys whose values are never written
_SECRET_MARKERS = ("api_key", "secret", "token", "authorization", "password")

# Correlates every entry emitted while one enhancement request runs
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def redact(data: dict) -> dict:
    """Copy of `data` with credential-like values replaced, recursing into dicts."""
    clean = {}
    for key, value in data.items():
        if any(marker in str(key).lower() for marker in _SECRET_MARKERS):
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        audit_data = getattr(record, "audit_data", None)
        if isinstance(audit_data, dict):
            entry.update(redact(audit_data))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _handlers(settings: Settings) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.audit_log_file:
        handlers.append(logging.FileHandler(settings.audit_log_file, encoding="utf-8"))
    return handlers


def setup_logging() -> None:
    """Attach JSON handlers to the audit logger. Safe to call repeatedly."""
    settings = get_settings()
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    formatter = JSONFormatter()
    for handler in _handlers(settings):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Entries are already complete JSON; the root logger would print them again
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTimer:
    """Wall-clock duration of one enhancement call, in seconds."""

    def __init__(self):
        self._started: float = 0
        self.elapsed: float = 0

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self._started

    @property
    def elapsed_ms(self) -> float:
        return round(self.elapsed * 1000, 2)
