"""
Central logging configuration for the portal.

Every record carries the request id of the request that produced it. Access
decisions, transitions and store failures log their facts through extra=
(actor_id, operation, entity_kind, entity_id, ...); both formatters keep them.

Usage:
    from portal.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Notice approved", extra={"entity_id": str(notice_id)})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set by RequestIdMiddleware for the duration of one request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "request_id",
}


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """The structured fields a log call passed through extra=."""
    fields = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS or key.startswith("_") or value is None:
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class RequestIdFilter(logging.Filter):
    """Copies the request id from context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            entry["request_id"] = request_id
        entry.update(extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """Readable single line with the extra= fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-5s [%(name)s] %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        request_id = getattr(record, "request_id", "-")
        fields = extra_fields(record)
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        if request_id != "-":
            suffix = f"req={request_id} {suffix}".rstrip()
        if not suffix:
            return line
        head, newline, rest = line.partition("\n")
        return f"{head} | {suffix}{newline}{rest}"


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
    log_format: str = "auto",
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'development', 'test' or 'production'
        debug: If True, use DEBUG level regardless of log_level
        log_format: 'json', 'text', or 'auto' (json only in production)
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    use_json = log_format == "json" or (log_format == "auto" and environment == "production")

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonFormatter() if use_json else ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    # Replace, not stack, on reload
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
