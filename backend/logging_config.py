"""
Structured Logging Configuration for OneShot
JSON lines in production, colored single lines in development.
Every record carries the correlation ID of the request that produced it.
"""

import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Correlation ID of the request being handled
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# LogRecord attributes that are not user-supplied extras
STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "correlation_id", "taskName"}

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "httpx", "httpcore")


def get_correlation_id() -> str:
    """Current correlation ID, empty outside a request"""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind a correlation ID to the current context, generating one if not given"""
    cid = correlation_id or uuid.uuid4().hex[:8]
    correlation_id_var.set(cid)
    return cid


def _record_correlation_id(record: logging.LogRecord) -> str:
    return getattr(record, "correlation_id", "") or get_correlation_id()


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through `extra=` on the logging call"""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in STANDARD_RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregators"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = _record_correlation_id(record)
        if correlation_id:
            entry["correlation_id"] = correlation_id

        if record.levelno >= logging.WARNING:
            entry["location"] = f"{record.filename}:{record.lineno} in {record.funcName}"

        entry.update(_record_extras(record))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class PrettyFormatter(logging.Formatter):
    """Human-readable colored output for local development"""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        correlation_id = _record_correlation_id(record)

        parts = [timestamp, f"{color}{record.levelname:8}{RESET}"]
        if correlation_id:
            parts.append(f"[{correlation_id}]")
        parts.append(f"{record.name}: {record.getMessage()}")
        line = " ".join(parts)

        extras = _record_extras(record)
        if extras:
            line += " | " + " ".join(f"{k}={v}" for k, v in extras.items())

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class CorrelationFilter(logging.Filter):
    """Stamps the current correlation ID onto every record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(logging.DEBUG)
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON on the console (for production)
        log_file: Optional file path; file output is always JSON
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    root.handlers.clear()

    console_formatter = JSONFormatter() if json_format else PrettyFormatter()
    root.addHandler(_handler(logging.StreamHandler(sys.stdout), console_formatter))
    if log_file:
        root.addHandler(_handler(logging.FileHandler(log_file), JSONFormatter()))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        "Logging configured",
        extra={"log_level": level, "json_format": json_format, "log_file": log_file}
    )


class StructuredLogger:
    """
    Logger wrapper that attaches a fixed context (e.g. session_id)
    to every record as extra fields.
    """

    def __init__(self, name: str, default_context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.default_context = default_context or {}

    def _log(self, level: int, message: str, **extra):
        self.logger.log(level, message, extra={**self.default_context, **extra})

    def debug(self, message: str, **extra):
        self._log(logging.DEBUG, message, **extra)

    def info(self, message: str, **extra):
        self._log(logging.INFO, message, **extra)
