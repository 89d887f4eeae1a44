"""Structured JSON Logging with Correlation ID Support"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Mapping, Optional
from contextvars import ContextVar

from ..config.settings import settings


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Record attributes copied into the JSON line when a caller passes them as extra
CONTEXT_FIELDS = (
    "ticket_id", "action", "role", "state", "record_type",
    "reference_uid", "policy", "error_code",
)

# Buffer keys whose values never reach a log line
SENSITIVE_KEY_MARKERS = ("password", "secret", "passphrase", "privatekey", "pincode", "securitycode", "cardnumber")
REDACTED = "[REDACTED]"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the active correlation ID"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _rotating_handler(path: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """
    Configure the root logger

    Everything goes to stdout and to requests.log under settings.logs_path;
    errors are also copied to errors.log.
    """
    os.makedirs(settings.logs_path, exist_ok=True)
    formatter = JsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(
        _rotating_handler(os.path.join(settings.logs_path, "requests.log"), logging.NOTSET, formatter)
    )
    root_logger.addHandler(
        _rotating_handler(os.path.join(settings.logs_path, "errors.log"), logging.ERROR, formatter)
    )

    for noisy in ("uvicorn.access", "pymongo", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Adds fixed context (e.g. ticket_id) to every record, merged with per-call extra"""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), context)


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def is_sensitive_key(key: str) -> bool:
    """True when a buffer key names a password-like value"""
    normalized = key.replace("_", "").replace(".", "").lower()
    return any(marker in normalized for marker in SENSITIVE_KEY_MARKERS)


def redact_buffer(buffer: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of an edit buffer that is safe to put in a log line"""
    return {
        key: (REDACTED if value not in (None, "") and is_sensitive_key(key) else value)
        for key, value in buffer.items()
    }
