"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, colored single lines in development
- Request and domain context (request_id, user_id, admin_id, document ids,
  callable function) attached to every record logged inside a LogContext
- Context lives in a ContextVar, so concurrent requests never share it
"""

import logging
import sys
import json
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict

from app.core.config import settings


# Record attributes promoted into structured output when present
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "admin_id",
    "document_id",
    "transaction_id",
    "ticket_id",
    "wallet_id",
    "function",
)

# Shown inline by the development formatter
INLINE_FIELDS = ("request_id", "user_id", "admin_id", "function")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("sawapay_log_context", default={})


class ContextFilter(logging.Filter):
    """Copies the active LogContext onto each record, without overriding `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line for log shippers.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                # "function" is the callable function name, not the Python frame
                key = "callable" if field == "function" else field
                log_data[key] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development environment.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"{color}[{timestamp}] {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        context = [f"{field}={getattr(record, field)}" for field in INLINE_FIELDS if hasattr(record, field)]
        if context:
            message += f" [{', '.join(context)}]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging():
    """
    Installs a single stdout handler on the root logger.
    JSON in production, colored text elsewhere.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Outbound HTTP and driver chatter
    for noisy in ("httpx", "httpcore", "motor", "pymongo", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("sawapay")
    logger.info(
        "Logging configured",
        extra={"environment": settings.ENVIRONMENT, "log_level": settings.LOG_LEVEL}
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Namespaced logger: get_logger(__name__) -> "sawapay.<module>".
    """
    return logging.getLogger(f"sawapay.{name}")


class LogContext:
    """
    Adds fields to every record logged inside the block. Nested contexts
    merge, inner values winning.

    Usage:
        with LogContext(user_id="abc123", function="createTransaction"):
            logger.info("Calling function")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)


def current_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())
