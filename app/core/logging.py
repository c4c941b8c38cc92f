import logging
import sys
import os
from typing import Dict, Any, Optional
import json
from datetime import datetime, timezone
import contextlib
import contextvars
from pathlib import Path

from app.core.config import settings

# Global context variable for request information
request_context = contextvars.ContextVar("request_context", default={})

# Keys whose values must never reach a log sink
SENSITIVE_KEYS = frozenset(
    {"access_token", "refresh_token", "client_secret", "code", "state", "authorization"}
)
REDACTED = "***"


def redact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``values`` with OAuth secrets masked."""
    return {
        key: (REDACTED if key.lower() in SENSITIVE_KEYS and value else value)
        for key, value in values.items()
    }


class JsonFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per record.
    """

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._prepare_log_dict(record), default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        record_dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            record_dict["exception"] = self.formatException(record.exc_info)

        # Request / flow context (user_id, app_type, connection_state, ...)
        for key, value in redact(request_context.get()).items():
            record_dict.setdefault(key, value)

        return record_dict


class ContextFilter(logging.Filter):
    """
    Filter that copies the current log context onto each record.
    """

    def filter(self, record):
        for key, value in redact(request_context.get()).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def setup_logging(level: Optional[str] = None):
    """
    Set up logging for the application.

    Args:
        level: Optional log level override (default to settings)
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    # Filters on a handler see records from every logger, not just root
    console_handler.addFilter(ContextFilter())

    # Use JSON formatter in production
    if settings.ENVIRONMENT == "production":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s (%(filename)s:%(lineno)d) - %(message)s"
        )

    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE:
        try:
            os.makedirs(Path(settings.LOG_FILE).parent, exist_ok=True)

            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.addFilter(ContextFilter())
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Error setting up file logging: {e}")

    # Quiet noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

    return logging.getLogger("app")


@contextlib.contextmanager
def log_context(**context_data):
    """
    Context manager for adding context to logs.

    Usage:
        with log_context(user_id="42", app_type="ZOOM_MEETING"):
            logger.info("Exchanging authorization code")

    Args:
        **context_data: Key-value pairs to add to log context
    """
    current_context = request_context.get().copy()
    current_context.update(context_data)
    token = request_context.set(current_context)

    try:
        yield
    finally:
        request_context.reset(token)
