"""
Structured JSON logging configuration for production
"""
import logging
import sys
import json
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

from radio_api.core.config import settings

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
    "thread", "threadName", "taskName", "message",
))


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging
    """

    def __init__(self, **kwargs):
        super().__init__()
        self.default_fields = kwargs

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        log_data.update(self.default_fields)

        # Request context and audit fields (request_id, action, log_id, ...)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for development
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = f"{color}{record.levelname:8}{self.RESET}"

        request_id = getattr(record, "request_id", None)
        if request_id:
            message = f"{timestamp} | {level} | [{request_id[:8]}] | {record.name} | {record.getMessage()}"
        else:
            message = f"{timestamp} | {level} | {record.name} | {record.getMessage()}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


_request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})


class RequestContextFilter(logging.Filter):
    """
    Filter that adds request context to log records

    Context is held per task in a ContextVar; background tasks
    inherit the values of the request that scheduled them.
    """

    def set_context(self, **kwargs):
        """Set context values for current request"""
        _request_context.set({**_request_context.get(), **kwargs})

    def clear_context(self):
        """Clear context after request"""
        _request_context.set({})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _request_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


# Global context filter instance
context_filter = RequestContextFilter()


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_logs: Optional[bool] = None
):
    """
    Configure application logging

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_logs: Force JSON logging (None = auto based on DEBUG setting)
    """
    use_json = json_logs if json_logs is not None else not settings.DEBUG
    default_fields = {
        "service": settings.PROJECT_NAME,
        "environment": settings.SENTRY_ENVIRONMENT,
    }

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    if use_json:
        console_handler.setFormatter(JSONFormatter(**default_fields))
    else:
        console_handler.setFormatter(ConsoleFormatter())
    handlers.append(console_handler)

    # File handler (always JSON for parsing)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter(**default_fields))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    # Third-party noise
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
