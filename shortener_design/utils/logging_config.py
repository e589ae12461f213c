"""
Logging configuration for the URL shortener design showcase
Supports JSON logs in production and human-readable logs in development
Includes request ID context shared with the HTTP middleware
"""

import json
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

# Context variable for request ID (per request / per websocket session)
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "request_id",
})


def _current_request_id(record: logging.LogRecord) -> Optional[str]:
    return request_id_context.get() or getattr(record, "request_id", None)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line"""
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = _current_request_id(record)
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with request ID support"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string"""
        request_id = _current_request_id(record)

        base_format = "%(asctime)s - %(name)s - %(levelname)s"
        if request_id:
            base_format += f" - [request_id={request_id}]"
        base_format += " - %(message)s"

        formatter = logging.Formatter(base_format, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Setup logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (for production)
        log_file: Optional log file path
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
    """
    formatter: logging.Formatter = JSONFormatter() if json_format else HumanReadableFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Keep server chatter out of the showcase logs
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.WARNING)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request ID in context

    Args:
        request_id: Optional request ID. If None, generates a new UUID.

    Returns:
        The request ID (generated or provided)
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_context.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Get current request ID from context"""
    return request_id_context.get()


def get_logger(name: str) -> logging.Logger:
    """Get logger instance (typically for __name__)"""
    return logging.getLogger(name)
