"""
Structured JSON logging configuration.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional
from uuid import uuid4

# Correlation id for one reconciliation operation (signup, retry, refund...)
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with consistent schema.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through logger.x(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data["file"] = record.pathname
        log_data["line"] = record.lineno
        log_data["function"] = record.funcName

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Use JSON format (True) or plain text (False)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_logs:
        formatter = JSONFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for current context.

    Args:
        correlation_id: Correlation ID (generates UUID if None)

    Returns:
        Correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid4())
    correlation_id_ctx.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from current context."""
    return correlation_id_ctx.get()


def log_performance(logger: logging.Logger, operation: str, start_time: float) -> None:
    """
    Log duration of an operation.

    Args:
        logger: Logger instance
        operation: Operation name
        start_time: Start timestamp from time.time()
    """
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"{operation} completed",
        extra={
            "operation": operation,
            "duration_ms": round(duration_ms, 2),
        },
    )
