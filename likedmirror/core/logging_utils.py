from __future__ import annotations

import logging
import sys
import uuid

from loguru import logger as loguru_logger

# LogRecord attributes that are not user-supplied ``extra`` fields
_STANDARD_RECORD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.scheduler", "apscheduler.executors.default")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping ``extra`` fields as bound context."""

    def emit(self, record: logging.LogRecord) -> None:
        level: int | str
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _STANDARD_RECORD_FIELDS
        }
        loguru_logger.bind(logger_name=record.name, **extra).opt(
            depth=6, exception=record.exc_info
        ).log(level, record.getMessage())


def setup_json_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_file_size: str = "50 MB",
    retention: str = "14 days",
) -> None:
    """Route stdlib logging through loguru with JSON-serialized sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path for persistent logging
        max_file_size: Maximum size per log file (loguru format)
        retention: Log retention period (loguru format)
    """
    lvl = getattr(logging, level.upper(), logging.INFO)

    loguru_logger.remove()
    loguru_logger.add(
        sys.stdout,
        level=level.upper(),
        serialize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    if log_file:
        loguru_logger.add(
            log_file,
            level=level.upper(),
            serialize=True,
            rotation=max_file_size,
            retention=retention,
            compression="gz",
            enqueue=True,
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)
    root.addHandler(InterceptHandler())

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    loguru_logger.info(
        "logging_initialized",
        setup_config={"level": level, "log_file": log_file, "retention": retention},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one sync operation across logs."""
    return uuid.uuid4().hex[:12]


__all__ = [
    "InterceptHandler",
    "generate_correlation_id",
    "setup_json_logging",
]
