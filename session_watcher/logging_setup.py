"""Logging configuration for the session watcher service.

Console output in plain text, plus an optional rotating JSON log file.
"""

import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import Config

LOGGER_NAME = "session_watcher"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "session_watcher.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = {
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
}


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Formats log records as JSON with timestamp, level, message, and extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(config: Config, stream=None) -> logging.Logger:
    """Set up console and optional file logging for the service.

    Args:
        config: Service configuration (log_level, log_path).
        stream: Console stream, stdout by default.

    Returns:
        logging.Logger: The package logger.
    """
    level = getattr(logging, config.log_level, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    file_handler = _file_handler(config, level)
    if file_handler:
        logger.addHandler(file_handler)
    elif config.log_path:
        logger.warning(f"Could not create log file in {config.log_path}. Logging to console only.")

    return logger


def _file_handler(config: Config, level: int) -> Optional[logging.Handler]:
    if not config.log_path:
        return None

    try:
        config.log_path.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            config.log_path / LOG_FILE_NAME,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        return None

    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler
