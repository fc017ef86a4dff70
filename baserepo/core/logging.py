"""
Logging configuration.

Plain text output by default; one JSON object per line when ``log_json`` is
enabled. Repositories attach structured fields (model, operation, record_id,
count) through ``extra=`` and the JSON formatter emits them as keys.
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    Formats records as single-line JSON.

    Example output:
        {"timestamp": "2026-01-05T10:30:00.123456+00:00", "level": "INFO",
         "message": "Created Post", "logger": "baserepo.repositories.base",
         "model": "Post", "operation": "create", "record_id": 3}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        # Fields passed via logger.info("msg", extra={...})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name; defaults to ``settings.log_level``
        json_format: Use JSONFormatter; defaults to ``settings.log_json``

    Call once at application startup.
    """
    from baserepo.config import settings

    level = level or settings.log_level
    json_format = settings.log_json if json_format is None else json_format

    root_logger = logging.getLogger()
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # SQL echo is controlled by app_debug on the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually the module's ``__name__``)."""
    return logging.getLogger(name)
