"""Structured JSON logging with correlation ID support.

Extra fields are attached as ``extra={"extra_fields": {...}}`` and merged
into the JSON object of the log line.
"""

import json
import logging
import os
import sys
from datetime import date, datetime, timezone
from typing import Any

from .correlation import get_correlation_id


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, stamped with the request correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj.update(extra_fields)

        return json.dumps(log_obj, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output on stdout.

    Level comes from LOG_LEVEL (default INFO).
    """
    logger = logging.getLogger(name)

    # avoid duplicate handlers on re-import
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
        logger.propagate = False

    return logger
