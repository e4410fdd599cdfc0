"""Logging helpers for structured application logs."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

EXTRA_FIELDS = (
    "request_id",
    "client_ip",
    "method",
    "path",
    "status",
    "detail",
    "default",
    "removed",
    "interval",
    "retry_after",
)


class JsonFormatter(logging.Formatter):
    """Render log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for attr in EXTRA_FIELDS:
            value = getattr(record, attr, None)
            if value is not None:
                payload[attr] = value
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logger with JSON formatting."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
