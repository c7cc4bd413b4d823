from __future__ import annotations

import json
import logging
import time
from typing import Any

_JSON_LOGGER = "plantcare.events"


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": round(record.created, 3),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(service: str, level: str = "INFO") -> logging.Logger:
    """Install the JSON formatter on the root logger and return the service logger."""
    root = logging.getLogger()
    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logging.getLogger(service)


def log_json(level: int, event: str, **fields: Any) -> None:
    """Emit a structured event; extra keyword fields land in the JSON body."""
    body = {"event": event, "timestamp": time.time(), **fields}
    logging.getLogger(_JSON_LOGGER).log(level, event, extra={"fields": body})


__all__ = ["JsonFormatter", "configure_logging", "log_json"]
