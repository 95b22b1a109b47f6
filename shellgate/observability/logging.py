from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

LOGGER_NAME = "shellgate.runtime"

_EXTRA_FIELDS = (
    "trace_id",
    "task_id",
    "tool_id",
    "command",
    "reason",
    "outcome",
    "duration_ms",
    "pid",
    "path",
    "status",
    "method",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname.lower(),
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "message": record.getMessage(),
        }

        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def get_runtime_logger(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if level:
        logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    if not level:
        logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
