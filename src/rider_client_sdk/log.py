from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

PACKAGE_LOGGER = "rider_client_sdk"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
_REDACTED_KEYS = {"password", "token", "authorization", "credential"}


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            payload[key] = "***" if key.lower() in _REDACTED_KEYS else value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if any(getattr(handler, "_rider_json", False) for handler in logger.handlers):
        return logger
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter())
    handler._rider_json = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
