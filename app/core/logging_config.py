"""Logging setup for the ledger service."""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.config import settings

_LOGGER_PREFIX = "app"

_STDLIB_KEYS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_configured = False
_lock = threading.Lock()


class JSONFormatter(logging.Formatter):
    """Formats each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Fields passed through `extra=`
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val
        if record.exc_info and record.exc_info[1] is not None:
            payload["exc_type"] = type(record.exc_info[1]).__name__
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Configure the `app` logger hierarchy. Safe to call more than once."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    level = level or settings.LOG_LEVEL
    if json_output is None:
        json_output = settings.LOG_JSON

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level.upper())
    root_logger.propagate = False

    h = handler or logging.StreamHandler(sys.stderr)
    if json_output:
        h.setFormatter(JSONFormatter())
    else:
        h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Undo configure_logging. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
