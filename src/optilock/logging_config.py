"""
Opt-in JSON logging for the ``optilock`` logger tree.

Library modules only call ``logging.getLogger(__name__)``; applications
that want structured output call ``configure_logging()`` once::

    from optilock.logging_config import configure_logging
    configure_logging("DEBUG")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

ROOT_LOGGER = "optilock"
EXTRA_FIELDS = ("table", "record_id", "rows")


class JSONFormatter(logging.Formatter):
    """Emits each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str | int = "WARNING", stream: TextIO | None = None) -> logging.Logger:
    """Attach a single JSON stream handler to the ``optilock`` logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_optilock", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter())
    handler._optilock = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
