"""Structured logging setup for kiln.

Every record is one JSON line on stderr. Events logged through `log_event`
carry their fields on the record under `kiln_fields`; the formatter folds
them into the top level of the line.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any


DEFAULT_LEVEL = "WARNING"
ROOT_LOGGER = "kiln"


class _EventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "kiln_fields", {}))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install the JSON handler on the kiln logger and return it.

    Repeated calls keep the one handler and only change the level when
    `level` is given.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_EventFormatter())
        logger.addHandler(handler)
        logger.propagate = False
        logger.setLevel(DEFAULT_LEVEL)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log `event` with `fields` as structured data."""

    logger.log(level, event, extra={"kiln_fields": {"event": event, **fields}})
