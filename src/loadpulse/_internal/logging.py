"""Structured logging setup for LoadPulse."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

# Attributes passed via ``extra=`` that the JSON formatter promotes to keys.
_EXTRA_FIELDS = ("vu_id", "status", "test_id")


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, message,
    plus any of ``vu_id``, ``status`` and ``test_id`` supplied through
    ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root LoadPulse logger.

    Sets up a stderr handler on the ``loadpulse`` logger namespace.
    Subsequent calls update the level and format of the existing handler
    instead of adding another one.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs.

    Returns:
        The configured ``loadpulse`` root logger.
    """
    logger = logging.getLogger("loadpulse")
    logger.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(level)
            existing.setFormatter(formatter)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Keep output off the root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``loadpulse`` namespace.

    Args:
        name: Logger name, appended to the ``loadpulse.`` prefix.
            Example: ``get_logger("engine.virtual_user")`` returns
            ``logging.getLogger("loadpulse.engine.virtual_user")``.

    Returns:
        A child logger.
    """
    return logging.getLogger(f"loadpulse.{name}")
