"""Logging setup for fallible.

Library modules log through stdlib loggers under the ``fallible`` namespace
(``fallible.lazy``, ``fallible.future``, ...). Nothing is printed until an
application calls ``configure_logging`` or attaches its own handlers.

Quick Start:
    >>> from fallible.runtime.observability import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")            # text lines on stderr
    >>> configure_logging(format="json")            # JSON lines, for aggregation
    >>> log = get_logger("my-service")
    >>> log.info("started")
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

import orjson

from fallible.foundation.config import get_settings

ROOT_LOGGER = "fallible"

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger in the fallible namespace, e.g. ``get_logger("lazy")`` -> ``fallible.lazy``."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, event plus any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        data.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str, option=orjson.OPT_NON_STR_KEYS).decode()


_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: str | None = None,
    format: str | None = None,  # noqa: A002 - matches LoggingSettings field
    *,
    output: TextIO | None = None,
) -> logging.Handler:
    """Attach a single stream handler to the ``fallible`` logger.

    Args:
        level: Minimum level name; defaults to ``LoggingSettings.level``
        format: "text" or "json"; defaults to ``LoggingSettings.format``
        output: Stream to write to (default stderr)

    Returns:
        The installed handler. Calling again replaces it.
    """
    settings = get_settings().logging
    level_name = (level or settings.level).upper()
    fmt = format or settings.format

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    handler.set_name("fallible")

    root = logging.getLogger(ROOT_LOGGER)
    for existing in list(root.handlers):
        if existing.get_name() == "fallible":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.WARNING))
    return handler
