"""Logging for the embedding store.

Store and index clients attach their context (namespace, operation,
index or collection) through ``extra=``. The JSON formatter lifts those
fields to the top level of each line so logs can be filtered by
namespace; any other ``extra`` values are nested under ``"extra"``. The
development formatter appends the same context as ``key=value`` pairs.

The library itself only calls get_logger(); applications that embed it
call setup_logging() once at startup.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from embedding_store.config import Environment, get_settings

# Context attached by the store and index clients, in display order
CONTEXT_FIELDS = ("namespace", "operation", "index", "collection")

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


def _split_extra(record: logging.LogRecord) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate store context from other extra= values on a record."""
    context: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS:
            continue
        if key in CONTEXT_FIELDS:
            context[key] = value
        else:
            extra[key] = value
    return context, extra


class JSONFormatter(logging.Formatter):
    """One JSON object per line, store context at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        context, extra = _split_extra(record)
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **{key: context[key] for key in CONTEXT_FIELDS if key in context},
        }

        if extra:
            log_data["extra"] = extra
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.pathname:
            log_data["file"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(log_data, default=str, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """Single-line human-readable output with store context appended."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATE_FORMAT = "%H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context, _ = _split_extra(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={context[key]}" for key in CONTEXT_FIELDS if key in context)
        return f"{line} [{pairs}]"


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
) -> logging.Logger:
    """Install a stdout handler on the root logger.

    Args:
        level: Log level override (default from settings).
        json_output: Force JSON output (default: JSON outside development).

    Returns:
        Root logger instance.
    """
    settings = get_settings()

    numeric_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if json_output is None:
        json_output = settings.environment != Environment.DEVELOPMENT

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_output else DevFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Suppress per-request HTTP logs
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a named logger, typically ``get_logger(__name__)``."""
    return logging.getLogger(name)
