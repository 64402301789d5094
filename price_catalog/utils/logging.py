"""
Logging setup for the price catalog engine.

The session controller, the query engine and the store client all log through
module loggers from `get_logger(__name__)`. Structured context goes in
`extra=` (generation numbers, record ids, failed ids of a bulk delete); the
console format ignores it, the JSON format promotes it to top-level keys.

Usage:
    from price_catalog.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("Query applied", extra={"generation": 3, "rows": 25})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# HTTP client libraries log every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a record as one JSON object with its `extra=` fields inlined."""
    payload: Dict[str, Any] = {
        "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def build_logging_config(level: str = "INFO", json_logs: bool = False) -> Dict[str, Any]:
    """The `dictConfig` mapping used by `configure_logging`."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": CONSOLE_DATEFMT},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "root": {"handlers": ["default"], "level": level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Configure root logging for the CLI or a host service.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit one JSON object per line instead of the console format.
    force : bool
        Replace an existing root configuration. With False, a root logger that
        already has handlers (a host application configured it) is left alone.
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(build_logging_config(level, json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "build_logging_config", "configure_logging", "get_logger"]
