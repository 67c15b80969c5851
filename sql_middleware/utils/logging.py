"""
Logging setup for the SQL middleware.

One call to ``configure_logging`` routes the service's loggers (and
uvicorn's) through a single root handler, either as readable console lines
or as JSON objects for a log collector. Each record is stamped with the
correlation ID of the HTTP request being served, so the lines a database
operation writes can be tied back to the request that caused them.

Usage:
    from sql_middleware.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("statement finished", extra={"rows_affected": 3})
"""

from __future__ import annotations

import json
import logging
import logging.config
from contextvars import ContextVar
from typing import Any, Dict, Optional

NO_CORRELATION_ID = "-"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default=NO_CORRELATION_ID)

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}


def set_correlation_id(value: str) -> None:
    """Bind *value* to the current task; records logged from it carry the ID."""
    _correlation_id.set(value)


def get_correlation_id() -> str:
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = _correlation_id.get()
        return True


def _json_formatter(record: logging.LogRecord) -> str:
    """Serialize a record to one JSON line, lifting `extra=` fields to the top level."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(
        (key, value)
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    )
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Install the root handler.

    Parameters
    ----------
    level : str
        Level name such as "DEBUG" or "WARNING"; case-insensitive.
    json_logs : bool
        Emit one JSON object per line instead of the console format.
    """
    level = level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"correlation": {"()": CorrelationIdFilter}},
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(correlation_id)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "filters": ["correlation"],
                    "level": level,
                }
            },
            "loggers": {
                name: {"handlers": [], "propagate": True}
                for name in ("uvicorn", "uvicorn.access", "uvicorn.error")
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "CorrelationIdFilter",
    "JsonFormatter",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
