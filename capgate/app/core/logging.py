"""Logging setup for capgate.

``CAPGATE_LOG_FORMAT`` selects plain text, text with the dispatch context
appended (``structured``), or one JSON object per line (``json``).

Output goes to stderr only: when the server runs over stdio, stdout is the
MCP protocol stream.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from capgate.app.core.config import settings


# Per-call fields the gateway attaches through ``extra=``
CONTEXT_FIELDS = ("request_id", "category", "method", "path", "status_code", "duration_ms")

# Attributes every LogRecord carries on this interpreter
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_STRUCTURED_FORMAT = (
    _TEXT_FORMAT + " - category=%(category)s - path=%(path)s - status_code=%(status_code)s"
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Context fields are promoted to the top level when set; any other
    ``extra=`` attributes are grouped under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra: Dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in CONTEXT_FIELDS:
                if value is not None:
                    payload[key] = value
            elif key not in _RECORD_ATTRS:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Default the context fields to None so format strings can use them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, None)
        return True


def _console_logger(level: str) -> Dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def get_logging_config() -> Dict[str, Any]:
    """dictConfig for the configured format and level."""
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters: Dict[str, Any] = {
        "standard": {"format": _TEXT_FORMAT},
        "structured": {"format": _STRUCTURED_FORMAT},
    }
    if log_format == "json":
        formatters["json"] = {"()": JSONFormatter}
        formatter = "json"
    elif log_format == "structured":
        formatter = "structured"
    else:
        formatter = "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {"context": {"()": ContextFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": formatter,
                "stream": sys.stderr,
                "filters": ["context"],
            },
        },
        "loggers": {
            "capgate": _console_logger(log_level),
            "fastmcp": _console_logger(log_level),
            "httpx": _console_logger("WARNING"),
            "mcp": _console_logger("WARNING"),
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }


def setup_logging() -> None:
    logging.config.dictConfig(get_logging_config())
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str = "capgate") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    request_id: Optional[str] = None,
    category: Optional[str] = None,
    method: Optional[str] = None,
    path: Optional[str] = None,
    **extra
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for a log call, dropping unset fields.

    Example:
        >>> logger.info(
        ...     "GET /spaces -> 200",
        ...     extra=get_log_context(method="GET", path="/spaces", status_code=200)
        ... )
    """
    context = {
        "request_id": request_id,
        "category": category,
        "method": method,
        "path": path,
        **extra,
    }
    return {k: v for k, v in context.items() if v is not None}
