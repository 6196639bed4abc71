"""
JSON logging for the board service.

One JSON object per line on stdout. The request id travels in a ContextVar set
by the HTTP middleware, so notifier and storage logs of one request share it.
Extra fields whose name looks like a credential (webhook URLs embed their
secret in the path) are replaced with ``MASK``.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

MASK = "***"

_request_id: ContextVar[Optional[str]] = ContextVar("gumboard_request_id", default=None)

_SECRET_MARKERS = ("webhook_url", "token", "secret", "password", "authorization", "credential")

# attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def set_correlation_id(value: Optional[str]) -> None:
    _request_id.set(value)


def get_correlation_id() -> Optional[str]:
    return _request_id.get()


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): MASK if _is_secret(str(k)) else _jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


class JsonFormatter(logging.Formatter):
    """``{"ts", "level", "logger", "message", "request_id", ...extra}`` per record."""

    def __init__(self, *, include_timestamp: bool = True) -> None:
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {}
        if self.include_timestamp:
            out["ts"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        out["level"] = record.levelname
        out["logger"] = record.name
        out["message"] = record.getMessage()

        request_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if request_id:
            out["request_id"] = request_id

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key == "correlation_id" or key.startswith("_"):
                continue
            out[key] = MASK if _is_secret(key) else _jsonable(value)

        if record.exc_info and record.exc_info[0] is not None:
            out["exc_type"] = record.exc_info[0].__name__
            out["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(out, ensure_ascii=False, default=str)


def _env_level() -> int:
    name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_root(level: Optional[int] = None) -> None:
    """
    Route the root logger to one JSON stdout handler.

    Safe to call repeatedly (server lifespan, CLI entry point, tests): the
    existing handler is reused and only its level is updated.
    """
    lvl = _env_level() if level is None else level
    root = logging.getLogger()
    root.setLevel(lvl)

    handler = next((h for h in root.handlers if isinstance(h.formatter, JsonFormatter)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
    handler.setLevel(lvl)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    # records propagate to root, so pytest's caplog sees them as well
    return logging.getLogger(name)


def add_context_fields(**fields: Any) -> dict[str, Any]:
    """``extra=`` dict that also pins the current request id onto the record."""
    extra = dict(fields)
    request_id = get_correlation_id()
    if request_id:
        extra["correlation_id"] = request_id
    return extra


__all__ = [
    "MASK",
    "JsonFormatter",
    "add_context_fields",
    "configure_root",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
