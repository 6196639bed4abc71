# src/gumboard/utils/time.py
from __future__ import annotations

import time as _time
from datetime import datetime, timezone

__all__ = [
    "now_ms",
    "iso_utc",
]


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(_time.time() * 1000)


def iso_utc(ts_ms: int | None = None) -> str:
    """ISO-8601 string in UTC for a millisecond timestamp (or now)."""
    if ts_ms is None:
        ts_ms = now_ms()
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()
