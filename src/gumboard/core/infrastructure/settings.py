"""
Settings for the gumboard checklist service.

- Defaults live in code as named constants
- ENV may override any of them
- validate_settings() (pydantic) rejects nonsense before the app wires up
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from gumboard.core.infrastructure.notifications.dispatch_queue import (
    DEFAULT_HARD_TIMEOUT_SEC,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_WORKERS,
)
from gumboard.core.infrastructure.notifications.webhook import (
    DEFAULT_ICON_EMOJI,
    DEFAULT_TIMEOUT_SEC,
    DEFAULT_USERNAME,
)
from gumboard.utils.idempotency import DEDUP_WINDOW_MS, EVENT_DEDUP_WINDOW_MS
from gumboard.utils.rate_limit import DEBOUNCE_WINDOW_MS, TEST_BOARD_PREFIX

DEFAULT_DB_PATH = "./data/gumboard.sqlite3"


# ============= HELPERS =============

def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_int(name: str, default: int = 0) -> int:
    val = _get_env(name, str(default))
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _get_float(name: str, default: float = 0.0) -> float:
    val = _get_env(name, str(default))
    try:
        return float(val) if val else default
    except ValueError:
        return default


# ============= SETTINGS =============

@dataclass
class Settings:
    DB_PATH: str = DEFAULT_DB_PATH
    APP_BASE_URL: str = ""

    # notification gates
    DEBOUNCE_WINDOW_MS: int = DEBOUNCE_WINDOW_MS
    DEDUP_WINDOW_MS: int = DEDUP_WINDOW_MS
    EVENT_DEDUP_WINDOW_MS: int = EVENT_DEDUP_WINDOW_MS
    TEST_BOARD_PREFIX: str = TEST_BOARD_PREFIX

    # webhook delivery
    WEBHOOK_TIMEOUT_SEC: float = DEFAULT_TIMEOUT_SEC
    WEBHOOK_HARD_TIMEOUT_SEC: float = DEFAULT_HARD_TIMEOUT_SEC
    DISPATCH_QUEUE_SIZE: int = DEFAULT_QUEUE_SIZE
    DISPATCH_WORKERS: int = DEFAULT_WORKERS
    WEBHOOK_USERNAME: str = DEFAULT_USERNAME
    WEBHOOK_ICON_EMOJI: str = DEFAULT_ICON_EMOJI

    LOG_LEVEL: str = "INFO"

    def board_url(self, board_id: str) -> Optional[str]:
        """Absolute board link for chat messages, or None when no base URL is set."""
        if not self.APP_BASE_URL:
            return None
        return f"{self.APP_BASE_URL.rstrip('/')}/boards/{board_id}"

    @classmethod
    def load(cls) -> "Settings":
        """Read settings from ENV (code defaults otherwise)."""
        return cls(
            DB_PATH=_get_env("DB_PATH", DEFAULT_DB_PATH) or DEFAULT_DB_PATH,
            APP_BASE_URL=_get_env("APP_BASE_URL"),
            DEBOUNCE_WINDOW_MS=_get_int("DEBOUNCE_WINDOW_MS", DEBOUNCE_WINDOW_MS),
            DEDUP_WINDOW_MS=_get_int("DEDUP_WINDOW_MS", DEDUP_WINDOW_MS),
            EVENT_DEDUP_WINDOW_MS=_get_int("EVENT_DEDUP_WINDOW_MS", EVENT_DEDUP_WINDOW_MS),
            TEST_BOARD_PREFIX=os.getenv("TEST_BOARD_PREFIX", TEST_BOARD_PREFIX),
            WEBHOOK_TIMEOUT_SEC=_get_float("WEBHOOK_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
            WEBHOOK_HARD_TIMEOUT_SEC=_get_float("WEBHOOK_HARD_TIMEOUT_SEC", DEFAULT_HARD_TIMEOUT_SEC),
            DISPATCH_QUEUE_SIZE=_get_int("DISPATCH_QUEUE_SIZE", DEFAULT_QUEUE_SIZE),
            DISPATCH_WORKERS=_get_int("DISPATCH_WORKERS", DEFAULT_WORKERS),
            WEBHOOK_USERNAME=_get_env("WEBHOOK_USERNAME", DEFAULT_USERNAME) or DEFAULT_USERNAME,
            WEBHOOK_ICON_EMOJI=_get_env("WEBHOOK_ICON_EMOJI", DEFAULT_ICON_EMOJI) or DEFAULT_ICON_EMOJI,
            LOG_LEVEL=_get_env("LOG_LEVEL", "INFO").upper() or "INFO",
        )


# ============= SINGLETON =============

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.load()
    return _settings_instance


def reload_settings() -> Settings:
    """Drop the cached instance and re-read ENV (for tests)."""
    global _settings_instance
    _settings_instance = None
    return get_settings()


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
