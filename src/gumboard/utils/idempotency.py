# src/gumboard/utils/idempotency.py
from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from gumboard.utils.time import now_ms as _clock_ms

DEDUP_WINDOW_MS = 30_000
EVENT_DEDUP_WINDOW_MS = 5 * 60 * 1000
EVENT_CACHE_MAX_SIZE = 1000


def build_key(entity_id: str, action: str, content: str) -> str:
    """Dedup key for one logical notification: ``<entity>_<action>_<content>``."""
    return f"{entity_id}_{action}_{content}"


class DedupStore:
    """
    Thread-safe, time-windowed idempotency cache for outbound notifications.

    - ``should_send`` records the first arrival of a key and vetoes repeats
      inside ``window_ms`` without refreshing the stored timestamp.
    - Expired entries are purged on every call (no background timer).
    - State is process-local and lost on restart.

    Usage:
        store = DedupStore()
        store.should_send("item_1", "completed", "Buy milk")  # True
        store.should_send("item_1", "completed", "Buy milk")  # False (inside window)
    """

    def __init__(self, window_ms: int = DEDUP_WINDOW_MS, *, clock: Callable[[], int] = _clock_ms) -> None:
        if window_ms <= 0:
            raise ValueError("DedupStore: window_ms must be positive")
        self.window_ms = int(window_ms)
        self._clock = clock
        self._lock = threading.Lock()
        # key -> first-seen timestamp (ms)
        self._seen: Dict[str, int] = {}

    def should_send(self, entity_id: str, action: str, content: str, now_ms: Optional[int] = None) -> bool:
        ts = self._clock() if now_ms is None else int(now_ms)
        key = build_key(entity_id, action, content)
        with self._lock:
            self._purge_expired_unlocked(ts)
            last = self._seen.get(key)
            if last is not None and ts - last < self.window_ms:
                return False
            self._seen[key] = ts
            return True

    def _purge_expired_unlocked(self, ts: int) -> None:
        expired = [k for k, seen in self._seen.items() if ts - seen >= self.window_ms]
        for k in expired:
            del self._seen[k]

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


class EventDeduper:
    """
    Guard against redelivered inbound chat events (same event id delivered twice).

    An id counts as a duplicate for ``window_ms`` after its first delivery.
    Expired entries are swept once the cache grows past ``max_size``.
    """

    def __init__(
        self,
        window_ms: int = EVENT_DEDUP_WINDOW_MS,
        max_size: int = EVENT_CACHE_MAX_SIZE,
        *,
        clock: Callable[[], int] = _clock_ms,
    ) -> None:
        self.window_ms = int(window_ms)
        self.max_size = int(max_size)
        self._clock = clock
        self._lock = threading.Lock()
        self._events: Dict[str, int] = {}

    def is_duplicate(self, event_id: str, now_ms: Optional[int] = None) -> bool:
        if not event_id:
            return False
        ts = self._clock() if now_ms is None else int(now_ms)
        with self._lock:
            seen = self._events.get(event_id)
            if seen is not None and ts - seen < self.window_ms:
                return True
            if len(self._events) > self.max_size:
                for k in [k for k, at in self._events.items() if ts - at >= self.window_ms]:
                    del self._events[k]
            self._events[event_id] = ts
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
