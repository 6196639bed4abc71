# src/gumboard/utils/rate_limit.py
from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from gumboard.utils.logging import get_logger
from gumboard.utils.time import now_ms as _clock_ms

_log = get_logger(__name__)

DEBOUNCE_WINDOW_MS = 1_000
TEST_BOARD_PREFIX = "Test"


def debounce_key(actor_id: str, board_id: str) -> str:
    return f"{actor_id}-{board_id}"


class DebounceGate:
    """
    Per (actor, board) burst collapser for outbound notifications.

    Only the first call inside a fixed window is allowed; later calls in the
    same window are rejected and do NOT extend it. Boards whose name starts
    with ``test_board_prefix`` or that have updates switched off are always
    rejected, before any timing state is read or written.
    """

    __slots__ = ("window_ms", "test_board_prefix", "_clock", "_lock", "_last")

    def __init__(
        self,
        window_ms: int = DEBOUNCE_WINDOW_MS,
        test_board_prefix: str = TEST_BOARD_PREFIX,
        *,
        clock: Callable[[], int] = _clock_ms,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("DebounceGate: window_ms must be positive")
        self.window_ms = int(window_ms)
        self.test_board_prefix = test_board_prefix
        self._clock = clock
        self._lock = threading.Lock()
        # key -> window start (ms)
        self._last: Dict[str, int] = {}

    def allow(
        self,
        actor_id: str,
        board_id: str,
        now_ms: Optional[int] = None,
        *,
        board_name: str = "",
        send_updates: bool = True,
    ) -> bool:
        if self.test_board_prefix and board_name.startswith(self.test_board_prefix):
            _log.debug("debounce.skip_test_board", extra={"board_id": board_id})
            return False
        if not send_updates:
            _log.debug("debounce.skip_updates_disabled", extra={"board_id": board_id})
            return False

        ts = self._clock() if now_ms is None else int(now_ms)
        key = debounce_key(actor_id, board_id)
        with self._lock:
            self._purge_expired_unlocked(ts)
            last = self._last.get(key)
            if last is not None:
                _log.debug("debounce.suppressed", extra={"key": key, "elapsed_ms": ts - last})
                return False
            self._last[key] = ts
            return True

    def _purge_expired_unlocked(self, ts: int) -> None:
        for k in [k for k, start in self._last.items() if ts - start >= self.window_ms]:
            del self._last[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._last)
