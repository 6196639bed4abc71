from __future__ import annotations

import threading

import pytest

from gumboard.utils.rate_limit import DEBOUNCE_WINDOW_MS, DebounceGate, debounce_key


def test_first_call_allowed_rest_of_window_rejected():
    gate = DebounceGate(window_ms=1000)
    assert gate.allow("u1", "b1", now_ms=10_000) is True
    assert gate.allow("u1", "b1", now_ms=10_001) is False
    assert gate.allow("u1", "b1", now_ms=10_999) is False
    assert gate.allow("u1", "b1", now_ms=11_000) is True


def test_rejected_calls_do_not_extend_window():
    gate = DebounceGate(window_ms=1000)
    gate.allow("u1", "b1", now_ms=0)
    for t in range(100, 1000, 100):
        assert gate.allow("u1", "b1", now_ms=t) is False
    assert gate.allow("u1", "b1", now_ms=1000) is True


def test_keys_are_independent():
    gate = DebounceGate()
    assert gate.allow("u1", "b1", now_ms=0)
    assert gate.allow("u2", "b1", now_ms=0)
    assert gate.allow("u1", "b2", now_ms=0)
    assert len(gate) == 3


def test_expired_entries_are_pruned():
    gate = DebounceGate(window_ms=1000)
    gate.allow("u1", "b1", now_ms=0)
    gate.allow("u2", "b1", now_ms=0)
    gate.allow("u3", "b1", now_ms=5_000)
    assert len(gate) == 1


def test_suppressed_call_still_prunes_expired_keys():
    gate = DebounceGate(window_ms=1000)
    gate.allow("u1", "b1", now_ms=0)
    gate.allow("u2", "b1", now_ms=500)
    # u1 expired at 1000; only a rejected call happens after that
    assert gate.allow("u2", "b1", now_ms=1_200) is False
    assert len(gate) == 1


def test_test_boards_and_disabled_updates_never_touch_state():
    gate = DebounceGate()
    assert gate.allow("u1", "b1", now_ms=0, board_name="Test sandbox") is False
    assert gate.allow("u1", "b1", now_ms=0, send_updates=False) is False
    assert len(gate) == 0
    # a real call right after is still the first in its window
    assert gate.allow("u1", "b1", now_ms=1, board_name="Sprint") is True


def test_prefix_is_case_sensitive_and_configurable():
    assert DebounceGate().allow("u", "b", now_ms=0, board_name="testing") is True
    assert DebounceGate(test_board_prefix="QA-").allow("u", "b", now_ms=0, board_name="QA-1") is False
    assert DebounceGate(test_board_prefix="").allow("u", "b", now_ms=0, board_name="Test") is True


def test_injected_clock():
    now = [5_000]
    gate = DebounceGate(clock=lambda: now[0])
    assert gate.allow("u", "b")
    now[0] += DEBOUNCE_WINDOW_MS - 1
    assert not gate.allow("u", "b")
    now[0] += 1
    assert gate.allow("u", "b")


def test_invalid_window():
    with pytest.raises(ValueError):
        DebounceGate(window_ms=0)


def test_key_format():
    assert debounce_key("user_1", "board_9") == "user_1-board_9"


def test_concurrent_callers_get_exactly_one_pass():
    gate = DebounceGate(window_ms=60_000)
    results: list[bool] = []
    lock = threading.Lock()
    start = threading.Barrier(16)

    def worker() -> None:
        start.wait()
        ok = gate.allow("u1", "b1", now_ms=1_000)
        with lock:
            results.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert len(results) == 16
    assert results.count(True) == 1
