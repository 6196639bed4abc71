from __future__ import annotations

from dataclasses import replace

import pytest

from gumboard.core.application.notifications.notifier import ChecklistNotifier, NotificationContext
from gumboard.core.application.notifications.policy import NotificationAction
from gumboard.core.domain.checklist import ChecklistItem, diff
from gumboard.utils import metrics
from gumboard.utils.idempotency import DedupStore
from gumboard.utils.rate_limit import DebounceGate

HOOK = "https://hooks.slack.test/services/T1/B1/abc"


def _ctx(**overrides) -> NotificationContext:
    base = NotificationContext(
        actor_id="user_ada",
        actor_name="Ada",
        board_id="board_sprint",
        board_name="Sprint",
        send_updates=True,
        webhook_url=HOOK,
    )
    return replace(base, **overrides)


def _item(item_id: str, content: str, checked: bool = False, order: float = 0.0) -> ChecklistItem:
    return ChecklistItem(id=item_id, content=content, checked=checked, order=order)


def test_check_and_add_in_one_request_sends_one_message(notifier, dispatch):
    cs = diff(
        [_item("1", "A", False, 0)],
        [_item("1", "A", True, 0), _item("2", "B", False, 1)],
    )

    sent = notifier.notify_checklist_changes(cs, _ctx())

    assert len(sent) == 1
    assert dispatch.sent == [(HOOK, ":heavy_plus_sign: B by Ada in Sprint")]
    assert notifier.stats["debounced"] == 1
    assert metrics.counter_value("notify_events_total", action="completed", outcome="debounced") == 1.0


def test_completing_one_item_sends_completed(notifier, dispatch):
    cs = diff([_item("1", "A", False)], [_item("1", "A", True)])
    notifier.notify_checklist_changes(cs, _ctx(board_url="http://app.test/boards/board_sprint"))
    assert dispatch.texts == [":white_check_mark: A by Ada in <http://app.test/boards/board_sprint|Sprint>"]


def test_reopening_uses_reopened_emoji(notifier, dispatch):
    cs = diff([_item("1", "A", True)], [_item("1", "A", False)])
    events = notifier.notify_checklist_changes(cs, _ctx())
    assert events[0].action is NotificationAction.REOPENED
    assert dispatch.texts == [":arrows_counterclockwise: A by Ada in Sprint"]


def test_reorder_sends_nothing(notifier, dispatch):
    cs = diff(
        [_item("1", "A", order=0), _item("2", "B", order=1)],
        [_item("1", "A", order=1), _item("2", "B", order=0)],
    )
    assert notifier.notify_checklist_changes(cs, _ctx()) == []
    assert dispatch.sent == []
    assert len(notifier.debounce) == 0


@pytest.mark.parametrize("n", [1, 2, 5, 20])
def test_burst_of_created_items_collapses(notifier, dispatch, n):
    cs = diff([], [_item(str(i), f"task {i}", order=i) for i in range(n)])
    notifier.notify_checklist_changes(cs, _ctx())
    assert len(dispatch.sent) == 1


def test_next_window_sends_again(notifier, dispatch, clock):
    notifier.notify_checklist_changes(diff([], [_item("1", "A")]), _ctx())
    clock.advance(500)
    notifier.notify_checklist_changes(diff([], [_item("2", "B")]), _ctx())
    assert len(dispatch.sent) == 1

    clock.advance(600)
    notifier.notify_checklist_changes(diff([], [_item("3", "C")]), _ctx())
    assert dispatch.texts[-1] == ":heavy_plus_sign: C by Ada in Sprint"
    assert len(dispatch.sent) == 2


def test_identical_event_inside_dedup_window_is_vetoed(notifier, dispatch, clock):
    cs = diff([_item("1", "A", False)], [_item("1", "A", True)])
    notifier.notify_checklist_changes(cs, _ctx())
    clock.advance(2_000)  # past debounce, inside dedup
    notifier.notify_checklist_changes(cs, _ctx())
    assert len(dispatch.sent) == 1
    assert notifier.stats["deduplicated"] == 1

    clock.advance(30_000)
    notifier.notify_checklist_changes(cs, _ctx())
    assert len(dispatch.sent) == 2


def test_other_actor_is_not_debounced(notifier, dispatch):
    cs = diff([], [_item("1", "A")])
    notifier.notify_checklist_changes(cs, _ctx())
    notifier.notify_checklist_changes(diff([], [_item("2", "B")]), _ctx(actor_id="user_bob", actor_name="Bob"))
    assert dispatch.texts == [
        ":heavy_plus_sign: A by Ada in Sprint",
        ":heavy_plus_sign: B by Bob in Sprint",
    ]


def test_no_webhook_touches_no_gate_state(notifier, dispatch):
    cs = diff([], [_item("1", "A")])
    assert notifier.notify_checklist_changes(cs, _ctx(webhook_url=None)) == []
    assert dispatch.sent == []
    assert len(notifier.debounce) == 0
    assert len(notifier.dedup) == 0
    assert notifier.stats["skipped"] == 1


def test_test_board_and_disabled_updates_are_silent(notifier, dispatch):
    cs = diff([], [_item("1", "A")])
    notifier.notify_checklist_changes(cs, _ctx(board_name="Test board"))
    notifier.notify_checklist_changes(cs, _ctx(send_updates=False))
    assert dispatch.sent == []
    assert len(notifier.debounce) == 0


def test_rejected_submit_is_not_counted(notifier, dispatch):
    dispatch.accept = False
    assert notifier.notify_checklist_changes(diff([], [_item("1", "A")]), _ctx()) == []
    assert notifier.stats["submitted"] == 0


def test_dispatcher_errors_never_escape(clock):
    class _Broken:
        def submit(self, webhook_url, text, on_delivered=None):
            raise RuntimeError("queue gone")

    notifier = ChecklistNotifier(
        debounce=DebounceGate(clock=clock),
        dedup=DedupStore(clock=clock),
        dispatcher=_Broken(),
    )
    assert notifier.notify_checklist_changes(diff([], [_item("1", "A")]), _ctx()) == []
    assert notifier.stats["failed"] == 1
    assert metrics.counter_value("notify_events_total", action="any", outcome="error") == 1.0


# ---------- plain note path ----------

def test_note_gaining_content_is_announced_once(notifier, dispatch, repo, world, clock):
    note = replace(world.note, content="Plan the offsite")

    event = notifier.notify_note_added(note, "", _ctx())

    assert event is not None and event.entity_id == world.note.id
    assert dispatch.texts == [":heavy_plus_sign: Plan the offsite by Ada in Sprint"]

    dispatch.deliver_all("1700000000.000100")
    assert repo.get_note(world.note.id).slack_message_id == "1700000000.000100"

    clock.advance(60_000)
    stored = repo.get_note(world.note.id)
    assert notifier.notify_note_added(replace(stored, content="Plan the offsite v2"), "", _ctx()) is None
    assert len(dispatch.sent) == 1


@pytest.mark.parametrize(
    "content, previous",
    [
        ("Plan", "Earlier text"),
        ("   ", ""),
        ("!!!", ""),
    ],
)
def test_note_path_needs_fresh_meaningful_content(notifier, dispatch, world, content, previous):
    note = replace(world.note, content=content)
    assert notifier.notify_note_added(note, previous, _ctx()) is None
    assert dispatch.sent == []


def test_note_with_items_or_archived_is_skipped(notifier, dispatch, world):
    with_items = replace(world.note, content="x", checklist_items=[_item("1", "A")])
    archived = replace(world.note, content="x", archived_at="2024-01-01T00:00:00Z")
    assert notifier.notify_note_added(with_items, "", _ctx()) is None
    assert notifier.notify_note_added(archived, "", _ctx()) is None
    assert dispatch.sent == []
