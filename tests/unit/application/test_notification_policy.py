from __future__ import annotations

from gumboard.core.application.notifications.policy import NotificationAction, NotificationEvent, classify
from gumboard.core.domain.checklist import ChecklistItem, diff


def _item(item_id: str, content: str, checked: bool = False, order: float = 0.0) -> ChecklistItem:
    return ChecklistItem(id=item_id, content=content, checked=checked, order=order)


def test_created_then_transitions():
    previous = [_item("1", "A", False, 0), _item("2", "B", True, 1)]
    nxt = [_item("1", "A", True, 0), _item("2", "B", False, 1), _item("3", "C", False, 2)]

    events = classify(diff(previous, nxt))

    assert events == [
        NotificationEvent("3", NotificationAction.ADDED, "C"),
        NotificationEvent("1", NotificationAction.COMPLETED, "A"),
        NotificationEvent("2", NotificationAction.REOPENED, "B"),
    ]


def test_reorder_content_edit_and_delete_are_silent():
    previous = [_item("1", "A", order=0), _item("2", "B", order=1), _item("3", "C", order=2)]
    nxt = [_item("2", "B", order=0), _item("1", "A edited", order=1)]

    assert classify(diff(previous, nxt)) == []


def test_blank_created_items_are_not_announced():
    cs = diff([], [_item("1", "   ", order=0), _item("2", "...", order=1), _item("3", "ok", order=2)])
    events = classify(cs)
    assert [e.entity_id for e in events] == ["3"]


def test_action_values():
    assert NotificationAction("added") is NotificationAction.ADDED
    assert NotificationAction.COMPLETED.value == "completed"
    assert NotificationAction.REOPENED == "reopened"
