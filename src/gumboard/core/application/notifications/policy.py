from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gumboard.core.domain.checklist.content import has_valid_content
from gumboard.core.domain.checklist.models import ChangeSet


class NotificationAction(str, Enum):
    ADDED = "added"
    COMPLETED = "completed"
    REOPENED = "reopened"


@dataclass(frozen=True)
class NotificationEvent:
    entity_id: str
    action: NotificationAction
    content: str


def classify(change_set: ChangeSet) -> list[NotificationEvent]:
    """
    Externally significant transitions of a change set, in order:
    created items first, then checked/unchecked transitions.

    Deleted items, content-only edits and reorders produce nothing.
    """
    events: list[NotificationEvent] = []

    for item in change_set.created:
        # empty placeholder rows from the editor are not announced
        if has_valid_content(item.content):
            events.append(NotificationEvent(item.id, NotificationAction.ADDED, item.content))

    for upd in change_set.updated:
        if upd.reorder_only:
            continue
        transition = upd.checked_transition
        if transition is None:
            continue
        events.append(NotificationEvent(upd.item.id, NotificationAction(transition), upd.item.content))

    return events
