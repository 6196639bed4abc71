from __future__ import annotations

from typing import Sequence

from gumboard.core.domain.checklist.models import (
    TRACKED_FIELDS,
    ChangeSet,
    ChecklistItem,
    ItemSnapshot,
    UpdatedItem,
)
from gumboard.core.domain.checklist.ordering import sort_items
from gumboard.utils.exceptions import ValidationError


def _index_by_id(items: Sequence[ChecklistItem], side: str) -> dict[str, ChecklistItem]:
    out: dict[str, ChecklistItem] = {}
    for item in items:
        if not item.id:
            raise ValidationError(f"{side} checklist contains an item without id")
        if item.id in out:
            raise ValidationError(f"{side} checklist contains duplicate item id {item.id}")
        out[item.id] = item
    return out


def _changed_fields(before: ChecklistItem, after: ChecklistItem) -> frozenset[str]:
    return frozenset(f for f in TRACKED_FIELDS if getattr(before, f) != getattr(after, f))


def diff(previous: Sequence[ChecklistItem], next_items: Sequence[ChecklistItem]) -> ChangeSet:
    """
    Classify ``next_items`` against ``previous`` by item id.

    - in next only -> created
    - in previous only -> deleted
    - in both with any tracked field different -> updated (with the prior snapshot);
      an order-only change is still ``updated`` but flagged ``reorder_only``
    """
    prev_by_id = _index_by_id(previous, "previous")
    next_by_id = _index_by_id(next_items, "next")

    created: list[ChecklistItem] = []
    updated: list[UpdatedItem] = []
    for item in sort_items(next_by_id.values()):
        before = prev_by_id.get(item.id)
        if before is None:
            created.append(item)
            continue
        changed = _changed_fields(before, item)
        if changed:
            updated.append(UpdatedItem(item=item, previous=ItemSnapshot.of(before), changed=changed))

    deleted = [item for item in sort_items(prev_by_id.values()) if item.id not in next_by_id]
    return ChangeSet(created=tuple(created), updated=tuple(updated), deleted=tuple(deleted))
