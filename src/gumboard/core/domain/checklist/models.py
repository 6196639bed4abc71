"""Checklist domain types.

Located in the domain layer: pure values, no I/O. Items are immutable; every
mutation produces a new ``ChecklistItem`` through ``dataclasses.replace``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from gumboard.utils.exceptions import ValidationError

# fields whose change makes an item "updated"
TRACKED_FIELDS: tuple[str, ...] = ("content", "checked", "order")


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    content: str
    checked: bool = False
    order: float = 0.0
    note_id: str | None = None

    @property
    def sort_key(self) -> tuple[float, str]:
        # ties on order are broken by id so the total order is deterministic
        return (self.order, self.id)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], *, note_id: str | None = None) -> "ChecklistItem":
        """
        Build an item from a client payload (camelCase or snake_case keys).

        Rejects wrong types and non-finite ``order`` instead of coercing them.
        An empty ``id`` is allowed here; the service assigns one before diffing.
        """
        if not isinstance(data, Mapping):
            raise ValidationError("checklist item must be an object")

        item_id = data.get("id") or ""
        if not isinstance(item_id, str):
            raise ValidationError("checklist item id must be a string")

        content = data.get("content", "")
        if not isinstance(content, str):
            raise ValidationError(f"checklist item {item_id or '<new>'}: content must be a string")

        checked = data.get("checked", False)
        if not isinstance(checked, bool):
            raise ValidationError(f"checklist item {item_id or '<new>'}: checked must be a boolean")

        order = data.get("order", 0)
        if isinstance(order, bool) or not isinstance(order, (int, float)):
            raise ValidationError(f"checklist item {item_id or '<new>'}: order must be a number")
        if not math.isfinite(order):
            raise ValidationError(f"checklist item {item_id or '<new>'}: order must be finite")

        owner = note_id or data.get("noteId", data.get("note_id"))
        return cls(id=item_id, content=content, checked=checked, order=float(order), note_id=owner)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "checked": self.checked,
            "order": self.order,
            "noteId": self.note_id,
        }


@dataclass(frozen=True)
class ItemSnapshot:
    """Prior values of an updated item."""

    content: str
    checked: bool
    order: float

    @classmethod
    def of(cls, item: ChecklistItem) -> "ItemSnapshot":
        return cls(content=item.content, checked=item.checked, order=item.order)


@dataclass(frozen=True)
class UpdatedItem:
    item: ChecklistItem
    previous: ItemSnapshot
    changed: frozenset[str]

    @property
    def reorder_only(self) -> bool:
        return self.changed == frozenset({"order"})

    @property
    def checked_transition(self) -> str | None:
        if "checked" not in self.changed:
            return None
        if not self.previous.checked and self.item.checked:
            return "completed"
        if self.previous.checked and not self.item.checked:
            return "reopened"
        return None


@dataclass(frozen=True)
class ChangeSet:
    created: tuple[ChecklistItem, ...] = ()
    updated: tuple[UpdatedItem, ...] = ()
    deleted: tuple[ChecklistItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def as_dict(self) -> dict[str, Any]:
        return {
            "created": [i.to_dict() for i in self.created],
            "updated": [
                {
                    **u.item.to_dict(),
                    "previous": {
                        "content": u.previous.content,
                        "checked": u.previous.checked,
                        "order": u.previous.order,
                    },
                    "changed": sorted(u.changed),
                    "reorderOnly": u.reorder_only,
                }
                for u in self.updated
            ],
            "deleted": [i.to_dict() for i in self.deleted],
        }


@dataclass
class Note:
    id: str
    board_id: str
    created_by: str
    content: str = ""
    done: bool = False
    checklist_items: list[ChecklistItem] = field(default_factory=list)
    archived_at: str | None = None
    slack_message_id: str | None = None
    is_bot_default: bool = False

    @staticmethod
    def derive_done(items: Sequence[ChecklistItem]) -> bool:
        return bool(items) and all(i.checked for i in items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "boardId": self.board_id,
            "createdBy": self.created_by,
            "content": self.content,
            "done": self.done,
            "archivedAt": self.archived_at,
            "slackMessageId": self.slack_message_id,
            "checklistItems": [i.to_dict() for i in self.checklist_items],
        }
