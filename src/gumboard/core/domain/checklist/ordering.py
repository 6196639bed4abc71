"""
Fractional ordering of checklist items.

``split`` inserts a new item halfway between an item and its next sibling so
no other item's ``order`` changes. ``normalize`` turns the drifted fractional
sequence back into consecutive integers before the list is stored.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, Sequence

from gumboard.core.domain.checklist.models import ChecklistItem
from gumboard.utils.exceptions import NotFoundError, ValidationError
from gumboard.utils.ids import make_item_id

__all__ = [
    "are_all_checked",
    "move",
    "next_order",
    "normalize",
    "sort_items",
    "sort_unchecked_first",
    "split",
    "split_in_list",
]

SPLIT_OFFSET = 0.5


def sort_items(items: Iterable[ChecklistItem]) -> list[ChecklistItem]:
    return sorted(items, key=lambda i: i.sort_key)


def split(
    item: ChecklistItem,
    cursor_position: int,
    next_sibling: ChecklistItem | None = None,
    *,
    new_id: str | None = None,
    id_factory: Callable[[], str] = make_item_id,
) -> tuple[ChecklistItem, ChecklistItem]:
    """
    Split ``item`` at ``cursor_position``.

    The split item keeps the (trimmed) text before the cursor; the new unchecked
    item gets the (trimmed) remainder and sits between ``item`` and ``next_sibling``.
    """
    if isinstance(cursor_position, bool) or not isinstance(cursor_position, int):
        raise ValidationError("cursor position must be an integer")
    if cursor_position < 0 or cursor_position > len(item.content):
        raise ValidationError(
            f"cursor position {cursor_position} is outside 0..{len(item.content)} for item {item.id}"
        )

    head = item.content[:cursor_position].strip()
    tail = item.content[cursor_position:].strip()

    if next_sibling is not None:
        new_order = (item.order + next_sibling.order) / 2
    else:
        new_order = item.order + SPLIT_OFFSET

    updated = replace(item, content=head)
    created = ChecklistItem(
        id=new_id or id_factory(),
        content=tail,
        checked=False,
        order=new_order,
        note_id=item.note_id,
    )
    return updated, created


def split_in_list(
    items: Sequence[ChecklistItem],
    item_id: str,
    cursor_position: int,
    *,
    new_id: str | None = None,
) -> list[ChecklistItem]:
    """Split one item of a list; returns the full sorted list including the new item."""
    ordered = sort_items(items)
    for idx, current in enumerate(ordered):
        if current.id == item_id:
            break
    else:
        raise NotFoundError(f"checklist item {item_id} not found")

    sibling = ordered[idx + 1] if idx + 1 < len(ordered) else None
    updated, created = split(current, cursor_position, sibling, new_id=new_id)
    out = ordered[:idx] + [updated, created] + ordered[idx + 1 :]
    return sort_items(out)


def normalize(items: Iterable[ChecklistItem]) -> list[ChecklistItem]:
    """Consecutive integer orders ``0..n-1`` by ``(order, id)``; idempotent."""
    return [
        item if item.order == float(pos) else replace(item, order=float(pos))
        for pos, item in enumerate(sort_items(items))
    ]


def next_order(items: Iterable[ChecklistItem]) -> float:
    orders = [i.order for i in items]
    return max(orders) + 1 if orders else 0.0


def move(items: Sequence[ChecklistItem], from_index: int, to_index: int) -> list[ChecklistItem]:
    """Drag-and-drop: move the item at ``from_index`` to ``to_index`` and renumber."""
    ordered = sort_items(items)
    n = len(ordered)
    if not (0 <= from_index < n) or not (0 <= to_index < n):
        raise ValidationError(f"move indexes out of range: {from_index} -> {to_index} (size {n})")
    moved = ordered.pop(from_index)
    ordered.insert(to_index, moved)
    return [replace(item, order=float(pos)) for pos, item in enumerate(ordered)]


def sort_unchecked_first(items: Iterable[ChecklistItem]) -> list[ChecklistItem]:
    """Checked items sink below unchecked ones; each group keeps its order."""
    return sorted(items, key=lambda i: (i.checked, i.order, i.id))


def are_all_checked(items: Sequence[ChecklistItem]) -> bool:
    return bool(items) and all(i.checked for i in items)
