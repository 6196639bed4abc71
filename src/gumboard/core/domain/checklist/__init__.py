from __future__ import annotations

from gumboard.core.domain.checklist.content import has_valid_content
from gumboard.core.domain.checklist.diff import diff
from gumboard.core.domain.checklist.models import ChangeSet, ChecklistItem, ItemSnapshot, Note, UpdatedItem
from gumboard.core.domain.checklist.ordering import (
    are_all_checked,
    move,
    next_order,
    normalize,
    sort_items,
    sort_unchecked_first,
    split,
    split_in_list,
)

__all__ = [
    "ChangeSet",
    "ChecklistItem",
    "ItemSnapshot",
    "Note",
    "UpdatedItem",
    "are_all_checked",
    "diff",
    "has_valid_content",
    "move",
    "next_order",
    "normalize",
    "sort_items",
    "sort_unchecked_first",
    "split",
    "split_in_list",
]
