from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Optional

from gumboard.core.application.notifications.notifier import ChecklistNotifier, NotificationContext
from gumboard.core.application.ports import NotesStorePort
from gumboard.core.domain.boards import Board, Organization, User
from gumboard.core.domain.checklist.diff import diff
from gumboard.core.domain.checklist.models import ChangeSet, ChecklistItem, Note
from gumboard.core.domain.checklist.ordering import are_all_checked, next_order, normalize, split_in_list
from gumboard.utils.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from gumboard.utils.ids import make_item_id
from gumboard.utils.logging import get_logger
from gumboard.utils.metrics import inc

_log = get_logger("usecase.update_checklist")

_UNSET: Any = object()


@dataclass(frozen=True)
class NoteAccess:
    user: User
    board: Board
    organization: Optional[Organization]
    note: Note


@dataclass(frozen=True)
class ReconcileResult:
    note: Note
    change_set: ChangeSet


class ChecklistService:
    """
    Checklist mutations for one note.

    Every operation computes the complete next checklist and goes through
    ``_reconcile``: diff against the stored list, persist in one transaction,
    then notify. Notification never affects the outcome of the mutation.
    """

    def __init__(
        self,
        *,
        store: NotesStorePort,
        notifier: ChecklistNotifier,
        board_url_for: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self._board_url_for = board_url_for

    # ---------- full-note update ----------

    def update_note(self, actor_id: str, board_id: str, note_id: str, payload: Mapping[str, Any]) -> Note:
        access = self.authorize(actor_id, board_id, note_id)
        if not isinstance(payload, Mapping):
            raise ValidationError("request body must be an object")

        content = payload.get("content", _UNSET)
        if content is not _UNSET and not isinstance(content, str):
            raise ValidationError("content must be a string")
        archived_at = payload.get("archivedAt", _UNSET)
        if archived_at is not _UNSET and archived_at is not None and not isinstance(archived_at, str):
            raise ValidationError("archivedAt must be a string or null")
        done = payload.get("done", _UNSET)
        if done is not _UNSET and not isinstance(done, bool):
            raise ValidationError("done must be a boolean")

        next_items: Optional[list[ChecklistItem]] = None
        if payload.get("checklistItems") is not None:
            next_items = self._parse_items(payload["checklistItems"], access.note.id)
            foreign = self.store.item_ids_owned_elsewhere(access.note.id, [i.id for i in next_items])
            if foreign:
                raise ValidationError(f"checklist item ids belong to another note: {', '.join(sorted(foreign))}")

        return self._reconcile(
            access,
            next_items,
            content=content,
            archived_at=archived_at,
            done=done,
        ).note

    # ---------- single-item operations ----------

    def add_item(
        self, actor_id: str, board_id: str, note_id: str, content: str, checked: bool = False
    ) -> ReconcileResult:
        access = self.authorize(actor_id, board_id, note_id)
        current = access.note.checklist_items
        new_item = ChecklistItem.from_payload(
            {"id": make_item_id(), "content": content, "checked": checked, "order": next_order(current)},
            note_id=access.note.id,
        )
        return self._reconcile(access, [*current, new_item])

    def update_item(
        self,
        actor_id: str,
        board_id: str,
        note_id: str,
        item_id: str,
        *,
        content: Optional[str] = None,
        checked: Optional[bool] = None,
        order: Optional[float] = None,
    ) -> ReconcileResult:
        access = self.authorize(actor_id, board_id, note_id)
        current = self._require_item(access.note, item_id)
        changed = current.to_dict()
        if content is not None:
            changed["content"] = content
        if checked is not None:
            changed["checked"] = checked
        if order is not None:
            changed["order"] = order
        updated = ChecklistItem.from_payload(changed, note_id=access.note.id)
        next_items = [updated if i.id == item_id else i for i in access.note.checklist_items]
        return self._reconcile(access, next_items)

    def delete_item(self, actor_id: str, board_id: str, note_id: str, item_id: str) -> ReconcileResult:
        access = self.authorize(actor_id, board_id, note_id)
        self._require_item(access.note, item_id)
        next_items = [i for i in access.note.checklist_items if i.id != item_id]
        return self._reconcile(access, next_items)

    def reorder_items(
        self, actor_id: str, board_id: str, note_id: str, orders: Sequence[tuple[str, float]]
    ) -> ReconcileResult:
        access = self.authorize(actor_id, board_id, note_id)
        by_id = {i.id: i for i in access.note.checklist_items}
        new_orders: dict[str, float] = {}
        for item_id, order in orders:
            if item_id not in by_id:
                raise NotFoundError(f"Checklist item {item_id} not found")
            if isinstance(order, bool) or not isinstance(order, (int, float)) or not math.isfinite(order):
                raise ValidationError(f"checklist item {item_id}: order must be a finite number")
            new_orders[item_id] = float(order)
        next_items = [
            replace(i, order=new_orders[i.id]) if i.id in new_orders else i
            for i in access.note.checklist_items
        ]
        return self._reconcile(access, next_items)

    def split_item(
        self, actor_id: str, board_id: str, note_id: str, item_id: str, cursor_position: int
    ) -> ReconcileResult:
        access = self.authorize(actor_id, board_id, note_id)
        self._require_item(access.note, item_id)
        next_items = split_in_list(access.note.checklist_items, item_id, cursor_position)
        return self._reconcile(access, next_items)

    # ---------- access ----------

    def authorize(self, actor_id: str, board_id: str, note_id: str) -> NoteAccess:
        user = self.store.get_user(actor_id) if actor_id else None
        if user is None:
            raise AuthenticationError("Unauthorized")

        board = self.store.get_board(board_id)
        if board is None:
            raise NotFoundError("Board not found")
        if not user.organization_id or board.organization_id != user.organization_id:
            raise AccessDeniedError("Access denied")

        note = self.store.get_note(note_id)
        if note is None:
            raise NotFoundError("Note not found")
        if note.board_id != board.id:
            raise AccessDeniedError("Note does not belong to this board")
        if note.created_by != user.id and not user.is_admin:
            raise AccessDeniedError("Only the note author or admin can edit this note")

        return NoteAccess(
            user=user,
            board=board,
            organization=self.store.get_organization(board.organization_id),
            note=note,
        )

    def context_for(self, access: NoteAccess) -> NotificationContext:
        board_url = self._board_url_for(access.board.id) if self._board_url_for else None
        return NotificationContext(
            actor_id=access.user.id,
            actor_name=access.user.display_name,
            board_id=access.board.id,
            board_name=access.board.name,
            send_updates=access.board.send_updates,
            webhook_url=access.organization.webhook_url if access.organization else None,
            board_url=board_url,
        )

    # ---------- internals ----------

    def _reconcile(
        self,
        access: NoteAccess,
        next_items: Optional[Sequence[ChecklistItem]],
        *,
        content: Any = _UNSET,
        archived_at: Any = _UNSET,
        done: Any = _UNSET,
    ) -> ReconcileResult:
        note = access.note
        previous_items = list(note.checklist_items)
        previous_content = note.content

        change_set = ChangeSet()
        final_items = previous_items
        if next_items is not None:
            final_items = normalize(next_items)
            change_set = diff(previous_items, final_items)

        updated = replace(note)
        if content is not _UNSET:
            updated.content = content
        if archived_at is not _UNSET:
            updated.archived_at = archived_at
        if final_items:
            updated.done = are_all_checked(final_items)
        elif done is not _UNSET:
            updated.done = done
        else:
            updated.done = False if next_items is not None else note.done

        stored = self.store.save_note(updated, items=final_items if next_items is not None else None)
        inc("checklist_updates_total", kind="items" if next_items is not None else "note")
        _log.info(
            "checklist.reconciled",
            extra={
                "note_id": note.id,
                "created": len(change_set.created),
                "updated": len(change_set.updated),
                "deleted": len(change_set.deleted),
            },
        )

        ctx = self.context_for(access)
        if not change_set.is_empty:
            self.notifier.notify_checklist_changes(change_set, ctx)
        if next_items is None and content is not _UNSET:
            self.notifier.notify_note_added(stored, previous_content, ctx)

        return ReconcileResult(note=stored, change_set=change_set)

    @staticmethod
    def _parse_items(raw: Any, note_id: str) -> list[ChecklistItem]:
        if not isinstance(raw, list):
            raise ValidationError("checklistItems must be an array")
        items: list[ChecklistItem] = []
        for entry in raw:
            item = ChecklistItem.from_payload(entry, note_id=note_id)
            if not item.id:
                item = replace(item, id=make_item_id())
            items.append(item)
        return items

    @staticmethod
    def _require_item(note: Note, item_id: str) -> ChecklistItem:
        for item in note.checklist_items:
            if item.id == item_id:
                return item
        raise NotFoundError(f"Checklist item {item_id} not found")
