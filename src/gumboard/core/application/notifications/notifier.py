"""Checklist notification pipeline.

Located in application layer - turns a ChangeSet into at most a handful of
outbound chat messages. Every eligible event passes the debounce gate, then the
dedup store, then is formatted and handed to the dispatch queue. Nothing in here
may fail the checklist mutation that triggered it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gumboard.core.application.notifications.formatter import format_message
from gumboard.core.application.notifications.policy import (
    NotificationAction,
    NotificationEvent,
    classify,
)
from gumboard.core.application.ports import DispatchPort, NotesStorePort
from gumboard.core.domain.checklist.content import has_valid_content
from gumboard.core.domain.checklist.models import ChangeSet, Note
from gumboard.utils.idempotency import DedupStore
from gumboard.utils.logging import add_context_fields, get_logger
from gumboard.utils.metrics import inc
from gumboard.utils.rate_limit import DebounceGate

_log = get_logger(__name__)


@dataclass(frozen=True)
class NotificationContext:
    """Who changed what, where, and where to report it."""

    actor_id: str
    actor_name: str
    board_id: str
    board_name: str
    send_updates: bool = True
    webhook_url: Optional[str] = None
    board_url: Optional[str] = None


class ChecklistNotifier:
    def __init__(
        self,
        *,
        debounce: DebounceGate,
        dedup: DedupStore,
        dispatcher: DispatchPort,
        store: Optional[NotesStorePort] = None,
    ) -> None:
        self.debounce = debounce
        self.dedup = dedup
        self.dispatcher = dispatcher
        self.store = store
        self._stats = {
            "submitted": 0,
            "debounced": 0,
            "deduplicated": 0,
            "skipped": 0,
            "failed": 0,
        }

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    def notify_checklist_changes(self, change_set: ChangeSet, ctx: NotificationContext) -> list[NotificationEvent]:
        """Returns the events actually handed to the dispatcher."""
        try:
            return self._notify_checklist_changes(change_set, ctx)
        except Exception:  # noqa: BLE001
            self._stats["failed"] += 1
            inc("notify_events_total", action="any", outcome="error")
            _log.error("notify.pipeline_failed", exc_info=True, extra={"board_id": ctx.board_id})
            return []

    def _notify_checklist_changes(self, change_set: ChangeSet, ctx: NotificationContext) -> list[NotificationEvent]:
        events = classify(change_set)
        if not events:
            return []
        if not ctx.webhook_url:
            self._stats["skipped"] += len(events)
            _log.debug("notify.no_webhook", extra={"board_id": ctx.board_id, "events": len(events)})
            return []

        submitted: list[NotificationEvent] = []
        for event in events:
            if self._pass_gates(event.entity_id, event.action, event.content, ctx):
                text = format_message(event.content, event.action, ctx.actor_name, ctx.board_name, ctx.board_url)
                if self.dispatcher.submit(ctx.webhook_url, text):
                    submitted.append(event)
                    self._record_submitted(event.action, ctx)
        return submitted

    def notify_note_added(
        self, note: Note, previous_content: str, ctx: NotificationContext
    ) -> Optional[NotificationEvent]:
        """
        Plain-note path: a note without checklist items that just gained real
        content is announced once; the delivery reference is stored on the note
        so later edits never announce it again.
        """
        try:
            if note.checklist_items or note.archived_at or note.slack_message_id:
                return None
            if has_valid_content(previous_content) or not has_valid_content(note.content):
                return None
            if not ctx.webhook_url:
                self._stats["skipped"] += 1
                return None

            action = NotificationAction.ADDED
            if not self._pass_gates(note.id, action, note.content, ctx):
                return None

            text = format_message(note.content, action, ctx.actor_name, ctx.board_name, ctx.board_url)
            if not self.dispatcher.submit(ctx.webhook_url, text, on_delivered=self._remember_delivery(note.id)):
                return None
            self._record_submitted(action, ctx)
            return NotificationEvent(note.id, action, note.content)
        except Exception:  # noqa: BLE001
            self._stats["failed"] += 1
            inc("notify_events_total", action="added", outcome="error")
            _log.error("notify.note_pipeline_failed", exc_info=True, extra={"note_id": note.id})
            return None

    # ---------- internals ----------

    def _pass_gates(self, entity_id: str, action: NotificationAction, content: str, ctx: NotificationContext) -> bool:
        if not self.debounce.allow(
            ctx.actor_id,
            ctx.board_id,
            board_name=ctx.board_name,
            send_updates=ctx.send_updates,
        ):
            self._stats["debounced"] += 1
            inc("notify_events_total", action=action.value, outcome="debounced")
            _log.debug("notify.debounced", extra={"entity_id": entity_id, "action": action.value})
            return False

        if not self.dedup.should_send(entity_id, action.value, content):
            self._stats["deduplicated"] += 1
            inc("notify_events_total", action=action.value, outcome="deduplicated")
            _log.debug("notify.deduplicated", extra={"entity_id": entity_id, "action": action.value})
            return False
        return True

    def _record_submitted(self, action: NotificationAction, ctx: NotificationContext) -> None:
        self._stats["submitted"] += 1
        inc("notify_events_total", action=action.value, outcome="submitted")
        _log.info(
            "notify.submitted",
            extra=add_context_fields(board_id=ctx.board_id, actor_id=ctx.actor_id, action=action.value),
        )

    def _remember_delivery(self, note_id: str):
        store = self.store

        def _on_delivered(message_ref: str) -> None:
            if store is None:
                return
            store.set_slack_message_id(note_id, message_ref)

        return _on_delivered
