"""Chat-bot task commands.

Located in application layer - executes already-parsed bot intents against the
actor's default bot note on a board. Every mutation goes through
``ChecklistService`` so bot edits are ordered, stored and announced exactly
like edits made in the board UI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gumboard.core.application.ports import NotesStorePort
from gumboard.core.application.use_cases.update_checklist import ChecklistService
from gumboard.core.domain.boards import Board, User
from gumboard.core.domain.checklist.content import has_valid_content
from gumboard.core.domain.checklist.models import ChecklistItem, Note
from gumboard.core.domain.checklist.ordering import sort_items
from gumboard.utils.exceptions import GumboardError
from gumboard.utils.idempotency import EventDeduper
from gumboard.utils.logging import get_logger
from gumboard.utils.metrics import inc

_log = get_logger("usecase.task_commands")

INTENTS = ("add", "edit", "delete", "mark", "unmark", "list")


@dataclass(frozen=True)
class TaskCommand:
    intent: str
    board: Optional[str] = None
    task: Optional[str] = None
    new_task: Optional[str] = None
    position: Optional[int] = None
    event_id: Optional[str] = None


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str
    duplicate: bool = False


class _CommandFailed(Exception):
    """Short-circuits a command with a user-facing reply."""


class TaskCommands:
    def __init__(
        self,
        *,
        store: NotesStorePort,
        service: ChecklistService,
        deduper: Optional[EventDeduper] = None,
    ) -> None:
        self.store = store
        self.service = service
        self.deduper = deduper or EventDeduper()

    def execute(self, actor_id: str, command: TaskCommand) -> CommandResult:
        if command.event_id and self.deduper.is_duplicate(command.event_id):
            inc("bot_commands_total", intent=command.intent, outcome="duplicate")
            _log.info("bot.duplicate_event", extra={"event_id": command.event_id})
            return CommandResult(ok=True, message="", duplicate=True)

        intent = (command.intent or "").strip().lower()
        if intent not in INTENTS:
            inc("bot_commands_total", intent="unknown", outcome="rejected")
            return CommandResult(ok=False, message="❓ Sorry, I didn't understand that.")

        try:
            user = self._resolve_user(actor_id)
            board = self._resolve_board(user, command.board)
            note = self._resolve_default_note(user, board)
            message = getattr(self, f"_do_{intent}")(user, board, note, command)
        except _CommandFailed as exc:
            inc("bot_commands_total", intent=intent, outcome="rejected")
            return CommandResult(ok=False, message=str(exc))
        except GumboardError as exc:
            inc("bot_commands_total", intent=intent, outcome="error")
            _log.warning("bot.command_failed", extra={"intent": intent, "error": str(exc)})
            return CommandResult(ok=False, message=f"❌ {exc}")

        inc("bot_commands_total", intent=intent, outcome="ok")
        return CommandResult(ok=True, message=message)

    # ---------- resolution ----------

    def _resolve_user(self, actor_id: str) -> User:
        user = self.store.get_user(actor_id) if actor_id else None
        if user is None:
            raise _CommandFailed("❌ User not found. Please link your account first.")
        if not user.organization_id:
            raise _CommandFailed("❌ You are not part of an organization.")
        return user

    def _resolve_board(self, user: User, board_name: Optional[str]) -> Board:
        org_id = str(user.organization_id)
        if board_name and board_name.strip():
            board = self.store.find_board_by_name(org_id, board_name)
            if board is None:
                raise _CommandFailed(f'❌ Board "{board_name.strip()}" not found.')
            return board
        boards = self.store.list_boards(org_id)
        if not boards:
            raise _CommandFailed("❌ No boards found in your organization.")
        return boards[0]

    def _resolve_default_note(self, user: User, board: Board) -> Note:
        note = self.store.find_bot_default_note(user.id, board.id)
        if note is not None:
            return note
        _log.info("bot.default_note_created", extra={"board_id": board.id, "user_id": user.id})
        return self.store.create_note(board_id=board.id, created_by=user.id, is_bot_default=True)

    def _locate(self, note: Note, command: TaskCommand) -> ChecklistItem:
        items = sort_items(note.checklist_items)
        if command.position is not None:
            idx = command.position - 1
            if idx < 0 or idx >= len(items):
                raise _CommandFailed(f"❌ Task #{command.position} not found.")
            return items[idx]

        wanted = (command.task or "").strip().lower()
        if not wanted:
            raise _CommandFailed("❌ Please tell me which task.")
        for item in items:
            if item.content.strip().lower() == wanted:
                return item
        raise _CommandFailed(f'❌ Task "{command.task}" not found.')

    # ---------- intents ----------

    def _do_add(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        task = (command.task or "").strip()
        if not has_valid_content(task):
            raise _CommandFailed("❌ Please provide a task to add.")
        self.service.add_item(user.id, board.id, note.id, task)
        return f'📝 Added task "{task}" to {board.name}.'

    def _do_edit(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        item = self._locate(note, command)
        new_task = (command.new_task or "").strip()
        if not has_valid_content(new_task):
            raise _CommandFailed("❌ Please provide the new text for the task.")
        self.service.update_item(user.id, board.id, note.id, item.id, content=new_task)
        return f'✏️ Updated "{item.content}" to "{new_task}".'

    def _do_delete(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        item = self._locate(note, command)
        self.service.delete_item(user.id, board.id, note.id, item.id)
        return f'🗑️ Deleted task "{item.content}".'

    def _do_mark(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        item = self._locate(note, command)
        if item.checked:
            return f'✅ "{item.content}" is already done.'
        self.service.update_item(user.id, board.id, note.id, item.id, checked=True)
        return f'✅ Marked "{item.content}" as done.'

    def _do_unmark(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        item = self._locate(note, command)
        if not item.checked:
            return f'🔄 "{item.content}" is already open.'
        self.service.update_item(user.id, board.id, note.id, item.id, checked=False)
        return f'🔄 Marked "{item.content}" as not done.'

    def _do_list(self, user: User, board: Board, note: Note, command: TaskCommand) -> str:
        items = sort_items(note.checklist_items)
        if not items:
            return f"📋 No tasks on {board.name} yet."
        lines = [f"📋 Tasks on {board.name}:"]
        for pos, item in enumerate(items, start=1):
            mark = "✅" if item.checked else "⬜"
            lines.append(f"{pos}. {mark} {item.content}")
        return "\n".join(lines)
