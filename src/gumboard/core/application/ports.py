from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from gumboard.core.domain.boards import Board, Organization, User
from gumboard.core.domain.checklist.models import ChecklistItem, Note

# =========================
#  Outbound notification ports
# =========================

DeliveryCallback = Callable[[str], None]


@runtime_checkable
class WebhookSenderPort(Protocol):
    """
    POST one message to an incoming-webhook URL.
    Returns a message reference on success, ``None`` on any failure; never raises.
    """

    async def send(self, webhook_url: str, message: str) -> str | None: ...


@runtime_checkable
class DispatchPort(Protocol):
    """
    Hand a message off to background delivery without waiting for it.
    Returns ``False`` when the job could not be queued at all.
    """

    def submit(self, webhook_url: str, text: str, on_delivered: DeliveryCallback | None = None) -> bool: ...


# =========================
#  Board/note storage port
# =========================


@runtime_checkable
class NotesStorePort(Protocol):
    def get_user(self, user_id: str) -> User | None: ...
    def get_board(self, board_id: str) -> Board | None: ...
    def get_organization(self, org_id: str) -> Organization | None: ...
    def list_boards(self, organization_id: str) -> list[Board]: ...
    def find_board_by_name(self, organization_id: str, name: str) -> Board | None: ...
    def get_note(self, note_id: str, *, include_deleted: bool = False) -> Note | None: ...
    def find_bot_default_note(self, user_id: str, board_id: str) -> Note | None: ...
    def create_note(
        self, *, board_id: str, created_by: str, content: str = "", is_bot_default: bool = False
    ) -> Note: ...
    def item_ids_owned_elsewhere(self, note_id: str, item_ids: Sequence[str]) -> set[str]: ...
    def save_note(self, note: Note, *, items: Sequence[ChecklistItem] | None = None) -> Note: ...
    def set_slack_message_id(self, note_id: str, message_ref: str) -> bool: ...
