from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

_CAMEL = ConfigDict(populate_by_name=True, extra="ignore")


class ChecklistItemIn(BaseModel):
    model_config = _CAMEL

    id: Optional[str] = None
    content: str = ""
    checked: bool = False
    # finiteness is enforced by the domain (400), not here
    order: float = 0.0


class NoteUpdateIn(BaseModel):
    model_config = _CAMEL

    content: Optional[str] = None
    done: Optional[bool] = None
    archived_at: Optional[str] = Field(default=None, alias="archivedAt")
    checklist_items: Optional[list[ChecklistItemIn]] = Field(default=None, alias="checklistItems")

    def to_payload(self) -> dict[str, Any]:
        """Only the fields the client actually sent, camelCase keys."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class ItemCreateIn(BaseModel):
    content: str
    checked: bool = False


class ItemUpdateIn(BaseModel):
    content: Optional[str] = None
    checked: Optional[bool] = None
    order: Optional[float] = None


class ItemOrderIn(BaseModel):
    id: str
    order: float


class ReorderIn(BaseModel):
    items: list[ItemOrderIn] = Field(min_length=1)


class SplitIn(BaseModel):
    model_config = _CAMEL

    cursor_position: int = Field(alias="cursorPosition", ge=0)


class CommandIn(BaseModel):
    model_config = _CAMEL

    intent: Literal["add", "edit", "delete", "mark", "unmark", "list"]
    board: Optional[str] = None
    task: Optional[str] = None
    new_task: Optional[str] = Field(default=None, alias="newTask")
    position: Optional[int] = Field(default=None, ge=1)
    event_id: Optional[str] = Field(default=None, alias="eventId")


class CommandOut(BaseModel):
    ok: bool
    message: str
    duplicate: bool = False
