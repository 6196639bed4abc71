from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Organization:
    id: str
    name: str
    webhook_url: str | None = None


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    organization_id: str | None = None
    is_admin: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown User"


@dataclass(frozen=True)
class Board:
    id: str
    name: str
    organization_id: str
    send_updates: bool = True
