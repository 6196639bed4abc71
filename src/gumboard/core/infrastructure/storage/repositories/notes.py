from __future__ import annotations

import sqlite3
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from gumboard.core.domain.boards import Board, Organization, User
from gumboard.core.domain.checklist.models import ChecklistItem, Note
from gumboard.core.domain.checklist.ordering import normalize
from gumboard.core.infrastructure.storage.sqlite_adapter import apply_schema, transaction
from gumboard.utils.exceptions import PersistenceError
from gumboard.utils.ids import make_entity_id
from gumboard.utils.logging import get_logger
from gumboard.utils.time import iso_utc

_log = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS organizations (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    webhook_url TEXT
);
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    organization_id TEXT REFERENCES organizations(id),
    is_admin INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS boards (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    organization_id TEXT NOT NULL REFERENCES organizations(id),
    send_updates INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    board_id TEXT NOT NULL REFERENCES boards(id),
    created_by TEXT NOT NULL REFERENCES users(id),
    content TEXT NOT NULL DEFAULT '',
    done INTEGER NOT NULL DEFAULT 0,
    archived_at TEXT,
    deleted_at TEXT,
    slack_message_id TEXT,
    is_bot_default INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS checklist_items (
    id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    content TEXT NOT NULL DEFAULT '',
    checked INTEGER NOT NULL DEFAULT 0,
    sort_order REAL NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_items_note ON checklist_items(note_id, sort_order);
CREATE INDEX IF NOT EXISTS idx_notes_bot_default ON notes(created_by, board_id, is_bot_default);
"""


def _row_to_item(row: sqlite3.Row) -> ChecklistItem:
    return ChecklistItem(
        id=row["id"],
        content=row["content"],
        checked=bool(row["checked"]),
        order=float(row["sort_order"]),
        note_id=row["note_id"],
    )


@dataclass
class NotesRepository:
    """
    SQLite storage for organizations, users, boards, notes and checklist items.

    Checklist writes always go through ``normalize`` so the stored ``sort_order``
    is a clean ``0..n-1`` sequence; fractional orders only live between persists.
    Writes are wrapped in BEGIN IMMEDIATE and surface ``PersistenceError``.
    """

    conn: Any
    _initialized: bool = False
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # ---------- schema ----------
    def ensure_schema(self) -> None:
        if self._initialized:
            return
        with self._lock:
            apply_schema(self.conn, SCHEMA_SQL)
            self._initialized = True

    # ---------- organizations / users / boards ----------
    def create_organization(self, name: str, *, webhook_url: str | None = None, org_id: str | None = None) -> Organization:
        org = Organization(id=org_id or make_entity_id("org"), name=name, webhook_url=webhook_url)
        self._write(
            "INSERT INTO organizations(id, name, webhook_url) VALUES(?, ?, ?)",
            (org.id, org.name, org.webhook_url),
        )
        return org

    def create_user(
        self,
        name: str,
        email: str,
        *,
        organization_id: str | None,
        is_admin: bool = False,
        user_id: str | None = None,
    ) -> User:
        user = User(
            id=user_id or make_entity_id("user"),
            name=name,
            email=email,
            organization_id=organization_id,
            is_admin=is_admin,
        )
        self._write(
            "INSERT INTO users(id, name, email, organization_id, is_admin) VALUES(?, ?, ?, ?, ?)",
            (user.id, user.name, user.email, user.organization_id, int(user.is_admin)),
        )
        return user

    def create_board(
        self, name: str, *, organization_id: str, send_updates: bool = True, board_id: str | None = None
    ) -> Board:
        board = Board(
            id=board_id or make_entity_id("board"),
            name=name,
            organization_id=organization_id,
            send_updates=send_updates,
        )
        self._write(
            "INSERT INTO boards(id, name, organization_id, send_updates) VALUES(?, ?, ?, ?)",
            (board.id, board.name, board.organization_id, int(board.send_updates)),
        )
        return board

    def get_organization(self, org_id: str) -> Organization | None:
        row = self._fetchone("SELECT * FROM organizations WHERE id = ?", (org_id,))
        if row is None:
            return None
        return Organization(id=row["id"], name=row["name"], webhook_url=row["webhook_url"])

    def get_user(self, user_id: str) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        if row is None:
            return None
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            organization_id=row["organization_id"],
            is_admin=bool(row["is_admin"]),
        )

    def get_board(self, board_id: str) -> Board | None:
        row = self._fetchone("SELECT * FROM boards WHERE id = ?", (board_id,))
        return self._row_to_board(row) if row is not None else None

    def list_boards(self, organization_id: str) -> list[Board]:
        rows = self._fetchall(
            "SELECT * FROM boards WHERE organization_id = ? ORDER BY rowid", (organization_id,)
        )
        return [self._row_to_board(r) for r in rows]

    def find_board_by_name(self, organization_id: str, name: str) -> Board | None:
        row = self._fetchone(
            "SELECT * FROM boards WHERE organization_id = ? AND lower(name) = lower(?) ORDER BY rowid LIMIT 1",
            (organization_id, name.strip()),
        )
        return self._row_to_board(row) if row is not None else None

    # ---------- notes ----------
    def create_note(
        self, *, board_id: str, created_by: str, content: str = "", is_bot_default: bool = False
    ) -> Note:
        note = Note(
            id=make_entity_id("note"),
            board_id=board_id,
            created_by=created_by,
            content=content,
            is_bot_default=is_bot_default,
        )
        self._write(
            "INSERT INTO notes(id, board_id, created_by, content, done, is_bot_default) VALUES(?, ?, ?, ?, 0, ?)",
            (note.id, note.board_id, note.created_by, note.content, int(is_bot_default)),
        )
        return note

    def get_note(self, note_id: str, *, include_deleted: bool = False) -> Note | None:
        sql = "SELECT * FROM notes WHERE id = ?"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        row = self._fetchone(sql, (note_id,))
        if row is None:
            return None
        return self._row_to_note(row, self.list_items(note_id))

    def find_bot_default_note(self, user_id: str, board_id: str) -> Note | None:
        row = self._fetchone(
            "SELECT * FROM notes WHERE created_by = ? AND board_id = ? AND is_bot_default = 1"
            " AND deleted_at IS NULL AND archived_at IS NULL ORDER BY rowid LIMIT 1",
            (user_id, board_id),
        )
        if row is None:
            return None
        return self._row_to_note(row, self.list_items(row["id"]))

    def list_items(self, note_id: str) -> list[ChecklistItem]:
        rows = self._fetchall(
            "SELECT * FROM checklist_items WHERE note_id = ? ORDER BY sort_order, id", (note_id,)
        )
        return [_row_to_item(r) for r in rows]

    def item_ids_owned_elsewhere(self, note_id: str, item_ids: Sequence[str]) -> set[str]:
        """Subset of ``item_ids`` already stored under a note other than ``note_id``."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return set()
        marks = ", ".join("?" for _ in ids)
        rows = self._fetchall(
            f"SELECT id FROM checklist_items WHERE note_id != ? AND id IN ({marks})", (note_id, *ids)
        )
        return {r["id"] for r in rows}

    def save_note(self, note: Note, *, items: Sequence[ChecklistItem] | None = None) -> Note:
        """
        Persist note fields and, when ``items`` is given, replace its checklist,
        all in one transaction. Returns the canonical stored note.
        """
        self.ensure_schema()
        with self._lock:
            try:
                with transaction(self.conn) as cur:
                    cur.execute(
                        "UPDATE notes SET content = ?, done = ?, archived_at = ? WHERE id = ?",
                        (note.content, int(note.done), note.archived_at, note.id),
                    )
                    if cur.rowcount != 1:
                        raise PersistenceError(f"note {note.id} vanished during update")
                    if items is not None:
                        self._write_items(cur, note.id, items)
            except sqlite3.Error as exc:
                _log.error("storage.save_note_failed", extra={"note_id": note.id}, exc_info=True)
                raise PersistenceError(f"failed to save note {note.id}") from exc
        stored = self.get_note(note.id)
        if stored is None:
            raise PersistenceError(f"note {note.id} vanished after update")
        return stored

    def replace_items(self, note_id: str, items: Sequence[ChecklistItem]) -> list[ChecklistItem]:
        self.ensure_schema()
        with self._lock:
            try:
                with transaction(self.conn) as cur:
                    self._write_items(cur, note_id, items)
            except sqlite3.Error as exc:
                raise PersistenceError(f"failed to store checklist of note {note_id}") from exc
        return self.list_items(note_id)

    def set_slack_message_id(self, note_id: str, message_ref: str) -> bool:
        """Store the delivery reference once; an existing one is never overwritten."""
        return self._write(
            "UPDATE notes SET slack_message_id = ? WHERE id = ? AND slack_message_id IS NULL",
            (message_ref, note_id),
        ) == 1

    def soft_delete_note(self, note_id: str) -> bool:
        return self._write(
            "UPDATE notes SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
            (iso_utc(), note_id),
        ) == 1

    # ---------- internals ----------
    def _write_items(self, cur: sqlite3.Cursor, note_id: str, items: Sequence[ChecklistItem]) -> None:
        cur.execute("DELETE FROM checklist_items WHERE note_id = ?", (note_id,))
        cur.executemany(
            "INSERT INTO checklist_items(id, note_id, content, checked, sort_order) VALUES(?, ?, ?, ?, ?)",
            [(i.id, note_id, i.content, int(i.checked), i.order) for i in normalize(items)],
        )

    def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        self.ensure_schema()
        with self._lock:
            try:
                with transaction(self.conn) as cur:
                    cur.execute(sql, params)
                    return cur.rowcount
            except sqlite3.Error as exc:
                _log.error("storage.write_failed", extra={"statement": sql.split(" ", 1)[0]}, exc_info=True)
                raise PersistenceError(str(exc)) from exc

    def _fetchone(self, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        self.ensure_schema()
        with self._lock:
            cur = self.conn.cursor()
            try:
                return cur.execute(sql, params).fetchone()
            finally:
                cur.close()

    def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        self.ensure_schema()
        with self._lock:
            cur = self.conn.cursor()
            try:
                return cur.execute(sql, params).fetchall()
            finally:
                cur.close()

    @staticmethod
    def _row_to_board(row: sqlite3.Row) -> Board:
        return Board(
            id=row["id"],
            name=row["name"],
            organization_id=row["organization_id"],
            send_updates=bool(row["send_updates"]),
        )

    @staticmethod
    def _row_to_note(row: sqlite3.Row, items: list[ChecklistItem]) -> Note:
        return Note(
            id=row["id"],
            board_id=row["board_id"],
            created_by=row["created_by"],
            content=row["content"],
            done=bool(row["done"]),
            checklist_items=items,
            archived_at=row["archived_at"],
            slack_message_id=row["slack_message_id"],
            is_bot_default=bool(row["is_bot_default"]),
        )
