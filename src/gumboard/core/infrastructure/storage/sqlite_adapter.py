"""SQLite plumbing for the note store: one shared connection, explicit write transactions."""
from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path

BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "8000"))

# (pragma, required); WAL and synchronous are best effort (":memory:" has no WAL)
_PRAGMAS = (
    ("journal_mode=WAL", False),
    ("synchronous=NORMAL", False),
    ("foreign_keys=ON", True),
    (f"busy_timeout={BUSY_TIMEOUT_MS}", True),
)

__all__ = ["BUSY_TIMEOUT_MS", "apply_schema", "connect", "transaction"]


def connect(db_path: str) -> sqlite3.Connection:
    """
    Connection in autocommit mode with row access by column name.

    Items are deleted with their note through ON DELETE CASCADE, so
    foreign_keys must be on for every connection.
    """
    in_memory = db_path == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        db_path,
        timeout=BUSY_TIMEOUT_MS / 1000.0,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    for pragma, required in _PRAGMAS:
        if required:
            conn.execute(f"PRAGMA {pragma}")
            continue
        with suppress(sqlite3.DatabaseError):
            conn.execute(f"PRAGMA {pragma}")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Cursor]:
    """Write lock taken up front; a note and its items land together or not at all."""
    cur = conn.cursor()
    cur.execute("BEGIN IMMEDIATE")
    ok = False
    try:
        yield cur
        ok = True
    finally:
        if ok:
            conn.commit()
        else:
            with suppress(sqlite3.Error):
                conn.rollback()
        cur.close()


def apply_schema(conn: sqlite3.Connection, ddl: str) -> None:
    if ddl.strip():
        conn.executescript(ddl)
