from __future__ import annotations

import secrets
import time


def make_item_id(prefix: str = "item") -> str:
    """Server-side id for checklist items: ``item_<ms>_<hex>``, only [a-zA-Z0-9_]."""
    ms = int(time.time() * 1000)
    rnd = secrets.token_hex(5)
    safe_prefix = "".join(ch if ch.isalnum() else "_" for ch in prefix)[:16] or "item"
    return f"{safe_prefix}_{ms}_{rnd}"


def make_entity_id(prefix: str) -> str:
    """Random id for notes/boards created by the service itself."""
    return f"{prefix}_{secrets.token_hex(8)}"
