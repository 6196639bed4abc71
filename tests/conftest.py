from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from gumboard.core.application.notifications.notifier import ChecklistNotifier
from gumboard.core.application.use_cases.update_checklist import ChecklistService
from gumboard.core.domain.boards import Board, Organization, User
from gumboard.core.domain.checklist.models import Note
from gumboard.core.infrastructure.storage.repositories.notes import NotesRepository
from gumboard.core.infrastructure.storage.sqlite_adapter import connect
from gumboard.utils import metrics
from gumboard.utils.idempotency import DedupStore
from gumboard.utils.rate_limit import DebounceGate

WEBHOOK_URL = "https://hooks.slack.test/services/T000/B000/XXXX"
BASE_URL = "http://app.test"


# ---------- fakes ----------

class FakeClock:
    """Manual millisecond clock for the debounce/dedup windows."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeDispatch:
    """Records submissions instead of delivering them."""

    def __init__(self, *, accept: bool = True) -> None:
        self.accept = accept
        self.sent: list[tuple[str, str]] = []
        self.callbacks: list[Optional[Callable[[str], None]]] = []

    def submit(self, webhook_url: str, text: str, on_delivered: Optional[Callable[[str], None]] = None) -> bool:
        if not self.accept:
            return False
        self.sent.append((webhook_url, text))
        self.callbacks.append(on_delivered)
        return True

    @property
    def texts(self) -> list[str]:
        return [t for _, t in self.sent]

    def deliver_all(self, ref: str = "ts-1") -> None:
        for cb in self.callbacks:
            if cb is not None:
                cb(ref)


class FakeSender:
    def __init__(self, *, ref: Optional[str] = "ts-1", delay: float = 0.0) -> None:
        self.ref = ref
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def send(self, webhook_url: str, message: str) -> Optional[str]:
        self.calls.append((webhook_url, message))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.ref


# ---------- fixtures ----------

@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset_registry()
    yield
    metrics.reset_registry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def conn():
    c = connect(":memory:")
    yield c
    c.close()


@pytest.fixture
def repo(conn) -> NotesRepository:
    r = NotesRepository(conn)
    r.ensure_schema()
    return r


@dataclass
class World:
    org: Organization
    author: User
    admin: User
    member: User
    outsider: User
    board: Board
    foreign_board: Board
    note: Note


@pytest.fixture
def world(repo: NotesRepository) -> World:
    org = repo.create_organization("Acme", webhook_url=WEBHOOK_URL, org_id="org_acme")
    other = repo.create_organization("Globex", org_id="org_globex")
    author = repo.create_user("Ada", "ada@acme.test", organization_id=org.id, user_id="user_ada")
    admin = repo.create_user("Root", "root@acme.test", organization_id=org.id, is_admin=True, user_id="user_root")
    member = repo.create_user("Bob", "bob@acme.test", organization_id=org.id, user_id="user_bob")
    outsider = repo.create_user("Eve", "eve@globex.test", organization_id=other.id, user_id="user_eve")
    board = repo.create_board("Sprint", organization_id=org.id, board_id="board_sprint")
    foreign_board = repo.create_board("Roadmap", organization_id=other.id, board_id="board_roadmap")
    note = repo.create_note(board_id=board.id, created_by=author.id)
    return World(
        org=org,
        author=author,
        admin=admin,
        member=member,
        outsider=outsider,
        board=board,
        foreign_board=foreign_board,
        note=note,
    )


@pytest.fixture
def dispatch() -> FakeDispatch:
    return FakeDispatch()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def notifier(dispatch: FakeDispatch, repo: NotesRepository, clock: FakeClock) -> ChecklistNotifier:
    return ChecklistNotifier(
        debounce=DebounceGate(clock=clock),
        dedup=DedupStore(clock=clock),
        dispatcher=dispatch,
        store=repo,
    )


@pytest.fixture
def service(repo: NotesRepository, notifier: ChecklistNotifier) -> ChecklistService:
    return ChecklistService(
        store=repo,
        notifier=notifier,
        board_url_for=lambda board_id: f"{BASE_URL}/boards/{board_id}",
    )
