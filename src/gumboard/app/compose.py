"""
Dependency Injection composition.
Assembly of the checklist service components.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from gumboard.core.application.notifications.notifier import ChecklistNotifier
from gumboard.core.application.ports import WebhookSenderPort
from gumboard.core.application.use_cases.task_commands import TaskCommands
from gumboard.core.application.use_cases.update_checklist import ChecklistService
from gumboard.core.infrastructure.notifications.dispatch_queue import DispatchQueue
from gumboard.core.infrastructure.notifications.webhook import WebhookDispatcher
from gumboard.core.infrastructure.settings import Settings, get_settings
from gumboard.core.infrastructure.settings_schema import validate_settings
from gumboard.core.infrastructure.storage.repositories.notes import NotesRepository
from gumboard.core.infrastructure.storage.sqlite_adapter import connect
from gumboard.utils.idempotency import DedupStore, EventDeduper
from gumboard.utils.logging import get_logger
from gumboard.utils.rate_limit import DebounceGate

logger = get_logger(__name__)


@dataclass
class AppContainer:
    """
    Application dependency container.
    One instance per process: the gates and the dispatch queue are shared by
    every request handler.
    """
    settings: Settings
    conn: sqlite3.Connection
    store: NotesRepository
    debounce: DebounceGate
    dedup: DedupStore
    event_deduper: EventDeduper
    sender: WebhookSenderPort
    dispatch: DispatchQueue
    notifier: ChecklistNotifier
    service: ChecklistService
    commands: TaskCommands

    async def start(self) -> None:
        await self.dispatch.start()
        logger.info("container.started", extra={"workers": self.dispatch.workers})

    async def stop(self) -> None:
        await self.dispatch.stop(drain=True, timeout_sec=self.settings.WEBHOOK_HARD_TIMEOUT_SEC)
        self.conn.close()
        logger.info("container.stopped")


class ComponentFactory:
    """Factory for creating application components"""

    @staticmethod
    def create_store(settings: Settings, conn: Optional[sqlite3.Connection] = None) -> tuple[sqlite3.Connection, NotesRepository]:
        if conn is None:
            logger.info("storage.open", extra={"db_path": settings.DB_PATH})
            conn = connect(settings.DB_PATH)
        store = NotesRepository(conn)
        store.ensure_schema()
        return conn, store

    @staticmethod
    def create_sender(settings: Settings) -> WebhookDispatcher:
        return WebhookDispatcher(
            timeout_sec=settings.WEBHOOK_TIMEOUT_SEC,
            username=settings.WEBHOOK_USERNAME,
            icon_emoji=settings.WEBHOOK_ICON_EMOJI,
        )

    @staticmethod
    def create_dispatch(settings: Settings, sender: WebhookSenderPort) -> DispatchQueue:
        return DispatchQueue(
            sender,
            maxsize=settings.DISPATCH_QUEUE_SIZE,
            workers=settings.DISPATCH_WORKERS,
            hard_timeout_sec=settings.WEBHOOK_HARD_TIMEOUT_SEC,
        )


def build_container(
    settings: Optional[Settings] = None,
    *,
    conn: Optional[sqlite3.Connection] = None,
    sender: Optional[WebhookSenderPort] = None,
) -> AppContainer:
    """Wire everything together. ``conn`` and ``sender`` are injectable for tests."""
    settings = settings or get_settings()
    validate_settings(settings)

    conn, store = ComponentFactory.create_store(settings, conn)
    sender = sender or ComponentFactory.create_sender(settings)
    dispatch = ComponentFactory.create_dispatch(settings, sender)

    debounce = DebounceGate(settings.DEBOUNCE_WINDOW_MS, settings.TEST_BOARD_PREFIX)
    dedup = DedupStore(settings.DEDUP_WINDOW_MS)
    event_deduper = EventDeduper(settings.EVENT_DEDUP_WINDOW_MS)

    notifier = ChecklistNotifier(debounce=debounce, dedup=dedup, dispatcher=dispatch, store=store)
    service = ChecklistService(store=store, notifier=notifier, board_url_for=settings.board_url)
    commands = TaskCommands(store=store, service=service, deduper=event_deduper)

    return AppContainer(
        settings=settings,
        conn=conn,
        store=store,
        debounce=debounce,
        dedup=dedup,
        event_deduper=event_deduper,
        sender=sender,
        dispatch=dispatch,
        notifier=notifier,
        service=service,
        commands=commands,
    )
