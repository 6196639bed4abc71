# src/gumboard/core/infrastructure/notifications/dispatch_queue.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gumboard.core.application.ports import DeliveryCallback, WebhookSenderPort
from gumboard.utils.logging import get_logger
from gumboard.utils.metrics import inc

_log = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 256
DEFAULT_WORKERS = 2
DEFAULT_HARD_TIMEOUT_SEC = 8.0


@dataclass(frozen=True)
class DispatchJob:
    webhook_url: str
    text: str
    on_delivered: Optional[DeliveryCallback] = None


class DispatchQueue:
    """
    Bounded fire-and-forget delivery queue.

      - submit() never blocks: when the queue is full the oldest pending job is
        dropped to make room (drop_oldest backpressure);
      - N worker tasks drain it, each send under a hard asyncio timeout;
      - failures, timeouts and callback errors are logged and dropped.

    Must be started from a running event loop (``await start()``); submit()
    before start() still queues, the jobs run once workers exist. Once started,
    submit() is safe from other threads: the job is handed to the loop.
    """

    def __init__(
        self,
        sender: WebhookSenderPort,
        *,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        workers: int = DEFAULT_WORKERS,
        hard_timeout_sec: float = DEFAULT_HARD_TIMEOUT_SEC,
    ) -> None:
        if maxsize <= 0:
            raise ValueError("DispatchQueue: maxsize must be positive")
        self.sender = sender
        self.maxsize = int(maxsize)
        self.workers = max(1, int(workers))
        self.hard_timeout_sec = float(hard_timeout_sec)
        self._queue: asyncio.Queue[DispatchJob] = asyncio.Queue(maxsize=self.maxsize)
        self._tasks: List[asyncio.Task] = []
        self._running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stats = {"submitted": 0, "delivered": 0, "failed": 0, "dropped": 0}

    # ---------- public API ----------

    def submit(self, webhook_url: str, text: str, on_delivered: Optional[DeliveryCallback] = None) -> bool:
        job = DispatchJob(webhook_url=webhook_url, text=text, on_delivered=on_delivered)
        loop = self._loop
        if loop is not None and loop.is_running() and not _runs_on(loop):
            loop.call_soon_threadsafe(self._enqueue, job)
            return True
        return self._enqueue(job)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._loop = loop = asyncio.get_running_loop()
        for n in range(self.workers):
            self._tasks.append(loop.create_task(self._worker(), name=f"dispatch-worker:{n}"))

    async def stop(self, *, drain: bool = True, timeout_sec: float = 5.0) -> None:
        if drain and self._running:
            try:
                async with asyncio.timeout(timeout_sec):
                    await self._queue.join()
            except TimeoutError:
                _log.warning("dispatch.stop_drain_timeout", extra={"pending": self._queue.qsize()})
        self._running = False
        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def join(self) -> None:
        await self._queue.join()

    def health(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "workers": len(self._tasks),
            "qsize": self._queue.qsize(),
            "maxsize": self.maxsize,
            **self._stats,
        }

    # ---------- internals ----------

    def _enqueue(self, job: DispatchJob) -> bool:
        if self._queue.full():
            try:
                self._queue.get_nowait()
                self._queue.task_done()
                self._stats["dropped"] += 1
                inc("dispatch_dropped_total")
                _log.warning("dispatch.dropped_oldest", extra={"qsize": self._queue.qsize()})
            except asyncio.QueueEmpty:
                pass
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self._stats["dropped"] += 1
            inc("dispatch_dropped_total")
            return False
        self._stats["submitted"] += 1
        return True

    async def _worker(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._deliver(job)
            finally:
                self._queue.task_done()

    async def _deliver(self, job: DispatchJob) -> None:
        try:
            async with asyncio.timeout(self.hard_timeout_sec):
                ref = await self.sender.send(job.webhook_url, job.text)
        except TimeoutError:
            self._stats["failed"] += 1
            inc("webhook_send_total", outcome="hard_timeout")
            _log.warning("dispatch.hard_timeout", extra={"timeout_sec": self.hard_timeout_sec})
            return
        except Exception:  # noqa: BLE001
            self._stats["failed"] += 1
            _log.error("dispatch.send_crashed", exc_info=True)
            return

        if ref is None:
            self._stats["failed"] += 1
            return

        self._stats["delivered"] += 1
        if job.on_delivered is None:
            return
        try:
            job.on_delivered(ref)
        except Exception:  # noqa: BLE001
            _log.error("dispatch.on_delivered_failed", exc_info=True)


def _runs_on(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
