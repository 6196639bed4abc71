from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from gumboard import __version__
from gumboard.app.compose import AppContainer, build_container
from gumboard.app.middleware import RequestIdMiddleware
from gumboard.app.schemas import (
    CommandIn,
    CommandOut,
    ItemCreateIn,
    ItemUpdateIn,
    NoteUpdateIn,
    ReorderIn,
    SplitIn,
)
from gumboard.core.application.use_cases.task_commands import TaskCommand
from gumboard.core.infrastructure.settings import Settings
from gumboard.utils.exceptions import GumboardError
from gumboard.utils.logging import configure_root, get_logger
from gumboard.utils.metrics import export_text, inc, observe

logger = get_logger(__name__)

NOTE_PATH = "/api/boards/{board_id}/notes/{note_id}"


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def create_app(container: Optional[AppContainer] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the ASGI app. A prebuilt ``container`` (tests) is used as is; otherwise
    one is composed from ``settings`` / ENV when the lifespan starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.container is None:
            configure_root()
            app.state.container = build_container(settings)
        await app.state.container.start()
        try:
            yield
        finally:
            await app.state.container.stop()

    app = FastAPI(title="gumboard checklist API", version=__version__, lifespan=lifespan)
    app.state.container = container
    app.add_middleware(RequestIdMiddleware)

    # ---------------- errors ----------------

    @app.exception_handler(GumboardError)
    async def _domain_error(request: Request, exc: GumboardError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request.failed", extra={"path": request.url.path, "error": str(exc)})
        inc("http_errors_total", status=str(exc.status_code))
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    # ---------------- metrics middleware ----------------

    @app.middleware("http")
    async def _metrics_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            # route template keeps label cardinality low
            route = request.scope.get("route")
            path_template = getattr(route, "path", request.url.path)
            inc("http_requests_total", path=path_template, method=request.method)
            observe("http_request_latency_seconds", (time.perf_counter() - t0) * 1000.0, path=path_template)
        return response

    # ---------------- basic endpoints ----------------

    @app.get("/health", response_class=JSONResponse)
    async def health(request: Request) -> dict[str, Any]:
        c = request.app.state.container
        return {
            "status": "ok",
            "version": __version__,
            "dispatch": c.dispatch.health() if c is not None else None,
        }

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics_endpoint() -> Response:
        return PlainTextResponse(export_text(), media_type="text/plain; version=0.0.4")

    # ---------------- checklist ----------------
    # service calls hold sqlite locks; they run in the threadpool, off the event loop

    @app.put(NOTE_PATH)
    async def update_note(
        board_id: str,
        note_id: str,
        body: NoteUpdateIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        note = await run_in_threadpool(
            _container(request).service.update_note, x_user_id, board_id, note_id, body.to_payload()
        )
        return {"note": note.to_dict()}

    @app.post(NOTE_PATH + "/items", status_code=201)
    async def add_item(
        board_id: str,
        note_id: str,
        body: ItemCreateIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        result = await run_in_threadpool(
            _container(request).service.add_item, x_user_id, board_id, note_id, body.content, body.checked
        )
        return {"note": result.note.to_dict(), "created": [i.to_dict() for i in result.change_set.created]}

    # declared before /items/{item_id} so "reorder" is not taken as an item id
    @app.put(NOTE_PATH + "/items/reorder")
    async def reorder_items(
        board_id: str,
        note_id: str,
        body: ReorderIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        orders = [(i.id, i.order) for i in body.items]
        result = await run_in_threadpool(
            _container(request).service.reorder_items, x_user_id, board_id, note_id, orders
        )
        return {"note": result.note.to_dict()}

    @app.put(NOTE_PATH + "/items/{item_id}")
    async def update_item(
        board_id: str,
        note_id: str,
        item_id: str,
        body: ItemUpdateIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        result = await run_in_threadpool(
            _container(request).service.update_item,
            x_user_id,
            board_id,
            note_id,
            item_id,
            content=body.content,
            checked=body.checked,
            order=body.order,
        )
        return {"note": result.note.to_dict()}

    @app.delete(NOTE_PATH + "/items/{item_id}")
    async def delete_item(
        board_id: str,
        note_id: str,
        item_id: str,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        result = await run_in_threadpool(
            _container(request).service.delete_item, x_user_id, board_id, note_id, item_id
        )
        return {"note": result.note.to_dict()}

    @app.post(NOTE_PATH + "/items/{item_id}/split")
    async def split_item(
        board_id: str,
        note_id: str,
        item_id: str,
        body: SplitIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> dict[str, Any]:
        result = await run_in_threadpool(
            _container(request).service.split_item,
            x_user_id, board_id, note_id, item_id, body.cursor_position
        )
        return {"note": result.note.to_dict(), "created": [i.to_dict() for i in result.change_set.created]}

    # ---------------- chat bot ----------------

    @app.post("/api/agent/commands", response_model=CommandOut)
    async def agent_command(
        body: CommandIn,
        request: Request,
        x_user_id: str = Header(default="", alias="X-User-Id"),
    ) -> CommandOut:
        command = TaskCommand(
            intent=body.intent,
            board=body.board,
            task=body.task,
            new_task=body.new_task,
            position=body.position,
            event_id=body.event_id,
        )
        result = await run_in_threadpool(_container(request).commands.execute, x_user_id, command)
        return CommandOut(ok=result.ok, message=result.message, duplicate=result.duplicate)

    return app


app = create_app()
