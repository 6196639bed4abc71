# src/gumboard/app/middleware.py
from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from gumboard.utils.logging import set_correlation_id

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Request-ID injection: reuse the caller's X-Request-ID or mint one, put it in
    the logging context for the duration of the request and echo it back.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        set_correlation_id(req_id)
        try:
            resp = await call_next(request)
        finally:
            set_correlation_id(None)
        resp.headers[REQUEST_ID_HEADER] = req_id
        return resp
