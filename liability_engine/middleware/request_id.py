# liability_engine/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# inbound ids end up in every log line; anything outside this shape is replaced
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def _inbound_or_new(request: Request) -> str:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid if _SAFE_ID.match(rid) else uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds one id per request to request_id_ctx and echoes it on the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _inbound_or_new(request)
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        resp.headers[REQUEST_ID_HEADER] = rid
        return resp
