# liability_engine/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("liability_engine.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One "http_request" line per request: method, path, status, latency and
    the caller's org slug and role as sent in the identity headers.
    Must sit inside RequestIDMiddleware so the line carries the request id.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "http_request",
                extra={
                    "http": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
                        "org_slug": request.headers.get(settings.header_org_slug),
                        "caller_role": request.headers.get(settings.header_user_role),
                    }
                },
            )
