# liability_engine/errors.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class DomainError(HTTPException):
    """
    Base for the stable error kinds surfaced to callers.

    Rendered by FastAPI's default HTTPException handler as:
        {"detail": {"kind": "...", "message": "...", "field": "..."}}
    """

    kind = "error"
    http_status = 400

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        detail: dict[str, Any] = {"kind": self.kind, "message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=self.http_status, detail=detail)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ValidationError(DomainError):
    kind = "validation_error"
    http_status = 422


class NotFound(DomainError):
    kind = "not_found"
    http_status = 404


class Forbidden(DomainError):
    kind = "forbidden"
    http_status = 403


class Conflict(DomainError):
    kind = "conflict"
    http_status = 409


class UpstreamFailure(DomainError):
    kind = "upstream_failure"
    http_status = 502


_LOC_SOURCES = ("body", "query", "path", "header", "cookie")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Re-emit FastAPI's request-shape errors as a ValidationError detail (first error wins)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    names = [x for x in first.get("loc", ()) if isinstance(x, str) and x not in _LOC_SOURCES]
    field = names[-1] if names else None
    message = str(first.get("msg") or "request is malformed")

    detail: dict[str, Any] = {"kind": ValidationError.kind, "message": f"{field}: {message}" if field else message}
    if field:
        detail["field"] = field
    return JSONResponse(status_code=ValidationError.http_status, content={"detail": detail})
