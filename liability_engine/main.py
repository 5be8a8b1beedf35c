# liability_engine/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import request_validation_handler
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.comparison_reports import items_router as comparison_items_router
from .routers.comparison_reports import router as comparison_reports_router
from .routers.inspections import router as inspections_router
from .routers.meta import router as meta_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    return list(val) or ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Tenancy Liability Engine", version=settings.app_version)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # added last runs first: request id must be set before the request line is logged
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router, prefix=API_PREFIX)
    app.include_router(comparison_reports_router, prefix=API_PREFIX)
    app.include_router(comparison_items_router, prefix=API_PREFIX)
    app.include_router(inspections_router, prefix=API_PREFIX)
    return app


app = create_app()
