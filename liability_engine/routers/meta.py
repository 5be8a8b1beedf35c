# liability_engine/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..domain.liability import LIABILITY_DECISIONS
from ..domain.report_lifecycle import ITEM_STATUSES, STATUS_ORDER

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"ok": True, "env": settings.app_env, "version": settings.app_version}


@router.get("/meta/enums", response_model=dict)
def enums():
    """Vocabularies the UI needs to render pickers."""
    return {
        "report_statuses": list(STATUS_ORDER),
        "item_statuses": list(ITEM_STATUSES),
        "liability_decisions": list(LIABILITY_DECISIONS),
        "tenant_approval_statuses": ["pending", "approved", "disputed"],
    }
