# liability_engine/routers/inspections.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import TenantApprovalOut, TenantApproveIn, TenantCommentsIn, TenantReviewOpen
from ..services import tenant_approval as svc

router = APIRouter(prefix="/inspections", tags=["inspections"])


def _out(db: Session, p, inspection_id: int) -> dict:
    return svc.get_approval(db, principal=p, inspection_id=inspection_id)


@router.get("/{inspection_id}/tenant-approval", response_model=TenantApprovalOut)
def get_tenant_approval(inspection_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return _out(db, p, inspection_id)


@router.post("/{inspection_id}/tenant-approval/open", response_model=TenantApprovalOut)
def open_tenant_review(
    inspection_id: int,
    payload: TenantReviewOpen,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    svc.open_review(db, principal=p, inspection_id=inspection_id, deadline=payload.deadline)
    db.commit()
    return _out(db, p, inspection_id)


@router.post("/{inspection_id}/tenant-approve", response_model=TenantApprovalOut)
def tenant_approve(
    inspection_id: int,
    payload: TenantApproveIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    svc.approve(db, principal=p, inspection_id=inspection_id, comments=payload.comments)
    db.commit()
    return _out(db, p, inspection_id)


@router.post("/{inspection_id}/tenant-dispute", response_model=TenantApprovalOut)
def tenant_dispute(
    inspection_id: int,
    payload: TenantCommentsIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    svc.dispute(db, principal=p, inspection_id=inspection_id, comments=payload.comments)
    db.commit()
    return _out(db, p, inspection_id)


@router.patch("/{inspection_id}/tenant-comments", response_model=TenantApprovalOut)
def tenant_comments(
    inspection_id: int,
    payload: TenantCommentsIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    svc.update_comments(db, principal=p, inspection_id=inspection_id, comments=payload.comments)
    db.commit()
    return _out(db, p, inspection_id)
