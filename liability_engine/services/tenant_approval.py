# liability_engine/services/tenant_approval.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.approval import APPROVED, DISPUTED, PENDING, ApprovalView, approval_view, deadline_from
from ..domain.events import emit_audit_event, emit_workflow_event
from ..errors import Forbidden, ValidationError
from ..models import Inspection, Organization
from .ownership import ensure_can_view_inspection, must_get_inspection, tenant_for_principal

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _approval_state(insp: Inspection) -> dict[str, Any]:
    return {
        "tenant_approval_status": insp.tenant_approval_status,
        "tenant_approval_deadline": insp.tenant_approval_deadline,
        "tenant_comments": insp.tenant_comments,
        "tenant_auto_approved": insp.tenant_auto_approved,
    }


def view_for(insp: Inspection, now: Optional[datetime] = None) -> ApprovalView:
    return approval_view(
        status=insp.tenant_approval_status,
        deadline=insp.tenant_approval_deadline,
        comments=insp.tenant_comments,
        auto_approved=bool(insp.tenant_auto_approved),
        now=now or _utcnow(),
    )


def approval_out(insp: Inspection, view: ApprovalView, *, can_respond: bool) -> dict[str, Any]:
    return {
        "inspection_id": insp.id,
        "stored_status": view.stored_status,
        "effective_status": view.effective_status,
        "deadline": view.deadline,
        "time_remaining": view.time_remaining,
        "expired": view.expired,
        "auto_approved": view.auto_approved,
        "can_respond": can_respond,
        "comments": view.comments,
    }


def _ensure_check_in(insp: Inspection) -> None:
    if (insp.inspection_type or "").strip().lower() != "check_in":
        raise ValidationError(
            f"tenant approval applies to check-in inspections (inspection {insp.id} is {insp.inspection_type})",
            field="inspection_type",
        )


def approval_period_days(db: Session, org_id: int) -> int:
    org = db.get(Organization, int(org_id))
    if org is not None and org.check_in_approval_period_days is not None:
        return int(org.check_in_approval_period_days)
    return int(settings.default_approval_period_days)


# -----------------------------------------------------------------------------
# Reads (never write, even when the deadline has lapsed)
# -----------------------------------------------------------------------------


def get_approval(db: Session, *, principal: Principal, inspection_id: int) -> dict[str, Any]:
    insp = must_get_inspection(db, org_id=principal.org_id, inspection_id=inspection_id)
    ensure_can_view_inspection(db, principal, insp)
    _ensure_check_in(insp)
    view = view_for(insp)
    return approval_out(insp, view, can_respond=bool(principal.is_tenant and view.is_open))


# -----------------------------------------------------------------------------
# Operator: open the review window
# -----------------------------------------------------------------------------


def open_review(
    db: Session,
    *,
    principal: Principal,
    inspection_id: int,
    deadline: Optional[datetime] = None,
) -> Inspection:
    if not principal.is_operator:
        raise Forbidden(f"only operators can open a tenant review (caller is {principal.role})", field="role")

    insp = must_get_inspection(db, org_id=principal.org_id, inspection_id=inspection_id)
    _ensure_check_in(insp)
    if insp.tenant_id is None:
        raise ValidationError(f"inspection {insp.id} has no tenant to review it", field="tenant_id")

    now = _utcnow()
    current = view_for(insp, now)
    if insp.tenant_approval_status is not None and not current.is_open:
        raise Forbidden(f"tenant review is already {current.effective_status}", field="tenant_approval_status")

    if deadline is not None and deadline.tzinfo is not None:
        # stored naive UTC like every other timestamp
        deadline = deadline.astimezone(timezone.utc).replace(tzinfo=None)

    before = _approval_state(insp)
    insp.tenant_approval_status = PENDING
    insp.tenant_approval_deadline = deadline or deadline_from(now, approval_period_days(db, principal.org_id))
    insp.tenant_auto_approved = False
    insp.tenant_decided_at = None
    db.add(insp)
    db.flush()

    _emit(db, principal, insp, action="tenant_approval.open", before=before)
    return insp


# -----------------------------------------------------------------------------
# Tenant decisions
# -----------------------------------------------------------------------------


def _load_for_tenant(db: Session, principal: Principal, inspection_id: int) -> Inspection:
    insp = must_get_inspection(db, org_id=principal.org_id, inspection_id=inspection_id)
    ensure_can_view_inspection(db, principal, insp)
    if not principal.is_tenant or tenant_for_principal(db, principal, insp.tenant_id) is None:
        raise Forbidden(f"only the inspection's tenant may respond (caller is {principal.role})", field="role")
    _ensure_check_in(insp)

    view = view_for(insp)
    if insp.tenant_approval_status is None:
        raise Forbidden("no tenant review has been opened for this inspection", field="tenant_approval_status")
    if not view.is_open:
        # a lapsed deadline reads as approved and closes the review the same way a decision does
        raise Forbidden(
            f"tenant review is already {view.effective_status}"
            + (" (review window expired)" if view.expired and view.stored_status == PENDING else ""),
            field="tenant_approval_status",
        )
    return insp


def approve(db: Session, *, principal: Principal, inspection_id: int, comments: Optional[str] = None) -> Inspection:
    insp = _load_for_tenant(db, principal, inspection_id)
    before = _approval_state(insp)

    text = (comments or "").strip()
    insp.tenant_approval_status = APPROVED
    if text:
        insp.tenant_comments = text
    insp.tenant_decided_at = _utcnow()
    db.add(insp)
    db.flush()

    _emit(db, principal, insp, action="tenant_approval.approve", before=before)
    return insp


def dispute(db: Session, *, principal: Principal, inspection_id: int, comments: Optional[str]) -> Inspection:
    insp = _load_for_tenant(db, principal, inspection_id)

    text = (comments or "").strip()
    if not text:
        raise ValidationError("a dispute needs comments explaining it", field="comments")

    before = _approval_state(insp)
    insp.tenant_approval_status = DISPUTED
    insp.tenant_comments = text
    insp.tenant_decided_at = _utcnow()
    db.add(insp)
    db.flush()

    _emit(db, principal, insp, action="tenant_approval.dispute", before=before)
    return insp


def update_comments(db: Session, *, principal: Principal, inspection_id: int, comments: Optional[str]) -> Inspection:
    """Edit the tenant's remarks while the review is still open; status is untouched."""
    insp = _load_for_tenant(db, principal, inspection_id)
    before = _approval_state(insp)

    insp.tenant_comments = (comments or "").strip() or None
    db.add(insp)
    db.flush()

    _emit(db, principal, insp, action="tenant_approval.comments", before=before)
    return insp


def _emit(db: Session, principal: Principal, insp: Inspection, *, action: str, before: dict[str, Any]) -> None:
    emit_audit_event(
        db,
        principal=principal,
        action=action,
        entity_type="Inspection",
        entity_id=insp.id,
        before=before,
        after=_approval_state(insp),
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type=action,
        property_id=insp.property_id,
        payload={"inspection_id": insp.id, "status": insp.tenant_approval_status},
    )
    log.info(action.replace("_", " ").replace(".", " "), extra={"org_id": principal.org_id, "inspection_id": insp.id})


# -----------------------------------------------------------------------------
# Reconciliation sweep (optional; reads are correct without it)
# -----------------------------------------------------------------------------


def reconcile_lapsed_approvals(db: Session, *, now: Optional[datetime] = None, org_id: Optional[int] = None) -> list[int]:
    """
    Materialize pending reviews whose deadline has passed as approved
    (flagged auto_approved). Flush-only; the caller commits. Returns the
    inspection ids that were updated.
    """
    now = now or _utcnow()
    q = select(Inspection).where(
        Inspection.tenant_approval_status == PENDING,
        Inspection.tenant_approval_deadline.is_not(None),
        Inspection.tenant_approval_deadline <= now,
    )
    if org_id is not None:
        q = q.where(Inspection.org_id == int(org_id))

    changed: list[int] = []
    for insp in db.scalars(q.order_by(Inspection.id)).all():
        insp.tenant_approval_status = APPROVED
        insp.tenant_auto_approved = True
        insp.tenant_decided_at = insp.tenant_approval_deadline
        db.add(insp)
        changed.append(int(insp.id))

    db.flush()
    if changed:
        log.info("lapsed tenant reviews auto-approved", extra={"count": len(changed)})
    return changed
