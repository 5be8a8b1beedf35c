# liability_engine/services/comparison_reports.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.entry_diff import diff_entries
from ..domain.events import emit_audit_event, emit_workflow_event
from ..domain.liability import liability_breakdown
from ..domain.report_lifecycle import (
    OPERATOR_SIGNABLE_STATUSES,
    check_transition,
    derived_status,
    is_editable,
    normalize_status,
)
from ..errors import Conflict, Forbidden, ValidationError
from ..models import ComparisonReport, ComparisonReportItem, Property, Tenant
from ..schemas import ComparisonReportCreate
from .comparison_items import list_items, recompute_report_total
from .inspection_source import InspectionEntrySource
from .ownership import (
    ensure_can_view_report,
    must_get_inspection,
    must_get_property,
    must_get_report,
    must_get_tenant,
    tenant_for_principal,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


def report_state(report: ComparisonReport) -> dict[str, Any]:
    return {
        "status": report.status,
        "total_estimated_cost": report.total_estimated_cost,
        "operator_signed_at": report.operator_signed_at,
        "tenant_signed_at": report.tenant_signed_at,
        "filed_at": report.filed_at,
    }


def effective_report_status(report: ComparisonReport) -> str:
    """Stored status with the signature rule applied, so a read never shows a stale status."""
    return derived_status(
        report.status,
        operator_signed=bool(report.operator_signature),
        tenant_signed=bool(report.tenant_signature),
    )


# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------


def create_report(
    db: Session,
    *,
    principal: Principal,
    payload: ComparisonReportCreate,
    source: InspectionEntrySource,
) -> ComparisonReport:
    if not principal.is_operator:
        raise Forbidden(f"only operators can generate comparison reports (caller is {principal.role})", field="role")

    prop = must_get_property(db, org_id=principal.org_id, property_id=payload.property_id)
    check_in = must_get_inspection(
        db, org_id=principal.org_id, inspection_id=payload.check_in_inspection_id, field="check_in_inspection_id"
    )
    check_out = must_get_inspection(
        db, org_id=principal.org_id, inspection_id=payload.check_out_inspection_id, field="check_out_inspection_id"
    )

    for insp, expected, field in (
        (check_in, "check_in", "check_in_inspection_id"),
        (check_out, "check_out", "check_out_inspection_id"),
    ):
        if insp.property_id != prop.id:
            raise ValidationError(f"inspection {insp.id} belongs to another property", field=field)
        if (insp.inspection_type or "").strip().lower() != expected:
            raise ValidationError(
                f"inspection {insp.id} is a {insp.inspection_type} inspection, expected {expected}", field=field
            )

    tenant_id = payload.tenant_id or check_in.tenant_id or check_out.tenant_id
    if tenant_id is not None:
        must_get_tenant(db, org_id=principal.org_id, tenant_id=tenant_id)

    drafts = diff_entries(source.fetch_entries(check_in.id), source.fetch_entries(check_out.id))

    now = _utcnow()
    report = ComparisonReport(
        org_id=principal.org_id,
        property_id=prop.id,
        tenant_id=tenant_id,
        check_in_inspection_id=check_in.id,
        check_out_inspection_id=check_out.id,
        status="draft",
        generated_by=principal.user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    db.flush()

    for d in drafts:
        db.add(
            ComparisonReportItem(
                comparison_report_id=report.id,
                check_in_entry_id=d.check_in_entry_id,
                check_out_entry_id=d.check_out_entry_id,
                section_ref=d.section_ref,
                item_ref=d.item_ref,
                field_key=d.field_key,
                comparison_data_json=json.dumps(d.comparison_data, ensure_ascii=False),
                status="pending",
                liability_decision="tenant",
                created_at=now,
                updated_at=now,
            )
        )

    recompute_report_total(db, report)

    emit_audit_event(
        db,
        principal=principal,
        action="comparison_report.create",
        entity_type="ComparisonReport",
        entity_id=report.id,
        before=None,
        after={**report_state(report), "item_count": len(drafts)},
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type="comparison_report.created",
        property_id=prop.id,
        payload={"report_id": report.id, "item_count": len(drafts)},
    )
    log.info(
        "comparison report generated",
        extra={"org_id": principal.org_id, "report_id": report.id, "property_id": prop.id},
    )
    return report


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------


def list_reports(
    db: Session,
    *,
    principal: Principal,
    property_id: Optional[int] = None,
    status: Optional[str] = None,
    limit: int = 200,
) -> list[dict[str, Any]]:
    q = select(ComparisonReport).where(ComparisonReport.org_id == principal.org_id)

    if property_id is not None:
        must_get_property(db, org_id=principal.org_id, property_id=property_id)
        q = q.where(ComparisonReport.property_id == int(property_id))

    if status:
        q = q.where(ComparisonReport.status == normalize_status(status))

    if principal.is_tenant:
        # tenant sees reports on tenancies whose contact email is theirs
        q = q.join(Tenant, Tenant.id == ComparisonReport.tenant_id).where(
            func.lower(Tenant.email) == principal.email.strip().lower()
        )

    rows = list(db.scalars(q.order_by(desc(ComparisonReport.id)).limit(int(limit))).all())

    counts: dict[int, int] = {}
    if rows:
        counts = dict(
            db.execute(
                select(ComparisonReportItem.comparison_report_id, func.count(ComparisonReportItem.id))
                .where(ComparisonReportItem.comparison_report_id.in_([r.id for r in rows]))
                .group_by(ComparisonReportItem.comparison_report_id)
            ).all()
        )

    return [_summary(r, item_count=int(counts.get(r.id, 0))) for r in rows]


def _summary(report: ComparisonReport, *, item_count: int) -> dict[str, Any]:
    return {
        "id": report.id,
        "property_id": report.property_id,
        "tenant_id": report.tenant_id,
        "check_in_inspection_id": report.check_in_inspection_id,
        "check_out_inspection_id": report.check_out_inspection_id,
        "status": effective_report_status(report),
        "total_estimated_cost": report.total_estimated_cost,
        "item_count": item_count,
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }


def report_view(db: Session, *, principal: Principal, report: ComparisonReport) -> dict[str, Any]:
    """Full aggregate as returned by every read and every mutation."""
    items = list_items(db, report_id=report.id)
    status = effective_report_status(report)
    out = _summary(report, item_count=len(items))
    out.update(
        {
            "liability_breakdown": liability_breakdown(items).as_dict(),
            "editable": bool(principal.is_operator and is_editable(status)),
            "generated_by": report.generated_by,
            "operator_signature": report.operator_signature,
            "operator_signed_at": report.operator_signed_at,
            "tenant_signature": report.tenant_signature,
            "tenant_signed_at": report.tenant_signed_at,
            "filed_at": report.filed_at,
            "items": items,
        }
    )
    return out


def get_report_for(db: Session, *, principal: Principal, report_id: int) -> ComparisonReport:
    report = must_get_report(db, org_id=principal.org_id, report_id=report_id)
    ensure_can_view_report(db, principal, report)
    return report


# -----------------------------------------------------------------------------
# Status changes
# -----------------------------------------------------------------------------


def change_status(db: Session, *, principal: Principal, report_id: int, target: str) -> ComparisonReport:
    if not principal.is_operator:
        raise Forbidden(f"only operators can change report status (caller is {principal.role})", field="role")

    report = must_get_report(db, org_id=principal.org_id, report_id=report_id, for_update=True)
    nxt = normalize_status(target)
    current = effective_report_status(report)
    check_transition(current, nxt)

    before = report_state(report)
    now = _utcnow()
    report.status = nxt
    if nxt == "filed":
        report.filed_at = now
    report.updated_at = now
    db.add(report)
    db.flush()

    emit_audit_event(
        db,
        principal=principal,
        action="comparison_report.status",
        entity_type="ComparisonReport",
        entity_id=report.id,
        before=before,
        after=report_state(report),
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type=f"comparison_report.{nxt}",
        property_id=report.property_id,
        payload={"report_id": report.id, "from": current, "to": nxt},
    )
    log.info(
        "comparison report status changed",
        extra={"org_id": principal.org_id, "report_id": report.id},
    )
    return report


# -----------------------------------------------------------------------------
# Signatures
# -----------------------------------------------------------------------------

_SLOTS = {
    "operator": (ComparisonReport.operator_signature, ComparisonReport.operator_signed_at, ComparisonReport.operator_ip_address),
    "tenant": (ComparisonReport.tenant_signature, ComparisonReport.tenant_signed_at, ComparisonReport.tenant_ip_address),
}


def sign_report(
    db: Session,
    *,
    principal: Principal,
    report_id: int,
    signature: str,
    ip_address: Optional[str] = None,
) -> ComparisonReport:
    """
    Write-once signature slots. The caller's role picks the slot; the tenant
    signs after the operator. The slot write is a conditional UPDATE
    (... WHERE <slot> IS NULL) so two racing signers cannot both win.
    """
    report = must_get_report(db, org_id=principal.org_id, report_id=report_id, for_update=True)
    ensure_can_view_report(db, principal, report)

    payload = (signature or "").strip()
    if not payload:
        raise ValidationError("signature is empty", field="signature")

    if report.status == "filed":
        raise Forbidden("report is filed; signatures are closed", field="status")

    if principal.is_operator:
        slot = "operator"
        if report.operator_signature:
            raise Conflict("operator has already signed this report", field="operator_signature")
        if report.status not in OPERATOR_SIGNABLE_STATUSES:
            raise Forbidden(
                f"operator can sign only while the report is under_review or awaiting_signatures (report is {report.status})",
                field="status",
            )
    elif principal.is_tenant:
        slot = "tenant"
        if report.tenant_signature:
            raise Conflict("tenant has already signed this report", field="tenant_signature")
        if not report.operator_signature:
            raise Forbidden("tenant can sign only after the operator has signed", field="operator_signature")
        if tenant_for_principal(db, principal, report.tenant_id) is None:
            raise Forbidden("caller is not the tenant on this report", field="role")
    else:
        raise Forbidden(f"role {principal.role} cannot sign comparison reports", field="role")

    sig_col, at_col, ip_col = _SLOTS[slot]
    now = _utcnow()
    res = db.execute(
        update(ComparisonReport)
        .where(ComparisonReport.id == report.id, sig_col.is_(None))
        .values({sig_col: payload, at_col: now, ip_col: ip_address, ComparisonReport.updated_at: now})
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise Conflict(f"{slot} signature was written concurrently", field=f"{slot}_signature")

    db.refresh(report)
    before_status = report.status
    report.status = effective_report_status(report)
    db.add(report)
    db.flush()

    emit_audit_event(
        db,
        principal=principal,
        action=f"comparison_report.sign.{slot}",
        entity_type="ComparisonReport",
        entity_id=report.id,
        before={"status": before_status},
        after=report_state(report),
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type=f"comparison_report.{slot}_signed",
        property_id=report.property_id,
        payload={"report_id": report.id, "status": report.status},
    )
    if report.status != before_status:
        log.info("comparison report fully signed", extra={"report_id": report.id})
    return report


# -----------------------------------------------------------------------------
# Snapshot handed to the renderer / notifier
# -----------------------------------------------------------------------------


def report_snapshot(db: Session, report: ComparisonReport) -> dict[str, Any]:
    """Canonical JSON-safe picture of the report; amounts are decimal strings."""
    items = list_items(db, report_id=report.id)
    prop = db.get(Property, report.property_id)
    tenant = db.get(Tenant, report.tenant_id) if report.tenant_id else None

    def ts(v: Optional[datetime]) -> Optional[str]:
        return v.isoformat() if v else None

    return {
        "report_id": report.id,
        "status": effective_report_status(report),
        "property": {
            "id": report.property_id,
            "address": prop.address if prop else None,
            "city": prop.city if prop else None,
            "postcode": prop.postcode if prop else None,
        },
        "tenant": {"id": tenant.id, "name": tenant.full_name, "email": tenant.email} if tenant else None,
        "check_in_inspection_id": report.check_in_inspection_id,
        "check_out_inspection_id": report.check_out_inspection_id,
        "total_estimated_cost": str(report.total_estimated_cost),
        "liability_breakdown": liability_breakdown(items).as_dict(),
        "items": [
            {
                "id": it.id,
                "section_ref": it.section_ref,
                "item_ref": it.item_ref,
                "field_key": it.field_key,
                "estimated_cost": str(it.estimated_cost),
                "depreciation": str(it.depreciation),
                "final_cost": str(it.final_cost),
                "liability_decision": it.liability_decision,
                "liability_notes": it.liability_notes,
                "status": it.status,
                "comparison_data": it.comparison_data,
            }
            for it in items
        ],
        "signatures": {
            "operator": {
                "signature": report.operator_signature,
                "signed_at": ts(report.operator_signed_at),
                "ip_address": report.operator_ip_address,
            },
            "tenant": {
                "signature": report.tenant_signature,
                "signed_at": ts(report.tenant_signed_at),
                "ip_address": report.tenant_ip_address,
            },
        },
        "filed_at": ts(report.filed_at),
        "generated_at": _utcnow().isoformat(),
    }
