# liability_engine/services/comparison_items.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.events import emit_audit_event, emit_workflow_event
from ..domain.liability import (
    LIABILITY_DECISIONS,
    compute_final_cost,
    require_money,
    total_estimated_cost,
)
from ..domain.report_lifecycle import ITEM_STATUSES, LOCKED_STATUSES, ensure_editable
from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..models import ComparisonReport, ComparisonReportItem
from .comments import add_comment
from .ownership import ensure_can_view_report, must_get_item, must_get_report

log = logging.getLogger(__name__)

PATCHABLE_FIELDS = (
    "status",
    "liability_decision",
    "estimated_cost",
    "depreciation",
    "final_cost",
    "liability_notes",
    "notes_comparison",
)

# an item in one of these states is out of the tenant's hands
CLOSED_ITEM_STATUSES = frozenset({"disputed", "resolved", "waived"})


def _utcnow() -> datetime:
    return datetime.utcnow()


def _enum(raw: Any, allowed: tuple[str, ...], *, field: str) -> str:
    s = str(raw or "").strip().lower()
    if s not in allowed:
        raise ValidationError(f"{field} must be one of {', '.join(allowed)} (got {raw!r})", field=field)
    return s


def _clean_text(v: Any) -> Optional[str]:
    s = str(v).strip() if v is not None else ""
    return s or None


def item_state(item: ComparisonReportItem) -> dict[str, Any]:
    return {
        "status": item.status,
        "liability_decision": item.liability_decision,
        "estimated_cost": item.estimated_cost,
        "depreciation": item.depreciation,
        "final_cost": item.final_cost,
        "liability_notes": item.liability_notes,
        "notes_comparison": item.comparison_data.get("notes_comparison"),
    }


def list_items(db: Session, *, report_id: int) -> list[ComparisonReportItem]:
    """Items of one report in creation order."""
    return list(
        db.scalars(
            select(ComparisonReportItem)
            .where(ComparisonReportItem.comparison_report_id == int(report_id))
            .order_by(ComparisonReportItem.id.asc())
        ).all()
    )


def recompute_report_total(db: Session, report: ComparisonReport) -> Decimal:
    """
    Rewrite report.total_estimated_cost from the item rows as they stand in
    this transaction. Never takes a total from the caller.
    """
    db.flush()
    costs = db.scalars(
        select(ComparisonReportItem.final_cost).where(ComparisonReportItem.comparison_report_id == report.id)
    ).all()
    total = total_estimated_cost(costs)
    report.total_estimated_cost = total
    report.updated_at = _utcnow()
    db.add(report)
    db.flush()
    return total


def apply_item_patch(item: ComparisonReportItem, patch: dict[str, Any]) -> list[str]:
    """
    Validate the whole patch first, then assign. Returns the names of the
    fields that were supplied.

    Cost rule: touching estimated_cost or depreciation recomputes final_cost
    unless final_cost is supplied in the same patch, in which case the
    supplied value is kept as an override.
    """
    values = {k: v for k, v in patch.items() if v is not None}
    unknown = sorted(set(values) - set(PATCHABLE_FIELDS))
    if unknown:
        raise ValidationError(f"unknown item field(s): {', '.join(unknown)}", field=unknown[0])

    status = _enum(values["status"], ITEM_STATUSES, field="status") if "status" in values else None
    decision = (
        _enum(values["liability_decision"], LIABILITY_DECISIONS, field="liability_decision")
        if "liability_decision" in values
        else None
    )
    est = require_money(values["estimated_cost"], field="estimated_cost") if "estimated_cost" in values else None
    dep = require_money(values["depreciation"], field="depreciation") if "depreciation" in values else None
    override = require_money(values["final_cost"], field="final_cost") if "final_cost" in values else None

    if status is not None:
        item.status = status
    if decision is not None:
        item.liability_decision = decision

    if est is not None:
        item.estimated_cost = est
    if dep is not None:
        item.depreciation = dep
    if override is not None:
        item.final_cost = override
    elif est is not None or dep is not None:
        item.final_cost = compute_final_cost(item.estimated_cost, item.depreciation)

    if "liability_notes" in values:
        item.liability_notes = _clean_text(values["liability_notes"])

    if "notes_comparison" in values:
        data = item.comparison_data
        data["notes_comparison"] = _clean_text(values["notes_comparison"])
        item.comparison_data_json = json.dumps(data, ensure_ascii=False)

    return sorted(values)


def update_item(
    db: Session,
    *,
    principal: Principal,
    item_id: int,
    patch: dict[str, Any],
) -> tuple[ComparisonReport, ComparisonReportItem]:
    if not principal.is_operator:
        raise Forbidden(f"only operators can edit comparison items (caller is {principal.role})", field="role")

    item = must_get_item(db, org_id=principal.org_id, item_id=item_id)
    report = must_get_report(db, org_id=principal.org_id, report_id=item.comparison_report_id, for_update=True)
    ensure_editable(report.status, what="comparison items")

    before = item_state(item)
    fields = apply_item_patch(item, patch)
    item.updated_at = _utcnow()
    db.add(item)

    total = recompute_report_total(db, report)

    emit_audit_event(
        db,
        principal=principal,
        action="comparison_item.update",
        entity_type="ComparisonReportItem",
        entity_id=item.id,
        before=before,
        after=item_state(item),
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type="comparison_item.updated",
        property_id=report.property_id,
        payload={"report_id": report.id, "item_id": item.id, "fields": fields, "total_estimated_cost": total},
    )
    log.info(
        "comparison item updated",
        extra={"org_id": principal.org_id, "report_id": report.id, "item_id": item.id},
    )
    return report, item


def dispute_item(
    db: Session,
    *,
    principal: Principal,
    report_id: int,
    item_id: int,
    reason: str,
) -> tuple[ComparisonReport, ComparisonReportItem]:
    """Tenant contests one item; the reason is also posted to the public thread."""
    report = must_get_report(db, org_id=principal.org_id, report_id=report_id, for_update=True)
    ensure_can_view_report(db, principal, report)
    if not principal.is_tenant:
        raise Forbidden(f"only the tenant can dispute an item (caller is {principal.role})", field="role")

    text = (reason or "").strip()
    if not text:
        raise ValidationError("a dispute needs a reason", field="reason")

    item = db.get(ComparisonReportItem, int(item_id))
    if item is None or item.comparison_report_id != report.id:
        raise NotFound(f"comparison item {item_id} not found on report {report.id}", field="item_id")

    if report.status in LOCKED_STATUSES:
        raise Forbidden(f"items cannot be disputed while the report is {report.status}", field="status")
    if report.tenant_signature:
        raise Forbidden("items cannot be disputed after the tenant has signed", field="tenant_signature")
    if item.status in CLOSED_ITEM_STATUSES:
        raise Conflict(f"item is already {item.status}", field="status")

    before = item_state(item)
    now = _utcnow()
    item.status = "disputed"
    item.dispute_reason = text
    item.disputed_at = now
    item.updated_at = now
    db.add(item)

    label = " / ".join(x for x in (item.section_ref, item.item_ref, item.field_key) if x)
    add_comment(
        db,
        principal=principal,
        report=report,
        content=f"Disputed {label}: {text}",
        is_internal=False,
        item_id=item.id,
    )

    recompute_report_total(db, report)

    emit_audit_event(
        db,
        principal=principal,
        action="comparison_item.dispute",
        entity_type="ComparisonReportItem",
        entity_id=item.id,
        before=before,
        after=item_state(item),
    )
    emit_workflow_event(
        db,
        principal=principal,
        event_type="comparison_item.disputed",
        property_id=report.property_id,
        payload={"report_id": report.id, "item_id": item.id},
    )
    log.info("comparison item disputed", extra={"report_id": report.id, "item_id": item.id})
    return report, item
