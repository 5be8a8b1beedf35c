# liability_engine/services/ownership.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..errors import NotFound
from ..models import (
    ComparisonReport,
    ComparisonReportItem,
    Inspection,
    Property,
    Tenant,
)


def must_get_property(db: Session, *, org_id: int, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == property_id, Property.org_id == org_id))
    if not row:
        raise NotFound(f"property {property_id} not found", field="property_id")
    return row


def must_get_tenant(db: Session, *, org_id: int, tenant_id: int) -> Tenant:
    row = db.scalar(select(Tenant).where(Tenant.id == tenant_id, Tenant.org_id == org_id))
    if not row:
        raise NotFound(f"tenant {tenant_id} not found", field="tenant_id")
    return row


def must_get_inspection(db: Session, *, org_id: int, inspection_id: int, field: str = "inspection_id") -> Inspection:
    row = db.scalar(select(Inspection).where(Inspection.id == inspection_id, Inspection.org_id == org_id))
    if not row:
        raise NotFound(f"inspection {inspection_id} not found", field=field)
    return row


def must_get_report(db: Session, *, org_id: int, report_id: int, for_update: bool = False) -> ComparisonReport:
    """
    for_update=True takes a row lock on the report (SELECT ... FOR UPDATE on
    Postgres, a no-op on SQLite) so concurrent item edits serialize on the
    aggregate while they recompute its total.
    """
    q = select(ComparisonReport).where(ComparisonReport.id == report_id, ComparisonReport.org_id == org_id)
    if for_update:
        q = q.with_for_update()
    row = db.scalar(q)
    if not row:
        raise NotFound(f"comparison report {report_id} not found", field="report_id")
    return row


def must_get_item(db: Session, *, org_id: int, item_id: int) -> ComparisonReportItem:
    row = db.scalar(
        select(ComparisonReportItem)
        .join(ComparisonReport, ComparisonReport.id == ComparisonReportItem.comparison_report_id)
        .where(ComparisonReportItem.id == item_id, ComparisonReport.org_id == org_id)
    )
    if not row:
        raise NotFound(f"comparison item {item_id} not found", field="item_id")
    return row


def tenant_for_principal(db: Session, p: Principal, tenant_id: Optional[int]) -> Optional[Tenant]:
    """The tenant record behind a tenant-role caller, matched on email."""
    if tenant_id is None:
        return None
    t = db.scalar(select(Tenant).where(Tenant.id == tenant_id, Tenant.org_id == p.org_id))
    if t is None or (t.email or "").strip().lower() != p.email.strip().lower():
        return None
    return t


def ensure_can_view_report(db: Session, p: Principal, report: ComparisonReport) -> None:
    if p.is_tenant and tenant_for_principal(db, p, report.tenant_id) is None:
        # same answer as a missing report: tenants cannot probe other tenancies
        raise NotFound(f"comparison report {report.id} not found", field="report_id")


def ensure_can_view_inspection(db: Session, p: Principal, inspection: Inspection) -> None:
    if p.is_tenant and tenant_for_principal(db, p, inspection.tenant_id) is None:
        raise NotFound(f"inspection {inspection.id} not found", field="inspection_id")
