# liability_engine/services/gateway.py
"""
Export / notification pass-throughs.

The core only gates on role and assembles the report snapshot; rendering
and delivery belong to the external collaborators.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..auth import Principal
from ..clients.document_renderer import DocumentRendererClient
from ..clients.notifier import Attachment, NotifierClient, OutboundEmail
from ..config import settings
from ..domain.events import emit_workflow_event
from ..errors import Forbidden, UpstreamFailure
from ..models import ComparisonReport, Tenant
from .comparison_reports import get_report_for, report_snapshot

log = logging.getLogger(__name__)


def _require_operator(principal: Principal, what: str) -> None:
    if not principal.is_operator:
        raise Forbidden(f"only operators can {what} (caller is {principal.role})", field="role")


def pdf_filename(report: ComparisonReport) -> str:
    return f"comparison-report-{report.id}.pdf"


def render_report_document(
    db: Session,
    *,
    principal: Principal,
    report_id: int,
    renderer: DocumentRendererClient,
) -> tuple[ComparisonReport, bytes]:
    _require_operator(principal, "export comparison reports")
    report = get_report_for(db, principal=principal, report_id=report_id)
    pdf = renderer.render_comparison_report(report_snapshot(db, report))
    log.info("comparison report rendered", extra={"report_id": report.id, "org_id": principal.org_id})
    return report, pdf


def notify_finance(
    db: Session,
    *,
    principal: Principal,
    report_id: int,
    include_attachment: bool,
    notifier: NotifierClient,
    renderer: Optional[DocumentRendererClient] = None,
) -> dict[str, str]:
    _require_operator(principal, "send comparison reports to finance")
    report = get_report_for(db, principal=principal, report_id=report_id)

    to = (settings.finance_email or "").strip()
    if not to:
        raise UpstreamFailure("finance recipient is not configured", field="finance_email")

    snapshot = report_snapshot(db, report)
    attachments: list[Attachment] = []
    if include_attachment:
        if renderer is None:
            raise UpstreamFailure("document renderer is not available", field="document_renderer_url")
        attachments.append(Attachment(filename=pdf_filename(report), content=renderer.render_comparison_report(snapshot)))

    address = (snapshot.get("property") or {}).get("address") or f"property {report.property_id}"
    text = (
        f"Comparison report #{report.id} for {address}\n"
        f"Status: {snapshot['status']}\n"
        f"Total estimated cost: {snapshot['total_estimated_cost']}\n"
        f"Tenant share: {snapshot['liability_breakdown']['tenant']}\n"
    )
    msg_id = notifier.send(
        OutboundEmail(
            to=to,
            subject=f"End of tenancy liability: {address}",
            text=text,
            attachments=attachments,
            tags={"report_id": str(report.id), "kind": "finance"},
        )
    )

    emit_workflow_event(
        db,
        principal=principal,
        event_type="comparison_report.sent_to_finance",
        property_id=report.property_id,
        payload={"report_id": report.id, "message_id": msg_id, "with_pdf": bool(include_attachment)},
    )
    log.info("comparison report sent to finance", extra={"report_id": report.id, "org_id": principal.org_id})
    return {"message": f"Report #{report.id} sent to finance ({to})" + (" with PDF" if include_attachment else "")}


def notify_tenant_ready_best_effort(db: Session, *, report: ComparisonReport, notifier: NotifierClient) -> Optional[str]:
    """
    Tell the tenant the report is waiting for their signature. Runs after the
    status change has been committed; a delivery failure is logged and
    returns None.
    """
    tenant = db.get(Tenant, report.tenant_id) if report.tenant_id else None
    if tenant is None or not tenant.email:
        return None

    email = OutboundEmail(
        to=tenant.email,
        subject="Your end of tenancy report is ready to sign",
        text=(
            f"Hello {tenant.full_name},\n\n"
            f"The comparison report #{report.id} for your tenancy is ready for your review and signature.\n"
        ),
        tags={"report_id": str(report.id), "kind": "tenant_ready"},
    )
    try:
        return notifier.send(email)
    except UpstreamFailure:
        log.warning("tenant notification failed", extra={"report_id": report.id}, exc_info=True)
        return None
