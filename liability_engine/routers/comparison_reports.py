# liability_engine/routers/comparison_reports.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..clients.document_renderer import DocumentRendererClient, get_document_renderer
from ..clients.notifier import NotifierClient, get_notifier
from ..db import get_db
from ..schemas import (
    CommentCreate,
    CommentOut,
    ComparisonItemOut,
    ComparisonItemPatch,
    ComparisonReportCreate,
    ComparisonReportOut,
    ComparisonReportSummaryOut,
    FinanceSendIn,
    FinanceSendOut,
    ItemDisputeIn,
    ReportStatusUpdate,
    SignatureIn,
)
from ..services.comments import add_comment, list_comments
from ..services.comparison_items import dispute_item, list_items, update_item
from ..services.comparison_reports import (
    change_status,
    create_report,
    get_report_for,
    list_reports,
    report_view,
    sign_report,
)
from ..services.gateway import notify_finance, notify_tenant_ready_best_effort, pdf_filename, render_report_document
from ..services.inspection_source import InspectionEntrySource, get_inspection_source

router = APIRouter(prefix="/comparison-reports", tags=["comparison-reports"])
items_router = APIRouter(prefix="/comparison-items", tags=["comparison-reports"])


@router.post("", response_model=ComparisonReportOut)
def generate_report(
    payload: ComparisonReportCreate,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    source: InspectionEntrySource = Depends(get_inspection_source),
):
    report = create_report(db, principal=p, payload=payload, source=source)
    db.commit()
    return report_view(db, principal=p, report=report)


@router.get("", response_model=list[ComparisonReportSummaryOut])
def list_comparison_reports(
    property_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_reports(db, principal=p, property_id=property_id, status=status, limit=limit)


@router.get("/{report_id}", response_model=ComparisonReportOut)
def get_comparison_report(report_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    report = get_report_for(db, principal=p, report_id=report_id)
    return report_view(db, principal=p, report=report)


@router.get("/{report_id}/items", response_model=list[ComparisonItemOut])
def get_comparison_items(report_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    report = get_report_for(db, principal=p, report_id=report_id)
    return list_items(db, report_id=report.id)


@router.patch("/{report_id}", response_model=ComparisonReportOut)
def update_report_status(
    report_id: int,
    payload: ReportStatusUpdate,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: NotifierClient = Depends(get_notifier),
):
    report = change_status(db, principal=p, report_id=report_id, target=payload.status)
    db.commit()

    # secondary side effect, after the status change is durable
    if report.status == "awaiting_signatures":
        notify_tenant_ready_best_effort(db, report=report, notifier=notifier)

    return report_view(db, principal=p, report=report)


@router.post("/{report_id}/sign", response_model=ComparisonReportOut)
def sign_comparison_report(
    report_id: int,
    payload: SignatureIn,
    request: Request,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    ip = request.client.host if request.client else None
    report = sign_report(db, principal=p, report_id=report_id, signature=payload.signature, ip_address=ip)
    db.commit()
    return report_view(db, principal=p, report=report)


@router.post("/{report_id}/items/{item_id}/dispute", response_model=ComparisonReportOut)
def dispute_comparison_item(
    report_id: int,
    item_id: int,
    payload: ItemDisputeIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    report, _ = dispute_item(db, principal=p, report_id=report_id, item_id=item_id, reason=payload.reason)
    db.commit()
    return report_view(db, principal=p, report=report)


# -------------------- Discussion --------------------


@router.get("/{report_id}/comments", response_model=list[CommentOut])
def get_comments(report_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    report = get_report_for(db, principal=p, report_id=report_id)
    return list_comments(db, principal=p, report=report)


@router.post("/{report_id}/comments", response_model=CommentOut)
def post_comment(
    report_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    report = get_report_for(db, principal=p, report_id=report_id)
    row = add_comment(
        db,
        principal=p,
        report=report,
        content=payload.content,
        is_internal=payload.is_internal,
        item_id=payload.item_id,
    )
    db.commit()
    return row


# -------------------- Export / notification --------------------


@router.post("/{report_id}/pdf")
def export_pdf(
    report_id: int,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    renderer: DocumentRendererClient = Depends(get_document_renderer),
):
    report, pdf = render_report_document(db, principal=p, report_id=report_id, renderer=renderer)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf_filename(report)}"'},
    )


@router.post("/{report_id}/send-to-finance", response_model=FinanceSendOut)
def send_to_finance(
    report_id: int,
    payload: FinanceSendIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: NotifierClient = Depends(get_notifier),
    renderer: DocumentRendererClient = Depends(get_document_renderer),
):
    out = notify_finance(
        db,
        principal=p,
        report_id=report_id,
        include_attachment=payload.include_pdf,
        notifier=notifier,
        renderer=renderer,
    )
    db.commit()
    return out


# -------------------- Items --------------------


@items_router.patch("/{item_id}", response_model=ComparisonReportOut)
def patch_comparison_item(
    item_id: int,
    payload: ComparisonItemPatch,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    report, _ = update_item(db, principal=p, item_id=item_id, patch=payload.model_dump(exclude_unset=True))
    db.commit()
    return report_view(db, principal=p, report=report)
