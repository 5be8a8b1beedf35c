# liability_engine/services/comments.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.events import emit_workflow_event
from ..errors import Forbidden, NotFound, ValidationError
from ..models import ComparisonComment, ComparisonReport, ComparisonReportItem

log = logging.getLogger(__name__)


def add_comment(
    db: Session,
    *,
    principal: Principal,
    report: ComparisonReport,
    content: str,
    is_internal: bool = False,
    item_id: Optional[int] = None,
) -> ComparisonComment:
    """
    Append to a report's thread. The thread stays open in every report
    status, filed included. Only staff may post internal notes.
    """
    if not (principal.is_operator or principal.is_tenant):
        raise Forbidden(f"role {principal.role} cannot comment on comparison reports", field="role")

    body = (content or "").strip()
    if not body:
        raise ValidationError("comment content is empty", field="content")

    if is_internal and not principal.is_operator:
        raise Forbidden("only operators can post internal comments", field="is_internal")

    if item_id is not None:
        item = db.get(ComparisonReportItem, int(item_id))
        if item is None or item.comparison_report_id != report.id:
            raise NotFound(f"comparison item {item_id} not found on report {report.id}", field="item_id")

    row = ComparisonComment(
        comparison_report_id=report.id,
        comparison_report_item_id=int(item_id) if item_id is not None else None,
        user_id=principal.user_id,
        author_name=principal.display_name or principal.email,
        author_role=principal.role,
        content=body,
        is_internal=bool(is_internal),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()

    emit_workflow_event(
        db,
        principal=principal,
        event_type="comparison_comment.created",
        property_id=report.property_id,
        payload={"report_id": report.id, "comment_id": row.id, "is_internal": row.is_internal},
    )
    log.info("comparison comment added", extra={"report_id": report.id, "user_id": principal.user_id})
    return row


def list_comments(db: Session, *, principal: Principal, report: ComparisonReport) -> list[ComparisonComment]:
    """Oldest first. Tenants never see internal comments."""
    q = select(ComparisonComment).where(ComparisonComment.comparison_report_id == report.id)
    if not principal.is_operator and principal.role != "analyst":
        q = q.where(ComparisonComment.is_internal.is_(False))
    q = q.order_by(ComparisonComment.created_at.asc(), ComparisonComment.id.asc())
    return list(db.scalars(q).all())
