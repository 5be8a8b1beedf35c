# events.py - audit + workflow rows written inside the caller's transaction (flush-only, never commit).
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent, WorkflowEvent

if TYPE_CHECKING:
    from ..auth import Principal


def _default(v: Any) -> Any:
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, datetime):
        return v.isoformat()
    return str(v)


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, ensure_ascii=False, default=_default)


def emit_workflow_event(
    db: Session,
    *,
    principal: "Principal",
    event_type: str,
    property_id: Optional[int] = None,
    payload: Optional[dict[str, Any]] = None,
) -> WorkflowEvent:
    if not event_type:
        raise ValueError("event_type required")

    ev = WorkflowEvent(
        org_id=int(principal.org_id),
        property_id=int(property_id) if property_id is not None else None,
        actor_user_id=int(principal.user_id),
        event_type=str(event_type),
        payload_json=_dumps(payload or {}),
        created_at=datetime.utcnow(),
    )
    db.add(ev)
    db.flush()
    return ev


def emit_audit_event(
    db: Session,
    *,
    principal: "Principal",
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    ae = AuditEvent(
        org_id=int(principal.org_id),
        actor_user_id=int(principal.user_id),
        action=str(action),
        entity_type=str(entity_type),
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(ae)
    db.flush()
    return ae
