# liability_engine/domain/report_lifecycle.py
from __future__ import annotations

from typing import Optional

from ..errors import Conflict, Forbidden, ValidationError

# -----------------------------------------------------------------------------
# Comparison report lifecycle
# -----------------------------------------------------------------------------
#   draft -> under_review -> awaiting_signatures -> signed -> filed
#
# Operators move a report forward explicitly (skipping steps is allowed).
# "signed" is never requested: it is derived when both signature slots are
# filled. "filed" is terminal and only reachable from "signed".
# -----------------------------------------------------------------------------

STATUS_ORDER = ["draft", "under_review", "awaiting_signatures", "signed", "filed"]

EDITABLE_STATUSES = frozenset({"draft", "under_review", "awaiting_signatures"})
OPERATOR_SIGNABLE_STATUSES = frozenset({"under_review", "awaiting_signatures"})
LOCKED_STATUSES = frozenset({"signed", "filed"})

ITEM_STATUSES = ("pending", "reviewed", "disputed", "resolved", "waived")


def status_rank(status: str) -> int:
    try:
        return STATUS_ORDER.index(status)
    except ValueError:
        return -1


def normalize_status(raw: Optional[str], *, field: str = "status") -> str:
    s = (raw or "").strip().lower()
    if s not in STATUS_ORDER:
        raise ValidationError(
            f"{field} must be one of {', '.join(STATUS_ORDER)} (got {raw!r})",
            field=field,
        )
    return s


def is_editable(status: str) -> bool:
    return status in EDITABLE_STATUSES


def ensure_editable(status: str, *, what: str = "report") -> None:
    if not is_editable(status):
        raise Forbidden(f"{what} cannot be changed while the report is {status}", field="status")


def check_transition(current: str, target: str) -> None:
    """Raise unless an operator may move a report from current to target."""
    if current == target:
        raise Conflict(f"report is already {current}", field="status")
    if current == "filed":
        raise Forbidden("report is filed; no further status changes", field="status")
    if target == "signed":
        raise Forbidden("signed is set automatically once both parties have signed", field="status")
    if status_rank(target) < status_rank(current):
        raise Forbidden(f"cannot move report back from {current} to {target}", field="status")
    if target == "filed" and current != "signed":
        raise Forbidden(f"only a signed report can be filed (report is {current})", field="status")


def derived_status(current: str, *, operator_signed: bool, tenant_signed: bool) -> str:
    """Apply the one automatic transition: both signatures present -> signed."""
    if operator_signed and tenant_signed and current in EDITABLE_STATUSES:
        return "signed"
    return current
