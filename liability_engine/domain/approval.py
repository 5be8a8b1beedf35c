# liability_engine/domain/approval.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

# Tenant approval of a check-in inspection:
#   pending -> approved | disputed, terminal once it leaves pending.
# A pending record whose deadline has passed reads as approved. Nothing
# schedules that transition; every read derives it from (status, deadline, now).

PENDING = "pending"
APPROVED = "approved"
DISPUTED = "disputed"

APPROVAL_STATUSES = (PENDING, APPROVED, DISPUTED)


def stored_status(raw: Optional[str]) -> str:
    s = (raw or "").strip().lower()
    return s if s in APPROVAL_STATUSES else PENDING


def is_lapsed(deadline: Optional[datetime], now: datetime) -> bool:
    if deadline is None:
        return False
    return (deadline - now) <= timedelta(0)


def effective_status(raw: Optional[str], deadline: Optional[datetime], now: datetime) -> str:
    st = stored_status(raw)
    if st == PENDING and is_lapsed(deadline, now):
        return APPROVED
    return st


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} remaining"


def time_remaining_text(deadline: Optional[datetime], now: datetime) -> Optional[str]:
    """
    Largest whole unit among days/hours/minutes, or "Expired".
    None when there is no deadline.
    """
    if deadline is None:
        return None
    remaining = deadline - now
    if remaining <= timedelta(0):
        return "Expired"

    secs = int(remaining.total_seconds())
    days = secs // 86400
    if days >= 1:
        return _plural(days, "day")
    hours = secs // 3600
    if hours >= 1:
        return _plural(hours, "hour")
    return _plural(secs // 60, "minute")


def deadline_from(start: datetime, period_days: int) -> datetime:
    return start + timedelta(days=max(0, int(period_days)))


@dataclass(frozen=True)
class ApprovalView:
    stored_status: str
    effective_status: str
    deadline: Optional[datetime]
    time_remaining: Optional[str]
    expired: bool
    comments: Optional[str]
    auto_approved: bool

    @property
    def is_open(self) -> bool:
        return self.effective_status == PENDING


def approval_view(
    *,
    status: Optional[str],
    deadline: Optional[datetime],
    comments: Optional[str],
    auto_approved: bool,
    now: datetime,
) -> ApprovalView:
    eff = effective_status(status, deadline, now)
    return ApprovalView(
        stored_status=stored_status(status),
        effective_status=eff,
        deadline=deadline,
        time_remaining=time_remaining_text(deadline, now),
        expired=is_lapsed(deadline, now),
        comments=comments,
        auto_approved=bool(auto_approved) or (stored_status(status) == PENDING and eff == APPROVED),
    )
