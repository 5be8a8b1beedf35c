# tests/test_approval_clock.py
from __future__ import annotations

from datetime import datetime, timedelta

from liability_engine.domain.approval import approval_view, effective_status, time_remaining_text

NOW = datetime(2026, 9, 1, 12, 0, 0)


def test_time_remaining_uses_largest_whole_unit():
    assert time_remaining_text(NOW + timedelta(days=2, hours=3), NOW) == "2 days remaining"
    assert time_remaining_text(NOW + timedelta(days=1), NOW) == "1 day remaining"
    assert time_remaining_text(NOW + timedelta(hours=3, minutes=5), NOW) == "3 hours remaining"
    assert time_remaining_text(NOW + timedelta(hours=1), NOW) == "1 hour remaining"
    assert time_remaining_text(NOW + timedelta(minutes=12, seconds=30), NOW) == "12 minutes remaining"


def test_time_remaining_expired_and_missing():
    assert time_remaining_text(NOW, NOW) == "Expired"
    assert time_remaining_text(NOW - timedelta(hours=1), NOW) == "Expired"
    assert time_remaining_text(None, NOW) is None


def test_lapsed_pending_reads_as_approved():
    assert effective_status("pending", NOW - timedelta(hours=1), NOW) == "approved"
    # remaining == 0 already counts as lapsed
    assert effective_status("pending", NOW, NOW) == "approved"
    assert effective_status("pending", NOW + timedelta(hours=1), NOW) == "pending"


def test_decided_states_ignore_the_deadline():
    assert effective_status("disputed", NOW - timedelta(days=3), NOW) == "disputed"
    assert effective_status("approved", NOW + timedelta(days=3), NOW) == "approved"


def test_view_flags_auto_approval_without_changing_stored_status():
    v = approval_view(
        status="pending",
        deadline=NOW - timedelta(minutes=1),
        comments=None,
        auto_approved=False,
        now=NOW,
    )
    assert v.stored_status == "pending"
    assert v.effective_status == "approved"
    assert v.expired is True
    assert v.auto_approved is True
    assert v.time_remaining == "Expired"
    assert not v.is_open
