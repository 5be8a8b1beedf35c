# tests/test_tenant_approval.py
from __future__ import annotations

from datetime import datetime, timedelta

from conftest import OPERATOR, TENANT, headers

from liability_engine.db import SessionLocal
from liability_engine.models import Inspection, Organization
from liability_engine.services.tenant_approval import reconcile_lapsed_approvals


def _set_review(inspection_id: int, *, status: str | None, deadline: datetime | None) -> None:
    db = SessionLocal()
    try:
        insp = db.get(Inspection, inspection_id)
        insp.tenant_approval_status = status
        insp.tenant_approval_deadline = deadline
        db.commit()
    finally:
        db.close()


def _stored(inspection_id: int) -> Inspection:
    db = SessionLocal()
    try:
        return db.get(Inspection, inspection_id)
    finally:
        db.close()


def _url(seed, suffix: str) -> str:
    return f"/api/inspections/{seed.check_in_id}/{suffix}"


def test_lapsed_deadline_reads_approved_and_blocks_dispute(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() - timedelta(hours=1))

    r = client.get(_url(seed, "tenant-approval"), headers=TENANT)
    assert r.status_code == 200
    body = r.json()
    assert body["effective_status"] == "approved"
    assert body["stored_status"] == "pending"
    assert body["time_remaining"] == "Expired"
    assert body["expired"] is True
    assert body["can_respond"] is False

    r = client.post(_url(seed, "tenant-dispute"), json={"comments": "Oven was dirty already"}, headers=TENANT)
    assert r.status_code == 403

    # reads never materialize the lapse
    assert _stored(seed.check_in_id).tenant_approval_status == "pending"


def test_open_window_keeps_mutations_available(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() + timedelta(days=2, hours=1))

    body = client.get(_url(seed, "tenant-approval"), headers=TENANT).json()
    assert body["effective_status"] == "pending"
    assert body["time_remaining"] == "2 days remaining"
    assert body["can_respond"] is True

    r = client.patch(_url(seed, "tenant-comments"), json={"comments": "Will check the garden list"}, headers=TENANT)
    assert r.status_code == 200
    assert r.json()["comments"] == "Will check the garden list"
    assert r.json()["effective_status"] == "pending"


def test_empty_dispute_is_rejected_and_status_unchanged(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() + timedelta(days=1))

    r = client.post(_url(seed, "tenant-dispute"), json={"comments": "   "}, headers=TENANT)
    assert r.status_code == 422
    assert r.json()["detail"]["field"] == "comments"

    assert _stored(seed.check_in_id).tenant_approval_status == "pending"


def test_dispute_with_comments_is_terminal(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() + timedelta(days=1))

    r = client.post(_url(seed, "tenant-dispute"), json={"comments": "Carpet was stained at move-in"}, headers=TENANT)
    assert r.status_code == 200
    assert r.json()["effective_status"] == "disputed"

    assert client.post(_url(seed, "tenant-approve"), json={}, headers=TENANT).status_code == 403
    assert client.patch(_url(seed, "tenant-comments"), json={"comments": "x"}, headers=TENANT).status_code == 403


def test_approve_accepts_optional_comments(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() + timedelta(hours=3))

    r = client.post(_url(seed, "tenant-approve"), json={}, headers=TENANT)
    assert r.status_code == 200
    assert r.json()["effective_status"] == "approved"
    assert r.json()["auto_approved"] is False


def test_only_the_inspection_tenant_may_respond(client, seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() + timedelta(days=1))

    assert client.post(_url(seed, "tenant-approve"), json={}, headers=OPERATOR).status_code == 403

    stranger = headers("someone.else@example.test", "tenant")
    assert client.post(_url(seed, "tenant-approve"), json={}, headers=stranger).status_code == 404


def test_operator_opens_review_with_org_period(client, seed):
    db = SessionLocal()
    try:
        db.get(Organization, seed.org_id).check_in_approval_period_days = 7
        db.commit()
    finally:
        db.close()

    before = datetime.utcnow()
    r = client.post(_url(seed, "tenant-approval/open"), json={}, headers=OPERATOR)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["stored_status"] == "pending"
    assert body["time_remaining"] in ("7 days remaining", "6 days remaining")

    deadline = _stored(seed.check_in_id).tenant_approval_deadline
    assert before + timedelta(days=7) <= deadline <= datetime.utcnow() + timedelta(days=7)

    assert client.post(_url(seed, "tenant-approval/open"), json={}, headers=TENANT).status_code == 403

    r = client.post(f"/api/inspections/{seed.check_out_id}/tenant-approval/open", json={}, headers=OPERATOR)
    assert r.status_code == 422


def test_reconcile_materializes_lapsed_reviews(seed):
    _set_review(seed.check_in_id, status="pending", deadline=datetime.utcnow() - timedelta(minutes=5))

    db = SessionLocal()
    try:
        changed = reconcile_lapsed_approvals(db)
        db.commit()
        assert changed == [seed.check_in_id]
        assert reconcile_lapsed_approvals(db) == []
    finally:
        db.close()

    insp = _stored(seed.check_in_id)
    assert insp.tenant_approval_status == "approved"
    assert insp.tenant_auto_approved is True
