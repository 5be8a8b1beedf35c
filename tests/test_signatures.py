# tests/test_signatures.py
from __future__ import annotations

from conftest import OPERATOR, TENANT, fully_signed, generate_report, headers, set_status


def _sign(client, report_id, signature, h):
    return client.post(f"/api/comparison-reports/{report_id}/sign", json={"signature": signature}, headers=h)


def test_operator_cannot_sign_a_draft(client, seed):
    rep = generate_report(client, seed)
    r = _sign(client, rep["id"], "Olivia O.", OPERATOR)
    assert r.status_code == 403
    assert r.json()["detail"]["field"] == "status"


def test_tenant_signs_after_operator_only(client, seed):
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "under_review")

    r = _sign(client, rep["id"], "Tom T.", TENANT)
    assert r.status_code == 403
    assert r.json()["detail"]["field"] == "operator_signature"


def test_both_signatures_derive_signed(client, seed):
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "under_review")

    r = _sign(client, rep["id"], "Olivia O.", OPERATOR)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "under_review"
    assert body["operator_signature"] == "Olivia O."
    assert body["operator_signed_at"] is not None

    r = _sign(client, rep["id"], "Tom T.", TENANT)
    assert r.status_code == 200
    assert r.json()["status"] == "signed"

    again = client.get(f"/api/comparison-reports/{rep['id']}", headers=OPERATOR).json()
    assert again["status"] == "signed"
    assert again["editable"] is False


def test_second_signature_on_same_slot_conflicts(client, seed):
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "awaiting_signatures")

    first = _sign(client, rep["id"], "Olivia O.", OPERATOR).json()

    r = _sign(client, rep["id"], "Someone Else", OPERATOR)
    assert r.status_code == 409
    assert r.json()["detail"]["kind"] == "conflict"

    after = client.get(f"/api/comparison-reports/{rep['id']}", headers=OPERATOR).json()
    assert after["operator_signature"] == "Olivia O."
    assert after["operator_signed_at"] == first["operator_signed_at"]


def test_empty_signature_is_rejected(client, seed):
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "under_review")
    assert _sign(client, rep["id"], "  ", OPERATOR).status_code == 422


def test_signed_report_locks_items(client, seed):
    rep = fully_signed(client, seed)
    r = client.patch(f"/api/comparison-items/{rep['items'][0]['id']}", json={"estimated_cost": "5"}, headers=OPERATOR)
    assert r.status_code == 403


def test_filed_report_is_immutable_but_thread_stays_open(client, seed):
    rep = fully_signed(client, seed)
    rid = rep["id"]

    filed = set_status(client, rid, "filed")
    assert filed["status"] == "filed"
    assert filed["filed_at"] is not None

    item_id = rep["items"][0]["id"]
    assert client.patch(f"/api/comparison-items/{item_id}", json={"depreciation": "1"}, headers=OPERATOR).status_code == 403
    assert _sign(client, rid, "Olivia again", OPERATOR).status_code == 403
    assert _sign(client, rid, "Tom again", TENANT).status_code == 403
    assert (
        client.post(
            f"/api/comparison-reports/{rid}/items/{item_id}/dispute", json={"reason": "late"}, headers=TENANT
        ).status_code
        == 403
    )

    r = client.post(f"/api/comparison-reports/{rid}/comments", json={"content": "Deposit released"}, headers=OPERATOR)
    assert r.status_code == 200
    r = client.post(f"/api/comparison-reports/{rid}/comments", json={"content": "Thanks"}, headers=TENANT)
    assert r.status_code == 200

    r = client.patch(f"/api/comparison-reports/{rid}", json={"status": "filed"}, headers=OPERATOR)
    assert r.status_code == 409


def test_other_tenant_learns_nothing_about_signature_slots(client, seed):
    rep = fully_signed(client, seed)
    stranger = headers("someone.else@example.test", "tenant")

    r = _sign(client, rep["id"], "Not Tom", stranger)
    assert r.status_code == 404
    assert r.json()["detail"]["kind"] == "not_found"
    assert "signed" not in r.json()["detail"]["message"]
