# tests/test_comparison_report_generation.py
from __future__ import annotations

from conftest import ANALYST, OPERATOR, TENANT, generate_report, headers, set_status


def test_generation_creates_one_item_per_difference(client, seed):
    rep = generate_report(client, seed)

    assert rep["status"] == "draft"
    assert rep["tenant_id"] == seed.tenant_id
    assert rep["total_estimated_cost"] == "0.00"
    assert rep["item_count"] == 3
    assert rep["editable"] is True

    keys = [(i["section_ref"], i["item_ref"], i["field_key"]) for i in rep["items"]]
    assert keys == [
        ("Kitchen", "Oven", "cleanliness"),
        ("Lounge", "Carpet", "condition"),
        ("Bathroom", "Mirror", "condition"),
    ]

    carpet = rep["items"][1]
    assert carpet["comparison_data"]["check_in_photos"] == ["https://img.test/in/carpet.jpg"]
    assert carpet["comparison_data"]["check_out_photos"] == ["https://img.test/out/carpet.jpg"]
    assert carpet["comparison_data"]["check_out_note"] == "Red wine stain by window"
    assert carpet["liability_decision"] == "tenant"
    assert carpet["status"] == "pending"


def test_generation_rejects_swapped_inspections(client, seed):
    r = client.post(
        "/api/comparison-reports",
        json={
            "property_id": seed.property_id,
            "check_in_inspection_id": seed.check_out_id,
            "check_out_inspection_id": seed.check_in_id,
        },
        headers=OPERATOR,
    )
    assert r.status_code == 422
    assert r.json()["detail"]["kind"] == "validation_error"
    assert r.json()["detail"]["field"] == "check_in_inspection_id"


def test_generation_is_operator_only(client, seed):
    r = client.post(
        "/api/comparison-reports",
        json={
            "property_id": seed.property_id,
            "check_in_inspection_id": seed.check_in_id,
            "check_out_inspection_id": seed.check_out_id,
        },
        headers=TENANT,
    )
    assert r.status_code == 403


def test_unknown_report_is_not_found(client, seed):
    r = client.get("/api/comparison-reports/9999", headers=OPERATOR)
    assert r.status_code == 404
    assert r.json()["detail"]["kind"] == "not_found"


def test_repeated_reads_are_identical(client, seed):
    rep = generate_report(client, seed)
    item_id = rep["items"][0]["id"]
    client.patch(f"/api/comparison-items/{item_id}", json={"estimated_cost": "42.50"}, headers=OPERATOR)

    first = client.get(f"/api/comparison-reports/{rep['id']}", headers=OPERATOR).json()
    second = client.get(f"/api/comparison-reports/{rep['id']}", headers=OPERATOR).json()
    assert first == second
    assert first["total_estimated_cost"] == "42.50"


def test_listing_scopes_tenants_to_their_own_reports(client, seed):
    rep = generate_report(client, seed)

    r = client.get("/api/comparison-reports", headers=OPERATOR)
    assert [x["id"] for x in r.json()] == [rep["id"]]

    r = client.get("/api/comparison-reports", headers=TENANT)
    assert [x["id"] for x in r.json()] == [rep["id"]]

    stranger = headers("someone.else@example.test", "tenant")
    assert client.get("/api/comparison-reports", headers=stranger).json() == []
    assert client.get(f"/api/comparison-reports/{rep['id']}", headers=stranger).status_code == 404

    r = client.get("/api/comparison-reports", params={"status": "under_review"}, headers=OPERATOR)
    assert r.json() == []


def test_analyst_reads_but_cannot_change(client, seed):
    rep = generate_report(client, seed)

    r = client.get(f"/api/comparison-reports/{rep['id']}", headers=ANALYST)
    assert r.status_code == 200
    assert r.json()["editable"] is False

    r = client.patch(f"/api/comparison-reports/{rep['id']}", json={"status": "under_review"}, headers=ANALYST)
    assert r.status_code == 403


def test_status_moves_forward_only(client, seed):
    rep = generate_report(client, seed)
    rid = rep["id"]

    assert set_status(client, rid, "under_review")["status"] == "under_review"

    r = client.patch(f"/api/comparison-reports/{rid}", json={"status": "draft"}, headers=OPERATOR)
    assert r.status_code == 403

    r = client.patch(f"/api/comparison-reports/{rid}", json={"status": "signed"}, headers=OPERATOR)
    assert r.status_code == 403

    r = client.patch(f"/api/comparison-reports/{rid}", json={"status": "under_review"}, headers=OPERATOR)
    assert r.status_code == 409

    r = client.patch(f"/api/comparison-reports/{rid}", json={"status": "closed"}, headers=OPERATOR)
    assert r.status_code == 422
