# tests/test_gateway.py
from __future__ import annotations

import pytest

from conftest import OPERATOR, TENANT, FakeNotifier, generate_report, set_status

from liability_engine.clients.document_renderer import DocumentRendererClient
from liability_engine.clients.notifier import NotifierClient, OutboundEmail, get_notifier
from liability_engine.config import settings
from liability_engine.errors import UpstreamFailure


def test_pdf_passes_the_snapshot_to_the_renderer(client, seed, renderer):
    rep = generate_report(client, seed)
    client.patch(
        f"/api/comparison-items/{rep['items'][0]['id']}",
        json={"estimated_cost": "100.00", "depreciation": "20.00"},
        headers=OPERATOR,
    )

    r = client.post(f"/api/comparison-reports/{rep['id']}/pdf", headers=OPERATOR)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")

    snap = renderer.snapshots[-1]
    assert snap["report_id"] == rep["id"]
    assert snap["total_estimated_cost"] == "80.00"
    assert snap["items"][0]["final_cost"] == "80.00"
    assert snap["property"]["address"] == "12 Harbour Street"
    assert snap["signatures"]["operator"]["signature"] is None


def test_pdf_is_operator_only(client, seed):
    rep = generate_report(client, seed)
    assert client.post(f"/api/comparison-reports/{rep['id']}/pdf", headers=TENANT).status_code == 403


def test_renderer_failure_surfaces_as_upstream_failure(client, seed, renderer):
    rep = generate_report(client, seed)
    renderer.fail = True
    r = client.post(f"/api/comparison-reports/{rep['id']}/pdf", headers=OPERATOR)
    assert r.status_code == 502
    assert r.json()["detail"]["kind"] == "upstream_failure"


def test_send_to_finance(client, seed, notifier, monkeypatch):
    monkeypatch.setattr(settings, "finance_email", "finance@acme.test")
    rep = generate_report(client, seed)

    r = client.post(f"/api/comparison-reports/{rep['id']}/send-to-finance", json={"include_pdf": True}, headers=OPERATOR)
    assert r.status_code == 200, r.text
    assert "finance@acme.test" in r.json()["message"]

    sent = notifier.sent[-1]
    assert sent.to == "finance@acme.test"
    assert sent.attachments[0].filename == f"comparison-report-{rep['id']}.pdf"

    r = client.post(f"/api/comparison-reports/{rep['id']}/send-to-finance", json={"include_pdf": False}, headers=TENANT)
    assert r.status_code == 403


def test_send_to_finance_without_recipient_fails_upstream(client, seed, monkeypatch):
    monkeypatch.setattr(settings, "finance_email", None)
    rep = generate_report(client, seed)
    r = client.post(f"/api/comparison-reports/{rep['id']}/send-to-finance", json={"include_pdf": False}, headers=OPERATOR)
    assert r.status_code == 502


def test_ready_to_sign_notice_goes_to_tenant(client, seed, notifier):
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "awaiting_signatures")
    assert notifier.sent[-1].to == "tom.tenant@example.test"


def test_notification_failure_keeps_the_status_change(client, app, seed):
    app.dependency_overrides[get_notifier] = lambda: FakeNotifier(fail=True)
    rep = generate_report(client, seed)

    r = client.patch(f"/api/comparison-reports/{rep['id']}", json={"status": "awaiting_signatures"}, headers=OPERATOR)
    assert r.status_code == 200
    assert r.json()["status"] == "awaiting_signatures"

    again = client.get(f"/api/comparison-reports/{rep['id']}", headers=OPERATOR).json()
    assert again["status"] == "awaiting_signatures"


def test_unconfigured_clients_raise_upstream_failure():
    with pytest.raises(UpstreamFailure):
        DocumentRendererClient(base_url="").render_comparison_report({"report_id": 1})
    with pytest.raises(UpstreamFailure):
        NotifierClient(base_url="").send(OutboundEmail(to="x@y.test", subject="s", text="t"))


def test_outbound_email_payload_encodes_attachments():
    from liability_engine.clients.notifier import Attachment

    payload = OutboundEmail(
        to="finance@acme.test",
        subject="s",
        text="t",
        attachments=[Attachment(filename="r.pdf", content=b"%PDF")],
    ).as_payload()
    assert payload["attachments"][0]["content_b64"] == "JVBERg=="
