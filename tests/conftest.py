# tests/conftest.py
from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from types import SimpleNamespace

# must be set before liability_engine.config is imported
_TMP = tempfile.mkdtemp(prefix="liability-engine-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["APP_ENV"] = "local"
os.environ["AUTH_MODE"] = "dev"

import pytest
from fastapi.testclient import TestClient

from liability_engine import models  # noqa: F401  (register tables)
from liability_engine.auth import Principal
from liability_engine.clients.document_renderer import get_document_renderer
from liability_engine.clients.notifier import get_notifier
from liability_engine.db import Base, SessionLocal, engine
from liability_engine.errors import UpstreamFailure
from liability_engine.main import create_app
from liability_engine.models import (
    AppUser,
    Inspection,
    InspectionEntry,
    Organization,
    OrgMembership,
    Property,
    Tenant,
)

ORG_SLUG = "acme-lettings"
OPERATOR_EMAIL = "olivia@acme.test"
TENANT_EMAIL = "tom.tenant@example.test"
ANALYST_EMAIL = "ana@acme.test"


def headers(email: str, role: str, org_slug: str = ORG_SLUG) -> dict[str, str]:
    return {"X-Org-Slug": org_slug, "X-User-Email": email, "X-User-Role": role}


OPERATOR = headers(OPERATOR_EMAIL, "operator")
TENANT = headers(TENANT_EMAIL, "tenant")
ANALYST = headers(ANALYST_EMAIL, "analyst")


class FakeRenderer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.snapshots: list[dict] = []

    def render_comparison_report(self, snapshot: dict) -> bytes:
        if self.fail:
            raise UpstreamFailure("document renderer returned HTTP 503")
        self.snapshots.append(snapshot)
        return b"%PDF-1.4\n% fake\n"


class FakeNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list = []

    def send(self, email) -> str:
        if self.fail:
            raise UpstreamFailure("notifier unreachable: ConnectError")
        self.sent.append(email)
        return f"msg-{len(self.sent)}"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.close()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def app(renderer, notifier):
    app = create_app()
    app.dependency_overrides[get_document_renderer] = lambda: renderer
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _entry(inspection_id: int, section: str, item: str, field: str, value, note=None, photos=(), **flags) -> InspectionEntry:
    return InspectionEntry(
        inspection_id=inspection_id,
        section_ref=section,
        item_ref=item,
        field_key=field,
        value_json=json.dumps(value),
        note=note,
        photos_json=json.dumps(list(photos)),
        maintenance_flag=flags.get("maintenance_flag", False),
        marked_for_review=flags.get("marked_for_review", False),
    )


@pytest.fixture
def seed():
    """
    One org with a let property, its tenant and a check-in / check-out pair.

    Check-out differs from check-in on oven cleanliness and lounge carpet,
    and adds a bathroom mirror entry with no check-in counterpart, so a
    generated report has three items.
    """
    db = SessionLocal()
    try:
        org = Organization(slug=ORG_SLUG, name="Acme Lettings")
        db.add(org)
        db.flush()

        tenant = Tenant(org_id=org.id, full_name="Tom Tenant", email=TENANT_EMAIL)
        prop = Property(org_id=org.id, address="12 Harbour Street", city="Bristol", postcode="BS1 4AA")
        db.add_all([tenant, prop])
        db.flush()

        check_in = Inspection(
            org_id=org.id,
            property_id=prop.id,
            tenant_id=tenant.id,
            inspection_type="check_in",
            inspection_date=datetime(2025, 9, 1, 10, 0),
        )
        check_out = Inspection(
            org_id=org.id,
            property_id=prop.id,
            tenant_id=tenant.id,
            inspection_type="check_out",
            inspection_date=datetime(2026, 8, 31, 10, 0),
        )
        db.add_all([check_in, check_out])
        db.flush()

        db.add_all(
            [
                _entry(check_in.id, "Kitchen", "Oven", "condition", "good"),
                _entry(check_in.id, "Kitchen", "Oven", "cleanliness", "clean", note="Professionally cleaned"),
                _entry(check_in.id, "Lounge", "Carpet", "condition", "good", photos=["https://img.test/in/carpet.jpg"]),
            ]
        )
        db.add_all(
            [
                _entry(check_out.id, "Kitchen", "Oven", "condition", "good"),
                _entry(check_out.id, "Kitchen", "Oven", "cleanliness", "dirty", note="Grease build-up"),
                _entry(
                    check_out.id,
                    "Lounge",
                    "Carpet",
                    "condition",
                    "stained",
                    note="Red wine stain by window",
                    photos=["https://img.test/out/carpet.jpg"],
                ),
                _entry(check_out.id, "Bathroom", "Mirror", "condition", "cracked", marked_for_review=True),
            ]
        )
        db.commit()

        return SimpleNamespace(
            org_id=org.id,
            tenant_id=tenant.id,
            property_id=prop.id,
            check_in_id=check_in.id,
            check_out_id=check_out.id,
        )
    finally:
        db.close()


@pytest.fixture
def make_principal(db, seed):
    def _make(email: str, role: str) -> Principal:
        user = db.query(AppUser).filter(AppUser.email == email).first()
        if user is None:
            user = AppUser(email=email, display_name=email.split("@")[0])
            db.add(user)
            db.flush()
            db.add(OrgMembership(org_id=seed.org_id, user_id=user.id, role=role))
            db.commit()
        return Principal(
            org_id=seed.org_id,
            org_slug=ORG_SLUG,
            user_id=int(user.id),
            email=email,
            role=role,
            display_name=user.display_name,
        )

    return _make


def generate_report(client: TestClient, seed) -> dict:
    r = client.post(
        "/api/comparison-reports",
        json={
            "property_id": seed.property_id,
            "check_in_inspection_id": seed.check_in_id,
            "check_out_inspection_id": seed.check_out_id,
        },
        headers=OPERATOR,
    )
    assert r.status_code == 200, r.text
    return r.json()


def set_status(client: TestClient, report_id: int, status: str) -> dict:
    r = client.patch(f"/api/comparison-reports/{report_id}", json={"status": status}, headers=OPERATOR)
    assert r.status_code == 200, r.text
    return r.json()


def fully_signed(client: TestClient, seed) -> dict:
    rep = generate_report(client, seed)
    set_status(client, rep["id"], "under_review")
    r = client.post(f"/api/comparison-reports/{rep['id']}/sign", json={"signature": "Olivia O."}, headers=OPERATOR)
    assert r.status_code == 200, r.text
    r = client.post(f"/api/comparison-reports/{rep['id']}/sign", json={"signature": "Tom T."}, headers=TENANT)
    assert r.status_code == 200, r.text
    return r.json()
