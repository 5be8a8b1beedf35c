# tests/test_service_concurrency.py
from __future__ import annotations

from datetime import datetime

import pytest

from conftest import OPERATOR_EMAIL

from liability_engine.db import SessionLocal
from liability_engine.errors import Conflict, Forbidden
from liability_engine.models import ComparisonReport
from liability_engine.schemas import ComparisonReportCreate
from liability_engine.services.comments import add_comment
from liability_engine.services.comparison_reports import change_status, create_report, sign_report
from liability_engine.services.inspection_source import DbInspectionEntrySource


def _report(db, principal, seed) -> ComparisonReport:
    payload = ComparisonReportCreate(
        property_id=seed.property_id,
        check_in_inspection_id=seed.check_in_id,
        check_out_inspection_id=seed.check_out_id,
    )
    report = create_report(db, principal=principal, payload=payload, source=DbInspectionEntrySource(db))
    change_status(db, principal=principal, report_id=report.id, target="under_review")
    db.commit()
    return report


def test_racing_signer_loses_on_the_conditional_write(db, seed, make_principal):
    op = make_principal(OPERATOR_EMAIL, "operator")
    report = _report(db, op, seed)

    # another request signs first; this session still holds the unsigned row in memory
    other = SessionLocal()
    try:
        row = other.get(ComparisonReport, report.id)
        row.operator_signature = "Other Desk"
        row.operator_signed_at = datetime(2026, 9, 1, 9, 0)
        other.commit()
    finally:
        other.close()

    assert report.operator_signature is None
    with pytest.raises(Conflict):
        sign_report(db, principal=op, report_id=report.id, signature="Olivia O.")
    db.rollback()

    fresh = SessionLocal()
    try:
        assert fresh.get(ComparisonReport, report.id).operator_signature == "Other Desk"
    finally:
        fresh.close()


def test_analyst_cannot_comment(db, seed, make_principal):
    op = make_principal(OPERATOR_EMAIL, "operator")
    analyst = make_principal("ana@acme.test", "analyst")
    report = _report(db, op, seed)

    with pytest.raises(Forbidden):
        add_comment(db, principal=analyst, report=report, content="looks fine")
