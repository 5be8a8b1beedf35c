# liability_engine/models.py
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

# NUMERIC(10,2): money never goes through binary floats
Money = Numeric(10, 2, asdecimal=True)


def _loads_obj(s: Optional[str]) -> dict[str, Any]:
    if not s:
        return {}
    try:
        x = json.loads(s)
    except (TypeError, ValueError):
        return {}
    return x if isinstance(x, dict) else {}


# -----------------------------
# Multitenant RBAC tables
# -----------------------------
class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)

    # tenant review window for check-in inspections; None -> settings default
    check_in_approval_period_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class OrgMembership(Base):
    __tablename__ = "org_memberships"
    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="operator")  # owner|operator|clerk|analyst|tenant
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)

    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Tenancy records (owned by the surrounding CRUD app)
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    inspections: Mapped[List["Inspection"]] = relationship(back_populates="property", cascade="all, delete-orphan")


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Inspection(Base):
    __tablename__ = "inspections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True)

    inspection_type: Mapped[str] = mapped_column(String(30), nullable=False)  # check_in|check_out|periodic
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="completed")
    inspection_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    # Tenant approval of a check-in record. NULL status reads as pending.
    tenant_approval_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # pending|approved|disputed
    tenant_approval_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_auto_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="inspections")
    entries: Mapped[List["InspectionEntry"]] = relationship(
        back_populates="inspection", cascade="all, delete-orphan", order_by="InspectionEntry.id"
    )


class InspectionEntry(Base):
    __tablename__ = "inspection_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inspection_id: Mapped[int] = mapped_column(
        ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False, index=True
    )

    section_ref: Mapped[str] = mapped_column(String(180), nullable=False)
    item_ref: Mapped[Optional[str]] = mapped_column(String(180), nullable=True)
    field_key: Mapped[str] = mapped_column(String(120), nullable=False)

    value_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photos_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    maintenance_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marked_for_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    inspection: Mapped["Inspection"] = relationship(back_populates="entries")


# -----------------------------
# End-of-tenancy comparison
# -----------------------------
class ComparisonReport(Base):
    __tablename__ = "comparison_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    check_in_inspection_id: Mapped[int] = mapped_column(Integer, ForeignKey("inspections.id"), nullable=False)
    check_out_inspection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inspections.id"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft", index=True)

    # derived: sum(items.final_cost), rewritten on every item mutation
    total_estimated_cost: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    generated_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    operator_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    operator_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    operator_ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tenant_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    filed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    items: Mapped[List["ComparisonReportItem"]] = relationship(
        back_populates="report", cascade="all, delete-orphan", order_by="ComparisonReportItem.id"
    )
    comments: Mapped[List["ComparisonComment"]] = relationship(
        back_populates="report", cascade="all, delete-orphan"
    )


class ComparisonReportItem(Base):
    __tablename__ = "comparison_report_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    comparison_report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comparison_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )

    check_in_entry_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    check_out_entry_id: Mapped[int] = mapped_column(Integer, nullable=False)

    section_ref: Mapped[str] = mapped_column(String(180), nullable=False)
    item_ref: Mapped[Optional[str]] = mapped_column(String(180), nullable=True)
    field_key: Mapped[str] = mapped_column(String(120), nullable=False)

    comparison_data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    estimated_cost: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    depreciation: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    final_cost: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    liability_decision: Mapped[str] = mapped_column(String(20), nullable=False, default="tenant")
    liability_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    dispute_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    disputed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    report: Mapped["ComparisonReport"] = relationship(back_populates="items")

    @property
    def comparison_data(self) -> dict[str, Any]:
        return _loads_obj(self.comparison_data_json)


class ComparisonComment(Base):
    __tablename__ = "comparison_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    comparison_report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comparison_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    comparison_report_item_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comparison_report_items.id", ondelete="SET NULL"), nullable=True, index=True
    )

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False)
    author_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    author_role: Mapped[str] = mapped_column(String(20), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    report: Mapped["ComparisonReport"] = relationship(back_populates="comments")
