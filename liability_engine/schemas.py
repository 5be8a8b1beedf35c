# liability_engine/schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict


# -------------------- Comparison items --------------------

class ComparisonData(BaseModel):
    """
    Per-item payload copied from the two inspections (plus optional AI text
    produced elsewhere). Every field is optional; only notes_comparison is
    editable here.
    """

    check_in_photos: List[str] = Field(default_factory=list)
    check_out_photos: List[str] = Field(default_factory=list)
    check_in_note: Optional[str] = None
    check_out_note: Optional[str] = None
    notes_comparison: Optional[str] = None
    ai_summary: Optional[str] = None
    damage_note: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ComparisonItemOut(BaseModel):
    id: int
    comparison_report_id: int

    section_ref: str
    field_key: str
    item_ref: Optional[str] = None
    check_in_entry_id: Optional[int] = None
    check_out_entry_id: int

    comparison_data: ComparisonData

    # decimals serialize as strings ("80.00")
    estimated_cost: Decimal
    depreciation: Decimal
    final_cost: Decimal

    liability_decision: str
    liability_notes: Optional[str] = None
    status: str

    dispute_reason: Optional[str] = None
    disputed_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ComparisonItemPatch(BaseModel):
    """Any subset; amounts as decimal strings (bare numbers are accepted and kept as text)."""

    status: Optional[str] = None
    liability_decision: Optional[str] = None
    estimated_cost: Optional[str] = None
    depreciation: Optional[str] = None
    final_cost: Optional[str] = None
    liability_notes: Optional[str] = None
    notes_comparison: Optional[str] = None

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class ItemDisputeIn(BaseModel):
    reason: str = ""


# -------------------- Comparison reports --------------------

class ComparisonReportCreate(BaseModel):
    property_id: int
    check_in_inspection_id: int
    check_out_inspection_id: int
    tenant_id: Optional[int] = None


class ReportStatusUpdate(BaseModel):
    status: str


class LiabilityBreakdownOut(BaseModel):
    tenant: Decimal
    landlord: Decimal
    shared: Decimal
    waived: Decimal


class ComparisonReportSummaryOut(BaseModel):
    id: int
    property_id: int
    tenant_id: Optional[int] = None
    check_in_inspection_id: int
    check_out_inspection_id: int
    status: str
    total_estimated_cost: Decimal
    item_count: int
    created_at: datetime
    updated_at: datetime


class ComparisonReportOut(ComparisonReportSummaryOut):
    liability_breakdown: LiabilityBreakdownOut
    editable: bool

    generated_by: Optional[int] = None
    operator_signature: Optional[str] = None
    operator_signed_at: Optional[datetime] = None
    tenant_signature: Optional[str] = None
    tenant_signed_at: Optional[datetime] = None
    filed_at: Optional[datetime] = None

    items: List[ComparisonItemOut] = Field(default_factory=list)


class SignatureIn(BaseModel):
    signature: str = ""


# -------------------- Discussion --------------------

class CommentCreate(BaseModel):
    content: str = ""
    is_internal: bool = False
    item_id: Optional[int] = None


class CommentOut(BaseModel):
    id: int
    comparison_report_id: int
    comparison_report_item_id: Optional[int] = None
    user_id: int
    author_name: Optional[str] = None
    author_role: str
    content: str
    is_internal: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Tenant approval (check-in) --------------------

class TenantReviewOpen(BaseModel):
    deadline: Optional[datetime] = None


class TenantApproveIn(BaseModel):
    comments: Optional[str] = None


class TenantCommentsIn(BaseModel):
    comments: str = ""


class TenantApprovalOut(BaseModel):
    inspection_id: int
    stored_status: str
    effective_status: str
    deadline: Optional[datetime] = None
    time_remaining: Optional[str] = None
    expired: bool
    auto_approved: bool
    can_respond: bool
    comments: Optional[str] = None


# -------------------- Gateway --------------------

class FinanceSendIn(BaseModel):
    include_pdf: bool = True


class FinanceSendOut(BaseModel):
    message: str
