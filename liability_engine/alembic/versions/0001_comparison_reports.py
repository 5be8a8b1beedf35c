"""comparison reports schema

Revision ID: 0001_comparison_reports
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_comparison_reports"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(10, 2)


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("check_in_approval_period_days", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("display_name", sa.String(length=160), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "org_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="operator"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
    )
    op.create_index("ix_org_memberships_org_id", "org_memberships", ["org_id"])
    op.create_index("ix_org_memberships_user_id", "org_memberships", ["user_id"])

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("postcode", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_properties_org_id", "properties", ["org_id"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tenants_org_id", "tenants", ["org_id"])
    op.create_index("ix_tenants_email", "tenants", ["email"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_org_id", "audit_events", ["org_id"])

    op.create_table(
        "workflow_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("event_type", sa.String(length=80), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_workflow_events_org_id", "workflow_events", ["org_id"])
    op.create_index("ix_workflow_events_property_id", "workflow_events", ["property_id"])
    op.create_index("ix_workflow_events_event_type", "workflow_events", ["event_type"])

    op.create_table(
        "inspections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True),
        sa.Column("inspection_type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="completed"),
        sa.Column("inspection_date", sa.DateTime(), nullable=False),
        sa.Column("tenant_approval_status", sa.String(length=20), nullable=True),
        sa.Column("tenant_approval_deadline", sa.DateTime(), nullable=True),
        sa.Column("tenant_comments", sa.Text(), nullable=True),
        sa.Column("tenant_decided_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_auto_approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inspections_org_id", "inspections", ["org_id"])
    op.create_index("ix_inspections_property_id", "inspections", ["property_id"])

    op.create_table(
        "inspection_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("inspection_id", sa.Integer(), sa.ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("section_ref", sa.String(length=180), nullable=False),
        sa.Column("item_ref", sa.String(length=180), nullable=True),
        sa.Column("field_key", sa.String(length=120), nullable=False),
        sa.Column("value_json", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("photos_json", sa.Text(), nullable=True),
        sa.Column("maintenance_flag", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("marked_for_review", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inspection_entries_inspection_id", "inspection_entries", ["inspection_id"])

    op.create_table(
        "comparison_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True),
        sa.Column("check_in_inspection_id", sa.Integer(), sa.ForeignKey("inspections.id"), nullable=False),
        sa.Column("check_out_inspection_id", sa.Integer(), sa.ForeignKey("inspections.id"), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("total_estimated_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("generated_by", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("operator_signature", sa.Text(), nullable=True),
        sa.Column("operator_signed_at", sa.DateTime(), nullable=True),
        sa.Column("operator_ip_address", sa.String(length=64), nullable=True),
        sa.Column("tenant_signature", sa.Text(), nullable=True),
        sa.Column("tenant_signed_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_ip_address", sa.String(length=64), nullable=True),
        sa.Column("filed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_comparison_reports_org_id", "comparison_reports", ["org_id"])
    op.create_index("ix_comparison_reports_property_id", "comparison_reports", ["property_id"])
    op.create_index("ix_comparison_reports_tenant_id", "comparison_reports", ["tenant_id"])
    op.create_index("ix_comparison_reports_check_out_inspection_id", "comparison_reports", ["check_out_inspection_id"])
    op.create_index("ix_comparison_reports_status", "comparison_reports", ["status"])

    op.create_table(
        "comparison_report_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "comparison_report_id",
            sa.Integer(),
            sa.ForeignKey("comparison_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("check_in_entry_id", sa.Integer(), nullable=True),
        sa.Column("check_out_entry_id", sa.Integer(), nullable=False),
        sa.Column("section_ref", sa.String(length=180), nullable=False),
        sa.Column("item_ref", sa.String(length=180), nullable=True),
        sa.Column("field_key", sa.String(length=120), nullable=False),
        sa.Column("comparison_data_json", sa.Text(), nullable=True),
        sa.Column("estimated_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("depreciation", MONEY, nullable=False, server_default="0"),
        sa.Column("final_cost", MONEY, nullable=False, server_default="0"),
        sa.Column("liability_decision", sa.String(length=20), nullable=False, server_default="tenant"),
        sa.Column("liability_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("disputed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_comparison_report_items_comparison_report_id", "comparison_report_items", ["comparison_report_id"]
    )

    op.create_table(
        "comparison_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "comparison_report_id",
            sa.Integer(),
            sa.ForeignKey("comparison_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "comparison_report_item_id",
            sa.Integer(),
            sa.ForeignKey("comparison_report_items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("author_name", sa.String(length=160), nullable=True),
        sa.Column("author_role", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_comparison_comments_comparison_report_id", "comparison_comments", ["comparison_report_id"])
    op.create_index(
        "ix_comparison_comments_comparison_report_item_id", "comparison_comments", ["comparison_report_item_id"]
    )


def downgrade():
    op.drop_table("comparison_comments")
    op.drop_table("comparison_report_items")
    op.drop_table("comparison_reports")
    op.drop_table("inspection_entries")
    op.drop_table("inspections")
    op.drop_table("workflow_events")
    op.drop_table("audit_events")
    op.drop_table("tenants")
    op.drop_table("properties")
    op.drop_table("org_memberships")
    op.drop_table("app_users")
    op.drop_table("organizations")
