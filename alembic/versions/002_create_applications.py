"""create applications and the application number sequence

Revision ID: 002_applications
Revises: 001_users_products
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "002_applications"
down_revision = "001_users_products"
branch_labels = None
depends_on = None

# Frozen copy: later status additions need their own migration.
WORKFLOW_STATUSES = (
    "DRAFT",
    "SUBMITTED",
    "PAYMENT_PENDING_REVIEW",
    "PAYMENT_CONFIRMED_REVIEW",
    "UNDER_REVIEW",
    "REVISION_REQUESTED",
    "REJECTED_PAYMENT_REQUIRED",
    "REVIEW_APPROVED",
    "PAYMENT_PENDING_ASSESSMENT",
    "PAYMENT_CONFIRMED_ASSESSMENT",
    "ONLINE_ASSESSMENT_SCHEDULED",
    "ONLINE_ASSESSMENT_IN_PROGRESS",
    "ONLINE_ASSESSMENT_COMPLETED",
    "ONSITE_ASSESSMENT_SCHEDULED",
    "ONSITE_ASSESSMENT_IN_PROGRESS",
    "ONSITE_ASSESSMENT_COMPLETED",
    "CERTIFIED",
    "REJECTED",
    "EXPIRED",
    "REVOKED",
)


def upgrade() -> None:
    op.execute("CREATE SEQUENCE IF NOT EXISTS application_number_seq START 1")

    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("application_number", sa.String(length=20), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("status", sa.String(length=30), server_default=sa.text("'DRAFT'"), nullable=False),
        sa.Column("workflow_status", sa.String(length=50), server_default=sa.text("'DRAFT'"), nullable=False),
        sa.Column("revision_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("max_free_revisions", sa.Integer(), server_default=sa.text("3"), nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("farm_name", sa.String(length=255), nullable=False),
        sa.Column("farm_address", sa.Text(), nullable=False),
        sa.Column("farm_area_rai", sa.Numeric(10, 2), nullable=True),
        sa.Column("crop_types", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("cultivation_methods", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("farm_details", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("reviewer_comments", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("certified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("application_number", name="uq_applications_number"),
        sa.CheckConstraint("revision_count >= 0", name="chk_applications_revision_count"),
        sa.CheckConstraint(
            "workflow_status IN (" + ", ".join(f"'{s}'" for s in WORKFLOW_STATUSES) + ")",
            name="chk_applications_workflow_status",
        ),
    )

    op.create_index("idx_applications_applicant", "applications", ["applicant_id", sa.text("created_at DESC")], unique=False)
    op.create_index("idx_applications_workflow_status", "applications", ["workflow_status"], unique=False)
    op.create_index("idx_applications_created", "applications", [sa.text("created_at DESC"), sa.text("id DESC")], unique=False)


def downgrade() -> None:
    op.drop_index("idx_applications_created", table_name="applications")
    op.drop_index("idx_applications_workflow_status", table_name="applications")
    op.drop_index("idx_applications_applicant", table_name="applications")
    op.drop_table("applications")
    op.execute("DROP SEQUENCE IF EXISTS application_number_seq")
