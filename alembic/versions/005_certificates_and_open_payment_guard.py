"""add certificates and one open payment per gate

Revision ID: 005_certificates_payments
Revises: 004_notif_audit_trig
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "005_certificates_payments"
down_revision = "004_notif_audit_trig"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # At most one PENDING or COMPLETED payment per (application, milestone, cycle).
    op.create_index(
        "uq_payments_open_gate",
        "payments",
        ["application_id", "milestone", "revision_cycle"],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING', 'COMPLETED')"),
    )
    op.create_index(
        "idx_payments_pending_due",
        "payments",
        ["due_date"],
        unique=False,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "certificates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("certificate_number", sa.String(length=20), nullable=False, unique=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.CheckConstraint("expires_at > issued_at", name="chk_certificates_validity"),
    )


def downgrade() -> None:
    op.drop_table("certificates")
    op.drop_index("idx_payments_pending_due", table_name="payments")
    op.drop_index("uq_payments_open_gate", table_name="payments")
