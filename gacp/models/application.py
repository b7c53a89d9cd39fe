from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from gacp.workflow.status import WorkflowStatus

from .base import Base

WORKFLOW_STATUS_VALUES = tuple(s.value for s in WorkflowStatus)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint("revision_count >= 0", name="chk_applications_revision_count"),
        CheckConstraint(
            "workflow_status IN (" + ", ".join(f"'{v}'" for v in WORKFLOW_STATUS_VALUES) + ")",
            name="chk_applications_workflow_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    applicant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False)

    # Coarse status is derived from workflow_status on every write.
    status: Mapped[str] = mapped_column(String(30), nullable=False, server_default="DRAFT")
    workflow_status: Mapped[str] = mapped_column(String(50), nullable=False, server_default="DRAFT")

    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    max_free_revisions: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")

    # Optimistic concurrency guard, bumped by every workflow write.
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    farm_name: Mapped[str] = mapped_column(String(255), nullable=False)
    farm_address: Mapped[str] = mapped_column(Text, nullable=False)
    farm_area_rai: Mapped[object | None] = mapped_column(Numeric(10, 2), nullable=True)
    crop_types: Mapped[list] = mapped_column(JSONB, nullable=False, server_default='[]')
    cultivation_methods: Mapped[list] = mapped_column(JSONB, nullable=False, server_default='[]')
    farm_details: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default='{}')

    reviewer_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    certified_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
