from __future__ import annotations

import uuid

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index(
            "uq_payments_open_gate",
            "application_id",
            "milestone",
            "revision_cycle",
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'COMPLETED')"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)

    milestone: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[object] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="THB")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="PENDING")

    # Application revision_count when the payment was raised. A paid rejection
    # or failed assessment starts a new cycle and needs a new payment.
    revision_cycle: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    due_date: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    gateway_payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
