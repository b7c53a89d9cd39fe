from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentRequirementRead(BaseModel):
    milestone: int
    amount: int
    description: str
    urgency: str


class PaymentConfirm(BaseModel):
    payment_method: str | None = Field(None, max_length=50)
    gateway_payment_id: str | None = Field(None, max_length=100)


class PaymentRead(BaseModel):
    id: UUID
    application_id: UUID

    milestone: int
    amount: Decimal
    currency: str
    status: str
    revision_cycle: int

    due_date: datetime
    paid_at: datetime | None = None
    payment_method: str | None = None
    gateway_payment_id: str | None = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
