from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from gacp.schemas.assessment import AssessmentRead
from gacp.schemas.certificate import CertificateRead
from gacp.schemas.payment import PaymentRead, PaymentRequirementRead

APPLICATION_NUMBER_PATTERN = r"^GACP-\d{4}-\d{4}$"


class ApplicationCreate(BaseModel):
    applicant_id: UUID
    product_id: UUID

    farm_name: str
    farm_address: str
    farm_area_rai: Decimal | None = None
    crop_types: list[str] = Field(default_factory=list)
    cultivation_methods: list[str] = Field(default_factory=list)
    farm_details: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_required_fields(self) -> "ApplicationCreate":
        missing: list[str] = []
        if not self.farm_name.strip():
            missing.append("farm_name")
        if not self.farm_address.strip():
            missing.append("farm_address")
        if not [c for c in self.crop_types if c and c.strip()]:
            missing.append("crop_types")

        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        if self.farm_area_rai is not None and self.farm_area_rai <= 0:
            raise ValueError("farm_area_rai must be > 0")

        return self


class ApplicationUpdate(BaseModel):
    farm_name: str | None = None
    farm_address: str | None = None
    farm_area_rai: Decimal | None = None
    crop_types: list[str] | None = None
    cultivation_methods: list[str] | None = None
    farm_details: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _validate_values(self) -> "ApplicationUpdate":
        if self.farm_name is not None and not self.farm_name.strip():
            raise ValueError("farm_name must not be empty")
        if self.farm_address is not None and not self.farm_address.strip():
            raise ValueError("farm_address must not be empty")
        if self.crop_types is not None and not [c for c in self.crop_types if c and c.strip()]:
            raise ValueError("crop_types must not be empty")
        if self.farm_area_rai is not None and self.farm_area_rai <= 0:
            raise ValueError("farm_area_rai must be > 0")
        return self


class ApplicationListItem(BaseModel):
    id: UUID
    application_number: str = Field(pattern=APPLICATION_NUMBER_PATTERN)

    applicant_id: UUID
    product_id: UUID

    status: str
    workflow_status: str
    revision_count: int
    version: int

    farm_name: str

    submitted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    items: list[ApplicationListItem]
    total: int
    page: int
    page_size: int


class ApplicationRead(BaseModel):
    id: UUID
    application_number: str = Field(pattern=APPLICATION_NUMBER_PATTERN)

    applicant_id: UUID
    product_id: UUID

    status: str
    workflow_status: str
    revision_count: int
    max_free_revisions: int
    version: int

    farm_name: str
    farm_address: str
    farm_area_rai: Decimal | None = None
    crop_types: list[str] = Field(default_factory=list)
    cultivation_methods: list[str] = Field(default_factory=list)
    farm_details: dict[str, Any] = Field(default_factory=dict)

    reviewer_comments: str | None = None

    # Presentation helpers computed from the workflow core.
    is_terminal: bool = False
    free_revisions_remaining: int = 0
    payment_requirement: PaymentRequirementRead | None = None

    payments: list[PaymentRead] = Field(default_factory=list)
    assessments: list[AssessmentRead] = Field(default_factory=list)
    certificate: CertificateRead | None = None

    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    certified_at: datetime | None = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
