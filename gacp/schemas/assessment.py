from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from gacp.workflow.status import AssessmentType


class AssessmentCreate(BaseModel):
    type: AssessmentType
    auditor_id: UUID
    scheduled_at: datetime

    meeting_url: str | None = Field(None, max_length=500)
    onsite_address: str | None = None

    @model_validator(mode="after")
    def _validate_location(self) -> "AssessmentCreate":
        if self.type == AssessmentType.ONSITE and not (self.onsite_address or "").strip():
            raise ValueError("onsite_address is required for ONSITE assessments")
        if self.type == AssessmentType.ONSITE and self.meeting_url:
            raise ValueError("meeting_url is only valid for ONLINE assessments")
        return self


class AssessmentComplete(BaseModel):
    passed: bool
    score: int | None = Field(None, ge=0, le=100)
    result_summary: str | None = None

    # False holds a passed ONLINE result back, e.g. to escalate to an onsite audit.
    issue_certificate: bool = True


class AssessmentRead(BaseModel):
    id: UUID
    application_id: UUID
    auditor_id: UUID

    type: str
    status: str

    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    meeting_url: str | None = None
    onsite_address: str | None = None

    passed: bool | None = None
    score: int | None = None
    result_summary: str | None = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
