from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from gacp.schemas.assessment import AssessmentRead
from gacp.schemas.certificate import CertificateRead
from gacp.schemas.payment import PaymentRead, PaymentRequirementRead
from gacp.workflow.status import AssessmentType, Milestone
from gacp.workflow.transitions import EventType, WorkflowEvent


class WorkflowEventRequest(BaseModel):
    event: EventType
    milestone: Milestone | None = None
    assessment_type: AssessmentType | None = None
    passed: bool | None = None

    # When set, the write is rejected if the application moved on meanwhile.
    expected_version: int | None = Field(None, ge=1)

    reviewer_comments: str | None = None

    def to_event(self) -> WorkflowEvent:
        return WorkflowEvent(
            type=self.event,
            milestone=self.milestone,
            assessment_type=self.assessment_type,
            passed=self.passed,
        )


class WorkflowEventResponse(BaseModel):
    application_id: UUID
    event: EventType

    previous_status: str
    workflow_status: str
    status: str
    revision_count: int
    version: int

    is_terminal: bool
    payment_requirement: PaymentRequirementRead | None = None
    notification_id: UUID | None = None


class PaymentActionResponse(BaseModel):
    payment: PaymentRead
    workflow: WorkflowEventResponse | None = None


class AssessmentActionResponse(BaseModel):
    assessment: AssessmentRead
    workflow: WorkflowEventResponse


class CertificationResponse(BaseModel):
    certificate: CertificateRead
    workflow: WorkflowEventResponse

