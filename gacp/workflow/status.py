from __future__ import annotations

from enum import Enum, IntEnum


class CorruptStateError(ValueError):
    """Raised when a persisted status value is not part of the closed set."""

    def __init__(self, value: object) -> None:
        super().__init__(f"unknown workflow status: {value!r}")
        self.value = value


class WorkflowStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PAYMENT_PENDING_REVIEW = "PAYMENT_PENDING_REVIEW"
    PAYMENT_CONFIRMED_REVIEW = "PAYMENT_CONFIRMED_REVIEW"
    UNDER_REVIEW = "UNDER_REVIEW"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    REJECTED_PAYMENT_REQUIRED = "REJECTED_PAYMENT_REQUIRED"
    REVIEW_APPROVED = "REVIEW_APPROVED"
    PAYMENT_PENDING_ASSESSMENT = "PAYMENT_PENDING_ASSESSMENT"
    PAYMENT_CONFIRMED_ASSESSMENT = "PAYMENT_CONFIRMED_ASSESSMENT"
    ONLINE_ASSESSMENT_SCHEDULED = "ONLINE_ASSESSMENT_SCHEDULED"
    ONLINE_ASSESSMENT_IN_PROGRESS = "ONLINE_ASSESSMENT_IN_PROGRESS"
    ONLINE_ASSESSMENT_COMPLETED = "ONLINE_ASSESSMENT_COMPLETED"
    ONSITE_ASSESSMENT_SCHEDULED = "ONSITE_ASSESSMENT_SCHEDULED"
    ONSITE_ASSESSMENT_IN_PROGRESS = "ONSITE_ASSESSMENT_IN_PROGRESS"
    ONSITE_ASSESSMENT_COMPLETED = "ONSITE_ASSESSMENT_COMPLETED"
    CERTIFIED = "CERTIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class ApplicationStatus(str, Enum):
    """Coarse outcome shown in listings; always derived from WorkflowStatus."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CERTIFIED = "CERTIFIED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class Milestone(IntEnum):
    DOCUMENT_REVIEW = 1
    ASSESSMENT = 2
    # Certificate fee. Defined for payment records only; no status is gated on it.
    CERTIFICATE = 3


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class AssessmentType(str, Enum):
    ONLINE = "ONLINE"
    ONSITE = "ONSITE"


class AssessmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Role(str, Enum):
    FARMER = "farmer"
    REVIEWER = "reviewer"
    AUDITOR = "auditor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    CS = "cs"
    CMS = "cms"


TERMINAL_STATUSES: frozenset[WorkflowStatus] = frozenset(
    {
        WorkflowStatus.CERTIFIED,
        WorkflowStatus.REJECTED,
        WorkflowStatus.EXPIRED,
        WorkflowStatus.REVOKED,
    }
)

_PAYMENT_GATES: dict[WorkflowStatus, Milestone] = {
    WorkflowStatus.SUBMITTED: Milestone.DOCUMENT_REVIEW,
    WorkflowStatus.PAYMENT_PENDING_REVIEW: Milestone.DOCUMENT_REVIEW,
    WorkflowStatus.REJECTED_PAYMENT_REQUIRED: Milestone.DOCUMENT_REVIEW,
    WorkflowStatus.REVIEW_APPROVED: Milestone.ASSESSMENT,
    WorkflowStatus.PAYMENT_PENDING_ASSESSMENT: Milestone.ASSESSMENT,
}

_ASSESSMENT_STAGES: dict[WorkflowStatus, tuple[AssessmentType, AssessmentStatus]] = {
    WorkflowStatus.ONLINE_ASSESSMENT_SCHEDULED: (AssessmentType.ONLINE, AssessmentStatus.SCHEDULED),
    WorkflowStatus.ONLINE_ASSESSMENT_IN_PROGRESS: (AssessmentType.ONLINE, AssessmentStatus.IN_PROGRESS),
    WorkflowStatus.ONLINE_ASSESSMENT_COMPLETED: (AssessmentType.ONLINE, AssessmentStatus.COMPLETED),
    WorkflowStatus.ONSITE_ASSESSMENT_SCHEDULED: (AssessmentType.ONSITE, AssessmentStatus.SCHEDULED),
    WorkflowStatus.ONSITE_ASSESSMENT_IN_PROGRESS: (AssessmentType.ONSITE, AssessmentStatus.IN_PROGRESS),
    WorkflowStatus.ONSITE_ASSESSMENT_COMPLETED: (AssessmentType.ONSITE, AssessmentStatus.COMPLETED),
}

_COARSE: dict[WorkflowStatus, ApplicationStatus] = {
    WorkflowStatus.DRAFT: ApplicationStatus.DRAFT,
    WorkflowStatus.SUBMITTED: ApplicationStatus.SUBMITTED,
    WorkflowStatus.PAYMENT_PENDING_REVIEW: ApplicationStatus.SUBMITTED,
    WorkflowStatus.PAYMENT_CONFIRMED_REVIEW: ApplicationStatus.SUBMITTED,
    WorkflowStatus.UNDER_REVIEW: ApplicationStatus.UNDER_REVIEW,
    WorkflowStatus.REVISION_REQUESTED: ApplicationStatus.UNDER_REVIEW,
    WorkflowStatus.REJECTED_PAYMENT_REQUIRED: ApplicationStatus.UNDER_REVIEW,
    WorkflowStatus.REVIEW_APPROVED: ApplicationStatus.APPROVED,
    WorkflowStatus.PAYMENT_PENDING_ASSESSMENT: ApplicationStatus.APPROVED,
    WorkflowStatus.PAYMENT_CONFIRMED_ASSESSMENT: ApplicationStatus.APPROVED,
    WorkflowStatus.ONLINE_ASSESSMENT_SCHEDULED: ApplicationStatus.APPROVED,
    WorkflowStatus.ONLINE_ASSESSMENT_IN_PROGRESS: ApplicationStatus.APPROVED,
    WorkflowStatus.ONLINE_ASSESSMENT_COMPLETED: ApplicationStatus.APPROVED,
    WorkflowStatus.ONSITE_ASSESSMENT_SCHEDULED: ApplicationStatus.APPROVED,
    WorkflowStatus.ONSITE_ASSESSMENT_IN_PROGRESS: ApplicationStatus.APPROVED,
    WorkflowStatus.ONSITE_ASSESSMENT_COMPLETED: ApplicationStatus.APPROVED,
    WorkflowStatus.CERTIFIED: ApplicationStatus.CERTIFIED,
    WorkflowStatus.REJECTED: ApplicationStatus.REJECTED,
    WorkflowStatus.EXPIRED: ApplicationStatus.EXPIRED,
    WorkflowStatus.REVOKED: ApplicationStatus.REVOKED,
}


def parse_workflow_status(value: str | WorkflowStatus) -> WorkflowStatus:
    """Return the closed-set member for ``value`` or raise CorruptStateError.

    Matching is exact. Lower-case or padded values are corrupt, not aliases.
    """

    if isinstance(value, WorkflowStatus):
        return value
    try:
        return WorkflowStatus(value)
    except ValueError as e:
        raise CorruptStateError(value) from e


def is_terminal(status: WorkflowStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_payment_gated(status: WorkflowStatus) -> Milestone | None:
    return _PAYMENT_GATES.get(status)


def application_status_for(status: WorkflowStatus) -> ApplicationStatus:
    return _COARSE[status]


def assessment_type_of(status: WorkflowStatus) -> AssessmentType | None:
    stage = _ASSESSMENT_STAGES.get(status)
    return stage[0] if stage else None


def assessment_stage_of(status: WorkflowStatus) -> AssessmentStatus | None:
    stage = _ASSESSMENT_STAGES.get(status)
    return stage[1] if stage else None


def assessment_status_for(assessment_type: AssessmentType, stage: AssessmentStatus) -> WorkflowStatus:
    for status, (kind, step) in _ASSESSMENT_STAGES.items():
        if kind == assessment_type and step == stage:
            return status
    raise ValueError(f"no workflow status for {assessment_type.value} assessment {stage.value}")
