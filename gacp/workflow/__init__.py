"""Certification workflow core.

Pure functions over (status, counters): no I/O, no shared state. Persistence,
payments and notification delivery live outside this package.
"""

from .errors import ErrorKind, WorkflowError
from .notifications import NotificationIntent, normalize_locale, notification_for
from .payment_gate import (
    MILESTONE_FEES,
    PaymentRequirement,
    Urgency,
    evaluate_payment_gate,
    fee_for,
    payment_due_date,
)
from .revision_policy import DEFAULT_MAX_FREE_REVISIONS, RevisionOutcome, RevisionPolicy
from .status import (
    ApplicationStatus,
    AssessmentStatus,
    AssessmentType,
    CorruptStateError,
    Milestone,
    PaymentStatus,
    Role,
    WorkflowStatus,
    application_status_for,
    assessment_type_of,
    is_payment_gated,
    is_terminal,
    parse_workflow_status,
)
from .transitions import (
    EventType,
    TransitionContext,
    TransitionResult,
    WorkflowEvent,
    role_may_trigger,
    transition,
)

__all__ = [
    "ApplicationStatus",
    "AssessmentStatus",
    "AssessmentType",
    "CorruptStateError",
    "DEFAULT_MAX_FREE_REVISIONS",
    "ErrorKind",
    "EventType",
    "MILESTONE_FEES",
    "Milestone",
    "NotificationIntent",
    "PaymentRequirement",
    "PaymentStatus",
    "RevisionOutcome",
    "RevisionPolicy",
    "Role",
    "TransitionContext",
    "TransitionResult",
    "Urgency",
    "WorkflowError",
    "WorkflowEvent",
    "WorkflowStatus",
    "application_status_for",
    "assessment_type_of",
    "evaluate_payment_gate",
    "fee_for",
    "is_payment_gated",
    "is_terminal",
    "normalize_locale",
    "notification_for",
    "parse_workflow_status",
    "payment_due_date",
    "role_may_trigger",
    "transition",
]
