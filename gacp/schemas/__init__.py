from .application import ApplicationCreate, ApplicationListItem, ApplicationListResponse, ApplicationRead, ApplicationUpdate
from .assessment import AssessmentComplete, AssessmentCreate, AssessmentRead
from .certificate import CertificateRead, CertificateVerification
from .notification import NotificationListResponse, NotificationRead
from .payment import PaymentConfirm, PaymentRead, PaymentRequirementRead
from .workflow import (
    AssessmentActionResponse,
    CertificationResponse,
    PaymentActionResponse,
    WorkflowEventRequest,
    WorkflowEventResponse,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationListItem",
    "ApplicationListResponse",
    "ApplicationRead",
    "ApplicationUpdate",
    "AssessmentActionResponse",
    "AssessmentComplete",
    "AssessmentCreate",
    "AssessmentRead",
    "CertificateRead",
    "CertificateVerification",
    "CertificationResponse",
    "NotificationListResponse",
    "NotificationRead",
    "PaymentActionResponse",
    "PaymentConfirm",
    "PaymentRead",
    "PaymentRequirementRead",
    "WorkflowEventRequest",
    "WorkflowEventResponse",
]
