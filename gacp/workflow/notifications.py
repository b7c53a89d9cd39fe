from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from .payment_gate import evaluate_payment_gate
from .status import WorkflowStatus, assessment_type_of
from .transitions import TransitionResult

SUPPORTED_LOCALES = ("th", "en")
DEFAULT_LOCALE = "th"


@dataclass(frozen=True)
class NotificationIntent:
    user_id: UUID
    type: str
    title: str
    message: str
    priority: str
    action_url: str
    related_id: UUID | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "action_url": self.action_url,
            "related_id": self.related_id,
        }


# (type, priority, path suffix, {locale: (title, message)})
_TEMPLATES: dict[str, tuple[str, str, str, dict[str, tuple[str, str]]]] = {
    "payment_due": (
        "payment_due",
        "medium",
        "/payments",
        {
            "th": ("จำเป็นต้องชำระเงิน", "คำขอ {number}: กรุณาชำระค่าธรรมเนียมจำนวน {amount:,} บาท"),
            "en": ("Payment required", "Application {number}: please pay the {description} of {amount:,} THB"),
        },
    ),
    "revision_requested": (
        "revision_requested",
        "medium",
        "",
        {
            "th": ("ขอให้แก้ไขเอกสาร", "คำขอ {number} ต้องแก้ไขเอกสาร (ครั้งที่ {revision})"),
            "en": ("Revision requested", "Application {number} needs corrections (revision {revision})"),
        },
    ),
    "document_approved": (
        "document_approved",
        "medium",
        "/payments",
        {
            "th": ("เอกสารผ่านการตรวจสอบ", "คำขอ {number} ผ่านการตรวจสอบเอกสารแล้ว กรุณาชำระค่าประเมิน"),
            "en": ("Documents approved", "Application {number} passed document review; the assessment fee is now due"),
        },
    ),
    "assessment_scheduled": (
        "assessment_scheduled",
        "medium",
        "/assessments",
        {
            "th": ("นัดหมายการประเมิน", "คำขอ {number} ได้รับการนัดหมายการประเมินแบบ {kind}"),
            "en": ("Assessment scheduled", "An {kind} assessment has been scheduled for application {number}"),
        },
    ),
    "certificate_issued": (
        "certificate_issued",
        "high",
        "/certificate",
        {
            "th": ("ออกใบรับรองแล้ว", "ใบรับรอง GACP สำหรับคำขอ {number} ออกแล้ว"),
            "en": ("Certificate issued", "The GACP certificate for application {number} has been issued"),
        },
    ),
    "application_rejected": (
        "application_rejected",
        "high",
        "",
        {
            "th": ("คำขอถูกปฏิเสธ", "คำขอ {number} ถูกปฏิเสธ"),
            "en": ("Application rejected", "Application {number} has been rejected"),
        },
    ),
    "application_revoked": (
        "application_revoked",
        "high",
        "",
        {
            "th": ("คำขอถูกเพิกถอน", "คำขอ {number} ถูกเพิกถอน"),
            "en": ("Application revoked", "Application {number} has been revoked"),
        },
    ),
    "application_expired": (
        "application_expired",
        "low",
        "",
        {
            "th": ("คำขอหมดอายุ", "คำขอ {number} หมดอายุแล้ว"),
            "en": ("Application expired", "Application {number} has expired"),
        },
    ),
}

_KIND_BY_STATUS: dict[WorkflowStatus, str] = {
    WorkflowStatus.PAYMENT_PENDING_REVIEW: "payment_due",
    WorkflowStatus.REJECTED_PAYMENT_REQUIRED: "payment_due",
    WorkflowStatus.PAYMENT_PENDING_ASSESSMENT: "payment_due",
    WorkflowStatus.REVISION_REQUESTED: "revision_requested",
    WorkflowStatus.REVIEW_APPROVED: "document_approved",
    WorkflowStatus.ONLINE_ASSESSMENT_SCHEDULED: "assessment_scheduled",
    WorkflowStatus.ONSITE_ASSESSMENT_SCHEDULED: "assessment_scheduled",
    WorkflowStatus.CERTIFIED: "certificate_issued",
    WorkflowStatus.REJECTED: "application_rejected",
    WorkflowStatus.REVOKED: "application_revoked",
    WorkflowStatus.EXPIRED: "application_expired",
}


def normalize_locale(locale: str | None) -> str:
    if not locale:
        return DEFAULT_LOCALE
    lang = locale.split(",")[0].split("-")[0].strip().lower()
    return lang if lang in SUPPORTED_LOCALES else DEFAULT_LOCALE


def notification_for(
    result: TransitionResult,
    *,
    application_id: UUID,
    applicant_id: UUID,
    application_number: str,
    locale: str | None = None,
) -> NotificationIntent | None:
    """Build the applicant notification for a successful transition, if any."""

    if not result.ok or result.status is None:
        return None

    kind = _KIND_BY_STATUS.get(result.status)
    if kind is None:
        return None

    # Paying again after the free revisions run out is the urgent case.
    if result.status == WorkflowStatus.REJECTED_PAYMENT_REQUIRED:
        priority = "high"
    else:
        priority = _TEMPLATES[kind][1]

    notif_type, _, suffix, texts = _TEMPLATES[kind]
    title, message = texts[normalize_locale(locale)]

    requirement = evaluate_payment_gate(result.status, result.revision_count)
    kind_of_assessment = assessment_type_of(result.status)
    values = {
        "number": application_number,
        "revision": result.revision_count,
        "amount": requirement.amount if requirement else 0,
        "description": requirement.description.lower() if requirement else "",
        "kind": kind_of_assessment.value.lower() if kind_of_assessment else "",
    }

    return NotificationIntent(
        user_id=applicant_id,
        type=notif_type,
        title=title,
        message=message.format(**values),
        priority=priority,
        action_url=f"/applications/{application_id}{suffix}",
        related_id=application_id,
    )
