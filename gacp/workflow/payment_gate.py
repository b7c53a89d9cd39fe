from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from .status import Milestone, WorkflowStatus


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Fixed fees in THB. The certificate milestone has no fee entry.
MILESTONE_FEES: dict[Milestone, int] = {
    Milestone.DOCUMENT_REVIEW: 5_000,
    Milestone.ASSESSMENT: 25_000,
}

PAYMENT_DUE_DAYS: dict[Milestone, int] = {
    Milestone.DOCUMENT_REVIEW: 7,
    Milestone.ASSESSMENT: 14,
}


@dataclass(frozen=True)
class PaymentRequirement:
    milestone: Milestone
    amount: int
    description: str
    urgency: Urgency


def fee_for(milestone: Milestone) -> int | None:
    return MILESTONE_FEES.get(milestone)


def payment_due_date(milestone: Milestone, issued_at: datetime) -> datetime:
    """Deadline for a payment raised at ``issued_at``."""

    return issued_at + timedelta(days=PAYMENT_DUE_DAYS.get(milestone, 7))


def evaluate_payment_gate(status: WorkflowStatus, revision_count: int = 0) -> PaymentRequirement | None:
    """Return the payment the applicant owes before ``status`` can progress.

    Queried by presentation layers on every render, so this stays a pure
    lookup over the status and revision count.
    """

    if status in (WorkflowStatus.SUBMITTED, WorkflowStatus.PAYMENT_PENDING_REVIEW):
        return PaymentRequirement(
            milestone=Milestone.DOCUMENT_REVIEW,
            amount=MILESTONE_FEES[Milestone.DOCUMENT_REVIEW],
            description="Document review fee",
            urgency=Urgency.MEDIUM,
        )

    if status == WorkflowStatus.REJECTED_PAYMENT_REQUIRED:
        return PaymentRequirement(
            milestone=Milestone.DOCUMENT_REVIEW,
            amount=MILESTONE_FEES[Milestone.DOCUMENT_REVIEW],
            description=f"Document review fee (revision {revision_count})",
            urgency=Urgency.HIGH,
        )

    if status in (WorkflowStatus.REVIEW_APPROVED, WorkflowStatus.PAYMENT_PENDING_ASSESSMENT):
        return PaymentRequirement(
            milestone=Milestone.ASSESSMENT,
            amount=MILESTONE_FEES[Milestone.ASSESSMENT],
            description="Assessment fee",
            urgency=Urgency.MEDIUM,
        )

    return None
