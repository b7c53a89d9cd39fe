from datetime import datetime, timezone

import pytest

from gacp.workflow.payment_gate import (
    MILESTONE_FEES,
    Urgency,
    evaluate_payment_gate,
    fee_for,
    payment_due_date,
)
from gacp.workflow.status import Milestone, WorkflowStatus, is_payment_gated


@pytest.mark.parametrize("status", list(WorkflowStatus))
def test_gate_is_total_and_agrees_with_status_model(status):
    requirement = evaluate_payment_gate(status, 0)
    gate = is_payment_gated(status)
    if gate is None:
        assert requirement is None
    else:
        assert requirement is not None
        assert requirement.milestone == gate


def test_fixed_amounts():
    assert evaluate_payment_gate(WorkflowStatus.SUBMITTED).amount == 5000
    assert evaluate_payment_gate(WorkflowStatus.PAYMENT_PENDING_REVIEW).amount == 5000
    assert evaluate_payment_gate(WorkflowStatus.REVIEW_APPROVED).amount == 25000
    assert evaluate_payment_gate(WorkflowStatus.PAYMENT_PENDING_ASSESSMENT).amount == 25000
    assert evaluate_payment_gate(WorkflowStatus.UNDER_REVIEW) is None


def test_paid_revision_is_urgent_and_names_the_revision():
    requirement = evaluate_payment_gate(WorkflowStatus.REJECTED_PAYMENT_REQUIRED, 4)

    assert requirement.milestone == Milestone.DOCUMENT_REVIEW
    assert requirement.amount == 5000
    assert requirement.urgency == Urgency.HIGH
    assert "4" in requirement.description


def test_regular_gates_are_medium_urgency():
    assert evaluate_payment_gate(WorkflowStatus.SUBMITTED).urgency == Urgency.MEDIUM
    assert evaluate_payment_gate(WorkflowStatus.REVIEW_APPROVED).urgency == Urgency.MEDIUM


def test_gate_is_idempotent():
    first = evaluate_payment_gate(WorkflowStatus.REJECTED_PAYMENT_REQUIRED, 5)
    second = evaluate_payment_gate(WorkflowStatus.REJECTED_PAYMENT_REQUIRED, 5)
    assert first == second


def test_certificate_fee_is_not_defined():
    assert Milestone.CERTIFICATE not in MILESTONE_FEES
    assert fee_for(Milestone.CERTIFICATE) is None
    assert fee_for(Milestone.ASSESSMENT) == 25000


def test_due_dates():
    issued = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert payment_due_date(Milestone.DOCUMENT_REVIEW, issued) == datetime(2026, 1, 8, tzinfo=timezone.utc)
    assert payment_due_date(Milestone.ASSESSMENT, issued) == datetime(2026, 1, 15, tzinfo=timezone.utc)
