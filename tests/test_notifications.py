import uuid

from gacp.workflow.notifications import normalize_locale, notification_for
from gacp.workflow.status import AssessmentType, Milestone, WorkflowStatus
from gacp.workflow.transitions import EventType, TransitionContext, WorkflowEvent, transition

APP_ID = uuid.uuid4()
APPLICANT_ID = uuid.uuid4()


def _intent(result, locale="th"):
    return notification_for(
        result,
        application_id=APP_ID,
        applicant_id=APPLICANT_ID,
        application_number="GACP-0007-2569",
        locale=locale,
    )


def test_payment_due_notification_in_thai():
    result = transition(WorkflowStatus.SUBMITTED, WorkflowEvent(type=EventType.PAYMENT_REQUESTED))
    intent = _intent(result)

    assert intent.user_id == APPLICANT_ID
    assert intent.type == "payment_due"
    assert intent.priority == "medium"
    assert "5,000" in intent.message
    assert "GACP-0007-2569" in intent.message
    assert intent.action_url == f"/applications/{APP_ID}/payments"
    assert intent.related_id == APP_ID


def test_paid_revision_notification_is_high_priority_in_english():
    result = transition(
        WorkflowStatus.UNDER_REVIEW,
        WorkflowEvent(type=EventType.REVIEW_REJECT),
        TransitionContext(revision_count=3),
    )
    intent = _intent(result, locale="en-US,en;q=0.9")

    assert intent.type == "payment_due"
    assert intent.priority == "high"
    assert intent.title == "Payment required"
    assert "revision 4" in intent.message


def test_revision_requested_notification():
    result = transition(WorkflowStatus.UNDER_REVIEW, WorkflowEvent(type=EventType.REVIEW_REJECT))
    intent = _intent(result, locale="en")

    assert intent.type == "revision_requested"
    assert "revision 1" in intent.message
    assert intent.action_url == f"/applications/{APP_ID}"


def test_assessment_scheduled_and_certificate_notifications():
    scheduled = transition(
        WorkflowStatus.PAYMENT_CONFIRMED_ASSESSMENT,
        WorkflowEvent(type=EventType.ASSESSMENT_SCHEDULE, assessment_type=AssessmentType.ONSITE),
    )
    assert "onsite" in _intent(scheduled, locale="en").message

    certified = transition(
        WorkflowStatus.ONSITE_ASSESSMENT_COMPLETED,
        WorkflowEvent(type=EventType.ASSESSMENT_COMPLETE, passed=True),
    )
    intent = _intent(certified)
    assert intent.type == "certificate_issued"
    assert intent.priority == "high"


def test_no_notification_for_quiet_transitions_or_errors():
    started = transition(WorkflowStatus.PAYMENT_CONFIRMED_REVIEW, WorkflowEvent(type=EventType.REVIEW_START))
    assert _intent(started) is None

    failed = transition(
        WorkflowStatus.PAYMENT_PENDING_REVIEW,
        WorkflowEvent(type=EventType.PAYMENT_CONFIRMED, milestone=Milestone.DOCUMENT_REVIEW),
    )
    assert not failed.ok
    assert _intent(failed) is None


def test_normalize_locale():
    assert normalize_locale(None) == "th"
    assert normalize_locale("") == "th"
    assert normalize_locale("EN-gb") == "en"
    assert normalize_locale("th-TH,th;q=0.9") == "th"
    assert normalize_locale("fr") == "th"
