import uuid
from types import SimpleNamespace

import pytest

from gacp.services import workflow_service as ws
from gacp.services.errors import NotFoundError
from gacp.services.workflow_service import Actor, WorkflowService
from gacp.workflow.errors import ErrorKind
from gacp.workflow.status import AssessmentType, Milestone, Role, WorkflowStatus
from gacp.workflow.transitions import EventType, WorkflowEvent


class FakeSession:
    def __init__(self) -> None:
        self.added: list = []
        self.commits = 0

    def add(self, obj) -> None:
        self.added.append(obj)

    async def commit(self) -> None:
        self.commits += 1

    async def flush(self) -> None:
        return None

    async def get(self, model, ident):
        return SimpleNamespace(preferred_language="en")


class FakeStore:
    """In-memory stand-in for the applications table and its version guard."""

    def __init__(self, workflow_status: str, *, revision_count: int = 0, version: int = 1) -> None:
        self.row = dict(
            id=uuid.uuid4(),
            applicant_id=uuid.uuid4(),
            application_number="GACP-0001-2569",
            workflow_status=workflow_status,
            status="UNDER_REVIEW",
            revision_count=revision_count,
            max_free_revisions=3,
            version=version,
        )
        self.paid: frozenset = frozenset()
        self.passed_assessment = False
        # Concurrent writers that sneak in before our next N writes.
        self.interleaved_writes = 0
        self.write_attempts = 0

    async def get_application(self, session, *, application_id, fresh=False, applicant_id=None):
        if application_id != self.row["id"]:
            return None
        return SimpleNamespace(**self.row)

    async def completed_milestones(self, session, *, application_id, revision_cycle):
        return self.paid

    async def has_passed_assessment(self, session, *, application_id):
        return self.passed_assessment

    async def write_workflow_state(self, session, *, application_id, expected_version, workflow_status, revision_count, reviewer_comments=None):
        self.write_attempts += 1
        if self.interleaved_writes:
            self.interleaved_writes -= 1
            self.row["version"] += 1

        if self.row["version"] != expected_version:
            return False
        self.row.update(
            workflow_status=workflow_status.value,
            revision_count=revision_count,
            version=expected_version + 1,
        )
        return True

    async def create_notification(self, session, *, intent):
        return SimpleNamespace(id=uuid.uuid4(), intent=intent)


@pytest.fixture()
def store(monkeypatch):
    def make(*args, **kwargs) -> FakeStore:
        s = FakeStore(*args, **kwargs)
        monkeypatch.setattr(ws, "get_application", s.get_application)
        monkeypatch.setattr(ws, "completed_milestones", s.completed_milestones)
        monkeypatch.setattr(ws, "has_passed_assessment", s.has_passed_assessment)
        monkeypatch.setattr(ws, "write_workflow_state", s.write_workflow_state)
        monkeypatch.setattr(ws, "create_notification", s.create_notification)
        monkeypatch.setattr(ws, "emit_deliver_notification", lambda **kwargs: False)
        return s

    return make


REJECT = WorkflowEvent(type=EventType.REVIEW_REJECT)
REVIEWER = Actor(role=Role.REVIEWER, request_id="req-1")


@pytest.mark.anyio
async def test_successful_transition_is_written_audited_and_notified(store):
    s = store("UNDER_REVIEW")
    session = FakeSession()

    outcome = await WorkflowService().apply_event(session, application_id=s.row["id"], event=REJECT, actor=REVIEWER)

    assert outcome.ok
    assert outcome.result.status == WorkflowStatus.REVISION_REQUESTED
    assert s.row["workflow_status"] == "REVISION_REQUESTED"
    assert s.row["revision_count"] == 1
    assert s.row["version"] == 2
    assert session.commits == 1

    audit = session.added[0]
    assert audit.action == "workflow_transition"
    assert audit.old_value["workflow_status"] == "UNDER_REVIEW"
    assert audit.new_value == {"workflow_status": "REVISION_REQUESTED", "revision_count": 1, "version": 2}
    assert audit.request_id == "req-1"

    # The applicant's preferred language wins over the reviewer's.
    assert outcome.notification.intent.title == "Revision requested"
    assert outcome.notification.intent.user_id == s.row["applicant_id"]


@pytest.mark.anyio
async def test_stale_write_is_retried_once(store):
    s = store("UNDER_REVIEW")
    s.interleaved_writes = 1

    outcome = await WorkflowService().apply_event(FakeSession(), application_id=s.row["id"], event=REJECT, actor=REVIEWER)

    assert outcome.ok
    assert s.write_attempts == 2
    assert s.row["version"] == 3


@pytest.mark.anyio
async def test_second_stale_write_is_a_conflict(store, caplog):
    s = store("UNDER_REVIEW")
    s.interleaved_writes = 2
    session = FakeSession()

    with caplog.at_level("WARNING", logger="gacp.workflow"):
        outcome = await WorkflowService().apply_event(session, application_id=s.row["id"], event=REJECT, actor=REVIEWER)

    assert outcome.error.kind == ErrorKind.CONCURRENCY_CONFLICT
    assert outcome.error.message == "state changed, please refresh"
    assert s.write_attempts == 2
    assert s.row["workflow_status"] == "UNDER_REVIEW"
    assert session.added == []
    assert session.commits == 0
    assert "stale_write" in caplog.text


@pytest.mark.anyio
async def test_pinned_version_is_not_retried(store):
    s = store("UNDER_REVIEW", version=4)
    s.interleaved_writes = 1

    outcome = await WorkflowService().apply_event(
        FakeSession(), application_id=s.row["id"], event=REJECT, actor=REVIEWER, expected_version=4
    )

    assert outcome.error.kind == ErrorKind.CONCURRENCY_CONFLICT
    assert s.write_attempts == 1


@pytest.mark.anyio
async def test_expected_version_mismatch_short_circuits(store):
    s = store("UNDER_REVIEW", version=5)

    outcome = await WorkflowService().apply_event(
        FakeSession(), application_id=s.row["id"], event=REJECT, actor=REVIEWER, expected_version=4
    )

    assert outcome.error.kind == ErrorKind.CONCURRENCY_CONFLICT
    assert s.write_attempts == 0


@pytest.mark.anyio
async def test_corrupt_status_is_reported_and_logged_critical(store, caplog):
    s = store("APPROVED")

    with caplog.at_level("CRITICAL", logger="gacp.workflow"):
        outcome = await WorkflowService().apply_event(FakeSession(), application_id=s.row["id"], event=REJECT, actor=REVIEWER)

    assert outcome.error.kind == ErrorKind.CORRUPT_STATE
    assert s.write_attempts == 0
    assert s.row["workflow_status"] == "APPROVED"
    assert any(r.levelname == "CRITICAL" and "corrupt_state" in r.getMessage() for r in caplog.records)


@pytest.mark.anyio
async def test_invalid_transition_writes_nothing(store):
    s = store("DRAFT")
    session = FakeSession()

    outcome = await WorkflowService().apply_event(session, application_id=s.row["id"], event=REJECT, actor=REVIEWER)

    assert outcome.error.kind == ErrorKind.INVALID_TRANSITION
    assert s.write_attempts == 0
    assert session.commits == 0


@pytest.mark.anyio
async def test_payment_confirmation_reads_completed_milestones(store):
    s = store("PAYMENT_PENDING_REVIEW")
    event = WorkflowEvent(type=EventType.PAYMENT_CONFIRMED, milestone=Milestone.DOCUMENT_REVIEW)

    first = await WorkflowService().apply_event(FakeSession(), application_id=s.row["id"], event=event)
    assert first.error.kind == ErrorKind.INVALID_TRANSITION

    s.paid = frozenset({Milestone.DOCUMENT_REVIEW})
    second = await WorkflowService().apply_event(FakeSession(), application_id=s.row["id"], event=event)
    assert second.result.status == WorkflowStatus.PAYMENT_CONFIRMED_REVIEW


@pytest.mark.anyio
async def test_commit_false_leaves_the_transaction_to_the_caller(store):
    s = store("UNDER_REVIEW")
    session = FakeSession()

    outcome = await WorkflowService().apply_event(
        session, application_id=s.row["id"], event=REJECT, actor=REVIEWER, commit=False
    )

    assert outcome.ok
    assert session.commits == 0


@pytest.mark.anyio
async def test_missing_application_raises_not_found(store):
    store("UNDER_REVIEW")

    with pytest.raises(NotFoundError):
        await WorkflowService().apply_event(FakeSession(), application_id=uuid.uuid4(), event=REJECT)


@pytest.mark.anyio
async def test_auditor_cannot_certify_without_an_assessment_record(store):
    s = store("PAYMENT_CONFIRMED_ASSESSMENT")
    auditor = Actor(role=Role.AUDITOR)
    service = WorkflowService()

    steps = [
        WorkflowEvent(type=EventType.ASSESSMENT_SCHEDULE, assessment_type=AssessmentType.ONLINE),
        WorkflowEvent(type=EventType.ASSESSMENT_START),
        WorkflowEvent(type=EventType.ASSESSMENT_COMPLETE, passed=True),
    ]
    for event in steps:
        outcome = await service.apply_event(FakeSession(), application_id=s.row["id"], event=event, actor=auditor)
        assert outcome.ok, outcome.error
    assert s.row["workflow_status"] == "ONLINE_ASSESSMENT_COMPLETED"

    outcome = await service.apply_event(
        FakeSession(),
        application_id=s.row["id"],
        event=WorkflowEvent(type=EventType.ASSESSMENT_COMPLETE, passed=True),
        actor=auditor,
    )
    assert not outcome.ok
    assert outcome.error.kind == ErrorKind.INVALID_TRANSITION
    assert s.row["workflow_status"] == "ONLINE_ASSESSMENT_COMPLETED"


@pytest.mark.anyio
async def test_recorded_pass_allows_certification(store):
    s = store("ONSITE_ASSESSMENT_COMPLETED")
    s.passed_assessment = True

    outcome = await WorkflowService().apply_event(
        FakeSession(),
        application_id=s.row["id"],
        event=WorkflowEvent(type=EventType.ASSESSMENT_COMPLETE, passed=True),
    )
    assert outcome.ok, outcome.error
    assert s.row["workflow_status"] == "CERTIFIED"
