import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from gacp.api.v1.endpoints import workflow as workflow_endpoints
from gacp.database import get_db
from gacp.main import app
from gacp.services.errors import NotFoundError
from gacp.services.workflow_service import WorkflowOutcome
from gacp.workflow.errors import WorkflowError
from gacp.workflow.status import Role, WorkflowStatus
from gacp.workflow.transitions import EventType, TransitionResult, WorkflowEvent
from tests._client import FARMER, REVIEWER


async def _no_db():
    yield None


@pytest.fixture()
def api(monkeypatch):
    """TestClient with the database dependency stubbed and apply_event captured."""

    calls: list[dict] = []
    state: dict = {"error": None, "raise": None}

    async def fake_apply_event(session, *, application_id, event, actor, expected_version=None, reviewer_comments=None, commit=True):
        calls.append(
            {
                "application_id": application_id,
                "event": event,
                "actor": actor,
                "expected_version": expected_version,
                "reviewer_comments": reviewer_comments,
            }
        )
        if state["raise"] is not None:
            raise state["raise"]

        app_row = SimpleNamespace(
            id=application_id,
            workflow_status=WorkflowStatus.REVISION_REQUESTED.value,
            status="UNDER_REVIEW",
            revision_count=1,
            version=3,
        )
        if state["error"] is not None:
            result = TransitionResult(
                previous_status=WorkflowStatus.UNDER_REVIEW,
                status=None,
                revision_count=0,
                event=event,
                error=state["error"],
            )
        else:
            result = TransitionResult(
                previous_status=WorkflowStatus.UNDER_REVIEW,
                status=WorkflowStatus.REVISION_REQUESTED,
                revision_count=1,
                event=event,
            )
        return WorkflowOutcome(result=result, application=app_row)

    monkeypatch.setattr(workflow_endpoints.workflow_service, "apply_event", fake_apply_event)
    app.dependency_overrides[get_db] = _no_db
    try:
        yield TestClient(app), calls, state
    finally:
        app.dependency_overrides.pop(get_db, None)


def _url(app_id=None) -> str:
    return f"/api/v1/applications/{app_id or uuid.uuid4()}/events"


def test_successful_event_returns_new_state(api):
    client, calls, _ = api
    actor_id = uuid.uuid4()

    r = client.post(
        _url(),
        json={"event": "REVIEW_REJECT", "expected_version": 2, "reviewer_comments": "missing soil test"},
        headers={**REVIEWER, "X-Actor-Id": str(actor_id), "Accept-Language": "en"},
    )
    assert r.status_code == 200, r.text

    data = r.json()
    assert data["previous_status"] == "UNDER_REVIEW"
    assert data["workflow_status"] == "REVISION_REQUESTED"
    assert data["revision_count"] == 1
    assert data["version"] == 3
    assert data["is_terminal"] is False
    assert data["payment_requirement"] is None

    call = calls[0]
    assert call["event"] == WorkflowEvent(type=EventType.REVIEW_REJECT)
    assert call["actor"].role == Role.REVIEWER
    assert call["actor"].id == actor_id
    assert call["actor"].locale == "en"
    assert call["actor"].request_id
    assert call["expected_version"] == 2
    assert call["reviewer_comments"] == "missing soil test"


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (WorkflowError.invalid("REVIEW_APPROVE is not allowed in DRAFT"), 422),
        (WorkflowError.denied("role farmer may not trigger REVIEW_APPROVE"), 403),
        (WorkflowError.conflict(), 409),
        (WorkflowError.corrupt("unknown workflow status: 'APPROVED'"), 500),
    ],
)
def test_error_kinds_map_to_status_codes(api, error, status_code):
    client, _, state = api
    state["error"] = error

    r = client.post(_url(), json={"event": "REVIEW_APPROVE"}, headers=FARMER)
    assert r.status_code == status_code

    payload = r.json()
    assert payload["error"] == error.kind.value
    assert payload["request_id"]
    if status_code == 500:
        assert "APPROVED" not in payload["detail"]
    else:
        assert payload["detail"] == error.message


def test_conflict_message_asks_for_refresh(api):
    client, _, state = api
    state["error"] = WorkflowError.conflict()

    r = client.post(_url(), json={"event": "SUBMIT", "expected_version": 1}, headers=FARMER)
    assert r.status_code == 409
    assert r.json()["detail"] == "state changed, please refresh"


def test_missing_application_is_404(api):
    client, _, state = api
    state["raise"] = NotFoundError("Application")

    r = client.post(_url(), json={"event": "SUBMIT"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Application not found"


def test_unknown_event_and_bad_headers_are_422(api):
    client, calls, _ = api

    assert client.post(_url(), json={"event": "PUBLISH"}).status_code == 422
    assert client.post(_url(), json={"event": "SUBMIT", "expected_version": 0}).status_code == 422
    assert client.post(_url(), json={"event": "SUBMIT"}, headers={"X-Actor-Role": "pilot"}).status_code == 422
    assert client.post(_url(), json={"event": "SUBMIT"}, headers={"X-Actor-Id": "nope"}).status_code == 422
    assert calls == []


def test_malformed_application_id_is_404(api):
    client, calls, _ = api

    r = client.post("/api/v1/applications/123/events", json={"event": "SUBMIT"})
    assert r.status_code == 404
    assert calls == []


def test_request_without_role_is_an_internal_caller(api):
    client, calls, _ = api

    r = client.post(_url(), json={"event": "EXPIRE"})
    assert r.status_code == 200
    assert calls[0]["actor"].role is None
    assert calls[0]["actor"].locale == "th"


@pytest.mark.parametrize("event", ["ASSESSMENT_SCHEDULE", "ASSESSMENT_START", "ASSESSMENT_COMPLETE"])
def test_assessment_events_are_not_accepted_on_the_generic_route(api, event):
    client, calls, _ = api

    r = client.post(
        _url(),
        json={"event": event, "assessment_type": "ONLINE", "passed": True},
        headers={"X-Actor-Role": "auditor"},
    )
    assert r.status_code == 422
    assert r.json()["error"] == "invalid_transition"
    assert "assessment endpoints" in r.json()["detail"]
    assert calls == []


def test_assessment_events_are_refused_for_internal_callers_too(api):
    client, calls, _ = api

    r = client.post(_url(), json={"event": "ASSESSMENT_COMPLETE", "passed": True})
    assert r.status_code == 422
    assert calls == []
