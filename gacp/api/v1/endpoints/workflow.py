from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.api.v1.deps import get_actor, parse_path_uuid
from gacp.api.v1.endpoints.applications import parse_status_or_raise, requirement_read
from gacp.crud.application import get_application
from gacp.database import get_db
from gacp.schemas.payment import PaymentRequirementRead
from gacp.schemas.certificate import CertificateRead
from gacp.schemas.workflow import CertificationResponse, WorkflowEventRequest, WorkflowEventResponse
from gacp.services.assessment_service import AssessmentService
from gacp.services.errors import WorkflowRejected
from gacp.services.workflow_service import Actor, WorkflowOutcome, WorkflowService
from gacp.workflow.payment_gate import evaluate_payment_gate
from gacp.workflow.status import is_terminal
from gacp.workflow.transitions import EventType

router = APIRouter(prefix="/applications", tags=["workflow"])

workflow_service = WorkflowService()
assessment_service = AssessmentService(workflow=workflow_service)

# These need an assessment record, so only the assessment endpoints send them.
ASSESSMENT_EVENTS = frozenset(
    {EventType.ASSESSMENT_SCHEDULE, EventType.ASSESSMENT_START, EventType.ASSESSMENT_COMPLETE}
)


def event_response(outcome: WorkflowOutcome) -> WorkflowEventResponse:
    result = outcome.result
    app = outcome.application
    return WorkflowEventResponse(
        application_id=app.id,
        event=result.event.type,
        previous_status=result.previous_status.value,
        workflow_status=app.workflow_status,
        status=app.status,
        revision_count=app.revision_count,
        version=app.version,
        is_terminal=is_terminal(result.status),
        payment_requirement=requirement_read(evaluate_payment_gate(result.status, result.revision_count)),
        notification_id=outcome.notification.id if outcome.notification else None,
    )


@router.post("/{application_id}/events", response_model=WorkflowEventResponse)
async def apply_event_endpoint(
    application_id: str,
    payload: WorkflowEventRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> WorkflowEventResponse:
    app_id = parse_path_uuid(application_id, entity="Application")
    if payload.event in ASSESSMENT_EVENTS:
        raise WorkflowRejected.invalid(
            f"{payload.event.value} is recorded through the assessment endpoints"
        )

    outcome = await workflow_service.apply_event(
        session,
        application_id=app_id,
        event=payload.to_event(),
        actor=actor,
        expected_version=payload.expected_version,
        reviewer_comments=payload.reviewer_comments,
    )
    if not outcome.ok:
        raise WorkflowRejected(outcome.error)

    return event_response(outcome)


@router.get("/{application_id}/payment-requirement", response_model=PaymentRequirementRead | None)
async def payment_requirement_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> PaymentRequirementRead | None:
    app_id = parse_path_uuid(application_id, entity="Application")

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    workflow_status = parse_status_or_raise(app)
    return requirement_read(evaluate_payment_gate(workflow_status, app.revision_count))


@router.post("/{application_id}/certify", response_model=CertificationResponse)
async def certify_endpoint(
    application_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> CertificationResponse:
    """Issue the certificate for a passed assessment that was held back."""

    app_id = parse_path_uuid(application_id, entity="Application")
    outcome, certificate = await assessment_service.certify(session, application_id=app_id, actor=actor)
    return CertificationResponse(
        certificate=CertificateRead.model_validate(certificate),
        workflow=event_response(outcome),
    )
