from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.api.v1.deps import get_actor, parse_path_uuid
from gacp.api.v1.endpoints.workflow import assessment_service, event_response
from gacp.database import get_db
from gacp.schemas.assessment import AssessmentComplete, AssessmentCreate, AssessmentRead
from gacp.schemas.workflow import AssessmentActionResponse
from gacp.services.workflow_service import Actor

router = APIRouter(tags=["assessments"])


@router.post(
    "/applications/{application_id}/assessments",
    response_model=AssessmentActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_assessment_endpoint(
    application_id: str,
    payload: AssessmentCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> AssessmentActionResponse:
    app_id = parse_path_uuid(application_id, entity="Application")

    assessment, outcome = await assessment_service.schedule(
        session, application_id=app_id, payload=payload, actor=actor
    )
    return AssessmentActionResponse(
        assessment=AssessmentRead.model_validate(assessment),
        workflow=event_response(outcome),
    )


@router.post("/assessments/{assessment_id}/start", response_model=AssessmentActionResponse)
async def start_assessment_endpoint(
    assessment_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> AssessmentActionResponse:
    aid = parse_path_uuid(assessment_id, entity="Assessment")

    assessment, outcome = await assessment_service.start(session, assessment_id=aid, actor=actor)
    return AssessmentActionResponse(
        assessment=AssessmentRead.model_validate(assessment),
        workflow=event_response(outcome),
    )


@router.post("/assessments/{assessment_id}/complete", response_model=AssessmentActionResponse)
async def complete_assessment_endpoint(
    assessment_id: str,
    payload: AssessmentComplete,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> AssessmentActionResponse:
    aid = parse_path_uuid(assessment_id, entity="Assessment")

    assessment, outcome = await assessment_service.complete(
        session, assessment_id=aid, payload=payload, actor=actor
    )
    return AssessmentActionResponse(
        assessment=AssessmentRead.model_validate(assessment),
        workflow=event_response(outcome),
    )
