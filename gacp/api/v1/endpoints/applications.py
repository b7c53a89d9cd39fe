from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.api.v1.deps import parse_path_uuid, parse_query_uuid
from gacp.crud.application import (
    EDITABLE_STATUSES,
    create_application,
    get_application,
    list_applications,
    update_application_fields,
)
from gacp.crud.assessment import list_assessments
from gacp.crud.certificate import get_certificate_for_application
from gacp.crud.payment import list_payments
from gacp.database import get_db
from gacp.models.application import Application
from gacp.schemas.application import (
    ApplicationCreate,
    ApplicationListItem,
    ApplicationListResponse,
    ApplicationRead,
    ApplicationUpdate,
)
from gacp.schemas.assessment import AssessmentRead
from gacp.schemas.certificate import CertificateRead
from gacp.schemas.payment import PaymentRead, PaymentRequirementRead
from gacp.services.errors import WorkflowRejected
from gacp.workflow.errors import WorkflowError
from gacp.workflow.payment_gate import PaymentRequirement, evaluate_payment_gate
from gacp.workflow.revision_policy import RevisionPolicy
from gacp.workflow.status import CorruptStateError, WorkflowStatus, is_terminal, parse_workflow_status

logger = logging.getLogger("gacp.api")

router = APIRouter(prefix="/applications", tags=["applications"])


def parse_status_or_raise(app: Application) -> WorkflowStatus:
    try:
        return parse_workflow_status(app.workflow_status)
    except CorruptStateError as e:
        logger.critical("corrupt_state application_id=%s workflow_status=%r", app.id, app.workflow_status)
        raise WorkflowRejected(WorkflowError.corrupt(str(e))) from e


def requirement_read(requirement: PaymentRequirement | None) -> PaymentRequirementRead | None:
    if requirement is None:
        return None
    return PaymentRequirementRead(
        milestone=int(requirement.milestone),
        amount=requirement.amount,
        description=requirement.description,
        urgency=requirement.urgency.value,
    )


async def build_application_read(session: AsyncSession, app: Application) -> ApplicationRead:
    workflow_status = parse_status_or_raise(app)
    policy = RevisionPolicy(app.max_free_revisions)

    payments = await list_payments(session, application_id=app.id)
    assessments = await list_assessments(session, application_id=app.id)
    certificate = await get_certificate_for_application(session, application_id=app.id)

    payload = ApplicationListItem.model_validate(app).model_dump()
    payload.update(
        max_free_revisions=app.max_free_revisions,
        farm_address=app.farm_address,
        farm_area_rai=app.farm_area_rai,
        crop_types=app.crop_types or [],
        cultivation_methods=app.cultivation_methods or [],
        farm_details=app.farm_details or {},
        reviewer_comments=app.reviewer_comments,
        approved_at=app.approved_at,
        certified_at=app.certified_at,
        is_terminal=is_terminal(workflow_status),
        free_revisions_remaining=policy.free_revisions_remaining(app.revision_count),
        payment_requirement=requirement_read(evaluate_payment_gate(workflow_status, app.revision_count)),
        payments=[PaymentRead.model_validate(p) for p in payments],
        assessments=[AssessmentRead.model_validate(a) for a in assessments],
        certificate=CertificateRead.model_validate(certificate) if certificate else None,
    )
    return ApplicationRead(**payload)


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def create_application_endpoint(
    payload: ApplicationCreate,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app = await create_application(session, payload)
    logger.info("application_created application_id=%s number=%s", app.id, app.application_number)
    return await build_application_read(session, app)


@router.get("", response_model=ApplicationListResponse)
async def list_applications_endpoint(
    applicant_id: str | None = Query(None, description="Applicant UUID"),
    workflow_status: str | None = Query(None, description="Fine-grained workflow status"),
    status: str | None = Query(None, description="Coarse application status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    applicant_uuid = parse_query_uuid(applicant_id, name="applicant_id")

    if workflow_status is not None:
        try:
            workflow_status = parse_workflow_status(workflow_status).value
        except CorruptStateError:
            raise HTTPException(status_code=422, detail="Invalid workflow_status")

    items, total = await list_applications(
        session,
        applicant_id=applicant_uuid,
        workflow_status=workflow_status,
        status=status,
        page=page,
        page_size=page_size,
    )

    return ApplicationListResponse(
        items=[ApplicationListItem.model_validate(i) for i in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_path_uuid(application_id, entity="Application")

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    return await build_application_read(session, app)


@router.patch("/{application_id}", response_model=ApplicationRead)
async def patch_application_endpoint(
    application_id: str,
    payload: ApplicationUpdate,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_path_uuid(application_id, entity="Application")

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    if app.workflow_status not in EDITABLE_STATUSES:
        raise HTTPException(
            status_code=409,
            detail=f"Farm details can only be changed while DRAFT or REVISION_REQUESTED (current: {app.workflow_status})",
        )

    app = await update_application_fields(session, db_obj=app, obj_in=payload)
    return await build_application_read(session, app)
