from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.api.v1.deps import get_actor, parse_path_uuid
from gacp.api.v1.endpoints.workflow import event_response, workflow_service
from gacp.crud.application import get_application
from gacp.crud.payment import list_payments
from gacp.database import get_db
from gacp.schemas.payment import PaymentConfirm, PaymentRead
from gacp.schemas.workflow import PaymentActionResponse
from gacp.services.payment_service import PaymentService
from gacp.services.workflow_service import Actor

router = APIRouter(tags=["payments"])

payment_service = PaymentService(workflow=workflow_service)


@router.post(
    "/applications/{application_id}/payments",
    response_model=PaymentActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_payment_endpoint(
    application_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> PaymentActionResponse:
    app_id = parse_path_uuid(application_id, entity="Application")

    payment, outcome = await payment_service.request_payment(session, application_id=app_id, actor=actor)
    return PaymentActionResponse(
        payment=PaymentRead.model_validate(payment),
        workflow=event_response(outcome) if outcome is not None else None,
    )


@router.get("/applications/{application_id}/payments", response_model=list[PaymentRead])
async def list_payments_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[PaymentRead]:
    app_id = parse_path_uuid(application_id, entity="Application")

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    payments = await list_payments(session, application_id=app.id)
    return [PaymentRead.model_validate(p) for p in payments]


@router.post("/payments/{payment_id}/confirm", response_model=PaymentActionResponse)
async def confirm_payment_endpoint(
    payment_id: str,
    payload: PaymentConfirm,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> PaymentActionResponse:
    pid = parse_path_uuid(payment_id, entity="Payment")

    payment, outcome = await payment_service.confirm_payment(
        session,
        payment_id=pid,
        payment_method=payload.payment_method,
        gateway_payment_id=payload.gateway_payment_id,
        actor=actor,
    )
    return PaymentActionResponse(payment=PaymentRead.model_validate(payment), workflow=event_response(outcome))


@router.post("/payments/{payment_id}/cancel", response_model=PaymentRead)
async def cancel_payment_endpoint(
    payment_id: str,
    failed: bool = False,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> PaymentRead:
    pid = parse_path_uuid(payment_id, entity="Payment")

    payment = await payment_service.cancel_payment(session, payment_id=pid, failed=failed, actor=actor)
    return PaymentRead.model_validate(payment)
