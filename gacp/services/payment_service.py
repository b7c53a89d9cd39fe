from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.config import settings
from gacp.crud.application import audit_entry, get_application
from gacp.crud.payment import (
    close_pending_payment,
    create_payment,
    find_open_payment,
    get_payment,
    list_overdue_payments,
    mark_payment_status,
)
from gacp.models.payment import Payment
from gacp.services.errors import NotFoundError, WorkflowRejected
from gacp.services.workflow_service import SYSTEM_ACTOR, Actor, WorkflowOutcome, WorkflowService
from gacp.workflow.errors import ErrorKind, WorkflowError
from gacp.workflow.payment_gate import evaluate_payment_gate, payment_due_date
from gacp.workflow.status import (
    CorruptStateError,
    Milestone,
    PaymentStatus,
    WorkflowStatus,
    is_payment_gated,
    parse_workflow_status,
)
from gacp.workflow.transitions import EventType, WorkflowEvent, role_may_trigger

logger = logging.getLogger("gacp.workflow")

# Gated statuses that still have an explicit "awaiting payment" step.
_REQUESTABLE = frozenset({WorkflowStatus.SUBMITTED, WorkflowStatus.REVIEW_APPROVED})


class PaymentService:
    """Raises and settles milestone payments.

    A payment belongs to the revision cycle it was raised in; only a
    COMPLETED payment of the current cycle opens the matching gate.
    """

    def __init__(self, *, workflow: WorkflowService | None = None) -> None:
        self._workflow = workflow or WorkflowService()

    async def request_payment(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[Payment, WorkflowOutcome | None]:
        """Raise the payment for the current gate. Idempotent per gate and cycle."""

        app = await get_application(session, application_id=application_id, fresh=True)
        if app is None:
            raise NotFoundError("Application")

        status = _parse(app.workflow_status)
        requirement = evaluate_payment_gate(status, app.revision_count)
        if requirement is None:
            raise WorkflowRejected.invalid(f"no payment is due in {status.value}")

        payment = await find_open_payment(
            session,
            application_id=app.id,
            milestone=requirement.milestone,
            revision_cycle=app.revision_count,
        )
        created = payment is None
        # Plain values: a rollback below expires the ORM instances.
        app_id, milestone, cycle = app.id, requirement.milestone, app.revision_count

        outcome = None
        if status in _REQUESTABLE:
            outcome = await self._workflow.apply_event(
                session,
                application_id=app.id,
                event=WorkflowEvent(type=EventType.PAYMENT_REQUESTED, milestone=requirement.milestone),
                actor=actor,
                commit=False,
            )
            if not outcome.ok:
                await session.rollback()
                # A concurrent request may have moved the status and raised the payment.
                existing = await self._raised_meanwhile(session, app_id, milestone, cycle)
                if existing is None:
                    raise WorkflowRejected(outcome.error)
                return existing, None

        if created:
            now = datetime.now(timezone.utc)
            try:
                payment = await create_payment(
                    session,
                    application_id=app_id,
                    milestone=milestone,
                    amount=requirement.amount,
                    currency=settings.payment_currency,
                    revision_cycle=cycle,
                    due_date=payment_due_date(milestone, now),
                )
            except IntegrityError:
                await session.rollback()
                existing = await self._raised_meanwhile(session, app_id, milestone, cycle)
                if existing is None:
                    raise
                return existing, None
            session.add(
                audit_entry(
                    entity_type="payment",
                    entity_id=payment.id,
                    action="create",
                    old_value=None,
                    new_value={
                        "milestone": int(requirement.milestone),
                        "amount": requirement.amount,
                        "revision_cycle": cycle,
                    },
                    summary=requirement.description,
                    user_id=actor.id,
                    request_id=actor.request_id,
                )
            )

        await session.commit()
        await session.refresh(payment)
        if outcome is not None:
            self._workflow.dispatch(outcome)

        logger.info(
            "payment_requested application_id=%s payment_id=%s milestone=%s amount=%s created=%s",
            app_id,
            payment.id,
            payment.milestone,
            payment.amount,
            created,
        )
        return payment, outcome

    async def confirm_payment(
        self,
        session: AsyncSession,
        *,
        payment_id: UUID,
        payment_method: str | None = None,
        gateway_payment_id: str | None = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[Payment, WorkflowOutcome]:
        """Record a settled payment and open its gate in one transaction."""

        if actor.role is not None and not role_may_trigger(actor.role, EventType.PAYMENT_CONFIRMED):
            raise WorkflowRejected(
                WorkflowError.denied(f"role {actor.role.value} may not confirm payments")
            )

        payment = await get_payment(session, payment_id=payment_id)
        if payment is None:
            raise NotFoundError("Payment")
        if payment.status not in (PaymentStatus.PENDING.value, PaymentStatus.COMPLETED.value):
            raise WorkflowRejected.invalid(f"payment is {payment.status}")

        if payment.status == PaymentStatus.PENDING.value:
            await mark_payment_status(
                session,
                payment=payment,
                status=PaymentStatus.COMPLETED,
                paid_at=datetime.now(timezone.utc),
                payment_method=payment_method,
                gateway_payment_id=gateway_payment_id,
            )
            session.add(
                audit_entry(
                    entity_type="payment",
                    entity_id=payment.id,
                    action="confirm",
                    old_value={"status": PaymentStatus.PENDING.value},
                    new_value={"status": PaymentStatus.COMPLETED.value, "gateway_payment_id": gateway_payment_id},
                    summary=f"milestone {payment.milestone} paid",
                    user_id=actor.id,
                    request_id=actor.request_id,
                )
            )

        outcome = await self._workflow.apply_event(
            session,
            application_id=payment.application_id,
            event=WorkflowEvent(type=EventType.PAYMENT_CONFIRMED, milestone=Milestone(payment.milestone)),
            actor=actor,
            commit=False,
        )
        if not outcome.ok:
            await session.rollback()
            raise WorkflowRejected(outcome.error)

        await session.commit()
        await session.refresh(payment)
        self._workflow.dispatch(outcome)
        return payment, outcome

    async def cancel_payment(
        self,
        session: AsyncSession,
        *,
        payment_id: UUID,
        failed: bool = False,
        actor: Actor = SYSTEM_ACTOR,
    ) -> Payment:
        """Cancel a pending payment, or mark it FAILED when the gateway declined it."""

        payment = await get_payment(session, payment_id=payment_id)
        if payment is None:
            raise NotFoundError("Payment")
        if payment.status != PaymentStatus.PENDING.value:
            raise WorkflowRejected.invalid(f"only PENDING payments can be cancelled, payment is {payment.status}")

        new_status = PaymentStatus.FAILED if failed else PaymentStatus.CANCELLED
        await mark_payment_status(session, payment=payment, status=new_status)
        session.add(
            audit_entry(
                entity_type="payment",
                entity_id=payment.id,
                action=new_status.value.lower(),
                old_value={"status": PaymentStatus.PENDING.value},
                new_value={"status": new_status.value},
                summary=f"milestone {payment.milestone} {new_status.value.lower()}",
                user_id=actor.id,
                request_id=actor.request_id,
            )
        )
        await session.commit()
        await session.refresh(payment)
        return payment
    async def expire_overdue(
        self,
        session: AsyncSession,
        *,
        now: datetime | None = None,
        limit: int = 100,
    ) -> int:
        """Cancel PENDING payments past their due date and expire the applications waiting on them.

        Each payment is settled in its own transaction. Returns the number of
        payments cancelled.
        """

        now = now or datetime.now(timezone.utc)
        overdue = [
            (p.id, p.application_id, Milestone(p.milestone), p.revision_cycle)
            for p in await list_overdue_payments(session, now=now, limit=limit)
        ]

        cancelled = 0
        for payment_id, application_id, milestone, cycle in overdue:
            if await self._expire_one(session, payment_id, application_id, milestone, cycle):
                cancelled += 1
        return cancelled

    async def _expire_one(
        self,
        session: AsyncSession,
        payment_id: UUID,
        application_id: UUID,
        milestone: Milestone,
        cycle: int,
    ) -> bool:
        if not await close_pending_payment(session, payment_id=payment_id, status=PaymentStatus.CANCELLED):
            await session.rollback()
            return False

        session.add(
            audit_entry(
                entity_type="payment",
                entity_id=payment_id,
                action="expire",
                old_value={"status": PaymentStatus.PENDING.value},
                new_value={"status": PaymentStatus.CANCELLED.value},
                summary=f"milestone {int(milestone)} payment overdue",
            )
        )

        outcome = None
        app = await get_application(session, application_id=application_id, fresh=True)
        # Only a payment the application is still waiting on expires it.
        if (
            app is not None
            and app.revision_count == cycle
            and _gate_of(app.workflow_status) == milestone
        ):
            outcome = await self._workflow.apply_event(
                session,
                application_id=application_id,
                event=WorkflowEvent(type=EventType.EXPIRE),
                commit=False,
            )
            if outcome.error is not None and outcome.error.kind == ErrorKind.CONCURRENCY_CONFLICT:
                # The application moved on; the next sweep re-evaluates the payment.
                await session.rollback()
                return False
            if not outcome.ok:
                outcome = None

        await session.commit()
        if outcome is not None:
            self._workflow.dispatch(outcome)

        logger.info(
            "payment_expired payment_id=%s application_id=%s milestone=%s application_expired=%s",
            payment_id,
            application_id,
            int(milestone),
            outcome is not None,
        )
        return True

    async def _raised_meanwhile(
        self, session: AsyncSession, application_id: UUID, milestone: Milestone, cycle: int
    ) -> Payment | None:
        payment = await find_open_payment(
            session, application_id=application_id, milestone=milestone, revision_cycle=cycle
        )
        if payment is not None:
            logger.info("payment_request_deduplicated application_id=%s payment_id=%s", application_id, payment.id)
        return payment


def _gate_of(value: str) -> Milestone | None:
    try:
        return is_payment_gated(parse_workflow_status(value))
    except CorruptStateError:
        return None


def _parse(value: str) -> WorkflowStatus:
    try:
        return parse_workflow_status(value)
    except CorruptStateError as e:
        logger.critical("corrupt_state workflow_status=%r", value)
        raise WorkflowRejected(WorkflowError.corrupt(str(e))) from e
