from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.base import BaseCRUD
from gacp.models.payment import Payment
from gacp.workflow.status import Milestone, PaymentStatus

payments = BaseCRUD(Payment)


async def create_payment(
    session: AsyncSession,
    *,
    application_id: UUID,
    milestone: Milestone,
    amount: int,
    currency: str,
    revision_cycle: int,
    due_date: datetime,
) -> Payment:
    return await payments.create(
        session,
        obj_in={
            "application_id": application_id,
            "milestone": int(milestone),
            "amount": amount,
            "currency": currency,
            "status": PaymentStatus.PENDING.value,
            "revision_cycle": revision_cycle,
            "due_date": due_date,
        },
    )


async def get_payment(session: AsyncSession, *, payment_id: UUID) -> Payment | None:
    return await payments.get(session, id=payment_id)


async def list_payments(session: AsyncSession, *, application_id: UUID) -> list[Payment]:
    return await payments.get_multi(session, filters={"application_id": application_id}, limit=50)


async def find_open_payment(
    session: AsyncSession,
    *,
    application_id: UUID,
    milestone: Milestone,
    revision_cycle: int,
) -> Payment | None:
    """Pending or completed payment already raised for this gate, if any."""

    stmt = (
        select(Payment)
        .where(Payment.application_id == application_id)
        .where(Payment.milestone == int(milestone))
        .where(Payment.revision_cycle == revision_cycle)
        .where(Payment.status.in_([PaymentStatus.PENDING.value, PaymentStatus.COMPLETED.value]))
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def completed_milestones(
    session: AsyncSession,
    *,
    application_id: UUID,
    revision_cycle: int,
) -> frozenset[Milestone]:
    stmt = (
        select(Payment.milestone)
        .where(Payment.application_id == application_id)
        .where(Payment.revision_cycle == revision_cycle)
        .where(Payment.status == PaymentStatus.COMPLETED.value)
        .distinct()
    )
    res = await session.execute(stmt)
    return frozenset(Milestone(m) for m in res.scalars().all() if m in Milestone._value2member_map_)


async def mark_payment_status(
    session: AsyncSession,
    *,
    payment: Payment,
    status: PaymentStatus,
    paid_at: datetime | None = None,
    payment_method: str | None = None,
    gateway_payment_id: str | None = None,
) -> Payment:
    data: dict = {"status": status.value}
    if paid_at is not None:
        data["paid_at"] = paid_at
    if payment_method is not None:
        data["payment_method"] = payment_method
    if gateway_payment_id is not None:
        data["gateway_payment_id"] = gateway_payment_id
    return await payments.update(session, db_obj=payment, obj_in=data)


async def list_overdue_payments(session: AsyncSession, *, now: datetime, limit: int = 100) -> list[Payment]:
    stmt = (
        select(Payment)
        .where(Payment.status == PaymentStatus.PENDING.value)
        .where(Payment.due_date < now)
        .order_by(Payment.due_date.asc())
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def close_pending_payment(session: AsyncSession, *, payment_id: UUID, status: PaymentStatus) -> bool:
    """Move a payment out of PENDING. False when someone settled or closed it first."""

    stmt = (
        update(Payment)
        .where(Payment.id == payment_id)
        .where(Payment.status == PaymentStatus.PENDING.value)
        .values(status=status.value)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1
