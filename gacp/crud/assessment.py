from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.base import BaseCRUD
from gacp.models.assessment import Assessment
from gacp.workflow.status import AssessmentStatus

assessments = BaseCRUD(Assessment)


async def get_assessment(session: AsyncSession, *, assessment_id: UUID) -> Assessment | None:
    return await assessments.get(session, id=assessment_id)


async def list_assessments(session: AsyncSession, *, application_id: UUID) -> list[Assessment]:
    return await assessments.get_multi(session, filters={"application_id": application_id}, limit=50)


async def latest_assessment(session: AsyncSession, *, application_id: UUID) -> Assessment | None:
    stmt = (
        select(Assessment)
        .where(Assessment.application_id == application_id)
        .where(Assessment.status != AssessmentStatus.CANCELLED.value)
        .order_by(Assessment.created_at.desc(), Assessment.scheduled_at.desc())
        .limit(1)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def has_passed_assessment(session: AsyncSession, *, application_id: UUID) -> bool:
    """True when the latest live assessment is COMPLETED with a pass."""

    latest = await latest_assessment(session, application_id=application_id)
    return latest is not None and latest.status == AssessmentStatus.COMPLETED.value and bool(latest.passed)


async def cancel_open_assessments(session: AsyncSession, *, application_id: UUID) -> int:
    """Cancel SCHEDULED assessments, e.g. when the visit is rescheduled."""

    stmt = (
        select(Assessment)
        .where(Assessment.application_id == application_id)
        .where(Assessment.status == AssessmentStatus.SCHEDULED.value)
    )
    res = await session.execute(stmt)
    rows = list(res.scalars().all())
    for row in rows:
        await assessments.update(session, db_obj=row, obj_in={"status": AssessmentStatus.CANCELLED.value})
    return len(rows)


async def create_assessment(
    session: AsyncSession,
    *,
    application_id: UUID,
    auditor_id: UUID,
    type: str,
    scheduled_at,
    meeting_url: str | None = None,
    onsite_address: str | None = None,
) -> Assessment:
    return await assessments.create(
        session,
        obj_in={
            "application_id": application_id,
            "auditor_id": auditor_id,
            "type": type,
            "status": AssessmentStatus.SCHEDULED.value,
            "scheduled_at": scheduled_at,
            "meeting_url": meeting_url,
            "onsite_address": onsite_address,
        },
    )
