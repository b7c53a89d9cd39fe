from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.application import BUDDHIST_ERA_OFFSET
from gacp.crud.base import BaseCRUD
from gacp.models.certificate import Certificate

CERTIFICATE_VALIDITY_YEARS = 3

certificates = BaseCRUD(Certificate)


def format_certificate_number(issued_at: datetime, suffix: str) -> str:
    """GACP<Buddhist era year><month><suffix>, e.g. GACP256910A1B2C3."""

    return f"GACP{issued_at.year + BUDDHIST_ERA_OFFSET}{issued_at.month:02d}{suffix.upper()}"


def certificate_expiry(issued_at: datetime) -> datetime:
    try:
        return issued_at.replace(year=issued_at.year + CERTIFICATE_VALIDITY_YEARS)
    except ValueError:
        # Issued on 29 February; the anniversary falls on the 28th.
        return issued_at.replace(year=issued_at.year + CERTIFICATE_VALIDITY_YEARS, day=28)


async def create_certificate(
    session: AsyncSession,
    *,
    application_id: UUID,
    issued_at: datetime | None = None,
) -> Certificate:
    issued_at = issued_at or datetime.now(timezone.utc)
    return await certificates.create(
        session,
        obj_in={
            "application_id": application_id,
            "certificate_number": format_certificate_number(issued_at, uuid4().hex[:6]),
            "issued_at": issued_at,
            "expires_at": certificate_expiry(issued_at),
        },
    )


async def get_certificate_for_application(session: AsyncSession, *, application_id: UUID) -> Certificate | None:
    res = await session.execute(select(Certificate).where(Certificate.application_id == application_id))
    return res.scalar_one_or_none()


async def get_certificate_by_number(session: AsyncSession, *, certificate_number: str) -> Certificate | None:
    stmt = select(Certificate).where(Certificate.certificate_number == certificate_number.upper())
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
