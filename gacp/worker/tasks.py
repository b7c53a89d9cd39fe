from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gacp.config import settings
from gacp.crud.notification import get_notification, mark_notification_delivered
from gacp.services.assessment_service import AssessmentService
from gacp.services.errors import NotFoundError, WorkflowRejected
from gacp.services.payment_service import PaymentService
from gacp.worker.celery_app import EXPIRE_OVERDUE_PAYMENTS_TASK, celery_app
from gacp.worker.dispatch import DELIVER_NOTIFICATION_TASK, ISSUE_CERTIFICATE_TASK

logger = logging.getLogger("gacp.worker")

IN_APP_CHANNEL = "in_app"


async def _run(fn, *args):
    # Each task runs on a fresh event loop; pooled connections cannot cross loops.
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
        async with factory() as session:
            return await fn(session, *args)
    finally:
        await engine.dispose()


async def deliver(session: AsyncSession, notification_id: UUID) -> bool:
    notification = await get_notification(session, notification_id=notification_id)
    if notification is None:
        logger.warning("notification_missing notification_id=%s", notification_id)
        return False

    await mark_notification_delivered(session, notification=notification, channel=IN_APP_CHANNEL)
    await session.commit()
    logger.info(
        "notification_delivered notification_id=%s user_id=%s type=%s",
        notification.id,
        notification.user_id,
        notification.type,
    )
    return True


async def certify(session: AsyncSession, application_id: UUID) -> bool:
    try:
        _, certificate = await AssessmentService().certify(session, application_id=application_id)
    except (NotFoundError, WorkflowRejected) as e:
        # The application moved on (revoked, rescheduled, ...). Nothing to retry.
        logger.warning("certificate_not_issued application_id=%s reason=%s", application_id, e)
        return False

    logger.info(
        "certificate_task_done application_id=%s certificate_number=%s",
        application_id,
        certificate.certificate_number,
    )
    return True


async def expire_overdue(session: AsyncSession) -> int:
    cancelled = await PaymentService().expire_overdue(session)
    if cancelled:
        logger.info("overdue_payments_swept cancelled=%s", cancelled)
    return cancelled


@celery_app.task(name=DELIVER_NOTIFICATION_TASK)
def deliver_notification(notification_id: str) -> bool:
    return asyncio.run(_run(deliver, UUID(notification_id)))


@celery_app.task(name=ISSUE_CERTIFICATE_TASK)
def issue_certificate(application_id: str) -> bool:
    return asyncio.run(_run(certify, UUID(application_id)))


@celery_app.task(name=EXPIRE_OVERDUE_PAYMENTS_TASK)
def expire_overdue_payments() -> int:
    return asyncio.run(_run(expire_overdue))
