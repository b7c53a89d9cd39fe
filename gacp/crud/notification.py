from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.base import BaseCRUD
from gacp.models.notification import Notification
from gacp.workflow.notifications import NotificationIntent

notifications = BaseCRUD(Notification)


async def create_notification(session: AsyncSession, *, intent: NotificationIntent) -> Notification:
    return await notifications.create(session, obj_in=intent.as_dict())


async def get_notification(session: AsyncSession, *, notification_id: UUID) -> Notification | None:
    return await notifications.get(session, id=notification_id)


async def list_notifications(
    session: AsyncSession,
    *,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    filters: dict = {"user_id": user_id}
    if unread_only:
        filters["is_read"] = False
    return await notifications.get_multi(session, filters=filters, limit=max(1, min(limit, 50)))


async def mark_notification_read(session: AsyncSession, *, notification: Notification) -> Notification:
    if notification.is_read:
        return notification
    return await notifications.update(
        session,
        db_obj=notification,
        obj_in={"is_read": True, "read_at": datetime.now(timezone.utc)},
    )


async def mark_notification_delivered(
    session: AsyncSession,
    *,
    notification: Notification,
    channel: str,
) -> Notification:
    channels = dict(notification.delivered_channels or {})
    channels[channel] = datetime.now(timezone.utc).isoformat()
    return await notifications.update(session, db_obj=notification, obj_in={"delivered_channels": channels})
