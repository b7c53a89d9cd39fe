from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.api.v1.deps import parse_path_uuid, parse_query_uuid
from gacp.crud.notification import get_notification, list_notifications, mark_notification_read
from gacp.database import get_db
from gacp.schemas.notification import NotificationListResponse, NotificationRead

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications_endpoint(
    user_id: str = Query(..., description="Recipient UUID"),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=50),
    session: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    user_uuid = parse_query_uuid(user_id, name="user_id")

    items = await list_notifications(session, user_id=user_uuid, unread_only=unread_only, limit=limit)
    return NotificationListResponse(items=[NotificationRead.model_validate(n) for n in items])


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read_endpoint(
    notification_id: str,
    session: AsyncSession = Depends(get_db),
) -> NotificationRead:
    nid = parse_path_uuid(notification_id, entity="Notification")

    notification = await get_notification(session, notification_id=nid)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification = await mark_notification_read(session, notification=notification)
    await session.commit()
    return NotificationRead.model_validate(notification)
