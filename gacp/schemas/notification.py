from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    id: UUID
    user_id: UUID

    type: str
    title: str
    message: str
    priority: str
    action_url: str | None = None
    related_id: UUID | None = None

    delivered_channels: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    read_at: datetime | None = None

    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
