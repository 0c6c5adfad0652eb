"""Notification inbox schemas."""

from typing import Optional

from api.schemas.common import CamelModel, UtcDatetime
from database.models.notifications import NotificationType


class NotificationOut(CamelModel):
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    read: bool
    read_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime
