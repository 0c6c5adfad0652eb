from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, enum_column


class NotificationType(str, PyEnum):
    INVITATION_SENT = "invitation_sent"
    INVITATION_APPROVED = "invitation_approved"
    INVITATION_REJECTED = "invitation_rejected"
    JOB_REQUEST_RECEIVED = "job_request_received"
    JOB_ASSIGNED = "job_assigned"
    CANDIDATES_DELIVERED = "candidates_delivered"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_REMINDER = "interview_reminder"
    SELECTION_REMINDER = "selection_reminder"
    STATUS_UPDATE = "status_update"
    ORGANIZATION_ACTIVATED = "organization_activated"
    TICKET_CREATED = "ticket_created"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_MESSAGE = "ticket_message"
    TICKET_STATUS_CHANGED = "ticket_status_changed"


class Notification(Base):
    """
    In-app notification. Rows are written in the same transaction as the state
    change that caused them and delivered afterwards by a Celery worker.
    """

    __tablename__: str = "notifications"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_type: Mapped[str | None] = mapped_column(String(50))
    related_entity_id: Mapped[int | None] = mapped_column(BigIntId)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "read"),
        Index("idx_notifications_created", "created_at"),
        Index("idx_notifications_entity", "related_entity_type", "related_entity_id"),
    )
