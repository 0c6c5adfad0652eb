from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId


# ============ Audit Enums ============ #
class ActivityAction(str, PyEnum):
    """Recorded actions on hiring entities."""

    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    CANDIDATES_PUSHED = "candidates_pushed"
    VIEWED = "viewed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PARTICIPANT_ADDED = "participant_added"
    PARTICIPANT_REMOVED = "participant_removed"
    RESCHEDULED = "rescheduled"
    HIRED = "hired"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    MESSAGE_ADDED = "message_added"


class EntityType(str, PyEnum):
    ORGANIZATION = "organization"
    JOB_REQUEST = "job_request"
    CANDIDATE = "candidate"
    INTERVIEW = "interview"
    TICKET = "ticket"
    INVITATION = "invitation"
    SITE_STAFF = "site_staff"


# ==================== Models ===================== #
class ActivityLog(Base):
    """
    Audit trail row. Written inside the transaction of the change it records.
    """

    __tablename__: str = "activity_logs"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )
    user_type: Mapped[str | None] = mapped_column(String(20))
    organization_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="SET NULL")
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(BigIntId)
    old_value: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        Index("idx_activity_logs_entity", "entity_type", "entity_id"),
        Index("idx_activity_logs_org", "organization_id"),
        Index("idx_activity_logs_user", "user_id"),
        Index("idx_activity_logs_created", "created_at"),
    )
