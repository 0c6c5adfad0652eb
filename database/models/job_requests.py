from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import JobRequestStatus
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class JobRequestPriority(str, PyEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class JobRequest(Base, TimestampMixin):
    """
    Root of the hiring lifecycle: a client organization's request to fill a role.

    ``status`` only changes through core.lifecycle.attempt_transition.
    """

    __tablename__: str = "job_requests"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    department_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="SET NULL")
    )
    requested_by_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    hiring_manager_user_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )
    assigned_to_hr_user_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    job_description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text)
    timeline_to_hire: Mapped[str | None] = mapped_column(String(100))
    priority: Mapped[JobRequestPriority] = mapped_column(
        enum_column(JobRequestPriority, length=20),
        nullable=False,
        default=JobRequestPriority.NORMAL,
    )
    status: Mapped[JobRequestStatus] = mapped_column(
        enum_column(JobRequestStatus),
        nullable=False,
        default=JobRequestStatus.RECEIVED,
    )

    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    candidates_delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    __table_args__ = (
        Index("idx_job_requests_org", "organization_id"),
        Index("idx_job_requests_dept", "department_id"),
        Index("idx_job_requests_status", "status"),
        Index("idx_job_requests_assigned_hr", "assigned_to_hr_user_id"),
    )
