from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import InterviewStatus
from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class ParticipantRole(str, PyEnum):
    ORGANIZER = "organizer"
    ATTENDEE = "attendee"


class Interview(Base, TimestampMixin):
    """
    An interview for one candidate of one job request.
    """

    __tablename__: str = "interviews"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    job_request_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("job_requests.id", ondelete="CASCADE"), nullable=False
    )
    candidate_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_by_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    meeting_link: Mapped[str | None] = mapped_column(String(500))
    meeting_platform: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[InterviewStatus] = mapped_column(
        enum_column(InterviewStatus),
        nullable=False,
        default=InterviewStatus.SCHEDULED,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    feedback: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_interviews_job_request", "job_request_id"),
        Index("idx_interviews_candidate", "candidate_id"),
        Index("idx_interviews_scheduled_at", "scheduled_at"),
        Index("idx_interviews_status", "status"),
    )


class InterviewParticipant(Base):
    """
    A user on an interview's roster. One row per (interview, user).
    """

    __tablename__: str = "interview_participants"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    interview_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[ParticipantRole] = mapped_column(
        enum_column(ParticipantRole, length=20),
        nullable=False,
        default=ParticipantRole.ATTENDEE,
    )
    confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        UniqueConstraint("interview_id", "user_id", name="uq_interview_participant"),
        Index("idx_interview_participants_user", "user_id"),
    )
