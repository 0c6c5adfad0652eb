from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import CandidateStatus
from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class Candidate(Base, TimestampMixin):
    """
    A candidate delivered to one job request.

    Contact and profile fields are a snapshot of the candidate's user account
    at push time; later profile edits do not propagate.
    """

    __tablename__: str = "candidates"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    job_request_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("job_requests.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    portfolio_url: Mapped[str | None] = mapped_column(String(500))
    resume_path: Mapped[str | None] = mapped_column(String(500))
    profile_summary: Mapped[str | None] = mapped_column(Text)

    status: Mapped[CandidateStatus] = mapped_column(
        enum_column(CandidateStatus),
        nullable=False,
        default=CandidateStatus.DELIVERED,
    )
    delivered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("job_request_id", "user_id", name="uq_candidates_job_user"),
        Index("idx_candidates_job_request", "job_request_id"),
        Index("idx_candidates_user", "user_id"),
        Index("idx_candidates_status", "status"),
    )
