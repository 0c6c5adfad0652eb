from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import SiteStaffStatus
from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class SiteStaff(Base, TimestampMixin):
    """
    A hired candidate's employment record with the client organization.

    An active record removes the user from the admin candidate pool and lets
    them raise tickets.
    """

    __tablename__: str = "site_staff"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    candidate_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    job_request_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("job_requests.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    position_title: Mapped[str] = mapped_column(String(255), nullable=False)
    hired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    resigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[SiteStaffStatus] = mapped_column(
        enum_column(SiteStaffStatus, length=20),
        nullable=False,
        default=SiteStaffStatus.ACTIVE,
    )

    __table_args__ = (
        Index("idx_site_staff_user_id", "user_id"),
        Index("idx_site_staff_organization_id", "organization_id"),
        Index("idx_site_staff_status", "status"),
    )
