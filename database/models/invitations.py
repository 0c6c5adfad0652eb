from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import InvitationStatus
from database.engine import Base
from database.models.organizations import MembershipRole
from database.mixins import BigIntId, TimestampMixin, enum_column


class UserInvitation(Base, TimestampMixin):
    """
    Token-bearing invitation to join an organization. Admins approve it before
    the link can be shared; expiry is checked when the token is read.
    """

    __tablename__: str = "user_invitations"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    invited_by_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[MembershipRole] = mapped_column(
        enum_column(MembershipRole), nullable=False
    )
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[InvitationStatus] = mapped_column(
        enum_column(InvitationStatus, length=20),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    verified_by_admin_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_invitations_org", "organization_id"),
        Index("idx_invitations_email", "email"),
        Index("idx_invitations_status", "status"),
    )
