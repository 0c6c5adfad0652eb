from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class UserType(str, PyEnum):
    """
    Global account type. Fixed at registration.
    """

    ADMIN = "admin"
    HR = "hr"
    CLIENT = "client"
    CANDIDATE = "candidate"


class User(Base, TimestampMixin):
    """
    Platform account. Candidates carry profile fields that are snapshotted onto
    Candidate rows when HR pushes them to a job request.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    user_type: Mapped[UserType] = mapped_column(
        enum_column(UserType, length=20), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Candidate profile
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    portfolio_url: Mapped[str | None] = mapped_column(String(500))
    resume_path: Mapped[str | None] = mapped_column(String(500))
    profile_summary: Mapped[str | None] = mapped_column(Text)

    # Client company details
    company_name: Mapped[str | None] = mapped_column(String(255))

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("idx_users_user_type", "user_type"),)

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        return f"{self.first_name} {self.last_name}".strip()
