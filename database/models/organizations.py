from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


# ==================== Enums ===================== #
class OrganizationStatus(str, PyEnum):
    """
    Whether members may use client-portal features.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"


class MembershipRole(str, PyEnum):
    """
    Roles within a client organization.
    """

    COO = "coo"
    HR_COORDINATOR = "hr_coordinator"
    HR_COO = "hr_coo"
    MANAGER = "manager"
    MEMBER = "member"


# ==================== Models ===================== #
class Organization(Base, TimestampMixin):
    """
    A tenant: the client company submitting job requests.
    """

    __tablename__: str = "organizations"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    industry: Mapped[str | None] = mapped_column(String(255))
    company_size: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[OrganizationStatus] = mapped_column(
        enum_column(OrganizationStatus, length=20),
        nullable=False,
        default=OrganizationStatus.INACTIVE,
    )

    __table_args__ = (Index("idx_organizations_status", "status"),)


class Department(Base, TimestampMixin):
    """
    Optional subdivision of an organization.
    """

    __tablename__: str = "departments"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_departments_org_name"),
        Index("idx_departments_organization", "organization_id"),
    )


class UserOrganization(Base):
    """
    Membership of a user in an organization. The sole anchor for client-side
    authorization.
    """

    __tablename__: str = "user_organizations"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    department_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("departments.id", ondelete="SET NULL")
    )
    role: Mapped[MembershipRole] = mapped_column(
        enum_column(MembershipRole),
        nullable=False,
        default=MembershipRole.MEMBER,
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_user_organizations"),
        Index("idx_user_orgs_user", "user_id"),
        Index("idx_user_orgs_org", "organization_id"),
    )
