"""Organization, membership and department schemas."""

from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import SiteStaffStatus
from database.models.organizations import MembershipRole, OrganizationStatus
from database.models.users import UserType


class OrganizationCreate(CamelModel):
    name: Optional[str] = Field(None, max_length=255, description="Unique organization name")
    industry: Optional[str] = Field(None, max_length=255)
    company_size: Optional[str] = Field(None, max_length=50, description="e.g. 11-50")


class OrganizationOut(TimestampFields):
    id: int
    name: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    status: OrganizationStatus


class MembershipOut(CamelModel):
    id: int
    user_id: int
    organization_id: int
    department_id: Optional[int] = None
    role: MembershipRole
    is_primary: bool
    joined_at: UtcDatetime


class MyOrganizationOut(OrganizationOut):
    """Organization as seen by one of its members."""

    role: MembershipRole
    is_primary: bool


class MemberOut(CamelModel):
    id: int = Field(description="User ID")
    email: str
    first_name: str
    last_name: str
    user_type: UserType
    role: MembershipRole
    is_primary: bool
    joined_at: UtcDatetime


class DepartmentCreate(CamelModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class DepartmentOut(TimestampFields):
    id: int
    organization_id: int
    name: str
    description: Optional[str] = None


class SiteStaffOut(TimestampFields):
    id: int
    user_id: int
    candidate_id: int
    job_request_id: int
    organization_id: int
    position_title: str
    hired_at: UtcDatetime
    resigned_at: Optional[UtcDatetime] = None
    status: SiteStaffStatus


class StaffMemberOut(CamelModel):
    """Roster entry: the user plus their active engagement."""

    id: int = Field(description="User ID")
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    user_type: UserType
    staff_id: int
    position_title: str
    hired_at: UtcDatetime


def membership_row(organization, membership) -> MyOrganizationOut:
    base = OrganizationOut.model_validate(organization).model_dump()
    return MyOrganizationOut(
        **base, role=membership.role, is_primary=membership.is_primary
    )


def member_row(view) -> MemberOut:
    user, membership = view.user, view.membership
    return MemberOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        user_type=user.user_type,
        role=membership.role,
        is_primary=membership.is_primary,
        joined_at=membership.joined_at,
    )


def staff_row(view) -> StaffMemberOut:
    user, staff = view.user, view.staff
    return StaffMemberOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        user_type=user.user_type,
        staff_id=staff.id,
        position_title=staff.position_title,
        hired_at=staff.hired_at,
    )
