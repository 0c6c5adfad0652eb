"""Invitation schemas."""

from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import InvitationStatus
from database.models.organizations import MembershipRole


class InvitationCreate(CamelModel):
    email: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, description="Membership role granted on acceptance")


class InvitationOut(TimestampFields):
    id: int
    organization_id: int
    invited_by_user_id: int
    email: str
    role: MembershipRole
    status: InvitationStatus
    verified_by_admin_id: Optional[int] = None
    verified_at: Optional[UtcDatetime] = None
    expires_at: UtcDatetime


class PublicInvitationOut(CamelModel):
    """What an unauthenticated holder of the token may see."""

    organization_id: int
    email: str
    role: MembershipRole
    status: InvitationStatus
    expires_at: UtcDatetime
