"""
Organization invitation endpoints.

Looking up an invitation by token is public; everything else needs a user.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier, get_pagination_params
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.invitations import InvitationCreate, InvitationOut, PublicInvitationOut
from api.schemas.organizations import MembershipOut
from api.services import invitations as invitation_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(tags=["Invitations"])


@router.post(
    "/organizations/{organization_id}/invitations",
    status_code=status.HTTP_201_CREATED,
    summary="Invite User",
    description="Requires membership role hr_coordinator or coo. Admins approve before the link works.",
)
async def create_invitation(
    body: InvitationCreate,
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    invitation = await invitation_service.create_invitation(
        db,
        current_user,
        organization_id,
        email=body.email,
        role=body.role,
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok(
        {"invitation": InvitationOut.model_validate(invitation)},
        "Invitation created and pending admin approval",
    )


@router.get("/organizations/{organization_id}/invitations", summary="List Invitations")
async def list_invitations(
    organization_id: int = Path(..., description="Organization ID"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await invitation_service.list_invitations(
        db, current_user, organization_id, pagination
    )
    page = PaginatedResponse[InvitationOut].create(
        [InvitationOut.model_validate(i) for i in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.get("/invitations/token/{token}", summary="Get Invitation By Token")
async def get_invitation_by_token(
    token: str = Path(..., description="Invitation token"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Public. An expired invitation is marked expired and rejected."""
    invitation = await invitation_service.get_invitation_by_token(db, token, clock=clock)
    return ApiResponse.ok({"invitation": PublicInvitationOut.model_validate(invitation)})


@router.post("/invitations/token/{token}/accept", summary="Accept Invitation")
async def accept_invitation(
    token: str = Path(..., description="Invitation token"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    membership = await invitation_service.accept_invitation(
        db, current_user, token, clock=clock
    )
    return ApiResponse.ok(
        {"membership": MembershipOut.model_validate(membership)},
        "Invitation accepted successfully",
    )
