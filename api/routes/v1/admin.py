"""
Admin console endpoints.

Every service called here checks the admin policy itself, so denial messages
name the specific capability.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier, get_pagination_params
from api.schemas.admin import ActivityLogOut, HrUserCreate, UserOut
from api.schemas.candidates import CandidateOut, CandidateUserOut
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.interviews import summary_row as interview_row
from api.schemas.invitations import InvitationOut
from api.schemas.job_requests import (
    AssignHrRequest,
    JobRequestOut,
    PushCandidatesRequest,
    summary_row,
)
from api.schemas.organizations import OrganizationOut
from api.services import admin as admin_service
from api.services import interviews as interview_service
from api.services import invitations as invitation_service
from api.services import job_requests as job_request_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(prefix="/admin", tags=["Admin"])


# ---------- Job requests ---------- #

@router.post(
    "/job-requests/{job_request_id}/assign-hr",
    summary="Assign HR",
    description="Point a job request at an HR user and notify them.",
)
async def assign_hr(
    body: AssignHrRequest,
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    job_request = await job_request_service.assign_hr(
        db, current_user, job_request_id, body.hr_user_id, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"jobRequest": JobRequestOut.model_validate(job_request)},
        "HR assigned successfully",
    )


async def deliver_candidates(
    job_request_id: int,
    body: PushCandidatesRequest,
    current_user: User,
    db: AsyncSession,
    notifier: Notifier,
    clock: Clock,
) -> JSONResponse:
    """Shared by the admin and HR push endpoints."""
    result = await job_request_service.push_candidates(
        db,
        current_user,
        job_request_id,
        body.candidate_user_ids,
        notifier=notifier,
        clock=clock,
    )
    payload = ApiResponse.ok(
        {
            "jobRequest": JobRequestOut.model_validate(result.job_request),
            "candidates": [CandidateOut.model_validate(c) for c in result.candidates],
        },
        result.message,
    )
    return JSONResponse(
        payload,
        status_code=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
    )


@router.post("/job-requests/{job_request_id}/candidates", summary="Deliver Candidates")
async def push_candidates(
    body: PushCandidatesRequest,
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    return await deliver_candidates(job_request_id, body, current_user, db, notifier, clock)


@router.get("/job-requests", summary="List All Job Requests")
async def list_all_job_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await job_request_service.list_all_job_requests(db, current_user, status_filter)
    return ApiResponse.ok({"jobRequests": [summary_row(s) for s in summaries]})


# ---------- HR users ---------- #

@router.post("/hr-users", status_code=status.HTTP_201_CREATED, summary="Create HR User")
async def create_hr_user(
    body: HrUserCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    hr_user = await admin_service.create_hr_user(
        db,
        current_user,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
        password=body.password,
        clock=clock,
    )
    return ApiResponse.ok({"user": UserOut.model_validate(hr_user)}, "HR user created successfully")


@router.get("/hr-users", summary="List HR Users")
async def list_hr_users(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await admin_service.list_hr_users(db, current_user)
    return ApiResponse.ok({"users": [UserOut.model_validate(u) for u in users]})


# ---------- Invitations ---------- #

@router.get("/invitations", summary="List Invitations")
async def list_invitations(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, approved, ..."),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await invitation_service.list_all_invitations(
        db, current_user, pagination, status_filter
    )
    page = PaginatedResponse[InvitationOut].create(
        [InvitationOut.model_validate(i) for i in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.post("/invitations/{invitation_id}/approve", summary="Approve Invitation")
async def approve_invitation(
    invitation_id: int = Path(..., description="Invitation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    invitation = await invitation_service.review_invitation(
        db, current_user, invitation_id, approve=True, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {
            "invitation": InvitationOut.model_validate(invitation),
            "link": invitation_service.invitation_link(invitation),
        },
        "Invitation approved successfully",
    )


@router.post("/invitations/{invitation_id}/reject", summary="Reject Invitation")
async def reject_invitation(
    invitation_id: int = Path(..., description="Invitation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    invitation = await invitation_service.review_invitation(
        db, current_user, invitation_id, approve=False, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"invitation": InvitationOut.model_validate(invitation)},
        "Invitation rejected",
    )


@router.get("/invitations/{invitation_id}/link", summary="Get Invitation Link")
async def get_invitation_link(
    invitation_id: int = Path(..., description="Invitation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    invitation, link = await invitation_service.get_invitation_link(
        db, current_user, invitation_id
    )
    return ApiResponse.ok({"invitation": InvitationOut.model_validate(invitation), "link": link})


# ---------- Organizations ---------- #

@router.get("/organizations", summary="List All Organizations")
async def list_organizations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    organizations = await admin_service.list_organizations(db, current_user)
    return ApiResponse.ok(
        {"organizations": [OrganizationOut.model_validate(o) for o in organizations]}
    )


@router.post("/organizations/{organization_id}/activate", summary="Activate Organization")
async def activate_organization(
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    organization = await admin_service.set_organization_status(
        db, current_user, organization_id, active=True, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"organization": OrganizationOut.model_validate(organization)},
        "Organization activated successfully",
    )


@router.post("/organizations/{organization_id}/deactivate", summary="Deactivate Organization")
async def deactivate_organization(
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    organization = await admin_service.set_organization_status(
        db, current_user, organization_id, active=False, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"organization": OrganizationOut.model_validate(organization)},
        "Organization deactivated successfully",
    )


# ---------- Candidates, interviews, audit ---------- #

@router.get("/candidates", summary="Available Candidates")
async def list_available_candidates(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Candidate accounts without an active site staff record."""
    items, total = await admin_service.list_available_candidates(db, current_user, pagination)
    page = PaginatedResponse[CandidateUserOut].create(
        [CandidateUserOut.model_validate(u) for u in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.get("/interviews", summary="List All Interviews")
async def list_all_interviews(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await interview_service.list_all_interviews(db, current_user, status_filter)
    return ApiResponse.ok({"interviews": [interview_row(s) for s in summaries]})


@router.get("/activity-logs", summary="Activity Logs")
async def list_activity_logs(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[int] = Query(None, alias="entityId"),
    action: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, alias="userId"),
    organization_id: Optional[int] = Query(None, alias="organizationId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await admin_service.activity_logs(
        db,
        current_user,
        pagination,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        organization_id=organization_id,
        start_date=start_date,
        end_date=end_date,
    )
    page = PaginatedResponse[ActivityLogOut].create(
        [ActivityLogOut.model_validate(log) for log in items], total, pagination
    )
    return ApiResponse.ok(page)
