"""
HR workspace endpoints: assigned job requests, candidate pool and delivery.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier, get_pagination_params
from api.routes.v1.admin import deliver_candidates
from api.schemas.candidates import CandidateUserOut
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.interviews import summary_row as interview_row
from api.schemas.job_requests import PushCandidatesRequest, summary_row
from api.services import admin as admin_service
from api.services import interviews as interview_service
from api.services import job_requests as job_request_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(prefix="/hr", tags=["HR"])


@router.get("/job-requests", summary="Assigned Job Requests")
async def list_assigned_job_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Job requests assigned to the calling HR user."""
    summaries = await job_request_service.list_assigned_job_requests(db, current_user)
    return ApiResponse.ok({"jobRequests": [summary_row(s) for s in summaries]})


@router.post(
    "/job-requests/{job_request_id}/candidates",
    summary="Deliver Candidates",
    description="Push up to five candidate users to an assigned job request.",
)
async def push_candidates(
    body: PushCandidatesRequest,
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    return await deliver_candidates(job_request_id, body, current_user, db, notifier, clock)


@router.get("/dashboard/stats", summary="HR Dashboard Stats")
async def dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await job_request_service.hr_dashboard_stats(db, current_user)
    return ApiResponse.ok({"stats": stats})


@router.get("/candidates", summary="Candidate Pool")
async def list_candidate_pool(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await admin_service.list_candidate_pool(db, current_user, pagination)
    page = PaginatedResponse[CandidateUserOut].create(
        [CandidateUserOut.model_validate(u) for u in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.get("/interviews", summary="Assigned Interviews")
async def list_assigned_interviews(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Interviews on job requests assigned to the calling HR user."""
    summaries = await interview_service.list_assigned_interviews(db, current_user, status_filter)
    return ApiResponse.ok({"interviews": [interview_row(s) for s in summaries]})
