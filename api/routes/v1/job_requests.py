"""
Job request endpoints for client organizations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier
from api.schemas.candidates import CandidateOut
from api.schemas.common import ApiResponse
from api.schemas.interviews import InterviewOut
from api.schemas.job_requests import (
    JobRequestCreate,
    JobRequestOut,
    JobRequestUpdate,
    summary_row,
)
from api.services import job_requests as job_request_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(tags=["Job Requests"])


@router.post(
    "/organizations/{organization_id}/job-requests",
    status_code=status.HTTP_201_CREATED,
    summary="Create Job Request",
    description="Submit a hiring request. The caller must be a member of the organization.",
)
async def create_job_request(
    body: JobRequestCreate,
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    job_request = await job_request_service.create_job_request(
        db,
        current_user,
        organization_id,
        title=body.title,
        job_description=body.job_description,
        department_id=body.department_id,
        hiring_manager_user_id=body.hiring_manager_user_id,
        requirements=body.requirements,
        timeline_to_hire=body.timeline_to_hire,
        priority=body.priority,
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok(
        {"jobRequest": JobRequestOut.model_validate(job_request)},
        "Job request created successfully",
    )


@router.get(
    "/organizations/{organization_id}/job-requests",
    summary="List Job Requests",
)
async def list_job_requests(
    organization_id: int = Path(..., description="Organization ID"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Job requests of an organization with candidate and interview counts."""
    summaries = await job_request_service.list_job_requests(
        db, current_user, organization_id, status=status_filter, department_id=department_id
    )
    return ApiResponse.ok({"jobRequests": [summary_row(s) for s in summaries]})


@router.get(
    "/organizations/{organization_id}/job-requests/statistics",
    summary="Job Request Statistics",
)
async def job_request_statistics(
    organization_id: int = Path(..., description="Organization ID"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Count of job requests per status, plus ``total``."""
    stats = await job_request_service.job_request_statistics(
        db, current_user, organization_id, department_id=department_id
    )
    return ApiResponse.ok({"statistics": stats})


@router.get("/departments/{department_id}/job-requests", summary="List Department Job Requests")
async def list_department_job_requests(
    department_id: int = Path(..., description="Department ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await job_request_service.list_department_job_requests(
        db, current_user, department_id
    )
    return ApiResponse.ok({"jobRequests": [summary_row(s) for s in summaries]})


@router.get("/job-requests/{job_request_id}", summary="Get Job Request")
async def get_job_request(
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Job request with its candidates and interviews."""
    detail = await job_request_service.get_job_request(db, current_user, job_request_id)
    return ApiResponse.ok(
        {
            "jobRequest": JobRequestOut.model_validate(detail.job_request),
            "candidates": [CandidateOut.model_validate(c) for c in detail.candidates],
            "interviews": [InterviewOut.model_validate(i) for i in detail.interviews],
        }
    )


@router.put(
    "/job-requests/{job_request_id}",
    summary="Update Job Request",
    description="Partial update. Status changes must follow the job request lifecycle.",
)
async def update_job_request(
    body: JobRequestUpdate,
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    job_request = await job_request_service.update_job_request(
        db,
        current_user,
        job_request_id,
        body.model_dump(exclude_unset=True),
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok(
        {"jobRequest": JobRequestOut.model_validate(job_request)},
        "Job request updated successfully",
    )
