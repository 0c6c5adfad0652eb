"""
Candidate pipeline endpoints.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier
from api.schemas.candidates import CandidateOut, CandidateStatusUpdate
from api.schemas.common import ApiResponse
from api.services import candidates as candidate_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(tags=["Candidates"])


@router.get("/job-requests/{job_request_id}/candidates", summary="List Candidates")
async def list_candidates(
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Candidates delivered to a job request, newest first."""
    candidates = await candidate_service.list_candidates(db, current_user, job_request_id)
    return ApiResponse.ok({"candidates": [CandidateOut.model_validate(c) for c in candidates]})


@router.get(
    "/candidates/{candidate_id}",
    summary="Get Candidate",
    description="The first read of a delivered candidate marks it viewed.",
)
async def get_candidate(
    candidate_id: int = Path(..., description="Candidate ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    candidate = await candidate_service.get_candidate(db, current_user, candidate_id, clock=clock)
    return ApiResponse.ok({"candidate": CandidateOut.model_validate(candidate)})


@router.put(
    "/candidates/{candidate_id}/status",
    summary="Update Candidate Status",
    description="Move a candidate along the pipeline. Hiring creates the site staff record.",
)
async def update_candidate_status(
    body: CandidateStatusUpdate,
    candidate_id: int = Path(..., description="Candidate ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    candidate = await candidate_service.update_candidate_status(
        db, current_user, candidate_id, body.status, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"candidate": CandidateOut.model_validate(candidate)},
        "Candidate status updated successfully",
    )
