"""
Interview scheduling and management endpoints.

Scheduling cascades the candidate to ``interview_scheduled`` and the job
request to ``interviews_scheduled`` in the same transaction.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier
from api.schemas.common import ApiResponse
from api.schemas.interviews import (
    InterviewCreate,
    InterviewUpdate,
    ParticipantAdd,
    ParticipantOut,
    detail_row,
    summary_row,
)
from api.services import interviews as interview_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.interviews import ParticipantRole
from database.models.users import User

router = APIRouter(tags=["Interviews"])


@router.post(
    "/interviews",
    status_code=status.HTTP_201_CREATED,
    summary="Schedule Interview",
    description="Schedule an interview for a delivered candidate. The caller becomes the organizer.",
)
async def create_interview(
    body: InterviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    detail = await interview_service.create_interview(
        db,
        current_user,
        job_request_id=body.job_request_id,
        candidate_id=body.candidate_id,
        scheduled_at=body.scheduled_at,
        duration_minutes=body.duration_minutes,
        meeting_link=body.meeting_link,
        meeting_platform=body.meeting_platform,
        notes=body.notes,
        participant_user_ids=body.participant_user_ids,
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok({"interview": detail_row(detail)}, "Interview scheduled successfully")


@router.get("/interviews/participant/me", summary="My Interviews")
async def list_my_interviews(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Interviews the caller is on the roster of."""
    summaries = await interview_service.list_my_interviews(db, current_user, status_filter)
    return ApiResponse.ok({"interviews": [summary_row(s) for s in summaries]})


@router.get("/interviews/{interview_id}", summary="Get Interview Details")
async def get_interview(
    interview_id: int = Path(..., description="Interview ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await interview_service.get_interview(db, current_user, interview_id)
    return ApiResponse.ok({"interview": detail_row(detail)})


@router.put(
    "/interviews/{interview_id}",
    summary="Update Interview",
    description="Reschedule, edit or change status. Completing the interview moves the candidate on.",
)
async def update_interview(
    body: InterviewUpdate,
    interview_id: int = Path(..., description="Interview ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    detail = await interview_service.update_interview(
        db,
        current_user,
        interview_id,
        body.model_dump(exclude_unset=True),
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok({"interview": detail_row(detail)}, "Interview updated successfully")


@router.get("/job-requests/{job_request_id}/interviews", summary="List Job Request Interviews")
async def list_job_request_interviews(
    job_request_id: int = Path(..., description="Job request ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await interview_service.list_job_request_interviews(
        db, current_user, job_request_id
    )
    return ApiResponse.ok({"interviews": [summary_row(s) for s in summaries]})


@router.get("/organizations/{organization_id}/interviews", summary="List Organization Interviews")
async def list_organization_interviews(
    organization_id: int = Path(..., description="Organization ID"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await interview_service.list_organization_interviews(
        db, current_user, organization_id, status_filter
    )
    return ApiResponse.ok({"interviews": [summary_row(s) for s in summaries]})


@router.get(
    "/organizations/{organization_id}/interviews/upcoming",
    summary="Upcoming Interviews",
)
async def list_upcoming_interviews(
    organization_id: int = Path(..., description="Organization ID"),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Scheduled, confirmed or rescheduled interviews that have not started yet."""
    summaries = await interview_service.list_upcoming_interviews(
        db, current_user, organization_id, limit=limit, clock=clock
    )
    return ApiResponse.ok({"interviews": [summary_row(s) for s in summaries]})


@router.post("/interviews/{interview_id}/participants", summary="Add Participant")
async def add_participant(
    body: ParticipantAdd,
    interview_id: int = Path(..., description="Interview ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    """Adding a user who is already on the roster changes nothing."""
    participant, created = await interview_service.add_participant(
        db,
        current_user,
        interview_id,
        body.user_id,
        body.role or ParticipantRole.ATTENDEE,
        notifier=notifier,
        clock=clock,
    )
    payload = ApiResponse.ok(
        {"participant": ParticipantOut.model_validate(participant)},
        "Participant added successfully" if created else "User is already a participant",
    )
    return JSONResponse(
        payload, status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


@router.delete("/interviews/{interview_id}/participants/{user_id}", summary="Remove Participant")
async def remove_participant(
    interview_id: int = Path(..., description="Interview ID"),
    user_id: int = Path(..., description="User ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    await interview_service.remove_participant(
        db, current_user, interview_id, user_id, clock=clock
    )
    return ApiResponse.ok(message="Participant removed successfully")
