"""Interview schemas."""

from typing import Any, Optional

from pydantic import Field

from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import InterviewStatus
from database.models.interviews import ParticipantRole


class InterviewCreate(CamelModel):
    """Request model for scheduling an interview."""

    job_request_id: Optional[int] = Field(None, description="Job request the interview is for")
    candidate_id: Optional[int] = Field(None, description="Candidate being interviewed")
    scheduled_at: Optional[Any] = Field(
        None, description="Zone-qualified ISO 8601 instant, e.g. 2030-05-01T09:00:00Z"
    )
    duration_minutes: Optional[int] = Field(None, description="Defaults to 60")
    meeting_link: Optional[str] = Field(None, max_length=500)
    meeting_platform: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    participant_user_ids: Optional[list[int]] = Field(
        None, description="Users to invite as attendees"
    )


class InterviewUpdate(CamelModel):
    """Partial update; only fields present in the body are applied."""

    scheduled_at: Optional[Any] = None
    duration_minutes: Optional[int] = None
    meeting_link: Optional[str] = None
    meeting_platform: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    feedback: Optional[str] = None


class ParticipantAdd(CamelModel):
    user_id: Optional[int] = None
    role: Optional[str] = Field(None, description="organizer or attendee; defaults to attendee")


class ParticipantOut(CamelModel):
    id: int
    interview_id: int
    user_id: int
    role: ParticipantRole
    confirmed: bool
    confirmed_at: Optional[UtcDatetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class InterviewOut(TimestampFields):
    id: int
    job_request_id: int
    candidate_id: int
    scheduled_by_user_id: int
    scheduled_at: UtcDatetime
    duration_minutes: int
    meeting_link: Optional[str] = None
    meeting_platform: Optional[str] = None
    status: InterviewStatus
    notes: Optional[str] = None
    feedback: Optional[str] = None
    candidate_name: Optional[str] = None
    job_request_title: Optional[str] = None
    participants: Optional[list[ParticipantOut]] = None


def detail_row(detail) -> InterviewOut:
    out = InterviewOut.model_validate(detail.interview)
    out.participants = [ParticipantOut.model_validate(p) for p in detail.participants]
    return out


def summary_row(summary) -> InterviewOut:
    out = InterviewOut.model_validate(summary.interview)
    out.candidate_name = summary.candidate_name
    out.job_request_title = summary.job_request_title
    return out
