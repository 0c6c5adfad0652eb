"""Job request schemas."""

from typing import Any, Optional

from pydantic import Field

from api.schemas.candidates import CandidateOut
from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import JobRequestStatus
from database.models.job_requests import JobRequestPriority


class JobRequestCreate(CamelModel):
    """Body for submitting a job request. Presence is checked by the service."""

    title: Optional[str] = Field(None, max_length=255)
    job_description: Optional[str] = None
    department_id: Optional[int] = None
    hiring_manager_user_id: Optional[int] = None
    requirements: Optional[str] = None
    timeline_to_hire: Optional[str] = Field(None, max_length=100, description="e.g. '4 weeks'")
    priority: Optional[str] = Field(None, description="low, normal, high or urgent")


class JobRequestUpdate(CamelModel):
    """Partial update; only fields present in the body are applied."""

    title: Optional[str] = None
    job_description: Optional[str] = None
    requirements: Optional[str] = None
    timeline_to_hire: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to_hr_user_id: Optional[int] = None
    hiring_manager_user_id: Optional[int] = None


class AssignHrRequest(CamelModel):
    hr_user_id: Optional[int] = Field(None, description="HR user to assign")


class PushCandidatesRequest(CamelModel):
    candidate_user_ids: Optional[list[Any]] = Field(
        None, description="Candidate user IDs to deliver (at most 5 per call)"
    )


class JobRequestOut(TimestampFields):
    id: int
    organization_id: int
    department_id: Optional[int] = None
    requested_by_user_id: int
    hiring_manager_user_id: Optional[int] = None
    assigned_to_hr_user_id: Optional[int] = None
    title: str
    job_description: str
    requirements: Optional[str] = None
    timeline_to_hire: Optional[str] = None
    priority: JobRequestPriority
    status: JobRequestStatus
    assigned_at: Optional[UtcDatetime] = None
    candidates_delivered_at: Optional[UtcDatetime] = None
    candidate_count: Optional[int] = None
    interview_count: Optional[int] = None


def summary_row(summary) -> JobRequestOut:
    out = JobRequestOut.model_validate(summary.job_request)
    out.candidate_count = summary.candidate_count
    out.interview_count = summary.interview_count
    return out


class PushResultOut(CamelModel):
    job_request: JobRequestOut
    candidates: list[CandidateOut]
