"""Candidate-related Pydantic schemas."""

from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import CandidateStatus
from database.models.users import UserType


class CandidateStatusUpdate(CamelModel):
    """Schema for moving a candidate along the pipeline."""

    status: Optional[str] = Field(None, description="Target candidate status")


class CandidateOut(TimestampFields):
    """Candidate snapshot delivered to a job request."""

    id: int = Field(description="Unique candidate identifier")
    job_request_id: int
    user_id: Optional[int] = Field(None, description="Source candidate account, if any")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_path: Optional[str] = None
    profile_summary: Optional[str] = None
    status: CandidateStatus
    delivered_at: UtcDatetime
    viewed_at: Optional[UtcDatetime] = None


class CandidateUserOut(CamelModel):
    """Candidate account in the talent pool."""

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    user_type: UserType
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    profile_summary: Optional[str] = None
    created_at: UtcDatetime
