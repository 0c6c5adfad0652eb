"""Admin console schemas."""

from typing import Any, Optional

from pydantic import Field

from api.schemas.common import CamelModel, UtcDatetime
from database.models.users import UserType


class HrUserCreate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    password: Optional[str] = Field(None, min_length=1, max_length=72)


class UserOut(CamelModel):
    """Account view; never carries the password hash."""

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    user_type: UserType
    is_active: bool
    created_at: UtcDatetime


class ActivityLogOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    user_type: Optional[str] = None
    organization_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
    details: Optional[dict[str, Any]] = None
    created_at: UtcDatetime
