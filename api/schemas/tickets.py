"""Support ticket schemas."""

from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, TimestampFields, UtcDatetime
from core.lifecycle import TicketStatus
from database.models.tickets import TicketType


class TicketCreate(CamelModel):
    ticket_type: Optional[str] = Field(None, description="hr or it")
    subject: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class TicketMessageCreate(CamelModel):
    message: Optional[str] = None


class TicketAssign(CamelModel):
    assigned_to_user_id: Optional[int] = Field(None, description="HR user, or null to unassign")


class TicketStatusUpdate(CamelModel):
    status: Optional[str] = None


class TicketMessageOut(CamelModel):
    id: int
    ticket_id: int
    sender_user_id: int
    message: str
    created_at: UtcDatetime


class TicketOut(TimestampFields):
    id: int
    created_by_user_id: int
    ticket_type: TicketType
    subject: Optional[str] = None
    description: str
    status: TicketStatus
    assigned_to_user_id: Optional[int] = None
    assigned_at: Optional[UtcDatetime] = None
    resolved_at: Optional[UtcDatetime] = None
    messages: Optional[list[TicketMessageOut]] = None


def detail_row(detail) -> TicketOut:
    out = TicketOut.model_validate(detail.ticket)
    out.messages = [TicketMessageOut.model_validate(m) for m in detail.messages]
    return out
