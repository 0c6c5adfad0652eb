"""
Support ticket endpoints for site staff, HR and admins.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier, get_pagination_params
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.tickets import (
    TicketAssign,
    TicketCreate,
    TicketMessageCreate,
    TicketMessageOut,
    TicketOut,
    TicketStatusUpdate,
    detail_row,
)
from api.services import tickets as ticket_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def _page(items, total, pagination: PaginationParams) -> dict:
    return ApiResponse.ok(
        PaginatedResponse[TicketOut].create(
            [TicketOut.model_validate(t) for t in items], total, pagination
        )
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Ticket",
    description="Raise an HR or IT ticket. Only active site staff may.",
)
async def create_ticket(
    body: TicketCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    ticket = await ticket_service.create_ticket(
        db,
        current_user,
        ticket_type=body.ticket_type,
        subject=body.subject,
        description=body.description,
        notifier=notifier,
        clock=clock,
    )
    return ApiResponse.ok({"ticket": TicketOut.model_validate(ticket)}, "Ticket created successfully")


@router.get("/mine", summary="My Tickets")
async def list_my_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ticket_service.list_my_tickets(db, current_user, pagination, status_filter)
    return _page(items, total, pagination)


@router.get("/assigned", summary="Assigned Tickets")
async def list_assigned_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ticket_service.list_assigned_tickets(
        db, current_user, pagination, status_filter
    )
    return _page(items, total, pagination)


@router.get("/all", summary="All Tickets")
async def list_all_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    ticket_type: Optional[str] = Query(None, alias="ticketType", description="hr or it"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ticket_service.list_all_tickets(
        db, current_user, pagination, status_filter, ticket_type
    )
    return _page(items, total, pagination)


@router.get("/{ticket_id}", summary="Get Ticket")
async def get_ticket(
    ticket_id: int = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Ticket with its message thread, oldest first."""
    detail = await ticket_service.get_ticket(db, current_user, ticket_id)
    return ApiResponse.ok({"ticket": detail_row(detail)})


@router.post("/{ticket_id}/messages", status_code=status.HTTP_201_CREATED, summary="Reply")
async def add_message(
    body: TicketMessageCreate,
    ticket_id: int = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    reply = await ticket_service.add_message(
        db, current_user, ticket_id, body.message, notifier=notifier, clock=clock
    )
    return ApiResponse.ok({"message": TicketMessageOut.model_validate(reply)}, "Message added")


@router.post("/{ticket_id}/assign", summary="Assign Ticket")
async def assign_ticket(
    body: TicketAssign,
    ticket_id: int = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    """Assign to an HR user; ``null`` unassigns and reopens."""
    ticket = await ticket_service.assign_ticket(
        db, current_user, ticket_id, body.assigned_to_user_id, notifier=notifier, clock=clock
    )
    message = "Ticket assigned successfully" if ticket.assigned_to_user_id else "Ticket unassigned"
    return ApiResponse.ok({"ticket": TicketOut.model_validate(ticket)}, message)


@router.put("/{ticket_id}/status", summary="Update Ticket Status")
async def update_ticket_status(
    body: TicketStatusUpdate,
    ticket_id: int = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    ticket = await ticket_service.update_ticket_status(
        db, current_user, ticket_id, body.status, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"ticket": TicketOut.model_validate(ticket)}, "Ticket status updated successfully"
    )
