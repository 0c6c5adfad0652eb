"""Support ticket service functions."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.services.activity import record_activity
from api.services.notifications import NotificationEvent, Notifier, user_ids_of_type
from core.errors import Forbidden, NotFound, ValidationFailed
from core.lifecycle import (
    Actor,
    SiteStaffStatus,
    TicketStatus,
    attempt_transition,
    parse_status,
)
from core.middleware.authorization import Action, authorize
from core.utils.datetime import Clock, now
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.notifications import NotificationType
from database.models.site_staff import SiteStaff
from database.models.tickets import Ticket, TicketMessage, TicketType
from database.models.users import User, UserType

logger = logging.getLogger(__name__)

RESOLVED_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


@dataclass
class TicketDetail:
    ticket: Ticket
    messages: list[TicketMessage] = field(default_factory=list)


def _ticket_label(ticket: Ticket) -> str:
    return ticket.subject or f"Ticket #{ticket.id}"


async def get_ticket_or_404(session: AsyncSession, ticket_id: int) -> Ticket:
    result = await session.execute(select(Ticket).where(Ticket.id == ticket_id))
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise NotFound("Ticket not found")
    return ticket


async def _authorize_ticket(
    session: AsyncSession, actor: User, ticket: Ticket, action: Action
) -> None:
    await authorize(
        session,
        actor,
        action,
        assigned_user_id=ticket.assigned_to_user_id,
        owner_user_id=ticket.created_by_user_id,
    )


async def create_ticket(
    session: AsyncSession,
    actor: User,
    *,
    ticket_type: Any,
    description: Optional[str],
    notifier: Notifier,
    subject: Optional[str] = None,
    clock: Clock = now,
) -> Ticket:
    """Raise a ticket. Only candidates with an active site staff record may."""
    await authorize(session, actor, Action.TICKET_CREATE)

    staff = (
        await session.execute(
            select(SiteStaff.id).where(
                and_(
                    SiteStaff.user_id == actor.id,
                    SiteStaff.status == SiteStaffStatus.ACTIVE,
                )
            ).limit(1)
        )
    ).scalar_one_or_none()
    if staff is None:
        raise Forbidden("Only active staff members can create tickets")

    try:
        kind = TicketType(str(getattr(ticket_type, "value", ticket_type)).lower())
    except ValueError:
        raise ValidationFailed("Ticket type must be 'hr' or 'it'")
    if not description or not description.strip():
        raise ValidationFailed("Description is required")

    async with transactional(session):
        stamp = clock()
        ticket = Ticket(
            created_by_user_id=actor.id,
            ticket_type=kind,
            subject=subject,
            description=description,
            status=TicketStatus.OPEN,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(ticket)
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.CREATED,
            EntityType.TICKET,
            ticket.id,
            new_value={"ticket_type": kind.value, "status": ticket.status.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            await user_ids_of_type(session, UserType.ADMIN),
            NotificationEvent(
                type=NotificationType.TICKET_CREATED,
                title="New Support Ticket",
                message=f"New {kind.value.upper()} ticket: {_ticket_label(ticket)}",
                entity_type=EntityType.TICKET,
                entity_id=ticket.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(f"Ticket {ticket.id} created by user {actor.id}")
    return ticket


async def _list(
    session: AsyncSession,
    query,
    pagination: PaginationParams,
    status: Optional[str],
    ticket_type: Optional[str] = None,
) -> tuple[list[Ticket], int]:
    if status:
        query = query.where(Ticket.status == parse_status(TicketStatus, status))
    if ticket_type:
        try:
            query = query.where(Ticket.ticket_type == TicketType(ticket_type.lower()))
        except ValueError:
            raise ValidationFailed("Ticket type must be 'hr' or 'it'")

    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await session.execute(
        query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), total


async def list_my_tickets(
    session: AsyncSession, actor: User, pagination: PaginationParams, status: Optional[str] = None
) -> tuple[list[Ticket], int]:
    await authorize(session, actor, Action.TICKET_LIST_MINE)
    return await _list(
        session, select(Ticket).where(Ticket.created_by_user_id == actor.id), pagination, status
    )


async def list_assigned_tickets(
    session: AsyncSession, actor: User, pagination: PaginationParams, status: Optional[str] = None
) -> tuple[list[Ticket], int]:
    await authorize(session, actor, Action.TICKET_LIST_ASSIGNED)
    return await _list(
        session, select(Ticket).where(Ticket.assigned_to_user_id == actor.id), pagination, status
    )


async def list_all_tickets(
    session: AsyncSession,
    actor: User,
    pagination: PaginationParams,
    status: Optional[str] = None,
    ticket_type: Optional[str] = None,
) -> tuple[list[Ticket], int]:
    await authorize(session, actor, Action.TICKET_LIST_ALL)
    return await _list(session, select(Ticket), pagination, status, ticket_type)


async def get_ticket(session: AsyncSession, actor: User, ticket_id: int) -> TicketDetail:
    ticket = await get_ticket_or_404(session, ticket_id)
    await _authorize_ticket(session, actor, ticket, Action.TICKET_VIEW)

    messages = await session.execute(
        select(TicketMessage)
        .where(TicketMessage.ticket_id == ticket.id)
        .order_by(TicketMessage.created_at.asc(), TicketMessage.id.asc())
    )
    return TicketDetail(ticket=ticket, messages=list(messages.scalars().all()))


async def _reply_recipients(session: AsyncSession, actor: User, ticket: Ticket) -> list[int]:
    if actor.user_type == UserType.CANDIDATE:
        if ticket.assigned_to_user_id is not None:
            return [ticket.assigned_to_user_id]
        return await user_ids_of_type(session, UserType.ADMIN)
    if actor.user_type == UserType.HR:
        return [ticket.created_by_user_id]
    return [ticket.created_by_user_id, ticket.assigned_to_user_id]


async def add_message(
    session: AsyncSession,
    actor: User,
    ticket_id: int,
    message: Optional[str],
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> TicketMessage:
    """
    Append a reply. A staff-side reply on an ``open`` ticket moves it to
    ``in_progress``.
    """
    if not message or not message.strip():
        raise ValidationFailed("Message is required")

    ticket = await get_ticket_or_404(session, ticket_id)
    await _authorize_ticket(session, actor, ticket, Action.TICKET_REPLY)

    async with transactional(session):
        stamp = clock()
        reply = TicketMessage(
            ticket_id=ticket.id, sender_user_id=actor.id, message=message, created_at=stamp
        )
        session.add(reply)

        if ticket.status == TicketStatus.OPEN and actor.user_type != UserType.CANDIDATE:
            ticket.status = attempt_transition(
                ticket.status, TicketStatus.IN_PROGRESS, Actor.SYSTEM
            )
        ticket.updated_at = stamp
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.MESSAGE_ADDED,
            EntityType.TICKET,
            ticket.id,
            details={"message_id": reply.id, "status": ticket.status.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            await _reply_recipients(session, actor, ticket),
            NotificationEvent(
                type=NotificationType.TICKET_MESSAGE,
                title="New Ticket Reply",
                message=f"New reply on {_ticket_label(ticket)}",
                entity_type=EntityType.TICKET,
                entity_id=ticket.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()
    return reply


async def assign_ticket(
    session: AsyncSession,
    actor: User,
    ticket_id: int,
    assigned_to_user_id: Optional[int],
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> Ticket:
    """
    Assign to an HR user, or unassign with ``None`` which reopens the ticket.
    """
    await authorize(session, actor, Action.TICKET_ASSIGN)
    ticket = await get_ticket_or_404(session, ticket_id)

    if assigned_to_user_id is not None:
        assignee = (
            await session.execute(select(User).where(User.id == assigned_to_user_id))
        ).scalar_one_or_none()
        if assignee is None or assignee.user_type != UserType.HR:
            raise ValidationFailed("Can only assign tickets to HR users")

    previous = {
        "assigned_to_user_id": ticket.assigned_to_user_id,
        "status": ticket.status.value,
    }
    target = TicketStatus.OPEN if assigned_to_user_id is None else TicketStatus.ASSIGNED

    async with transactional(session):
        stamp = clock()
        ticket.status = attempt_transition(ticket.status, target, Actor.ADMIN)
        ticket.assigned_to_user_id = assigned_to_user_id
        ticket.assigned_at = stamp if assigned_to_user_id is not None else None
        ticket.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.ASSIGNED,
            EntityType.TICKET,
            ticket.id,
            old_value=previous,
            new_value={
                "assigned_to_user_id": assigned_to_user_id,
                "status": ticket.status.value,
            },
            clock=clock,
        )
        if assigned_to_user_id is not None:
            await notifier.notify(
                session,
                [assigned_to_user_id],
                NotificationEvent(
                    type=NotificationType.TICKET_ASSIGNED,
                    title="Ticket Assigned",
                    message=f"{_ticket_label(ticket)} has been assigned to you",
                    entity_type=EntityType.TICKET,
                    entity_id=ticket.id,
                    email=True,
                ),
                exclude=actor.id,
            )
    notifier.dispatch()

    logger.info(f"Ticket {ticket.id} assigned to {assigned_to_user_id}")
    return ticket


async def update_ticket_status(
    session: AsyncSession,
    actor: User,
    ticket_id: int,
    status: Any,
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> Ticket:
    ticket = await get_ticket_or_404(session, ticket_id)
    await _authorize_ticket(session, actor, ticket, Action.TICKET_UPDATE_STATUS)

    current = ticket.status
    target = attempt_transition(current, status, Actor.for_user_type(actor.user_type))
    if target == current:
        return ticket

    async with transactional(session):
        stamp = clock()
        ticket.status = target
        if target in RESOLVED_STATUSES:
            ticket.resolved_at = stamp
        ticket.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.STATUS_CHANGED,
            EntityType.TICKET,
            ticket.id,
            old_value={"status": current.value},
            new_value={"status": target.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            [ticket.created_by_user_id],
            NotificationEvent(
                type=NotificationType.TICKET_STATUS_CHANGED,
                title="Ticket Status Updated",
                message=f"{_ticket_label(ticket)} is now {target.label}",
                entity_type=EntityType.TICKET,
                entity_id=ticket.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()
    return ticket
