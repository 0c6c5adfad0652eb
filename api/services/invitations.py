"""Organization invitation service functions."""

import logging
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.services.activity import record_activity
from api.services.notifications import NotificationEvent, Notifier, user_ids_of_type
from core.config import settings
from core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from core.lifecycle import Actor, InvitationStatus, attempt_transition, parse_status
from core.middleware.authorization import Action, authorize
from core.security import generate_invitation_token
from core.utils.datetime import Clock, add_days, is_past, now
from core.utils.validators import validate_email
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.invitations import UserInvitation
from database.models.notifications import NotificationType
from database.models.organizations import MembershipRole, Organization, UserOrganization
from database.models.users import User, UserType

logger = logging.getLogger(__name__)


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def invitation_link(invitation: UserInvitation) -> str:
    return f"{settings.frontend_url.rstrip('/')}/invitations/{invitation.token}"


async def get_invitation_or_404(session: AsyncSession, invitation_id: int) -> UserInvitation:
    result = await session.execute(
        select(UserInvitation).where(UserInvitation.id == invitation_id)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invitation not found")
    return invitation


async def create_invitation(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    email: Optional[str],
    role: Any,
    notifier: Notifier,
    clock: Clock = now,
) -> UserInvitation:
    """
    Invite an email address into an organization.

    The invitation starts ``pending`` and needs admin approval before the link
    can be used.
    """
    await authorize(session, actor, Action.INVITATION_CREATE, organization_id=organization_id)

    valid, address = validate_email(email)
    if not valid:
        raise ValidationFailed("A valid email is required")
    try:
        membership_role = MembershipRole(str(getattr(role, "value", role)).lower())
    except ValueError:
        raise ValidationFailed(f"Invalid role: {role}")

    already_member = (
        await session.execute(
            select(UserOrganization.id)
            .join(User, User.id == UserOrganization.user_id)
            .where(
                and_(
                    UserOrganization.organization_id == organization_id,
                    func.lower(User.email) == address,
                )
            )
        )
    ).scalar_one_or_none()
    if already_member is not None:
        raise Conflict("User is already a member of this organization")

    pending = (
        await session.execute(
            select(UserInvitation.id).where(
                and_(
                    UserInvitation.organization_id == organization_id,
                    UserInvitation.email == address,
                    UserInvitation.status == InvitationStatus.PENDING,
                )
            )
        )
    ).scalar_one_or_none()
    if pending is not None:
        raise Conflict("A pending invitation already exists for this email")

    organization = (
        await session.execute(select(Organization).where(Organization.id == organization_id))
    ).scalar_one_or_none()
    if organization is None:
        raise NotFound("Organization not found")

    async with transactional(session):
        stamp = clock()
        invitation = UserInvitation(
            organization_id=organization_id,
            invited_by_user_id=actor.id,
            email=address,
            role=membership_role,
            token=generate_invitation_token(),
            status=InvitationStatus.PENDING,
            expires_at=add_days(stamp, settings.invitation_expiry_days),
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(invitation)
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.CREATED,
            EntityType.INVITATION,
            invitation.id,
            organization_id=organization_id,
            new_value={"email": address, "role": membership_role.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            await user_ids_of_type(session, UserType.ADMIN),
            NotificationEvent(
                type=NotificationType.INVITATION_SENT,
                title="Invitation Pending Approval",
                message=f"{address} was invited to {organization.name} as {membership_role.value}",
                entity_type=EntityType.INVITATION,
                entity_id=invitation.id,
            ),
        )
    notifier.dispatch()

    logger.info(f"Invitation {invitation.id} created for organization {organization_id}")
    return invitation


async def _paginate(session: AsyncSession, query, pagination: PaginationParams):
    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await session.execute(
        query.order_by(UserInvitation.created_at.desc(), UserInvitation.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), total


async def list_invitations(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    pagination: PaginationParams,
) -> tuple[list[UserInvitation], int]:
    await authorize(session, actor, Action.INVITATION_LIST, organization_id=organization_id)
    query = select(UserInvitation).where(UserInvitation.organization_id == organization_id)
    return await _paginate(session, query, pagination)


async def _expire_if_due(
    session: AsyncSession, invitation: UserInvitation, clock: Clock
) -> None:
    if invitation.status.is_terminal() or not is_past(invitation.expires_at, clock()):
        return
    async with transactional(session):
        invitation.status = attempt_transition(
            invitation.status, InvitationStatus.EXPIRED, Actor.SYSTEM
        )
        invitation.updated_at = clock()
    logger.info(f"Invitation {invitation.id} expired")


async def get_invitation_by_token(
    session: AsyncSession, token: str, *, clock: Clock = now
) -> UserInvitation:
    """
    Public lookup. An invitation read after its expiry is marked ``expired``
    before the error is returned.
    """
    result = await session.execute(select(UserInvitation).where(UserInvitation.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invitation not found")

    await _expire_if_due(session, invitation, clock)
    if invitation.status == InvitationStatus.EXPIRED:
        raise ValidationFailed("Invitation has expired")
    return invitation


async def accept_invitation(
    session: AsyncSession, actor: User, token: str, *, clock: Clock = now
) -> UserOrganization:
    invitation = await get_invitation_by_token(session, token, clock=clock)

    if _normalize_email(actor.email) != invitation.email:
        raise Forbidden("This invitation was sent to a different email address")
    if invitation.status != InvitationStatus.APPROVED:
        raise ValidationFailed("Invitation has not been approved")

    existing = (
        await session.execute(
            select(UserOrganization).where(
                and_(
                    UserOrganization.user_id == actor.id,
                    UserOrganization.organization_id == invitation.organization_id,
                )
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise Conflict("User is already a member of this organization")

    async with transactional(session):
        stamp = clock()
        membership = UserOrganization(
            user_id=actor.id,
            organization_id=invitation.organization_id,
            role=invitation.role,
            is_primary=False,
            joined_at=stamp,
        )
        session.add(membership)
        invitation.status = attempt_transition(
            invitation.status, InvitationStatus.ACCEPTED, Actor.SYSTEM
        )
        invitation.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.ACCEPTED,
            EntityType.INVITATION,
            invitation.id,
            organization_id=invitation.organization_id,
            new_value={"status": InvitationStatus.ACCEPTED.value},
            clock=clock,
        )

    logger.info(f"User {actor.id} joined organization {invitation.organization_id}")
    return membership


# ---------------------------------------------------------------------------
# Admin review
# ---------------------------------------------------------------------------


async def list_all_invitations(
    session: AsyncSession,
    actor: User,
    pagination: PaginationParams,
    status: Optional[str] = None,
) -> tuple[list[UserInvitation], int]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    query = select(UserInvitation)
    if status:
        query = query.where(UserInvitation.status == parse_status(InvitationStatus, status))
    return await _paginate(session, query, pagination)


async def review_invitation(
    session: AsyncSession,
    actor: User,
    invitation_id: int,
    *,
    approve: bool,
    notifier: Notifier,
    clock: Clock = now,
) -> UserInvitation:
    """Approve or reject a pending invitation and tell the inviter."""
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    invitation = await get_invitation_or_404(session, invitation_id)
    await _expire_if_due(session, invitation, clock)

    if invitation.status != InvitationStatus.PENDING:
        raise ValidationFailed(f"Invitation is already {invitation.status.value}")

    target = InvitationStatus.APPROVED if approve else InvitationStatus.REJECTED
    async with transactional(session):
        stamp = clock()
        invitation.status = attempt_transition(invitation.status, target, Actor.ADMIN)
        invitation.verified_by_admin_id = actor.id
        invitation.verified_at = stamp
        invitation.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.APPROVED if approve else ActivityAction.REJECTED,
            EntityType.INVITATION,
            invitation.id,
            organization_id=invitation.organization_id,
            old_value={"status": InvitationStatus.PENDING.value},
            new_value={"status": target.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            [invitation.invited_by_user_id],
            NotificationEvent(
                type=(
                    NotificationType.INVITATION_APPROVED
                    if approve
                    else NotificationType.INVITATION_REJECTED
                ),
                title="Invitation Approved" if approve else "Invitation Rejected",
                message=f"Your invitation for {invitation.email} was {target.value}",
                entity_type=EntityType.INVITATION,
                entity_id=invitation.id,
                email=approve,
            ),
        )
    notifier.dispatch()
    return invitation


async def get_invitation_link(
    session: AsyncSession, actor: User, invitation_id: int
) -> tuple[UserInvitation, str]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    invitation = await get_invitation_or_404(session, invitation_id)
    if invitation.status != InvitationStatus.APPROVED:
        raise ValidationFailed("Invitation must be approved before sharing the link")
    return invitation, invitation_link(invitation)
