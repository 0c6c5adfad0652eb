"""Platform administration: HR accounts, organizations and the candidate pool."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.services.activity import list_activity_logs, record_activity
from api.services.notifications import (
    NotificationEvent,
    Notifier,
    organization_member_ids,
)
from api.services.organizations import get_organization_or_404
from core.errors import Conflict, ValidationFailed
from core.lifecycle import SiteStaffStatus
from core.middleware.authorization import Action, authorize
from core.security import hash_password
from core.utils.datetime import Clock, now
from core.utils.validators import validate_email, validate_phone
from database.engine import transactional
from database.models.audit import ActivityAction, ActivityLog, EntityType
from database.models.notifications import NotificationType
from database.models.organizations import MembershipRole, Organization, OrganizationStatus
from database.models.site_staff import SiteStaff
from database.models.users import User, UserType

logger = logging.getLogger(__name__)


async def create_hr_user(
    session: AsyncSession,
    actor: User,
    *,
    first_name: Optional[str],
    last_name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    password: Optional[str],
    clock: Clock = now,
) -> User:
    await authorize(session, actor, Action.ADMIN_CONSOLE)

    if not all([first_name, last_name, email, phone, password]):
        raise ValidationFailed(
            "All fields are required: firstName, lastName, email, phone, password"
        )
    valid, address = validate_email(email)
    if not valid:
        raise ValidationFailed(f"Invalid email: {address}")
    phone_ok, phone_error = validate_phone(phone)
    if not phone_ok:
        raise ValidationFailed(phone_error)

    taken = (
        await session.execute(select(User.id).where(func.lower(User.email) == address))
    ).scalar_one_or_none()
    if taken is not None:
        raise Conflict("User with this email already exists")

    async with transactional(session):
        stamp = clock()
        hr_user = User(
            email=address,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}",
            phone=phone,
            user_type=UserType.HR,
            is_active=True,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(hr_user)

    logger.info(f"HR user {hr_user.id} created by admin {actor.id}")
    return hr_user


async def list_hr_users(session: AsyncSession, actor: User) -> list[User]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    result = await session.execute(
        select(User)
        .where(User.user_type == UserType.HR)
        .order_by(User.first_name.asc(), User.last_name.asc())
    )
    return list(result.scalars().all())


async def list_organizations(session: AsyncSession, actor: User) -> list[Organization]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    result = await session.execute(select(Organization).order_by(Organization.created_at.desc()))
    return list(result.scalars().all())


async def set_organization_status(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    active: bool,
    notifier: Notifier,
    clock: Clock = now,
) -> Organization:
    """
    Activate or deactivate an organization. Activation tells its COOs.
    """
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    organization = await get_organization_or_404(session, organization_id)

    previous = organization.status
    target = OrganizationStatus.ACTIVE if active else OrganizationStatus.INACTIVE

    async with transactional(session):
        organization.status = target
        organization.updated_at = clock()

        await record_activity(
            session,
            actor,
            ActivityAction.STATUS_CHANGED,
            EntityType.ORGANIZATION,
            organization.id,
            organization_id=organization.id,
            old_value={"status": previous.value},
            new_value={"status": target.value},
            clock=clock,
        )
        if active and previous != target:
            await notifier.notify(
                session,
                await organization_member_ids(session, organization.id, [MembershipRole.COO]),
                NotificationEvent(
                    type=NotificationType.ORGANIZATION_ACTIVATED,
                    title="Organization Activated",
                    message=f"{organization.name} is now active",
                    entity_type=EntityType.ORGANIZATION,
                    entity_id=organization.id,
                    email=True,
                ),
            )
    notifier.dispatch()

    logger.info(f"Organization {organization.id} set to {target.value} by admin {actor.id}")
    return organization


async def _candidate_users(
    session: AsyncSession, pagination: PaginationParams, available_only: bool
) -> tuple[list[User], int]:
    query = select(User).where(User.user_type == UserType.CANDIDATE)
    if available_only:
        employed = exists().where(
            and_(
                SiteStaff.user_id == User.id,
                SiteStaff.status == SiteStaffStatus.ACTIVE,
            )
        )
        query = query.where(~employed)

    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await session.execute(
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), total


async def list_candidate_pool(
    session: AsyncSession, actor: User, pagination: PaginationParams
) -> tuple[list[User], int]:
    """Every candidate account, for HR and admins."""
    await authorize(session, actor, Action.CANDIDATE_POOL)
    return await _candidate_users(session, pagination, available_only=False)


async def list_available_candidates(
    session: AsyncSession, actor: User, pagination: PaginationParams
) -> tuple[list[User], int]:
    """Candidate accounts without an active site staff record."""
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    return await _candidate_users(session, pagination, available_only=True)


async def activity_logs(
    session: AsyncSession,
    actor: User,
    pagination: PaginationParams,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    organization_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> tuple[list[ActivityLog], int]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)
    return await list_activity_logs(
        session,
        pagination,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        organization_id=organization_id,
        start_date=start_date,
        end_date=end_date,
    )
