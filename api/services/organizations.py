"""Organization, department and membership service functions."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.services.activity import record_activity
from api.services.notifications import NotificationEvent, Notifier
from core.errors import Conflict, NotFound, ValidationFailed
from core.lifecycle import Actor, SiteStaffStatus, attempt_transition
from core.middleware.authorization import Action, authorize
from core.utils.datetime import Clock, now
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.notifications import NotificationType
from database.models.organizations import (
    Department,
    MembershipRole,
    Organization,
    UserOrganization,
)
from database.models.site_staff import SiteStaff
from database.models.users import User

logger = logging.getLogger(__name__)


@dataclass
class OrganizationResult:
    organization: Organization
    membership: UserOrganization
    created: bool
    message: str


@dataclass
class MemberView:
    user: User
    membership: UserOrganization


async def get_organization_or_404(session: AsyncSession, organization_id: int) -> Organization:
    result = await session.execute(
        select(Organization).where(Organization.id == organization_id)
    )
    organization = result.scalar_one_or_none()
    if organization is None:
        raise NotFound("Organization not found")
    return organization


async def _membership(
    session: AsyncSession, user_id: int, organization_id: int
) -> Optional[UserOrganization]:
    result = await session.execute(
        select(UserOrganization).where(
            and_(
                UserOrganization.user_id == user_id,
                UserOrganization.organization_id == organization_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def create_organization(
    session: AsyncSession,
    actor: User,
    *,
    name: Optional[str],
    industry: Optional[str] = None,
    company_size: Optional[str] = None,
    clock: Clock = now,
) -> OrganizationResult:
    """
    Create an organization with the caller as its primary COO.

    Names are unique. When the name is taken the caller is linked to the
    existing organization instead, or told they already belong to it.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Organization name is required")

    existing = (
        await session.execute(
            select(Organization).where(func.lower(Organization.name) == name.lower())
        )
    ).scalar_one_or_none()

    if existing is not None:
        membership = await _membership(session, actor.id, existing.id)
        if membership is not None:
            return OrganizationResult(
                existing, membership, False, "Organization already exists and you are a member"
            )

    async with transactional(session):
        stamp = clock()
        created = existing is None
        organization = existing
        if organization is None:
            organization = Organization(
                name=name,
                industry=industry,
                company_size=company_size,
                created_at=stamp,
                updated_at=stamp,
            )
            session.add(organization)
            await session.flush()

        membership = UserOrganization(
            user_id=actor.id,
            organization_id=organization.id,
            role=MembershipRole.COO,
            is_primary=True,
            joined_at=stamp,
        )
        session.add(membership)

        await record_activity(
            session,
            actor,
            ActivityAction.CREATED if created else ActivityAction.UPDATED,
            EntityType.ORGANIZATION,
            organization.id,
            organization_id=organization.id,
            details={"linked_user_id": actor.id, "role": MembershipRole.COO.value},
            clock=clock,
        )

    if created:
        logger.info(f"Organization {organization.id} created by user {actor.id}")
        message = "Organization created successfully"
    else:
        logger.info(f"User {actor.id} linked to existing organization {organization.id}")
        message = "Linked to existing organization"
    return OrganizationResult(organization, membership, created, message)


async def list_my_organizations(
    session: AsyncSession, actor: User
) -> list[tuple[Organization, UserOrganization]]:
    result = await session.execute(
        select(Organization, UserOrganization)
        .join(UserOrganization, UserOrganization.organization_id == Organization.id)
        .where(UserOrganization.user_id == actor.id)
        .order_by(UserOrganization.is_primary.desc(), Organization.name.asc())
    )
    return [(org, membership) for org, membership in result.all()]


async def get_organization(
    session: AsyncSession, actor: User, organization_id: int
) -> Organization:
    await authorize(session, actor, Action.ORG_VIEW, organization_id=organization_id)
    return await get_organization_or_404(session, organization_id)


async def list_organization_users(
    session: AsyncSession, actor: User, organization_id: int
) -> list[MemberView]:
    await authorize(session, actor, Action.ORG_VIEW, organization_id=organization_id)
    await get_organization_or_404(session, organization_id)

    result = await session.execute(
        select(User, UserOrganization)
        .join(UserOrganization, UserOrganization.user_id == User.id)
        .where(UserOrganization.organization_id == organization_id)
        .order_by(UserOrganization.joined_at.asc(), User.id.asc())
    )
    return [MemberView(user=user, membership=membership) for user, membership in result.all()]


async def create_department(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    name: Optional[str],
    description: Optional[str] = None,
    clock: Clock = now,
) -> Department:
    await authorize(session, actor, Action.DEPARTMENT_CREATE, organization_id=organization_id)
    await get_organization_or_404(session, organization_id)

    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Department name is required")

    duplicate = (
        await session.execute(
            select(Department.id).where(
                and_(
                    Department.organization_id == organization_id,
                    func.lower(Department.name) == name.lower(),
                )
            )
        )
    ).scalar_one_or_none()
    if duplicate is not None:
        raise Conflict("A department with this name already exists")

    async with transactional(session):
        stamp = clock()
        department = Department(
            organization_id=organization_id,
            name=name,
            description=description,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(department)
        await session.flush()
        await record_activity(
            session,
            actor,
            ActivityAction.CREATED,
            EntityType.ORGANIZATION,
            organization_id,
            organization_id=organization_id,
            details={"department_id": department.id, "name": name},
            clock=clock,
        )
    return department


async def list_departments(
    session: AsyncSession, actor: User, organization_id: int
) -> list[Department]:
    await authorize(session, actor, Action.ORG_VIEW, organization_id=organization_id)
    result = await session.execute(
        select(Department)
        .where(Department.organization_id == organization_id)
        .order_by(Department.name.asc())
    )
    return list(result.scalars().all())


async def get_my_staff_record(session: AsyncSession, actor: User) -> SiteStaff:
    """The caller's active employment record."""
    result = await session.execute(
        select(SiteStaff)
        .where(
            and_(
                SiteStaff.user_id == actor.id,
                SiteStaff.status == SiteStaffStatus.ACTIVE,
            )
        )
        .order_by(SiteStaff.hired_at.desc())
        .limit(1)
    )
    staff = result.scalar_one_or_none()
    if staff is None:
        raise NotFound("No active staff record found")
    return staff


@dataclass
class StaffView:
    user: User
    staff: SiteStaff


async def get_staff_or_404(
    session: AsyncSession, organization_id: int, staff_id: int
) -> SiteStaff:
    result = await session.execute(
        select(SiteStaff).where(
            and_(SiteStaff.id == staff_id, SiteStaff.organization_id == organization_id)
        )
    )
    staff = result.scalar_one_or_none()
    if staff is None:
        raise NotFound("Staff member not found")
    return staff


async def list_organization_staff(
    session: AsyncSession, actor: User, organization_id: int, pagination: PaginationParams
) -> tuple[list[StaffView], int]:
    """Active staff roster, most recent hires first."""
    await authorize(session, actor, Action.STAFF_LIST, organization_id=organization_id)

    query = (
        select(User, SiteStaff)
        .join(SiteStaff, SiteStaff.user_id == User.id)
        .where(
            and_(
                SiteStaff.organization_id == organization_id,
                SiteStaff.status == SiteStaffStatus.ACTIVE,
            )
        )
    )
    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await session.execute(
        query.order_by(SiteStaff.hired_at.desc(), SiteStaff.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return [StaffView(user=user, staff=staff) for user, staff in result.all()], total


async def resign_staff(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    staff_id: int,
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> SiteStaff:
    """
    End a staff engagement.

    The record moves to ``resigned``, which also stops the user raising new
    tickets and returns them to the admin candidate pool.
    """
    await authorize(session, actor, Action.STAFF_RESIGN, organization_id=organization_id)
    staff = await get_staff_or_404(session, organization_id, staff_id)
    if staff.status == SiteStaffStatus.RESIGNED:
        return staff

    async with transactional(session):
        stamp = clock()
        previous = staff.status
        staff.status = attempt_transition(
            staff.status, SiteStaffStatus.RESIGNED, Actor.for_user_type(actor.user_type)
        )
        staff.resigned_at = stamp
        staff.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.STATUS_CHANGED,
            EntityType.SITE_STAFF,
            staff.id,
            organization_id=organization_id,
            old_value={"status": previous.value},
            new_value={"status": staff.status.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            [staff.user_id],
            NotificationEvent(
                type=NotificationType.STATUS_UPDATE,
                title="Staff Record Updated",
                message=f"Your position '{staff.position_title}' has ended",
                entity_type=EntityType.SITE_STAFF,
                entity_id=staff.id,
                email=True,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(f"Staff record {staff.id} resigned by user {actor.id}")
    return staff
