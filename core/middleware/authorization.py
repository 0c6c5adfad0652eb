"""
Authorization resolver.

Every access decision goes through ``authorize`` and the ``POLICIES`` table:
1. Global admins pass where the policy allows an admin bypass
2. Policies restricted to global user types reject other types
3. HR users on assignment-based policies pass only by direct assignment
4. Role-gated policies require a membership row with an allowed role; HR
   members of HR-gated policies need one of the policy's HR roles
5. Membership policies accept any membership row for the organization

Nothing is cached: membership is re-read on every call because it can change
between requests.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden
from core.security import AuditAction, ResourceType, log_audit_event
from database.models.organizations import MembershipRole, UserOrganization
from database.models.users import User, UserType

logger = logging.getLogger(__name__)

NO_ORG_ACCESS = "You do not have access to this organization"


class Action(str, Enum):
    """Operations subject to authorization."""

    ORG_VIEW = "org:view"
    DEPARTMENT_CREATE = "department:create"

    JOB_REQUEST_CREATE = "job_request:create"
    JOB_REQUEST_LIST = "job_request:list"
    JOB_REQUEST_VIEW = "job_request:view"
    JOB_REQUEST_UPDATE = "job_request:update"
    JOB_REQUEST_ASSIGN_HR = "job_request:assign_hr"
    JOB_REQUEST_PUSH_CANDIDATES = "job_request:push_candidates"

    CANDIDATE_VIEW = "candidate:view"
    CANDIDATE_UPDATE_STATUS = "candidate:update_status"
    CANDIDATE_POOL = "candidate:pool"

    INTERVIEW_CREATE = "interview:create"
    INTERVIEW_VIEW = "interview:view"
    INTERVIEW_UPDATE = "interview:update"
    INTERVIEW_MANAGE_PARTICIPANTS = "interview:manage_participants"
    INTERVIEW_LIST_ALL = "interview:list_all"
    INTERVIEW_LIST_ASSIGNED = "interview:list_assigned"

    STAFF_LIST = "staff:list"
    STAFF_RESIGN = "staff:resign"

    INVITATION_CREATE = "invitation:create"
    INVITATION_LIST = "invitation:list"

    HR_WORKSPACE = "hr:workspace"
    ADMIN_CONSOLE = "admin:console"

    TICKET_CREATE = "ticket:create"
    TICKET_VIEW = "ticket:view"
    TICKET_REPLY = "ticket:reply"
    TICKET_ASSIGN = "ticket:assign"
    TICKET_UPDATE_STATUS = "ticket:update_status"
    TICKET_LIST_MINE = "ticket:list_mine"
    TICKET_LIST_ASSIGNED = "ticket:list_assigned"
    TICKET_LIST_ALL = "ticket:list_all"


@dataclass(frozen=True)
class Policy:
    """Who may perform an action."""

    message: str
    admin_bypass: bool = True
    user_types: Optional[frozenset] = None
    org_roles: Optional[frozenset] = None
    membership: bool = False
    assigned_hr: bool = False
    unassigned_message: Optional[str] = None
    owner: bool = False
    hr_roles: Optional[frozenset] = None  # membership roles an HR member needs


@dataclass
class AccessGrant:
    """Result of a successful check, naming the rule that matched."""

    via: str  # admin | assignment | owner | role | membership | user_type
    membership: Optional[UserOrganization] = None


_ADMIN = frozenset({UserType.ADMIN})
_INVITER_ROLES = frozenset({MembershipRole.HR_COORDINATOR, MembershipRole.COO})
_DEPARTMENT_ROLES = frozenset(
    {MembershipRole.COO, MembershipRole.HR_COORDINATOR, MembershipRole.HR_COO}
)
_HR_COO = frozenset({MembershipRole.HR_COO})


def _interview_policy() -> Policy:
    """Admin, the HR assigned to the parent job request, or any org member."""
    return Policy(
        NO_ORG_ACCESS,
        membership=True,
        assigned_hr=True,
        unassigned_message="This job request is not assigned to you",
    )


POLICIES: dict[Action, Policy] = {
    Action.ORG_VIEW: Policy(NO_ORG_ACCESS, membership=True),
    Action.DEPARTMENT_CREATE: Policy(
        "You do not have permission to manage departments",
        org_roles=_DEPARTMENT_ROLES,
    ),
    Action.JOB_REQUEST_CREATE: Policy(NO_ORG_ACCESS, admin_bypass=False, membership=True),
    Action.JOB_REQUEST_LIST: Policy(NO_ORG_ACCESS, membership=True),
    Action.JOB_REQUEST_VIEW: Policy(
        "You do not have access to this job request",
        membership=True,
        assigned_hr=True,
    ),
    Action.JOB_REQUEST_UPDATE: Policy(
        NO_ORG_ACCESS,
        membership=True,
        assigned_hr=True,
        unassigned_message="This job request is not assigned to you",
    ),
    Action.JOB_REQUEST_ASSIGN_HR: Policy(
        "Only admins can assign HR to job requests", user_types=_ADMIN
    ),
    Action.JOB_REQUEST_PUSH_CANDIDATES: Policy(
        "Only HR and Admin users can push candidates",
        user_types=frozenset({UserType.HR, UserType.ADMIN}),
        assigned_hr=True,
        unassigned_message="This job request is not assigned to you",
    ),
    Action.CANDIDATE_VIEW: Policy(NO_ORG_ACCESS, admin_bypass=False, membership=True),
    Action.CANDIDATE_UPDATE_STATUS: Policy(NO_ORG_ACCESS, admin_bypass=False, membership=True),
    Action.CANDIDATE_POOL: Policy(
        "Only HR and Admin users can access this endpoint",
        user_types=frozenset({UserType.HR, UserType.ADMIN}),
    ),
    Action.INTERVIEW_CREATE: _interview_policy(),
    Action.INTERVIEW_VIEW: _interview_policy(),
    Action.INTERVIEW_UPDATE: _interview_policy(),
    Action.INTERVIEW_MANAGE_PARTICIPANTS: _interview_policy(),
    Action.INTERVIEW_LIST_ALL: Policy(
        "Only admins can access all interviews", user_types=_ADMIN
    ),
    Action.INTERVIEW_LIST_ASSIGNED: Policy(
        "Only HR users can access assigned interviews",
        admin_bypass=False,
        user_types=frozenset({UserType.HR}),
    ),
    Action.STAFF_LIST: Policy(
        "Only clients and HR COO can view staff members",
        user_types=frozenset({UserType.CLIENT, UserType.HR}),
        membership=True,
        hr_roles=_HR_COO,
    ),
    Action.STAFF_RESIGN: Policy(
        "Only the COO or HR COO can update staff members",
        org_roles=frozenset({MembershipRole.COO, MembershipRole.HR_COO}),
    ),
    Action.INVITATION_CREATE: Policy(
        "You do not have permission to invite users",
        admin_bypass=False,
        org_roles=_INVITER_ROLES,
    ),
    Action.INVITATION_LIST: Policy(
        "You do not have permission to view invitations",
        admin_bypass=False,
        org_roles=_INVITER_ROLES,
    ),
    Action.HR_WORKSPACE: Policy(
        "Only HR users can access this resource",
        admin_bypass=False,
        user_types=frozenset({UserType.HR}),
    ),
    Action.ADMIN_CONSOLE: Policy("Only admins can access this resource", user_types=_ADMIN),
    Action.TICKET_CREATE: Policy(
        "Only staff members can create tickets",
        admin_bypass=False,
        user_types=frozenset({UserType.CANDIDATE}),
    ),
    Action.TICKET_VIEW: Policy(
        "You do not have access to this ticket", assigned_hr=True, owner=True
    ),
    Action.TICKET_REPLY: Policy(
        "You do not have access to this ticket", assigned_hr=True, owner=True
    ),
    Action.TICKET_ASSIGN: Policy("Only admins can assign tickets", user_types=_ADMIN),
    Action.TICKET_UPDATE_STATUS: Policy(
        "Only admins or the assigned HR can update ticket status",
        assigned_hr=True,
    ),
    Action.TICKET_LIST_MINE: Policy(
        "Only staff members can view their tickets",
        admin_bypass=False,
        user_types=frozenset({UserType.CANDIDATE}),
    ),
    Action.TICKET_LIST_ASSIGNED: Policy(
        "Only HR users can view assigned tickets",
        admin_bypass=False,
        user_types=frozenset({UserType.HR}),
    ),
    Action.TICKET_LIST_ALL: Policy("Only admins can view all tickets", user_types=_ADMIN),
}


async def check_organization_access(
    user: User,
    organization_id: int,
    db: AsyncSession,
) -> Optional[UserOrganization]:
    """
    Load the caller's membership row for an organization.

    Args:
        user: User to check
        organization_id: Organization ID
        db: Database session

    Returns:
        UserOrganization membership, or None when the user is not a member
    """
    result = await db.execute(
        select(UserOrganization).where(
            and_(
                UserOrganization.user_id == user.id,
                UserOrganization.organization_id == organization_id,
            )
        )
    )
    return result.scalar_one_or_none()


def _deny(user: User, action: Action, message: str, organization_id: Optional[int]) -> Forbidden:
    logger.warning(
        f"User {user.id} ({user.user_type}) denied {action.value}"
        + (f" in organization {organization_id}" if organization_id else "")
    )
    log_audit_event(
        action=AuditAction.ACCESS_DENIED,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        organization_id=organization_id,
        details={"action": action.value},
    )
    return Forbidden(message)


def ensure_user_type(user: User, action: Action) -> None:
    """Apply only the global user-type part of a policy, before any lookup."""
    policy = POLICIES[action]
    if policy.user_types is not None and user.user_type not in policy.user_types:
        if not (policy.admin_bypass and user.user_type == UserType.ADMIN):
            raise _deny(user, action, policy.message, None)


async def authorize(
    db: AsyncSession,
    user: User,
    action: Action,
    *,
    organization_id: Optional[int] = None,
    assigned_user_id: Optional[int] = None,
    owner_user_id: Optional[int] = None,
) -> AccessGrant:
    """
    Resolve whether ``user`` may perform ``action``.

    Args:
        db: Database session used for the membership lookup
        user: Caller
        action: Action being attempted
        organization_id: Organization the target entity belongs to
        assigned_user_id: HR user the target is assigned to, if any
        owner_user_id: User who created the target, if any

    Returns:
        AccessGrant describing which rule matched

    Raises:
        Forbidden: caller is not allowed
    """
    policy = POLICIES[action]

    if policy.admin_bypass and user.user_type == UserType.ADMIN:
        return AccessGrant(via="admin")

    if policy.user_types is not None and user.user_type not in policy.user_types:
        raise _deny(user, action, policy.message, organization_id)

    if policy.owner and owner_user_id is not None and owner_user_id == user.id:
        return AccessGrant(via="owner")

    if policy.assigned_hr and user.user_type == UserType.HR:
        if assigned_user_id is not None and assigned_user_id == user.id:
            return AccessGrant(via="assignment")
        raise _deny(
            user, action, policy.unassigned_message or policy.message, organization_id
        )

    if policy.org_roles is not None or policy.membership:
        if organization_id is None:
            raise _deny(user, action, policy.message, organization_id)
        membership = await check_organization_access(user, organization_id, db)
        if membership is None:
            message = NO_ORG_ACCESS if policy.membership else policy.message
            raise _deny(user, action, message, organization_id)
        if policy.org_roles is not None and membership.role not in policy.org_roles:
            raise _deny(user, action, policy.message, organization_id)
        if (
            policy.hr_roles is not None
            and user.user_type == UserType.HR
            and membership.role not in policy.hr_roles
        ):
            raise _deny(user, action, policy.message, organization_id)
        return AccessGrant(
            via="role" if policy.org_roles is not None else "membership",
            membership=membership,
        )

    if policy.user_types is not None:
        return AccessGrant(via="user_type")

    raise _deny(user, action, policy.message, organization_id)
