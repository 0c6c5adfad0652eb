"""ORM models. Importing this package registers every table on Base.metadata."""

from database.models.users import User, UserType
from database.models.organizations import (
    Department,
    MembershipRole,
    Organization,
    OrganizationStatus,
    UserOrganization,
)
from database.models.job_requests import JobRequest, JobRequestPriority
from database.models.candidates import Candidate
from database.models.interviews import Interview, InterviewParticipant, ParticipantRole
from database.models.tickets import Ticket, TicketMessage, TicketType
from database.models.invitations import UserInvitation
from database.models.site_staff import SiteStaff
from database.models.notifications import Notification, NotificationType
from database.models.audit import ActivityAction, ActivityLog, EntityType

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "Candidate",
    "Department",
    "EntityType",
    "Interview",
    "InterviewParticipant",
    "JobRequest",
    "JobRequestPriority",
    "MembershipRole",
    "Notification",
    "NotificationType",
    "Organization",
    "OrganizationStatus",
    "ParticipantRole",
    "SiteStaff",
    "Ticket",
    "TicketMessage",
    "TicketType",
    "User",
    "UserInvitation",
    "UserOrganization",
    "UserType",
]
