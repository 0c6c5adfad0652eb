"""
Status lifecycles for the hiring pipeline.

Each entity status is a closed enum with an explicit transition table. All
status writes go through ``attempt_transition`` so that out-of-order or
backwards moves are rejected instead of silently stored.
"""

from enum import Enum as PyEnum
from typing import TypeVar

from core.errors import IllegalTransition, TransitionNotPermitted, ValidationFailed


class Actor(str, PyEnum):
    """Kind of caller driving a transition."""

    ADMIN = "admin"
    HR = "hr"
    CLIENT = "client"
    CANDIDATE = "candidate"
    SYSTEM = "system"  # cascades performed by the service itself

    @classmethod
    def for_user_type(cls, user_type: str) -> "Actor":
        return cls(str(getattr(user_type, "value", user_type)))


class _LifecycleStatus(str, PyEnum):
    """Shared helpers; subclasses bind their tables in ``_MACHINES``."""

    def is_terminal(self) -> bool:
        return self in _MACHINES[type(self)].terminals

    def can_transition_to(self, new: "_LifecycleStatus") -> bool:
        allowed = _MACHINES[type(self)].transitions.get(self, set())
        return new in allowed

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def try_parse(cls, value):
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
            return cls(normalized)
        except ValueError:
            return None


class JobRequestStatus(_LifecycleStatus):
    RECEIVED = "received"
    ASSIGNED_TO_HR = "assigned_to_hr"
    SHORTLISTING = "shortlisting"
    CANDIDATES_DELIVERED = "candidates_delivered"
    INTERVIEWS_SCHEDULED = "interviews_scheduled"
    SELECTION_PENDING = "selection_pending"
    OFFER_SENT = "offer_sent"
    HIRED = "hired"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def rank(self) -> int:
        """Position along the hiring pipeline; terminal side exits rank last."""
        try:
            return JOB_REQUEST_PIPELINE.index(self)
        except ValueError:
            return len(JOB_REQUEST_PIPELINE)

    def precedes(self, other: "JobRequestStatus") -> bool:
        return self.rank < other.rank


class CandidateStatus(_LifecycleStatus):
    DELIVERED = "delivered"
    VIEWED = "viewed"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    SELECTED = "selected"
    REJECTED = "rejected"
    OFFER_SENT = "offer_sent"
    HIRED = "hired"


class InterviewStatus(_LifecycleStatus):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class TicketStatus(_LifecycleStatus):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class InvitationStatus(_LifecycleStatus):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class SiteStaffStatus(_LifecycleStatus):
    ACTIVE = "active"
    RESIGNED = "resigned"


JOB_REQUEST_PIPELINE = [
    JobRequestStatus.RECEIVED,
    JobRequestStatus.ASSIGNED_TO_HR,
    JobRequestStatus.SHORTLISTING,
    JobRequestStatus.CANDIDATES_DELIVERED,
    JobRequestStatus.INTERVIEWS_SCHEDULED,
    JobRequestStatus.SELECTION_PENDING,
    JobRequestStatus.OFFER_SENT,
    JobRequestStatus.HIRED,
]

_JR = JobRequestStatus
JOB_REQUEST_TRANSITIONS = {
    _JR.RECEIVED: {_JR.ASSIGNED_TO_HR, _JR.CANDIDATES_DELIVERED, _JR.CLOSED, _JR.CANCELLED},
    _JR.ASSIGNED_TO_HR: {
        _JR.ASSIGNED_TO_HR,
        _JR.SHORTLISTING,
        _JR.CANDIDATES_DELIVERED,
        _JR.CLOSED,
        _JR.CANCELLED,
    },
    _JR.SHORTLISTING: {_JR.CANDIDATES_DELIVERED, _JR.CLOSED, _JR.CANCELLED},
    _JR.CANDIDATES_DELIVERED: {
        _JR.CANDIDATES_DELIVERED,
        _JR.SHORTLISTING,
        _JR.INTERVIEWS_SCHEDULED,
        _JR.SELECTION_PENDING,
        _JR.CLOSED,
        _JR.CANCELLED,
    },
    _JR.INTERVIEWS_SCHEDULED: {
        _JR.INTERVIEWS_SCHEDULED,
        _JR.SELECTION_PENDING,
        _JR.OFFER_SENT,
        _JR.HIRED,
        _JR.CLOSED,
        _JR.CANCELLED,
    },
    _JR.SELECTION_PENDING: {
        _JR.INTERVIEWS_SCHEDULED,
        _JR.OFFER_SENT,
        _JR.HIRED,
        _JR.CLOSED,
        _JR.CANCELLED,
    },
    _JR.OFFER_SENT: {_JR.SELECTION_PENDING, _JR.HIRED, _JR.CLOSED, _JR.CANCELLED},
    _JR.HIRED: {_JR.CLOSED},
}
JOB_REQUEST_TERMINALS = {_JR.CLOSED, _JR.CANCELLED}
JOB_REQUEST_ACTOR_GATES = {
    _JR.ASSIGNED_TO_HR: {Actor.ADMIN},
    _JR.SHORTLISTING: {Actor.HR, Actor.ADMIN, Actor.SYSTEM},
    _JR.CANDIDATES_DELIVERED: {Actor.HR, Actor.ADMIN, Actor.SYSTEM},
    _JR.CLOSED: {Actor.CLIENT, Actor.ADMIN},
    _JR.CANCELLED: {Actor.CLIENT, Actor.ADMIN},
}

_CS = CandidateStatus
CANDIDATE_TRANSITIONS = {
    _CS.DELIVERED: {
        _CS.VIEWED,
        _CS.SHORTLISTED,
        _CS.INTERVIEW_SCHEDULED,
        _CS.SELECTED,
        _CS.REJECTED,
    },
    _CS.VIEWED: {_CS.SHORTLISTED, _CS.INTERVIEW_SCHEDULED, _CS.SELECTED, _CS.REJECTED},
    _CS.SHORTLISTED: {_CS.INTERVIEW_SCHEDULED, _CS.SELECTED, _CS.REJECTED},
    _CS.INTERVIEW_SCHEDULED: {
        _CS.INTERVIEW_SCHEDULED,
        _CS.INTERVIEW_COMPLETED,
        _CS.SELECTED,
        _CS.REJECTED,
    },
    _CS.INTERVIEW_COMPLETED: {_CS.INTERVIEW_SCHEDULED, _CS.SELECTED, _CS.REJECTED},
    _CS.SELECTED: {_CS.OFFER_SENT, _CS.HIRED, _CS.REJECTED},
    _CS.OFFER_SENT: {_CS.HIRED, _CS.REJECTED},
}
CANDIDATE_TERMINALS = {_CS.HIRED, _CS.REJECTED}
CANDIDATE_ACTOR_GATES = {
    _CS.VIEWED: {Actor.SYSTEM},
    _CS.HIRED: {Actor.CLIENT, Actor.ADMIN, Actor.SYSTEM},
}

_IS = InterviewStatus
INTERVIEW_TRANSITIONS = {
    _IS.SCHEDULED: {_IS.CONFIRMED, _IS.COMPLETED, _IS.CANCELLED, _IS.RESCHEDULED},
    _IS.CONFIRMED: {_IS.COMPLETED, _IS.CANCELLED, _IS.RESCHEDULED},
    _IS.RESCHEDULED: {_IS.CONFIRMED, _IS.COMPLETED, _IS.CANCELLED},
}
INTERVIEW_TERMINALS = {_IS.COMPLETED, _IS.CANCELLED}

_TS = TicketStatus
TICKET_TRANSITIONS = {
    _TS.OPEN: {_TS.ASSIGNED, _TS.IN_PROGRESS, _TS.RESOLVED, _TS.CLOSED},
    _TS.ASSIGNED: {_TS.OPEN, _TS.ASSIGNED, _TS.IN_PROGRESS, _TS.RESOLVED, _TS.CLOSED},
    _TS.IN_PROGRESS: {_TS.OPEN, _TS.ASSIGNED, _TS.RESOLVED, _TS.CLOSED},
    _TS.RESOLVED: {_TS.IN_PROGRESS, _TS.CLOSED},
}
TICKET_TERMINALS = {_TS.CLOSED}

_INV = InvitationStatus
INVITATION_TRANSITIONS = {
    _INV.PENDING: {_INV.APPROVED, _INV.REJECTED, _INV.EXPIRED},
    _INV.APPROVED: {_INV.ACCEPTED, _INV.EXPIRED},
}
INVITATION_TERMINALS = {_INV.REJECTED, _INV.ACCEPTED, _INV.EXPIRED}

SITE_STAFF_TRANSITIONS = {SiteStaffStatus.ACTIVE: {SiteStaffStatus.RESIGNED}}
SITE_STAFF_TERMINALS = {SiteStaffStatus.RESIGNED}


class _Machine:
    def __init__(self, entity, transitions, terminals, actor_gates=None):
        self.entity = entity
        self.transitions = transitions
        self.terminals = terminals
        self.actor_gates = actor_gates or {}


_MACHINES: dict[type, _Machine] = {
    JobRequestStatus: _Machine(
        "job request", JOB_REQUEST_TRANSITIONS, JOB_REQUEST_TERMINALS, JOB_REQUEST_ACTOR_GATES
    ),
    CandidateStatus: _Machine(
        "candidate", CANDIDATE_TRANSITIONS, CANDIDATE_TERMINALS, CANDIDATE_ACTOR_GATES
    ),
    InterviewStatus: _Machine("interview", INTERVIEW_TRANSITIONS, INTERVIEW_TERMINALS),
    TicketStatus: _Machine("ticket", TICKET_TRANSITIONS, TICKET_TERMINALS),
    InvitationStatus: _Machine("invitation", INVITATION_TRANSITIONS, INVITATION_TERMINALS),
    SiteStaffStatus: _Machine("site staff", SITE_STAFF_TRANSITIONS, SITE_STAFF_TERMINALS),
}

S = TypeVar("S", bound=_LifecycleStatus)


def parse_status(status_cls: type[S], value) -> S:
    """Parse a caller-supplied status, raising a 400 for unknown values."""
    parsed = status_cls.try_parse(value)
    if parsed is None:
        entity = _MACHINES[status_cls].entity
        raise ValidationFailed(f"Invalid {entity} status: {value}")
    return parsed


def attempt_transition(current: S, requested, actor: Actor) -> S:
    """
    Validate a status change and return the new status.

    ``requested`` may be an enum member or a raw string. Requesting the current
    status is a no-op.

    Raises:
        ValidationFailed: unknown status value
        IllegalTransition: ``requested`` is not reachable from ``current``
        TransitionNotPermitted: ``actor`` may not drive ``requested``
    """
    status_cls = type(current)
    machine = _MACHINES[status_cls]
    target = parse_status(status_cls, requested)

    if target == current:
        return current

    if not current.can_transition_to(target):
        raise IllegalTransition(machine.entity, current.value, target.value)

    allowed_actors = machine.actor_gates.get(target)
    if allowed_actors is not None and actor not in allowed_actors:
        raise TransitionNotPermitted(machine.entity, target.value, Actor(actor).value)

    return target


def advance_job_request(
    current: JobRequestStatus, target: JobRequestStatus, actor: Actor
) -> JobRequestStatus:
    """
    Move a job request forward to ``target`` unless it is already there or past it.

    Later pipeline stages are kept as they are; terminal requests reject the move.
    """
    if current.is_terminal():
        raise IllegalTransition("job request", current.value, target.value)
    if current.precedes(target):
        return attempt_transition(current, target, actor)
    return current
