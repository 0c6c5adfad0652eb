"""Interview scheduling service functions."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import and_, delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.activity import record_activity
from api.services.job_requests import get_job_request_or_404
from api.services.notifications import NotificationEvent, Notifier
from core.errors import NotFound, ValidationFailed
from core.lifecycle import (
    Actor,
    CandidateStatus,
    InterviewStatus,
    JobRequestStatus,
    attempt_transition,
    parse_status,
)
from core.middleware.authorization import Action, authorize
from core.utils.datetime import Clock, now, parse_instant
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.candidates import Candidate
from database.models.interviews import Interview, InterviewParticipant, ParticipantRole
from database.models.job_requests import JobRequest
from database.models.notifications import NotificationType
from database.models.users import User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "scheduled_at",
    "duration_minutes",
    "meeting_link",
    "meeting_platform",
    "notes",
    "feedback",
    "status",
)
UPCOMING_STATUSES = (InterviewStatus.SCHEDULED, InterviewStatus.CONFIRMED)


@dataclass
class ParticipantView:
    id: int
    interview_id: int
    user_id: int
    role: ParticipantRole
    confirmed: bool
    confirmed_at: Optional[datetime]
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str]


@dataclass
class InterviewDetail:
    interview: Interview
    participants: list[ParticipantView] = field(default_factory=list)


@dataclass
class InterviewSummary:
    interview: Interview
    candidate_name: Optional[str] = None
    job_request_title: Optional[str] = None


def _parse_scheduled_at(value: Any) -> datetime:
    if value is None or value == "":
        raise ValidationFailed("Scheduled time is required")
    try:
        return parse_instant(value)
    except ValueError as e:
        raise ValidationFailed(str(e))


def _validate_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed("Duration must be a positive number of minutes")
    return value


async def get_interview_or_404(session: AsyncSession, interview_id: int) -> Interview:
    result = await session.execute(select(Interview).where(Interview.id == interview_id))
    interview = result.scalar_one_or_none()
    if interview is None:
        raise NotFound("Interview not found")
    return interview


async def _authorize_for_job(
    session: AsyncSession, actor: User, job_request: JobRequest, action: Action
) -> None:
    await authorize(
        session,
        actor,
        action,
        organization_id=job_request.organization_id,
        assigned_user_id=job_request.assigned_to_hr_user_id,
    )


async def list_participants(
    session: AsyncSession, interview_id: int
) -> list[ParticipantView]:
    result = await session.execute(
        select(InterviewParticipant, User.first_name, User.last_name, User.email)
        .join(User, User.id == InterviewParticipant.user_id)
        .where(InterviewParticipant.interview_id == interview_id)
        .order_by(InterviewParticipant.id)
    )
    return [
        ParticipantView(
            id=participant.id,
            interview_id=participant.interview_id,
            user_id=participant.user_id,
            role=participant.role,
            confirmed=participant.confirmed,
            confirmed_at=participant.confirmed_at,
            first_name=first_name,
            last_name=last_name,
            email=email,
        )
        for participant, first_name, last_name, email in result.all()
    ]


async def _existing_user_ids(session: AsyncSession, user_ids: Iterable[int]) -> set[int]:
    ids = list(user_ids)
    if not ids:
        return set()
    result = await session.execute(select(User.id).where(User.id.in_(ids)))
    return set(result.scalars().all())


# ---------- Create / read ---------- #

async def create_interview(
    session: AsyncSession,
    actor: User,
    *,
    job_request_id: Optional[int],
    candidate_id: Optional[int],
    scheduled_at: Any,
    notifier: Notifier,
    duration_minutes: Optional[int] = None,
    meeting_link: Optional[str] = None,
    meeting_platform: Optional[str] = None,
    notes: Optional[str] = None,
    participant_user_ids: Optional[list[int]] = None,
    clock: Clock = now,
) -> InterviewDetail:
    """
    Schedule an interview and cascade the candidate and job request statuses.

    The interview, its participants and both cascades commit together or not
    at all. The creator is always the single organizer.
    """
    if job_request_id is None or candidate_id is None:
        raise ValidationFailed("Job request ID and candidate ID are required")
    when = _parse_scheduled_at(scheduled_at)
    duration = 60 if duration_minutes is None else _validate_duration(duration_minutes)

    job_request = await get_job_request_or_404(session, job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_CREATE)

    candidate = (
        await session.execute(select(Candidate).where(Candidate.id == candidate_id))
    ).scalar_one_or_none()
    if candidate is None or candidate.job_request_id != job_request.id:
        raise ValidationFailed("Candidate does not belong to this job request")

    attendee_ids: list[int] = []
    for user_id in participant_user_ids or []:
        if user_id != actor.id and user_id not in attendee_ids:
            attendee_ids.append(user_id)
    missing = set(attendee_ids) - await _existing_user_ids(session, attendee_ids)
    if missing:
        raise ValidationFailed(f"Unknown participant user IDs: {sorted(missing)}")

    async with transactional(session):
        stamp = clock()
        interview = Interview(
            job_request_id=job_request.id,
            candidate_id=candidate.id,
            scheduled_by_user_id=actor.id,
            scheduled_at=when,
            duration_minutes=duration,
            meeting_link=meeting_link,
            meeting_platform=meeting_platform,
            notes=notes,
            status=InterviewStatus.SCHEDULED,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(interview)
        await session.flush()

        session.add(
            InterviewParticipant(
                interview_id=interview.id,
                user_id=actor.id,
                role=ParticipantRole.ORGANIZER,
                created_at=stamp,
            )
        )
        session.add_all(
            InterviewParticipant(
                interview_id=interview.id,
                user_id=user_id,
                role=ParticipantRole.ATTENDEE,
                created_at=stamp,
            )
            for user_id in attendee_ids
        )

        previous_candidate = candidate.status
        candidate.status = attempt_transition(
            candidate.status, CandidateStatus.INTERVIEW_SCHEDULED, Actor.SYSTEM
        )
        candidate.updated_at = stamp

        previous_job = job_request.status
        job_request.status = attempt_transition(
            job_request.status, JobRequestStatus.INTERVIEWS_SCHEDULED, Actor.SYSTEM
        )
        job_request.updated_at = stamp
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.CREATED,
            EntityType.INTERVIEW,
            interview.id,
            organization_id=job_request.organization_id,
            new_value={
                "scheduled_at": when.isoformat(),
                "candidate_status": candidate.status.value,
                "job_request_status": job_request.status.value,
            },
            old_value={
                "candidate_status": previous_candidate.value,
                "job_request_status": previous_job.value,
            },
            details={"candidate_id": candidate.id, "job_request_id": job_request.id},
            clock=clock,
        )

        when_text = when.strftime("%Y-%m-%d %H:%M UTC")
        await notifier.notify(
            session,
            [candidate.user_id],
            NotificationEvent(
                type=NotificationType.INTERVIEW_SCHEDULED,
                title="Interview Scheduled",
                message=f"Your interview for '{job_request.title}' is scheduled for {when_text}",
                entity_type=EntityType.INTERVIEW,
                entity_id=interview.id,
                email=True,
            ),
            exclude=actor.id,
        )
        await notifier.notify(
            session,
            [user_id for user_id in attendee_ids if user_id != candidate.user_id],
            NotificationEvent(
                type=NotificationType.INTERVIEW_SCHEDULED,
                title="Interview Invitation",
                message=f"You have been invited to interview {candidate.name} on {when_text}",
                entity_type=EntityType.INTERVIEW,
                entity_id=interview.id,
                email=True,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(
        f"Interview {interview.id} scheduled for candidate {candidate.id} "
        f"on job request {job_request.id}"
    )
    return InterviewDetail(
        interview=interview, participants=await list_participants(session, interview.id)
    )


async def get_interview(
    session: AsyncSession, actor: User, interview_id: int
) -> InterviewDetail:
    interview = await get_interview_or_404(session, interview_id)
    job_request = await get_job_request_or_404(session, interview.job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_VIEW)
    return InterviewDetail(
        interview=interview, participants=await list_participants(session, interview.id)
    )


# ---------- Update ---------- #

def _update_event(old: InterviewStatus, new: InterviewStatus, title: str) -> tuple[str, str]:
    if new != old and new == InterviewStatus.CANCELLED:
        return "Interview Cancelled", f"The interview for '{title}' has been cancelled"
    if new != old and new == InterviewStatus.COMPLETED:
        return "Interview Completed", f"The interview for '{title}' has been completed"
    return "Interview Updated", f"The interview for '{title}' has been updated"


async def update_interview(
    session: AsyncSession,
    actor: User,
    interview_id: int,
    changes: dict[str, Any],
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> InterviewDetail:
    """
    Partial update. ``completed`` also moves the candidate to
    ``interview_completed``; participants get the matching notification.
    """
    interview = await get_interview_or_404(session, interview_id)
    job_request = await get_job_request_or_404(session, interview.job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_UPDATE)

    updates = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
    if "scheduled_at" in updates:
        updates["scheduled_at"] = _parse_scheduled_at(updates["scheduled_at"])
    if "duration_minutes" in updates:
        updates["duration_minutes"] = _validate_duration(updates["duration_minutes"])

    old_status = interview.status
    new_status = old_status
    if "status" in updates:
        new_status = attempt_transition(
            old_status, updates.pop("status"), Actor.for_user_type(actor.user_type)
        )

    old_value: dict[str, Any] = {}
    new_value: dict[str, Any] = {}

    async with transactional(session):
        stamp = clock()
        for key, value in updates.items():
            previous = getattr(interview, key)
            if previous != value:
                old_value[key] = previous.isoformat() if isinstance(previous, datetime) else previous
                new_value[key] = value.isoformat() if isinstance(value, datetime) else value
                setattr(interview, key, value)

        if new_status != old_status:
            old_value["status"] = old_status.value
            new_value["status"] = new_status.value
            interview.status = new_status

            if new_status == InterviewStatus.COMPLETED:
                candidate = (
                    await session.execute(
                        select(Candidate).where(Candidate.id == interview.candidate_id)
                    )
                ).scalar_one()
                if candidate.status == CandidateStatus.INTERVIEW_SCHEDULED:
                    candidate.status = attempt_transition(
                        candidate.status, CandidateStatus.INTERVIEW_COMPLETED, Actor.SYSTEM
                    )
                    candidate.updated_at = stamp

        interview.updated_at = stamp

        action = {
            InterviewStatus.CANCELLED: ActivityAction.CANCELLED,
            InterviewStatus.COMPLETED: ActivityAction.COMPLETED,
            InterviewStatus.RESCHEDULED: ActivityAction.RESCHEDULED,
        }.get(new_status, ActivityAction.STATUS_CHANGED) if new_status != old_status else ActivityAction.UPDATED
        await record_activity(
            session,
            actor,
            action,
            EntityType.INTERVIEW,
            interview.id,
            organization_id=job_request.organization_id,
            old_value=old_value or None,
            new_value=new_value or None,
            clock=clock,
        )

        title, message = _update_event(old_status, new_status, job_request.title)
        participant_ids = (
            await session.execute(
                select(InterviewParticipant.user_id).where(
                    InterviewParticipant.interview_id == interview.id
                )
            )
        ).scalars().all()
        await notifier.notify(
            session,
            participant_ids,
            NotificationEvent(
                type=NotificationType.STATUS_UPDATE,
                title=title,
                message=message,
                entity_type=EntityType.INTERVIEW,
                entity_id=interview.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(f"Interview {interview.id} updated by user {actor.id}: {sorted(new_value)}")
    return InterviewDetail(
        interview=interview, participants=await list_participants(session, interview.id)
    )


# ---------- Participants ---------- #

async def add_participant(
    session: AsyncSession,
    actor: User,
    interview_id: int,
    user_id: Optional[int],
    role: Any = ParticipantRole.ATTENDEE,
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> tuple[InterviewParticipant, bool]:
    """
    Put a user on the roster. Adding someone already there is a no-op.

    Returns:
        (participant, created)
    """
    if user_id is None:
        raise ValidationFailed("User ID is required")
    try:
        participant_role = ParticipantRole(getattr(role, "value", role) or "attendee")
    except ValueError:
        raise ValidationFailed(f"Invalid participant role: {role}")

    interview = await get_interview_or_404(session, interview_id)
    job_request = await get_job_request_or_404(session, interview.job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_MANAGE_PARTICIPANTS)

    if not await _existing_user_ids(session, [user_id]):
        raise NotFound("User not found")

    existing = (
        await session.execute(
            select(InterviewParticipant).where(
                and_(
                    InterviewParticipant.interview_id == interview.id,
                    InterviewParticipant.user_id == user_id,
                )
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing, False

    async with transactional(session):
        participant = InterviewParticipant(
            interview_id=interview.id,
            user_id=user_id,
            role=participant_role,
            created_at=clock(),
        )
        session.add(participant)
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.PARTICIPANT_ADDED,
            EntityType.INTERVIEW,
            interview.id,
            organization_id=job_request.organization_id,
            details={"user_id": user_id, "role": participant_role.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            [user_id],
            NotificationEvent(
                type=NotificationType.INTERVIEW_SCHEDULED,
                title="Interview Invitation",
                message=f"You have been added to an interview for '{job_request.title}'",
                entity_type=EntityType.INTERVIEW,
                entity_id=interview.id,
                email=True,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()
    return participant, True


async def remove_participant(
    session: AsyncSession,
    actor: User,
    interview_id: int,
    user_id: int,
    *,
    clock: Clock = now,
) -> None:
    interview = await get_interview_or_404(session, interview_id)
    job_request = await get_job_request_or_404(session, interview.job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_MANAGE_PARTICIPANTS)

    async with transactional(session):
        result = await session.execute(
            delete(InterviewParticipant).where(
                and_(
                    InterviewParticipant.interview_id == interview.id,
                    InterviewParticipant.user_id == user_id,
                )
            )
        )
        if not result.rowcount:
            raise NotFound("Participant not found")

        await record_activity(
            session,
            actor,
            ActivityAction.PARTICIPANT_REMOVED,
            EntityType.INTERVIEW,
            interview.id,
            organization_id=job_request.organization_id,
            details={"user_id": user_id},
            clock=clock,
        )


# ---------- Queries ---------- #

async def query_interviews(
    session: AsyncSession,
    *,
    organization_id: Optional[int] = None,
    job_request_id: Optional[int] = None,
    assigned_hr_user_id: Optional[int] = None,
    participant_user_id: Optional[int] = None,
    statuses: Optional[Iterable[InterviewStatus]] = None,
    scheduled_after: Optional[datetime] = None,
    scheduled_before: Optional[datetime] = None,
    limit: Optional[int] = None,
    ascending: bool = False,
) -> list[InterviewSummary]:
    """Single read path behind every interview listing."""
    query = (
        select(Interview, Candidate.name, JobRequest.title)
        .join(JobRequest, JobRequest.id == Interview.job_request_id)
        .join(Candidate, Candidate.id == Interview.candidate_id)
    )
    if organization_id is not None:
        query = query.where(JobRequest.organization_id == organization_id)
    if job_request_id is not None:
        query = query.where(Interview.job_request_id == job_request_id)
    if assigned_hr_user_id is not None:
        query = query.where(JobRequest.assigned_to_hr_user_id == assigned_hr_user_id)
    if participant_user_id is not None:
        query = query.where(
            exists().where(
                and_(
                    InterviewParticipant.interview_id == Interview.id,
                    InterviewParticipant.user_id == participant_user_id,
                )
            )
        )
    if statuses:
        query = query.where(Interview.status.in_(list(statuses)))
    if scheduled_after is not None:
        query = query.where(Interview.scheduled_at > scheduled_after)
    if scheduled_before is not None:
        query = query.where(Interview.scheduled_at < scheduled_before)

    order = Interview.scheduled_at.asc() if ascending else Interview.scheduled_at.desc()
    query = query.order_by(order, Interview.id)
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return [
        InterviewSummary(interview=interview, candidate_name=name, job_request_title=title)
        for interview, name, title in result.all()
    ]


def _statuses(status: Optional[str]) -> Optional[list[InterviewStatus]]:
    return [parse_status(InterviewStatus, status)] if status else None


async def list_job_request_interviews(
    session: AsyncSession, actor: User, job_request_id: int
) -> list[InterviewSummary]:
    job_request = await get_job_request_or_404(session, job_request_id)
    await _authorize_for_job(session, actor, job_request, Action.INTERVIEW_VIEW)
    return await query_interviews(session, job_request_id=job_request_id, ascending=True)


async def list_organization_interviews(
    session: AsyncSession, actor: User, organization_id: int, status: Optional[str] = None
) -> list[InterviewSummary]:
    await authorize(session, actor, Action.ORG_VIEW, organization_id=organization_id)
    return await query_interviews(
        session, organization_id=organization_id, statuses=_statuses(status)
    )


async def list_upcoming_interviews(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    limit: int = 10,
    clock: Clock = now,
) -> list[InterviewSummary]:
    await authorize(session, actor, Action.ORG_VIEW, organization_id=organization_id)
    return await query_interviews(
        session,
        organization_id=organization_id,
        statuses=UPCOMING_STATUSES,
        scheduled_after=clock(),
        limit=limit,
        ascending=True,
    )


async def list_my_interviews(
    session: AsyncSession, actor: User, status: Optional[str] = None
) -> list[InterviewSummary]:
    return await query_interviews(
        session, participant_user_id=actor.id, statuses=_statuses(status), ascending=True
    )


async def list_assigned_interviews(
    session: AsyncSession, actor: User, status: Optional[str] = None
) -> list[InterviewSummary]:
    await authorize(session, actor, Action.INTERVIEW_LIST_ASSIGNED)
    return await query_interviews(
        session, assigned_hr_user_id=actor.id, statuses=_statuses(status), ascending=True
    )


async def list_all_interviews(
    session: AsyncSession, actor: User, status: Optional[str] = None
) -> list[InterviewSummary]:
    await authorize(session, actor, Action.INTERVIEW_LIST_ALL)
    return await query_interviews(session, statuses=_statuses(status))
