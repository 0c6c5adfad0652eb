"""Job request service functions."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.activity import record_activity
from api.services.notifications import (
    NotificationEvent,
    Notifier,
    organization_member_ids,
    user_ids_of_type,
)
from core.config import settings
from core.errors import IllegalTransition, NotFound, ValidationFailed
from core.lifecycle import (
    Actor,
    JobRequestStatus,
    advance_job_request,
    attempt_transition,
    parse_status,
)
from core.middleware.authorization import Action, authorize, ensure_user_type
from core.utils.datetime import Clock, now
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.candidates import Candidate
from database.models.interviews import Interview
from database.models.job_requests import JobRequest, JobRequestPriority
from database.models.notifications import NotificationType
from database.models.organizations import Department, MembershipRole
from database.models.users import User, UserType

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = (
    "title",
    "job_description",
    "requirements",
    "timeline_to_hire",
    "priority",
    "status",
    "assigned_to_hr_user_id",
    "hiring_manager_user_id",
)


@dataclass
class JobRequestDetail:
    job_request: JobRequest
    candidates: list[Candidate] = field(default_factory=list)
    interviews: list[Interview] = field(default_factory=list)


@dataclass
class JobRequestSummary:
    job_request: JobRequest
    candidate_count: int = 0
    interview_count: int = 0


@dataclass
class PushResult:
    job_request: JobRequest
    candidates: list[Candidate]
    message: str

    @property
    def created(self) -> bool:
        return bool(self.candidates)


def actor_for(user: User) -> Actor:
    return Actor.for_user_type(user.user_type)


def _parse_priority(value: Any) -> JobRequestPriority:
    try:
        return JobRequestPriority(str(getattr(value, "value", value)).lower())
    except ValueError:
        raise ValidationFailed(f"Invalid priority: {value}")


async def get_job_request_or_404(session: AsyncSession, job_request_id: int) -> JobRequest:
    result = await session.execute(select(JobRequest).where(JobRequest.id == job_request_id))
    job_request = result.scalar_one_or_none()
    if job_request is None:
        raise NotFound("Job request not found")
    return job_request


async def _load_user(session: AsyncSession, user_id: Optional[int]) -> Optional[User]:
    if user_id is None:
        return None
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _require_hr_user(session: AsyncSession, user_id: int) -> User:
    hr_user = await _load_user(session, user_id)
    if hr_user is None or hr_user.user_type != UserType.HR:
        raise ValidationFailed("Invalid HR user")
    return hr_user


def _with_counts(query):
    candidate_count = (
        select(func.count(Candidate.id))
        .where(Candidate.job_request_id == JobRequest.id)
        .correlate(JobRequest)
        .scalar_subquery()
    )
    interview_count = (
        select(func.count(Interview.id))
        .where(Interview.job_request_id == JobRequest.id)
        .correlate(JobRequest)
        .scalar_subquery()
    )
    return query.add_columns(
        candidate_count.label("candidate_count"),
        interview_count.label("interview_count"),
    )


async def _summaries(session: AsyncSession, query) -> list[JobRequestSummary]:
    result = await session.execute(
        _with_counts(query).order_by(JobRequest.created_at.desc(), JobRequest.id.desc())
    )
    return [
        JobRequestSummary(job_request=row[0], candidate_count=row[1], interview_count=row[2])
        for row in result.all()
    ]


# ---------- Create / read ---------- #

async def create_job_request(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    title: Optional[str],
    job_description: Optional[str],
    notifier: Notifier,
    department_id: Optional[int] = None,
    hiring_manager_user_id: Optional[int] = None,
    requirements: Optional[str] = None,
    timeline_to_hire: Optional[str] = None,
    priority: Any = None,
    clock: Clock = now,
) -> JobRequest:
    """
    Submit a job request for an organization.

    The request starts ``received`` and every admin is notified.
    """
    await authorize(session, actor, Action.JOB_REQUEST_CREATE, organization_id=organization_id)

    if not title or not title.strip() or not job_description or not job_description.strip():
        raise ValidationFailed("Title and job description are required")

    if department_id is not None:
        department = (
            await session.execute(select(Department).where(Department.id == department_id))
        ).scalar_one_or_none()
        if department is None or department.organization_id != organization_id:
            raise ValidationFailed("Department does not belong to this organization")

    async with transactional(session):
        stamp = clock()
        job_request = JobRequest(
            organization_id=organization_id,
            department_id=department_id,
            requested_by_user_id=actor.id,
            hiring_manager_user_id=hiring_manager_user_id,
            title=title.strip(),
            job_description=job_description,
            requirements=requirements,
            timeline_to_hire=timeline_to_hire,
            priority=_parse_priority(priority) if priority else JobRequestPriority.NORMAL,
            status=JobRequestStatus.RECEIVED,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(job_request)
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.CREATED,
            EntityType.JOB_REQUEST,
            job_request.id,
            organization_id=organization_id,
            new_value={"title": job_request.title, "status": job_request.status.value},
            clock=clock,
        )
        await notifier.notify(
            session,
            await user_ids_of_type(session, UserType.ADMIN),
            NotificationEvent(
                type=NotificationType.JOB_REQUEST_RECEIVED,
                title="New Job Request",
                message=f"New job request '{job_request.title}' has been submitted",
                entity_type=EntityType.JOB_REQUEST,
                entity_id=job_request.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(f"Job request {job_request.id} created in organization {organization_id}")
    return job_request


async def get_job_request(
    session: AsyncSession, actor: User, job_request_id: int
) -> JobRequestDetail:
    job_request = await get_job_request_or_404(session, job_request_id)
    await authorize(
        session,
        actor,
        Action.JOB_REQUEST_VIEW,
        organization_id=job_request.organization_id,
        assigned_user_id=job_request.assigned_to_hr_user_id,
    )

    candidates = await session.execute(
        select(Candidate)
        .where(Candidate.job_request_id == job_request.id)
        .order_by(Candidate.delivered_at.desc(), Candidate.id.desc())
    )
    interviews = await session.execute(
        select(Interview)
        .where(Interview.job_request_id == job_request.id)
        .order_by(Interview.scheduled_at.asc())
    )
    return JobRequestDetail(
        job_request=job_request,
        candidates=list(candidates.scalars().all()),
        interviews=list(interviews.scalars().all()),
    )


async def list_job_requests(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    *,
    status: Optional[str] = None,
    department_id: Optional[int] = None,
) -> list[JobRequestSummary]:
    await authorize(session, actor, Action.JOB_REQUEST_LIST, organization_id=organization_id)

    query = select(JobRequest).where(JobRequest.organization_id == organization_id)
    if status:
        query = query.where(JobRequest.status == parse_status(JobRequestStatus, status))
    if department_id is not None:
        query = query.where(JobRequest.department_id == department_id)
    return await _summaries(session, query)


async def list_department_job_requests(
    session: AsyncSession, actor: User, department_id: int
) -> list[JobRequestSummary]:
    department = (
        await session.execute(select(Department).where(Department.id == department_id))
    ).scalar_one_or_none()
    if department is None:
        raise NotFound("Department not found")

    await authorize(
        session, actor, Action.JOB_REQUEST_LIST, organization_id=department.organization_id
    )
    return await _summaries(
        session, select(JobRequest).where(JobRequest.department_id == department_id)
    )


async def job_request_statistics(
    session: AsyncSession,
    actor: User,
    organization_id: int,
    department_id: Optional[int] = None,
) -> dict[str, int]:
    """Count per status plus ``total``. Every status key is always present."""
    await authorize(session, actor, Action.JOB_REQUEST_LIST, organization_id=organization_id)

    query = (
        select(JobRequest.status, func.count(JobRequest.id))
        .where(JobRequest.organization_id == organization_id)
        .group_by(JobRequest.status)
    )
    if department_id is not None:
        query = query.where(JobRequest.department_id == department_id)

    stats = {status.value: 0 for status in JobRequestStatus}
    for status, count in (await session.execute(query)).all():
        stats[JobRequestStatus(status).value] = count
    stats["total"] = sum(stats.values())
    return stats


# ---------- Mutations ---------- #

async def update_job_request(
    session: AsyncSession,
    actor: User,
    job_request_id: int,
    changes: dict[str, Any],
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> JobRequest:
    """
    Partial update. ``status`` goes through the transition table.

    Every org member and the assigned HR are told about the change.
    """
    job_request = await get_job_request_or_404(session, job_request_id)
    await authorize(
        session,
        actor,
        Action.JOB_REQUEST_UPDATE,
        organization_id=job_request.organization_id,
        assigned_user_id=job_request.assigned_to_hr_user_id,
    )

    updates = {key: value for key, value in changes.items() if key in MUTABLE_FIELDS}
    for key in ("title", "job_description"):
        if key in updates and not (updates[key] or "").strip():
            raise ValidationFailed("Title and job description cannot be empty")

    old_value: dict[str, Any] = {}
    new_value: dict[str, Any] = {}

    async with transactional(session):
        stamp = clock()

        if "status" in updates:
            current = job_request.status
            target = attempt_transition(current, updates.pop("status"), actor_for(actor))
            if target != current:
                old_value["status"] = current.value
                new_value["status"] = target.value
                job_request.status = target
                if target == JobRequestStatus.CANDIDATES_DELIVERED:
                    job_request.candidates_delivered_at = stamp

        if "priority" in updates:
            updates["priority"] = _parse_priority(updates["priority"])

        if "assigned_to_hr_user_id" in updates:
            hr_user_id = updates.pop("assigned_to_hr_user_id")
            if hr_user_id != job_request.assigned_to_hr_user_id:
                if hr_user_id is not None:
                    await _require_hr_user(session, hr_user_id)
                old_value["assigned_to_hr_user_id"] = job_request.assigned_to_hr_user_id
                new_value["assigned_to_hr_user_id"] = hr_user_id
                job_request.assigned_to_hr_user_id = hr_user_id
                job_request.assigned_at = stamp if hr_user_id is not None else None

        for key, value in updates.items():
            previous = getattr(job_request, key)
            if previous != value:
                old_value[key] = getattr(previous, "value", previous)
                new_value[key] = getattr(value, "value", value)
                setattr(job_request, key, value)

        job_request.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.STATUS_CHANGED if "status" in new_value else ActivityAction.UPDATED,
            EntityType.JOB_REQUEST,
            job_request.id,
            organization_id=job_request.organization_id,
            old_value=old_value or None,
            new_value=new_value or None,
            clock=clock,
        )

        members = await organization_member_ids(session, job_request.organization_id)
        await notifier.notify(
            session,
            [*members, job_request.assigned_to_hr_user_id],
            NotificationEvent(
                type=NotificationType.STATUS_UPDATE,
                title="Job Request Updated",
                message=f"Job request '{job_request.title}' has been updated",
                entity_type=EntityType.JOB_REQUEST,
                entity_id=job_request.id,
            ),
            exclude=actor.id,
        )
    notifier.dispatch()

    logger.info(f"Job request {job_request.id} updated by user {actor.id}: {sorted(new_value)}")
    return job_request


async def assign_hr(
    session: AsyncSession,
    actor: User,
    job_request_id: int,
    hr_user_id: Optional[int],
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> JobRequest:
    """
    Point a job request at an HR user.

    ``received`` and ``assigned_to_hr`` requests move to ``assigned_to_hr``;
    requests further along keep their status and only the HR pointer changes.
    """
    await authorize(session, actor, Action.JOB_REQUEST_ASSIGN_HR)

    if hr_user_id is None:
        raise ValidationFailed("HR user ID is required")

    job_request = await get_job_request_or_404(session, job_request_id)
    hr_user = await _require_hr_user(session, hr_user_id)

    current = job_request.status
    if current.is_terminal():
        raise IllegalTransition("job request", current.value, JobRequestStatus.ASSIGNED_TO_HR.value)

    async with transactional(session):
        stamp = clock()
        previous_hr = job_request.assigned_to_hr_user_id
        if current in (JobRequestStatus.RECEIVED, JobRequestStatus.ASSIGNED_TO_HR):
            job_request.status = attempt_transition(
                current, JobRequestStatus.ASSIGNED_TO_HR, Actor.ADMIN
            )
        job_request.assigned_to_hr_user_id = hr_user.id
        job_request.assigned_at = stamp
        job_request.updated_at = stamp

        await record_activity(
            session,
            actor,
            ActivityAction.ASSIGNED,
            EntityType.JOB_REQUEST,
            job_request.id,
            organization_id=job_request.organization_id,
            old_value={"assigned_to_hr_user_id": previous_hr, "status": current.value},
            new_value={
                "assigned_to_hr_user_id": hr_user.id,
                "status": job_request.status.value,
            },
            clock=clock,
        )
        await notifier.notify(
            session,
            [hr_user.id],
            NotificationEvent(
                type=NotificationType.JOB_ASSIGNED,
                title="New Job Assignment",
                message=f"You have been assigned to job request '{job_request.title}'",
                entity_type=EntityType.JOB_REQUEST,
                entity_id=job_request.id,
                email=True,
            ),
        )
    notifier.dispatch()

    logger.info(f"Job request {job_request.id} assigned to HR user {hr_user.id}")
    return job_request


def _unique_ids(values: Iterable[Any]) -> list[int]:
    ids: list[int] = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationFailed("Candidate user IDs must be integers")
        if value not in ids:
            ids.append(value)
    return ids


async def push_candidates(
    session: AsyncSession,
    actor: User,
    job_request_id: int,
    candidate_user_ids: Optional[list[Any]],
    *,
    notifier: Notifier,
    clock: Clock = now,
    max_candidates: Optional[int] = None,
) -> PushResult:
    """
    Deliver candidate users to a job request.

    Ids that are not candidate accounts or are already linked are skipped.
    At most ``max_candidates`` ids are accepted per call.
    """
    ensure_user_type(actor, Action.JOB_REQUEST_PUSH_CANDIDATES)

    limit = max_candidates or settings.max_candidates_per_push
    if not isinstance(candidate_user_ids, list) or not candidate_user_ids:
        raise ValidationFailed("Candidate user IDs array is required")
    if len(candidate_user_ids) > limit:
        raise ValidationFailed(f"Maximum {limit} candidates allowed per job request")
    requested = _unique_ids(candidate_user_ids)

    job_request = await get_job_request_or_404(session, job_request_id)
    await authorize(
        session,
        actor,
        Action.JOB_REQUEST_PUSH_CANDIDATES,
        organization_id=job_request.organization_id,
        assigned_user_id=job_request.assigned_to_hr_user_id,
    )

    users = (
        await session.execute(
            select(User).where(
                and_(User.id.in_(requested), User.user_type == UserType.CANDIDATE)
            )
        )
    ).scalars().all()
    users_by_id = {user.id: user for user in users}

    linked = set(
        (
            await session.execute(
                select(Candidate.user_id).where(
                    and_(
                        Candidate.job_request_id == job_request.id,
                        Candidate.user_id.in_(requested),
                    )
                )
            )
        ).scalars().all()
    )
    to_create = [users_by_id[i] for i in requested if i in users_by_id and i not in linked]

    if not to_create:
        return PushResult(
            job_request=job_request,
            candidates=[],
            message="All selected candidates were already linked to this job request.",
        )

    async with transactional(session):
        stamp = clock()
        candidates = [
            Candidate(
                job_request_id=job_request.id,
                user_id=user.id,
                name=user.display_name or user.email,
                email=user.email,
                phone=user.phone,
                linkedin_url=user.linkedin_url,
                portfolio_url=user.portfolio_url,
                resume_path=user.resume_path,
                profile_summary=user.profile_summary,
                delivered_at=stamp,
                created_at=stamp,
                updated_at=stamp,
            )
            for user in to_create
        ]
        session.add_all(candidates)

        previous_status = job_request.status
        job_request.status = advance_job_request(
            previous_status,
            JobRequestStatus.CANDIDATES_DELIVERED,
            Actor.for_user_type(actor.user_type),
        )
        job_request.candidates_delivered_at = stamp
        job_request.updated_at = stamp
        await session.flush()

        await record_activity(
            session,
            actor,
            ActivityAction.CANDIDATES_PUSHED,
            EntityType.JOB_REQUEST,
            job_request.id,
            organization_id=job_request.organization_id,
            old_value={"status": previous_status.value},
            new_value={"status": job_request.status.value},
            details={
                "candidate_ids": [c.id for c in candidates],
                "candidate_user_ids": [c.user_id for c in candidates],
            },
            clock=clock,
        )

        coo_ids = await organization_member_ids(
            session, job_request.organization_id, roles=[MembershipRole.COO]
        )
        await notifier.notify(
            session,
            coo_ids,
            NotificationEvent(
                type=NotificationType.CANDIDATES_DELIVERED,
                title="New Candidates Ready for Review",
                message=f"{len(candidates)} new candidates ready for review.",
                entity_type=EntityType.JOB_REQUEST,
                entity_id=job_request.id,
                email=True,
            ),
        )
    notifier.dispatch()

    logger.info(
        f"Delivered {len(candidates)} candidate(s) to job request {job_request.id}"
    )
    return PushResult(
        job_request=job_request,
        candidates=candidates,
        message=f"Successfully delivered {len(candidates)} candidate(s)",
    )


# ---------- HR / admin views ---------- #

async def list_assigned_job_requests(
    session: AsyncSession, actor: User
) -> list[JobRequestSummary]:
    await authorize(session, actor, Action.HR_WORKSPACE)
    return await _summaries(
        session, select(JobRequest).where(JobRequest.assigned_to_hr_user_id == actor.id)
    )


async def hr_dashboard_stats(session: AsyncSession, actor: User) -> dict[str, int]:
    await authorize(session, actor, Action.HR_WORKSPACE)

    result = await session.execute(
        select(JobRequest.status, func.count(JobRequest.id))
        .where(JobRequest.assigned_to_hr_user_id == actor.id)
        .group_by(JobRequest.status)
    )
    counts = {JobRequestStatus(status): count for status, count in result.all()}
    return {
        "assigned_count": counts.get(JobRequestStatus.ASSIGNED_TO_HR, 0),
        "shortlisting_count": counts.get(JobRequestStatus.SHORTLISTING, 0),
        "delivered_count": counts.get(JobRequestStatus.CANDIDATES_DELIVERED, 0),
        "total_count": sum(counts.values()),
    }


async def list_all_job_requests(
    session: AsyncSession, actor: User, status: Optional[str] = None
) -> list[JobRequestSummary]:
    await authorize(session, actor, Action.ADMIN_CONSOLE)

    query = select(JobRequest)
    if status:
        query = query.where(JobRequest.status == parse_status(JobRequestStatus, status))
    return await _summaries(session, query)
