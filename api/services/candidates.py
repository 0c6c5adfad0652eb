"""Candidate pipeline service functions."""

import logging
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.activity import record_activity
from api.services.job_requests import actor_for, get_job_request_or_404
from api.services.notifications import (
    NotificationEvent,
    Notifier,
    organization_member_ids,
)
from core.errors import NotFound
from core.lifecycle import (
    Actor,
    CandidateStatus,
    JobRequestStatus,
    SiteStaffStatus,
    attempt_transition,
)
from core.middleware.authorization import Action, authorize
from core.utils.datetime import Clock, now
from database.engine import transactional
from database.models.audit import ActivityAction, EntityType
from database.models.candidates import Candidate
from database.models.job_requests import JobRequest
from database.models.notifications import NotificationType
from database.models.organizations import MembershipRole
from database.models.site_staff import SiteStaff
from database.models.users import User

logger = logging.getLogger(__name__)


async def get_candidate_or_404(session: AsyncSession, candidate_id: int) -> Candidate:
    result = await session.execute(select(Candidate).where(Candidate.id == candidate_id))
    candidate = result.scalar_one_or_none()
    if candidate is None:
        raise NotFound("Candidate not found")
    return candidate


async def _authorized_parent(
    session: AsyncSession, actor: User, candidate: Candidate, action: Action
) -> JobRequest:
    job_request = await get_job_request_or_404(session, candidate.job_request_id)
    await authorize(session, actor, action, organization_id=job_request.organization_id)
    return job_request


async def list_candidates(
    session: AsyncSession, actor: User, job_request_id: int
) -> list[Candidate]:
    job_request = await get_job_request_or_404(session, job_request_id)
    await authorize(
        session, actor, Action.CANDIDATE_VIEW, organization_id=job_request.organization_id
    )
    result = await session.execute(
        select(Candidate)
        .where(Candidate.job_request_id == job_request_id)
        .order_by(Candidate.delivered_at.desc(), Candidate.id.desc())
    )
    return list(result.scalars().all())


async def get_candidate(
    session: AsyncSession,
    actor: User,
    candidate_id: int,
    *,
    clock: Clock = now,
) -> Candidate:
    """
    Fetch a candidate. The first read of a ``delivered`` candidate marks it
    ``viewed``; later reads leave the status alone.
    """
    candidate = await get_candidate_or_404(session, candidate_id)
    job_request = await _authorized_parent(session, actor, candidate, Action.CANDIDATE_VIEW)

    if candidate.status == CandidateStatus.DELIVERED:
        async with transactional(session):
            stamp = clock()
            candidate.status = attempt_transition(
                candidate.status, CandidateStatus.VIEWED, Actor.SYSTEM
            )
            candidate.viewed_at = stamp
            candidate.updated_at = stamp
            await record_activity(
                session,
                actor,
                ActivityAction.VIEWED,
                EntityType.CANDIDATE,
                candidate.id,
                organization_id=job_request.organization_id,
                old_value={"status": CandidateStatus.DELIVERED.value},
                new_value={"status": CandidateStatus.VIEWED.value},
                clock=clock,
            )
        logger.info(f"Candidate {candidate.id} viewed by user {actor.id}")

    return candidate


async def _hire(
    session: AsyncSession,
    candidate: Candidate,
    job_request: JobRequest,
    stamp,
) -> None:
    """Materialize the site staff record and close the loop on the job request."""
    if candidate.user_id is not None:
        existing = (
            await session.execute(
                select(SiteStaff.id).where(
                    and_(
                        SiteStaff.user_id == candidate.user_id,
                        SiteStaff.organization_id == job_request.organization_id,
                        SiteStaff.status == SiteStaffStatus.ACTIVE,
                    )
                )
            )
        ).scalar_one_or_none()
        if existing is None:
            session.add(
                SiteStaff(
                    user_id=candidate.user_id,
                    candidate_id=candidate.id,
                    job_request_id=job_request.id,
                    organization_id=job_request.organization_id,
                    position_title=job_request.title,
                    hired_at=stamp,
                    status=SiteStaffStatus.ACTIVE,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )

    if job_request.status.can_transition_to(JobRequestStatus.HIRED):
        job_request.status = attempt_transition(
            job_request.status, JobRequestStatus.HIRED, Actor.SYSTEM
        )
        job_request.updated_at = stamp


async def update_candidate_status(
    session: AsyncSession,
    actor: User,
    candidate_id: int,
    status: Any,
    *,
    notifier: Notifier,
    clock: Clock = now,
) -> Candidate:
    """
    Move a candidate along the pipeline.

    ``selected`` notifies the COO members and the assigned HR. ``hired``
    creates the site staff record and marks the job request hired when legal.
    """
    candidate = await get_candidate_or_404(session, candidate_id)
    job_request = await _authorized_parent(
        session, actor, candidate, Action.CANDIDATE_UPDATE_STATUS
    )

    current = candidate.status
    target = attempt_transition(current, status, actor_for(actor))
    if target == current:
        return candidate

    async with transactional(session):
        stamp = clock()
        candidate.status = target
        candidate.updated_at = stamp

        if target == CandidateStatus.HIRED:
            await _hire(session, candidate, job_request, stamp)

        await record_activity(
            session,
            actor,
            ActivityAction.HIRED if target == CandidateStatus.HIRED else ActivityAction.STATUS_CHANGED,
            EntityType.CANDIDATE,
            candidate.id,
            organization_id=job_request.organization_id,
            old_value={"status": current.value},
            new_value={"status": target.value},
            details={"job_request_id": job_request.id},
            clock=clock,
        )

        if target == CandidateStatus.SELECTED:
            coo_ids = await organization_member_ids(
                session, job_request.organization_id, roles=[MembershipRole.COO]
            )
            await notifier.notify(
                session,
                [*coo_ids, job_request.assigned_to_hr_user_id],
                NotificationEvent(
                    type=NotificationType.STATUS_UPDATE,
                    title="Candidate Selected",
                    message=f"{candidate.name} has been selected for '{job_request.title}'",
                    entity_type=EntityType.CANDIDATE,
                    entity_id=candidate.id,
                ),
                exclude=actor.id,
            )
    notifier.dispatch()

    logger.info(f"Candidate {candidate.id} status {current.value} -> {target.value}")
    return candidate
