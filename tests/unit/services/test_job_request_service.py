"""
Tests for the job request service.

Tests:
- Creation, validation and admin notification
- Status updates through the transition table
- HR assignment rules
- Candidate push: caps, de-duplication and the status cascade
- Listing, statistics and HR views
"""

import pytest
from sqlalchemy import select

from core.errors import (
    Forbidden,
    IllegalTransition,
    NotFound,
    TransitionNotPermitted,
    ValidationFailed,
)
from core.lifecycle import CandidateStatus, JobRequestStatus
from database.models.audit import ActivityLog
from database.models.candidates import Candidate
from database.models.job_requests import JobRequest, JobRequestPriority
from database.models.notifications import Notification, NotificationType
from database.models.organizations import MembershipRole
from api.schemas.job_requests import JobRequestCreate
from api.services import job_requests as service


async def _reload(session, job_request_id: int) -> JobRequest:
    session.expunge_all()
    return (
        await session.execute(select(JobRequest).where(JobRequest.id == job_request_id))
    ).scalar_one()


@pytest.mark.asyncio
class TestCreateJobRequest:
    async def test_creates_received_request_and_notifies_admins(
        self, session, factory, notifier, clock
    ):
        org = await factory.organization()
        client = await factory.client_in(org)
        admin_a = await factory.admin()
        admin_b = await factory.admin()

        job_request = await service.create_job_request(
            session,
            client,
            org.id,
            title="  Data Engineer ",
            job_description="Pipelines",
            priority="HIGH",
            notifier=notifier,
            clock=clock,
        )

        assert job_request.status == JobRequestStatus.RECEIVED
        assert job_request.title == "Data Engineer"
        assert job_request.priority == JobRequestPriority.HIGH
        assert job_request.requested_by_user_id == client.id
        assert sorted(notifier.recipients("job_request_received")) == sorted(
            [admin_a.id, admin_b.id]
        )

        activity = (await session.execute(select(ActivityLog))).scalars().all()
        assert [a.action for a in activity] == ["created"]

    @pytest.mark.parametrize("title,description", [("", "desc"), ("Role", "  "), (None, None)])
    async def test_requires_title_and_description(
        self, session, factory, notifier, title, description
    ):
        org = await factory.organization()
        client = await factory.client_in(org)
        with pytest.raises(ValidationFailed) as exc_info:
            await service.create_job_request(
                session, client, org.id,
                title=title, job_description=description, notifier=notifier,
            )
        assert exc_info.value.message == "Title and job description are required"

    async def test_non_member_denied(self, session, factory, notifier):
        org = await factory.organization()
        outsider = await factory.client_in(await factory.organization())
        with pytest.raises(Forbidden):
            await service.create_job_request(
                session, outsider, org.id,
                title="Role", job_description="desc", notifier=notifier,
            )
        assert notifier.published == []

    async def test_invalid_priority(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        with pytest.raises(ValidationFailed):
            await service.create_job_request(
                session, client, org.id,
                title="Role", job_description="desc", priority="whenever",
                notifier=notifier,
            )


@pytest.mark.asyncio
class TestUpdateJobRequest:
    async def test_status_change_notifies_members_and_assigned_hr(
        self, session, factory, notifier, clock
    ):
        org = await factory.organization()
        client = await factory.client_in(org)
        colleague = await factory.client_in(org, MembershipRole.MEMBER)
        hr = await factory.hr()
        jr = await factory.job_request(
            org, client, status=JobRequestStatus.SHORTLISTING, assigned_hr=hr
        )

        updated = await service.update_job_request(
            session, client, jr.id, {"status": "closed"}, notifier=notifier, clock=clock
        )

        assert updated.status == JobRequestStatus.CLOSED
        assert sorted(notifier.recipients("status_update")) == sorted([colleague.id, hr.id])
        log = (await session.execute(select(ActivityLog))).scalars().one()
        assert log.action == "status_changed"
        assert log.old_value == {"status": "shortlisting"}

    async def test_assigned_hr_moves_request_to_shortlisting(
        self, session, factory, notifier, clock
    ):
        org = await factory.organization()
        client = await factory.client_in(org)
        hr = await factory.hr()
        jr = await factory.job_request(
            org, client, status=JobRequestStatus.ASSIGNED_TO_HR, assigned_hr=hr
        )

        updated = await service.update_job_request(
            session, hr, jr.id, {"status": "shortlisting"}, notifier=notifier, clock=clock
        )

        assert updated.status == JobRequestStatus.SHORTLISTING
        assert notifier.recipients("status_update") == [client.id]

    async def test_assigned_hr_cannot_close_request(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        hr = await factory.hr()
        jr = await factory.job_request(
            org, client, status=JobRequestStatus.SHORTLISTING, assigned_hr=hr
        )

        with pytest.raises(TransitionNotPermitted) as exc_info:
            await service.update_job_request(
                session, hr, jr.id, {"status": "closed"}, notifier=notifier
            )
        assert exc_info.value.message == "Hr users cannot set job request status to 'closed'"

    async def test_unassigned_hr_cannot_update(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        jr = await factory.job_request(
            org, client, status=JobRequestStatus.ASSIGNED_TO_HR, assigned_hr=await factory.hr()
        )
        other_hr = await factory.hr()

        with pytest.raises(Forbidden) as exc_info:
            await service.update_job_request(
                session, other_hr, jr.id, {"status": "shortlisting"}, notifier=notifier
            )
        assert exc_info.value.message == "This job request is not assigned to you"

    async def test_illegal_status_rolls_back(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        jr = await factory.job_request(org, client, status=JobRequestStatus.CLOSED)
        jr_id = jr.id

        with pytest.raises(IllegalTransition):
            await service.update_job_request(
                session, client, jr_id, {"status": "received", "title": "Renamed"},
                notifier=notifier,
            )

        reloaded = await _reload(session, jr_id)
        assert reloaded.status == JobRequestStatus.CLOSED
        assert reloaded.title == "Backend Engineer"
        assert (await session.execute(select(Notification))).scalars().all() == []

    async def test_empty_title_rejected(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        jr = await factory.job_request(org, client)
        with pytest.raises(ValidationFailed):
            await service.update_job_request(
                session, client, jr.id, {"title": " "}, notifier=notifier
            )

    async def test_unknown_fields_ignored(self, session, factory, notifier):
        org = await factory.organization()
        client = await factory.client_in(org)
        jr = await factory.job_request(org, client)
        updated = await service.update_job_request(
            session, client, jr.id,
            {"organization_id": 999, "requirements": "Go"},
            notifier=notifier,
        )
        assert updated.organization_id == org.id
        assert updated.requirements == "Go"

    async def test_missing_job_request(self, session, factory, notifier):
        client = await factory.client_in(await factory.organization())
        with pytest.raises(NotFound):
            await service.update_job_request(session, client, 404, {}, notifier=notifier)


@pytest.mark.asyncio
class TestAssignHr:
    async def test_received_moves_to_assigned(self, session, factory, notifier, clock):
        admin = await factory.admin()
        hr = await factory.hr()
        org = await factory.organization()
        jr = await factory.job_request(org, await factory.client_in(org))

        assigned = await service.assign_hr(
            session, admin, jr.id, hr.id, notifier=notifier, clock=clock
        )

        assert assigned.status == JobRequestStatus.ASSIGNED_TO_HR
        assert assigned.assigned_to_hr_user_id == hr.id
        assert notifier.recipients("job_assigned") == [hr.id]
        assert notifier.published[0]["email"] == hr.email

    async def test_reassignment_overwrites_previous_hr(
        self, session, factory, notifier, clock
    ):
        admin = await factory.admin()
        first_hr = await factory.hr()
        second_hr = await factory.hr()
        org = await factory.organization()
        jr = await factory.job_request(
            org,
            await factory.client_in(org),
            status=JobRequestStatus.ASSIGNED_TO_HR,
            assigned_hr=first_hr,
        )
        clock.advance(hours=2)

        reassigned = await service.assign_hr(
            session, admin, jr.id, second_hr.id, notifier=notifier, clock=clock
        )

        assert reassigned.status == JobRequestStatus.ASSIGNED_TO_HR
        assert reassigned.assigned_to_hr_user_id == second_hr.id
        assert reassigned.assigned_at == clock()
        assert notifier.recipients("job_assigned") == [second_hr.id]
        log = (await session.execute(select(ActivityLog))).scalars().one()
        assert log.old_value["assigned_to_hr_user_id"] == first_hr.id
        assert log.new_value["assigned_to_hr_user_id"] == second_hr.id

    async def test_later_stage_keeps_status(self, session, factory, notifier):
        admin = await factory.admin()
        hr = await factory.hr()
        org = await factory.organization()
        jr = await factory.job_request(
            org, await factory.client_in(org), status=JobRequestStatus.INTERVIEWS_SCHEDULED
        )

        assigned = await service.assign_hr(session, admin, jr.id, hr.id, notifier=notifier)
        assert assigned.status == JobRequestStatus.INTERVIEWS_SCHEDULED
        assert assigned.assigned_to_hr_user_id == hr.id

    async def test_terminal_rejected(self, session, factory, notifier):
        admin = await factory.admin()
        hr = await factory.hr()
        org = await factory.organization()
        jr = await factory.job_request(
            org, await factory.client_in(org), status=JobRequestStatus.CANCELLED
        )
        with pytest.raises(IllegalTransition):
            await service.assign_hr(session, admin, jr.id, hr.id, notifier=notifier)

    async def test_target_must_be_hr(self, session, factory, notifier):
        admin = await factory.admin()
        org = await factory.organization()
        client = await factory.client_in(org)
        jr = await factory.job_request(org, client)
        with pytest.raises(ValidationFailed) as exc_info:
            await service.assign_hr(session, admin, jr.id, client.id, notifier=notifier)
        assert exc_info.value.message == "Invalid HR user"

    async def test_only_admins_assign(self, session, factory, notifier):
        hr = await factory.hr()
        org = await factory.organization()
        jr = await factory.job_request(org, await factory.client_in(org))
        with pytest.raises(Forbidden):
            await service.assign_hr(session, hr, jr.id, hr.id, notifier=notifier)


@pytest.mark.asyncio
class TestPushCandidates:
    async def _assigned_request(self, factory, status=JobRequestStatus.ASSIGNED_TO_HR):
        org = await factory.organization()
        coo = await factory.client_in(org, MembershipRole.COO)
        await factory.client_in(org, MembershipRole.MEMBER)
        hr = await factory.hr()
        jr = await factory.job_request(org, coo, status=status, assigned_hr=hr)
        return jr, hr, coo

    async def test_delivers_and_advances_status(self, session, factory, notifier, clock):
        jr, hr, coo = await self._assigned_request(factory)
        first = await factory.candidate_user()
        second = await factory.candidate_user()

        result = await service.push_candidates(
            session, hr, jr.id, [first.id, second.id, first.id],
            notifier=notifier, clock=clock,
        )

        assert result.created
        assert result.message == "Successfully delivered 2 candidate(s)"
        assert [c.user_id for c in result.candidates] == [first.id, second.id]
        assert all(c.status == CandidateStatus.DELIVERED for c in result.candidates)
        assert result.candidates[0].phone == first.phone
        assert result.job_request.status == JobRequestStatus.CANDIDATES_DELIVERED
        assert result.job_request.candidates_delivered_at == clock()
        assert notifier.recipients("candidates_delivered") == [coo.id]

    async def test_skips_non_candidates_and_already_linked(self, session, factory, notifier):
        jr, hr, _ = await self._assigned_request(factory)
        linked = await factory.candidate_user()
        await factory.candidate(jr, linked)
        client = await factory.user()

        result = await service.push_candidates(
            session, hr, jr.id, [linked.id, client.id], notifier=notifier
        )

        assert not result.created
        assert result.message == "All selected candidates were already linked to this job request."
        assert notifier.published == []

    async def test_later_status_is_not_moved_back(self, session, factory, notifier):
        jr, hr, _ = await self._assigned_request(factory, JobRequestStatus.INTERVIEWS_SCHEDULED)
        user = await factory.candidate_user()
        result = await service.push_candidates(session, hr, jr.id, [user.id], notifier=notifier)
        assert result.job_request.status == JobRequestStatus.INTERVIEWS_SCHEDULED

    async def test_cap_per_call(self, session, factory, notifier):
        jr, hr, _ = await self._assigned_request(factory)
        with pytest.raises(ValidationFailed) as exc_info:
            await service.push_candidates(
                session, hr, jr.id, [1, 2, 3, 4, 5, 6], notifier=notifier
            )
        assert exc_info.value.message == "Maximum 5 candidates allowed per job request"

    @pytest.mark.parametrize("ids", [None, [], "1,2", [1, "2"], [True]])
    async def test_rejects_malformed_ids(self, session, factory, notifier, ids):
        jr, hr, _ = await self._assigned_request(factory)
        with pytest.raises(ValidationFailed):
            await service.push_candidates(session, hr, jr.id, ids, notifier=notifier)

    async def test_unassigned_hr_denied(self, session, factory, notifier):
        jr, _, _ = await self._assigned_request(factory)
        other_hr = await factory.hr()
        user = await factory.candidate_user()
        with pytest.raises(Forbidden):
            await service.push_candidates(session, other_hr, jr.id, [user.id], notifier=notifier)

    async def test_client_denied_before_lookup(self, session, factory, notifier):
        client = await factory.user()
        with pytest.raises(Forbidden):
            await service.push_candidates(session, client, 404, [1], notifier=notifier)

    async def test_terminal_request_rolls_back(self, session, factory, notifier):
        jr, hr, _ = await self._assigned_request(factory, JobRequestStatus.CANCELLED)
        jr_id = jr.id
        user = await factory.candidate_user()

        with pytest.raises(IllegalTransition):
            await service.push_candidates(session, hr, jr_id, [user.id], notifier=notifier)

        session.expunge_all()
        candidates = (
            await session.execute(select(Candidate).where(Candidate.job_request_id == jr_id))
        ).scalars().all()
        assert candidates == []


@pytest.mark.asyncio
class TestQueries:
    async def test_list_with_counts_and_status_filter(self, session, factory):
        org = await factory.organization()
        client = await factory.client_in(org)
        delivered = await factory.job_request(
            org, client, status=JobRequestStatus.CANDIDATES_DELIVERED
        )
        await factory.job_request(org, client)
        await factory.candidate(delivered)
        await factory.candidate(delivered)

        rows = await service.list_job_requests(
            session, client, org.id, status="candidates_delivered"
        )
        assert len(rows) == 1
        assert rows[0].job_request.id == delivered.id
        assert rows[0].candidate_count == 2
        assert rows[0].interview_count == 0

    async def test_list_rejects_unknown_status(self, session, factory):
        org = await factory.organization()
        client = await factory.client_in(org)
        with pytest.raises(ValidationFailed):
            await service.list_job_requests(session, client, org.id, status="bogus")

    async def test_statistics_has_every_status(self, session, factory):
        org = await factory.organization()
        client = await factory.client_in(org)
        await factory.job_request(org, client)
        await factory.job_request(org, client, status=JobRequestStatus.HIRED)

        stats = await service.job_request_statistics(session, client, org.id)
        assert stats["received"] == 1
        assert stats["hired"] == 1
        assert stats["cancelled"] == 0
        assert stats["total"] == 2
        assert set(stats) == {s.value for s in JobRequestStatus} | {"total"}

    async def test_detail_visible_to_assigned_hr(self, session, factory):
        org = await factory.organization()
        hr = await factory.hr()
        jr = await factory.job_request(org, await factory.client_in(org), assigned_hr=hr)
        await factory.candidate(jr)

        detail = await service.get_job_request(session, hr, jr.id)
        assert detail.job_request.id == jr.id
        assert len(detail.candidates) == 1

    async def test_hr_dashboard(self, session, factory):
        org = await factory.organization()
        client = await factory.client_in(org)
        hr = await factory.hr()
        await factory.job_request(org, client, assigned_hr=hr, status=JobRequestStatus.ASSIGNED_TO_HR)
        await factory.job_request(org, client, assigned_hr=hr, status=JobRequestStatus.SHORTLISTING)
        await factory.job_request(org, client)

        stats = await service.hr_dashboard_stats(session, hr)
        assert stats == {
            "assigned_count": 1,
            "shortlisting_count": 1,
            "delivered_count": 0,
            "total_count": 2,
        }
        assert len(await service.list_assigned_job_requests(session, hr)) == 2

    async def test_admin_lists_everything(self, session, factory):
        admin = await factory.admin()
        for _ in range(2):
            org = await factory.organization()
            await factory.job_request(org, await factory.client_in(org))
        assert len(await service.list_all_job_requests(session, admin)) == 2
        with pytest.raises(Forbidden):
            await service.list_all_job_requests(session, await factory.hr())


class TestPriorityField:
    def test_description_names_every_priority(self):
        description = JobRequestCreate.model_fields["priority"].description
        for priority in JobRequestPriority:
            assert priority.value in description
