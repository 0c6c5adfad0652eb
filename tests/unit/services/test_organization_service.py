"""
Tests for organizations, departments and memberships.

Tests:
- Create or link by unique name
- Member and department listings
- Department role gate and duplicates
- Staff record lookup
- Active staff roster and its HR COO gate
- Ending a staff engagement
"""

import pytest
from sqlalchemy import select

from api.schemas.common import PaginationParams
from api.services import organizations as service
from core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from core.lifecycle import CandidateStatus, JobRequestStatus, SiteStaffStatus
from core.middleware.authorization import NO_ORG_ACCESS
from database.models.audit import ActivityLog
from database.models.organizations import MembershipRole, OrganizationStatus


@pytest.mark.asyncio
class TestCreateOrganization:
    async def test_creates_with_caller_as_primary_coo(self, session, factory, clock):
        founder = await factory.user()

        result = await service.create_organization(
            session, founder, name=" Globex ", industry="Energy", clock=clock
        )

        assert result.created
        assert result.message == "Organization created successfully"
        assert result.organization.name == "Globex"
        assert result.organization.status == OrganizationStatus.INACTIVE
        assert result.membership.role == MembershipRole.COO
        assert result.membership.is_primary

    async def test_existing_name_links_caller(self, session, factory):
        founder = await factory.user()
        first = await service.create_organization(session, founder, name="Globex")
        colleague = await factory.user()

        linked = await service.create_organization(session, colleague, name="GLOBEX")

        assert not linked.created
        assert linked.message == "Linked to existing organization"
        assert linked.organization.id == first.organization.id

    async def test_existing_member_gets_existing_row(self, session, factory):
        founder = await factory.user()
        first = await service.create_organization(session, founder, name="Globex")

        again = await service.create_organization(session, founder, name="globex")

        assert not again.created
        assert again.membership.id == first.membership.id
        assert again.message == "Organization already exists and you are a member"

    async def test_name_required(self, session, factory):
        with pytest.raises(ValidationFailed):
            await service.create_organization(session, await factory.user(), name="  ")


@pytest.mark.asyncio
class TestMembersAndDepartments:
    async def test_my_organizations_primary_first(self, session, factory):
        user = await factory.user()
        secondary = await factory.organization(name="Alpha")
        primary = await factory.organization(name="Zeta")
        await factory.membership(user, secondary, MembershipRole.MEMBER)
        await factory.membership(user, primary, MembershipRole.COO, is_primary=True)

        rows = await service.list_my_organizations(session, user)
        assert [org.name for org, _ in rows] == ["Zeta", "Alpha"]

    async def test_users_listing_requires_membership(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        await factory.client_in(org, MembershipRole.MANAGER)

        members = await service.list_organization_users(session, coo, org.id)
        assert len(members) == 2
        assert {m.membership.role for m in members} == {MembershipRole.COO, MembershipRole.MANAGER}

        with pytest.raises(Forbidden):
            await service.list_organization_users(session, await factory.user(), org.id)

    async def test_admin_sees_any_organization(self, session, factory):
        org = await factory.organization(name="Initech")
        fetched = await service.get_organization(session, await factory.admin(), org.id)
        assert fetched.name == "Initech"

    async def test_department_lifecycle(self, session, factory):
        org = await factory.organization()
        coordinator = await factory.client_in(org, MembershipRole.HR_COORDINATOR)

        department = await service.create_department(
            session, coordinator, org.id, name="Engineering"
        )
        assert department.organization_id == org.id

        with pytest.raises(Conflict):
            await service.create_department(session, coordinator, org.id, name="engineering")

        names = [d.name for d in await service.list_departments(session, coordinator, org.id)]
        assert names == ["Engineering"]

    async def test_department_role_gate(self, session, factory):
        org = await factory.organization()
        manager = await factory.client_in(org, MembershipRole.MANAGER)
        with pytest.raises(Forbidden) as exc_info:
            await service.create_department(session, manager, org.id, name="Ops")
        assert exc_info.value.message == "You do not have permission to manage departments"


@pytest.mark.asyncio
class TestStaffRecord:
    async def test_active_record(self, session, factory):
        user, staff = await factory.staff_member()
        record = await service.get_my_staff_record(session, user)
        assert record.id == staff.id

    async def test_resigned_record_not_found(self, session, factory):
        user, staff = await factory.staff_member()
        staff.status = SiteStaffStatus.RESIGNED
        await session.commit()
        with pytest.raises(NotFound):
            await service.get_my_staff_record(session, user)


async def _hired(factory, org, client):
    job_request = await factory.job_request(org, client, status=JobRequestStatus.HIRED)
    user = await factory.candidate_user()
    candidate = await factory.candidate(job_request, user, CandidateStatus.HIRED)
    return user, await factory.site_staff(user, candidate, job_request)


@pytest.mark.asyncio
class TestStaffRoster:
    async def test_client_sees_active_staff_only(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        active_user, _ = await _hired(factory, org, coo)
        _, former = await _hired(factory, org, coo)
        former.status = SiteStaffStatus.RESIGNED
        await session.commit()

        items, total = await service.list_organization_staff(
            session, coo, org.id, PaginationParams()
        )

        assert total == 1
        assert items[0].user.id == active_user.id
        assert items[0].staff.position_title == "Backend Engineer"

    async def test_hr_coo_member_allowed(self, session, factory):
        org = await factory.organization()
        hr = await factory.hr()
        await factory.membership(hr, org, MembershipRole.HR_COO)

        _, total = await service.list_organization_staff(
            session, hr, org.id, PaginationParams()
        )
        assert total == 0

    async def test_hr_without_hr_coo_role_denied(self, session, factory):
        org = await factory.organization()
        hr = await factory.hr()
        await factory.membership(hr, org, MembershipRole.MEMBER)

        with pytest.raises(Forbidden) as exc_info:
            await service.list_organization_staff(session, hr, org.id, PaginationParams())
        assert exc_info.value.message == "Only clients and HR COO can view staff members"

    async def test_non_member_denied(self, session, factory):
        org = await factory.organization()
        with pytest.raises(Forbidden) as exc_info:
            await service.list_organization_staff(
                session, await factory.user(), org.id, PaginationParams()
            )
        assert exc_info.value.message == NO_ORG_ACCESS


@pytest.mark.asyncio
class TestResignStaff:
    async def test_coo_ends_engagement(self, session, factory, notifier, clock):
        org = await factory.organization()
        coo = await factory.client_in(org)
        user, staff = await _hired(factory, org, coo)

        resigned = await service.resign_staff(
            session, coo, org.id, staff.id, notifier=notifier, clock=clock
        )

        assert resigned.status == SiteStaffStatus.RESIGNED
        assert resigned.resigned_at == clock()
        assert notifier.recipients("status_update") == [user.id]
        log = (await session.execute(select(ActivityLog))).scalars().one()
        assert log.entity_type == "site_staff"
        assert log.new_value == {"status": "resigned"}
        with pytest.raises(NotFound):
            await service.get_my_staff_record(session, user)

    async def test_resigning_twice_is_a_no_op(self, session, factory, notifier, clock):
        org = await factory.organization()
        coo = await factory.client_in(org)
        _, staff = await _hired(factory, org, coo)
        await service.resign_staff(session, coo, org.id, staff.id, notifier=notifier, clock=clock)
        first_stamp = staff.resigned_at
        clock.advance(days=1)

        again = await service.resign_staff(
            session, coo, org.id, staff.id, notifier=notifier, clock=clock
        )

        assert again.resigned_at == first_stamp
        assert len(notifier.published) == 1

    async def test_manager_cannot_resign_staff(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        manager = await factory.client_in(org, MembershipRole.MANAGER)
        _, staff = await _hired(factory, org, coo)

        with pytest.raises(Forbidden):
            await service.resign_staff(session, manager, org.id, staff.id, notifier=notifier)

    async def test_staff_of_another_organization_not_found(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        other = await factory.organization()
        _, staff = await _hired(factory, other, await factory.client_in(other))

        with pytest.raises(NotFound):
            await service.resign_staff(session, coo, org.id, staff.id, notifier=notifier)
