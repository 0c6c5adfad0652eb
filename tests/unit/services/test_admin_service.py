"""
Tests for platform administration.

Tests:
- HR account creation and validation
- Organization activation notices
- Candidate pool and availability
- Activity log queries
"""

import pytest

from api.schemas.common import PaginationParams
from api.services import admin as service
from api.services import organizations
from core.errors import Conflict, Forbidden, ValidationFailed
from core.lifecycle import SiteStaffStatus
from core.security import verify_password
from database.models.organizations import MembershipRole, OrganizationStatus
from database.models.users import UserType

HR_FIELDS = dict(
    first_name="Grace",
    last_name="Hopper",
    email="Grace.Hopper@Acme-Corp.com",
    phone="+1 (555) 010-2000",
    password="c0mpiler!",
)


@pytest.mark.asyncio
class TestHrAccounts:
    async def test_create_hr_user(self, session, factory):
        admin = await factory.admin()

        hr = await service.create_hr_user(session, admin, **HR_FIELDS)

        assert hr.user_type == UserType.HR
        assert hr.email == "grace.hopper@acme-corp.com"
        assert hr.full_name == "Grace Hopper"
        assert hr.password_hash.startswith("$2b$")
        assert verify_password("c0mpiler!", hr.password_hash)
        assert [u.id for u in await service.list_hr_users(session, admin)] == [hr.id]

    async def test_all_fields_required(self, session, factory):
        admin = await factory.admin()
        with pytest.raises(ValidationFailed) as exc_info:
            await service.create_hr_user(session, admin, **{**HR_FIELDS, "phone": None})
        assert exc_info.value.message.startswith("All fields are required")

    async def test_invalid_email_and_phone(self, session, factory):
        admin = await factory.admin()
        with pytest.raises(ValidationFailed) as exc_info:
            await service.create_hr_user(session, admin, **{**HR_FIELDS, "email": "grace"})
        assert exc_info.value.message.startswith("Invalid email")
        with pytest.raises(ValidationFailed):
            await service.create_hr_user(session, admin, **{**HR_FIELDS, "phone": "12"})

    async def test_duplicate_email(self, session, factory):
        admin = await factory.admin()
        await factory.user(UserType.CLIENT, email="grace.hopper@acme-corp.com")
        with pytest.raises(Conflict):
            await service.create_hr_user(session, admin, **HR_FIELDS)

    async def test_admin_only(self, session, factory):
        with pytest.raises(Forbidden):
            await service.create_hr_user(session, await factory.hr(), **HR_FIELDS)


@pytest.mark.asyncio
class TestOrganizationStatus:
    async def test_activation_notifies_coos(self, session, factory, notifier):
        admin = await factory.admin()
        founder = await factory.user()
        result = await organizations.create_organization(session, founder, name="Umbrella")
        await factory.client_in(result.organization, MembershipRole.MEMBER)

        org = await service.set_organization_status(
            session, admin, result.organization.id, active=True, notifier=notifier
        )

        assert org.status == OrganizationStatus.ACTIVE
        assert notifier.recipients("organization_activated") == [founder.id]

    async def test_reactivation_is_quiet(self, session, factory, notifier):
        admin = await factory.admin()
        org = await factory.organization()
        await factory.client_in(org)
        await service.set_organization_status(
            session, admin, org.id, active=True, notifier=notifier
        )
        assert notifier.published == []

    async def test_deactivate(self, session, factory, notifier):
        admin = await factory.admin()
        org = await factory.organization()
        updated = await service.set_organization_status(
            session, admin, org.id, active=False, notifier=notifier
        )
        assert updated.status == OrganizationStatus.INACTIVE
        assert len(await service.list_organizations(session, admin)) == 1


@pytest.mark.asyncio
class TestCandidatePool:
    async def test_pool_and_availability(self, session, factory):
        admin = await factory.admin()
        hr = await factory.hr()
        free = await factory.candidate_user()
        employed, _ = await factory.staff_member()
        resigned, record = await factory.staff_member()
        record.status = SiteStaffStatus.RESIGNED
        await session.commit()

        pool, total = await service.list_candidate_pool(session, hr, PaginationParams())
        assert total == 3

        available, total = await service.list_available_candidates(
            session, admin, PaginationParams()
        )
        assert total == 2
        assert {u.id for u in available} == {free.id, resigned.id}
        assert employed.id not in {u.id for u in available}

    async def test_clients_excluded(self, session, factory):
        with pytest.raises(Forbidden):
            await service.list_candidate_pool(session, await factory.user(), PaginationParams())


@pytest.mark.asyncio
class TestActivityLogs:
    async def test_filters(self, session, factory, notifier):
        admin = await factory.admin()
        org = await factory.organization()
        await service.set_organization_status(
            session, admin, org.id, active=False, notifier=notifier
        )
        await organizations.create_organization(session, await factory.user(), name="Hooli")

        rows, total = await service.activity_logs(
            session, admin, PaginationParams(), action="status_changed"
        )
        assert total == 1
        assert rows[0].entity_id == org.id
        assert rows[0].user_type == "admin"

        _, everything = await service.activity_logs(session, admin, PaginationParams())
        assert everything == 2
