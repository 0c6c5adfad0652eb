"""
Tests for the invitation service.

Tests:
- Creation, role gates and duplicate checks
- Admin approval and rejection
- Token lookup with lazy expiry
- Acceptance into the organization
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from api.schemas.common import PaginationParams
from api.services import invitations as service
from core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from core.lifecycle import InvitationStatus
from database.models.organizations import MembershipRole, UserOrganization


@pytest.mark.asyncio
class TestCreateInvitation:
    async def test_pending_invitation_with_expiry(self, session, factory, notifier, clock):
        org = await factory.organization(name="Acme")
        coo = await factory.client_in(org, MembershipRole.COO)
        admin = await factory.admin()

        invitation = await service.create_invitation(
            session, coo, org.id,
            email=" New.Hire@Acme-Corp.com ", role="MANAGER",
            notifier=notifier, clock=clock,
        )

        assert invitation.status == InvitationStatus.PENDING
        assert invitation.email == "new.hire@acme-corp.com"
        assert invitation.role == MembershipRole.MANAGER
        assert invitation.expires_at == clock() + timedelta(days=7)
        assert len(invitation.token) >= 32
        assert notifier.recipients("invitation_sent") == [admin.id]
        assert "Acme" in notifier.published[0]["message"]

    async def test_plain_member_cannot_invite(self, session, factory, notifier):
        org = await factory.organization()
        member = await factory.client_in(org, MembershipRole.MEMBER)
        with pytest.raises(Forbidden):
            await service.create_invitation(
                session, member, org.id,
                email="a@acme-corp.com", role="member", notifier=notifier,
            )

    @pytest.mark.parametrize("email", ["", None, "not-an-email", "a@b"])
    async def test_invalid_email(self, session, factory, notifier, email):
        org = await factory.organization()
        coo = await factory.client_in(org)
        with pytest.raises(ValidationFailed) as exc_info:
            await service.create_invitation(
                session, coo, org.id, email=email, role="member", notifier=notifier
            )
        assert exc_info.value.message == "A valid email is required"

    async def test_invalid_role(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        with pytest.raises(ValidationFailed):
            await service.create_invitation(
                session, coo, org.id, email="a@acme-corp.com", role="owner", notifier=notifier
            )

    async def test_existing_member_conflicts(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        member = await factory.client_in(org, MembershipRole.MEMBER)
        with pytest.raises(Conflict) as exc_info:
            await service.create_invitation(
                session, coo, org.id, email=member.email.upper(), role="member",
                notifier=notifier,
            )
        assert exc_info.value.message == "User is already a member of this organization"

    async def test_duplicate_pending_conflicts(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        await factory.invitation(org, coo, email="dup@acme-corp.com")
        with pytest.raises(Conflict):
            await service.create_invitation(
                session, coo, org.id, email="dup@acme-corp.com", role="member",
                notifier=notifier,
            )


@pytest.mark.asyncio
class TestReview:
    async def test_approve_notifies_inviter(self, session, factory, notifier, clock):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        invitation = await factory.invitation(org, coo, email="x@acme-corp.com")

        approved = await service.review_invitation(
            session, admin, invitation.id, approve=True, notifier=notifier, clock=clock
        )
        assert approved.status == InvitationStatus.APPROVED
        assert approved.verified_by_admin_id == admin.id
        assert approved.verified_at == clock()
        assert notifier.recipients("invitation_approved") == [coo.id]
        assert notifier.published[0]["email"] == coo.email

        _, link = await service.get_invitation_link(session, admin, invitation.id)
        assert link.endswith(f"/invitations/{invitation.token}")

    async def test_reject(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        invitation = await factory.invitation(org, coo, email="x@acme-corp.com")

        rejected = await service.review_invitation(
            session, admin, invitation.id, approve=False, notifier=notifier
        )
        assert rejected.status == InvitationStatus.REJECTED
        assert notifier.published[0]["email"] is None

    async def test_only_pending_can_be_reviewed(self, session, factory, notifier):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        invitation = await factory.invitation(
            org, coo, email="x@acme-corp.com", status=InvitationStatus.REJECTED
        )
        with pytest.raises(ValidationFailed) as exc_info:
            await service.review_invitation(
                session, admin, invitation.id, approve=True, notifier=notifier
            )
        assert exc_info.value.message == "Invitation is already rejected"

    async def test_expired_pending_invitation_cannot_be_approved(
        self, session, factory, notifier, clock
    ):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        invitation = await factory.invitation(
            org, coo, email="x@acme-corp.com", expires_at=clock() - timedelta(hours=1)
        )

        with pytest.raises(ValidationFailed) as exc_info:
            await service.review_invitation(
                session, admin, invitation.id, approve=True, notifier=notifier, clock=clock
            )

        assert exc_info.value.message == "Invitation is already expired"
        assert invitation.status == InvitationStatus.EXPIRED
        assert invitation.verified_by_admin_id is None
        assert notifier.published == []

    async def test_link_requires_approval(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        invitation = await factory.invitation(org, coo, email="x@acme-corp.com")
        with pytest.raises(ValidationFailed):
            await service.get_invitation_link(session, admin, invitation.id)

    async def test_admin_listing_filters_by_status(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        admin = await factory.admin()
        await factory.invitation(org, coo, email="a@acme-corp.com")
        await factory.invitation(
            org, coo, email="b@acme-corp.com", status=InvitationStatus.APPROVED
        )

        rows, total = await service.list_all_invitations(
            session, admin, PaginationParams(), status="approved"
        )
        assert total == 1
        assert rows[0].email == "b@acme-corp.com"

        _, org_total = await service.list_invitations(session, coo, org.id, PaginationParams())
        assert org_total == 2


@pytest.mark.asyncio
class TestTokenLookupAndAcceptance:
    async def test_unknown_token(self, session):
        with pytest.raises(NotFound):
            await service.get_invitation_by_token(session, "nope")

    async def test_expired_on_read(self, session, factory, clock):
        org = await factory.organization()
        coo = await factory.client_in(org)
        invitation = await factory.invitation(
            org, coo, email="x@acme-corp.com", expires_at=clock() - timedelta(minutes=1)
        )

        with pytest.raises(ValidationFailed) as exc_info:
            await service.get_invitation_by_token(session, invitation.token, clock=clock)
        assert exc_info.value.message == "Invitation has expired"
        assert invitation.status == InvitationStatus.EXPIRED

    async def test_accept_creates_membership(self, session, factory, clock):
        org = await factory.organization()
        coo = await factory.client_in(org)
        invitee = await factory.user(email="joiner@acme-corp.com")
        invitation = await factory.invitation(
            org, coo, email="joiner@acme-corp.com",
            status=InvitationStatus.APPROVED, role=MembershipRole.HR_COORDINATOR,
        )

        membership = await service.accept_invitation(
            session, invitee, invitation.token, clock=clock
        )

        assert membership.organization_id == org.id
        assert membership.role == MembershipRole.HR_COORDINATOR
        assert invitation.status == InvitationStatus.ACCEPTED
        rows = (
            await session.execute(
                select(UserOrganization).where(UserOrganization.user_id == invitee.id)
            )
        ).scalars().all()
        assert len(rows) == 1

    async def test_accept_requires_matching_email(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        stranger = await factory.user()
        invitation = await factory.invitation(
            org, coo, email="joiner@acme-corp.com", status=InvitationStatus.APPROVED
        )
        with pytest.raises(Forbidden):
            await service.accept_invitation(session, stranger, invitation.token)

    async def test_accept_requires_approval(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        invitee = await factory.user(email="joiner@acme-corp.com")
        invitation = await factory.invitation(org, coo, email="joiner@acme-corp.com")
        with pytest.raises(ValidationFailed) as exc_info:
            await service.accept_invitation(session, invitee, invitation.token)
        assert exc_info.value.message == "Invitation has not been approved"

    async def test_accept_twice_conflicts(self, session, factory):
        org = await factory.organization()
        coo = await factory.client_in(org)
        invitee = await factory.user(email="joiner@acme-corp.com")
        await factory.membership(invitee, org, MembershipRole.MEMBER)
        invitation = await factory.invitation(
            org, coo, email="joiner@acme-corp.com", status=InvitationStatus.APPROVED
        )
        with pytest.raises(Conflict):
            await service.accept_invitation(session, invitee, invitation.token)
