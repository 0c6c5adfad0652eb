"""
Tests for the status state machines.

Tests:
- Transition tables per entity
- No-op and terminal handling
- Actor gates
- Forward-only advancement of job requests
"""

import pytest

from core.errors import IllegalTransition, TransitionNotPermitted, ValidationFailed
from core.lifecycle import (
    Actor,
    CandidateStatus,
    InterviewStatus,
    InvitationStatus,
    JobRequestStatus,
    TicketStatus,
    advance_job_request,
    attempt_transition,
    parse_status,
)


class TestParseStatus:
    """Test caller-supplied status parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("received", JobRequestStatus.RECEIVED),
        ("ASSIGNED_TO_HR", JobRequestStatus.ASSIGNED_TO_HR),
        ("candidates delivered", JobRequestStatus.CANDIDATES_DELIVERED),
        ("offer-sent", JobRequestStatus.OFFER_SENT),
        (JobRequestStatus.HIRED, JobRequestStatus.HIRED),
    ])
    def test_accepts_known_values(self, raw, expected):
        assert parse_status(JobRequestStatus, raw) == expected

    @pytest.mark.parametrize("raw", ["", "shipped", None, "recieved"])
    def test_rejects_unknown_values(self, raw):
        with pytest.raises(ValidationFailed) as exc_info:
            parse_status(JobRequestStatus, raw)
        assert exc_info.value.status_code == 400

    def test_label(self):
        assert CandidateStatus.INTERVIEW_SCHEDULED.label == "Interview Scheduled"


class TestJobRequestMachine:
    """Test job request transitions."""

    def test_same_status_is_noop_even_when_terminal(self):
        closed = JobRequestStatus.CLOSED
        assert attempt_transition(closed, "closed", Actor.CLIENT) is closed

    def test_admin_assigns(self):
        assert (
            attempt_transition(JobRequestStatus.RECEIVED, "assigned_to_hr", Actor.ADMIN)
            == JobRequestStatus.ASSIGNED_TO_HR
        )

    def test_client_cannot_assign(self):
        with pytest.raises(TransitionNotPermitted) as exc_info:
            attempt_transition(JobRequestStatus.RECEIVED, "assigned_to_hr", Actor.CLIENT)
        assert exc_info.value.status_code == 403

    def test_backwards_move_rejected(self):
        with pytest.raises(IllegalTransition) as exc_info:
            attempt_transition(
                JobRequestStatus.INTERVIEWS_SCHEDULED, JobRequestStatus.RECEIVED, Actor.ADMIN
            )
        assert exc_info.value.status_code == 409
        assert exc_info.value.current == "interviews_scheduled"
        assert exc_info.value.requested == "received"

    @pytest.mark.parametrize("terminal", [JobRequestStatus.CLOSED, JobRequestStatus.CANCELLED])
    def test_terminal_states_have_no_exits(self, terminal):
        assert terminal.is_terminal()
        for status in JobRequestStatus:
            if status != terminal:
                assert not terminal.can_transition_to(status)

    def test_hired_can_only_close(self):
        assert JobRequestStatus.HIRED.can_transition_to(JobRequestStatus.CLOSED)
        assert not JobRequestStatus.HIRED.can_transition_to(JobRequestStatus.CANCELLED)

    def test_client_may_close_or_cancel(self):
        for target in (JobRequestStatus.CLOSED, JobRequestStatus.CANCELLED):
            assert attempt_transition(JobRequestStatus.SHORTLISTING, target, Actor.CLIENT) == target


class TestAdvanceJobRequest:
    """Test forward-only advancement used by cascades."""

    def test_moves_forward(self):
        assert (
            advance_job_request(
                JobRequestStatus.ASSIGNED_TO_HR,
                JobRequestStatus.CANDIDATES_DELIVERED,
                Actor.HR,
            )
            == JobRequestStatus.CANDIDATES_DELIVERED
        )

    def test_later_stage_is_kept(self):
        assert (
            advance_job_request(
                JobRequestStatus.INTERVIEWS_SCHEDULED,
                JobRequestStatus.CANDIDATES_DELIVERED,
                Actor.HR,
            )
            == JobRequestStatus.INTERVIEWS_SCHEDULED
        )

    def test_terminal_rejected(self):
        with pytest.raises(IllegalTransition):
            advance_job_request(
                JobRequestStatus.CANCELLED, JobRequestStatus.CANDIDATES_DELIVERED, Actor.ADMIN
            )


class TestCandidateMachine:
    """Test candidate transitions and gates."""

    def test_viewed_is_system_only(self):
        with pytest.raises(TransitionNotPermitted):
            attempt_transition(CandidateStatus.DELIVERED, "viewed", Actor.CLIENT)
        assert (
            attempt_transition(CandidateStatus.DELIVERED, "viewed", Actor.SYSTEM)
            == CandidateStatus.VIEWED
        )

    def test_cannot_return_to_delivered(self):
        with pytest.raises(IllegalTransition):
            attempt_transition(CandidateStatus.VIEWED, "delivered", Actor.CLIENT)

    def test_hire_requires_selection_first(self):
        with pytest.raises(IllegalTransition):
            attempt_transition(CandidateStatus.SHORTLISTED, "hired", Actor.CLIENT)
        assert (
            attempt_transition(CandidateStatus.SELECTED, "hired", Actor.CLIENT)
            == CandidateStatus.HIRED
        )

    def test_rejected_and_hired_are_terminal(self):
        assert CandidateStatus.REJECTED.is_terminal()
        assert CandidateStatus.HIRED.is_terminal()
        with pytest.raises(IllegalTransition):
            attempt_transition(CandidateStatus.REJECTED, "shortlisted", Actor.ADMIN)


class TestOtherMachines:
    """Test interview, ticket and invitation tables."""

    def test_interview_completed_is_final(self):
        with pytest.raises(IllegalTransition):
            attempt_transition(InterviewStatus.COMPLETED, "scheduled", Actor.HR)

    def test_interview_reschedule_then_confirm(self):
        status = attempt_transition(InterviewStatus.SCHEDULED, "rescheduled", Actor.HR)
        assert attempt_transition(status, "confirmed", Actor.HR) == InterviewStatus.CONFIRMED

    def test_ticket_resolved_can_reopen(self):
        assert (
            attempt_transition(TicketStatus.RESOLVED, "in_progress", Actor.HR)
            == TicketStatus.IN_PROGRESS
        )

    def test_ticket_closed_is_final(self):
        with pytest.raises(IllegalTransition):
            attempt_transition(TicketStatus.CLOSED, "open", Actor.ADMIN)

    def test_invitation_accept_needs_approval(self):
        with pytest.raises(IllegalTransition):
            attempt_transition(InvitationStatus.PENDING, "accepted", Actor.SYSTEM)

    def test_actor_for_user_type(self):
        assert Actor.for_user_type("hr") == Actor.HR
