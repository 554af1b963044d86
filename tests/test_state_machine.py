"""
Tests for VeriFlow Verification State Machine

Tests cover:
- Transition table
- Customer transitions (open link, submit)
- Reviewer transitions (approve, reject, reassign)
- Terminal-state guard applied uniformly
- Link expiry and external triggers
"""
from datetime import timedelta

import pytest

from veriflow.engine import state_machine
from veriflow.engine.state_machine import ALLOWED_TRANSITIONS, can_transition
from veriflow.exceptions import (
    AlreadySubmittedError,
    AlreadyTerminalError,
    InvalidTransitionError,
    LinkExpiredError,
    ValidationError,
)
from veriflow.models import Decision, VerificationStatus as S

from tests.conftest import NOW, make_case


FEEDBACK = {"swimming_pool": {"photo_pool": "Blurry Image"}}


def issue_token():
    return "tok-new"


# =============================================================================
# Transition Table
# =============================================================================

class TestTransitionTable:
    """Tests for ALLOWED_TRANSITIONS."""

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)

    @pytest.mark.parametrize("status", [S.APPROVED, S.REJECTED, S.CANCELLED, S.EXPIRED])
    def test_closed_statuses_have_no_exits(self, status):
        assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_review_outcomes(self):
        assert can_transition(S.SUBMITTED, S.APPROVED)
        assert can_transition(S.SUBMITTED, S.NEEDS_REVISION)
        assert can_transition(S.SUBMITTED, S.REJECTED)
        assert not can_transition(S.IN_PROGRESS, S.APPROVED)

    def test_revision_can_be_resubmitted(self):
        assert can_transition(S.NEEDS_REVISION, S.SUBMITTED)


# =============================================================================
# Customer Transitions
# =============================================================================

class TestOpenLink:
    """Tests for open_link."""

    def test_first_access_moves_draft_to_in_progress(self):
        case = make_case(status=S.DRAFT)
        opened = state_machine.open_link(case, NOW)

        assert opened.status == S.IN_PROGRESS
        assert opened.link_accessed_at == NOW
        assert case.status == S.DRAFT

    def test_later_access_is_unchanged(self):
        case = make_case(status=S.IN_PROGRESS)
        case.link_accessed_at = NOW
        assert state_machine.open_link(case, NOW + timedelta(hours=1)) is case

    def test_revision_status_kept(self):
        case = make_case(status=S.NEEDS_REVISION)
        assert state_machine.open_link(case, NOW).status == S.NEEDS_REVISION

    def test_expired_link(self):
        case = make_case(status=S.DRAFT, expires_in=timedelta(hours=1))
        with pytest.raises(LinkExpiredError):
            state_machine.open_link(case, NOW + timedelta(hours=2))
        assert case.status == S.DRAFT

    def test_submitted_case_cannot_be_reopened(self):
        with pytest.raises(AlreadySubmittedError):
            state_machine.open_link(make_case(status=S.SUBMITTED), NOW)

    def test_cancelled_case_cannot_be_opened(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.open_link(make_case(status=S.CANCELLED), NOW)


class TestSubmit:
    """Tests for submit."""

    @pytest.mark.parametrize("status", [S.DRAFT, S.IN_PROGRESS, S.NEEDS_REVISION])
    def test_submit_from_open_status(self, status):
        submitted = state_machine.submit(make_case(status=status), NOW)
        assert submitted.status == S.SUBMITTED
        assert submitted.submitted_at == NOW

    @pytest.mark.parametrize("status", [S.SUBMITTED, S.APPROVED, S.REJECTED])
    def test_already_submitted(self, status):
        with pytest.raises(AlreadySubmittedError):
            state_machine.submit(make_case(status=status), NOW)

    def test_submit_after_expiry(self):
        case = make_case(status=S.IN_PROGRESS, expires_in=timedelta(hours=1))
        with pytest.raises(LinkExpiredError):
            state_machine.submit(case, NOW + timedelta(hours=1, seconds=1))
        assert case.status == S.IN_PROGRESS

    def test_submit_exactly_at_expiry(self):
        case = make_case(status=S.IN_PROGRESS, expires_in=timedelta(hours=1))
        assert state_machine.submit(case, NOW + timedelta(hours=1)).status == S.SUBMITTED

    def test_submit_cancelled(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.submit(make_case(status=S.CANCELLED), NOW)


# =============================================================================
# Reviewer Transitions
# =============================================================================

class TestApprove:
    """Tests for approve."""

    def test_approve_submitted(self):
        approved = state_machine.approve(make_case(), NOW)
        assert approved.status == S.APPROVED
        assert approved.decision == Decision.APPROVED
        assert approved.reviewed_at == NOW

    def test_approve_in_progress_is_invalid(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.approve(make_case(status=S.IN_PROGRESS), NOW)
        assert not isinstance(exc_info.value, AlreadyTerminalError)


class TestTerminalGuard:
    """Approved and rejected cases refuse every further action."""

    @pytest.fixture(params=[S.APPROVED, S.REJECTED])
    def terminal_case(self, request):
        return make_case(status=request.param, rejection_count=2)

    def test_approve(self, terminal_case):
        with pytest.raises(AlreadyTerminalError):
            state_machine.approve(terminal_case, NOW)

    def test_reject(self, terminal_case):
        with pytest.raises(AlreadyTerminalError):
            state_machine.reject(terminal_case, FEEDBACK, NOW, issue_token)
        assert terminal_case.rejection_count == 2

    def test_reassign(self, terminal_case):
        with pytest.raises(AlreadyTerminalError):
            state_machine.reassign(terminal_case, "rev-2")
        assert terminal_case.assigned_reviewer_id is None

    def test_cancel(self, terminal_case):
        with pytest.raises(AlreadyTerminalError):
            state_machine.cancel(terminal_case)

    def test_expire(self, terminal_case):
        with pytest.raises(AlreadyTerminalError):
            state_machine.expire(terminal_case, NOW + timedelta(days=30))

    def test_submit_reports_already_submitted(self, terminal_case):
        with pytest.raises(AlreadySubmittedError):
            state_machine.submit(terminal_case, NOW)


class TestReject:
    """Tests for the reject transition (budget rules live in test_rejection)."""

    def test_reject_requires_submitted(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.reject(make_case(status=S.IN_PROGRESS), FEEDBACK, NOW, issue_token)

    def test_reject_needs_feedback(self):
        case = make_case()
        with pytest.raises(ValidationError):
            state_machine.reject(case, {"swimming_pool": {"photo_pool": "  "}}, NOW, issue_token)
        assert case.status == S.SUBMITTED
        assert case.rejection_count == 0

    def test_reject_sends_back_for_revision(self):
        updated, outcome = state_machine.reject(make_case(), FEEDBACK, NOW, issue_token)
        assert updated.status == S.NEEDS_REVISION
        assert outcome.new_access_token == "tok-new"


class TestReassign:
    def test_reassign_keeps_status(self):
        case = make_case(status=S.SUBMITTED, assigned_reviewer_id="rev-1")
        moved = state_machine.reassign(case, "rev-2")
        assert moved.assigned_reviewer_id == "rev-2"
        assert moved.status == S.SUBMITTED


# =============================================================================
# External Triggers
# =============================================================================

class TestCancelAndExpire:
    """Tests for cancel and expire."""

    @pytest.mark.parametrize("status", [S.DRAFT, S.IN_PROGRESS, S.SUBMITTED, S.NEEDS_REVISION])
    def test_cancel_open_case(self, status):
        assert state_machine.cancel(make_case(status=status)).status == S.CANCELLED

    def test_cancel_twice(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.cancel(make_case(status=S.CANCELLED))

    def test_expire_after_link_runs_out(self):
        case = make_case(status=S.IN_PROGRESS, expires_in=timedelta(hours=1))
        assert state_machine.expire(case, NOW + timedelta(hours=2)).status == S.EXPIRED

    def test_expire_with_valid_link(self):
        case = make_case(status=S.IN_PROGRESS)
        with pytest.raises(InvalidTransitionError):
            state_machine.expire(case, NOW)

    def test_submitted_case_does_not_expire(self):
        case = make_case(status=S.SUBMITTED, expires_in=timedelta(hours=1))
        with pytest.raises(InvalidTransitionError):
            state_machine.expire(case, NOW + timedelta(hours=2))
