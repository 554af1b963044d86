"""
VeriFlow Verification State Machine

Stateless transition functions over VerificationCase values.

Each function validates the requested transition against the case's current
status and returns an updated copy; the input case is never mutated, so a
failed transition leaves no trace. Persisting the result (with a
compare-and-swap on `version`) is the caller's job.

    draft -> in_progress -> submitted -> approved
                                      -> needs_revision -> submitted ...
                                      -> rejected
    (any open status) -> cancelled | expired
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..exceptions import (
    AlreadySubmittedError,
    AlreadyTerminalError,
    InvalidTransitionError,
    LinkExpiredError,
)
from ..models import Decision, RejectionFeedback, VerificationCase, VerificationStatus
from .rejection import RejectionOutcome, RejectionPolicy, apply_rejection

S = VerificationStatus


# =============================================================================
# Transition Table
# =============================================================================

ALLOWED_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    S.DRAFT: frozenset({S.IN_PROGRESS, S.SUBMITTED, S.CANCELLED, S.EXPIRED}),
    S.IN_PROGRESS: frozenset({S.SUBMITTED, S.CANCELLED, S.EXPIRED}),
    S.SUBMITTED: frozenset({S.APPROVED, S.NEEDS_REVISION, S.REJECTED, S.CANCELLED}),
    S.NEEDS_REVISION: frozenset({S.SUBMITTED, S.CANCELLED, S.EXPIRED}),
    S.UNDER_REVIEW: frozenset({S.CANCELLED}),
    S.MORE_INFO_REQUESTED: frozenset({S.CANCELLED}),
    S.ESCALATED: frozenset({S.CANCELLED}),
    S.APPROVED: frozenset(),
    S.REJECTED: frozenset(),
    S.CANCELLED: frozenset(),
    S.EXPIRED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.APPROVED, S.REJECTED})
CLOSED_STATUSES = TERMINAL_STATUSES | {S.CANCELLED, S.EXPIRED}
SUBMITTED_STATUSES = frozenset({S.SUBMITTED, S.APPROVED, S.REJECTED})
OPEN_STATUSES = frozenset({S.DRAFT, S.IN_PROGRESS, S.NEEDS_REVISION})


def can_transition(from_status: VerificationStatus, to_status: VerificationStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def is_terminal(case: VerificationCase) -> bool:
    return case.status in TERMINAL_STATUSES


# =============================================================================
# Guards
# =============================================================================

def ensure_not_terminal(case: VerificationCase, action: str) -> None:
    """
    Refuse any action on an approved or rejected case.

    Raises:
        AlreadyTerminalError: If the case is approved or rejected
    """
    if case.status in TERMINAL_STATUSES:
        raise AlreadyTerminalError(
            message=f"Cannot {action}: case is already {case.status.value}",
            case_id=case.id,
            from_status=case.status.value,
            action=action,
        )


def _ensure_transition(case: VerificationCase, to_status: VerificationStatus, action: str) -> None:
    ensure_not_terminal(case, action)
    if not can_transition(case.status, to_status):
        raise InvalidTransitionError(
            message=f"Cannot {action}: {case.status.value} -> {to_status.value} is not allowed",
            case_id=case.id,
            from_status=case.status.value,
            action=action,
        )


def _ensure_link_valid(case: VerificationCase, now: datetime) -> None:
    if case.is_link_expired(now):
        raise LinkExpiredError(
            message="Access token has expired",
            case_id=case.id,
            details={"expired_at": case.access_token_expiry.isoformat()},
        )


# =============================================================================
# Customer Transitions
# =============================================================================

def ensure_editable(case: VerificationCase, now: datetime, action: str = "edit") -> None:
    """
    Check the customer may still work on the form.

    Raises:
        LinkExpiredError: If the token is past expiry
        AlreadySubmittedError: If the case is submitted, approved or rejected
        InvalidTransitionError: If the case was cancelled or expired
    """
    _ensure_link_valid(case, now)
    if case.status in SUBMITTED_STATUSES:
        raise AlreadySubmittedError(
            message=f"Verification already {case.status.value}",
            case_id=case.id,
            from_status=case.status.value,
            action=action,
        )
    if case.status not in OPEN_STATUSES:
        raise InvalidTransitionError(
            message=f"Cannot {action}: case is {case.status.value}",
            case_id=case.id,
            from_status=case.status.value,
            action=action,
        )


def open_link(case: VerificationCase, now: datetime) -> VerificationCase:
    """
    Customer opens the verification link.

    The first access stamps link_accessed_at and moves a draft case to
    in_progress. Later accesses return the case unchanged.

    Raises:
        LinkExpiredError: If the token is past expiry
        AlreadySubmittedError: If the case is submitted, approved or rejected
        InvalidTransitionError: If the case was cancelled or expired
    """
    ensure_editable(case, now, "open link")

    if case.link_accessed_at is not None:
        return case

    status = S.IN_PROGRESS if case.status == S.DRAFT else case.status
    return replace(case, link_accessed_at=now, status=status)


def submit(case: VerificationCase, now: datetime) -> VerificationCase:
    """
    Customer submits the form for review.

    Valid from draft, in_progress or needs_revision. Completeness and consent
    are checked by the caller before this transition.

    Raises:
        AlreadySubmittedError: If the case is submitted, approved or rejected
        LinkExpiredError: If now is past the access token expiry
        InvalidTransitionError: From any other status
    """
    if case.status in SUBMITTED_STATUSES:
        raise AlreadySubmittedError(
            message=f"Cannot submit: case is already {case.status.value}",
            case_id=case.id,
            from_status=case.status.value,
            action="submit",
        )
    _ensure_link_valid(case, now)
    _ensure_transition(case, S.SUBMITTED, "submit")

    return replace(case, status=S.SUBMITTED, submitted_at=now)


# =============================================================================
# Reviewer Transitions
# =============================================================================

def approve(case: VerificationCase, now: datetime) -> VerificationCase:
    """
    Reviewer approves a submitted case. Terminal.

    Raises:
        AlreadyTerminalError: If the case is already approved or rejected
        InvalidTransitionError: If the case is not submitted
    """
    _ensure_transition(case, S.APPROVED, "approve")
    return replace(
        case,
        status=S.APPROVED,
        decision=Decision.APPROVED,
        reviewed_at=now,
    )


def reject(
    case: VerificationCase,
    feedback: RejectionFeedback,
    now: datetime,
    issue_token: Callable[[], str],
    policy: Optional[RejectionPolicy] = None,
) -> tuple[VerificationCase, RejectionOutcome]:
    """
    Reviewer rejects a submitted case with field-level feedback.

    Whether the case goes back to the customer or is closed for good is
    decided by the rejection policy.

    Raises:
        AlreadyTerminalError: If the case is already approved or rejected
        InvalidTransitionError: If the case is not submitted
        ValidationError: If the feedback flags no field
    """
    ensure_not_terminal(case, "reject")
    if case.status != S.SUBMITTED:
        raise InvalidTransitionError(
            message=f"Cannot reject: case is {case.status.value}",
            case_id=case.id,
            from_status=case.status.value,
            action="reject",
        )
    return apply_rejection(case, feedback, now, issue_token, policy or RejectionPolicy())


def reassign(case: VerificationCase, reviewer_id: Optional[str]) -> VerificationCase:
    """
    Point the case at a different reviewer without touching its status.

    Raises:
        AlreadyTerminalError: If the case is already approved or rejected
    """
    ensure_not_terminal(case, "reassign")
    return replace(case, assigned_reviewer_id=reviewer_id)


# =============================================================================
# External Triggers
# =============================================================================

def cancel(case: VerificationCase) -> VerificationCase:
    """
    Operator cancels the case.

    Raises:
        AlreadyTerminalError: If the case is already approved or rejected
        InvalidTransitionError: If the case is already cancelled or expired
    """
    _ensure_transition(case, S.CANCELLED, "cancel")
    return replace(case, status=S.CANCELLED)


def expire(case: VerificationCase, now: datetime) -> VerificationCase:
    """
    Close a case whose customer link ran out before submission.

    Raises:
        AlreadyTerminalError: If the case is already approved or rejected
        InvalidTransitionError: If the link is still valid or the status
            cannot expire
    """
    _ensure_transition(case, S.EXPIRED, "expire")
    if not case.is_link_expired(now):
        raise InvalidTransitionError(
            message="Cannot expire: access token is still valid",
            case_id=case.id,
            from_status=case.status.value,
            action="expire",
        )
    return replace(case, status=S.EXPIRED)
