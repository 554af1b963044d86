"""
VeriFlow Rejection Feedback Processor

Applies a reviewer's field-level rejection to a case under a bounded
rejection budget, and rebuilds the customer's correction draft.

Key features:
- Budget of four rejections: the first three send the case back for
  revision with a fresh access link, the fourth closes it permanently
- Feedback normalization (blank reasons do not flag a field)
- Revision hydration: unflagged answers and photos carry over read-only
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..exceptions import ValidationError, VeriFlowError
from ..models import (
    CategoryData,
    Decision,
    DraftSession,
    RejectionFeedback,
    Submission,
    VerificationCase,
    VerificationStatus,
)


REJECTION_REASONS = [
    "Blurry Image",
    "Too Dark",
    "Incomplete Answer",
    "Irrelevant Photo",
    "Wrong Angle",
    "Missing Required Details",
    "Other",
]


# =============================================================================
# Policy & Outcome
# =============================================================================

@dataclass(frozen=True)
class RejectionPolicy:
    """
    Rejection budget and revision link window.

    With the default budget of 4, a case whose count is already 3 is
    rejected permanently on the next rejection.
    """
    max_rejections: int = 4
    link_validity: timedelta = timedelta(days=7)

    def is_final(self, current_count: int) -> bool:
        return current_count >= self.max_rejections - 1


@dataclass
class RejectionOutcome:
    """Result of applying one rejection."""
    status: VerificationStatus
    new_rejection_count: int
    is_permanent: bool
    new_access_token: Optional[str] = None
    new_access_token_expiry: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "new_rejection_count": self.new_rejection_count,
            "is_permanent": self.is_permanent,
            "new_access_token": self.new_access_token,
            "new_access_token_expiry": (
                self.new_access_token_expiry.isoformat()
                if self.new_access_token_expiry else None
            ),
        }


# =============================================================================
# Feedback
# =============================================================================

def normalize_feedback(feedback: Optional[RejectionFeedback]) -> RejectionFeedback:
    """
    Drop blank reasons and categories left with no flagged field.

    Reasons are stripped. Category and field order is preserved.
    """
    normalized: RejectionFeedback = {}
    for category_id, fields in (feedback or {}).items():
        kept = {
            field_id: reason.strip()
            for field_id, reason in (fields or {}).items()
            if isinstance(reason, str) and reason.strip()
        }
        if kept:
            normalized[category_id] = kept
    return normalized


def is_field_flagged(
    feedback: Optional[RejectionFeedback],
    category_id: str,
    field_id: str,
) -> bool:
    """Whether the reviewer flagged this field for re-collection."""
    if not feedback:
        return False
    reason = feedback.get(category_id, {}).get(field_id)
    return bool(reason and reason.strip())


def flagged_reason(
    feedback: Optional[RejectionFeedback],
    category_id: str,
    field_id: str,
) -> Optional[str]:
    if not is_field_flagged(feedback, category_id, field_id):
        return None
    return feedback[category_id][field_id]


def locked_fields(feedback: Optional[RejectionFeedback], category_data: CategoryData) -> set[str]:
    """
    IDs of answers and photos the customer may not change during revision.

    Everything that was submitted and not flagged is already verified.
    """
    submitted = set(category_data.answers) | set(category_data.photos)
    return {
        fid for fid in submitted
        if not is_field_flagged(feedback, category_data.category_id, fid)
    }


# =============================================================================
# Rejection
# =============================================================================

def apply_rejection(
    case: VerificationCase,
    feedback: RejectionFeedback,
    now: datetime,
    issue_token: Callable[[], str],
    policy: RejectionPolicy,
) -> tuple[VerificationCase, RejectionOutcome]:
    """
    Apply one rejection to a case read at a known counter value.

    The returned case must be written back with a compare-and-swap against
    the version it was read at; on conflict the caller re-reads and calls
    this again so the budget is always decided from the stored count.

    Args:
        case: Case as read from the store (status submitted)
        feedback: category_id -> field_id -> reason
        now: Current time
        issue_token: Collaborator that mints a new random access token;
            only called for revisable rejections
        policy: Rejection budget

    Returns:
        (updated case, outcome)

    Raises:
        ValidationError: If no field is flagged
        VeriFlowError: If the issuer cannot produce a fresh token
    """
    normalized = normalize_feedback(feedback)
    if not normalized:
        raise ValidationError(
            message="Select at least one item to reject and give a reason",
            case_id=case.id,
            missing=["Rejection reason for at least one field"],
        )

    new_count = case.rejection_count + 1

    if policy.is_final(case.rejection_count):
        updated = replace(
            case,
            status=VerificationStatus.REJECTED,
            rejection_count=new_count,
            rejection_reason=normalized,
            decision=Decision.REJECTED,
            reviewed_at=now,
        )
        return updated, RejectionOutcome(
            status=VerificationStatus.REJECTED,
            new_rejection_count=new_count,
            is_permanent=True,
        )

    new_token = issue_token()
    if new_token == case.access_token:
        new_token = issue_token()
    if new_token == case.access_token:
        raise VeriFlowError(
            message="Token issuer returned the current access token",
            case_id=case.id,
        )
    expiry = now + policy.link_validity

    updated = replace(
        case,
        status=VerificationStatus.NEEDS_REVISION,
        rejection_count=new_count,
        rejection_reason=normalized,
        access_token=new_token,
        access_token_expiry=expiry,
        created_at=now,
        reviewed_at=now,
    )
    return updated, RejectionOutcome(
        status=VerificationStatus.NEEDS_REVISION,
        new_rejection_count=new_count,
        is_permanent=False,
        new_access_token=new_token,
        new_access_token_expiry=expiry,
    )


# =============================================================================
# Revision Hydration
# =============================================================================

def hydrate_revision_draft(
    submission: Optional[Submission],
    feedback: Optional[RejectionFeedback],
    case_id: str,
) -> DraftSession:
    """
    Build the customer's correction draft from the latest submission.

    Unflagged answers and photos are carried over; flagged ones are left
    out so the customer must provide them again. Consent must be given again.
    """
    draft = DraftSession(case_id=case_id)
    if submission is None:
        return draft

    for data in submission.categories:
        category_id = data.category_id
        restored = draft.data_for(category_id)
        for question_id, answer in data.answers.items():
            if not is_field_flagged(feedback, category_id, question_id):
                restored.answers[question_id] = copy.deepcopy(answer)
        for field_id, photo in data.photos.items():
            if not is_field_flagged(feedback, category_id, field_id):
                restored.photos[field_id] = copy.deepcopy(photo)

    return draft


def merge_revision(
    previous: CategoryData,
    revision: CategoryData,
    feedback: Optional[RejectionFeedback],
) -> CategoryData:
    """
    Combine a revision draft with the previous submission.

    Locked (unflagged) values always come from the previous submission, so
    a client cannot alter already-verified data during a correction round.
    """
    locked = locked_fields(feedback, previous)
    merged = CategoryData(category_id=previous.category_id)
    for question_id, answer in revision.answers.items():
        if question_id not in locked:
            merged.answers[question_id] = answer
    for field_id, photo in revision.photos.items():
        if field_id not in locked:
            merged.photos[field_id] = photo
    for fid in locked:
        if fid in previous.answers:
            merged.answers[fid] = previous.answers[fid]
        if fid in previous.photos:
            merged.photos[fid] = previous.photos[fid]
    return merged
