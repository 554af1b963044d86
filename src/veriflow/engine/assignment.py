"""
VeriFlow Assignment Balancer

Picks the least-loaded eligible reviewer for a new case.

Key features:
- Eligibility by active flag, specialization and team policy types
- Load derived from current case state, never from a rotation cursor
- Deterministic tie-breaking by reviewer ID
- "No one available" is a result, not an exception

Load counts are read before the assignment is written, so two cases created
at the same moment can land on the same reviewer. Balance is eventual, not
guaranteed per assignment.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..exceptions import NoEligibleReviewerError
from ..models import (
    AssignmentStatus,
    PolicyType,
    Reviewer,
    Team,
    VerificationCase,
    VerificationStatus,
)


ACTIVE_STATUSES = frozenset({
    VerificationStatus.DRAFT,
    VerificationStatus.IN_PROGRESS,
    VerificationStatus.SUBMITTED,
    VerificationStatus.NEEDS_REVISION,
    VerificationStatus.UNDER_REVIEW,
    VerificationStatus.MORE_INFO_REQUESTED,
    VerificationStatus.ESCALATED,
})


# =============================================================================
# Eligibility & Load
# =============================================================================

def is_eligible(
    reviewer: Reviewer,
    policy_type: PolicyType,
    teams: Optional[Mapping[str, Team]] = None,
) -> bool:
    """
    Whether a reviewer may take a case of this policy type.

    With team routing (teams given), a reviewer on a team that lists policy
    types must be on a team that lists this one. Reviewers without a team,
    or on a team with no restriction, stay eligible.
    """
    if not reviewer.active:
        return False
    if reviewer.specialization is not None and reviewer.specialization != policy_type:
        return False
    if teams is not None and reviewer.team_id:
        team = teams.get(reviewer.team_id)
        if team is not None and not team.handles(policy_type):
            return False
    return True


def eligible_reviewers(
    pool: Iterable[Reviewer],
    policy_type: PolicyType,
    teams: Optional[Mapping[str, Team]] = None,
) -> list[Reviewer]:
    """Eligible reviewers in ID order."""
    return sorted(
        (r for r in pool if is_eligible(r, policy_type, teams)),
        key=lambda r: r.id,
    )


def count_active_cases(cases: Iterable[VerificationCase]) -> dict[str, int]:
    """Number of open cases per assigned reviewer."""
    counts: Counter[str] = Counter()
    for case in cases:
        if case.assigned_reviewer_id and case.status in ACTIVE_STATUSES:
            counts[case.assigned_reviewer_id] += 1
    return dict(counts)


# =============================================================================
# Assignment
# =============================================================================

@dataclass
class AssignmentResult:
    """Outcome of one assignment decision."""
    status: AssignmentStatus
    reviewer_id: Optional[str] = None
    reviewer_name: Optional[str] = None
    active_count: int = 0
    candidates: list[str] = field(default_factory=list)
    message: str = ""
    error: Optional[NoEligibleReviewerError] = None

    @property
    def assigned(self) -> bool:
        return self.status == AssignmentStatus.ASSIGNED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "reviewer_id": self.reviewer_id,
            "reviewer_name": self.reviewer_name,
            "active_count": self.active_count,
            "message": self.message,
        }


@dataclass
class AssignmentBalancer:
    """
    Greedy least-loaded reviewer selection.

    Usage:
        balancer = AssignmentBalancer()
        counts = count_active_cases(store.list_cases())

        result = balancer.assign(reviewers, counts, PolicyType.HOME_INSURANCE)
        if result.assigned:
            case.assigned_reviewer_id = result.reviewer_id
    """

    def assign(
        self,
        pool: Iterable[Reviewer],
        active_counts: Mapping[str, int],
        policy_type: PolicyType,
        teams: Optional[Mapping[str, Team]] = None,
    ) -> AssignmentResult:
        candidates = eligible_reviewers(pool, policy_type, teams)
        if not candidates:
            message = f"No active reviewers available for {policy_type.value}"
            return AssignmentResult(
                status=AssignmentStatus.NONE_AVAILABLE,
                message=message,
                error=NoEligibleReviewerError(
                    message=message,
                    details={"policy_type": policy_type.value},
                ),
            )

        chosen = min(candidates, key=lambda r: (active_counts.get(r.id, 0), r.id))
        load = active_counts.get(chosen.id, 0)
        return AssignmentResult(
            status=AssignmentStatus.ASSIGNED,
            reviewer_id=chosen.id,
            reviewer_name=chosen.full_name,
            active_count=load,
            candidates=[r.id for r in candidates],
            message=f"Assigned to {chosen.full_name} ({load} active cases)",
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def assign(
    pool: Iterable[Reviewer],
    active_counts: Mapping[str, int],
    policy_type: PolicyType,
    teams: Optional[Mapping[str, Team]] = None,
) -> AssignmentResult:
    """Assign with a default balancer."""
    return AssignmentBalancer().assign(pool, active_counts, policy_type, teams)
