"""
VeriFlow Engine

Pure decision logic for the verification lifecycle:

- conditional_evaluator: when conditional photo fields apply, dynamic counts
- completeness: missing requirements per category and per form
- state_machine: status transitions with uniform terminal-state guards
- rejection: bounded rejection budget and revision drafts
- assignment: least-loaded reviewer selection
- location: advisory GPS distance check
"""
from __future__ import annotations

from .assignment import (
    ACTIVE_STATUSES,
    AssignmentBalancer,
    AssignmentResult,
    assign,
    count_active_cases,
    eligible_reviewers,
    is_eligible,
)
from .completeness import (
    CategoryCompleteness,
    CompletenessChecker,
    CompletenessReport,
    active_photo_fields,
    is_complete,
    missing_requirements,
    orphaned_evidence,
    prune_orphaned,
)
from .conditional_evaluator import (
    MAX_DYNAMIC_PHOTOS,
    TriggeredFields,
    coerce_count,
    coerce_number,
    dynamic_field_id,
    dynamic_photo_count,
    materialize_dynamic_fields,
    should_trigger,
    triggered_fields,
    validate_conditional,
)
from .location import LocationCheck, check_evidence_location, haversine_distance, requires_gps
from .rejection import (
    REJECTION_REASONS,
    RejectionOutcome,
    RejectionPolicy,
    apply_rejection,
    hydrate_revision_draft,
    is_field_flagged,
    locked_fields,
    merge_revision,
    normalize_feedback,
)
from .state_machine import (
    ALLOWED_TRANSITIONS,
    CLOSED_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    ensure_editable,
    ensure_not_terminal,
    is_terminal,
)


__all__ = [
    # Assignment
    "ACTIVE_STATUSES",
    "AssignmentBalancer",
    "AssignmentResult",
    "assign",
    "count_active_cases",
    "eligible_reviewers",
    "is_eligible",
    # Completeness
    "CategoryCompleteness",
    "CompletenessChecker",
    "CompletenessReport",
    "active_photo_fields",
    "is_complete",
    "missing_requirements",
    "orphaned_evidence",
    "prune_orphaned",
    # Conditionals
    "MAX_DYNAMIC_PHOTOS",
    "TriggeredFields",
    "coerce_count",
    "coerce_number",
    "dynamic_field_id",
    "dynamic_photo_count",
    "materialize_dynamic_fields",
    "should_trigger",
    "triggered_fields",
    "validate_conditional",
    # Location
    "LocationCheck",
    "check_evidence_location",
    "haversine_distance",
    "requires_gps",
    # Rejection
    "REJECTION_REASONS",
    "RejectionOutcome",
    "RejectionPolicy",
    "apply_rejection",
    "hydrate_revision_draft",
    "is_field_flagged",
    "locked_fields",
    "merge_revision",
    "normalize_feedback",
    # State machine
    "ALLOWED_TRANSITIONS",
    "CLOSED_STATUSES",
    "TERMINAL_STATUSES",
    "can_transition",
    "ensure_editable",
    "ensure_not_terminal",
    "is_terminal",
]
