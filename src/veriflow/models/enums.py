"""
VeriFlow Enumerations

All enumeration types used throughout the VeriFlow system.
Organized by domain area for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Verification Status
# =============================================================================

class VerificationStatus(str, Enum):
    """
    Lifecycle status of a verification case.

    APPROVED and REJECTED are terminal. CANCELLED and EXPIRED close the case
    through external triggers. The under_review / more_info_requested /
    escalated values exist in stored data from earlier workflows; they are
    never entered by this engine but still count toward reviewer load.
    """
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    # Legacy
    UNDER_REVIEW = "under_review"
    MORE_INFO_REQUESTED = "more_info_requested"
    ESCALATED = "escalated"


class Decision(str, Enum):
    """Reviewer's final decision on a case."""
    APPROVED = "approved"
    REJECTED = "rejected"


# =============================================================================
# Policies
# =============================================================================

class PolicyType(str, Enum):
    """Policy products a verification can be raised against."""
    HOME_INSURANCE = "home_insurance"
    AUTO_INSURANCE = "auto_insurance"
    CREDIT_CARD = "credit_card"


class PolicyCategory(str, Enum):
    """Broad grouping used by reviewers and reporting."""
    PROPERTY = "property"
    VEHICLE = "vehicle"
    BANKING = "banking"


POLICY_CATEGORY_BY_TYPE: dict[PolicyType, PolicyCategory] = {
    PolicyType.HOME_INSURANCE: PolicyCategory.PROPERTY,
    PolicyType.AUTO_INSURANCE: PolicyCategory.VEHICLE,
    PolicyType.CREDIT_CARD: PolicyCategory.BANKING,
}


# =============================================================================
# Questionnaire
# =============================================================================

class QuestionType(str, Enum):
    """Answer widget types for template questions."""
    TEXT = "text"
    NUMBER = "number"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    YES_NO = "yes_no"


class ConditionalOperator(str, Enum):
    """Comparison operators for operator-style conditionals."""
    GT = ">"
    LT = "<"
    EQ = "="
    GTE = ">="
    LTE = "<="


class ConditionalKind(str, Enum):
    """Discriminator for the conditional rule union."""
    OPERATOR = "operator"
    LEGACY = "legacy"


# =============================================================================
# Actors & Audit
# =============================================================================

class ActorType(str, Enum):
    """Who performed an audited action."""
    CUSTOMER = "customer"
    REVIEWER = "reviewer"
    ADMIN = "admin"
    SYSTEM = "system"


class AuditAction(str, Enum):
    """Audited lifecycle events."""
    LINK_GENERATED = "link_generated"
    LINK_ACCESSED = "link_accessed"
    DRAFT_SAVED = "draft_saved"
    VERIFICATION_SUBMITTED = "verification_submitted"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_REJECTED = "verification_rejected"
    REVISION_REQUESTED = "revision_requested"
    VERIFICATION_REASSIGNED = "verification_reassigned"
    VERIFICATION_CANCELLED = "verification_cancelled"
    VERIFICATION_EXPIRED = "verification_expired"


class AssignmentMode(str, Enum):
    """How a new case picks its reviewer."""
    AUTO = "auto"
    TEAM = "team"
    REVIEWER = "reviewer"


class AssignmentStatus(str, Enum):
    """Outcome of running the assignment balancer."""
    ASSIGNED = "assigned"
    NONE_AVAILABLE = "none_available"
