"""
VeriFlow Case Models

Models for verification cases, customer input, and reviewers.

Key components:
- VerificationCase: One verification request and its lifecycle state
- CategoryData: Answers and photo evidence for one category
- DraftSession: The customer's in-progress form, checkpointed explicitly
- Submission: Immutable snapshot of a DraftSession at submit time
- Reviewer / Team: The pool the assignment balancer draws from
- AuditEvent: Record of a lifecycle action

The separation between DraftSession and Submission is intentional:
- Drafts are mutable and may hold evidence the form no longer asks for
- Submissions are append-only and hold exactly what was reviewed
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import uuid4

from .enums import (
    ActorType,
    AuditAction,
    Decision,
    PolicyType,
    VerificationStatus,
)
from .template import Category


AnswerValue = Union[str, int, float, bool, list]

# category_id -> field_id -> reason
RejectionFeedback = dict[str, dict[str, str]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Location & Contact
# =============================================================================

@dataclass
class GeoPoint:
    """A WGS84 coordinate, optionally with device-reported accuracy in metres."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"latitude": self.latitude, "longitude": self.longitude}
        if self.accuracy is not None:
            result["accuracy"] = self.accuracy
        return result


@dataclass
class CustomerContact:
    """Who the verification link is sent to."""
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None

    @property
    def masked_phone(self) -> str:
        """First three and last four characters, the rest hidden."""
        if len(self.phone) <= 7:
            return self.phone
        return f"{self.phone[:3]}****{self.phone[-4:]}"


# =============================================================================
# Customer Input
# =============================================================================

@dataclass
class Answer:
    """A customer's answer to one question."""
    question_id: str
    value: AnswerValue

    @property
    def is_empty(self) -> bool:
        if isinstance(self.value, str):
            return self.value.strip() == ""
        if isinstance(self.value, list):
            return len(self.value) == 0
        return self.value is None


@dataclass
class PhotoEvidence:
    """
    A captured photo bound to a field.

    The URL points at external storage; this core never handles image bytes.
    """
    field_id: str
    url: str
    gps: Optional[GeoPoint] = None
    captured_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_id": self.field_id,
            "url": self.url,
            "gps": self.gps.to_dict() if self.gps else None,
            "captured_at": self.captured_at.isoformat() if self.captured_at else None,
        }


@dataclass
class CategoryData:
    """Answers and photos supplied for one category."""
    category_id: str
    answers: dict[str, Answer] = field(default_factory=dict)
    photos: dict[str, PhotoEvidence] = field(default_factory=dict)

    def answer_value(self, question_id: str) -> Optional[AnswerValue]:
        answer = self.answers.get(question_id)
        return answer.value if answer is not None else None

    def has_photo(self, field_id: str) -> bool:
        return field_id in self.photos

    def set_answer(self, question_id: str, value: AnswerValue) -> None:
        self.answers[question_id] = Answer(question_id=question_id, value=value)

    def add_photo(self, evidence: PhotoEvidence) -> None:
        self.photos[evidence.field_id] = evidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_id": self.category_id,
            "answers": {qid: a.value for qid, a in self.answers.items()},
            "photos": {fid: p.to_dict() for fid, p in self.photos.items()},
        }


@dataclass
class DraftSession:
    """
    The customer's in-progress form for one case.

    Attributes:
        case_id: Owning case
        categories: CategoryData keyed by category ID
        current_category_index: Where the customer left off
        consent_given: Customer accepted the consent text
        consent_timestamp: When consent was given
        saved_at: Last explicit checkpoint
    """
    case_id: str
    categories: dict[str, CategoryData] = field(default_factory=dict)
    current_category_index: int = 0
    consent_given: bool = False
    consent_timestamp: Optional[datetime] = None
    saved_at: Optional[datetime] = None

    def data_for(self, category_id: str) -> CategoryData:
        """CategoryData for a category, created empty on first use."""
        if category_id not in self.categories:
            self.categories[category_id] = CategoryData(category_id=category_id)
        return self.categories[category_id]

    def peek(self, category_id: str) -> CategoryData:
        """CategoryData for a category without registering it."""
        return self.categories.get(category_id) or CategoryData(category_id=category_id)

    def give_consent(self, now: Optional[datetime] = None) -> None:
        self.consent_given = True
        self.consent_timestamp = now or _utcnow()


@dataclass
class Submission:
    """Append-only snapshot of what the customer sent for review."""
    id: str
    case_id: str
    submission_number: int
    categories: list[CategoryData]
    consent_given: bool
    consent_timestamp: Optional[datetime]
    submitted_at: datetime
    location_flags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        case_id: str,
        submission_number: int,
        categories: list[CategoryData],
        consent_given: bool,
        consent_timestamp: Optional[datetime],
        submitted_at: Optional[datetime] = None,
    ) -> Submission:
        """Factory method to create a new Submission."""
        return cls(
            id=str(uuid4()),
            case_id=case_id,
            submission_number=submission_number,
            categories=categories,
            consent_given=consent_given,
            consent_timestamp=consent_timestamp,
            submitted_at=submitted_at or _utcnow(),
        )

    def get_category(self, category_id: str) -> Optional[CategoryData]:
        for data in self.categories:
            if data.category_id == category_id:
                return data
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "submission_number": self.submission_number,
            "categories": [c.to_dict() for c in self.categories],
            "consent_given": self.consent_given,
            "submitted_at": self.submitted_at.isoformat(),
            "location_flags": dict(self.location_flags),
        }


# =============================================================================
# Verification Case
# =============================================================================

@dataclass
class VerificationCase:
    """
    A single verification request.

    rejection_count only ever increases. `version` is bumped by the case
    store on every write and is what compare-and-swap checks against.
    """
    id: str
    reference: str
    customer: CustomerContact
    policy_id: str
    policy_type: PolicyType
    access_token: Optional[str]
    access_token_expiry: Optional[datetime]
    categories: list[Category] = field(default_factory=list)
    status: VerificationStatus = VerificationStatus.DRAFT
    created_at: datetime = field(default_factory=_utcnow)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    link_accessed_at: Optional[datetime] = None
    rejection_count: int = 0
    rejection_reason: Optional[RejectionFeedback] = None
    decision: Optional[Decision] = None
    assigned_reviewer_id: Optional[str] = None
    assigned_team_id: Optional[str] = None
    property_location: Optional[GeoPoint] = None
    template_id: Optional[str] = None
    version: int = 0

    def get_category(self, category_id: str) -> Optional[Category]:
        for c in self.categories:
            if c.id == category_id:
                return c
        return None

    def is_link_expired(self, now: datetime) -> bool:
        return self.access_token_expiry is not None and now > self.access_token_expiry

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary (reviewer view)."""
        return {
            "id": self.id,
            "reference": self.reference,
            "customer_name": self.customer.name,
            "customer_phone": self.customer.masked_phone,
            "policy_id": self.policy_id,
            "policy_type": self.policy_type.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "rejection_count": self.rejection_count,
            "rejection_reason": self.rejection_reason,
            "decision": self.decision.value if self.decision else None,
            "assigned_reviewer_id": self.assigned_reviewer_id,
            "assigned_team_id": self.assigned_team_id,
            "access_token_expiry": (
                self.access_token_expiry.isoformat() if self.access_token_expiry else None
            ),
            "version": self.version,
        }


# =============================================================================
# Reviewers
# =============================================================================

@dataclass
class Team:
    """A reviewer team; an empty policy_types list means it handles every type."""
    id: str
    name: str
    policy_types: list[PolicyType] = field(default_factory=list)

    def handles(self, policy_type: PolicyType) -> bool:
        return not self.policy_types or policy_type in self.policy_types


@dataclass
class Reviewer:
    """A verifier who can be assigned cases. No specialization means generalist."""
    id: str
    full_name: str
    active: bool = True
    specialization: Optional[PolicyType] = None
    team_id: Optional[str] = None
    email: Optional[str] = None


# =============================================================================
# Audit
# =============================================================================

@dataclass
class AuditEvent:
    """A lifecycle action recorded against a case."""
    id: str
    case_id: str
    action: AuditAction
    actor_type: ActorType
    actor_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        case_id: str,
        action: AuditAction,
        actor_type: ActorType,
        actor_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> AuditEvent:
        """Factory method to create a new AuditEvent."""
        return cls(
            id=str(uuid4()),
            case_id=case_id,
            action=action,
            actor_type=actor_type,
            actor_id=actor_id,
            details=details or {},
            created_at=created_at or _utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "action": self.action.value,
            "actor_type": self.actor_type.value,
            "actor_id": self.actor_id,
            "details": self.details,
            "created_at": self.created_at.isoformat(),
        }
