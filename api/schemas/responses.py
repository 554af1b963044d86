"""Response schemas for the API."""

from pydantic import BaseModel
from typing import Any, Optional


class VerificationSummary(BaseModel):
    """Reviewer-facing view of a case."""
    id: str
    reference: str
    customer_name: str
    customer_phone: str
    policy_id: str
    policy_type: str
    status: str
    created_at: str
    submitted_at: Optional[str] = None
    reviewed_at: Optional[str] = None
    rejection_count: int
    rejection_reason: Optional[dict[str, dict[str, str]]] = None
    decision: Optional[str] = None
    assigned_reviewer_id: Optional[str] = None
    assigned_team_id: Optional[str] = None
    access_token_expiry: Optional[str] = None
    version: int


class AssignmentSummary(BaseModel):
    status: str
    reviewer_id: Optional[str] = None
    reviewer_name: Optional[str] = None
    active_count: int = 0
    message: str = ""


class CreateVerificationResponse(BaseModel):
    """A new case and its customer link token."""
    verification: VerificationSummary
    access_token: str
    assignment: Optional[AssignmentSummary] = None


class LinkResponse(BaseModel):
    """What the customer sees when opening the link."""
    reference: str
    status: str
    customer_name: str
    masked_phone: str
    policy_type: str
    requires_gps: bool
    is_revision: bool
    rejection_reason: Optional[dict[str, dict[str, str]]] = None
    categories: list[dict[str, Any]]


class CompletenessResponse(BaseModel):
    is_complete: bool
    completion_percentage: float
    first_incomplete_index: Optional[int] = None
    categories: list[dict[str, Any]]


class DraftResponse(BaseModel):
    draft: dict[str, Any]
    completeness: CompletenessResponse


class SubmitResponse(BaseModel):
    reference: str
    status: str
    submission_id: str
    submission_number: int
    location_flags: dict[str, str] = {}


class RejectResponse(BaseModel):
    verification: VerificationSummary
    new_rejection_count: int
    is_permanent: bool
    new_access_token: Optional[str] = None


class ErrorDetail(BaseModel):
    """Body of every non-2xx response raised by the service layer."""
    code: str
    message: str
    missing: list[str] = []
