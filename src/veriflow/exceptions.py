"""
VeriFlow Exception Hierarchy

Domain-specific exceptions for the verification lifecycle.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: VF_<CATEGORY>_<SPECIFIC>
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


GENERIC_ACTION_MESSAGE = "This action cannot be performed right now."


@dataclass
class VeriFlowError(Exception):
    """
    Base exception for all VeriFlow errors.

    Attributes:
        message: Human-readable error description (internal)
        code: Machine-readable error code (VF_*)
        details: Additional context about the error
        case_id: Associated verification case ID if applicable
    """
    message: str
    code: str = "VF_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    case_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.case_id:
            parts.append(f"(case: {self.case_id})")
        return " ".join(parts)

    @property
    def public_message(self) -> str:
        """Message safe to show a customer or reviewer."""
        return GENERIC_ACTION_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.case_id:
            result["case_id"] = self.case_id
        return result


# =============================================================================
# Input Errors
# =============================================================================

@dataclass
class ValidationError(VeriFlowError):
    """
    Input failed validation.

    For submissions, `missing` lists every unmet requirement at once so the
    customer can fix them in a single pass.
    """
    code: str = "VF_VALIDATION_ERROR"
    missing: list[str] = field(default_factory=list)

    @property
    def public_message(self) -> str:
        if self.missing:
            return "Please complete: " + "; ".join(self.missing)
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.missing:
            result["missing"] = list(self.missing)
        return result


@dataclass
class InvalidConditionalError(VeriFlowError):
    """Conditional rule is malformed or of an unknown kind."""
    code: str = "VF_INVALID_CONDITIONAL"


# =============================================================================
# Lifecycle Errors
# =============================================================================

@dataclass
class InvalidTransitionError(VeriFlowError):
    """Requested status transition is not allowed from the current status."""
    code: str = "VF_INVALID_TRANSITION"
    from_status: Optional[str] = None
    action: Optional[str] = None


@dataclass
class AlreadyTerminalError(InvalidTransitionError):
    """Case is approved or rejected; no further transitions are accepted."""
    code: str = "VF_ALREADY_TERMINAL"


@dataclass
class AlreadySubmittedError(InvalidTransitionError):
    """Case has already been submitted for review."""
    code: str = "VF_ALREADY_SUBMITTED"

    @property
    def public_message(self) -> str:
        return "This verification has already been submitted."


@dataclass
class LinkExpiredError(VeriFlowError):
    """Customer access token is past its expiry."""
    code: str = "VF_LINK_EXPIRED"

    @property
    def public_message(self) -> str:
        return "This verification link has expired. Please contact your agent."


# =============================================================================
# Assignment Errors
# =============================================================================

@dataclass
class NoEligibleReviewerError(VeriFlowError):
    """No active reviewer can take a case of the requested policy type."""
    code: str = "VF_NO_ELIGIBLE_REVIEWER"


# =============================================================================
# Storage Errors
# =============================================================================

@dataclass
class CaseNotFoundError(VeriFlowError):
    """Verification case (or its access token) does not exist."""
    code: str = "VF_CASE_NOT_FOUND"

    @property
    def public_message(self) -> str:
        return "Verification not found."


@dataclass
class ConcurrentUpdateError(VeriFlowError):
    """Compare-and-swap failed: the case changed since it was read."""
    code: str = "VF_CONCURRENT_UPDATE"
    expected_version: Optional[int] = None
    actual_version: Optional[int] = None


# =============================================================================
# Template Pack Errors
# =============================================================================

@dataclass
class TemplateLoadError(VeriFlowError):
    """Failed to load a template pack from file."""
    code: str = "VF_TEMPLATE_LOAD_ERROR"


@dataclass
class TemplateValidationError(VeriFlowError):
    """Template pack failed schema or reference validation."""
    code: str = "VF_TEMPLATE_VALIDATION_ERROR"
