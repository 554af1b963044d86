"""Map service failures onto HTTP responses."""

from fastapi import HTTPException

from veriflow.exceptions import (
    CaseNotFoundError,
    ConcurrentUpdateError,
    InvalidTransitionError,
    LinkExpiredError,
    ValidationError,
    VeriFlowError,
)
from veriflow.service import ActionResult


def status_for(error: VeriFlowError) -> int:
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, LinkExpiredError):
        return 410
    if isinstance(error, CaseNotFoundError):
        return 404
    if isinstance(error, (InvalidTransitionError, ConcurrentUpdateError)):
        return 409
    return 400


def raise_for_result(result: ActionResult) -> None:
    """Raise an HTTPException carrying only the public message for a failed result."""
    if result.success:
        return
    error = result.error
    detail = {"code": error.code, "message": result.message}
    if isinstance(error, ValidationError):
        detail["missing"] = list(error.missing)
    raise HTTPException(status_code=status_for(error), detail=detail)
