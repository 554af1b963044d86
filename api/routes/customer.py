"""Customer-facing endpoints, addressed by the link token."""

from fastapi import APIRouter

from api.errors import raise_for_result
from api.schemas.requests import DraftInput, draft_to_dict
from api.schemas.responses import (
    CompletenessResponse,
    DraftResponse,
    LinkResponse,
    SubmitResponse,
)
from veriflow.service import VerificationService

router = APIRouter(prefix="/verify", tags=["Customer"])

# Shared service instance (set by main.py)
service: VerificationService = None


def set_service(s: VerificationService):
    global service
    service = s


@router.get("/{token}", response_model=LinkResponse)
async def open_link(token: str):
    """
    Validate the link and return the questionnaire.

    Expired links answer 410; submitted or closed cases answer 409.
    """
    result = service.open_link(token)
    raise_for_result(result)
    case = result.case
    return LinkResponse(
        reference=case.reference,
        status=case.status.value,
        customer_name=result.extra["customer_name"],
        masked_phone=result.extra["masked_phone"],
        policy_type=case.policy_type.value,
        requires_gps=result.extra["requires_gps"],
        is_revision=result.extra["is_revision"],
        rejection_reason=case.rejection_reason if result.extra["is_revision"] else None,
        categories=[c.to_dict() for c in case.categories],
    )


@router.get("/{token}/draft", response_model=DraftResponse)
async def load_draft(token: str):
    """Saved draft, or the revision draft rebuilt from the last submission."""
    result = service.load_draft(token)
    raise_for_result(result)
    report = service.checker.check_form(result.case.categories, result.draft)
    return DraftResponse(
        draft=draft_to_dict(result.draft),
        completeness=CompletenessResponse(**report.to_dict()),
    )


@router.put("/{token}/draft", response_model=DraftResponse)
async def save_draft(token: str, request: DraftInput):
    """Checkpoint the draft and report what is still missing."""
    opened = service.case_for_token(token)
    raise_for_result(opened)
    result = service.save_draft(token, request.to_model(opened.case.id))
    raise_for_result(result)
    report = service.checker.check_form(result.case.categories, result.draft)
    return DraftResponse(
        draft=draft_to_dict(result.draft),
        completeness=CompletenessResponse(**report.to_dict()),
    )


@router.post("/{token}/submit", response_model=SubmitResponse)
async def submit(token: str, request: DraftInput):
    """
    Submit the form for review.

    An incomplete form answers 422 with every missing item listed.
    """
    opened = service.case_for_token(token)
    raise_for_result(opened)
    result = service.submit(token, request.to_model(opened.case.id))
    raise_for_result(result)
    return SubmitResponse(
        reference=result.case.reference,
        status=result.case.status.value,
        submission_id=result.submission.id,
        submission_number=result.submission.submission_number,
        location_flags=result.submission.location_flags,
    )


@router.post("/{token}/completeness", response_model=CompletenessResponse)
async def check_completeness(token: str, request: DraftInput):
    """Check a draft without saving it."""
    opened = service.case_for_token(token)
    raise_for_result(opened)
    result = service.check_completeness(token, request.to_model(opened.case.id))
    raise_for_result(result)
    return CompletenessResponse(**result.report.to_dict())


@router.get("/{token}/revision", response_model=DraftResponse)
async def start_revision(token: str):
    """Correction draft: last submission with the flagged fields cleared."""
    result = service.start_revision(token)
    raise_for_result(result)
    report = service.checker.check_form(result.case.categories, result.draft)
    return DraftResponse(
        draft=draft_to_dict(result.draft),
        completeness=CompletenessResponse(**report.to_dict()),
    )
