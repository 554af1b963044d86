"""Operator and reviewer endpoints for verification cases."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from api.errors import raise_for_result
from api.routes import reviewers as pool
from api.schemas.requests import (
    ApproveRequest,
    CancelRequest,
    CreateVerificationRequest,
    ReassignRequest,
    RejectRequest,
)
from api.schemas.responses import (
    AssignmentSummary,
    CreateVerificationResponse,
    RejectResponse,
    VerificationSummary,
)
from veriflow.engine.rejection import REJECTION_REASONS
from veriflow.models import VerificationCase
from veriflow.packs import TemplatePackLoader
from veriflow.service import VerificationService

router = APIRouter(prefix="/verifications", tags=["Verifications"])

# Shared instances (set by main.py)
service: VerificationService = None
loader: TemplatePackLoader = None


def set_service(s: VerificationService, l: TemplatePackLoader):
    global service, loader
    service = s
    loader = l


def _summary(case: VerificationCase) -> VerificationSummary:
    return VerificationSummary(**case.to_dict())


@router.post("", response_model=CreateVerificationResponse, status_code=201)
async def create_verification(request: CreateVerificationRequest):
    """
    Raise a verification case from a template.

    In auto mode the least-loaded eligible reviewer is assigned. If nobody
    is eligible the case is still created, unassigned.
    """
    template = loader.get_template(request.template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template '{request.template_id}' not found")

    result = service.create_case(
        template,
        request.customer.to_model(),
        request.policy_id,
        reviewers=list(pool.reviewers.values()),
        teams=dict(pool.teams) if pool.teams else None,
        mode=request.mode,
        reviewer_id=request.reviewer_id,
        team_id=request.team_id,
        property_location=request.property_location.to_model() if request.property_location else None,
        link_expiry_hours=request.link_expiry_hours,
    )
    raise_for_result(result)

    return CreateVerificationResponse(
        verification=_summary(result.case),
        access_token=result.case.access_token,
        assignment=AssignmentSummary(**result.assignment.to_dict()) if result.assignment else None,
    )


@router.get("", response_model=list[VerificationSummary])
async def list_verifications(status: Optional[str] = None, reviewer_id: Optional[str] = None):
    """List cases, newest first, optionally filtered by status or assigned reviewer."""
    cases = service.cases.list_cases()
    if status:
        cases = [c for c in cases if c.status.value == status]
    if reviewer_id:
        cases = [c for c in cases if c.assigned_reviewer_id == reviewer_id]
    cases.sort(key=lambda c: (c.created_at, c.reference), reverse=True)
    return [_summary(c) for c in cases]


@router.get("/rejection-reasons")
async def rejection_reasons():
    """Preset reasons offered to reviewers when flagging a field."""
    return REJECTION_REASONS


@router.post("/expire")
async def expire_stale():
    """Expire every open case whose customer link has run out."""
    return {"expired": service.expire_stale()}


@router.get("/{case_id}", response_model=VerificationSummary)
async def get_verification(case_id: str):
    result = service.get_case(case_id)
    raise_for_result(result)
    return _summary(result.case)


@router.get("/{case_id}/submission")
async def latest_submission(case_id: str):
    """The most recent submission, as the reviewer sees it."""
    raise_for_result(service.get_case(case_id))
    submission = service.submissions.latest(case_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="No submission yet")
    return submission.to_dict()


@router.get("/{case_id}/audit")
async def audit_trail(case_id: str):
    raise_for_result(service.get_case(case_id))
    events = getattr(service.audit, "for_case", None)
    if events is None:
        return []
    return [e.to_dict() for e in events(case_id)]


@router.post("/{case_id}/approve", response_model=VerificationSummary)
async def approve_verification(case_id: str, request: ApproveRequest):
    result = service.approve(case_id, request.reviewer_id)
    raise_for_result(result)
    return _summary(result.case)


@router.post("/{case_id}/reject", response_model=RejectResponse)
async def reject_verification(case_id: str, request: RejectRequest):
    """
    Reject with field-level feedback.

    The first three rejections send the case back with a new customer link;
    the fourth closes it for good.
    """
    result = service.reject(case_id, request.feedback, request.reviewer_id)
    raise_for_result(result)
    return RejectResponse(
        verification=_summary(result.case),
        new_rejection_count=result.outcome.new_rejection_count,
        is_permanent=result.outcome.is_permanent,
        new_access_token=result.outcome.new_access_token,
    )


@router.post("/{case_id}/reassign", response_model=VerificationSummary)
async def reassign_verification(case_id: str, request: ReassignRequest):
    if request.reviewer_id is not None and request.reviewer_id not in pool.reviewers:
        raise HTTPException(status_code=404, detail=f"Reviewer '{request.reviewer_id}' not found")
    result = service.reassign(case_id, request.reviewer_id, request.actor_id)
    raise_for_result(result)
    return _summary(result.case)


@router.post("/{case_id}/cancel", response_model=VerificationSummary)
async def cancel_verification(case_id: str, request: CancelRequest):
    result = service.cancel(case_id, request.actor_id)
    raise_for_result(result)
    return _summary(result.case)

