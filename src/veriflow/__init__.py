"""
VeriFlow - Verification Lifecycle Core

VeriFlow runs the customer side and the reviewer side of a policy
verification: an operator raises a case, the customer answers a branching
questionnaire with photo evidence, and a reviewer approves or sends it back
with field-level feedback, for a bounded number of correction rounds.

Key Features:
- Conditional photo fields, including "N photos from a numeric answer"
- Completeness checks that list every missing item at once
- Status state machine with uniform terminal-state guards
- Rejection budget with rotated customer links and atomic counter updates
- Least-loaded reviewer assignment by specialization and team

Quick Start:
    from veriflow.packs import load_template_pack
    from veriflow.models import CustomerContact, Reviewer
    from veriflow.service import VerificationService

    template = load_template_pack("templates/home_insurance.yaml")
    service = VerificationService()

    created = service.create_case(
        template,
        CustomerContact(name="Asha Rao", phone="+919876543210"),
        policy_id="POL-001",
        reviewers=[Reviewer(id="rev-1", full_name="Dev Iyer")],
    )
    token = created.case.access_token

    service.open_link(token)
    draft = service.load_draft(token).draft
    ...
    result = service.submit(token, draft)

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"
__author__ = "VeriFlow Team"

from .exceptions import (
    AlreadySubmittedError,
    AlreadyTerminalError,
    CaseNotFoundError,
    ConcurrentUpdateError,
    InvalidConditionalError,
    InvalidTransitionError,
    LinkExpiredError,
    NoEligibleReviewerError,
    TemplateLoadError,
    TemplateValidationError,
    ValidationError,
    VeriFlowError,
)
from .models import (
    Category,
    CategoryData,
    CustomerContact,
    DraftSession,
    LegacyStringConditional,
    OperatorConditional,
    PhotoEvidence,
    PhotoRequirement,
    PolicyType,
    Question,
    Reviewer,
    Team,
    Template,
    VerificationCase,
    VerificationStatus,
)


__all__ = [
    "__version__",
    # Exceptions
    "AlreadySubmittedError",
    "AlreadyTerminalError",
    "CaseNotFoundError",
    "ConcurrentUpdateError",
    "InvalidConditionalError",
    "InvalidTransitionError",
    "LinkExpiredError",
    "NoEligibleReviewerError",
    "TemplateLoadError",
    "TemplateValidationError",
    "ValidationError",
    "VeriFlowError",
    # Models
    "Category",
    "CategoryData",
    "CustomerContact",
    "DraftSession",
    "LegacyStringConditional",
    "OperatorConditional",
    "PhotoEvidence",
    "PhotoRequirement",
    "PolicyType",
    "Question",
    "Reviewer",
    "Team",
    "Template",
    "VerificationCase",
    "VerificationStatus",
]
