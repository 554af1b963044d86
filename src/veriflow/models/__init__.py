"""
VeriFlow Models

All domain models for the VeriFlow verification lifecycle.

Exports all models organized by category for convenient imports:

    from veriflow.models import (
        # Enums
        VerificationStatus, PolicyType, QuestionType, ConditionalOperator,
        # Template
        Template, Category, Question, PhotoRequirement,
        OperatorConditional, LegacyStringConditional,
        # Case
        VerificationCase, DraftSession, CategoryData, Submission,
        # Reviewers
        Reviewer, Team,
    )
"""
from __future__ import annotations

from .enums import (
    ActorType,
    AssignmentMode,
    AssignmentStatus,
    AuditAction,
    ConditionalKind,
    ConditionalOperator,
    Decision,
    POLICY_CATEGORY_BY_TYPE,
    PolicyCategory,
    PolicyType,
    QuestionType,
    VerificationStatus,
)
from .template import (
    DEFAULT_PHOTO_INSTRUCTION,
    DEFAULT_PHOTO_LABEL,
    Category,
    Conditional,
    ConditionalPhotoField,
    LegacyStringConditional,
    OperatorConditional,
    PhotoRequirement,
    Question,
    Template,
)
from .case import (
    Answer,
    AnswerValue,
    AuditEvent,
    CategoryData,
    CustomerContact,
    DraftSession,
    GeoPoint,
    PhotoEvidence,
    RejectionFeedback,
    Reviewer,
    Submission,
    Team,
    VerificationCase,
)


__all__ = [
    # Enums
    "ActorType",
    "AssignmentMode",
    "AssignmentStatus",
    "AuditAction",
    "ConditionalKind",
    "ConditionalOperator",
    "Decision",
    "POLICY_CATEGORY_BY_TYPE",
    "PolicyCategory",
    "PolicyType",
    "QuestionType",
    "VerificationStatus",
    # Template
    "DEFAULT_PHOTO_INSTRUCTION",
    "DEFAULT_PHOTO_LABEL",
    "Category",
    "Conditional",
    "ConditionalPhotoField",
    "LegacyStringConditional",
    "OperatorConditional",
    "PhotoRequirement",
    "Question",
    "Template",
    # Case
    "Answer",
    "AnswerValue",
    "AuditEvent",
    "CategoryData",
    "CustomerContact",
    "DraftSession",
    "GeoPoint",
    "PhotoEvidence",
    "RejectionFeedback",
    "Reviewer",
    "Submission",
    "Team",
    "VerificationCase",
]
