"""
VeriFlow Template Models

Models describing the shape of a verification questionnaire.

Key components:
- PhotoRequirement: A photo the customer must (or may) capture
- Conditional: Rule that reveals extra photo fields based on an answer
- Question: A questionnaire item, optionally carrying a Conditional
- Category: An ordered group of questions and photo requirements
- Template: A named set of categories for one policy type

A case never references a live Template. At creation it receives its own
deep copy (Template.snapshot) so later template edits never leak into
in-flight cases.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .enums import ConditionalKind, ConditionalOperator, PolicyType, QuestionType


DEFAULT_PHOTO_INSTRUCTION = "Upload the required photo"
DEFAULT_PHOTO_LABEL = "Photo #"


# =============================================================================
# Photo Requirements
# =============================================================================

@dataclass
class PhotoRequirement:
    """
    A photo slot within a category.

    Attributes:
        field_id: Unique within the category
        label: Shown to the customer; may contain '#' as an index placeholder
        instruction: Capture guidance
        required: Whether the category is incomplete without it
        capture_gps: Whether the capture must carry GPS coordinates
    """
    field_id: str
    label: str
    instruction: str = DEFAULT_PHOTO_INSTRUCTION
    required: bool = True
    capture_gps: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "field_id": self.field_id,
            "label": self.label,
            "instruction": self.instruction,
            "required": self.required,
            "capture_gps": self.capture_gps,
        }


# Conditional fields share the photo requirement shape.
ConditionalPhotoField = PhotoRequirement


# =============================================================================
# Conditional Rules
# =============================================================================

@dataclass
class OperatorConditional:
    """
    Reveal photo fields when the answer compares true against `value`.

    With use_dynamic_count the numeric answer itself becomes the number of
    photo slots, each materialized from the single template in show_fields.
    """
    operator: ConditionalOperator
    value: Any
    show_fields: list[PhotoRequirement] = field(default_factory=list)
    use_dynamic_count: bool = False
    kind: ConditionalKind = field(default=ConditionalKind.OPERATOR, init=False)

    @property
    def template_field(self) -> Optional[PhotoRequirement]:
        return self.show_fields[0] if self.show_fields else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "operator": self.operator.value,
            "value": self.value,
            "show_fields": [f.to_dict() for f in self.show_fields],
            "use_dynamic_count": self.use_dynamic_count,
        }


@dataclass
class LegacyStringConditional:
    """Reveal photo fields when the answer equals (or contains) `if_answer`."""
    if_answer: str
    show_fields: list[PhotoRequirement] = field(default_factory=list)
    kind: ConditionalKind = field(default=ConditionalKind.LEGACY, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "if_answer": self.if_answer,
            "show_fields": [f.to_dict() for f in self.show_fields],
        }


Conditional = Union[OperatorConditional, LegacyStringConditional]


# =============================================================================
# Questions & Categories
# =============================================================================

@dataclass
class Question:
    """A single questionnaire item."""
    id: str
    text: str
    type: QuestionType = QuestionType.TEXT
    options: list[str] = field(default_factory=list)
    required: bool = False
    conditional: Optional[Conditional] = None

    @property
    def is_numeric(self) -> bool:
        return self.type == QuestionType.NUMBER

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.type.value,
            "options": list(self.options),
            "required": self.required,
            "conditional": self.conditional.to_dict() if self.conditional else None,
        }


@dataclass
class Category:
    """
    An ordered section of the questionnaire.

    Attributes:
        id: Unique within the template
        title: Section heading
        order: Sort position (ascending)
        photo_requirements: Photos always asked for in this section
        questions: Questions in display order
        is_identity: Identity sections are never offered for field-level
            rejection feedback
    """
    id: str
    title: str
    order: int = 0
    description: str = ""
    photo_requirements: list[PhotoRequirement] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    is_identity: bool = False

    def get_question(self, question_id: str) -> Optional[Question]:
        """Find a question by ID."""
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    @property
    def declared_field_ids(self) -> set[str]:
        """Photo field IDs known without evaluating any conditional."""
        ids = {p.field_id for p in self.photo_requirements}
        for q in self.questions:
            if q.conditional is not None and not _is_dynamic(q.conditional):
                ids.update(f.field_id for f in q.conditional.show_fields)
        return ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "description": self.description,
            "photo_requirements": [p.to_dict() for p in self.photo_requirements],
            "questions": [q.to_dict() for q in self.questions],
            "is_identity": self.is_identity,
        }


def _is_dynamic(conditional: Conditional) -> bool:
    return isinstance(conditional, OperatorConditional) and conditional.use_dynamic_count


# =============================================================================
# Template
# =============================================================================

@dataclass
class Template:
    """A verification questionnaire for one policy type."""
    id: str
    name: str
    policy_type: PolicyType
    version: str = "1.0.0"
    description: str = ""
    consent_text: str = ""
    categories: list[Category] = field(default_factory=list)

    @property
    def ordered_categories(self) -> list[Category]:
        return sorted(self.categories, key=lambda c: (c.order, c.id))

    def get_category(self, category_id: str) -> Optional[Category]:
        for c in self.categories:
            if c.id == category_id:
                return c
        return None

    def snapshot(self) -> list[Category]:
        """Independent deep copy of the ordered categories for a new case."""
        return copy.deepcopy(self.ordered_categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "policy_type": self.policy_type.value,
            "version": self.version,
            "description": self.description,
            "consent_text": self.consent_text,
            "categories": [c.to_dict() for c in self.ordered_categories],
        }
