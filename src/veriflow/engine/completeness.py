"""
VeriFlow Completeness Checker

Decides whether a category (and the whole form) has every required answer
and photo, including photos revealed by conditional rules.

Key features:
- Human-readable missing-item list per category, in template order
- Conditional and dynamic-count photo requirements
- Form-level report listing every unmet requirement at once
- Orphaned evidence detection (photos the form no longer asks for)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..models import (
    Category,
    CategoryData,
    DraftSession,
    PhotoRequirement,
)
from .conditional_evaluator import MAX_DYNAMIC_PHOTOS, triggered_fields


# =============================================================================
# Category-Level Checks
# =============================================================================

def _is_unanswered(data: CategoryData, question_id: str) -> bool:
    answer = data.answers.get(question_id)
    return answer is None or answer.is_empty


def missing_requirements(
    category: Category,
    category_data: Optional[CategoryData],
    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS,
) -> list[str]:
    """
    List every unmet requirement in a category.

    Order: required photo requirements, then for each question its own
    answer followed by any photos its conditional reveals.

    Args:
        category: The category definition (from the case snapshot)
        category_data: The customer's answers and photos, if any

    Returns:
        Entries of the form "Photo: {label}", "Question: {text}" or
        "Photo: {label} (required based on your answer)". Empty when complete.
    """
    data = category_data or CategoryData(category_id=category.id)
    missing: list[str] = []

    for requirement in category.photo_requirements:
        if requirement.required and not data.has_photo(requirement.field_id):
            missing.append(f"Photo: {requirement.label}")

    for question in category.questions:
        if question.required and _is_unanswered(data, question.id):
            missing.append(f"Question: {question.text}")

        if question.conditional is None:
            continue

        triggered = triggered_fields(
            question, category.id, data.answer_value(question.id), max_dynamic_photos
        )
        for photo_field in triggered.fields:
            # Every dynamic slot is owed; static fields only when required
            if not triggered.dynamic and not photo_field.required:
                continue
            if not data.has_photo(photo_field.field_id):
                missing.append(
                    f"Photo: {photo_field.label} (required based on your answer)"
                )

    return missing


def is_complete(
    category: Category,
    category_data: Optional[CategoryData],
    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS,
) -> bool:
    """True when the category has no unmet requirements."""
    return not missing_requirements(category, category_data, max_dynamic_photos)


def active_photo_fields(
    category: Category,
    category_data: Optional[CategoryData],
    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS,
) -> list[PhotoRequirement]:
    """Photo fields the category currently presents, static then conditional."""
    data = category_data or CategoryData(category_id=category.id)
    fields = list(category.photo_requirements)
    for question in category.questions:
        if question.conditional is not None:
            fields.extend(
                triggered_fields(
                    question, category.id, data.answer_value(question.id), max_dynamic_photos
                ).fields
            )
    return fields


def orphaned_evidence(
    category: Category,
    category_data: Optional[CategoryData],
    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS,
) -> list[str]:
    """
    Field IDs of evidence the category no longer asks for.

    This happens when an answer changes so a conditional stops firing, or a
    dynamic count shrinks. The evidence stays in the draft so toggling the
    answer back restores it, but it is left out of the submitted snapshot.
    """
    if category_data is None:
        return []
    active = {f.field_id for f in active_photo_fields(category, category_data, max_dynamic_photos)}
    return sorted(fid for fid in category_data.photos if fid not in active)


def prune_orphaned(
    category: Category,
    category_data: CategoryData,
    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS,
) -> CategoryData:
    """Copy of category_data without orphaned evidence."""
    orphans = set(orphaned_evidence(category, category_data, max_dynamic_photos))
    return CategoryData(
        category_id=category_data.category_id,
        answers=dict(category_data.answers),
        photos={fid: p for fid, p in category_data.photos.items() if fid not in orphans},
    )


# =============================================================================
# Form-Level Report
# =============================================================================

@dataclass
class CategoryCompleteness:
    """Completeness of one category."""
    category_id: str
    title: str
    missing: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing


@dataclass
class CompletenessReport:
    """
    Result of checking a whole draft against the case's categories.

    Contains:
    - Per-category missing items and orphaned evidence
    - The first incomplete category (for navigation gating)
    - An overall completion percentage by category
    """
    categories: list[CategoryCompleteness] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return all(c.is_complete for c in self.categories)

    @property
    def all_missing(self) -> list[str]:
        return [item for c in self.categories for item in c.missing]

    @property
    def first_incomplete_index(self) -> Optional[int]:
        for index, c in enumerate(self.categories):
            if not c.is_complete:
                return index
        return None

    @property
    def completion_percentage(self) -> float:
        if not self.categories:
            return 100.0
        done = sum(1 for c in self.categories if c.is_complete)
        return round(done / len(self.categories) * 100, 1)

    def to_dict(self) -> dict:
        return {
            "is_complete": self.is_complete,
            "completion_percentage": self.completion_percentage,
            "first_incomplete_index": self.first_incomplete_index,
            "categories": [
                {
                    "category_id": c.category_id,
                    "title": c.title,
                    "missing": c.missing,
                    "orphaned": c.orphaned,
                }
                for c in self.categories
            ],
        }


@dataclass
class CompletenessChecker:
    """
    Checks drafts against a case's category snapshot.

    Usage:
        checker = CompletenessChecker()
        report = checker.check_form(case.categories, draft)

        if not report.is_complete:
            print("Still needed:", report.all_missing)
    """

    max_dynamic_photos: int = MAX_DYNAMIC_PHOTOS

    def check_category(
        self,
        category: Category,
        category_data: Optional[CategoryData],
    ) -> CategoryCompleteness:
        return CategoryCompleteness(
            category_id=category.id,
            title=category.title,
            missing=missing_requirements(category, category_data, self.max_dynamic_photos),
            orphaned=orphaned_evidence(category, category_data, self.max_dynamic_photos),
        )

    def check_form(
        self,
        categories: list[Category],
        draft: DraftSession,
    ) -> CompletenessReport:
        """Check every category in order; nothing short-circuits."""
        return CompletenessReport(
            categories=[
                self.check_category(category, draft.categories.get(category.id))
                for category in categories
            ]
        )

    def can_advance(
        self,
        categories: list[Category],
        draft: DraftSession,
        from_index: int,
    ) -> bool:
        """Whether the customer may move past the category at from_index."""
        if from_index < 0 or from_index >= len(categories):
            return False
        category = categories[from_index]
        return is_complete(category, draft.categories.get(category.id), self.max_dynamic_photos)

    def snapshot_categories(
        self,
        categories: list[Category],
        draft: DraftSession,
    ) -> list[CategoryData]:
        """Draft data in category order with orphaned evidence removed."""
        return [
            prune_orphaned(category, draft.peek(category.id), self.max_dynamic_photos)
            for category in categories
        ]


# =============================================================================
# Convenience Functions
# =============================================================================

def check_form(categories: list[Category], draft: DraftSession) -> CompletenessReport:
    """Check a draft with default settings."""
    return CompletenessChecker().check_form(categories, draft)
