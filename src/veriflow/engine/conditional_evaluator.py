"""
VeriFlow Conditional Evaluator

Decides when a question's conditional rule reveals extra photo fields,
and how many photo slots a numeric answer produces in dynamic-count mode.

Key features:
- Tagged-union dispatch over operator and legacy string conditionals
- Lenient numeric coercion (leading-number parsing, never raises)
- Dynamic photo slots materialized from a single template field
- Deterministic field IDs: same inputs always produce the same slots
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from ..exceptions import InvalidConditionalError
from ..models import (
    DEFAULT_PHOTO_LABEL,
    Conditional,
    ConditionalKind,
    ConditionalOperator,
    ConditionalPhotoField,
    LegacyStringConditional,
    OperatorConditional,
    PhotoRequirement,
    Question,
)


MAX_DYNAMIC_PHOTOS = 50

DYNAMIC_OPERATORS = frozenset({ConditionalOperator.GT, ConditionalOperator.GTE})

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


# =============================================================================
# Value Coercion
# =============================================================================

def stringify_answer(value: Any) -> str:
    """
    Render an answer the way the customer form submits it.

    Whole floats lose their fractional part (3.0 -> "3") and booleans are
    lower-cased, so "=" compares what the customer actually saw.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce a value to a float, or None if it is not numeric.

    Strings are parsed by their leading number ("12 rooms" -> 12.0).
    Booleans, lists and NaN are never numeric.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _FLOAT_PREFIX.match(value)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if math.isnan(number):
        return None
    return number


def coerce_count(value: Any) -> Optional[int]:
    """Coerce a value to an integer count by truncation, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = _INT_PREFIX.match(value)
        return int(match.group(0)) if match else None
    return None


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


# =============================================================================
# Trigger Evaluation
# =============================================================================

def _compare(operator: ConditionalOperator, actual: float, expected: float) -> bool:
    if operator == ConditionalOperator.GT:
        return actual > expected
    if operator == ConditionalOperator.GTE:
        return actual >= expected
    if operator == ConditionalOperator.LT:
        return actual < expected
    if operator == ConditionalOperator.LTE:
        return actual <= expected
    return actual == expected


def _operator_triggers(conditional: OperatorConditional, answer: Any) -> bool:
    expected = conditional.value

    if isinstance(answer, list):
        # Only equality is meaningful against a multi-select answer
        if conditional.operator != ConditionalOperator.EQ:
            return False
        return stringify_answer(expected) in [stringify_answer(a) for a in answer]

    if conditional.operator == ConditionalOperator.EQ:
        return stringify_answer(answer) == stringify_answer(expected)

    actual_num = coerce_number(answer)
    expected_num = coerce_number(expected)
    if actual_num is None or expected_num is None:
        return False
    return _compare(conditional.operator, actual_num, expected_num)


def _legacy_triggers(conditional: LegacyStringConditional, answer: Any) -> bool:
    if isinstance(answer, list):
        return conditional.if_answer in [stringify_answer(a) for a in answer]
    return stringify_answer(answer) == conditional.if_answer


def should_trigger(conditional: Optional[Conditional], answer_value: Any) -> bool:
    """
    Whether a conditional's photo fields apply for the given answer.

    Args:
        conditional: The question's conditional rule, if any
        answer_value: The customer's current answer (None if unanswered)

    Returns:
        True when the rule fires. Malformed numeric input yields False.

    Raises:
        InvalidConditionalError: If the conditional is of an unknown kind
    """
    if conditional is None or _is_blank(answer_value):
        return False

    kind = getattr(conditional, "kind", None)
    match kind:
        case ConditionalKind.OPERATOR:
            return _operator_triggers(conditional, answer_value)
        case ConditionalKind.LEGACY:
            return _legacy_triggers(conditional, answer_value)
        case _:
            raise InvalidConditionalError(
                message=f"Unknown conditional kind: {kind!r}",
                details={"type": type(conditional).__name__},
            )


# =============================================================================
# Dynamic Count Mode
# =============================================================================

def dynamic_photo_count(
    conditional: Optional[Conditional],
    answer_value: Any,
    max_photos: int = MAX_DYNAMIC_PHOTOS,
) -> int:
    """
    Number of photo slots a numeric answer produces in dynamic-count mode.

    Returns 0 unless the conditional is an operator conditional with
    use_dynamic_count, the answer is a positive integer and the rule
    triggers. The result is capped at max_photos.
    """
    if not isinstance(conditional, OperatorConditional) or not conditional.use_dynamic_count:
        return 0

    count = coerce_count(answer_value)
    if count is None or count <= 0:
        return 0

    if not should_trigger(conditional, answer_value):
        return 0

    return min(count, max_photos)


def dynamic_field_id(category_id: str, index: int) -> str:
    """Field ID of the index-th (1-based) dynamic photo slot in a category."""
    return f"dynamic_photo_{category_id}_{index}"


def _slot_label(template_label: str, index: int) -> str:
    if "#" in template_label:
        return template_label.replace("#", str(index), 1)
    return f"{template_label} {index}"


def materialize_dynamic_fields(
    conditional: OperatorConditional,
    count: int,
    category_id: str,
) -> list[ConditionalPhotoField]:
    """
    Expand the conditional's template field into `count` concrete slots.

    Each slot copies instruction, required and capture_gps from the template,
    gets a label with '#' replaced by its 1-based index (or the index
    appended), and the ID dynamic_photo_{category_id}_{i}.
    """
    template = conditional.template_field or PhotoRequirement(
        field_id="", label=DEFAULT_PHOTO_LABEL
    )
    label = template.label or DEFAULT_PHOTO_LABEL

    return [
        PhotoRequirement(
            field_id=dynamic_field_id(category_id, i),
            label=_slot_label(label, i),
            instruction=template.instruction,
            required=template.required,
            capture_gps=template.capture_gps,
        )
        for i in range(1, count + 1)
    ]


# =============================================================================
# Question-Level Helpers
# =============================================================================

@dataclass
class TriggeredFields:
    """Photo fields a question's conditional currently requires."""
    question_id: str
    dynamic: bool
    fields: list[ConditionalPhotoField]


def triggered_fields(
    question: Question,
    category_id: str,
    answer_value: Any,
    max_photos: int = MAX_DYNAMIC_PHOTOS,
) -> TriggeredFields:
    """
    Resolve the concrete conditional photo fields for a question's answer.

    In dynamic mode with a positive count the materialized slots are
    returned; a dynamic rule that triggers with a zero count requires no
    photos. In static mode the rule's show_fields are returned as-is.
    """
    conditional = question.conditional
    if conditional is None or not should_trigger(conditional, answer_value):
        return TriggeredFields(question_id=question.id, dynamic=False, fields=[])

    if isinstance(conditional, OperatorConditional) and conditional.use_dynamic_count:
        count = dynamic_photo_count(conditional, answer_value, max_photos)
        return TriggeredFields(
            question_id=question.id,
            dynamic=True,
            fields=materialize_dynamic_fields(conditional, count, category_id),
        )

    return TriggeredFields(
        question_id=question.id,
        dynamic=False,
        fields=list(conditional.show_fields),
    )


def validate_conditional(question: Question) -> None:
    """
    Check a question's conditional is well formed.

    Dynamic-count mode requires an operator of > or >=, a numeric question
    and exactly one template field.

    Raises:
        InvalidConditionalError: If the rule cannot be evaluated as declared
    """
    conditional = question.conditional
    if conditional is None:
        return

    if not isinstance(conditional, (OperatorConditional, LegacyStringConditional)):
        raise InvalidConditionalError(
            message=f"Question '{question.id}' has an unknown conditional type",
            details={"question_id": question.id},
        )

    if isinstance(conditional, OperatorConditional) and conditional.use_dynamic_count:
        errors = []
        if conditional.operator not in DYNAMIC_OPERATORS:
            errors.append(
                f"dynamic count needs '>' or '>=', got '{conditional.operator.value}'"
            )
        if not question.is_numeric:
            errors.append(f"dynamic count needs a number question, got '{question.type.value}'")
        if len(conditional.show_fields) != 1:
            errors.append(
                f"dynamic count needs exactly one template field, got {len(conditional.show_fields)}"
            )
        if errors:
            raise InvalidConditionalError(
                message=f"Question '{question.id}': " + "; ".join(errors),
                details={"question_id": question.id, "errors": errors},
            )
