"""
VeriFlow Template Pack Schemas

Pydantic models for validating template pack YAML/JSON files.

These schemas define the structure of verification templates that can be
loaded at runtime. They map to the domain models in veriflow.models.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders should check version compatibility

Conditionals may be written either with an explicit `kind` or in the
short form: a block with `operator` is an operator conditional, a block
with only `if_answer` is a legacy string conditional.
"""
from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

PolicyTypeValue = Literal["home_insurance", "auto_insurance", "credit_card"]

QuestionTypeValue = Literal["text", "number", "single_select", "multi_select", "yes_no"]

ConditionalOperatorValue = Literal[">", "<", "=", ">=", "<="]

ConditionalKindValue = Literal["operator", "legacy"]


# =============================================================================
# Base Schemas
# =============================================================================

class PhotoFieldSchema(BaseModel):
    """Schema for a photo requirement or conditional photo field."""
    field_id: str = Field(..., min_length=1, description="Unique within the category")
    label: str = Field(..., min_length=1, description="Shown to the customer; '#' is an index placeholder")
    instruction: str = Field(default="Upload the required photo")
    required: bool = Field(default=True)
    capture_gps: bool = Field(default=False)

    model_config = {"extra": "forbid"}


class ConditionalSchema(BaseModel):
    """
    Schema for a question's conditional rule.

    Operator form uses operator/value; legacy form uses if_answer.
    """
    kind: Optional[ConditionalKindValue] = None
    operator: Optional[ConditionalOperatorValue] = None
    value: Optional[Union[float, int, str, bool]] = None
    if_answer: Optional[str] = None
    show_fields: list[PhotoFieldSchema] = Field(default_factory=list)
    use_dynamic_count: bool = False

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def resolve_kind(self) -> "ConditionalSchema":
        """Infer the variant when omitted and check its fields are present."""
        if self.kind is None:
            if self.operator is not None:
                self.kind = "operator"
            elif self.if_answer is not None:
                self.kind = "legacy"
            else:
                raise ValueError("Conditional needs 'operator' or 'if_answer'")

        if self.kind == "operator":
            if self.operator is None or self.value is None:
                raise ValueError("Operator conditional requires 'operator' and 'value'")
            if self.if_answer is not None:
                raise ValueError("Operator conditional cannot also set 'if_answer'")
        else:
            if self.if_answer is None:
                raise ValueError("Legacy conditional requires 'if_answer'")
            if self.use_dynamic_count:
                raise ValueError("Legacy conditional cannot use dynamic count")
        return self


class QuestionSchema(BaseModel):
    """Schema for a questionnaire item."""
    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    type: QuestionTypeValue = "text"
    options: list[str] = Field(default_factory=list)
    required: bool = False
    conditional: Optional[ConditionalSchema] = None

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_options(self) -> "QuestionSchema":
        if self.type in {"single_select", "multi_select"} and not self.options:
            raise ValueError(f"Question '{self.id}' of type {self.type} needs options")
        return self


class CategorySchema(BaseModel):
    """Schema for a questionnaire section."""
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    order: int = 0
    description: str = ""
    is_identity: bool = False
    photo_requirements: list[PhotoFieldSchema] = Field(default_factory=list)
    questions: list[QuestionSchema] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Template Pack Schema
# =============================================================================

class TemplatePackSchema(BaseModel):
    """Root schema for a template pack file."""
    schema_version: str = SCHEMA_VERSION
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    policy_type: PolicyTypeValue
    version: str = "1.0.0"
    description: str = ""
    consent_text: str = ""
    categories: list[CategorySchema] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Template IDs are used in URLs; keep them whitespace-free."""
        if any(ch.isspace() for ch in v):
            raise ValueError("Template id must not contain whitespace")
        return v

    model_config = {
        "extra": "forbid",  # Reject unknown fields
    }


# =============================================================================
# Validation Functions
# =============================================================================

def validate_template_pack(data: dict[str, Any]) -> TemplatePackSchema:
    """
    Validate a template pack dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return TemplatePackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """Check the pack's major schema version matches ours."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
