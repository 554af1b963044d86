"""
VeriFlow Template Pack Loader

Loads and validates verification templates from YAML or JSON files.

Converts Pydantic schema models to VeriFlow domain models.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..engine.conditional_evaluator import validate_conditional
from ..exceptions import InvalidConditionalError, TemplateLoadError, TemplateValidationError
from ..models import (
    Category,
    Conditional,
    ConditionalOperator,
    LegacyStringConditional,
    OperatorConditional,
    PhotoRequirement,
    PolicyType,
    Question,
    QuestionType,
    Template,
)
from .schema import (
    SCHEMA_VERSION,
    CategorySchema,
    ConditionalSchema,
    PhotoFieldSchema,
    QuestionSchema,
    TemplatePackSchema,
    check_schema_version,
    validate_template_pack,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Reference Integrity Validation
# =============================================================================

def validate_reference_integrity(template: Template, path: str = "") -> None:
    """
    Validate internal references are consistent.

    Catches:
    - Duplicate category IDs
    - Duplicate question IDs or photo field IDs within a category
    - Malformed dynamic-count conditionals
    - More than one dynamic-count question per category (their slots
      would share field IDs)

    Raises:
        ValueError: If reference integrity errors are found
    """
    errors = []

    seen_categories: set[str] = set()
    for category in template.categories:
        if category.id in seen_categories:
            errors.append(f"Duplicate category ID: '{category.id}'")
        seen_categories.add(category.id)

        seen_questions: set[str] = set()
        for question in category.questions:
            if question.id in seen_questions:
                errors.append(f"Duplicate question ID in '{category.id}': '{question.id}'")
            seen_questions.add(question.id)

        seen_fields: set[str] = set()
        photo_fields = list(category.photo_requirements)
        dynamic_questions = []
        for question in category.questions:
            conditional = question.conditional
            if conditional is None:
                continue
            try:
                validate_conditional(question)
            except InvalidConditionalError as e:
                errors.append(f"Category '{category.id}': {e.message}")
            if isinstance(conditional, OperatorConditional) and conditional.use_dynamic_count:
                dynamic_questions.append(question.id)
            else:
                photo_fields.extend(conditional.show_fields)

        for photo in photo_fields:
            if photo.field_id in seen_fields:
                errors.append(f"Duplicate photo field ID in '{category.id}': '{photo.field_id}'")
            seen_fields.add(photo.field_id)
            if photo.field_id.startswith("dynamic_photo_"):
                errors.append(
                    f"Photo field ID '{photo.field_id}' in '{category.id}' uses the reserved "
                    "'dynamic_photo_' prefix"
                )

        if len(dynamic_questions) > 1:
            errors.append(
                f"Category '{category.id}' has more than one dynamic-count question: "
                + ", ".join(dynamic_questions)
            )

    if errors:
        path_str = f" in {path}" if path else ""
        raise ValueError(
            f"Reference integrity errors{path_str}:\n" +
            "\n".join(f"  - {e}" for e in errors)
        )


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_photo_field(schema: PhotoFieldSchema) -> PhotoRequirement:
    return PhotoRequirement(
        field_id=schema.field_id,
        label=schema.label,
        instruction=schema.instruction,
        required=schema.required,
        capture_gps=schema.capture_gps,
    )


def _convert_conditional(schema: ConditionalSchema) -> Conditional:
    """Convert ConditionalSchema to one of the two conditional variants."""
    show_fields = [_convert_photo_field(f) for f in schema.show_fields]
    if schema.kind == "legacy":
        return LegacyStringConditional(if_answer=schema.if_answer, show_fields=show_fields)
    return OperatorConditional(
        operator=ConditionalOperator(schema.operator),
        value=schema.value,
        show_fields=show_fields,
        use_dynamic_count=schema.use_dynamic_count,
    )


def _convert_question(schema: QuestionSchema) -> Question:
    return Question(
        id=schema.id,
        text=schema.text,
        type=QuestionType(schema.type),
        options=list(schema.options),
        required=schema.required,
        conditional=_convert_conditional(schema.conditional) if schema.conditional else None,
    )


def _convert_category(schema: CategorySchema) -> Category:
    return Category(
        id=schema.id,
        title=schema.title,
        order=schema.order,
        description=schema.description,
        is_identity=schema.is_identity,
        photo_requirements=[_convert_photo_field(p) for p in schema.photo_requirements],
        questions=[_convert_question(q) for q in schema.questions],
    )


def _convert_template_pack(schema: TemplatePackSchema) -> Template:
    """Convert TemplatePackSchema to Template model."""
    return Template(
        id=schema.id,
        name=schema.name,
        policy_type=PolicyType(schema.policy_type),
        version=schema.version,
        description=schema.description,
        consent_text=schema.consent_text,
        categories=[_convert_category(c) for c in schema.categories],
    )


# =============================================================================
# Template Pack Loader
# =============================================================================

class TemplatePackLoader:
    """
    Loads template packs from YAML or JSON files.

    Usage:
        loader = TemplatePackLoader()
        template = loader.load("templates/home_insurance.yaml")

        # Load a whole directory
        loader.load_directory("templates")
        home = loader.for_policy_type(PolicyType.HOME_INSURANCE)
    """

    def __init__(self, strict_version: bool = True):
        self.strict_version = strict_version
        self._templates: dict[str, Template] = {}

    def load(self, path: Union[str, Path]) -> Template:
        """
        Load a template pack from a file.

        Raises:
            TemplateLoadError: If the file cannot be read
            TemplateValidationError: If schema or reference validation fails
        """
        path = Path(path)

        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise TemplateLoadError(
                message=f"Failed to load template pack: {e}",
                details={"path": str(path), "error": str(e)},
            )

        return self._register(self.load_dict(data, str(path)))

    def load_dict(self, data: Any, source: str = "<dict>") -> Template:
        """Validate and convert an already-parsed template pack."""
        if not isinstance(data, dict):
            raise TemplateLoadError(
                message="Template pack must be a mapping",
                details={"path": source},
            )

        if self.strict_version and not check_schema_version(data):
            pack_version = data.get("schema_version", "unknown")
            raise TemplateValidationError(
                message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
                details={"pack_version": pack_version, "expected_version": SCHEMA_VERSION},
            )

        try:
            schema = validate_template_pack(data)
        except ValidationError as e:
            raise TemplateValidationError(
                message=f"Template pack validation failed: {e.error_count()} errors",
                details={"errors": e.errors(include_url=False), "path": source},
            )

        template = _convert_template_pack(schema)

        try:
            validate_reference_integrity(template, source)
        except ValueError as e:
            raise TemplateValidationError(
                message="Reference integrity validation failed",
                details={"errors": str(e), "path": source},
            )

        return template

    def load_directory(self, directory: Union[str, Path]) -> int:
        """
        Load every .yaml/.yml/.json pack in a directory.

        Packs that fail to load are logged and skipped.

        Returns:
            Number of templates loaded
        """
        directory = Path(directory)
        loaded = 0
        if not directory.is_dir():
            logger.warning("Template directory not found: %s", directory)
            return 0
        for path in sorted(directory.iterdir()):
            if path.suffix.lower() not in {".yaml", ".yml", ".json"}:
                continue
            try:
                template = self.load(path)
            except (TemplateLoadError, TemplateValidationError) as e:
                logger.error("Skipping template %s: %s", path.name, e, extra={"error_code": e.code})
                continue
            logger.info("Loaded template %s", template.id)
            loaded += 1
        return loaded

    def _register(self, template: Template) -> Template:
        self._templates[template.id] = template
        return template

    def _load_file(self, path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)

    def get_template(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def for_policy_type(self, policy_type: PolicyType) -> Optional[Template]:
        """First loaded template (by ID) for a policy type."""
        for template_id in sorted(self._templates):
            template = self._templates[template_id]
            if template.policy_type == policy_type:
                return template
        return None

    def list_templates(self) -> list[str]:
        return sorted(self._templates)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_template_pack(path: Union[str, Path]) -> Template:
    """Load a template pack from a file with a temporary loader."""
    return TemplatePackLoader().load(path)


def load_template_pack_from_string(content: str, format: str = "yaml") -> Template:
    """Load a template pack from a YAML or JSON string."""
    if format.lower() == "json":
        data = json.loads(content)
    else:
        data = yaml.safe_load(content)
    return TemplatePackLoader().load_dict(data, "<string>")
