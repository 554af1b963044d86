"""
VeriFlow Template Packs

Schema validation and loading for verification templates.

Template packs are YAML or JSON files that define the categories,
questions, photo requirements and conditional rules a customer works
through for one policy type.

Usage:
    from veriflow.packs import load_template_pack, TemplatePackLoader

    template = load_template_pack("templates/home_insurance.yaml")

    loader = TemplatePackLoader()
    loader.load_directory("templates")
"""
from __future__ import annotations

from .loader import (
    TemplatePackLoader,
    load_template_pack,
    load_template_pack_from_string,
    validate_reference_integrity,
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


__all__ = [
    "SCHEMA_VERSION",
    "CategorySchema",
    "ConditionalSchema",
    "PhotoFieldSchema",
    "QuestionSchema",
    "TemplatePackLoader",
    "TemplatePackSchema",
    "check_schema_version",
    "load_template_pack",
    "load_template_pack_from_string",
    "validate_reference_integrity",
    "validate_template_pack",
]
