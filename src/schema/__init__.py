"""Schema Package - Backend Payload Schemas and the Schema Model.

This package provides two things:

JSON Schemas (loaded once at import time):
    PLATFORM_SCHEMA_SCHEMA: validates the schema object served by
        GET /platforms/:id/schema (editor blocks, settings, credentials).
    APPLY_RESPONSE_SCHEMA: validates the template apply service response.

Schema Model (schema.models):
    Passive dataclasses for fields, groups, composite blocks, editor blocks,
    templates and applied-template audit entries.

Usage Patterns:
    from schema import validate_platform_schema, PlatformSchema
    validate_platform_schema(payload)
    platform_schema = PlatformSchema.from_dict("email", payload)

Error Handling:
    If schema files are missing or contain invalid JSON, the import fails
    with a clear error message pointing to the expected file location.
    Payloads that do not match raise errors.SchemaValidationError.
"""
from .schema import (
    PLATFORM_SCHEMA_SCHEMA,
    APPLY_RESPONSE_SCHEMA,
    get_platform_schema_schema,
    get_apply_response_schema,
    validate_platform_schema,
    validate_apply_response,
)
from .models import (
    FieldType,
    OPTION_FIELD_TYPES,
    ValidationRule,
    OptionsSource,
    VisibleWhen,
    FieldUI,
    FieldOption,
    SchemaField,
    FieldGroup,
    CompositeSubField,
    CompositeBlockSchema,
    EditorBlock,
    PlatformSchema,
    TemplateDefinition,
    TemplateRecord,
    TargetsConfig,
    AppliedTemplateEntry,
)

__all__ = [
    "PLATFORM_SCHEMA_SCHEMA",
    "APPLY_RESPONSE_SCHEMA",
    "get_platform_schema_schema",
    "get_apply_response_schema",
    "validate_platform_schema",
    "validate_apply_response",
    "FieldType",
    "OPTION_FIELD_TYPES",
    "ValidationRule",
    "OptionsSource",
    "VisibleWhen",
    "FieldUI",
    "FieldOption",
    "SchemaField",
    "FieldGroup",
    "CompositeSubField",
    "CompositeBlockSchema",
    "EditorBlock",
    "PlatformSchema",
    "TemplateDefinition",
    "TemplateRecord",
    "TargetsConfig",
    "AppliedTemplateEntry",
]
