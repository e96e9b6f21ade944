"""
JSON Schemas for backend payloads.

Two payloads cross the wire in a shape the engine depends on: the platform
schema object (editor blocks, settings, credentials) and the response of
the template apply service. Their Draft 7 schemas live next to this module
and are read once when the package is imported; a missing or corrupt
schema file makes the import fail.

Payload checks raise errors.SchemaValidationError naming the dotted path of
the first mismatch, so the caller can report which block or key is wrong.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any

from jsonschema import validate, ValidationError

from errors import SchemaValidationError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent


def _load_schema(schema_filename: str) -> Dict[str, Any]:
    """
    Read one schema file from SCHEMA_DIR.

    Raises:
        FileNotFoundError: The file is not shipped alongside this module
        json.JSONDecodeError: The file is not valid JSON

    Example:
        >>> _load_schema("apply_response_schema.json")["title"]
        'Template Apply Response'
    """
    schema_path = SCHEMA_DIR / schema_filename
    if not schema_path.is_file():
        raise FileNotFoundError(f"Schema file {schema_filename} missing from {SCHEMA_DIR}")

    with open(schema_path, "r") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise json.JSONDecodeError(
                f"Invalid JSON in schema file {schema_filename}: {e.msg}", e.doc, e.pos
            ) from e


# Schema object served by GET /platforms/:id/schema
PLATFORM_SCHEMA_SCHEMA = _load_schema("platform_schema.json")

# Response of POST /templates/:platform/:templateId/apply
APPLY_RESPONSE_SCHEMA = _load_schema("apply_response_schema.json")


def get_platform_schema_schema() -> Dict[str, Any]:
    """Platform schema JSON Schema (same object as PLATFORM_SCHEMA_SCHEMA)."""
    return PLATFORM_SCHEMA_SCHEMA


def get_apply_response_schema() -> Dict[str, Any]:
    """Get the apply response JSON schema."""
    return APPLY_RESPONSE_SCHEMA


def _validate(instance: Any, schema: Dict[str, Any], what: str) -> None:
    try:
        validate(instance=instance, schema=schema)
    except ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) or "<root>"
        logger.error(f"{what} failed validation at {path}: {e.message}")
        raise SchemaValidationError(
            f"Schema validation failed: {e.message} at path: {path}"
        ) from e


def validate_platform_schema(payload: Any) -> None:
    """
    Validate a platform schema payload.

    Args:
        payload: The ``schema`` object extracted from the schema endpoint response

    Raises:
        SchemaValidationError: If the payload does not match PLATFORM_SCHEMA_SCHEMA

    Example:
        >>> validate_platform_schema({"editor": {"blocks": []}})
        >>> validate_platform_schema({"editor": {"blocks": [{}]}})
        SchemaValidationError: Schema validation failed: 'type' is a required property at path: editor.blocks.0
    """
    _validate(payload, PLATFORM_SCHEMA_SCHEMA, "Platform schema")


def validate_apply_response(payload: Any) -> None:
    """
    Validate a template apply response.

    Raises:
        SchemaValidationError: If the payload does not match APPLY_RESPONSE_SCHEMA
    """
    _validate(payload, APPLY_RESPONSE_SCHEMA, "Apply response")
