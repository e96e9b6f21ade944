"""
Fields package: normalization, validation and rendering of schema fields.

Modules:
    normalize: Coercion of persisted values and option shapes
    translate: Default translation hook
    validation: Validation Engine (validate_field, validate_fields)
    renderer: Field Renderer (render_field, render_schema)
    target_list: Target-list sub-renderer
"""
from .normalize import (
    is_empty,
    has_text,
    coerce_bool,
    coerce_number,
    coerce_list,
    coerce_scalar,
    coerce_mapping,
    normalize_option,
    normalize_options,
)
from .translate import default_translate
from .validation import ValidationResult, validate_field, validate_fields
from .renderer import (
    ControlDescriptor,
    RenderContext,
    RenderedGroup,
    render_field,
    render_schema,
    sort_fields,
)
from .target_list import TargetListView

__all__ = [
    "is_empty",
    "has_text",
    "coerce_bool",
    "coerce_number",
    "coerce_list",
    "coerce_scalar",
    "coerce_mapping",
    "normalize_option",
    "normalize_options",
    "default_translate",
    "ValidationResult",
    "validate_field",
    "validate_fields",
    "ControlDescriptor",
    "RenderContext",
    "RenderedGroup",
    "render_field",
    "render_schema",
    "sort_fields",
    "TargetListView",
]
