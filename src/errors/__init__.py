"""
Error Taxonomy for the Event Promoter engine.

Every failure the engine can produce belongs to one of these classes. None of
them is allowed to escape a render pass: each operation catches the errors it
produces at its own boundary and turns them into an inline message or a
degraded value.

Classes:
    PromoterError: Base class for all engine errors
    ConfigurationError: Schema references something that cannot be resolved
    SchemaValidationError: A backend payload failed JSON Schema validation
    FieldValidationError: A field value broke one of its validation rules
    NetworkError: A backend request failed (transport, HTTP status, payload)
    ApplyFailure: The template apply service rejected the request
    NameResolutionFailure: Target display names could not be resolved
"""
from typing import Optional


class PromoterError(Exception):
    """Base class for engine errors."""
    pass


class ConfigurationError(PromoterError):
    """Raised when a schema references a field or endpoint that cannot be resolved.

    Rendered inline as a warning next to the affected control.
    """
    pass


class SchemaValidationError(ConfigurationError):
    """Raised when a backend payload does not match its JSON Schema.

    Example:
        >>> validate_platform_schema({"schema": []})
        SchemaValidationError: Schema validation failed: [] is not of type 'object' at path: schema
    """
    pass


class FieldValidationError(PromoterError):
    """A single field failed validation.

    Attributes:
        field_name: Name of the field
        message: User-facing message
    """

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


class NetworkError(PromoterError):
    """A backend request failed.

    Attributes:
        message: Server-provided error message when available
        status_code: HTTP status code (None for transport errors)
        url: Requested URL
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ApplyFailure(PromoterError):
    """The template apply operation was aborted; content is unchanged."""
    pass


class NameResolutionFailure(PromoterError):
    """Target names could not be resolved; raw identifiers are kept."""
    pass


__all__ = [
    "PromoterError",
    "ConfigurationError",
    "SchemaValidationError",
    "FieldValidationError",
    "NetworkError",
    "ApplyFailure",
    "NameResolutionFailure",
]
