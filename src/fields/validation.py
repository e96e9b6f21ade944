"""
Validation Engine.

Evaluates a field's rule list against a candidate value and yields a single
user-facing message or None. Rules run in declaration order and the first
failing rule wins.

Supported rule kinds:
    required, minLength, maxLength, min, max, pattern, url, custom

A rule without its own message falls back to a templated default built from
the field label and the rule parameter, looked up through the translator
under the ``validation.*`` keys.

Example:
    >>> field = SchemaField.from_dict({
    ...     "name": "title", "label": "Title", "required": True,
    ...     "validation": [{"type": "maxLength", "value": 5}],
    ... })
    >>> validate_field(field, "")
    'Title is required'
    >>> validate_field(field, "Summer Festival")
    'Title must be at most 5 characters'
    >>> validate_field(field, "Gig") is None
    True
"""
import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, List, Optional

from errors import FieldValidationError
from schema.models import SchemaField, ValidationRule
from .normalize import as_number, is_empty
from .translate import Translator, default_translate, label_for

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://.+")

# Translation key and default text per message kind
DEFAULT_MESSAGES = {
    "required": ("validation.required", "{field} is required"),
    "minLength": ("validation.minLength", "{field} must be at least {value} characters"),
    "maxLength": ("validation.maxLength", "{field} must be at most {value} characters"),
    "min": ("validation.min", "{field} must be at least {value}"),
    "max": ("validation.max", "{field} must be at most {value}"),
    "pattern": ("validation.invalidFormat", "{field} format is invalid"),
    "url": ("validation.invalidUrl", "{field} must be a valid URL"),
    "custom": ("validation.invalid", "{field} is invalid"),
}


@dataclass
class ValidationResult:
    """Outcome of validating a whole field list."""
    errors: Dict[str, str] = dataclass_field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise FieldValidationError for the first failing field, if any."""
        for name, message in self.errors.items():
            raise FieldValidationError(name, message)


def _message(rule: ValidationRule, kind: str, label: str, translate: Translator) -> str:
    if rule.message:
        return rule.message
    key, default = DEFAULT_MESSAGES[kind]
    return translate(key, default, field=label, value=rule.value)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_rule(field: SchemaField, rule: ValidationRule, value: Any, label: str,
                translate: Translator) -> None:
    """Raise FieldValidationError if ``value`` breaks ``rule``."""
    kind = rule.type

    if kind == "required":
        if is_empty(value):
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind == "minLength":
        if isinstance(value, str) and _is_int(rule.value) and len(value) < rule.value:
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind == "maxLength":
        if isinstance(value, str) and _is_int(rule.value) and len(value) > rule.value:
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind in ("min", "max"):
        number = as_number(value)
        if number is None or not _is_number(rule.value):
            return
        if (kind == "min" and number < rule.value) or (kind == "max" and number > rule.value):
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind == "pattern":
        if not isinstance(value, str) or value == "" or rule.value is None:
            return
        try:
            matched = re.search(str(rule.value), value)
        except re.error as e:
            logger.warning(f"Ignoring invalid pattern {rule.value!r} on field '{field.name}': {e}")
            return
        if not matched:
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind == "url":
        if isinstance(value, str) and value and not URL_PATTERN.match(value):
            raise FieldValidationError(field.name, _message(rule, kind, label, translate))

    elif kind == "custom":
        if rule.validator is None:
            return
        try:
            result = rule.validator(value)
        except Exception as e:
            logger.error(f"Custom validator for field '{field.name}' raised: {e}")
            result = False
        if result is not True:
            message = result if isinstance(result, str) and result else _message(rule, kind, label, translate)
            raise FieldValidationError(field.name, message)

    else:
        logger.debug(f"Unknown validation rule '{kind}' on field '{field.name}'")


def validate_field(field: SchemaField, value: Any, translate: Optional[Translator] = None) -> Optional[str]:
    """Validate one value against a field's rules.

    A field flagged ``required`` without an explicit ``required`` rule gets
    an implicit required check before its declared rules.

    Args:
        field: Field definition
        value: Candidate value
        translate: Optional translator for default messages

    Returns:
        The message of the first failing rule, or None when valid
    """
    translate = translate or default_translate
    label = label_for(translate, field.label, field.name)

    rules: List[ValidationRule] = list(field.validation)
    if field.required and not any(rule.type == "required" for rule in rules):
        rules.insert(0, ValidationRule(type="required"))

    try:
        for rule in rules:
            _check_rule(field, rule, value, label, translate)
    except FieldValidationError as e:
        logger.debug(f"Validation failed for '{field.name}': {e.message}")
        return e.message
    return None


def validate_fields(fields: List[SchemaField], values: Dict[str, Any],
                    translate: Optional[Translator] = None) -> ValidationResult:
    """Validate every visible field of a field list.

    Fields hidden through ``visibleWhen`` are not validated.

    Example:
        >>> result = validate_fields(fields, {"price": ""})
        >>> result.errors
        {'title': 'Title is required'}
    """
    result = ValidationResult()
    for field in fields:
        if field.visible_when is not None and not field.visible_when.is_satisfied(values):
            continue
        message = validate_field(field, values.get(field.name), translate)
        if message:
            result.errors[field.name] = message
    return result
