"""
Content State helpers.

Content is a flat mapping from field name to value plus three reserved
families of keys:

    _var_<alias>       explicit per-alias template variable override
    _disabled_<alias>  lock flag for a template variable
    _templates         ordered list of applied-template audit entries

Content objects are never mutated here; every helper that changes content
returns a new mapping.
"""
from typing import Any, Dict, Iterable, List, Set

from fields.normalize import coerce_bool, has_text

from .models import AppliedTemplateEntry

VAR_PREFIX = "_var_"
DISABLED_PREFIX = "_disabled_"
TEMPLATES_KEY = "_templates"
TEMPLATE_ID_KEY = "_templateId"


def var_key(alias: str) -> str:
    return f"{VAR_PREFIX}{alias}"


def disabled_key(alias: str) -> str:
    return f"{DISABLED_PREFIX}{alias}"


def persistent_variables(content: Dict[str, Any]) -> Set[str]:
    """Aliases whose ``_var_`` key holds a non-empty value.

    The set is derived from content alone, so an override stays persistent
    after the template that introduced its alias is removed or replaced.

    Example:
        >>> sorted(persistent_variables({"_var_title": "Gig", "_var_city": "", "text": "x"}))
        ['title']
    """
    return {
        key[len(VAR_PREFIX):]
        for key, value in (content or {}).items()
        if key.startswith(VAR_PREFIX) and has_text(value)
    }


def disabled_variables(content: Dict[str, Any]) -> Set[str]:
    """Aliases flagged through a true ``_disabled_`` key."""
    return {
        key[len(DISABLED_PREFIX):]
        for key, value in (content or {}).items()
        if key.startswith(DISABLED_PREFIX) and coerce_bool(value)
    }


def applied_templates(content: Dict[str, Any]) -> List[AppliedTemplateEntry]:
    entries = (content or {}).get(TEMPLATES_KEY)
    if not isinstance(entries, list):
        return []
    return [AppliedTemplateEntry.from_dict(entry) for entry in entries if isinstance(entry, dict)]


def stored_template_entries(content: Dict[str, Any]) -> List[Any]:
    """The ``_templates`` list exactly as persisted, as a new list."""
    entries = (content or {}).get(TEMPLATES_KEY)
    return list(entries) if isinstance(entries, list) else []


def with_updates(content: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new content mapping with ``updates`` applied."""
    return {**(content or {}), **updates}


def with_aliases(content: Dict[str, Any], prefix: str, aliases: Iterable[str], value: Any) -> Dict[str, Any]:
    """Set ``prefix + alias`` to ``value`` for every alias."""
    return with_updates(content, {f"{prefix}{alias}": value for alias in aliases})


def text_length(content: Dict[str, Any]) -> int:
    """Total length of all string values."""
    return sum(len(value) for value in (content or {}).values() if isinstance(value, str))
