"""
Variable Alias Resolver.

A template declares its placeholder variables as a list of definitions.
Several definitions can share one canonical name, and each may declare
aliases; all names of a canonical variable resolve to one value.

Resolution order for a canonical variable:
    1. any non-empty ``_var_<alias>`` override in the content
    2. the host fallback map value for any alias
    3. the fallback map value for the canonical name
    4. empty string

Writing a value writes the same ``_var_<alias>`` key for every alias.

Example:
    >>> resolver = VariableAliasResolver([
    ...     TemplateDefinition(name="eventTitle", canonical_name="title"),
    ...     TemplateDefinition(name="title"),
    ... ], fallback={"title": "Summer Gig"})
    >>> [v.aliases for v in resolver.variables]
    [['eventTitle', 'title']]
    >>> content = resolver.write({}, "title", "Winter Gig")
    >>> content
    {'_var_eventTitle': 'Winter Gig', '_var_title': 'Winter Gig'}
"""
import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, Iterable, List, Optional

from fields.normalize import coerce_bool, has_text
from schema.content import DISABLED_PREFIX, VAR_PREFIX, disabled_key, var_key, with_aliases
from schema.models import TemplateDefinition

logger = logging.getLogger(__name__)

AUTO_FILL_SOURCES = ("parsed", "parsed_optional")

VARIABLE_PATTERN = re.compile(r"\{([a-zA-Z0-9_]+)\}")

# Parsed event field -> variable names it populates
PARSED_FIELD_ALIASES = {
    "title": ("title", "eventTitle", "name"),
    "date": ("date", "eventDate"),
    "time": ("time", "eventTime"),
    "venue": ("venue", "location"),
    "city": ("city",),
    "genre": ("genre", "category"),
    "price": ("price", "ticketPrice"),
    "organizer": ("organizer", "organiser"),
    "website": ("website", "url", "link"),
    "lineup": ("lineup", "performers", "artists"),
    "description": ("description", "desc", "text"),
}


@dataclass
class CanonicalVariable:
    """All definitions sharing one canonical name, collapsed.

    Metadata comes from the first definition seen for the canonical name;
    ``aliases`` is the ordered union of every definition's name and aliases.
    """
    canonical_name: str
    aliases: List[str] = dataclass_field(default_factory=list)
    label: Optional[str] = None
    type: Optional[str] = None
    source: Optional[str] = None
    parsed_field: Optional[str] = None
    editable: Optional[bool] = None
    show_when_empty: Optional[bool] = None
    icon: Optional[str] = None

    def add_alias(self, alias: str) -> None:
        if alias and alias not in self.aliases:
            self.aliases.append(alias)


@dataclass
class ResolvedVariable:
    """Effective state of one canonical variable for a content object."""
    canonical_name: str
    aliases: List[str]
    value: Any
    label: str
    type: Optional[str] = None
    icon: Optional[str] = None
    is_auto_filled: bool = False
    is_disabled: bool = False
    can_edit: bool = True
    visible: bool = True

    @property
    def is_image(self) -> bool:
        return self.type == "image"


def group_definitions(definitions: Iterable[TemplateDefinition]) -> List[CanonicalVariable]:
    """Collapse definitions onto their canonical names, keeping first-seen order."""
    grouped: Dict[str, CanonicalVariable] = {}
    for definition in definitions:
        canonical = definition.canonical
        if canonical not in grouped:
            grouped[canonical] = CanonicalVariable(
                canonical_name=canonical,
                label=definition.label,
                type=definition.type,
                source=definition.source,
                parsed_field=definition.parsed_field,
                editable=definition.editable,
                show_when_empty=definition.show_when_empty,
                icon=definition.icon,
            )
        entry = grouped[canonical]
        entry.add_alias(definition.name)
        for alias in definition.aliases:
            entry.add_alias(alias)
    return list(grouped.values())


class VariableAliasResolver:
    """
    Resolves template variables against content, fallbacks and parsed data.

    Attributes:
        variables: Canonical variables in definition order
        fallback: Host-supplied fallback map (see build_template_variables)
        parsed_data: Parsed source data, used for the auto-filled flag
        hide_auto_filled: Omit auto-filled variables from the display list
    """

    def __init__(
        self,
        definitions: Iterable[TemplateDefinition],
        fallback: Optional[Dict[str, Any]] = None,
        parsed_data: Optional[Dict[str, Any]] = None,
        hide_auto_filled: bool = True
    ):
        self.variables = group_definitions(definitions)
        self.fallback = fallback or {}
        self.parsed_data = parsed_data or {}
        self.hide_auto_filled = hide_auto_filled
        self._by_name: Dict[str, CanonicalVariable] = {}
        for variable in self.variables:
            self._by_name.setdefault(variable.canonical_name, variable)
            for alias in variable.aliases:
                self._by_name.setdefault(alias, variable)

    def find(self, name: str) -> Optional[CanonicalVariable]:
        """Canonical variable for a canonical name or any alias."""
        return self._by_name.get(name)

    def value_of(self, variable: CanonicalVariable, content: Dict[str, Any]) -> Any:
        content = content or {}
        for alias in variable.aliases:
            value = content.get(var_key(alias))
            if has_text(value):
                return value
        for alias in variable.aliases:
            value = self.fallback.get(alias)
            if has_text(value):
                return value
        value = self.fallback.get(variable.canonical_name)
        return value if has_text(value) else ""

    def is_auto_filled(self, variable: CanonicalVariable) -> bool:
        if variable.source not in AUTO_FILL_SOURCES:
            return False
        return self.parsed_data.get(variable.parsed_field or variable.canonical_name) is not None

    def is_disabled(self, variable: CanonicalVariable, content: Dict[str, Any]) -> bool:
        content = content or {}
        return any(coerce_bool(content.get(disabled_key(alias))) for alias in variable.aliases)

    def resolve_variable(self, variable: CanonicalVariable, content: Dict[str, Any]) -> ResolvedVariable:
        value = self.value_of(variable, content)
        auto_filled = self.is_auto_filled(variable)
        disabled = self.is_disabled(variable, content)

        visible = True
        if self.hide_auto_filled and auto_filled and not disabled:
            visible = False
        if variable.show_when_empty is False and not has_text(value):
            visible = False

        return ResolvedVariable(
            canonical_name=variable.canonical_name,
            aliases=list(variable.aliases),
            value=value,
            label=variable.label or variable.canonical_name,
            type=variable.type,
            icon=variable.icon,
            is_auto_filled=auto_filled,
            is_disabled=disabled,
            can_edit=variable.editable is not False and not disabled,
            visible=visible,
        )

    def resolve(self, content: Dict[str, Any]) -> List[ResolvedVariable]:
        """Resolve every canonical variable, including hidden ones."""
        return [self.resolve_variable(variable, content) for variable in self.variables]

    def displayed(self, content: Dict[str, Any]) -> List[ResolvedVariable]:
        """Variables to offer for editing."""
        return [resolved for resolved in self.resolve(content) if resolved.visible]

    def effective_values(self, content: Dict[str, Any]) -> Dict[str, Any]:
        """Map every canonical name and alias to its effective value."""
        values: Dict[str, Any] = {}
        for variable in self.variables:
            value = self.value_of(variable, content)
            values[variable.canonical_name] = value
            for alias in variable.aliases:
                values[alias] = value
        return values

    def write(self, content: Dict[str, Any], name: str, value: Any) -> Dict[str, Any]:
        """
        Write a user edit for a variable.

        The value goes to ``_var_<alias>`` for every alias of the canonical
        variable. Unknown names are written as their own single alias.
        Disabled or non-editable variables leave the content unchanged.

        Returns:
            New content mapping
        """
        variable = self.find(name)
        if variable is None:
            logger.debug(f"Writing override for undeclared variable '{name}'")
            return with_aliases(content, VAR_PREFIX, [name], value)

        resolved = self.resolve_variable(variable, content)
        if not resolved.can_edit:
            logger.info(f"Variable '{variable.canonical_name}' is not editable; ignoring write")
            return dict(content or {})
        return with_aliases(content, VAR_PREFIX, variable.aliases, value)

    def set_disabled(self, content: Dict[str, Any], name: str, disabled: bool) -> Dict[str, Any]:
        """Toggle the lock flag on every alias of a variable."""
        variable = self.find(name)
        aliases = variable.aliases if variable is not None else [name]
        return set_disabled(content, aliases, disabled)


def set_disabled(content: Dict[str, Any], aliases: Iterable[str], disabled: bool) -> Dict[str, Any]:
    return with_aliases(content, DISABLED_PREFIX, aliases, bool(disabled))


def file_url(url: str, base_url: str) -> str:
    if url.startswith("http"):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def build_template_variables(
    parsed_data: Optional[Dict[str, Any]],
    uploaded_file_refs: Optional[List[Dict[str, Any]]] = None,
    file_base_url: str = "http://localhost:4000"
) -> Dict[str, Any]:
    """
    Build the fallback variable map from parsed event data and uploads.

    Each parsed field populates its well-known aliases (title also fills
    eventTitle and name, ...). Lineup lists are joined with ", ". Image
    uploads fill image1/img1/image for the first image and imageN/imgN
    after that; relative URLs are prefixed with ``file_base_url``.

    Example:
        >>> build_template_variables({"title": "Gig", "lineup": ["A", "B"]})["artists"]
        'A, B'
    """
    variables: Dict[str, Any] = {}

    for parsed_field, aliases in PARSED_FIELD_ALIASES.items():
        value = (parsed_data or {}).get(parsed_field)
        if not value:
            continue
        if parsed_field == "lineup" and isinstance(value, list):
            value = ", ".join(str(item) for item in value)
        for alias in aliases:
            variables[alias] = value

    images = [
        ref for ref in (uploaded_file_refs or [])
        if isinstance(ref, dict) and str(ref.get("type") or "").startswith("image/") and ref.get("url")
    ]
    for index, ref in enumerate(images, start=1):
        url = file_url(str(ref["url"]), file_base_url)
        if index == 1:
            variables["image1"] = url
            variables["img1"] = url
            variables["image"] = url
        else:
            variables[f"image{index}"] = url
            variables[f"img{index}"] = url

    return variables


def replace_template_variables(text: Any, variables: Dict[str, Any]) -> Any:
    """
    Replace ``{name}`` placeholders with variable values.

    Non-string input is returned unchanged; list values are joined with ", ".

    Example:
        >>> replace_template_variables("{title} in {city}", {"title": "Gig", "city": "Berlin"})
        'Gig in Berlin'
    """
    if not isinstance(text, str) or not text:
        return text

    def substitute(match):
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return "" if value is None else str(value)

    return VARIABLE_PATTERN.sub(substitute, text)


def find_unfulfilled_variables(text: Any, variables: Optional[Dict[str, Any]] = None) -> List[str]:
    """Placeholder names in ``text`` without a non-empty value, in order of appearance."""
    if not isinstance(text, str) or not text:
        return []
    variables = variables or {}
    missing: List[str] = []
    for name in VARIABLE_PATTERN.findall(text):
        if not variables.get(name) and name not in missing:
            missing.append(name)
    return missing
