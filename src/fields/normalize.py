"""
Value Normalization Adapter.

Persisted content arrives as JSON, so booleans show up as "true"/1, numbers
as strings, and option lists in whatever shape an endpoint chose to return.
All coercion of such values happens here, at the content-state and network
boundaries; renderer, controller and resolver code call these helpers
instead of coercing inline.
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Union

from schema.models import FieldOption

logger = logging.getLogger(__name__)

Number = Union[int, float]


def is_empty(value: Any) -> bool:
    """True for None, '', [] and {}. Zero and False are values."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def has_text(value: Any) -> bool:
    """True when ``value`` is not None and renders to a non-empty string.

    This is the emptiness test for template variables and ``_var_`` keys.
    """
    return value is not None and len(str(value)) > 0


def coerce_bool(value: Any) -> bool:
    """Interpret persisted boolean encodings.

    Example:
        >>> [coerce_bool(v) for v in (True, "true", 1, "1", "yes", 0, None)]
        [True, True, True, True, False, False, False]
    """
    if value is True:
        return True
    if isinstance(value, str):
        return value in ("true", "1")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 1
    return False


def coerce_number(raw: Any, default: Any = None) -> Optional[Number]:
    """Convert raw number input.

    Empty input yields ``default`` (None when the field has no default), so a
    blank field and a zero stay distinguishable. Unparseable input yields None.

    Example:
        >>> coerce_number("")
        >>> coerce_number("", default=5)
        5
        >>> coerce_number("0")
        0
        >>> coerce_number("2.5")
        2.5
    """
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return default
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return None if isinstance(raw, float) and math.isnan(raw) else raw
    try:
        text = str(raw).strip()
        try:
            return int(text)
        except ValueError:
            number = float(text)
            if math.isnan(number) or math.isinf(number):
                return None
            return number
    except (TypeError, ValueError):
        logger.debug(f"Cannot convert {raw!r} to a number")
        return None


def as_number(value: Any) -> Optional[Number]:
    """Numeric view of a stored value, None when empty or not numeric."""
    if is_empty(value):
        return None
    return coerce_number(value)


def coerce_list(value: Any) -> List[Any]:
    """Multiselect values: lists pass through, scalars are wrapped, empties become []."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, (tuple, set)):
        return list(value)
    if is_empty(value):
        return []
    return [value]


def coerce_scalar(value: Any, default: Any = None) -> Any:
    """Single-value controls: the value, else the field default, else ''."""
    if not is_empty(value):
        return value
    if default is not None:
        return default
    return ""


def coerce_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def normalize_option(item: Any) -> FieldOption:
    """Normalize one option into ``{label, value}``.

    Accepts ``{label, value}``, ``{name, id}`` and bare scalars. Both label
    and value are strings afterwards.

    Example:
        >>> normalize_option({"id": "a", "name": "Alice"})
        FieldOption(label='Alice', value='a', disabled=False)
        >>> normalize_option("news")
        FieldOption(label='news', value='news', disabled=False)
    """
    if isinstance(item, dict):
        label = _first_present(item, ("label", "name", "value"))
        value = _first_present(item, ("value", "id", "name"))
        return FieldOption(
            label="" if label is None else str(label),
            value="" if value is None else str(value),
            disabled=bool(item.get("disabled", False)),
        )
    text = "" if item is None else str(item)
    return FieldOption(label=text, value=text)


def normalize_options(items: Any) -> List[FieldOption]:
    """Normalize an option list; anything that is not a list yields []."""
    if not isinstance(items, list):
        if items is not None:
            logger.debug(f"Expected an option list, got {type(items).__name__}")
        return []
    return [normalize_option(item) for item in items]


def option_values(options: Iterable[FieldOption]) -> List[Any]:
    return [option.value for option in options]


def _first_present(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None
