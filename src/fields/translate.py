"""
Translation hook.

Translation loading lives in the host. The engine only ever calls a
``translate(key, default, **params)`` callable; the default implementation
returns the default text with the parameters filled in.
"""
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Translator = Callable[..., str]


def default_translate(key: str, default: Optional[str] = None, **params: Any) -> str:
    """Return ``default`` (or the key itself) formatted with ``params``.

    Example:
        >>> default_translate("validation.required", "{field} is required", field="Title")
        'Title is required'
    """
    text = default if default is not None else key
    if not params:
        return text
    try:
        return text.format(**params)
    except (KeyError, IndexError, ValueError) as e:
        logger.debug(f"Cannot format translation {key!r}: {e}")
        return text


def label_for(translate: Translator, label: Optional[str], fallback: str) -> str:
    """Translate a label key, using the key itself as its default text."""
    if not label:
        return fallback
    return translate(label, label)
