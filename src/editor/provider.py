"""
Data provider capability.

The editor never reads ambient host state. Parsed source data, uploaded file
references and the user locale are supplied through a DataProvider passed to
the editor at construction time.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from config import DEFAULT_LOCALE, get_valid_locale


class DataProvider(ABC):
    """Source of the host data the engine needs.

    Example:
        >>> class StoreProvider(DataProvider):
        ...     def parsed_data(self):
        ...         return store.parsed
        ...     def uploaded_file_refs(self):
        ...         return store.uploads
        ...     def locale(self):
        ...         return store.language
    """

    @abstractmethod
    def parsed_data(self) -> Optional[Dict[str, Any]]:
        """Parsed event data, or None when nothing has been parsed."""
        pass

    @abstractmethod
    def uploaded_file_refs(self) -> List[Dict[str, Any]]:
        """Uploaded file references (``{id, name, url, type}``)."""
        pass

    @abstractmethod
    def locale(self) -> str:
        """Current user locale."""
        pass

    def image_refs(self) -> List[Dict[str, Any]]:
        return [
            ref for ref in self.uploaded_file_refs()
            if isinstance(ref, dict) and str(ref.get("type") or "").startswith("image/")
        ]


class StaticDataProvider(DataProvider):
    """DataProvider over fixed values (console use and tests)."""

    def __init__(
        self,
        parsed_data: Optional[Dict[str, Any]] = None,
        uploaded_file_refs: Optional[List[Dict[str, Any]]] = None,
        locale: str = DEFAULT_LOCALE
    ):
        self._parsed_data = parsed_data
        self._uploaded_file_refs = list(uploaded_file_refs or [])
        self._locale = get_valid_locale(locale)

    def parsed_data(self) -> Optional[Dict[str, Any]]:
        return self._parsed_data

    def uploaded_file_refs(self) -> List[Dict[str, Any]]:
        return list(self._uploaded_file_refs)

    def locale(self) -> str:
        return self._locale
