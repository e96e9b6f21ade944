"""
Target List Sub-Renderer.

Backs ``target-list`` fields: a table of rows loaded from the field's
``optionsSource`` (or its static ``options``), filtered by the value of the
sibling field whose ``ui.isFilterFor`` names this list.
"""
import logging
from typing import Any, Dict, List, Optional

from errors import NetworkError
from schema.models import SchemaField

logger = logging.getLogger(__name__)


def find_search_term(field: SchemaField, all_fields: List[SchemaField], values: Dict[str, Any]) -> str:
    """Value of the sibling filter field for ``field``, or ''."""
    for candidate in all_fields:
        if candidate.ui.is_filter_for == field.name:
            term = values.get(candidate.name)
            return "" if term is None else str(term)
    return ""


class TargetListView:
    """Rows of a target-list field.

    Construction does no I/O; rows from a remote source are fetched by
    ``load()``. Static options are available immediately.

    Attributes:
        field: The target-list field
        platform_id: Platform whose targets are listed
        search_term: Current filter text
        rows: Loaded rows
        error: Load failure message, if any
    """

    def __init__(self, field: SchemaField, platform_id: str, client: Any = None, search_term: str = ""):
        self.field = field
        self.platform_id = platform_id
        self.client = client
        self.search_term = search_term or ""
        self.error: Optional[str] = None
        self.loaded = False
        self.rows: List[Dict[str, Any]] = [option.to_dict() for option in field.options]

    @property
    def columns(self) -> List[Dict[str, Any]]:
        if not self.field.ui.render_as_table:
            return []
        return list(self.field.ui.table_columns)

    def load(self) -> List[Dict[str, Any]]:
        """Fetch rows from the options source.

        Failures are kept in ``error`` and leave an empty row list.
        """
        source = self.field.options_source
        if source is None or self.client is None:
            self.loaded = True
            return self.rows

        self.error = None
        try:
            data = self.client.get_json(source.endpoint, platform_id=self.platform_id)
            rows = data.get(source.response_path) if isinstance(data, dict) and source.response_path else data
            self.rows = [row for row in (rows or []) if isinstance(row, dict)] if isinstance(rows, list) else []
            logger.debug(f"Loaded {len(self.rows)} rows for target list '{self.field.name}'")
        except NetworkError as e:
            logger.warning(f"Failed to load target list '{self.field.name}': {e.message}")
            self.error = e.message or "Failed to load data"
            self.rows = []
        self.loaded = True
        return self.rows

    def filtered_rows(self) -> List[Dict[str, Any]]:
        """Rows with any cell containing the search term (case-insensitive)."""
        term = self.search_term.lower()
        if not term:
            return list(self.rows)
        return [
            row for row in self.rows
            if any(term in str(value).lower() for value in row.values())
        ]
