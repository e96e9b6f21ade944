"""
Template catalog for one platform.

Lists and fetches templates through the API client and caches them per
instance, so resolving display names for many applied entries costs one
request per template.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from errors import NetworkError
from schema import TemplateRecord
from schema.models import AppliedTemplateEntry

logger = logging.getLogger(__name__)


class TemplateCatalog:
    """
    Cached access to a platform's templates.

    Attributes:
        client: API client
        platform_id: Platform whose templates are listed
    """

    def __init__(self, client: Any, platform_id: str):
        self.client = client
        self.platform_id = platform_id
        self._templates: Dict[str, Optional[TemplateRecord]] = {}
        self._listed: Optional[List[TemplateRecord]] = None
        self._lock = threading.Lock()

    def list(self, mode: str = "raw", refresh: bool = False) -> List[TemplateRecord]:
        """All templates of the platform; an unreachable backend yields []."""
        with self._lock:
            if self._listed is not None and not refresh:
                return list(self._listed)

        try:
            raw = self.client.get_templates(self.platform_id, mode=mode)
        except NetworkError as e:
            logger.error(f"Failed to list templates for {self.platform_id}: {e.message}")
            return []

        records = [TemplateRecord.from_dict(t) for t in raw if isinstance(t, dict)]
        with self._lock:
            self._listed = records
            for record in records:
                self._templates[record.id] = record
        logger.debug(f"Listed {len(records)} templates for {self.platform_id}")
        return list(records)

    def get(self, template_id: str) -> Optional[TemplateRecord]:
        """One template by id, or None when unknown or unreachable."""
        if not template_id:
            return None
        with self._lock:
            if template_id in self._templates:
                return self._templates[template_id]

        try:
            raw = self.client.get_template(self.platform_id, template_id)
        except NetworkError as e:
            logger.warning(f"Failed to load template {template_id}: {e.message}")
            return None

        record = TemplateRecord.from_dict(raw) if isinstance(raw, dict) else None
        with self._lock:
            self._templates[template_id] = record
        return record

    def categories(self) -> List[Dict[str, Any]]:
        try:
            return self.client.get_template_categories()
        except NetworkError as e:
            logger.error(f"Failed to load template categories: {e.message}")
            return []

    def display_name(self, entry: AppliedTemplateEntry, lang: str) -> str:
        """
        Display name of an applied entry in ``lang``.

        Uses the template's translation for non-English languages, then the
        stored entry name, the template name and finally the template id.
        """
        fallback = entry.template_name or entry.template_id
        if not entry.template_id:
            return fallback
        template = self.get(entry.template_id)
        if template is None:
            return fallback

        base_lang = (lang or "").split("-")[0]
        if base_lang and base_lang != "en":
            translated = (template.translations.get(base_lang) or {}).get("name")
            if translated:
                return translated
        return entry.template_name or template.name or entry.template_id
