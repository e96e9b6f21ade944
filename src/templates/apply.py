"""
Template Apply Orchestrator.

Applying a template is one backend round trip followed by a single batched
content update:

    1. POST templates/<platform>/<template>/apply with the current content,
       parsed data and uploaded file references.
    2. Merge the mapped content over the current content.
    3. Store the chosen recipients under the targets block id (without
       ``templateLocale``).
    4. Resolve display names for the recipients where the targets block
       declares the matching data endpoints.
    5. Append an audit entry to ``_templates``.

A failed request or a rejected response leaves the content unchanged and
reports the error. A failed name lookup keeps the raw identifiers.
"""
import copy
import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import ApplyFailure, NameResolutionFailure, NetworkError, SchemaValidationError
from fields.normalize import coerce_list
from fields.translate import Translator, default_translate
from schema import PlatformSchema, TemplateRecord, validate_apply_response
from schema.content import TEMPLATES_KEY, stored_template_entries
from schema.models import AppliedTemplateEntry

logger = logging.getLogger(__name__)

APPLY_FAILED_MESSAGE = "Failed to apply template"

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass
class ApplyResult:
    """Outcome of one apply.

    Attributes:
        success: True when the content was updated
        content: The new content (the unchanged input on failure)
        entry: Audit entry appended to ``_templates``
        error: User-facing error on failure
    """
    success: bool
    content: Dict[str, Any]
    entry: Optional[AppliedTemplateEntry] = None
    error: Optional[str] = None


def new_entry_id() -> str:
    """Millisecond timestamp plus nine random base36 characters."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class TemplateApplier:
    """
    Applies templates for one platform.

    Attributes:
        client: API client used for the apply call and the name lookups
        platform_id: Platform the templates belong to
        schema: The platform schema (locates the targets block)
    """

    def __init__(self, client: Any, platform_id: str, schema: Optional[PlatformSchema] = None):
        self.client = client
        self.platform_id = platform_id
        self.schema = schema

    def apply(
        self,
        template: TemplateRecord,
        content: Dict[str, Any],
        parsed_data: Optional[Dict[str, Any]] = None,
        uploaded_file_refs: Optional[List[Dict[str, Any]]] = None,
        targets: Optional[Dict[str, Any]] = None,
        specific_files: Optional[List[str]] = None
    ) -> ApplyResult:
        """
        Apply a template to the current content.

        Args:
            template: Template to apply
            content: Current content (not modified)
            parsed_data: Parsed source data sent to the service
            uploaded_file_refs: Uploaded file references sent to the service
            targets: Recipient selection chosen for this application
            specific_files: File ids attached to this application only

        Returns:
            ApplyResult with the new content, or the error and unchanged content
        """
        content = dict(content or {})
        try:
            mapped = self._request_mapping(template, content, parsed_data, uploaded_file_refs)
        except ApplyFailure as e:
            logger.error(f"Applying template '{template.id}' on {self.platform_id} failed: {e}")
            return ApplyResult(success=False, content=content, error=str(e))

        updated = {**content, **mapped}

        targets_block = self.schema.targets_block() if self.schema is not None else None
        if targets_block is not None and targets_block.id:
            stored = copy.deepcopy(targets) if targets else {"mode": "all"}
            stored.pop("templateLocale", None)
            updated[targets_block.id] = stored

        resolved_targets = None
        if targets:
            resolved_targets = copy.deepcopy(targets)
            if targets_block is not None:
                resolved_targets = self.resolve_target_names(
                    resolved_targets, targets_block.as_composite().data_endpoints
                )

        entry = AppliedTemplateEntry(
            id=new_entry_id(),
            template_id=template.id,
            template_name=template.name or template.id,
            targets=resolved_targets,
            specific_files=list(specific_files or []),
            applied_at=utc_timestamp(),
        )
        existing = stored_template_entries(content)
        updated[TEMPLATES_KEY] = existing + [entry.to_dict()]

        logger.info(f"Applied template '{template.id}' to {self.platform_id} ({len(mapped)} fields mapped)")
        return ApplyResult(success=True, content=updated, entry=entry)

    def _request_mapping(
        self,
        template: TemplateRecord,
        content: Dict[str, Any],
        parsed_data: Optional[Dict[str, Any]],
        uploaded_file_refs: Optional[List[Dict[str, Any]]]
    ) -> Dict[str, Any]:
        if not template.id:
            raise ApplyFailure("Template has no id")
        if self.client is None:
            raise ApplyFailure("No API client available")

        body = {
            "templateId": template.id,
            "parsedData": parsed_data or None,
            "uploadedFileRefs": list(uploaded_file_refs or []),
            "existingContent": content,
        }
        try:
            response = self.client.apply_template(self.platform_id, template.id, body)
        except NetworkError as e:
            raise ApplyFailure(e.message or APPLY_FAILED_MESSAGE) from e

        try:
            validate_apply_response(response)
        except SchemaValidationError as e:
            raise ApplyFailure(f"{APPLY_FAILED_MESSAGE}: {e}") from e

        if not response.get("success"):
            raise ApplyFailure(response.get("error") or APPLY_FAILED_MESSAGE)
        return dict(response.get("content") or {})

    def resolve_target_names(self, targets: Dict[str, Any], data_endpoints: Dict[str, str]) -> Dict[str, Any]:
        """
        Attach display names for the selected recipients.

        ``individual`` selections get ``targetNames`` from the ``recipients``
        endpoint, ``groups`` selections get ``groupNames`` from
        ``recipientGroups``, and ``all`` lists every recipient label. Any
        failure keeps the raw identifiers. ``templateLocale`` is always kept.
        """
        resolved = dict(targets)
        preserved_locale = targets.get("templateLocale")
        try:
            self._resolve_names(resolved, data_endpoints)
        except NameResolutionFailure as e:
            logger.warning(f"Failed to resolve target names: {e}")
            resolved = dict(targets)
        if preserved_locale:
            resolved["templateLocale"] = preserved_locale
        return resolved

    def _resolve_names(self, targets: Dict[str, Any], data_endpoints: Dict[str, str]) -> None:
        mode = targets.get("mode")
        try:
            if mode == "individual" and targets.get("individual") and data_endpoints.get("recipients"):
                options = self.client.fetch_options(data_endpoints["recipients"], "recipients", self.platform_id)
                labels = {option.value: option.label for option in options}
                targets["targetNames"] = [labels.get(i) or i for i in coerce_list(targets["individual"])]

            if mode == "groups" and targets.get("groups") and data_endpoints.get("recipientGroups"):
                data = self.client.get_json(data_endpoints["recipientGroups"], platform_id=self.platform_id)
                groups = data.get("groups") if isinstance(data, dict) else None
                if isinstance(groups, dict):
                    groups = list(groups.values())
                names = {
                    g.get("id"): g.get("name") or g.get("id")
                    for g in groups or [] if isinstance(g, dict)
                }
                targets["groupNames"] = [names.get(g) or g for g in coerce_list(targets["groups"])]

            if mode == "all" and data_endpoints.get("recipients"):
                options = self.client.fetch_options(data_endpoints["recipients"], "recipients", self.platform_id)
                targets["targetNames"] = [option.label or str(option.value) for option in options]
        except NetworkError as e:
            raise NameResolutionFailure(e.message) from e


def remove_applied_template(content: Dict[str, Any], entry_id: str) -> Dict[str, Any]:
    """Drop one audit entry by id; every other key is left alone."""
    remaining = [
        e for e in stored_template_entries(content)
        if not (isinstance(e, dict) and e.get("id") == entry_id)
    ]
    return {**(content or {}), TEMPLATES_KEY: remaining}


def format_targets_summary(targets: Optional[Dict[str, Any]], translate: Optional[Translator] = None) -> str:
    """
    One-line description of an entry's recipients.

    Example:
        >>> format_targets_summary({"mode": "individual", "individual": ["a", "b"],
        ...                         "targetNames": ["Ann", "Bob"]})
        '2 recipient(s): Ann, Bob'
    """
    translate = translate or default_translate
    if not targets:
        return translate("editor.noTargets", "No targets")

    mode = targets.get("mode") or "all"
    if mode == "all":
        names = targets.get("targetNames") or []
        return translate("editor.allRecipients", "All recipients: {names}", names=", ".join(names))
    if mode == "groups":
        groups = coerce_list(targets.get("groups"))
        names = targets.get("groupNames") or groups
        return translate(
            "editor.groupsSummary", "{count} group(s): {names}",
            count=len(groups), names=", ".join(str(n) for n in names),
        )
    if mode == "individual":
        individuals = coerce_list(targets.get("individual"))
        names = targets.get("targetNames") or individuals
        shown = ", ".join(str(n) for n in names[:3])
        if len(names) > 3:
            shown += "..."
        return translate(
            "editor.individualSummary", "{count} recipient(s): {names}",
            count=len(individuals), names=shown,
        )
    return translate("editor.targetsConfigured", "Targets configured")
