"""
Composite Field Controller.

Manages one composite (targets) block whose value is an object such as
``{mode, individual, groups, templateLocale}``. The controller:

    1. Loads every option source declared in ``dataEndpoints`` concurrently
       and normalizes each result to ``{label, value}``.
    2. Initializes smart defaults once data has loaded (mode, single
       template, templateLocale).
    3. Mirrors the externally owned value, adopting external changes while
       keeping a locally chosen ``templateLocale``.
    4. Emits a whole new value object on every edit.

Loads are keyed by a generation counter and by (platform, endpoints); a load
whose key changed while it was in flight drops its results.

Example:
    >>> controller = CompositeFieldController(block, "email", client, on_change=host.set_targets)
    >>> controller.load()
    True
    >>> controller.set_field("mode", "groups")
"""
import copy
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from config import get_valid_locale
from errors import ConfigurationError, NetworkError
from fields.normalize import coerce_list, coerce_mapping, is_empty, option_values
from fields.renderer import ControlDescriptor, RenderContext, render_field
from fields.translate import Translator, default_translate, label_for
from schema.models import CompositeBlockSchema, FieldOption, FieldType

logger = logging.getLogger(__name__)

# Sub-field keys rendered as chip selectors instead of plain controls
TARGET_SELECTION_KEYS = ("individual", "groups")

LOADING = "loading"
READY = "ready"


@dataclass
class TargetSelection:
    """Chip-style multiselect state for the ``individual``/``groups`` sub-fields.

    Attributes:
        key: Sub-field key
        label: Translated label
        description: Translated description
        selected: Options currently selected (rendered as removable chips)
        available: Unselected options matching the search term
        allow_new: Free-text entry of new targets is offered
        search_term: Current search text
    """
    key: str
    label: str
    description: Optional[str] = None
    selected: List[FieldOption] = dataclass_field(default_factory=list)
    available: List[FieldOption] = dataclass_field(default_factory=list)
    allow_new: bool = False
    search_term: str = ""


@dataclass
class CompositeView:
    """Render result of a composite block."""
    block_id: str
    loading: bool = False
    error: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None
    items: List[Union[ControlDescriptor, TargetSelection]] = dataclass_field(default_factory=list)
    summary: Optional[str] = None
    warnings: List[str] = dataclass_field(default_factory=list)


@dataclass
class AddTargetResult:
    success: bool
    target: Optional[str] = None
    error: Optional[str] = None


def _targets_value(block_id: str, value: Any) -> Dict[str, Any]:
    """Persisted composite values must be mappings; anything else starts empty."""
    if value is not None and not isinstance(value, dict):
        logger.warning(
            f"Composite block '{block_id}' has a {type(value).__name__} value instead of an object; ignoring it"
        )
    return coerce_mapping(value)


class CompositeFieldController:
    """
    State machine for one composite field instance.

    Attributes:
        block: Composite block schema
        platform_id: Platform substituted into endpoint templates
        client: API client (PromoterAPIClient or compatible)
        state: "loading" until data for the current key has been applied
        data: Normalized options per source key
        values: Local mirror of the composite value
        error: Load error shown instead of the fields
    """

    def __init__(
        self,
        block: CompositeBlockSchema,
        platform_id: Optional[str],
        client: Any,
        on_change: Callable[[Dict[str, Any]], None],
        value: Optional[Dict[str, Any]] = None,
        locale: Optional[str] = None,
        translate: Optional[Translator] = None
    ):
        self.block = block
        self.platform_id = platform_id
        self.client = client
        self.on_change = on_change
        self.locale = get_valid_locale(locale)
        self.translate = translate or default_translate

        self.state = LOADING
        self.data: Dict[str, List[FieldOption]] = {}
        if value is not None:
            value = _targets_value(block.id, value)
        self.values: Dict[str, Any] = copy.deepcopy(value or {})
        self.external_value = value
        self.error: Optional[str] = None
        self.search_term = ""

        self._user_edited = False
        self._generation = 0
        self._lock = threading.Lock()

        for key in block.missing_endpoints():
            logger.warning(
                f"Composite block '{block.id}': sub-field '{key}' uses source "
                f"'{block.schema[key].source}' without a data endpoint"
            )

    @property
    def load_key(self) -> Tuple[Optional[str], Tuple[Tuple[str, str], ...]]:
        return self.platform_id, tuple(sorted(self.block.data_endpoints.items()))

    # Loading

    def set_platform(self, platform_id: Optional[str]) -> None:
        """Switch platform; in-flight loads for the old platform are discarded."""
        with self._lock:
            if platform_id == self.platform_id:
                return
            self._generation += 1
            self.platform_id = platform_id
            self.data = {}
            self.state = LOADING
        logger.debug(f"Composite block '{self.block.id}' switched to platform {platform_id}")

    def load(self) -> bool:
        """
        Load every declared option source.

        Sources are fetched concurrently through a worker pool; results are
        merged here once all have settled. A failing source degrades to an
        empty option list.

        Returns:
            True if the results were applied, False if they were stale
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            key = self.load_key
            self.state = LOADING
            self.error = None

        endpoints = dict(self.block.data_endpoints)
        if not self.platform_id or not endpoints:
            with self._lock:
                if generation != self._generation:
                    return False
                self.state = READY
            return True

        if self.client is None:
            message = f"No API client available to load data for block '{self.block.id}'"
            logger.error(message)
            with self._lock:
                if generation != self._generation:
                    return False
                self.error = message
                self.state = READY
            return True

        loaded = self._fetch_all(endpoints, self.platform_id)

        with self._lock:
            if generation != self._generation or key != self.load_key:
                logger.debug(f"Discarding stale option load for block '{self.block.id}'")
                return False
            self.data = loaded
            self.state = READY

        logger.info(
            f"Loaded {sum(len(v) for v in loaded.values())} options from "
            f"{len(loaded)} sources for block '{self.block.id}'"
        )
        self.initialize_defaults()
        return True

    def reload(self) -> bool:
        return self.load()

    def _fetch_all(self, endpoints: Dict[str, str], platform_id: str) -> Dict[str, List[FieldOption]]:
        loaded: Dict[str, List[FieldOption]] = {}
        pool_size = getattr(self.client, "max_workers", None)
        if not isinstance(pool_size, int) or pool_size < 1:
            pool_size = 8
        max_workers = min(len(endpoints), pool_size)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.client.fetch_options, endpoint, source_key, platform_id): source_key
                for source_key, endpoint in endpoints.items()
            }
            for future in as_completed(futures):
                source_key = futures[future]
                try:
                    loaded[source_key] = list(future.result())
                except NetworkError as e:
                    logger.warning(f"Option source '{source_key}' failed: {e.message}")
                    loaded[source_key] = []
                except Exception as e:
                    logger.error(f"Unexpected error loading option source '{source_key}': {e}")
                    loaded[source_key] = []
        return loaded

    # Defaults and syncing

    def initialize_defaults(self) -> bool:
        """
        Fill in defaults after data has loaded.

        ``templateLocale`` is populated from the user locale whenever it is
        empty, even if an external value is present. Mode and template
        defaults are only chosen while the external value is empty and the
        user has not edited the block.

        Returns:
            True if a new value was emitted
        """
        if self.state != READY or not self.data:
            return False

        current = dict(self.values)
        changed = False

        if not current.get("templateLocale"):
            current["templateLocale"] = self.locale
            changed = True

        if not is_empty(self.external_value) or self._user_edited:
            if changed:
                self._commit(current)
            return changed

        if not current.get("mode"):
            mode_field = self.block.schema.get("mode")
            if mode_field is not None and mode_field.default:
                current["mode"] = mode_field.default
                changed = True
            else:
                modes = self.data.get("modes") or []
                if modes:
                    chosen = next((m for m in modes if m.value == "all"), modes[0])
                    current["mode"] = chosen.value
                    changed = True

        if not current.get("defaultTemplate"):
            templates = self.data.get("templates") or []
            if len(templates) == 1:
                current["defaultTemplate"] = templates[0].value
                changed = True

        if changed:
            logger.debug(f"Initialized defaults for block '{self.block.id}': {current}")
            self._commit(current)
        return changed

    def sync_from_external(self, value: Optional[Dict[str, Any]]) -> bool:
        """
        Adopt an externally pushed value.

        The local ``templateLocale`` wins over the incoming one whenever it
        is set.

        Returns:
            True if the local mirror changed
        """
        if value is not None:
            value = _targets_value(self.block.id, value)
        self.external_value = value
        if value is None or value == self.values:
            return False

        preserved = self.values.get("templateLocale")
        synced = copy.deepcopy(value)
        if preserved is not None:
            synced["templateLocale"] = preserved
        self.values = synced
        logger.debug(f"Synced block '{self.block.id}' from external value")
        return True

    # Editing

    def _commit(self, values: Dict[str, Any]) -> None:
        self.values = values
        self.on_change(copy.deepcopy(values))

    def set_field(self, key: str, value: Any) -> None:
        """Set one sub-field and emit the whole new value."""
        self._user_edited = True
        self._commit({**self.values, key: value})

    def options_for(self, key: str) -> List[FieldOption]:
        sub = self.block.schema.get(key)
        if sub is None or not sub.source:
            return []
        return [
            FieldOption(label=option.label or str(option.value), value=option.value)
            for option in self.data.get(sub.source, [])
        ]

    def select_option(self, key: str, value: Any) -> None:
        current = coerce_list(self.values.get(key))
        if value not in current:
            self.set_field(key, current + [value])

    def remove_option(self, key: str, value: Any) -> None:
        current = coerce_list(self.values.get(key))
        if value in current:
            self.set_field(key, [v for v in current if v != value])

    def set_search_term(self, term: str) -> None:
        self.search_term = term or ""

    def add_individual(self, raw_value: str, key: str = "individual") -> AddTargetResult:
        """
        Add a free-text target to a selection.

        Unknown targets are registered through the endpoint declared for the
        sub-field's source before they are selected; a failed registration
        leaves the selection unchanged.
        """
        target = (raw_value or "").strip()
        if not target:
            return AddTargetResult(success=False)

        if target not in option_values(self.options_for(key)):
            sub = self.block.schema.get(key)
            try:
                source = sub.source if sub is not None else None
                endpoint = self.block.data_endpoints.get(source) if source else None
                if not endpoint:
                    raise ConfigurationError(f"No endpoint defined for source: {source}")
                if self.client is None:
                    raise ConfigurationError("No API client available")
                payload_key = (sub.payload_key if sub is not None else None) or key
                self.client.register_target(endpoint, {payload_key: target}, platform_id=self.platform_id)
            except (ConfigurationError, NetworkError) as e:
                logger.error(f"Failed to add target '{target}': {e}")
                message = self.translate("common.errorAdding", "Error adding: {message}", message=str(e))
                return AddTargetResult(success=False, target=target, error=message)
            logger.info(f"Added new target: {target}")
            self.reload()

        current = coerce_list(self.values.get(key))
        if target not in current:
            self.set_field(key, current + [target])
        self.search_term = ""
        return AddTargetResult(success=True, target=target)

    # Rendering

    def summary(self) -> Optional[str]:
        mode = self.values.get("mode") or "all"
        if mode == "all":
            return self.translate("common.allSelected", "All selected")
        if mode == "groups":
            count = len(coerce_list(self.values.get("groups")))
            if count:
                return self.translate("common.groupsSelected", "{count} group(s) selected", count=count)
        if mode == "individual":
            count = len(coerce_list(self.values.get("individual")))
            if count:
                return self.translate("common.itemsSelected", "{count} item(s) selected", count=count)
        return None

    def _target_selection(self, key: str) -> TargetSelection:
        sub = self.block.schema[key]
        options = self.options_for(key)
        current = coerce_list(self.values.get(key))
        term = self.search_term.lower()
        return TargetSelection(
            key=key,
            label=label_for(self.translate, sub.label, key),
            description=label_for(self.translate, sub.description, "") or None,
            selected=[option for option in options if option.value in current],
            available=[
                option for option in options
                if option.value not in current and term in option.label.lower()
            ],
            allow_new=key == "individual",
            search_term=self.search_term,
        )

    def render(self) -> CompositeView:
        """Describe the block for the host."""
        view = CompositeView(
            block_id=self.block.id,
            warnings=[
                f"Sub-field '{key}' has no data endpoint for source '{self.block.schema[key].source}'"
                for key in self.block.missing_endpoints()
            ],
        )
        if self.state == LOADING:
            view.loading = True
            return view
        if self.error:
            view.error = self.translate("common.failedToLoadData", "Failed to load data") + f": {self.error}"
            return view

        if "mode" not in self.block.schema:
            view.label = label_for(self.translate, self.block.label, "") or None
            view.description = label_for(self.translate, self.block.description, "") or None

        context = RenderContext(
            platform_id=self.platform_id,
            form_values=dict(self.values),
            translate=self.translate,
        )
        for key, sub in self.block.schema.items():
            if sub.visible_when is not None and not sub.visible_when.is_satisfied(self.values):
                continue
            if key in TARGET_SELECTION_KEYS and sub.field_type == FieldType.MULTISELECT.value:
                view.items.append(self._target_selection(key))
                continue
            field = sub.to_schema_field(self.options_for(key))
            view.items.append(render_field(
                field,
                self.values.get(key),
                lambda name, value: self.set_field(name, value),
                None,
                context,
            ))

        view.summary = self.summary()
        return view
