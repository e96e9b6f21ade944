"""
Platform editor session.

Wires the engine together for one platform: loads and caches the platform
schema, keeps one CompositeFieldController per targets block, renders every
editor block, resolves the active template's variables and applies or removes
templates. Host data (parsed data, uploads, locale) comes from an injected
DataProvider.

Every operation takes the current content snapshot and produces a new one.
The new snapshot is also handed to ``on_batch_change`` so the host can store
it in one step.

Example:
    >>> client = PromoterAPIClient.from_config(config)
    >>> editor = PlatformEditor("email", client, StaticDataProvider(parsed, uploads, "de"),
    ...                         on_batch_change=store.replace_content)
    >>> view = editor.render(content)
    >>> result = editor.apply_template("summer-gig", content, targets={"mode": "all"})
"""
import copy
import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Optional, Union

from config import get_default_config, get_locale_display_name
from composite import CompositeFieldController, CompositeView
from errors import ConfigurationError, NetworkError
from fields import (
    ControlDescriptor,
    RenderContext,
    RenderedGroup,
    ValidationResult,
    render_field,
    render_schema,
    validate_fields,
)
from fields.translate import Translator, default_translate, label_for
from schema import EditorBlock, FieldOption, FieldType, PlatformSchema, SchemaField, TemplateRecord
from schema.content import TEMPLATE_ID_KEY, applied_templates, persistent_variables, text_length, with_updates
from templates import (
    ApplyResult,
    ResolvedVariable,
    TemplateApplier,
    TemplateCatalog,
    VariableAliasResolver,
    build_template_variables,
    format_targets_summary,
    remove_applied_template,
)
from templates.variables import file_url

from .provider import DataProvider, StaticDataProvider

logger = logging.getLogger(__name__)

BatchChange = Callable[[Dict[str, Any]], None]
HostAction = Callable[[str, SchemaField, Dict[str, Any]], None]


@dataclass
class BlockView:
    """One rendered editor block.

    Only the attribute matching the block type is filled: ``composite`` for
    targets blocks, ``groups`` for form blocks, ``control`` for file and
    image selection blocks.
    """
    id: str
    type: str
    label: Optional[str] = None
    description: Optional[str] = None
    composite: Optional[CompositeView] = None
    groups: List[RenderedGroup] = dataclass_field(default_factory=list)
    control: Optional[ControlDescriptor] = None
    settings: Dict[str, Any] = dataclass_field(default_factory=dict)
    warning: Optional[str] = None


@dataclass
class AppliedTemplateView:
    """Display state of one ``_templates`` entry."""
    id: str
    template_id: str
    name: str
    targets_summary: str
    language: str
    specific_files: int = 0
    standard_files: int = 0


@dataclass
class EditorView:
    """Everything a host needs to draw the editor for one content snapshot."""
    platform_id: str
    blocks: List[BlockView] = dataclass_field(default_factory=list)
    applied_templates: List[AppliedTemplateView] = dataclass_field(default_factory=list)
    variables: List[ResolvedVariable] = dataclass_field(default_factory=list)
    active_template_id: Optional[str] = None
    persistent_variables: List[str] = dataclass_field(default_factory=list)
    char_count: int = 0
    max_length: int = 1000
    is_valid: bool = False
    alerts: List[str] = dataclass_field(default_factory=list)


class PlatformEditor:
    """
    Editing session for one platform.

    Attributes:
        platform_id: Platform being edited
        client: PromoterAPIClient (or compatible)
        data_provider: Source of parsed data, uploads and locale
        schema: Cached platform schema (None until loaded)
        controllers: Composite controllers by block id
        catalog: Template catalog for the platform
        content: Last content snapshot seen or produced
    """

    def __init__(
        self,
        platform_id: str,
        client: Any,
        data_provider: Optional[DataProvider] = None,
        on_batch_change: Optional[BatchChange] = None,
        on_action: Optional[HostAction] = None,
        translate: Optional[Translator] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        self.platform_id = platform_id
        self.client = client
        self.data_provider = data_provider or StaticDataProvider()
        self.on_batch_change = on_batch_change
        self.on_action = on_action
        self.translate = translate or default_translate

        config = config or get_default_config()
        editor_config = config.get("editor", {}) or {}
        self.hide_auto_filled = editor_config.get("hide_auto_filled", True)
        self.default_max_length = editor_config.get("default_max_length", 1000)
        self.file_base_url = (config.get("files", {}) or {}).get("base_url", "http://localhost:4000")

        self.schema: Optional[PlatformSchema] = None
        self.schema_error: Optional[str] = None
        self.controllers: Dict[str, CompositeFieldController] = {}
        self.catalog = TemplateCatalog(client, platform_id)
        self.content: Dict[str, Any] = {}

    # Schema

    def load_schema(self, refresh: bool = False) -> Optional[PlatformSchema]:
        """Fetch the platform schema once per session; failures become an alert."""
        if self.schema is not None and not refresh:
            return self.schema
        try:
            self.schema = self.client.get_platform_schema(self.platform_id, refresh=refresh)
            self.schema_error = None
            logger.info(f"Loaded schema for {self.platform_id} with {len(self.schema.blocks)} blocks")
        except (NetworkError, ConfigurationError) as e:
            self.schema_error = str(e)
            logger.error(f"Failed to load schema for {self.platform_id}: {e}")
        return self.schema

    def controller_for(self, block: EditorBlock) -> CompositeFieldController:
        """Composite controller of a targets block, created and loaded on first use."""
        controller = self.controllers.get(block.id)
        if controller is None:
            controller = CompositeFieldController(
                block.as_composite(),
                self.platform_id,
                self.client,
                on_change=lambda value, block_id=block.id: self._commit({block_id: value}),
                value=self.content.get(block.id),
                locale=self.data_provider.locale(),
                translate=self.translate,
            )
            self.controllers[block.id] = controller
            controller.load()
        return controller

    # Content updates

    def _commit(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        self.content = with_updates(self.content, updates)
        self._emit(self.content)
        return self.content

    def _replace(self, content: Dict[str, Any]) -> Dict[str, Any]:
        self.content = content
        self._emit(content)
        return content

    def _emit(self, content: Dict[str, Any]) -> None:
        if self.on_batch_change is not None:
            self.on_batch_change(copy.deepcopy(content))

    def set_field(self, name: str, value: Any) -> Dict[str, Any]:
        """Apply a single field edit to the current snapshot."""
        return self._commit({name: value})

    def _button_action(self, action: str, field: SchemaField, values: Dict[str, Any]) -> None:
        logger.debug(f"Button action '{action}' from field '{field.name}'")
        if self.on_action is not None:
            self.on_action(action, field, values)

    # Rendering

    def _render_context(self, block: EditorBlock, content: Dict[str, Any]) -> RenderContext:
        return RenderContext(
            platform_id=self.platform_id,
            form_values=dict(content),
            all_fields=list(block.fields),
            on_button_action=self._button_action,
            translate=self.translate,
            api_client=self.client,
            render_composite=self._render_composite_field,
        )

    def _render_composite_field(self, field: SchemaField, value: Dict[str, Any]) -> ControlDescriptor:
        controller = self.controllers.get(field.name)
        if controller is None:
            return ControlDescriptor(
                name=field.name,
                kind="composite",
                label=label_for(self.translate, field.label, field.name),
                value=value,
                disabled=True,
                warning=f"No composite block '{field.name}' in the platform schema",
            )
        controller.sync_from_external(value)
        view = controller.render()
        return ControlDescriptor(
            name=field.name,
            kind="composite",
            label=view.label or label_for(self.translate, field.label, field.name),
            value=dict(controller.values),
            error=view.error,
            helper_text=view.summary,
            children=[item for item in view.items if isinstance(item, ControlDescriptor)],
        )

    def _image_options(self) -> List[FieldOption]:
        options = []
        for ref in self.data_provider.image_refs():
            url = file_url(str(ref.get("url") or ""), self.file_base_url)
            options.append(FieldOption(label=str(ref.get("name") or url), value=url))
        return options

    def _file_options(self) -> List[FieldOption]:
        return [
            FieldOption(label=str(ref.get("name") or ref.get("id")), value=ref.get("id") or ref.get("url"))
            for ref in self.data_provider.uploaded_file_refs()
            if isinstance(ref, dict)
        ]

    def render_block(self, block: EditorBlock, content: Dict[str, Any],
                     errors: Optional[Dict[str, str]] = None) -> BlockView:
        view = BlockView(
            id=block.id,
            type=block.type,
            label=label_for(self.translate, block.label, "") or None,
            description=label_for(self.translate, block.description, "") or None,
            settings=dict(block.settings),
        )

        if block.type == "targets":
            controller = self.controller_for(block)
            # A first load may have committed defaults into self.content
            controller.sync_from_external(self.content.get(block.id))
            view.composite = controller.render()

        elif block.type == "form":
            view.groups = render_schema(
                block.fields,
                content,
                lambda name, value: self.set_field(name, value),
                errors,
                block.groups,
                self._render_context(block, content),
            )

        elif block.type == "image_select":
            image_field = SchemaField(
                name=block.id,
                type=FieldType.SELECT.value,
                label=block.label or "editor.image",
                description=block.description,
                options=[FieldOption(label=self.translate("editor.noImage", "No image"), value="")]
                + self._image_options(),
            )
            view.control = render_field(
                image_field, content.get(block.id) or "",
                lambda name, value: self.set_field(name, value),
                None, self._render_context(block, content),
            )

        elif block.type == "file_selection_input":
            files_field = SchemaField(
                name=block.id,
                type=FieldType.MULTISELECT.value,
                label=block.label,
                description=block.description,
                options=self._file_options(),
            )
            view.control = render_field(
                files_field, content.get(block.id),
                lambda name, value: self.set_field(name, value),
                None, self._render_context(block, content),
            )

        else:
            view.warning = f"Unsupported block type: {block.type}"
            logger.warning(f"Block '{block.id}' has unsupported type '{block.type}'")

        return view

    def active_template(self, content: Dict[str, Any]) -> Optional[TemplateRecord]:
        """Template named by ``_templateId``, looked up through the catalog."""
        template_id = (content or {}).get(TEMPLATE_ID_KEY)
        if not template_id:
            return None
        return self.catalog.get(str(template_id))

    def variable_resolver(self, template: TemplateRecord) -> VariableAliasResolver:
        parsed_data = self.data_provider.parsed_data()
        fallback = build_template_variables(
            parsed_data, self.data_provider.uploaded_file_refs(), self.file_base_url
        )
        return VariableAliasResolver(
            template.variable_definitions,
            fallback=fallback,
            parsed_data=parsed_data,
            hide_auto_filled=self.hide_auto_filled,
        )

    def _applied_template_views(self, content: Dict[str, Any]) -> List[AppliedTemplateView]:
        targets_block = self.schema.targets_block() if self.schema is not None else None
        if targets_block is None:
            return []

        block_value = content.get(targets_block.id)
        block_locale = block_value.get("templateLocale") if isinstance(block_value, dict) else None
        global_files = content.get("globalFiles")
        lang = self.data_provider.locale()

        views = []
        for entry in applied_templates(content):
            targets = entry.targets if isinstance(entry.targets, dict) else {}
            template_locale = targets.get("templateLocale") or block_locale
            views.append(AppliedTemplateView(
                id=entry.id,
                template_id=entry.template_id,
                name=self.catalog.display_name(entry, lang),
                targets_summary=format_targets_summary(entry.targets, self.translate),
                language=(
                    get_locale_display_name(template_locale) if template_locale
                    else self.translate("editor.errorValue", "Error")
                ),
                specific_files=len(entry.specific_files),
                standard_files=len(global_files) if isinstance(global_files, list) else 0,
            ))
        return views

    def render(self, content: Dict[str, Any], show_errors: bool = False) -> EditorView:
        """
        Describe the whole editor for a content snapshot.

        Args:
            content: Current content (not modified)
            show_errors: Attach validation messages to form controls

        Returns:
            EditorView; a schema that failed to load yields a view with only an alert
        """
        self.content = dict(content or {})
        content = self.content
        view = EditorView(platform_id=self.platform_id)

        if self.load_schema() is None:
            view.alerts.append(
                self.translate("editor.schemaLoadFailed", "Failed to load schema")
                + (f": {self.schema_error}" if self.schema_error else "")
            )
            return view

        errors = self.validate(content).errors if show_errors else None
        for block in self.schema.blocks:
            view.blocks.append(self.render_block(block, content, errors))

        view.applied_templates = self._applied_template_views(content)

        template = self.active_template(content)
        if template is not None:
            view.active_template_id = template.id
            if template.variable_definitions:
                view.variables = self.variable_resolver(template).displayed(content)
            else:
                view.alerts.append(self.translate(
                    "editor.noVariableDefinitions", "This template declares no variables"
                ))
        view.persistent_variables = sorted(persistent_variables(content))

        view.char_count = text_length(content)
        view.max_length = self.schema.max_length(self.default_max_length)
        view.is_valid = 0 < view.char_count <= view.max_length
        return view

    # Operations

    def validate(self, content: Dict[str, Any]) -> ValidationResult:
        """Validate every form block against a content snapshot."""
        result = ValidationResult()
        if self.load_schema() is None:
            return result
        for block in self.schema.form_blocks():
            result.errors.update(validate_fields(block.fields, content or {}, self.translate).errors)
        return result

    def apply_template(
        self,
        template: Union[TemplateRecord, str],
        content: Dict[str, Any],
        targets: Optional[Dict[str, Any]] = None,
        specific_files: Optional[List[str]] = None
    ) -> ApplyResult:
        """
        Apply a template (record or id) to a content snapshot.

        On success the new content is emitted as one batch; on failure
        nothing is emitted and the result carries the error.
        """
        content = dict(content or {})
        if isinstance(template, str):
            record = self.catalog.get(template)
            if record is None:
                message = self.translate("editor.templateNotFound", "Template not found: {id}", id=template)
                logger.error(message)
                return ApplyResult(success=False, content=content, error=message)
            template = record

        self.load_schema()
        applier = TemplateApplier(self.client, self.platform_id, self.schema)
        result = applier.apply(
            template,
            content,
            parsed_data=self.data_provider.parsed_data(),
            uploaded_file_refs=self.data_provider.uploaded_file_refs(),
            targets=targets,
            specific_files=specific_files,
        )
        if result.success:
            self._replace(result.content)
        return result

    def remove_template(self, content: Dict[str, Any], entry_id: str) -> Dict[str, Any]:
        return self._replace(remove_applied_template(content, entry_id))

    def write_variable(self, content: Dict[str, Any], name: str, value: Any) -> Dict[str, Any]:
        """Write a variable override for the active template's aliases."""
        self.content = dict(content or {})
        template = self.active_template(self.content)
        resolver = self.variable_resolver(template) if template is not None else VariableAliasResolver([])
        updated = resolver.write(self.content, name, value)
        if updated == self.content:
            return self.content
        return self._replace(updated)

    def set_variable_disabled(self, content: Dict[str, Any], name: str, disabled: bool) -> Dict[str, Any]:
        self.content = dict(content or {})
        template = self.active_template(self.content)
        resolver = VariableAliasResolver(template.variable_definitions if template is not None else [])
        return self._replace(resolver.set_disabled(self.content, name, disabled))
