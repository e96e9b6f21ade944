"""
Schema Model.

Passive types for everything a backend-supplied platform schema can describe:
editable fields, field groups, composite (targets) blocks, editor blocks,
and template variable definitions. Each type has a ``from_dict`` classmethod
that accepts the camelCase JSON served by the backend and tolerates missing
keys; nothing here performs network or rendering work.

Example:
    >>> field = SchemaField.from_dict({"name": "title", "type": "text", "required": True})
    >>> field.field_type
    <FieldType.TEXT: 'text'>
    >>> SchemaField.from_dict({"id": "venue", "type": "map"}).field_type is None
    True
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union


class FieldType(str, Enum):
    """Closed set of field type tags the renderer understands."""
    TEXT = "text"
    URL = "url"
    TEXTAREA = "textarea"
    NUMBER = "number"
    PASSWORD = "password"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    TARGET_LIST = "target-list"
    BUTTON = "button"
    COMPOSITE = "composite"
    MAPPING = "mapping"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FieldType"]:
        """Return the member for ``value`` or None for unknown tags."""
        try:
            return cls(value)
        except ValueError:
            return None


# Field types whose options come from a list (static or remote)
OPTION_FIELD_TYPES = (FieldType.SELECT, FieldType.MULTISELECT, FieldType.MAPPING)


@dataclass
class ValidationRule:
    """One validation rule: a tag, its parameter and an optional message.

    ``validator`` is only set programmatically for ``custom`` rules; it
    returns True or an error string.
    """
    type: str
    value: Any = None
    message: Optional[str] = None
    validator: Optional[Callable[[Any], Union[bool, str]]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationRule":
        return cls(
            type=data.get("type", ""),
            value=data.get("value"),
            message=data.get("message"),
            validator=data.get("validator") if callable(data.get("validator")) else None,
        )


@dataclass
class OptionsSource:
    """Remote option source: endpoint plus the response key holding the rows."""
    endpoint: str
    response_path: Optional[str] = None
    method: str = "GET"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OptionsSource":
        return cls(
            endpoint=data.get("endpoint", ""),
            response_path=data.get("responsePath"),
            method=data.get("method", "GET"),
        )


@dataclass
class VisibleWhen:
    """Visibility condition: the field shows only when ``field`` equals ``value``."""
    field: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisibleWhen":
        return cls(field=data.get("field", ""), value=data.get("value"))

    def is_satisfied(self, values: Dict[str, Any]) -> bool:
        return values.get(self.field) == self.value


@dataclass
class FieldUI:
    """UI hints. ``order`` defaults to 999 so unordered fields sort last."""
    disabled: bool = False
    hidden: bool = False
    order: int = 999
    width: Optional[int] = None
    is_filter_for: Optional[str] = None
    render_as_table: bool = False
    table_columns: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FieldUI":
        data = data or {}
        return cls(
            disabled=bool(data.get("disabled", False)),
            hidden=bool(data.get("hidden", False)),
            order=data.get("order") or 999,
            width=data.get("width"),
            is_filter_for=data.get("isFilterFor"),
            render_as_table=bool(data.get("renderAsTable", False)),
            table_columns=list(data.get("tableColumns") or []),
        )


@dataclass
class FieldOption:
    """Canonical option shape used everywhere past the network boundary."""
    label: str
    value: Any
    disabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldOption":
        value = data.get("value")
        label = data.get("label")
        return cls(
            label=str(label if label is not None else ("" if value is None else value)),
            value=value,
            disabled=bool(data.get("disabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.value}


@dataclass
class SchemaField:
    """One editable unit of a platform schema.

    ``type`` keeps the raw tag so unknown types survive parsing and can be
    reported by the renderer; ``field_type`` is the parsed member or None.
    ``default`` of None means the field declares no default.
    """
    name: str
    type: str = "text"
    label: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    default: Any = None
    read_only: bool = False
    validation: List[ValidationRule] = field(default_factory=list)
    options: List[FieldOption] = field(default_factory=list)
    options_source: Optional[OptionsSource] = None
    visible_when: Optional[VisibleWhen] = None
    ui: FieldUI = field(default_factory=FieldUI)
    helper: Optional[str] = None
    source: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaField":
        options_source = data.get("optionsSource")
        visible_when = data.get("visibleWhen")
        return cls(
            name=data.get("name") or data.get("id") or "",
            type=data.get("type") or "text",
            label=data.get("label"),
            description=data.get("description"),
            placeholder=data.get("placeholder"),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            read_only=bool(data.get("readOnly", False)),
            validation=[ValidationRule.from_dict(r) for r in data.get("validation") or []],
            options=[
                FieldOption.from_dict(o) if isinstance(o, dict) else FieldOption(label=str(o), value=o)
                for o in data.get("options") or []
            ],
            options_source=OptionsSource.from_dict(options_source) if options_source else None,
            visible_when=VisibleWhen.from_dict(visible_when) if visible_when else None,
            ui=FieldUI.from_dict(data.get("ui")),
            helper=data.get("helper"),
            source=data.get("source"),
            action=data.get("action"),
        )

    @property
    def field_type(self) -> Optional[FieldType]:
        return FieldType.parse(self.type)

    @property
    def display_label(self) -> str:
        return self.label or self.name

    def is_visible(self, values: Dict[str, Any]) -> bool:
        """False when hidden by UI hint or by an unsatisfied ``visibleWhen``."""
        if self.ui.hidden:
            return False
        if self.visible_when is not None:
            return self.visible_when.is_satisfied(values)
        return True


@dataclass
class FieldGroup:
    """Named bucket of field names. ``method`` is a display tag only."""
    id: str
    fields: List[str] = field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None
    method: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldGroup":
        return cls(
            id=data.get("id", ""),
            fields=list(data.get("fields") or []),
            title=data.get("title"),
            description=data.get("description"),
            method=data.get("method"),
        )


@dataclass
class CompositeSubField:
    """One sub-field of a composite block (``rendering.schema[key]``)."""
    key: str
    field_type: str
    label: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    required: bool = False
    default: Any = None
    visible_when: Optional[VisibleWhen] = None
    payload_key: Optional[str] = None

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "CompositeSubField":
        visible_when = data.get("visibleWhen")
        return cls(
            key=key,
            field_type=data.get("fieldType") or "text",
            label=data.get("label"),
            description=data.get("description"),
            source=data.get("source"),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            visible_when=VisibleWhen.from_dict(visible_when) if visible_when else None,
            payload_key=data.get("payloadKey"),
        )

    def needs_remote_options(self) -> bool:
        return bool(self.source) and FieldType.parse(self.field_type) in OPTION_FIELD_TYPES

    def to_schema_field(self, options: List[FieldOption]) -> SchemaField:
        """Project this sub-field onto a plain SchemaField for the renderer."""
        return SchemaField(
            name=self.key,
            type=self.field_type,
            label=self.label,
            description=self.description,
            required=self.required,
            default=self.default,
            options=list(options),
            visible_when=self.visible_when,
            source=self.source,
        )


@dataclass
class CompositeBlockSchema:
    """A composite field: sub-field schema plus remote data endpoints.

    Endpoint templates may contain a ``:platformId`` placeholder.
    """
    id: str
    label: Optional[str] = None
    description: Optional[str] = None
    schema: Dict[str, CompositeSubField] = field(default_factory=dict)
    data_endpoints: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompositeBlockSchema":
        rendering = data.get("rendering") or {}
        sub_fields = rendering.get("schema") or data.get("schema") or {}
        endpoints = rendering.get("dataEndpoints") or data.get("dataEndpoints") or {}
        return cls(
            id=data.get("id", ""),
            label=data.get("label"),
            description=data.get("description"),
            schema={key: CompositeSubField.from_dict(key, value) for key, value in sub_fields.items()},
            data_endpoints=dict(endpoints),
        )

    def missing_endpoints(self) -> List[str]:
        """Sub-field keys whose option ``source`` has no declared endpoint."""
        return [
            key for key, sub in self.schema.items()
            if sub.needs_remote_options() and sub.source not in self.data_endpoints
        ]


@dataclass
class EditorBlock:
    """One block of ``schema.editor.blocks``.

    ``targets`` blocks are composite, ``form`` blocks carry fields and groups,
    the remaining types are rendered from their ``rendering`` hints.
    """
    id: str
    type: str
    label: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    constraints: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    rendering: Dict[str, Any] = field(default_factory=dict)
    fields: List[SchemaField] = field(default_factory=list)
    groups: List[FieldGroup] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorBlock":
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            label=data.get("label"),
            description=data.get("description"),
            required=bool(data.get("required", False)),
            constraints=dict(data.get("constraints") or {}),
            settings=dict(data.get("settings") or {}),
            rendering=dict(data.get("rendering") or {}),
            fields=[SchemaField.from_dict(f) for f in data.get("fields") or []],
            groups=[FieldGroup.from_dict(g) for g in data.get("groups") or []],
            raw=data,
        )

    def as_composite(self) -> CompositeBlockSchema:
        return CompositeBlockSchema.from_dict(self.raw or {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "rendering": self.rendering,
        })


@dataclass
class PlatformSchema:
    """The schema of one platform: ``{editor, settings, credentials, template}``."""
    platform_id: str
    blocks: List[EditorBlock] = field(default_factory=list)
    constraints: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    credentials: Dict[str, Any] = field(default_factory=dict)
    template: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, platform_id: str, data: Dict[str, Any]) -> "PlatformSchema":
        editor = data.get("editor") or {}
        return cls(
            platform_id=platform_id,
            blocks=[EditorBlock.from_dict(b) for b in editor.get("blocks") or []],
            constraints=dict(editor.get("constraints") or {}),
            settings=dict(data.get("settings") or {}),
            credentials=dict(data.get("credentials") or {}),
            template=dict(data.get("template") or {}),
        )

    def targets_block(self) -> Optional[EditorBlock]:
        for block in self.blocks:
            if block.type == "targets":
                return block
        return None

    def form_blocks(self) -> List[EditorBlock]:
        return [block for block in self.blocks if block.type == "form"]

    def max_length(self, default: int = 1000) -> int:
        return self.constraints.get("maxLength") or default


@dataclass
class TemplateDefinition:
    """A template variable definition; several may share one canonical name."""
    name: str
    canonical_name: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    label: Optional[str] = None
    type: Optional[str] = None
    source: Optional[str] = None
    parsed_field: Optional[str] = None
    editable: Optional[bool] = None
    show_when_empty: Optional[bool] = None
    icon: Optional[str] = None
    default_value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateDefinition":
        return cls(
            name=data.get("name", ""),
            canonical_name=data.get("canonicalName"),
            aliases=list(data.get("aliases") or []),
            label=data.get("label"),
            type=data.get("type"),
            source=data.get("source"),
            parsed_field=data.get("parsedField"),
            editable=data.get("editable"),
            show_when_empty=data.get("showWhenEmpty"),
            icon=data.get("icon"),
            default_value=data.get("defaultValue"),
        )

    @property
    def canonical(self) -> str:
        return self.canonical_name or self.name


@dataclass
class TemplateRecord:
    """A template as served by the catalog endpoints."""
    id: str
    name: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    platform: Optional[str] = None
    is_default: bool = False
    template: Dict[str, Any] = field(default_factory=dict)
    translations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    variables: List[str] = field(default_factory=list)
    variable_definitions: List[TemplateDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateRecord":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            description=data.get("description"),
            category=data.get("category"),
            platform=data.get("platform"),
            is_default=bool(data.get("isDefault", False)),
            template=dict(data.get("template") or {}),
            translations=dict(data.get("translations") or {}),
            variables=list(data.get("variables") or []),
            variable_definitions=[
                TemplateDefinition.from_dict(d) for d in data.get("variableDefinitions") or []
            ],
        )

    def localized_name(self, lang: str) -> str:
        """Name in ``lang`` when a translation exists, else the stored name.

        ``lang`` may carry a region ("de-DE"); English always uses the stored name.
        """
        lang = (lang or "").split("-")[0]
        translated = None
        if lang and lang != "en":
            translated = (self.translations.get(lang) or {}).get("name")
        return translated or self.name or self.id


@dataclass
class TargetsConfig:
    """Recipient selection attached to a template application."""
    mode: str = "all"
    individual: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    target_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    template_locale: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("mode", "individual", "groups", "targetNames", "groupNames", "templateLocale")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TargetsConfig":
        data = data or {}
        return cls(
            mode=data.get("mode") or "all",
            individual=list(data.get("individual") or []),
            groups=list(data.get("groups") or []),
            target_names=data.get("targetNames"),
            group_names=data.get("groupNames"),
            template_locale=data.get("templateLocale"),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        result["mode"] = self.mode
        if self.individual:
            result["individual"] = list(self.individual)
        if self.groups:
            result["groups"] = list(self.groups)
        if self.target_names is not None:
            result["targetNames"] = list(self.target_names)
        if self.group_names is not None:
            result["groupNames"] = list(self.group_names)
        if self.template_locale is not None:
            result["templateLocale"] = self.template_locale
        return result


@dataclass
class AppliedTemplateEntry:
    """Audit record of one template application, stored in ``_templates``."""
    id: str
    template_id: str
    template_name: str
    targets: Optional[Dict[str, Any]] = None
    specific_files: List[str] = field(default_factory=list)
    applied_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppliedTemplateEntry":
        return cls(
            id=data.get("id", ""),
            template_id=data.get("templateId", ""),
            template_name=data.get("templateName") or data.get("templateId", ""),
            targets=data.get("targets"),
            specific_files=list(data.get("specificFiles") or []),
            applied_at=data.get("appliedAt", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "templateId": self.template_id,
            "templateName": self.template_name,
            "targets": self.targets,
            "specificFiles": list(self.specific_files),
            "appliedAt": self.applied_at,
        }
