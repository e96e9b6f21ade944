"""
Field Renderer.

Turns a SchemaField plus its current value into a ControlDescriptor: a plain
description of the control a host should draw, with change and click
handlers already bound to the field. Rendering is a pure function of its
inputs; identical inputs produce equal descriptors.

Dispatch is a table keyed by FieldType. The table is checked against the
enumeration when this module is imported, so a new field type without a
renderer fails immediately.

Example:
    >>> changes = []
    >>> field = SchemaField.from_dict({"name": "seats", "type": "number"})
    >>> control = render_field(field, 12, lambda name, value: changes.append((name, value)))
    >>> control.change("")
    >>> changes
    [('seats', None)]
"""
import logging
from dataclasses import dataclass, field as dataclass_field, replace
from typing import Any, Callable, Dict, List, Optional

from schema.models import FieldGroup, FieldOption, FieldType, SchemaField
from .normalize import (
    coerce_bool,
    coerce_list,
    coerce_mapping,
    coerce_number,
    coerce_scalar,
)
from .target_list import TargetListView, find_search_term
from .translate import Translator, default_translate, label_for

logger = logging.getLogger(__name__)

OnChange = Callable[[str, Any], None]
ButtonAction = Callable[[str, SchemaField, Dict[str, Any]], None]


@dataclass
class ControlDescriptor:
    """Description of one rendered control.

    ``kind`` selects the widget family (text, textarea, number, checkbox,
    select, target-list, button, composite, mapping, unsupported);
    ``input_type`` refines text inputs (url, password, date, ...).
    Handlers are excluded from equality.
    """
    name: str
    kind: str
    label: str = ""
    value: Any = None
    input_type: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None
    required: bool = False
    disabled: bool = False
    read_only: bool = False
    multiple: bool = False
    options: List[FieldOption] = dataclass_field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    width: Optional[int] = None
    helper: Optional[str] = None
    children: List["ControlDescriptor"] = dataclass_field(default_factory=list)
    target_list: Optional[TargetListView] = dataclass_field(default=None, compare=False)
    change_handler: Optional[Callable[[Any], None]] = dataclass_field(default=None, repr=False, compare=False)
    click_handler: Optional[Callable[[], None]] = dataclass_field(default=None, repr=False, compare=False)

    def change(self, raw_value: Any) -> None:
        """Forward a raw input value; ignored for disabled or read-only controls."""
        if self.disabled or self.read_only or self.change_handler is None:
            return
        self.change_handler(raw_value)

    def click(self) -> None:
        if self.disabled or self.click_handler is None:
            return
        self.click_handler()


@dataclass
class RenderContext:
    """Everything a render pass needs beyond the field itself.

    Attributes:
        platform_id: Required by target-list fields and button actions
        form_values: All current values (buttons forward them, filters read them)
        all_fields: The full field list (target-list filter lookup)
        on_button_action: Host callback ``(action, field, values)``
        translate: ``translate(key, default, **params)``
        api_client: Client handed to target-list views
        render_composite: Host hook that renders composite fields
    """
    platform_id: Optional[str] = None
    form_values: Dict[str, Any] = dataclass_field(default_factory=dict)
    all_fields: List[SchemaField] = dataclass_field(default_factory=list)
    on_button_action: Optional[ButtonAction] = None
    translate: Translator = default_translate
    api_client: Any = None
    render_composite: Optional[Callable[[SchemaField, Any], ControlDescriptor]] = None


@dataclass
class RenderedGroup:
    """A rendered field group; ``id`` is None for an ungrouped field list."""
    id: Optional[str]
    controls: List[ControlDescriptor] = dataclass_field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None
    method: Optional[str] = None
    warnings: List[str] = dataclass_field(default_factory=list)


def _base(field: SchemaField, raw: Any, on_change: OnChange, error: Optional[str],
          ctx: RenderContext, kind: str, **overrides: Any) -> ControlDescriptor:
    translate = ctx.translate
    description = label_for(translate, field.description, "") or None
    control = ControlDescriptor(
        name=field.name,
        kind=kind,
        label=label_for(translate, field.label, field.name),
        value=coerce_scalar(raw, field.default),
        description=description,
        placeholder=label_for(translate, field.placeholder, "") or None,
        helper_text=error or description,
        error=error,
        required=field.required,
        disabled=field.ui.disabled,
        read_only=field.read_only,
        width=field.ui.width,
        helper=field.helper,
        change_handler=lambda raw: on_change(field.name, raw),
    )
    return replace(control, **overrides) if overrides else control


def _rule_value(field: SchemaField, rule_type: str) -> Optional[float]:
    for rule in field.validation:
        if rule.type == rule_type:
            return rule.value
    return None


def _render_text(field, value, on_change, error, ctx):
    return _base(field, value, on_change, error, ctx, "text", input_type=field.type)


def _render_textarea(field, value, on_change, error, ctx):
    return _base(field, value, on_change, error, ctx, "textarea")


def _render_password(field, value, on_change, error, ctx):
    return _base(field, value, on_change, error, ctx, "text", input_type="password")


def _render_number(field, value, on_change, error, ctx):
    if value is None or value == "":
        shown = field.default if field.default is not None else ""
    else:
        shown = value
    return _base(
        field, value, on_change, error, ctx, "number",
        input_type="number",
        value=shown,
        min=_rule_value(field, "min"),
        max=_rule_value(field, "max"),
        change_handler=lambda raw: on_change(field.name, coerce_number(raw, field.default)),
    )


def _render_boolean(field, value, on_change, error, ctx):
    return _base(
        field, value, on_change, error, ctx, "checkbox",
        value=coerce_bool(value),
        change_handler=lambda raw: on_change(field.name, coerce_bool(raw)),
    )


def _translated_options(field: SchemaField, translate: Translator) -> List[FieldOption]:
    return [
        FieldOption(label=label_for(translate, option.label, str(option.value)), value=option.value,
                    disabled=option.disabled)
        for option in field.options
    ]


def _render_select(field, value, on_change, error, ctx):
    multiple = field.type == FieldType.MULTISELECT.value
    if not field.options:
        return _base(
            field, value, on_change, error, ctx, "select",
            multiple=multiple,
            disabled=True,
            helper_text=ctx.translate("common.noOptionsAvailable", "No options available"),
        )
    if multiple:
        return _base(
            field, value, on_change, error, ctx, "select",
            multiple=True,
            value=coerce_list(value),
            options=_translated_options(field, ctx.translate),
            change_handler=lambda raw: on_change(field.name, coerce_list(raw)),
        )
    return _base(
        field, value, on_change, error, ctx, "select",
        options=_translated_options(field, ctx.translate),
    )


def _date_renderer(input_type: str):
    def render(field, value, on_change, error, ctx):
        return _base(field, value, on_change, error, ctx, "text", input_type=input_type)
    return render


def _render_target_list(field, value, on_change, error, ctx):
    if not ctx.platform_id:
        message = ctx.translate("schema.platformIdRequiredTargetList",
                                "Platform ID is required for target-list field")
        logger.warning(f"Target list '{field.name}' rendered without a platform id")
        return _base(field, value, on_change, error, ctx, "target-list", warning=message, disabled=True)

    view = TargetListView(
        field,
        ctx.platform_id,
        client=ctx.api_client,
        search_term=find_search_term(field, ctx.all_fields, ctx.form_values),
    )
    return _base(field, value, on_change, error, ctx, "target-list", target_list=view)


def _render_button(field, value, on_change, error, ctx):
    values = dict(ctx.form_values)

    def click():
        if field.action and ctx.platform_id and ctx.on_button_action is not None:
            ctx.on_button_action(field.action, field, values)

    return _base(field, value, on_change, error, ctx, "button", change_handler=None, click_handler=click)


def _render_composite(field, value, on_change, error, ctx):
    if ctx.render_composite is not None:
        return ctx.render_composite(field, coerce_mapping(value))
    logger.warning(f"Composite field '{field.name}' has no composite renderer")
    return _base(
        field, value, on_change, error, ctx, "composite",
        value=coerce_mapping(value),
        disabled=True,
        warning=f"Composite field '{field.name}' cannot be rendered without a composite controller",
    )


def _render_mapping(field, value, on_change, error, ctx):
    """One select per selected group; each edit emits the whole mapping."""
    mapping = coerce_mapping(value)
    groups = [str(group) for group in coerce_list(ctx.form_values.get("groups"))]
    if not groups:
        return _base(
            field, value, on_change, error, ctx, "mapping",
            value=mapping,
            helper_text=ctx.translate("common.noSelection", "No selection"),
        )

    children = []
    for group in groups:
        current = mapping.get(group) or ""
        select_field = SchemaField(
            name=f"mapping_{group}",
            type=FieldType.SELECT.value,
            label=group,
            options=list(field.options),
            default=current,
        )
        children.append(_render_select(
            select_field,
            current,
            lambda _name, new_value, g=group: on_change(field.name, {**mapping, g: new_value}),
            None,
            ctx,
        ))
    return _base(field, value, on_change, error, ctx, "mapping", value=mapping, children=children,
                 change_handler=None)


def _render_unsupported(field, value, on_change, error, ctx):
    return _base(
        field, value, on_change, error, ctx, "unsupported",
        disabled=True,
        helper_text=f"Unsupported field type: {field.type}",
    )


_RENDERERS = {
    FieldType.TEXT: _render_text,
    FieldType.URL: _render_text,
    FieldType.TEXTAREA: _render_textarea,
    FieldType.NUMBER: _render_number,
    FieldType.PASSWORD: _render_password,
    FieldType.BOOLEAN: _render_boolean,
    FieldType.SELECT: _render_select,
    FieldType.MULTISELECT: _render_select,
    FieldType.DATE: _date_renderer("date"),
    FieldType.TIME: _date_renderer("time"),
    FieldType.DATETIME: _date_renderer("datetime-local"),
    FieldType.TARGET_LIST: _render_target_list,
    FieldType.BUTTON: _render_button,
    FieldType.COMPOSITE: _render_composite,
    FieldType.MAPPING: _render_mapping,
}

_missing = [member.value for member in FieldType if member not in _RENDERERS]
if _missing:
    raise RuntimeError(f"No renderer registered for field types: {', '.join(_missing)}")


def render_field(field: SchemaField, value: Any, on_change: OnChange, error: Optional[str] = None,
                 context: Optional[RenderContext] = None) -> ControlDescriptor:
    """
    Render one field.

    Args:
        field: Field definition
        value: Current value (any persisted encoding)
        on_change: Called as ``on_change(field_name, new_value)``
        error: Validation message to show with the control
        context: Render context; defaults to an empty one

    Returns:
        ControlDescriptor for the field. Unknown types render as a disabled
        control naming the type; nothing raises.
    """
    ctx = context or RenderContext()
    field_type = field.field_type
    if field_type is None:
        logger.warning(f"Unsupported field type '{field.type}' for field '{field.name}'")
        return _render_unsupported(field, value, on_change, error, ctx)
    return _RENDERERS[field_type](field, value, on_change, error, ctx)


def sort_fields(fields: List[SchemaField]) -> List[SchemaField]:
    """Stable sort by ``ui.order``; fields without an order go last."""
    return sorted(fields, key=lambda f: f.ui.order)


def render_schema(
    fields: List[SchemaField],
    values: Dict[str, Any],
    on_change: OnChange,
    errors: Optional[Dict[str, str]] = None,
    groups: Optional[List[FieldGroup]] = None,
    context: Optional[RenderContext] = None
) -> List[RenderedGroup]:
    """
    Render a field list, optionally bucketed into groups.

    Fields are sorted by ``ui.order``; hidden fields and fields whose
    ``visibleWhen`` is not satisfied are skipped. With groups, only fields a
    group names are rendered, and names without a matching field become a
    warning on that group.

    Returns:
        One RenderedGroup per group, or a single ungrouped RenderedGroup
    """
    errors = errors or {}
    ctx = context or RenderContext()
    if not ctx.form_values:
        ctx = replace(ctx, form_values=dict(values))
    if not ctx.all_fields:
        ctx = replace(ctx, all_fields=list(fields))

    def render_subset(subset: List[SchemaField]) -> List[ControlDescriptor]:
        return [
            render_field(f, values.get(f.name), on_change, errors.get(f.name), ctx)
            for f in sort_fields(subset)
            if f.is_visible(values)
        ]

    if not groups:
        return [RenderedGroup(id=None, controls=render_subset(fields))]

    by_name = {f.name: f for f in fields}
    rendered = []
    for group in groups:
        members = []
        warnings = []
        for name in group.fields:
            if name in by_name:
                members.append(by_name[name])
            else:
                message = f"Group '{group.id}' references unknown field '{name}'"
                logger.warning(message)
                warnings.append(message)
        rendered.append(RenderedGroup(
            id=group.id,
            controls=render_subset(members),
            title=label_for(ctx.translate, group.title, "") or None,
            description=label_for(ctx.translate, group.description, "") or None,
            method=group.method,
            warnings=warnings,
        ))
    return rendered