"""
Templates package.

Modules:
    variables: Variable Alias Resolver and placeholder helpers
    apply: Template Apply Orchestrator
    catalog: Cached template listing and localized names
"""
from .variables import (
    CanonicalVariable,
    ResolvedVariable,
    VariableAliasResolver,
    build_template_variables,
    find_unfulfilled_variables,
    group_definitions,
    replace_template_variables,
    set_disabled,
)
from .apply import (
    ApplyResult,
    TemplateApplier,
    format_targets_summary,
    remove_applied_template,
)
from .catalog import TemplateCatalog

__all__ = [
    "CanonicalVariable",
    "ResolvedVariable",
    "VariableAliasResolver",
    "build_template_variables",
    "find_unfulfilled_variables",
    "group_definitions",
    "replace_template_variables",
    "set_disabled",
    "ApplyResult",
    "TemplateApplier",
    "format_targets_summary",
    "remove_applied_template",
    "TemplateCatalog",
]
