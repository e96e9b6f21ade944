"""
Editor package.

Exports:
    PlatformEditor: Editing session for one platform
    EditorView, BlockView, AppliedTemplateView: Render results
    DataProvider, StaticDataProvider: Injected host data
"""
from .provider import DataProvider, StaticDataProvider
from .platform_editor import (
    AppliedTemplateView,
    BlockView,
    EditorView,
    PlatformEditor,
)

__all__ = [
    "DataProvider",
    "StaticDataProvider",
    "PlatformEditor",
    "EditorView",
    "BlockView",
    "AppliedTemplateView",
]
