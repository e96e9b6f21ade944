"""
Composite package.

Exports:
    CompositeFieldController: Loads, defaults, syncs and edits composite values
    CompositeView, TargetSelection, AddTargetResult: Controller results
"""
from .controller import (
    CompositeFieldController,
    CompositeView,
    TargetSelection,
    AddTargetResult,
    LOADING,
    READY,
)

__all__ = [
    "CompositeFieldController",
    "CompositeView",
    "TargetSelection",
    "AddTargetResult",
    "LOADING",
    "READY",
]
