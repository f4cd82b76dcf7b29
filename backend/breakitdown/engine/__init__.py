"""Break It Down decomposition engine."""

from breakitdown.engine.controller import DecompositionController, ExpansionOutcome
from breakitdown.engine.layout import LayoutOptions, apply_drag, compute_layout
from breakitdown.engine.tree import DecompositionNode, NodeState
from breakitdown.engine.workspace import Workspace, WorkspaceRegistry

__all__ = [
    "DecompositionController",
    "ExpansionOutcome",
    "LayoutOptions",
    "apply_drag",
    "compute_layout",
    "DecompositionNode",
    "NodeState",
    "Workspace",
    "WorkspaceRegistry",
]
