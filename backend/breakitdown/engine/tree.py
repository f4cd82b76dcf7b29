"""Decomposition tree: immutable nodes plus traversal and path-copy updates.

Every update returns a new root. Only the nodes on the path from the root to
the changed node are rebuilt; untouched subtrees are shared between versions,
so a reader holding an old root never sees a half-updated node.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from breakitdown.errors import NodeNotFound


class NodeState(str, enum.Enum):
    TERMINAL = "terminal"  # raw material or depth-capped, never expanded
    UNEXPANDED = "unexpanded"
    LOADING = "loading"
    COLLAPSED = "collapsed"  # has children, hidden
    EXPANDED = "expanded"  # has children, visible


_CHILDLESS_STATES = {NodeState.TERMINAL, NodeState.UNEXPANDED, NodeState.LOADING}


@dataclass(frozen=True)
class DecompositionNode:
    """One item or material in the hierarchy."""

    id: str
    name: str
    description: str = ""
    state: NodeState = NodeState.UNEXPANDED
    is_raw_material: bool = False
    icon: str | None = None
    image_url: str | None = None
    search_term: str | None = None
    children: tuple[DecompositionNode, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.is_raw_material and self.state is not NodeState.TERMINAL:
            raise ValueError(f"raw material {self.name!r} must be terminal, got {self.state.value}")
        if self.state in _CHILDLESS_STATES and self.children:
            raise ValueError(f"{self.state.value} node {self.name!r} cannot have children")
        if self.state in (NodeState.COLLAPSED, NodeState.EXPANDED) and not self.children:
            raise ValueError(f"{self.state.value} node {self.name!r} needs children")

    @property
    def is_expanded(self) -> bool:
        return self.state is NodeState.EXPANDED

    @property
    def is_terminal(self) -> bool:
        return self.state is NodeState.TERMINAL

    @property
    def is_loading(self) -> bool:
        return self.state is NodeState.LOADING

    @property
    def has_children(self) -> bool:
        return bool(self.children)


def new_node_id() -> str:
    return uuid.uuid4().hex


def new_node(
    name: str,
    description: str = "",
    *,
    is_raw_material: bool = False,
    terminal: bool = False,
    icon: str | None = None,
    image_url: str | None = None,
    search_term: str | None = None,
) -> DecompositionNode:
    """Create a childless node with a fresh id."""
    state = NodeState.TERMINAL if (is_raw_material or terminal) else NodeState.UNEXPANDED
    return DecompositionNode(
        id=new_node_id(),
        name=name,
        description=description,
        state=state,
        is_raw_material=is_raw_material,
        icon=icon,
        image_url=image_url,
        search_term=search_term,
    )


# == Traversal ==


def iter_nodes(tree: DecompositionNode) -> Iterator[DecompositionNode]:
    """Depth-first pre-order walk."""
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_by_id(tree: DecompositionNode | None, node_id: str) -> DecompositionNode | None:
    if tree is None:
        return None
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def find_parent(tree: DecompositionNode | None, node_id: str) -> DecompositionNode | None:
    if tree is None:
        return None
    for node in iter_nodes(tree):
        for child in node.children:
            if child.id == node_id:
                return node
    return None


def find_parent_name(tree: DecompositionNode | None, node_id: str) -> str | None:
    parent = find_parent(tree, node_id)
    return parent.name if parent is not None else None


def depth_of(tree: DecompositionNode, node_id: str) -> int:
    """Depth of a node, root = 0. Raises NodeNotFound."""
    path = _path_to(tree, node_id)
    if path is None:
        raise NodeNotFound(node_id)
    return len(path) - 1


def collect_descendant_ids(tree: DecompositionNode | None, node_id: str) -> list[str]:
    """Ids of every node below ``node_id`` at any depth (not including it)."""
    node = find_by_id(tree, node_id)
    if node is None:
        return []
    return [n.id for n in iter_nodes(node) if n.id != node_id]


def _path_to(tree: DecompositionNode, node_id: str) -> list[DecompositionNode] | None:
    """Nodes from root to ``node_id`` inclusive."""
    stack: list[tuple[DecompositionNode, list[DecompositionNode]]] = [(tree, [tree])]
    while stack:
        node, path = stack.pop()
        if node.id == node_id:
            return path
        for child in reversed(node.children):
            stack.append((child, path + [child]))
    return None


# == Updates ==


def replace_node(
    tree: DecompositionNode,
    node_id: str,
    updater: Callable[[DecompositionNode], DecompositionNode],
) -> DecompositionNode:
    """Return a new tree with ``updater`` applied to the node ``node_id``.

    Ancestors on the path are copied; every other subtree is shared.
    """
    path = _path_to(tree, node_id)
    if path is None:
        raise NodeNotFound(node_id)

    updated = updater(path[-1])
    if updated.id != node_id:
        raise ValueError("updater must not change the node id")

    for ancestor in reversed(path[:-1]):
        children = tuple(updated if c.id == updated.id else c for c in ancestor.children)
        updated = replace(ancestor, children=children)
    return updated


def with_state(node: DecompositionNode, state: NodeState) -> DecompositionNode:
    return replace(node, state=state)


def with_children(node: DecompositionNode, children: tuple[DecompositionNode, ...]) -> DecompositionNode:
    """Attach a full child list in one step. An empty list makes the node terminal."""
    if not children:
        return replace(node, state=NodeState.TERMINAL, children=())
    return replace(node, state=NodeState.EXPANDED, children=children)
