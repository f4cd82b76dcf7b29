"""Radial layout of the visible tree.

The root sits at a fixed centre and spreads its children over a full turn.
Every other node fans its children over a forward-facing sector centred on
the direction from its own parent to itself, so subtrees grow outward.
Distance from the parent grows with ln(depth) rather than linearly, and node
size shrinks with depth down to a floor.

User overrides (node id -> centre) win over computed positions; children of
an overridden node are placed relative to where the node actually is.
Collapsed nodes contribute no children or edges.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Mapping
from dataclasses import dataclass, replace

from breakitdown.engine.tree import DecompositionNode, NodeState, collect_descendant_ids, find_by_id
from breakitdown.errors import NodeNotFound
from breakitdown.models.layout import LayoutEdge, LayoutNode, LayoutResult

Point = tuple[float, float]


@dataclass(frozen=True)
class LayoutOptions:
    center_x: float = 600.0
    center_y: float = 400.0
    radius_step: float = 280.0
    angle_offset: float = 0.0
    child_sector: float = math.pi / 2  # quarter turn
    distance_damping: float = 0.35
    base_size: float = 120.0
    size_step: float = 15.0
    min_size: float = 60.0


def edge_length(level: int, options: LayoutOptions) -> float:
    """Distance between a node at ``level`` (>= 1) and its parent."""
    return options.radius_step * (1.0 + options.distance_damping * math.log(max(level, 1)))


def node_size(level: int, options: LayoutOptions) -> float:
    return max(options.base_size - level * options.size_step, options.min_size)


def child_angles(count: int, heading: float | None, options: LayoutOptions) -> list[float]:
    """Angles for ``count`` children; ``heading`` is None for the root."""
    if count == 0:
        return []
    if heading is None:
        step = 2 * math.pi / count
        return [options.angle_offset + step * i for i in range(count)]
    span = options.child_sector
    step = span / count
    return [heading - span / 2 + step * (i + 0.5) for i in range(count)]


def compute_layout(
    tree: DecompositionNode | None,
    overrides: Mapping[str, Point] | None = None,
    options: LayoutOptions | None = None,
    *,
    loading_ids: Collection[str] = (),
    card_ids: Collection[str] = (),
) -> LayoutResult:
    """Positions and connectors for every visible node. Pure and deterministic."""
    result = LayoutResult()
    if tree is None:
        return result
    options = options or LayoutOptions()
    overrides = overrides or {}

    # (node, level, nominal centre, nominal heading, parent centre)
    stack: list[tuple[DecompositionNode, int, Point, float | None, Point | None]] = [
        (tree, 0, (options.center_x, options.center_y), None, None)
    ]
    while stack:
        node, level, nominal, nominal_heading, parent_center = stack.pop()
        pinned = node.id in overrides
        cx, cy = overrides[node.id] if pinned else nominal
        size = node_size(level, options)

        result.nodes.append(
            LayoutNode(
                node_id=node.id,
                name=node.name,
                description=node.description,
                x=cx,
                y=cy,
                left=cx - size / 2,
                top=cy - size / 2,
                level=level,
                size=size,
                state=node.state.value,
                is_raw_material=node.is_raw_material,
                is_expanded=node.is_expanded,
                is_loading=node.is_loading or node.id in loading_ids,
                has_children=node.has_children,
                has_card=node.id in card_ids,
                is_pinned=pinned,
                icon=node.icon,
                image_url=node.image_url,
            )
        )

        if not (node.is_expanded and node.children):
            continue

        heading: float | None = None
        if parent_center is not None:
            vx, vy = cx - parent_center[0], cy - parent_center[1]
            heading = math.atan2(vy, vx) if (vx or vy) else nominal_heading

        distance = edge_length(level + 1, options)
        placements = []
        for child, angle in zip(node.children, child_angles(len(node.children), heading, options)):
            child_nominal = (cx + distance * math.cos(angle), cy + distance * math.sin(angle))
            placements.append((child, level + 1, child_nominal, angle, (cx, cy)))
            result.edges.append(
                LayoutEdge(
                    id=f"{node.id}-{child.id}",
                    source=node.id,
                    target=child.id,
                    is_raw_material=child.is_raw_material,
                )
            )
        # Reversed so children pop in model order.
        stack.extend(reversed(placements))

    return result


def _unfolded(node: DecompositionNode) -> DecompositionNode:
    """Copy of ``node`` with every collapsed subtree shown."""
    state = NodeState.EXPANDED if node.state is NodeState.COLLAPSED else node.state
    return replace(node, state=state, children=tuple(_unfolded(c) for c in node.children))


def apply_drag(
    tree: DecompositionNode,
    layout: LayoutResult,
    overrides: Mapping[str, Point],
    node_id: str,
    dx: float,
    dy: float,
    options: LayoutOptions | None = None,
) -> dict[str, Point]:
    """Move ``node_id`` and its whole subtree by (dx, dy).

    Returns a new override map. Descendants hidden under a collapsed node
    are pinned where they would have been shown, plus the same offset.
    """
    if find_by_id(tree, node_id) is None:
        raise NodeNotFound(node_id)

    placed = layout.positions()
    hidden: dict[str, Point] | None = None
    moved = dict(overrides)
    for nid in [node_id, *collect_descendant_ids(tree, node_id)]:
        base = placed.get(nid) or overrides.get(nid)
        if base is None:
            if hidden is None:
                hidden = compute_layout(_unfolded(tree), overrides, options).positions()
            base = hidden[nid]
        moved[nid] = (base[0] + dx, base[1] + dy)
    return moved
