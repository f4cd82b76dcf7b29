"""Layout output — derived view of the tree, never persisted as source of truth."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LayoutNode(BaseModel):
    node_id: str
    name: str
    description: str = ""
    # Visual centre
    x: float
    y: float
    # Top-left corner for a node of ``size`` centred on (x, y)
    left: float
    top: float
    level: int = 0
    size: float = 120.0
    state: str = "unexpanded"
    is_raw_material: bool = False
    is_expanded: bool = False
    is_loading: bool = False
    has_children: bool = False
    has_card: bool = False
    is_pinned: bool = False  # position comes from a user override
    icon: str | None = None
    image_url: str | None = None


class LayoutEdge(BaseModel):
    id: str
    source: str
    target: str
    is_raw_material: bool = False


class LayoutResult(BaseModel):
    nodes: list[LayoutNode] = Field(default_factory=list)
    edges: list[LayoutEdge] = Field(default_factory=list)

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n.node_id: (n.x, n.y) for n in self.nodes}
