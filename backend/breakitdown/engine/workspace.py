"""Workspace: one user's live decomposition session.

Bundles the controller (tree + in-flight expansions), the card generator,
user position overrides and style options, and converts the whole thing to
and from a ``SessionSnapshot`` document.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict

from breakitdown.config import Settings
from breakitdown.engine.cards import KnowledgeCardGenerator, Priority
from breakitdown.engine.controller import DecompositionController, ExpansionOutcome, ImageLookup
from breakitdown.engine.layout import LayoutOptions, Point, apply_drag, compute_layout
from breakitdown.engine.retry import RetryPolicy
from breakitdown.engine.tree import DecompositionNode, NodeState, find_by_id, iter_nodes, new_node
from breakitdown.errors import InvalidSnapshot, NodeNotFound, WorkspaceNotFound
from breakitdown.llm.client import Completer
from breakitdown.llm.prompts import StyleOptions
from breakitdown.models.decomposition import KnowledgeCard
from breakitdown.models.layout import LayoutResult
from breakitdown.models.session import NodeDocument, SessionSnapshot

logger = logging.getLogger(__name__)


# == Snapshot conversion ==


def node_to_document(node: DecompositionNode) -> NodeDocument:
    # An expansion cannot survive a restart, so LOADING is saved as UNEXPANDED.
    state = NodeState.UNEXPANDED if node.is_loading else node.state
    return NodeDocument(
        id=node.id,
        name=node.name,
        description=node.description,
        state=state.value,
        is_raw_material=node.is_raw_material,
        icon=node.icon,
        image_url=node.image_url,
        search_term=node.search_term,
        children=[node_to_document(c) for c in node.children],
    )


def node_from_document(doc: NodeDocument) -> DecompositionNode:
    """Rebuild a node; raises InvalidSnapshot on unknown states or broken invariants."""
    try:
        state = NodeState(doc.state)
    except ValueError:
        raise InvalidSnapshot(f"unknown state {doc.state!r} on {doc.id}") from None
    if state is NodeState.LOADING:
        state = NodeState.UNEXPANDED
    try:
        return DecompositionNode(
            id=doc.id,
            name=doc.name,
            description=doc.description,
            state=state,
            is_raw_material=doc.is_raw_material,
            icon=doc.icon,
            image_url=doc.image_url,
            search_term=doc.search_term,
            children=tuple(node_from_document(c) for c in doc.children),
        )
    except ValueError as e:
        raise InvalidSnapshot(str(e)) from e


class Workspace:
    def __init__(
        self,
        tree: DecompositionNode,
        gateway: Completer,
        *,
        workspace_id: str | None = None,
        overrides: dict[str, Point] | None = None,
        card_cache: dict[str, KnowledgeCard] | None = None,
        style: StyleOptions | None = None,
        max_depth: int = 6,
        retry: RetryPolicy | None = None,
        language: str | None = None,
        card_concurrency: int = 4,
        card_prefetch: bool = False,
        image_lookup: ImageLookup | None = None,
        layout_options: LayoutOptions | None = None,
    ) -> None:
        self.id = workspace_id or uuid.uuid4().hex
        self.style = style or StyleOptions()
        self.controller = DecompositionController(
            tree,
            gateway,
            max_depth=max_depth,
            retry=retry,
            style=self.style,
            language=language,
            image_lookup=image_lookup,
        )
        self.cards = KnowledgeCardGenerator(
            gateway,
            dict(card_cache or {}),
            concurrency=card_concurrency,
            retry=retry,
            language=language,
        )
        self.card_prefetch = card_prefetch
        self.overrides: dict[str, Point] = dict(overrides or {})
        self.layout_options = layout_options or LayoutOptions()
        self.revision = 0
        self._layout_cache: tuple[tuple[int, int], LayoutResult] | None = None
        self.controller.subscribe(self._on_change)

    @property
    def tree(self) -> DecompositionNode:
        return self.controller.tree

    def _on_change(self, reason: str, node_id: str) -> None:
        self.revision += 1
        logger.debug("Workspace %s rev %d: %s %s", self.id, self.revision, reason, node_id)

    # == Operations ==

    async def expand(self, node_id: str, parent_context: str | None = None) -> ExpansionOutcome:
        outcome = await self.controller.expand_node(node_id, parent_context)
        if outcome.fetched and self.card_prefetch:
            node = find_by_id(self.tree, node_id)
            if node is not None:
                self.cards.prefetch([node])
        return outcome

    async def card(self, node_id: str) -> KnowledgeCard | None:
        node = find_by_id(self.tree, node_id)
        if node is None:
            raise NodeNotFound(node_id)
        return await self.cards.get_card(node, Priority.FOREGROUND)

    def drag(self, node_id: str, dx: float, dy: float) -> dict[str, Point]:
        self.overrides = apply_drag(self.tree, self.layout(), self.overrides, node_id, dx, dy, self.layout_options)
        self.revision += 1
        return self.overrides

    def layout(self) -> LayoutResult:
        """Layout for the current tree, recomputed only when something changed."""
        key = (self.revision, len(self.cards.cache))
        if self._layout_cache is not None and self._layout_cache[0] == key:
            return self._layout_cache[1]
        result = compute_layout(
            self.tree,
            self.overrides,
            self.layout_options,
            loading_ids=self.controller.loading_ids,
            card_ids=set(self.cards.cache),
        )
        self._layout_cache = (key, result)
        return result

    def node_count(self) -> int:
        return sum(1 for _ in iter_nodes(self.tree))

    # == Snapshots ==

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            tree=node_to_document(self.tree),
            overrides=dict(self.overrides),
            knowledge_cards=dict(self.cards.cache),
            style=self.style,
        )

    @classmethod
    def from_snapshot(
        cls,
        doc: SessionSnapshot,
        gateway: Completer,
        *,
        workspace_id: str | None = None,
        **options,
    ) -> Workspace:
        return cls(
            node_from_document(doc.tree),
            gateway,
            workspace_id=workspace_id,
            overrides={k: (v[0], v[1]) for k, v in doc.overrides.items()},
            card_cache=dict(doc.knowledge_cards),
            style=doc.style,
            **options,
        )


class WorkspaceRegistry:
    """Live workspaces by id. Least recently used ones are dropped past ``capacity``."""

    def __init__(
        self,
        gateway: Completer,
        *,
        capacity: int = 64,
        max_depth: int = 6,
        retry: RetryPolicy | None = None,
        language: str | None = None,
        card_concurrency: int = 4,
        card_prefetch: bool = False,
        image_lookup: ImageLookup | None = None,
    ) -> None:
        self.gateway = gateway
        self.capacity = capacity
        self._options = {
            "max_depth": max_depth,
            "retry": retry,
            "language": language,
            "card_concurrency": card_concurrency,
            "card_prefetch": card_prefetch,
            "image_lookup": image_lookup,
        }
        self._workspaces: OrderedDict[str, Workspace] = OrderedDict()

    @classmethod
    def from_settings(cls, gateway: Completer, s: Settings, image_lookup: ImageLookup | None = None) -> WorkspaceRegistry:
        return cls(
            gateway,
            capacity=s.max_workspaces,
            max_depth=s.max_depth,
            retry=RetryPolicy.from_settings(s),
            language=s.output_language,
            card_concurrency=s.card_concurrency,
            card_prefetch=s.card_prefetch,
            image_lookup=image_lookup,
        )

    def __len__(self) -> int:
        return len(self._workspaces)

    def create(
        self,
        name: str,
        description: str = "",
        *,
        icon: str | None = None,
        image_url: str | None = None,
        search_term: str | None = None,
        style: StyleOptions | None = None,
    ) -> Workspace:
        root = new_node(name, description, icon=icon, image_url=image_url, search_term=search_term)
        return self._add(Workspace(root, self.gateway, style=style, **self._options))

    def restore(self, doc: SessionSnapshot, workspace_id: str | None = None) -> Workspace:
        return self._add(Workspace.from_snapshot(doc, self.gateway, workspace_id=workspace_id, **self._options))

    def get(self, workspace_id: str) -> Workspace:
        ws = self._workspaces.get(workspace_id)
        if ws is None:
            raise WorkspaceNotFound(workspace_id)
        self._workspaces.move_to_end(workspace_id)
        return ws

    def _add(self, ws: Workspace) -> Workspace:
        self._workspaces[ws.id] = ws
        self._workspaces.move_to_end(ws.id)
        while len(self._workspaces) > self.capacity:
            evicted, _ = self._workspaces.popitem(last=False)
            logger.info("Evicted workspace %s", evicted)
        logger.info("Workspace %s ready (%r)", ws.id, ws.tree.name)
        return ws
