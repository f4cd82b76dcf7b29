"""Decomposition controller: lazy, one-level-at-a-time expansion of the tree.

Per node: UNEXPANDED -> LOADING -> EXPANDED, or LOADING -> UNEXPANDED on
failure so the user can retry. TERMINAL nodes never enter LOADING. A node
that already has children toggles between EXPANDED and COLLAPSED without
calling the backend.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from breakitdown.engine.normalizer import normalize
from breakitdown.engine.retry import RetryPolicy
from breakitdown.engine.tree import (
    DecompositionNode,
    NodeState,
    depth_of,
    find_by_id,
    find_parent_name,
    new_node,
    replace_node,
    with_children,
    with_state,
)
from breakitdown.errors import DepthExceeded, NodeNotFound
from breakitdown.llm.client import Completer, Modality
from breakitdown.llm.prompts import StyleOptions, build_decomposition_prompt
from breakitdown.models.decomposition import DecompositionPayload

logger = logging.getLogger(__name__)

# listener(reason, node_id)
ChangeListener = Callable[[str, str], None]
ImageLookup = Callable[[str], Awaitable[Any]]


async def decompose(
    gateway: Completer,
    item_name: str,
    parent_context: str | None = None,
    style: StyleOptions | None = None,
    *,
    max_depth: int = 6,
    language: str | None = None,
) -> DecompositionPayload:
    """One prompt -> completion -> normalize round. No tree, no retries."""
    prompt = build_decomposition_prompt(item_name, parent_context, style, max_depth=max_depth, language=language)
    raw = await gateway.complete(prompt, Modality.TEXT)
    payload = normalize(raw)
    if payload.parent_item != item_name:
        logger.debug("Model echoed parent_item %r for %r", payload.parent_item, item_name)
    return payload


@dataclass(frozen=True)
class ExpansionOutcome:
    node_id: str
    action: str  # "expanded", "collapsed", "reopened", "terminal", "depth_capped"
    children: tuple[DecompositionNode, ...] = ()

    @property
    def fetched(self) -> bool:
        return self.action == "expanded"


class DecompositionController:
    """Owns the live tree and serialises every mutation through ``_commit``."""

    def __init__(
        self,
        tree: DecompositionNode,
        gateway: Completer,
        *,
        max_depth: int = 6,
        retry: RetryPolicy | None = None,
        style: StyleOptions | None = None,
        language: str | None = None,
        image_lookup: ImageLookup | None = None,
    ) -> None:
        self._tree = tree
        self.gateway = gateway
        self.max_depth = max_depth
        self.retry = retry or RetryPolicy()
        self.style = style
        self.language = language
        self.image_lookup = image_lookup
        self._inflight: dict[str, asyncio.Future[ExpansionOutcome]] = {}
        self._listeners: list[ChangeListener] = []
        self._background: set[asyncio.Task] = set()

    # == State ==

    @property
    def tree(self) -> DecompositionNode:
        return self._tree

    @property
    def loading_ids(self) -> frozenset[str]:
        return frozenset(self._inflight)

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _commit(self, tree: DecompositionNode, reason: str, node_id: str) -> None:
        self._tree = tree
        for listener in self._listeners:
            listener(reason, node_id)

    def _set_state(self, node_id: str, state: NodeState, reason: str) -> None:
        self._commit(replace_node(self._tree, node_id, lambda n: with_state(n, state)), reason, node_id)

    def _require(self, node_id: str) -> DecompositionNode:
        node = find_by_id(self._tree, node_id)
        if node is None:
            raise NodeNotFound(node_id)
        return node

    # == Expansion ==

    async def expand_node(self, node_id: str, parent_context: str | None = None) -> ExpansionOutcome:
        """Expand, toggle or ignore ``node_id`` depending on its state.

        A second call while the first is in flight joins it instead of
        issuing another backend request.
        """
        pending = self._inflight.get(node_id)
        if pending is not None:
            logger.debug("Expansion of %s already in flight; joining", node_id)
            return await asyncio.shield(pending)

        node = self._require(node_id)

        if node.is_terminal:
            return ExpansionOutcome(node_id, "terminal")

        if node.has_children:
            if node.is_expanded:
                self._set_state(node_id, NodeState.COLLAPSED, "collapse")
                return ExpansionOutcome(node_id, "collapsed", node.children)
            self._set_state(node_id, NodeState.EXPANDED, "expand")
            return ExpansionOutcome(node_id, "reopened", node.children)

        depth = depth_of(self._tree, node_id)
        if depth >= self.max_depth:
            guard = DepthExceeded(node_id, depth, self.max_depth)
            logger.info("%s; treating %r as terminal", guard, node.name)
            self._set_state(node_id, NodeState.TERMINAL, "depth_cap")
            return ExpansionOutcome(node_id, "depth_capped")

        if parent_context is None:
            parent_context = find_parent_name(self._tree, node_id)

        future: asyncio.Future[ExpansionOutcome] = asyncio.get_running_loop().create_future()
        self._inflight[node_id] = future
        self._set_state(node_id, NodeState.LOADING, "loading")

        try:
            payload = await self.retry.run(
                lambda: self._fetch(node.name, parent_context),
                label=f"decompose {node.name!r}",
            )
            children = self._build_children(payload, depth + 1)
            self._commit(
                replace_node(self._tree, node_id, lambda n: with_children(n, children)),
                "expanded",
                node_id,
            )
        except Exception as e:
            logger.warning("Decomposition of %r failed: %s", node.name, e)
            future.set_exception(e)
            future.exception()  # joiners re-raise it; mark retrieved for the no-joiner case
            self._rollback(node_id)
            raise
        except asyncio.CancelledError:
            self._rollback(node_id)
            future.cancel()
            raise
        finally:
            self._inflight.pop(node_id, None)

        logger.info(
            "Expanded %r at depth %d into %d parts (%d raw)",
            node.name, depth, len(children), sum(c.is_raw_material for c in children),
        )

        outcome = ExpansionOutcome(node_id, "expanded" if children else "terminal", children)
        future.set_result(outcome)
        self._decorate(children)
        return outcome

    async def _fetch(self, item_name: str, parent_context: str | None) -> DecompositionPayload:
        return await decompose(
            self.gateway,
            item_name,
            parent_context,
            self.style,
            max_depth=self.max_depth,
            language=self.language,
        )

    def _build_children(self, payload: DecompositionPayload, child_depth: int) -> tuple[DecompositionNode, ...]:
        capped = child_depth >= self.max_depth
        return tuple(
            new_node(
                part.name,
                part.description,
                is_raw_material=part.is_raw_material,
                terminal=capped,
                icon=part.icon,
                search_term=part.search_term,
            )
            for part in payload.parts
        )

    def _rollback(self, node_id: str) -> None:
        node = find_by_id(self._tree, node_id)
        if node is not None and node.is_loading:
            self._set_state(node_id, NodeState.UNEXPANDED, "rollback")

    # == Recursive walk ==

    async def expand_all(self, node_id: str | None = None) -> AsyncGenerator[dict[str, Any], None]:
        """Expand every expandable node below ``node_id`` level by level.

        Yields one event per visited node. Terminates because children at
        ``max_depth`` are created terminal.
        """
        frontier = [node_id or self._tree.id]
        level = 0
        while frontier:
            tasks = [asyncio.ensure_future(self._walk_step(nid)) for nid in frontier]
            next_frontier: list[str] = []
            try:
                for done in asyncio.as_completed(tasks):
                    event, child_ids = await done
                    event["level"] = level
                    next_frontier.extend(child_ids)
                    yield event
            finally:
                for t in tasks:
                    if not t.done():
                        t.cancel()
            frontier = next_frontier
            level += 1

    async def _walk_step(self, node_id: str) -> tuple[dict[str, Any], list[str]]:
        node = find_by_id(self._tree, node_id)
        if node is None:
            return {"type": "error", "node_id": node_id, "message": "node not found"}, []

        base = {"node_id": node_id, "name": node.name}
        if node.is_terminal:
            return {**base, "type": "terminal"}, []

        if node.has_children:
            if not node.is_expanded:
                self._set_state(node_id, NodeState.EXPANDED, "expand")
            children = node.children
            event_type = "reused"
        else:
            try:
                outcome = await self.expand_node(node_id)
            except Exception as e:
                return {**base, "type": "error", "message": str(e)}, []
            if outcome.action == "depth_capped":
                return {**base, "type": "terminal"}, []
            children = outcome.children
            event_type = "expanded"

        child_ids = [c.id for c in children if not c.is_terminal]
        return {
            **base,
            "type": event_type,
            "children": [c.name for c in children],
            "raw_materials": [c.name for c in children if c.is_raw_material],
        }, child_ids

    # == Decoration ==

    def _decorate(self, children: tuple[DecompositionNode, ...]) -> None:
        """Fire-and-forget photo lookups; a failed lookup keeps the emoji icon."""
        if self.image_lookup is None:
            return
        for child in children:
            task = asyncio.ensure_future(self._decorate_one(child.id, child.search_term or child.name))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _decorate_one(self, node_id: str, term: str) -> None:
        try:
            result = await self.image_lookup(term)
        except Exception as e:
            logger.debug("Image lookup for %r failed: %s", term, e)
            return
        url = getattr(result, "thumbnail_url", None) or getattr(result, "image_url", None)
        if not url or find_by_id(self._tree, node_id) is None:
            return
        self._commit(
            replace_node(self._tree, node_id, lambda n: replace(n, image_url=url)),
            "decorated",
            node_id,
        )

    async def drain_background(self) -> None:
        """Wait for outstanding decoration lookups."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
