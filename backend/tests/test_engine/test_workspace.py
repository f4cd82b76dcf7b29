"""Tests for workspaces, snapshots and the registry."""

from __future__ import annotations

import asyncio

import pytest

from breakitdown.engine.tree import DecompositionNode, NodeState, iter_nodes, new_node, replace_node, with_state
from breakitdown.engine.workspace import Workspace, WorkspaceRegistry, node_from_document, node_to_document
from breakitdown.errors import InvalidSnapshot, NodeNotFound, WorkspaceNotFound
from breakitdown.llm.prompts import StyleOptions
from breakitdown.models.session import NodeDocument, SessionSnapshot
from tests.conftest import CARD_JSON, SMARTPHONE_JSON, ScriptedGateway, decomposition_json


def _expanded_workspace(retry, **kwargs) -> tuple[Workspace, ScriptedGateway]:
    gw = ScriptedGateway([SMARTPHONE_JSON], default=CARD_JSON)
    ws = Workspace(new_node("智能手机", icon="📱"), gw, retry=retry, style=StyleOptions(humor_level=80), **kwargs)
    asyncio.run(ws.expand(ws.tree.id))
    return ws, gw


def test_revision_tracks_changes(fast_retry):
    ws, _ = _expanded_workspace(fast_retry)
    # loading + expanded
    assert ws.revision == 2
    ws.drag(ws.tree.id, 10.0, 0.0)
    assert ws.revision == 3


def test_layout_is_cached_per_revision(fast_retry):
    ws, _ = _expanded_workspace(fast_retry)
    first = ws.layout()
    assert ws.layout() is first
    ws.drag(ws.tree.children[0].id, 5.0, 5.0)
    assert ws.layout() is not first


def test_card_marks_layout(fast_retry):
    ws, gw = _expanded_workspace(fast_retry)
    card = asyncio.run(ws.card(ws.tree.id))
    assert card is not None
    root = next(n for n in ws.layout().nodes if n.node_id == ws.tree.id)
    assert root.has_card
    assert len(gw.calls) == 2


def test_card_unknown_node(fast_retry):
    ws, _ = _expanded_workspace(fast_retry)
    with pytest.raises(NodeNotFound):
        asyncio.run(ws.card("missing"))


def test_snapshot_round_trip(fast_retry):
    screen_json = decomposition_json("屏幕", [("玻璃", False), ("硅砂", True)])
    gw = ScriptedGateway([SMARTPHONE_JSON, screen_json], default=CARD_JSON)
    ws = Workspace(new_node("智能手机", icon="📱"), gw, retry=fast_retry, style=StyleOptions(humor_level=80))

    async def build():
        await ws.expand(ws.tree.id)
        screen_id = ws.tree.children[0].id
        await ws.expand(screen_id)
        await ws.card(screen_id)
        # Second toggle hides the third level.
        await ws.expand(screen_id)

    asyncio.run(build())
    screen = ws.tree.children[0]
    assert screen.state is NodeState.COLLAPSED
    assert [c.state for c in screen.children] == [NodeState.UNEXPANDED, NodeState.TERMINAL]
    ws.drag(screen.id, 0.0, 120.0)
    ws.drag(ws.tree.children[1].id, 40.0, -15.0)

    snapshot = ws.to_snapshot()
    # Through JSON, as the session store does it.
    restored_doc = SessionSnapshot.model_validate_json(snapshot.model_dump_json())
    restored = Workspace.from_snapshot(restored_doc, gw, retry=fast_retry)

    assert restored.tree == ws.tree
    assert restored.to_snapshot() == snapshot
    assert restored.cards.cache == ws.cards.cache
    assert set(restored.overrides) >= {screen.id, *(c.id for c in screen.children)}
    assert restored.style.humor_level == 80
    assert restored.layout().positions() == ws.layout().positions()



def test_snapshot_saves_loading_as_unexpanded():
    child = new_node("Gear")
    tree = DecompositionNode(id="r", name="Clock", state=NodeState.EXPANDED, children=(child,))
    tree = replace_node(tree, child.id, lambda n: with_state(n, NodeState.LOADING))

    doc = node_to_document(tree)
    assert doc.children[0].state == "unexpanded"
    assert node_from_document(doc).children[0].state is NodeState.UNEXPANDED


def test_invalid_snapshot():
    with pytest.raises(InvalidSnapshot):
        node_from_document(NodeDocument(id="r", name="Clock", state="expanded"))
    with pytest.raises(InvalidSnapshot):
        node_from_document(NodeDocument(id="r", name="Clock", state="exploded"))


def test_restored_workspace_keeps_expanding(fast_retry):
    ws, _ = _expanded_workspace(fast_retry)
    gw = ScriptedGateway([SMARTPHONE_JSON])
    restored = Workspace.from_snapshot(ws.to_snapshot(), gw, retry=fast_retry)
    screen = restored.tree.children[0]
    outcome = asyncio.run(restored.expand(screen.id))
    assert outcome.action == "expanded"
    assert len(list(iter_nodes(restored.tree))) == 1 + 4 + 4


def test_card_prefetch_after_expansion(fast_retry):
    gw = ScriptedGateway([SMARTPHONE_JSON], default=CARD_JSON)
    ws = Workspace(new_node("智能手机"), gw, retry=fast_retry, card_prefetch=True)

    async def scenario():
        await ws.expand(ws.tree.id)
        await ws.cards.drain()

    asyncio.run(scenario())
    assert ws.tree.id in ws.cards.cache
    assert len(gw.calls) == 2


def test_registry(fast_retry, gateway):
    registry = WorkspaceRegistry(gateway, capacity=2, retry=fast_retry)
    first = registry.create("Chair")
    second = registry.create("Table")
    assert registry.get(first.id) is first
    third = registry.create("Lamp")
    # "second" was least recently used.
    with pytest.raises(WorkspaceNotFound):
        registry.get(second.id)
    assert registry.get(third.id).tree.name == "Lamp"
    assert len(registry) == 2


def test_registry_restore_keeps_id(fast_retry, gateway):
    registry = WorkspaceRegistry(gateway, retry=fast_retry)
    ws = registry.create("Chair")
    restored = registry.restore(ws.to_snapshot(), workspace_id="fixed-id")
    assert restored.id == "fixed-id"
    assert registry.get("fixed-id").tree == ws.tree
