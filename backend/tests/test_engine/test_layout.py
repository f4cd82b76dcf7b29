"""Tests for the radial layout engine."""

from __future__ import annotations

import math

import pytest

from breakitdown.engine.layout import LayoutOptions, apply_drag, compute_layout, edge_length, node_size
from breakitdown.engine.tree import DecompositionNode, NodeState
from breakitdown.errors import NodeNotFound


def _leaf(node_id: str, raw: bool = False) -> DecompositionNode:
    state = NodeState.TERMINAL if raw else NodeState.UNEXPANDED
    return DecompositionNode(id=node_id, name=node_id.upper(), state=state, is_raw_material=raw)


def _tree(collapsed: bool = False) -> DecompositionNode:
    a = DecompositionNode(
        id="a",
        name="A",
        state=NodeState.COLLAPSED if collapsed else NodeState.EXPANDED,
        children=(_leaf("a1"), _leaf("a2"), _leaf("a3", raw=True)),
    )
    return DecompositionNode(id="root", name="Root", state=NodeState.EXPANDED, children=(a, _leaf("b"), _leaf("c"), _leaf("d")))


def test_root_at_center():
    layout = compute_layout(_leaf("root"))
    node = layout.nodes[0]
    assert (node.x, node.y) == (600.0, 400.0)
    assert node.size == 120.0
    assert (node.left, node.top) == (540.0, 340.0)
    assert layout.edges == []


def test_empty_tree():
    layout = compute_layout(None)
    assert layout.nodes == [] and layout.edges == []


def test_root_children_evenly_around_full_turn():
    pos = compute_layout(_tree()).positions()
    assert pos["a"] == pytest.approx((880.0, 400.0))
    assert pos["b"] == pytest.approx((600.0, 680.0))
    assert pos["c"] == pytest.approx((320.0, 400.0))
    assert pos["d"] == pytest.approx((600.0, 120.0))


def test_grandchildren_fan_outward():
    options = LayoutOptions()
    pos = compute_layout(_tree(), options=options).positions()
    ax, ay = pos["a"]
    expected = edge_length(2, options)
    assert expected == pytest.approx(280.0 * (1 + 0.35 * math.log(2)))
    for child in ("a1", "a2", "a3"):
        cx, cy = pos[child]
        assert math.hypot(cx - ax, cy - ay) == pytest.approx(expected)
        # Heading from root to "a" is 0 rad; children stay inside the quarter-turn sector.
        assert abs(math.atan2(cy - ay, cx - ax)) <= options.child_sector / 2 + 1e-9
        assert cx > ax


def test_levels_and_sizes():
    layout = compute_layout(_tree())
    by_id = {n.node_id: n for n in layout.nodes}
    assert by_id["root"].level == 0
    assert by_id["a"].level == 1
    assert by_id["a1"].level == 2
    assert by_id["a1"].size == 90.0
    assert by_id["a1"].left == pytest.approx(by_id["a1"].x - 45.0)
    assert node_size(5, LayoutOptions()) == 60.0


def test_edges_follow_visible_tree():
    layout = compute_layout(_tree())
    edges = {(e.source, e.target): e for e in layout.edges}
    assert len(edges) == 7
    assert edges[("a", "a3")].is_raw_material
    assert edges[("root", "b")].id == "root-b"


def test_collapsed_node_hides_subtree():
    layout = compute_layout(_tree(collapsed=True))
    ids = {n.node_id for n in layout.nodes}
    assert ids == {"root", "a", "b", "c", "d"}
    assert all(e.source != "a" for e in layout.edges)


def test_layout_is_deterministic():
    tree = _tree()
    assert compute_layout(tree) == compute_layout(tree)


def test_override_moves_node_and_its_children():
    base = compute_layout(_tree()).positions()
    layout = compute_layout(_tree(), overrides={"a": (1000.0, 100.0)})
    by_id = {n.node_id: n for n in layout.nodes}
    assert (by_id["a"].x, by_id["a"].y) == (1000.0, 100.0)
    assert by_id["a"].is_pinned
    assert not by_id["b"].is_pinned
    assert (by_id["b"].x, by_id["b"].y) == pytest.approx(base["b"])
    # Children are placed around the overridden position.
    for child in ("a1", "a2", "a3"):
        cx, cy = by_id[child].x, by_id[child].y
        assert math.hypot(cx - 1000.0, cy - 100.0) == pytest.approx(edge_length(2, LayoutOptions()))


def test_flags_passed_through():
    layout = compute_layout(_tree(), loading_ids={"b"}, card_ids={"a"})
    by_id = {n.node_id: n for n in layout.nodes}
    assert by_id["b"].is_loading
    assert by_id["a"].has_card
    assert not by_id["root"].has_card


def test_drag_moves_whole_subtree():
    tree = _tree()
    layout = compute_layout(tree)
    before = layout.positions()

    overrides = apply_drag(tree, layout, {}, "a", 50.0, -20.0)
    after = compute_layout(tree, overrides).positions()

    for nid in ("a", "a1", "a2", "a3"):
        assert after[nid] == pytest.approx((before[nid][0] + 50.0, before[nid][1] - 20.0))
    for nid in ("root", "b", "c", "d"):
        assert after[nid] == pytest.approx(before[nid])


def test_repeated_drags_accumulate():
    tree = _tree()
    overrides = apply_drag(tree, compute_layout(tree), {}, "b", 10.0, 10.0)
    overrides = apply_drag(tree, compute_layout(tree, overrides), overrides, "b", 5.0, 0.0)
    base = compute_layout(tree).positions()["b"]
    assert overrides["b"] == pytest.approx((base[0] + 15.0, base[1] + 10.0))


def test_drag_moves_hidden_descendants_with_collapsed_node():
    shown_before = compute_layout(_tree()).positions()
    collapsed = _tree(collapsed=True)

    # Perpendicular to the root -> "a" heading, so re-fanning would rotate them.
    overrides = apply_drag(collapsed, compute_layout(collapsed), {}, "a", 0.0, 300.0)
    shown_after = compute_layout(_tree(), overrides).positions()

    for nid in ("a", "a1", "a2", "a3"):
        assert shown_after[nid] == pytest.approx((shown_before[nid][0], shown_before[nid][1] + 300.0))


def test_drag_unknown_node():
    tree = _tree()
    with pytest.raises(NodeNotFound):
        apply_drag(tree, compute_layout(tree), {}, "zzz", 1.0, 1.0)
