"""
test_layout.py

Tests for the layout generator: sizes, colours and the three position
strategies.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone

import pytest

from hyper_kg.graph import GraphMetadata, KnowledgeGraph
from hyper_kg.hyperkg import KnowledgeEdge, KnowledgeNode, NodeMeta
from hyper_kg.layout import (
    DEFAULT_COLOR,
    edge_color,
    force_positions,
    generate_layout,
    hierarchical_positions,
    circular_positions,
    node_color,
    node_size,
    positions,
)

_WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _graph(nodes, edges=()) -> KnowledgeGraph:
    return KnowledgeGraph(
        id="g",
        nodes=tuple(nodes),
        edges=tuple(edges),
        metadata=GraphMetadata(root_path="/r", generated_at=_WHEN),
    )


def _mixed() -> KnowledgeGraph:
    return _graph(
        [
            KnowledgeNode(id="d", type="directory", name="src"),
            KnowledgeNode(id="f1", type="file", name="a.ts", metadata=NodeMeta(complexity=9)),
            KnowledgeNode(id="f2", type="file", name="b.ts"),
            KnowledgeNode(id="fn", type="function", name="run"),
            KnowledgeNode(id="m", type="module", name="pkg"),
        ],
        [
            KnowledgeEdge("d", "contains", "f1"),
            KnowledgeEdge("d", "contains", "f2"),
            KnowledgeEdge("f1", "contains", "fn"),
            KnowledgeEdge("fn", "calls", "fn"),
        ],
    )


# ---------------------------------------------------------------------------
# Size / colour
# ---------------------------------------------------------------------------


def test_node_size():
    assert node_size(9) == pytest.approx(15.0)
    assert node_size(None) == pytest.approx(math.log10(2) * 10 + 5)
    assert node_size(0) == node_size(None)
    assert node_size(99) > node_size(9)


def test_colours():
    assert node_color("file") == "#3b82f6"
    assert node_color("class") == "#ef4444"
    assert edge_color("imports") == "#3b82f6"
    assert edge_color("depends_on") == "#f97316"
    assert node_color("unknown") == DEFAULT_COLOR
    assert edge_color("unknown") == DEFAULT_COLOR


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


def test_hierarchical_rows_by_type():
    pos = hierarchical_positions(_mixed())
    assert pos["d"] == (50.0, 50.0)
    assert pos["f1"] == (50.0, 150.0)
    assert pos["f2"] == (150.0, 150.0)
    assert pos["fn"] == (50.0, 450.0)
    assert pos["m"] == (50.0, 550.0)


def test_hierarchical_wraps_long_rows():
    g = _graph([KnowledgeNode(id=f"f{i}", type="file", name=f"{i}.ts") for i in range(9)])
    assert hierarchical_positions(g)["f8"] == (50.0, 150.0)


def test_circular_positions():
    g = _graph([KnowledgeNode(id=f"n{i}", type="file", name=str(i)) for i in range(4)])
    pos = circular_positions(g)
    assert pos["n0"] == pytest.approx((600.0, 300.0))
    assert pos["n1"] == pytest.approx((400.0, 500.0))
    assert pos["n2"] == pytest.approx((200.0, 300.0))
    for x, y in pos.values():
        assert math.hypot(x - 400, y - 300) == pytest.approx(200.0)


def test_force_positions_are_deterministic_and_connection_weighted():
    g = _mixed()
    pos = force_positions(g)
    assert pos == force_positions(g)
    conns = {"d": 2, "f1": 2, "f2": 1, "fn": 2, "m": 0}  # self-loop counted once
    for i, n in enumerate(g.nodes):
        x, y = pos[n.id]
        assert (i * 50) % 600 <= x <= (i * 50) % 600 + 100
        assert conns[n.id] * 30 + 50 <= y <= conns[n.id] * 30 + 150


def test_unknown_layout_rejected():
    with pytest.raises(ValueError):
        positions(_mixed(), "spiral")
    with pytest.raises(ValueError):
        generate_layout(_mixed(), "spiral")


def test_empty_graph_layouts():
    g = _graph([])
    for name in ("force", "hierarchical", "circular"):
        assert positions(g, name) == {}


# ---------------------------------------------------------------------------
# Visualization record
# ---------------------------------------------------------------------------


def test_generate_layout_record():
    g = _mixed()
    viz = generate_layout(g, "hierarchical")
    assert set(viz) == {"graph_id", "layout", "nodes", "edges", "metadata"}
    assert viz["graph_id"] == "g"
    assert viz["layout"] == "hierarchical"
    assert [n["id"] for n in viz["nodes"]] == [n.id for n in g.nodes]

    f1 = viz["nodes"][1]
    assert f1["size"] == pytest.approx(15.0)
    assert f1["color"] == "#3b82f6"
    assert f1["position"] == {"x": 50.0, "y": 150.0}
    assert f1["metadata"]["complexity"] == 9

    edge = viz["edges"][0]
    assert edge == {
        "id": "d-contains-f1",
        "source": "d",
        "target": "f1",
        "type": "contains",
        "weight": 1.0,
        "color": "#6b7280",
    }
    json.dumps(viz)


def test_generate_layout_does_not_mutate_graph():
    g = _mixed()
    generate_layout(g, "force")
    assert all(n.position is None for n in g.nodes)
