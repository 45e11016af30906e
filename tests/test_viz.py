"""
test_viz.py

Tests for the pyvis renderer. The pyvis Network class is replaced by a
mock so no HTML templates are rendered.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import hyper_kg.viz as viz
from hyper_kg.viz import build_network, node_tooltip, render_html


def _record() -> dict:
    return {
        "graph_id": "g",
        "layout": "force",
        "nodes": [
            {
                "id": "a",
                "name": "a_really_long_component_name_here.ts",
                "type": "file",
                "size": 8.0,
                "color": "#3b82f6",
                "metadata": {
                    "file_path": "/r/a.ts",
                    "line_start": 1,
                    "line_end": 20,
                    "complexity": 4,
                    "description": None,
                },
                "position": {"x": 10.0, "y": 20.0},
            },
            {
                "id": "b",
                "name": "b",
                "type": "function",
                "size": 6.0,
                "color": "#10b981",
                "metadata": {"line_start": 3, "line_end": 3},
                "position": {"x": 30.0, "y": 40.0},
            },
        ],
        "edges": [
            {"id": "a-contains-b", "source": "a", "target": "b", "type": "contains",
             "weight": 1.0, "color": "#6b7280"},
        ],
        "metadata": {},
    }


@pytest.fixture
def network(monkeypatch):
    net = MagicMock()
    monkeypatch.setattr(viz, "Network", MagicMock(return_value=net))
    return net


def test_tooltip_escapes_html():
    tip = node_tooltip(
        {
            "name": "<script>",
            "type": "class",
            "metadata": {"file_path": "/r/x.ts", "line_start": 2, "line_end": 9,
                         "description": "a < b"},
        }
    )
    assert "<script>" not in tip
    assert "&lt;script&gt;" in tip
    assert "lines 2-9" in tip
    assert "a &lt; b" in tip


def test_tooltip_single_line_and_no_path():
    assert "line 3" in node_tooltip({"name": "b", "type": "function",
                                     "metadata": {"file_path": "/x", "line_start": 3, "line_end": 3}})
    assert "<span" not in node_tooltip({"name": "b", "type": "function", "metadata": {}})


def test_build_network_places_nodes(network):
    build_network(_record())
    assert network.add_node.call_count == 2
    args, kwargs = network.add_node.call_args_list[0]
    assert args == ("a",)
    assert kwargs["label"] == "a_really_long_component_n..."
    assert kwargs["x"] == 10.0
    assert kwargs["y"] == 20.0
    assert kwargs["physics"] is False
    assert kwargs["color"] == "#3b82f6"

    args, kwargs = network.add_edge.call_args
    assert args == ("a", "b")
    assert kwargs["title"] == "contains"


def test_render_html_reads_saved_page(network):
    def save(path):
        with open(path, "w", encoding="utf-8") as f:
            f.write("<html>graph</html>")

    network.save_graph.side_effect = save
    assert render_html(_record()) == "<html>graph</html>"
