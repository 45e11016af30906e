#!/usr/bin/env python3
"""
layout.py

Layout generator: deterministic 2D positions, sizes and colours for
rendering a KnowledgeGraph. Purely presentational.

Layouts:
    hierarchical   one row per node type, nodes spaced along the row
    circular       index angle on a circle of radius 200 around (400, 300)
    force          index-spread x, connection-weighted y, hash jitter
"""

from __future__ import annotations

import hashlib
import math

from hyper_kg.graph import KnowledgeGraph
from hyper_kg.hyperkg import KnowledgeNode

LAYOUTS = ("force", "hierarchical", "circular")

DEFAULT_COLOR = "#6b7280"

NODE_COLORS: dict[str, str] = {
    "file": "#3b82f6",
    "class": "#ef4444",
    "function": "#10b981",
    "interface": "#f59e0b",
    "concept": "#8b5cf6",
    "module": "#06b6d4",
    "directory": "#6b7280",
}

EDGE_COLORS: dict[str, str] = {
    "imports": "#3b82f6",
    "extends": "#ef4444",
    "implements": "#f59e0b",
    "calls": "#10b981",
    "contains": "#6b7280",
    "references": "#8b5cf6",
    "similar_to": "#06b6d4",
    "depends_on": "#f97316",
}

# row order of the hierarchical layout; other types share the row after it
HIERARCHY = ("directory", "file", "class", "interface", "function")

_CIRCLE_RADIUS = 200.0
_CIRCLE_CENTER = (400.0, 300.0)
_JITTER = 100.0


def node_color(node_type: str) -> str:
    return NODE_COLORS.get(node_type, DEFAULT_COLOR)


def edge_color(edge_type: str) -> str:
    return EDGE_COLORS.get(edge_type, DEFAULT_COLOR)


def node_size(complexity: int | None) -> float:
    """``log10(complexity + 1) * 10 + 5``; a missing complexity counts as 1."""
    return math.log10((complexity or 1) + 1) * 10 + 5


def _jitter(node_id: str, axis: str) -> float:
    digest = hashlib.sha1(f"{node_id}:{axis}".encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") / 0xFFFFFFFF * _JITTER


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


def hierarchical_positions(graph: KnowledgeGraph) -> dict[str, tuple[float, float]]:
    seen: dict[str, int] = {}
    out: dict[str, tuple[float, float]] = {}
    for n in graph.nodes:
        row = HIERARCHY.index(n.type) if n.type in HIERARCHY else len(HIERARCHY)
        i = seen.get(n.type, 0)
        seen[n.type] = i + 1
        out[n.id] = (float((i * 100) % 800 + 50), float(row * 100 + 50))
    return out


def circular_positions(graph: KnowledgeGraph) -> dict[str, tuple[float, float]]:
    total = len(graph.nodes)
    cx, cy = _CIRCLE_CENTER
    out: dict[str, tuple[float, float]] = {}
    for i, n in enumerate(graph.nodes):
        angle = i / total * 2 * math.pi
        out[n.id] = (math.cos(angle) * _CIRCLE_RADIUS + cx, math.sin(angle) * _CIRCLE_RADIUS + cy)
    return out


def force_positions(graph: KnowledgeGraph) -> dict[str, tuple[float, float]]:
    connections: dict[str, int] = {n.id: 0 for n in graph.nodes}
    for e in graph.edges:
        connections[e.source] += 1
        if e.target != e.source:
            connections[e.target] += 1
    out: dict[str, tuple[float, float]] = {}
    for i, n in enumerate(graph.nodes):
        x = (i * 50) % 600 + _jitter(n.id, "x")
        y = connections[n.id] * 30 + _jitter(n.id, "y") + 50
        out[n.id] = (float(x), float(y))
    return out


_POSITIONERS = {
    "force": force_positions,
    "hierarchical": hierarchical_positions,
    "circular": circular_positions,
}


def positions(graph: KnowledgeGraph, layout: str = "force") -> dict[str, tuple[float, float]]:
    """
    Position of every node under ``layout``.

    :raises ValueError: for an unknown layout name.
    """
    try:
        positioner = _POSITIONERS[layout]
    except KeyError:
        raise ValueError(f"Unknown layout {layout!r}; expected one of {', '.join(LAYOUTS)}") from None
    return positioner(graph)


# ---------------------------------------------------------------------------
# Visualization record
# ---------------------------------------------------------------------------


def _visual_node(node: KnowledgeNode, pos: tuple[float, float]) -> dict:
    meta = node.metadata
    return {
        "id": node.id,
        "name": node.name,
        "type": node.type,
        "size": node_size(meta.complexity),
        "color": node_color(node.type),
        "metadata": {
            "file_path": meta.file_path,
            "line_start": meta.line_start,
            "line_end": meta.line_end,
            "complexity": meta.complexity,
            "description": meta.description,
        },
        "position": {"x": pos[0], "y": pos[1]},
    }


def generate_layout(graph: KnowledgeGraph, layout: str = "force") -> dict:
    """
    Plain-data visualization record for ``graph``.

    :return: ``{"graph_id", "layout", "nodes", "edges", "metadata"}``; node
             entries carry size, colour and position, edge entries colour.
    :raises ValueError: for an unknown layout name.
    """
    pos = positions(graph, layout)
    return {
        "graph_id": graph.id,
        "layout": layout,
        "nodes": [_visual_node(n, pos[n.id]) for n in graph.nodes],
        "edges": [
            {
                "id": e.id,
                "source": e.source,
                "target": e.target,
                "type": e.type,
                "weight": e.weight,
                "color": edge_color(e.type),
            }
            for e in graph.edges
        ],
        "metadata": graph.metadata.to_dict(),
    }
