#!/usr/bin/env python3
"""
viz.py

Standalone HTML rendering of a visualization record (see
:func:`hyper_kg.layout.generate_layout`) with pyvis.

Usage:
    hyperkg-viz PATH [--layout force|hierarchical|circular] [--out graph.html]
"""

from __future__ import annotations

import argparse
import html
import json
import os
import sys
import tempfile
from pathlib import Path

from pyvis.network import Network

from hyper_kg.config import Settings
from hyper_kg.errors import HyperKGError
from hyper_kg.kg import HyperKG
from hyper_kg.layout import LAYOUTS
from hyper_kg.log import configure_logging

# ---------------------------------------------------------------------------
# pyvis graph builder
# ---------------------------------------------------------------------------


def node_tooltip(node: dict) -> str:
    """
    HTML hover text for one visualization node.

    Shows: type badge · name · file path · line range · description.
    """
    meta = node.get("metadata") or {}
    color = node.get("color", "#6b7280")
    name = html.escape(node.get("name", ""))
    path = html.escape(meta.get("file_path") or "")
    start, end = meta.get("line_start"), meta.get("line_end")

    if start and end and end != start:
        line_str = f"lines {start}-{end}"
    elif start:
        line_str = f"line {start}"
    else:
        line_str = ""

    parts = [
        f"<div style='font-family:sans-serif;font-size:12px;max-width:400px;"
        f"border-left:4px solid {color};padding:6px 10px;'>",
        f"<b>{html.escape(node.get('type', ''))}</b>&nbsp;&nbsp;{name}",
    ]
    if path:
        parts.append(f"<br><span style='color:#888;'>{path}")
        if line_str:
            parts.append(f" &middot; {line_str}")
        parts.append("</span>")
    if meta.get("complexity") is not None:
        parts.append(f"<br>complexity {meta['complexity']}")
    if meta.get("description"):
        parts.append(f"<hr><div style='white-space:pre-wrap;'>{html.escape(meta['description'])}</div>")
    parts.append("</div>")
    return "".join(parts)


def build_network(visualization: dict, *, height: str = "720px", physics: bool = False) -> Network:
    """
    pyvis Network for a visualization record.

    Nodes sit at their layout positions; with ``physics`` off they stay there.
    """
    net = Network(
        height=height,
        width="100%",
        bgcolor="#0e1117",
        font_color="#e0e0e0",
        directed=True,
        notebook=False,
    )
    net.set_options(
        json.dumps(
            {
                "physics": {"enabled": physics, "stabilization": {"iterations": 150}},
                "edges": {
                    "smooth": {"type": "dynamic"},
                    "arrows": {"to": {"enabled": True, "scaleFactor": 0.6}},
                },
                "interaction": {"hover": True, "tooltipDelay": 80, "navigationButtons": True},
            }
        )
    )

    for n in visualization["nodes"]:
        label = n.get("name") or n["id"]
        if len(label) > 28:
            label = label[:25] + "..."
        pos = n.get("position") or {}
        net.add_node(
            n["id"],
            label=label,
            title=node_tooltip(n),
            color=n.get("color"),
            size=n.get("size"),
            x=pos.get("x"),
            y=pos.get("y"),
            physics=physics,
            font={"size": 11},
        )

    for e in visualization["edges"]:
        net.add_edge(
            e["source"],
            e["target"],
            color=e.get("color"),
            width=1.5,
            title=e.get("type", ""),
        )
    return net


def render_html(visualization: dict, *, height: str = "720px", physics: bool = False) -> str:
    """Render a visualization record to a standalone HTML page."""
    net = build_network(visualization, height=height, physics=physics)
    with tempfile.NamedTemporaryFile(suffix=".html", delete=False, mode="w") as f:
        tmp_path = f.name
    try:
        net.save_graph(tmp_path)
        return Path(tmp_path).read_text(encoding="utf-8")
    finally:
        os.unlink(tmp_path)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    p = argparse.ArgumentParser(description="Analyze a source tree and write an HTML graph view.")
    p.add_argument("path", help="Root file or directory to analyze")
    p.add_argument("--layout", default="force", choices=LAYOUTS, help="Layout (default: force)")
    p.add_argument("--out", default="hyperkg.html", help="Output HTML file (default: hyperkg.html)")
    p.add_argument("--height", default="720px", help="Canvas height (default: 720px)")
    p.add_argument("--physics", action="store_true", help="Let the physics simulation move nodes")
    p.add_argument("--max-depth", type=int, default=10, help="Directory depth limit (default: 10)")
    args = p.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    kg = HyperKG(settings)
    try:
        report = kg.analyze(args.path, max_depth=args.max_depth, include_content=False)
    except HyperKGError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    visualization = kg.visualize(layout=args.layout, graph_id=report.graph_id)
    page = render_html(visualization, height=args.height, physics=args.physics)
    Path(args.out).write_text(page, encoding="utf-8")
    print(f"OK: nodes={report.total_nodes} edges={report.total_edges} layout={args.layout} html={args.out}")


if __name__ == "__main__":
    main()
