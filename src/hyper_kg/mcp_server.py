#!/usr/bin/env python3
"""
mcp_server.py — HyperKG MCP Server

Exposes knowledge-graph analysis, query and layout as Model Context
Protocol (MCP) tools. Every tool takes plain arguments and returns a
JSON string.

Tools
-----
analyze_path_to_knowledge_graph(path, recursive, include_content, max_depth,
                                file_patterns, exclude_patterns, timeout)
    Analyse a source tree and publish its graph. Returns the analysis report.

query_knowledge_graph(query, type, limit, graph_id)
    Similarity / dependency / cluster query. Returns ranked hits.

get_graph_visualization(layout, graph_id)
    Node positions, sizes and colours for rendering.

list_knowledge_graphs()
    Id and metadata of every graph held by this server.

get_knowledge_graph(graph_id)
    Full graph export (nodes, edges, metadata).

Usage
-----
Install the package, then run::

    hyperkg-mcp

Or configure in an MCP client's config file::

    {
      "mcpServers": {
        "hyperkg": {
          "command": "hyperkg-mcp",
          "env": {"HYPERKG_MAX_GRAPHS": "8"}
        }
      }
    }

Graphs live in memory for the lifetime of the server process.
"""

from __future__ import annotations

import argparse
import json
import sys

from mcp.server.fastmcp import FastMCP

from hyper_kg.config import Settings
from hyper_kg.errors import HyperKGError, NotFound
from hyper_kg.hyperkg import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_FILE_PATTERNS
from hyper_kg.kg import HyperKG
from hyper_kg.log import configure_logging

# ---------------------------------------------------------------------------
# Global state: created on first use, or in main() before the server starts
# ---------------------------------------------------------------------------

_kg: HyperKG | None = None


def _get_kg() -> HyperKG:
    global _kg
    if _kg is None:
        _kg = HyperKG(Settings.from_env())
    return _kg


def _split(patterns: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in patterns.split(",") if p.strip())


def _error(kind: str, exc: Exception) -> str:
    return json.dumps({"error": kind, "message": str(exc)}, indent=2, ensure_ascii=False)


def _dump(value: object) -> str:
    if isinstance(value, NotFound):
        return value.to_json()
    return json.dumps(value, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# MCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "hyperkg",
    instructions=(
        "HyperKG builds a knowledge graph of a source tree with hyperbolic node "
        "embeddings. Call analyze_path_to_knowledge_graph first; the other tools "
        "default to the most recently analysed graph."
    ),
)


@mcp.tool()
def analyze_path_to_knowledge_graph(
    path: str,
    recursive: bool = True,
    include_content: bool = True,
    max_depth: int = 10,
    file_patterns: str = ",".join(DEFAULT_FILE_PATTERNS),
    exclude_patterns: str = ",".join(DEFAULT_EXCLUDE_PATTERNS),
    timeout: float | None = None,
) -> str:
    """
    Analyse a file or directory into a knowledge graph.

    :param path: Root file or directory.
    :param recursive: Descend into subdirectories (default True).
    :param include_content: Keep source text on nodes (default True).
    :param max_depth: Directory depth limit (default 10).
    :param file_patterns: Comma-separated include globs.
    :param exclude_patterns: Comma-separated exclude globs.
    :param timeout: Optional wall-clock budget in seconds.
    :return: JSON analysis report (graph_id, counts, languages, metrics,
             warnings), or ``{"error", "message"}``.
    """
    try:
        report = _get_kg().analyze(
            path,
            recursive=recursive,
            include_content=include_content,
            max_depth=max_depth,
            file_patterns=_split(file_patterns),
            exclude_patterns=_split(exclude_patterns),
            timeout=timeout,
        )
    except HyperKGError as exc:
        return _error("analysis_failed", exc)
    except ValueError as exc:
        return _error("invalid_argument", exc)
    return report.to_json()


@mcp.tool()
def query_knowledge_graph(
    query: str,
    type: str = "similarity",
    limit: int = 10,
    graph_id: str | None = None,
) -> str:
    """
    Query a knowledge graph.

    :param query: Query text; a name fragment for dependency and cluster queries.
    :param type: ``similarity`` (default), ``dependency`` or ``cluster``.
    :param limit: Maximum results (default 10).
    :param graph_id: Graph to query (default: latest).
    :return: JSON with graph_id, query, type, count and ranked results.
    """
    try:
        result = _get_kg().query(query, type=type, limit=limit, graph_id=graph_id)
    except ValueError as exc:
        return _error("invalid_argument", exc)
    # QueryResult and NotFound both serialise themselves
    return result.to_json()


@mcp.tool()
def get_graph_visualization(layout: str = "force", graph_id: str | None = None) -> str:
    """
    Layout data for rendering a knowledge graph.

    :param layout: ``force`` (default), ``hierarchical`` or ``circular``.
    :param graph_id: Graph to lay out (default: latest).
    :return: JSON with nodes (size, color, position), edges (color),
             layout and graph metadata.
    """
    try:
        return _dump(_get_kg().visualize(layout=layout, graph_id=graph_id))
    except ValueError as exc:
        return _error("invalid_argument", exc)


@mcp.tool()
def list_knowledge_graphs() -> str:
    """
    List the knowledge graphs held by this server.

    :return: JSON array of ``{"id", "node_count", "edge_count", "metadata"}``.
    """
    return _dump(_get_kg().graphs())


@mcp.tool()
def get_knowledge_graph(graph_id: str | None = None) -> str:
    """
    Export a whole knowledge graph.

    :param graph_id: Graph id (default: latest).
    :return: JSON with id, nodes, edges and metadata, or a not-found error.
    """
    return _dump(_get_kg().export(graph_id))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _parse_args(argv: list | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="hyperkg-mcp",
        description="HyperKG MCP server — exposes knowledge-graph tools to AI agents.",
    )
    p.add_argument(
        "--model",
        default=None,
        help="Projection weights (.npy) for the model embedding path (default: $HYPERKG_MODEL)",
    )
    p.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport: stdio (default) or sse (HTTP)",
    )
    return p.parse_args(argv)


def main(argv: list | None = None) -> None:
    """
    CLI entry point for the HyperKG MCP server.

    Logging goes to stderr; stdout belongs to the stdio transport.
    """
    global _kg

    args = _parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    _kg = HyperKG(settings, model=args.model)

    print(
        f"HyperKG MCP server starting\n"
        f"  embedder : {_kg.embedder!r}\n"
        f"  capacity : {settings.max_graphs} graphs\n"
        f"  transport: {args.transport}",
        file=sys.stderr,
    )

    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
