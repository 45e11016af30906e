#!/usr/bin/env python3
"""
kg.py

HyperKG — top-level orchestrator for the hyperbolic knowledge graph.

Owns the full pipeline:
    path → extract_path → GraphAssembler → features/embedding → KnowledgeGraph
         → GraphStore → QueryResult / visualization record

Also defines the structured result type:
    AnalysisReport
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from hyper_kg.config import Settings
from hyper_kg.embedding import Embedder, ProjectionModel, make_embedder
from hyper_kg.errors import NotFound
from hyper_kg.graph import KnowledgeGraph
from hyper_kg.hyperkg import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_FILE_PATTERNS,
    AnalyzeOptions,
    extract_path,
)
from hyper_kg.layout import generate_layout
from hyper_kg.query import DEFAULT_LIMIT, QueryResult, relevant_nodes, run_query
from hyper_kg.store import GraphStore

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class AnalysisReport:
    """
    Statistics returned by :meth:`HyperKG.analyze`.

    :param graph_id: Id the graph was published under.
    :param root_path: Absolute analysed root.
    :param total_files: Files analysed.
    :param total_lines: Lines across those files.
    :param languages: Detected languages.
    :param total_nodes: Nodes in the graph.
    :param total_edges: Edges in the graph.
    :param node_counts: Node counts by type.
    :param edge_counts: Edge counts by type.
    :param avg_complexity: Mean file complexity.
    :param clustering_coefficient: Graph clustering coefficient.
    :param diameter: Graph diameter.
    :param warnings: Skipped files and other recoverable problems.
    """

    graph_id: str
    root_path: str
    total_files: int
    total_lines: int
    languages: list[str]
    total_nodes: int
    total_edges: int
    node_counts: dict[str, int]
    edge_counts: dict[str, int]
    avg_complexity: float
    clustering_coefficient: float
    diameter: int
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_graph(cls, graph: KnowledgeGraph, warnings: Sequence[str] = ()) -> AnalysisReport:
        s = graph.stats()
        meta = graph.metadata
        return cls(
            graph_id=graph.id,
            root_path=meta.root_path,
            total_files=meta.total_files,
            total_lines=meta.total_lines,
            languages=list(meta.languages),
            total_nodes=s["total_nodes"],
            total_edges=s["total_edges"],
            node_counts=s["node_counts"],
            edge_counts=s["edge_counts"],
            avg_complexity=meta.avg_complexity,
            clustering_coefficient=meta.clustering_coefficient,
            diameter=meta.diameter,
            warnings=list(warnings),
        )

    def to_dict(self) -> dict:
        return {
            "graph_id": self.graph_id,
            "root_path": self.root_path,
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "languages": self.languages,
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "node_counts": self.node_counts,
            "edge_counts": self.edge_counts,
            "avg_complexity": self.avg_complexity,
            "clustering_coefficient": self.clustering_coefficient,
            "diameter": self.diameter,
            "warnings": self.warnings,
        }

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __str__(self) -> str:
        lines = [
            f"Knowledge graph created for {self.root_path}",
            "",
            "Analysis Results:",
            f"- Files analyzed: {self.total_files}",
            f"- Total lines: {self.total_lines:,}",
            f"- Languages: {', '.join(self.languages)}",
            f"- Nodes created: {self.total_nodes}  {self.node_counts}",
            f"- Relationships: {self.total_edges}  {self.edge_counts}",
            f"- Average complexity: {self.avg_complexity:.2f}",
            f"- Graph ID: {self.graph_id}",
            "",
            "Graph Structure:",
            f"- Clustering coefficient: {self.clustering_coefficient:.3f}",
            f"- Graph diameter: {self.diameter}",
        ]
        if self.warnings:
            lines.append("")
            lines.append(f"Warnings ({len(self.warnings)}):")
            lines.extend(f"- {w}" for w in self.warnings)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# HyperKG orchestrator
# ---------------------------------------------------------------------------


class HyperKG:
    """
    Top-level orchestrator for the hyperbolic knowledge graph.

    Owns one :class:`~hyper_kg.store.GraphStore` and one embedding
    strategy, chosen at construction.

    Typical usage::

        kg = HyperKG()
        report = kg.analyze("/path/to/src")
        print(report)

        result = kg.query("parser", type="dependency")
        result.print_summary()

        viz = kg.visualize(layout="circular")

    :param settings: :class:`~hyper_kg.config.Settings` (environment when ``None``).
    :param model: Projection model or ``.npy`` weights path; overrides
                  ``settings.model_path``.
    :param store: Graph store to use (a fresh one sized by ``settings``).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        model: ProjectionModel | str | Path | None = None,
        store: GraphStore | None = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings.from_env()
        self.store = store if store is not None else GraphStore(self.settings.max_graphs)
        self.embedder: Embedder = make_embedder(
            model if model is not None else self.settings.model_path
        )

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def analyze(
        self,
        path: str | Path,
        *,
        recursive: bool = True,
        include_content: bool = True,
        max_depth: int = 10,
        file_patterns: Sequence[str] = DEFAULT_FILE_PATTERNS,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
        timeout: float | None = None,
    ) -> AnalysisReport:
        """
        Analyse a source tree and publish its knowledge graph.

        :param path: Root file or directory.
        :param recursive: Descend into subdirectories.
        :param include_content: Attach source text to nodes.
        :param max_depth: Depth limit (root is 0).
        :param file_patterns: Include globs.
        :param exclude_patterns: Exclude globs.
        :param timeout: Wall-clock budget in seconds for the walk.
        :return: :class:`AnalysisReport`.
        :raises PathNotFoundError: if ``path`` is missing or unreadable.
        :raises AnalysisTimeoutError: if ``timeout`` elapses; nothing is published.
        """
        options = AnalyzeOptions(
            recursive=recursive,
            include_content=include_content,
            max_depth=max_depth,
            file_patterns=file_patterns,
            exclude_patterns=exclude_patterns,
            timeout=timeout,
        )
        root = Path(path).expanduser().resolve()
        logger.info("analyzing {}", root)

        assembler = extract_path(path, options)
        when = datetime.now(timezone.utc)
        graph = assembler.build(
            graph_id=self.store.new_id(str(root), when),
            root_path=str(root),
            generated_at=when,
            embedder=self.embedder,
        )
        self.store.publish(graph)

        report = AnalysisReport.from_graph(graph, assembler.warnings)
        logger.info(
            "graph {}: {} files, {} nodes, {} edges",
            graph.id,
            report.total_files,
            report.total_nodes,
            report.total_edges,
        )
        return report

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def graph(self, graph_id: str | None = None) -> KnowledgeGraph | None:
        """Fetch a graph by id, or the latest one."""
        return self.store.get(graph_id)

    def graphs(self) -> list[dict]:
        """Id and metadata of every stored graph."""
        return self.store.list()

    def delete(self, graph_id: str) -> bool:
        return self.store.delete(graph_id)

    def query(
        self,
        query: str,
        *,
        type: str = "similarity",
        limit: int = DEFAULT_LIMIT,
        graph_id: str | None = None,
    ) -> QueryResult | NotFound:
        """
        Query a stored graph.

        :param query: Query text.
        :param type: ``similarity`` (default), ``dependency`` or ``cluster``.
        :param limit: Maximum hits.
        :param graph_id: Graph to query (latest when ``None``).
        :return: :class:`~hyper_kg.query.QueryResult`, or
                 :class:`~hyper_kg.errors.NotFound` if there is no such graph.
        """
        graph = self.store.get(graph_id)
        if graph is None:
            return NotFound.for_graph(graph_id)
        return run_query(graph, query, type=type, limit=limit)

    def visualize(self, *, layout: str = "force", graph_id: str | None = None) -> dict | NotFound:
        """
        Visualization record of a stored graph.

        :raises ValueError: for an unknown layout name.
        """
        graph = self.store.get(graph_id)
        if graph is None:
            return NotFound.for_graph(graph_id)
        return generate_layout(graph, layout)

    def relevant_nodes(
        self,
        *,
        graph_id: str | None = None,
        related_node_ids: Sequence[str] | None = None,
        description: str | None = None,
    ) -> list[dict] | NotFound:
        """
        Read-only node selection for external code/documentation generators.

        :return: Node dicts (copies; the stored graph cannot be changed
                 through them), or :class:`NotFound`.
        """
        graph = self.store.get(graph_id)
        if graph is None:
            return NotFound.for_graph(graph_id)
        picked = relevant_nodes(graph, related_node_ids=related_node_ids, description=description)
        return [n.to_dict() for n in picked]

    def export(self, graph_id: str | None = None) -> dict | NotFound:
        """JSON-shaped ``{"id", "nodes", "edges", "metadata"}`` of a stored graph."""
        graph = self.store.get(graph_id)
        if graph is None:
            return NotFound.for_graph(graph_id)
        return graph.to_dict()

    def __repr__(self) -> str:
        return f"HyperKG(store={self.store!r}, embedder={self.embedder!r})"
