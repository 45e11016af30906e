#!/usr/bin/env python3
"""
graph.py

KnowledgeGraph — the immutable aggregate produced by one analysis run —
and GraphAssembler, which accumulates extractor output privately until
the graph is frozen.

An assembler is owned by a single run; it is not safe for concurrent
mutation. A KnowledgeGraph is read-only once built.
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path

from loguru import logger

from hyper_kg.algorithms import clustering_coefficient, diameter
from hyper_kg.embedding import Embedder, FallbackEmbedder
from hyper_kg.features import FeatureExtractor
from hyper_kg.hyperkg import ImportRef, KnowledgeEdge, KnowledgeNode

# ---------------------------------------------------------------------------
# KnowledgeGraph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GraphMetadata:
    """
    Corpus-level aggregates.

    :param root_path: Absolute root that was analysed.
    :param generated_at: Generation timestamp (UTC).
    :param total_files: Files analysed.
    :param total_lines: Lines across those files.
    :param languages: Detected languages, first-seen order.
    :param avg_complexity: Mean file complexity (0 with no files).
    :param clustering_coefficient: Mean local clustering coefficient.
    :param diameter: Longest finite shortest path, undirected.
    """

    root_path: str
    generated_at: datetime
    total_files: int = 0
    total_lines: int = 0
    languages: tuple[str, ...] = ()
    avg_complexity: float = 0.0
    clustering_coefficient: float = 0.0
    diameter: int = 0

    def to_dict(self) -> dict:
        return {
            "root_path": self.root_path,
            "generated_at": self.generated_at.isoformat(),
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "languages": list(self.languages),
            "avg_complexity": self.avg_complexity,
            "clustering_coefficient": self.clustering_coefficient,
            "diameter": self.diameter,
        }


@dataclass(frozen=True)
class KnowledgeGraph:
    """
    Immutable knowledge graph.

    Nodes keep insertion order and are unique by id; every edge endpoint
    is a node id of this graph. Both are checked on construction.

    :param id: Graph id assigned at publication time.
    :param nodes: Nodes in extraction order.
    :param edges: Directed edges.
    :param metadata: :class:`GraphMetadata`.
    """

    id: str
    nodes: tuple[KnowledgeNode, ...]
    edges: tuple[KnowledgeEdge, ...]
    metadata: GraphMetadata
    _by_id: dict[str, KnowledgeNode] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))
        by_id = {n.id: n for n in self.nodes}
        if len(by_id) != len(self.nodes):
            raise ValueError("Duplicate node ids in knowledge graph")
        for e in self.edges:
            if e.source not in by_id or e.target not in by_id:
                raise ValueError(f"Edge {e.id!r} references a node outside the graph")
        object.__setattr__(self, "_by_id", by_id)

    def node(self, node_id: str) -> KnowledgeNode | None:
        """Fetch a node by id."""
        return self._by_id.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def __len__(self) -> int:
        return len(self.nodes)

    def stats(self) -> dict:
        """
        Node and edge counts by type.

        :return: dict with ``total_nodes``, ``total_edges``, ``node_counts``,
                 ``edge_counts``.
        """
        return {
            "graph_id": self.id,
            "total_nodes": len(self.nodes),
            "total_edges": len(self.edges),
            "node_counts": dict(Counter(n.type for n in self.nodes)),
            "edge_counts": dict(Counter(e.type for e in self.edges)),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        """Serialise to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: str | Path) -> None:
        """Write the JSON form of the graph to ``path``."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    def __repr__(self) -> str:
        return (
            f"KnowledgeGraph(id={self.id!r}, root={self.metadata.root_path!r}, "
            f"nodes={len(self.nodes)}, edges={len(self.edges)})"
        )


# ---------------------------------------------------------------------------
# GraphAssembler
# ---------------------------------------------------------------------------


class GraphAssembler:
    """
    Private accumulator for one analysis run.

    Deduplicates nodes and edges by id (a later write for the same id
    replaces the earlier one but keeps its position), holds import
    references until every file is known, and tracks corpus aggregates.

    Example::

        asm = extract_path("/path/to/src")
        graph = asm.build(graph_id="kg_x", root_path="/path/to/src",
                          generated_at=datetime.now(timezone.utc))
    """

    def __init__(self) -> None:
        self._nodes: dict[str, KnowledgeNode] = {}
        self._edges: dict[str, KnowledgeEdge] = {}
        self._imports: list[ImportRef] = []
        self._languages: dict[str, None] = {}
        self.total_files = 0
        self.total_lines = 0
        self.total_complexity = 0
        self.warnings: list[str] = []

    # ------------------------------------------------------------------
    # Accumulate
    # ------------------------------------------------------------------

    def add_node(self, node: KnowledgeNode) -> None:
        self._nodes[node.id] = node

    def add_edge(self, edge: KnowledgeEdge) -> None:
        self._edges[edge.id] = edge

    def add_import(self, ref: ImportRef) -> None:
        self._imports.append(ref)

    def record_file(self, language: str, lines: int, file_complexity: int) -> None:
        self._languages.setdefault(language, None)
        self.total_files += 1
        self.total_lines += lines
        self.total_complexity += file_complexity

    def warn(self, message: str) -> None:
        """Record a recoverable problem; the run continues."""
        logger.warning(message)
        self.warnings.append(message)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(self._languages)

    @property
    def avg_complexity(self) -> float:
        return self.total_complexity / self.total_files if self.total_files else 0.0

    @property
    def nodes(self) -> list[KnowledgeNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[KnowledgeEdge]:
        """Edges whose endpoints are both known nodes."""
        return [
            e for e in self._edges.values() if e.source in self._nodes and e.target in self._nodes
        ]

    def resolve_imports(self) -> int:
        """
        Turn import references into ``imports`` edges.

        The first candidate naming a known file node wins; references with
        no such candidate are dropped.

        :return: Number of edges added.
        """
        added = 0
        for ref in self._imports:
            target = next(
                (
                    c
                    for c in ref.candidates
                    if c in self._nodes and self._nodes[c].type == "file"
                ),
                None,
            )
            if target is None or target == ref.source:
                logger.debug("unresolved import {!r}", ref.specifier)
                continue
            self.add_edge(KnowledgeEdge(ref.source, "imports", target))
            added += 1
        self._imports.clear()
        return added

    # ------------------------------------------------------------------
    # Freeze
    # ------------------------------------------------------------------

    def build(
        self,
        *,
        graph_id: str,
        root_path: str,
        generated_at: datetime,
        embedder: Embedder | None = None,
    ) -> KnowledgeGraph:
        """
        Resolve imports, embed every node, compute graph metrics, freeze.

        :param graph_id: Id the graph will be published under.
        :param root_path: Absolute analysed root.
        :param generated_at: Generation timestamp.
        :param embedder: Embedding strategy (fallback projection when ``None``).
        :return: :class:`KnowledgeGraph`.
        """
        self.resolve_imports()
        nodes = self.nodes
        edges = self.edges
        dropped = len(self._edges) - len(edges)
        if dropped:
            logger.debug("dropped {} dangling edges", dropped)

        nodes = embed_nodes(nodes, edges, embedder or FallbackEmbedder())
        node_ids = [n.id for n in nodes]

        metadata = GraphMetadata(
            root_path=root_path,
            generated_at=generated_at,
            total_files=self.total_files,
            total_lines=self.total_lines,
            languages=self.languages,
            avg_complexity=self.avg_complexity,
            clustering_coefficient=clustering_coefficient(node_ids, edges),
            diameter=diameter(node_ids, edges),
        )
        return KnowledgeGraph(id=graph_id, nodes=tuple(nodes), edges=tuple(edges), metadata=metadata)

    def __repr__(self) -> str:
        return (
            f"GraphAssembler(nodes={len(self._nodes)}, edges={len(self._edges)}, "
            f"files={self.total_files})"
        )


def embed_nodes(
    nodes: Sequence[KnowledgeNode],
    edges: Iterable[KnowledgeEdge],
    embedder: Embedder,
) -> list[KnowledgeNode]:
    """
    Return copies of ``nodes`` carrying an embedding inside the unit ball.

    A node whose feature extraction raises gets the embedder's
    deterministic degenerate vector instead.
    """
    extractor = FeatureExtractor(nodes, edges)
    out: list[KnowledgeNode] = []
    for n in nodes:
        try:
            features = extractor.features(n)
        except Exception as exc:  # recovered by the fallback vector
            logger.warning("feature extraction failed for {}: {}", n.id, exc)
            features = None
        out.append(replace(n, embedding=embedder.embed(features, key=n.id)))
    return out
