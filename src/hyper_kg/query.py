#!/usr/bin/env python3
"""
query.py

Query engine over a published KnowledgeGraph. Stateless: every call reads
the graph and returns fresh result objects.

Modes:
    similarity   fraction of query words contained in name/description/content,
                 hits scoring <= 0.1 are dropped
    dependency   bounded traversal from the first node whose name contains
                 the query, ranked by ascending hop distance
    cluster      members of the first structural cluster with a name match
    (other)      catch-all: similarity score for every node, unfiltered

Word matching is plain substring containment on lower-cased text, so short
query words ("a", "id") match almost everything.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from hyper_kg.algorithms import DEFAULT_MAX_DISTANCE, bounded_traversal, structural_clusters
from hyper_kg.graph import KnowledgeGraph
from hyper_kg.hyperkg import KnowledgeNode

QUERY_TYPES = ("similarity", "dependency", "cluster")

SIMILARITY_THRESHOLD = 0.1

DEFAULT_LIMIT = 10

# relevant_nodes() selection sizes
_KEYWORD_MATCH_LIMIT = 10
_DEFAULT_SELECTION = 5

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryHit:
    """
    One ranked query hit.

    :param node: Matched node.
    :param score: Mode-specific score (similarity fraction, hop distance, 1.0).
    :param explanation: Human-readable reason for the match.
    """

    node: KnowledgeNode
    score: float
    explanation: str

    def to_dict(self) -> dict:
        return {"node": self.node.to_dict(), "score": self.score, "explanation": self.explanation}


@dataclass(frozen=True)
class QueryResult:
    """
    Result of :func:`run_query`.

    :param graph_id: Graph that was queried.
    :param query: Original query string.
    :param type: Query mode.
    :param limit: Result cap that was applied.
    :param hits: Ranked hits, at most ``limit``.
    """

    graph_id: str
    query: str
    type: str
    limit: int
    hits: tuple[QueryHit, ...]

    def __len__(self) -> int:
        return len(self.hits)

    def node_ids(self) -> list[str]:
        return [h.node.id for h in self.hits]

    def to_dict(self) -> dict:
        return {
            "graph_id": self.graph_id,
            "query": self.query,
            "type": self.type,
            "limit": self.limit,
            "count": len(self.hits),
            "results": [h.to_dict() for h in self.hits],
        }

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def summary(self) -> str:
        """Human-readable summary text."""
        out = [
            "Knowledge Graph Query Results",
            "",
            f'Query: "{self.query}"',
            f"Type: {self.type}",
            f"Results found: {len(self.hits)}",
            "",
        ]
        for i, h in enumerate(self.hits, start=1):
            out.append(f"{i}. {h.node.name} ({h.node.type})")
            out.append(f"   - Score: {h.score:.3f}")
            out.append(f"   - Path: {h.node.metadata.file_path or 'N/A'}")
            out.append(f"   - {h.explanation}")
            out.append("")
        return "\n".join(out)

    def print_summary(self) -> None:
        """Print a human-readable summary to stdout."""
        print(self.summary())


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _node_text(node: KnowledgeNode) -> str:
    return f"{node.name} {node.metadata.description or ''} {node.content or ''}".lower()


def text_similarity(query: str, node: KnowledgeNode) -> float:
    """
    Fraction of whitespace-separated query words contained in the node text.

    :return: Score in [0, 1]; 0 for an empty query.
    """
    words = query.lower().split()
    if not words:
        return 0.0
    text = _node_text(node)
    return sum(1 for w in words if w in text) / len(words)


def _name_match(graph: KnowledgeGraph, query: str) -> KnowledgeNode | None:
    q = query.lower()
    return next((n for n in graph.nodes if q in n.name.lower()), None)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _similarity(graph: KnowledgeGraph, query: str) -> list[QueryHit]:
    hits = []
    for n in graph.nodes:
        score = text_similarity(query, n)
        if score > SIMILARITY_THRESHOLD:
            hits.append(QueryHit(n, score, f"Text similarity: {score * 100:.1f}%"))
    return hits


def _catch_all(graph: KnowledgeGraph, query: str) -> list[QueryHit]:
    hits = []
    for n in graph.nodes:
        score = text_similarity(query, n)
        hits.append(QueryHit(n, score, f"Default similarity: {score * 100:.1f}%"))
    return hits


def _dependency(graph: KnowledgeGraph, query: str) -> list[QueryHit]:
    seed = _name_match(graph, query)
    if seed is None:
        return []
    reached = bounded_traversal(
        [n.id for n in graph.nodes], graph.edges, seed.id, max_distance=DEFAULT_MAX_DISTANCE
    )
    return [
        QueryHit(graph.node(nid), float(hop), f"Dependency relationship (distance: {hop})")
        for nid, hop in reached
    ]


def _cluster(graph: KnowledgeGraph, query: str) -> list[QueryHit]:
    q = query.lower()
    for cluster in structural_clusters([n.id for n in graph.nodes], graph.edges):
        members = [graph.node(nid) for nid in cluster]
        if any(q in m.name.lower() for m in members):
            return [QueryHit(m, 1.0, "Member of the same cluster") for m in members]
    return []


def run_query(
    graph: KnowledgeGraph,
    query: str,
    *,
    type: str = "similarity",
    limit: int = DEFAULT_LIMIT,
) -> QueryResult:
    """
    Run one query against ``graph``.

    :param graph: Published graph.
    :param query: Query text (a name fragment for dependency/cluster modes).
    :param type: ``similarity``, ``dependency``, ``cluster``; any other
                 value runs the unfiltered catch-all scoring.
    :param limit: Maximum hits returned, applied after sorting.
    :return: :class:`QueryResult`.
    :raises ValueError: if ``limit`` is negative.
    """
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")

    if type == "similarity":
        hits = _similarity(graph, query)
        hits.sort(key=lambda h: -h.score)
    elif type == "dependency":
        hits = _dependency(graph, query)
        hits.sort(key=lambda h: h.score)
    elif type == "cluster":
        hits = _cluster(graph, query)
    else:
        hits = _catch_all(graph, query)
        hits.sort(key=lambda h: -h.score)

    return QueryResult(
        graph_id=graph.id,
        query=query,
        type=type,
        limit=limit,
        hits=tuple(hits[:limit]),
    )


# ---------------------------------------------------------------------------
# Node selection for external generators
# ---------------------------------------------------------------------------


def relevant_nodes(
    graph: KnowledgeGraph,
    *,
    related_node_ids: Sequence[str] | None = None,
    description: str | None = None,
) -> list[KnowledgeNode]:
    """
    Pick the nodes an external code/documentation generator should see.

    Explicit ids win (graph order, unknown ids ignored); otherwise nodes
    whose text contains any description word (first 10); otherwise the
    first 5 nodes.
    """
    if related_node_ids:
        wanted = set(related_node_ids)
        return [n for n in graph.nodes if n.id in wanted]
    if description:
        keywords = description.lower().split()
        matched = [n for n in graph.nodes if any(k in _node_text(n) for k in keywords)]
        return matched[:_KEYWORD_MATCH_LIMIT]
    return list(graph.nodes[:_DEFAULT_SELECTION])
