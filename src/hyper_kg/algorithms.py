#!/usr/bin/env python3
"""
algorithms.py

Graph algorithms over knowledge-graph nodes and edges.

Edges are stored directed; everything here reads them as undirected by
symmetrising into an adjacency map. Storage is never touched.

- clustering_coefficient : mean local clustering over nodes with >= 2 neighbours
- diameter               : longest finite shortest path (Floyd–Warshall, O(V^3))
- expand                 : bounded breadth-first reach from seed nodes
- structural_clusters    : connected components over structural edge types
"""

from __future__ import annotations

from collections import deque
from collections.abc import Collection, Iterable, Sequence

import numpy as np

from hyper_kg.hyperkg import KnowledgeEdge

STRUCTURAL_EDGE_TYPES: tuple[str, ...] = ("imports", "contains", "references")

DEFAULT_MAX_DISTANCE = 3


def undirected_adjacency(
    node_ids: Iterable[str],
    edges: Iterable[KnowledgeEdge],
    *,
    types: Collection[str] | None = None,
) -> dict[str, dict[str, None]]:
    """
    Symmetric neighbour map in node order.

    Neighbour order follows edge order. Self-loops and edges touching
    unknown ids are ignored.

    :param node_ids: Node ids of the graph.
    :param edges: Directed edges.
    :param types: Restrict to these edge types (all when ``None``).
    :return: ``{node_id: {neighbour_id: None}}`` (dicts as ordered sets).
    """
    adj: dict[str, dict[str, None]] = {nid: {} for nid in node_ids}
    for e in edges:
        if types is not None and e.type not in types:
            continue
        if e.source == e.target or e.source not in adj or e.target not in adj:
            continue
        adj[e.source][e.target] = None
        adj[e.target][e.source] = None
    return adj


# ---------------------------------------------------------------------------
# Clustering coefficient
# ---------------------------------------------------------------------------


def local_clustering(adj: dict[str, dict[str, None]]) -> dict[str, float]:
    """
    Local clustering coefficient of every node with at least two neighbours.

    Nodes with fewer neighbours are absent from the result, not zero.
    """
    out: dict[str, float] = {}
    for nid, nbrs in adj.items():
        k = len(nbrs)
        if k < 2:
            continue
        ordered = list(nbrs)
        triangles = 0
        for i in range(k):
            ni = adj[ordered[i]]
            for j in range(i + 1, k):
                if ordered[j] in ni:
                    triangles += 1
        out[nid] = triangles / (k * (k - 1) / 2)
    return out


def clustering_coefficient(node_ids: Sequence[str], edges: Iterable[KnowledgeEdge]) -> float:
    """
    Graph clustering coefficient in [0, 1].

    :return: Mean local coefficient over eligible nodes; 0.0 if none.
    """
    local = local_clustering(undirected_adjacency(node_ids, edges))
    if not local:
        return 0.0
    return sum(local.values()) / len(local)


# ---------------------------------------------------------------------------
# Shortest paths / diameter
# ---------------------------------------------------------------------------


def all_pairs_distances(node_ids: Sequence[str], edges: Iterable[KnowledgeEdge]) -> np.ndarray:
    """
    Undirected unit-weight all-pairs shortest paths (Floyd–Warshall).

    :return: ``(V, V)`` float matrix in ``node_ids`` order; ``inf`` marks
             unreachable pairs, the diagonal is 0.
    """
    ids = list(node_ids)
    index = {nid: i for i, nid in enumerate(ids)}
    n = len(ids)
    dist = np.full((n, n), np.inf)
    np.fill_diagonal(dist, 0.0)
    for e in edges:
        i = index.get(e.source)
        j = index.get(e.target)
        if i is None or j is None or i == j:
            continue
        dist[i, j] = 1.0
        dist[j, i] = 1.0
    for k in range(n):
        np.minimum(dist, dist[:, k, None] + dist[None, k, :], out=dist)
    return dist


def diameter(node_ids: Sequence[str], edges: Iterable[KnowledgeEdge]) -> int:
    """
    Longest finite shortest-path distance; unreachable pairs are ignored.

    :return: 0 for empty or edgeless graphs.
    """
    dist = all_pairs_distances(node_ids, edges)
    finite = dist[np.isfinite(dist)]
    return int(finite.max()) if finite.size else 0


# ---------------------------------------------------------------------------
# Bounded traversal
# ---------------------------------------------------------------------------


def expand(
    adj: dict[str, dict[str, None]],
    seed_ids: Sequence[str],
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> dict[str, int]:
    """
    Breadth-first expansion from ``seed_ids`` up to ``max_distance`` hops.

    Follows edges in either direction (``adj`` is symmetric).

    :param adj: Output of :func:`undirected_adjacency`.
    :param seed_ids: Starting node ids (hop 0); unknown ids are ignored.
    :param max_distance: Maximum hop count.
    :return: ``{node_id: hop}`` in discovery order, seeds first.
    """
    hops: dict[str, int] = {}
    queue: deque[str] = deque()
    for sid in seed_ids:
        if sid in adj and sid not in hops:
            hops[sid] = 0
            queue.append(sid)

    while queue:
        nid = queue.popleft()
        hop = hops[nid]
        if hop >= max_distance:
            continue
        for cand in adj[nid]:
            if cand not in hops:
                hops[cand] = hop + 1
                queue.append(cand)
    return hops


def bounded_traversal(
    node_ids: Sequence[str],
    edges: Iterable[KnowledgeEdge],
    seed_id: str,
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> list[tuple[str, int]]:
    """
    Nodes within ``max_distance`` hops of ``seed_id``, excluding the seed.

    :return: ``[(node_id, hop)]`` in breadth-first order (ascending hop).
    """
    adj = undirected_adjacency(node_ids, edges)
    hops = expand(adj, [seed_id], max_distance=max_distance)
    return [(nid, hop) for nid, hop in hops.items() if nid != seed_id]


# ---------------------------------------------------------------------------
# Structural clustering
# ---------------------------------------------------------------------------


def structural_clusters(
    node_ids: Sequence[str],
    edges: Iterable[KnowledgeEdge],
    *,
    types: Collection[str] = STRUCTURAL_EDGE_TYPES,
) -> list[list[str]]:
    """
    Connected components over edges of the given types.

    Components are listed in order of their first node; members in
    breadth-first order from it. Singletons are discarded.
    """
    adj = undirected_adjacency(node_ids, edges, types=types)
    seen: set[str] = set()
    clusters: list[list[str]] = []
    for start in adj:
        if start in seen:
            continue
        component = list(expand(adj, [start], max_distance=len(adj)))
        seen.update(component)
        if len(component) > 1:
            clusters.append(component)
    return clusters
