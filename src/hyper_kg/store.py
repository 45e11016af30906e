#!/usr/bin/env python3
"""
store.py

GraphStore — in-memory registry of published knowledge graphs.

Lifecycle rules:
    insert-once   a graph id is published exactly once
    read-only     published graphs are immutable KnowledgeGraph values
    eviction      least recently used graph goes first once capacity is hit,
                  or explicit delete()

Publication is the only write and happens under a lock; reads never block
on a half-built graph because a graph is complete before it is published.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from datetime import datetime

from loguru import logger

from hyper_kg.errors import GraphExistsError
from hyper_kg.graph import KnowledgeGraph

DEFAULT_MAX_GRAPHS = 16


def graph_id_for(root_path: str, when: datetime) -> str:
    """
    Build a graph id: ``kg_<8 hex of the root digest>_<epoch ms>``.

    :param root_path: Absolute analysed root.
    :param when: Generation timestamp.
    """
    digest = hashlib.sha1(root_path.encode("utf-8")).hexdigest()[:8]
    return f"kg_{digest}_{int(when.timestamp() * 1000)}"


class GraphStore:
    """
    Holds published graphs by id.

    Example::

        store = GraphStore(max_graphs=4)
        gid = store.new_id("/src/app", datetime.now(timezone.utc))
        store.publish(graph)
        store.get()           # latest published graph
        store.get(gid)        # by id
        store.delete(gid)

    :param max_graphs: Capacity before least-recently-used eviction.
    """

    def __init__(self, max_graphs: int = DEFAULT_MAX_GRAPHS) -> None:
        if max_graphs < 1:
            raise ValueError(f"max_graphs must be >= 1, got {max_graphs}")
        self.max_graphs = max_graphs
        # recency order: least recently used first
        self._graphs: OrderedDict[str, KnowledgeGraph] = OrderedDict()
        # publication order: latest last
        self._published: list[str] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def new_id(self, root_path: str, when: datetime) -> str:
        """
        A graph id not currently in use.

        Two runs of the same root within one millisecond get ``_1``,
        ``_2``, ... suffixes.
        """
        base = graph_id_for(root_path, when)
        gid = base
        n = 0
        with self._lock:
            while gid in self._graphs:
                n += 1
                gid = f"{base}_{n}"
        return gid

    def publish(self, graph: KnowledgeGraph) -> str:
        """
        Insert a complete graph.

        :return: The graph id.
        :raises GraphExistsError: if ``graph.id`` is already stored.
        """
        with self._lock:
            if graph.id in self._graphs:
                raise GraphExistsError(graph.id)
            self._graphs[graph.id] = graph
            self._published.append(graph.id)
            while len(self._graphs) > self.max_graphs:
                evicted, _ = self._graphs.popitem(last=False)
                self._published.remove(evicted)
                logger.warning("evicted knowledge graph {} (capacity {})", evicted, self.max_graphs)
        logger.info("published knowledge graph {}", graph.id)
        return graph.id

    def delete(self, graph_id: str) -> bool:
        """Remove a graph; ``False`` if it was not stored."""
        with self._lock:
            if self._graphs.pop(graph_id, None) is None:
                return False
            self._published.remove(graph_id)
        logger.info("deleted knowledge graph {}", graph_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self._graphs.clear()
            self._published.clear()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, graph_id: str | None = None) -> KnowledgeGraph | None:
        """
        Fetch a graph and mark it recently used.

        :param graph_id: Graph id, or ``None`` for the latest published graph.
        :return: The graph, or ``None`` if absent.
        """
        with self._lock:
            if graph_id is None:
                if not self._published:
                    return None
                graph_id = self._published[-1]
            graph = self._graphs.get(graph_id)
            if graph is not None:
                self._graphs.move_to_end(graph_id)
            return graph

    @property
    def latest_id(self) -> str | None:
        with self._lock:
            return self._published[-1] if self._published else None

    def ids(self) -> list[str]:
        """Stored graph ids in publication order."""
        with self._lock:
            return list(self._published)

    def list(self) -> list[dict]:
        """
        Summary of every stored graph, in publication order.

        :return: ``[{"id", "node_count", "edge_count", "metadata"}]``.
        """
        with self._lock:
            graphs = [self._graphs[gid] for gid in self._published]
        return [
            {
                "id": g.id,
                "node_count": len(g.nodes),
                "edge_count": len(g.edges),
                "metadata": g.metadata.to_dict(),
            }
            for g in graphs
        ]

    def __contains__(self, graph_id: object) -> bool:
        return graph_id in self._graphs

    def __len__(self) -> int:
        return len(self._graphs)

    def __repr__(self) -> str:
        return f"GraphStore(graphs={len(self._graphs)}, max_graphs={self.max_graphs})"
