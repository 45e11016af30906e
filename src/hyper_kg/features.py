#!/usr/bin/env python3
"""
features.py

Hand-engineered node feature map.

Field order is part of the contract (the fallback embedding is a
projection of these exact values):

    0  node type code
    1  complexity
    2  log10(size + 1)
    3  line-range length
    4  in-degree
    5  out-degree
    6  dependency count
    7  export count
    8  import count
    9  token count of content
    10 distinct-token count
    11 lexical diversity (distinct / total, 0 without content)

zero-padded to :data:`FEATURE_DIM`.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence

import numpy as np

from hyper_kg.hyperkg import KnowledgeEdge, KnowledgeNode

FEATURE_DIM = 128

TYPE_CODES: dict[str, int] = {
    "file": 0,
    "class": 1,
    "function": 2,
    "interface": 3,
    "concept": 4,
    "module": 5,
    "directory": 6,
}

_WORD_RE = re.compile(r"\w+")


class FeatureExtractor:
    """
    Computes feature vectors for nodes of one graph.

    Degrees are counted once at construction.

    :param nodes: All nodes of the graph.
    :param edges: All edges of the graph.
    :param dim: Output length.
    """

    def __init__(
        self,
        nodes: Sequence[KnowledgeNode],
        edges: Iterable[KnowledgeEdge],
        *,
        dim: int = FEATURE_DIM,
    ) -> None:
        self.dim = dim
        self.nodes = nodes
        self._in: Counter = Counter()
        self._out: Counter = Counter()
        for e in edges:
            self._out[e.source] += 1
            self._in[e.target] += 1

    def features(self, node: KnowledgeNode) -> np.ndarray:
        """
        Feature vector of ``node``.

        :return: float64 array of length ``dim``.
        """
        meta = node.metadata
        values: list[float] = [
            TYPE_CODES.get(node.type, 0),
            meta.complexity or 0,
            math.log10((meta.size or 0) + 1),
            (meta.line_end or 0) - (meta.line_start or 0) + 1,
            self._in[node.id],
            self._out[node.id],
            len(meta.dependencies),
            len(meta.exports),
            len(meta.imports),
        ]

        if node.content:
            words = _WORD_RE.findall(node.content.lower())
            distinct = len(set(words))
            values += [len(words), distinct, distinct / max(len(words), 1)]
        else:
            values += [0, 0, 0]

        vec = np.zeros(self.dim, dtype=np.float64)
        n = min(len(values), self.dim)
        vec[:n] = values[:n]
        return vec

    def matrix(self) -> np.ndarray:
        """Stack the feature vectors of every node, in node order."""
        if not self.nodes:
            return np.zeros((0, self.dim), dtype=np.float64)
        return np.vstack([self.features(n) for n in self.nodes])
