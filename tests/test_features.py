"""
test_features.py

Tests for FeatureExtractor — the hand-engineered node feature map.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from hyper_kg.features import FEATURE_DIM, TYPE_CODES, FeatureExtractor
from hyper_kg.hyperkg import KnowledgeEdge, KnowledgeNode, NodeMeta


def _graph():
    cls = KnowledgeNode(
        id="c",
        type="class",
        name="C",
        content="a b a",
        metadata=NodeMeta(
            line_start=2,
            line_end=5,
            complexity=3,
            size=99,
            dependencies=("x", "y"),
            exports=("C",),
            imports=("./x",),
        ),
    )
    f = KnowledgeNode(id="f", type="file", name="f.ts")
    g = KnowledgeNode(id="g", type="file", name="g.ts")
    edges = [
        KnowledgeEdge("f", "contains", "c"),
        KnowledgeEdge("g", "references", "c"),
        KnowledgeEdge("c", "calls", "g"),
    ]
    return [f, g, cls], edges


def test_feature_fields_in_order():
    nodes, edges = _graph()
    vec = FeatureExtractor(nodes, edges).features(nodes[2])
    assert vec.shape == (FEATURE_DIM,)
    assert vec[0] == TYPE_CODES["class"]
    assert vec[1] == 3
    assert vec[2] == pytest.approx(math.log10(100))
    assert vec[3] == 4  # lines 2..5
    assert vec[4] == 2  # in-degree
    assert vec[5] == 1  # out-degree
    assert vec[6] == 2
    assert vec[7] == 1
    assert vec[8] == 1
    assert vec[9] == 3  # tokens
    assert vec[10] == 2  # distinct tokens
    assert vec[11] == pytest.approx(2 / 3)
    assert not vec[12:].any()


def test_features_without_content_or_metadata():
    nodes, edges = _graph()
    vec = FeatureExtractor(nodes, edges).features(nodes[0])
    assert vec[0] == TYPE_CODES["file"]
    assert vec[1] == 0
    assert vec[2] == 0
    assert vec[3] == 1
    assert vec[5] == 1
    assert vec[9] == vec[10] == vec[11] == 0


def test_type_codes():
    assert TYPE_CODES == {
        "file": 0,
        "class": 1,
        "function": 2,
        "interface": 3,
        "concept": 4,
        "module": 5,
        "directory": 6,
    }


def test_features_truncate_to_dim():
    nodes, edges = _graph()
    vec = FeatureExtractor(nodes, edges, dim=4).features(nodes[2])
    assert vec.tolist() == [1.0, 3.0, pytest.approx(2.0), 4.0]


def test_matrix_stacks_in_node_order():
    nodes, edges = _graph()
    fx = FeatureExtractor(nodes, edges)
    m = fx.matrix()
    assert m.shape == (3, FEATURE_DIM)
    np.testing.assert_array_equal(m[2], fx.features(nodes[2]))
    assert FeatureExtractor([], []).matrix().shape == (0, FEATURE_DIM)


def test_features_are_reproducible():
    nodes, edges = _graph()
    a = FeatureExtractor(nodes, edges).features(nodes[2])
    b = FeatureExtractor(nodes, edges).features(nodes[2])
    np.testing.assert_array_equal(a, b)
