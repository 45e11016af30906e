"""
test_graph.py

Tests for GraphAssembler and the immutable KnowledgeGraph.
"""

from __future__ import annotations

import json
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest

from hyper_kg.embedding import Embedder
from hyper_kg.graph import GraphAssembler, GraphMetadata, KnowledgeGraph, embed_nodes
from hyper_kg.hyperkg import ImportRef, KnowledgeEdge, KnowledgeNode, NodeMeta, extract_path

_WHEN = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _write_repo(tmp_path: Path, files: dict) -> Path:
    for rel, src in files.items():
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(textwrap.dedent(src))
    return tmp_path


def _node(nid: str, kind: str = "file", **meta) -> KnowledgeNode:
    return KnowledgeNode(id=nid, type=kind, name=nid, metadata=NodeMeta(**meta))


def _meta() -> GraphMetadata:
    return GraphMetadata(root_path="/r", generated_at=_WHEN)


# ---------------------------------------------------------------------------
# KnowledgeGraph
# ---------------------------------------------------------------------------


def test_graph_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        KnowledgeGraph(id="g", nodes=(_node("a"), _node("a")), edges=(), metadata=_meta())


def test_graph_rejects_dangling_edges():
    with pytest.raises(ValueError):
        KnowledgeGraph(
            id="g",
            nodes=(_node("a"),),
            edges=(KnowledgeEdge("a", "imports", "zzz"),),
            metadata=_meta(),
        )


def test_graph_lookup_and_stats():
    g = KnowledgeGraph(
        id="g",
        nodes=(_node("a"), _node("b"), _node("f", "function")),
        edges=(KnowledgeEdge("a", "imports", "b"), KnowledgeEdge("a", "contains", "f")),
        metadata=_meta(),
    )
    assert g.node("a").name == "a"
    assert g.node("nope") is None
    assert "b" in g
    assert len(g) == 3
    s = g.stats()
    assert s["total_nodes"] == 3
    assert s["node_counts"] == {"file": 2, "function": 1}
    assert s["edge_counts"] == {"imports": 1, "contains": 1}
    assert "nodes=3" in repr(g)


def test_graph_is_frozen():
    g = KnowledgeGraph(id="g", nodes=[_node("a")], edges=[], metadata=_meta())
    assert isinstance(g.nodes, tuple)
    with pytest.raises(AttributeError):
        g.id = "other"


def test_graph_json_roundtrips_through_json_module(tmp_path):
    g = KnowledgeGraph(id="g", nodes=(_node("a"),), edges=(), metadata=_meta())
    data = json.loads(g.to_json())
    assert set(data) == {"id", "nodes", "edges", "metadata"}
    assert data["metadata"]["generated_at"] == _WHEN.isoformat()
    out = tmp_path / "g.json"
    g.save(out)
    assert json.loads(out.read_text())["id"] == "g"


# ---------------------------------------------------------------------------
# GraphAssembler
# ---------------------------------------------------------------------------


def test_assembler_later_write_wins_keeps_position():
    asm = GraphAssembler()
    asm.add_node(_node("a", size=1))
    asm.add_node(_node("b"))
    asm.add_node(_node("a", size=2))
    assert [n.id for n in asm.nodes] == ["a", "b"]
    assert asm.nodes[0].metadata.size == 2


def test_assembler_dedupes_edges():
    asm = GraphAssembler()
    asm.add_node(_node("a"))
    asm.add_node(_node("b"))
    asm.add_edge(KnowledgeEdge("a", "imports", "b"))
    asm.add_edge(KnowledgeEdge("a", "imports", "b", weight=2.0))
    assert len(asm.edges) == 1
    assert asm.edges[0].weight == 2.0


def test_assembler_hides_dangling_edges():
    asm = GraphAssembler()
    asm.add_node(_node("a"))
    asm.add_edge(KnowledgeEdge("a", "contains", "ghost"))
    assert asm.edges == []


def test_resolve_imports_first_existing_file_wins():
    asm = GraphAssembler()
    for nid in ("a", "b2"):
        asm.add_node(_node(nid))
    asm.add_node(_node("b1", "function"))
    asm.add_import(ImportRef("a", "./b", ("missing", "b1", "b2")))
    assert asm.resolve_imports() == 1
    assert [(e.source, e.type, e.target) for e in asm.edges] == [("a", "imports", "b2")]


def test_resolve_imports_drops_self_and_unresolved():
    asm = GraphAssembler()
    asm.add_node(_node("a"))
    asm.add_import(ImportRef("a", "./a", ("a",)))
    asm.add_import(ImportRef("a", "./x", ("x",)))
    assert asm.resolve_imports() == 0
    assert asm.edges == []


def test_assembler_aggregates():
    asm = GraphAssembler()
    assert asm.avg_complexity == 0.0
    asm.record_file("TypeScript", 10, 3)
    asm.record_file("Python", 5, 5)
    asm.record_file("TypeScript", 1, 1)
    assert asm.total_files == 3
    assert asm.total_lines == 16
    assert asm.avg_complexity == pytest.approx(3.0)
    assert asm.languages == ("TypeScript", "Python")


def test_build_freezes_embeds_and_measures(tmp_path):
    repo = _write_repo(
        tmp_path / "repo",
        {
            "a.ts": "import { b } from './b';\nexport function fa() { if (x) {} }\n",
            "b.ts": "export class B {\n}\n",
        },
    )
    asm = extract_path(repo)
    g = asm.build(graph_id="kg_test", root_path=str(repo), generated_at=_WHEN)

    assert g.id == "kg_test"
    assert g.metadata.total_files == 2
    assert g.metadata.languages == ("TypeScript",)
    assert g.metadata.diameter >= 2
    assert 0.0 <= g.metadata.clustering_coefficient <= 1.0
    assert any(e.type == "imports" for e in g.edges)
    for n in g.nodes:
        assert n.embedding is not None
        assert len(n.embedding) == 64
        assert float(np.linalg.norm(n.embedding)) < 1.0


def test_build_empty_assembler():
    g = GraphAssembler().build(graph_id="empty", root_path="/r", generated_at=_WHEN)
    assert g.nodes == ()
    assert g.metadata.diameter == 0
    assert g.metadata.clustering_coefficient == 0.0


def test_warn_collects_messages():
    asm = GraphAssembler()
    asm.warn("skipped x")
    assert asm.warnings == ["skipped x"]


# ---------------------------------------------------------------------------
# embed_nodes
# ---------------------------------------------------------------------------


class _Exploding(Embedder):
    def project(self, features):
        raise RuntimeError("model offline")


def test_embed_nodes_survives_failing_strategy():
    nodes = [_node("a"), _node("b")]
    out = embed_nodes(nodes, [], _Exploding())
    assert [n.id for n in out] == ["a", "b"]
    for n in out:
        assert float(np.linalg.norm(n.embedding)) < 1.0
    # degenerate vectors are keyed by node id
    assert out[0].embedding != out[1].embedding
    assert out[0].embedding == embed_nodes(nodes, [], _Exploding())[0].embedding
