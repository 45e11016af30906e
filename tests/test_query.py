"""
test_query.py

Tests for the query engine: similarity, dependency, cluster, catch-all
modes and node selection for external generators.
"""

from __future__ import annotations

import json
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

from hyper_kg.graph import GraphMetadata, KnowledgeGraph
from hyper_kg.hyperkg import KnowledgeEdge, KnowledgeNode, NodeMeta, extract_path
from hyper_kg.query import QueryResult, relevant_nodes, run_query, text_similarity

_WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)

_FILES = {
    "src/parser.ts": """\
        /** Parses tokens into a tree. */
        export function parse(tokens: string[]) {
          if (tokens.length) { return tokens; }
          return [];
        }
        """,
    "src/lexer.ts": """\
        import { parse } from './parser';
        export class Lexer {
          tokenize(text: string) { return parse(text.split(' ')); }
        }
        """,
    "README.md": "# Demo\n",
}


def _write_repo(tmp_path: Path, files: dict) -> Path:
    for rel, src in files.items():
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(textwrap.dedent(src))
    return tmp_path


def _graph(tmp_path: Path) -> KnowledgeGraph:
    repo = _write_repo(tmp_path / "repo", _FILES)
    return extract_path(repo).build(graph_id="kg_q", root_path=str(repo), generated_at=_WHEN)


def _names(result: QueryResult) -> list[str]:
    return [h.node.name for h in result.hits]


def test_fixture_node_order(tmp_path):
    g = _graph(tmp_path)
    assert [n.name for n in g.nodes] == [
        "repo",
        "README.md",
        "src",
        "lexer.ts",
        "Lexer",
        "parser.ts",
        "parse",
    ]


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def test_text_similarity_is_substring_fraction():
    n = KnowledgeNode(
        id="n", type="function", name="loadConfig", metadata=NodeMeta(description="Reads YAML")
    )
    assert text_similarity("config yaml", n) == 1.0
    assert text_similarity("config json", n) == 0.5
    assert text_similarity("", n) == 0.0
    assert text_similarity("ad", n) == 1.0  # substring of "reads"


def test_similarity_ranks_and_keeps_node_order_on_ties(tmp_path):
    result = run_query(_graph(tmp_path), "parses tree")
    assert _names(result) == ["parser.ts", "parse"]
    assert all(h.score == 1.0 for h in result.hits)
    assert result.hits[0].explanation == "Text similarity: 100.0%"


def test_similarity_threshold_drops_weak_hits(tmp_path):
    q = "parse " + " ".join(f"zq{i}" for i in range(10))  # 1 of 11 words matches
    assert len(run_query(_graph(tmp_path), q)) == 0


def test_catch_all_mode_is_unfiltered(tmp_path):
    g = _graph(tmp_path)
    q = "parse " + " ".join(f"zq{i}" for i in range(10))
    result = run_query(g, q, type="impact")
    assert len(result) == len(g.nodes)
    assert _names(result)[:4] == ["lexer.ts", "Lexer", "parser.ts", "parse"]
    assert result.hits[-1].score == 0.0
    assert result.hits[0].explanation.startswith("Default similarity")


def test_limit_truncates_after_sorting(tmp_path):
    result = run_query(_graph(tmp_path), "parses tree", limit=1)
    assert _names(result) == ["parser.ts"]
    assert result.limit == 1


def test_negative_limit_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_query(_graph(tmp_path), "x", limit=-1)


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


def test_dependency_traversal_ranked_by_distance(tmp_path):
    result = run_query(_graph(tmp_path), "LEXER", type="dependency")
    names = _names(result)
    assert "lexer.ts" not in names  # the seed itself
    assert names[:3] == ["Lexer", "src", "parser.ts"]
    assert set(names) == {"Lexer", "src", "parser.ts", "repo", "parse", "README.md"}
    scores = [h.score for h in result.hits]
    assert scores == sorted(scores)
    assert scores[0] == 1.0
    assert scores[-1] == 3.0
    assert result.hits[0].explanation == "Dependency relationship (distance: 1)"


def test_dependency_limit_keeps_nearest(tmp_path):
    result = run_query(_graph(tmp_path), "lexer", type="dependency", limit=3)
    assert [h.score for h in result.hits] == [1.0, 1.0, 1.0]


def test_dependency_without_match_is_empty(tmp_path):
    result = run_query(_graph(tmp_path), "nonexistent", type="dependency")
    assert result.hits == ()


# ---------------------------------------------------------------------------
# Cluster
# ---------------------------------------------------------------------------


def test_cluster_returns_whole_structural_component(tmp_path):
    g = _graph(tmp_path)
    result = run_query(g, "parse", type="cluster")
    assert len(result) == len(g.nodes)
    assert {h.score for h in result.hits} == {1.0}
    assert result.hits[0].explanation == "Member of the same cluster"


def test_cluster_without_structural_edges_is_empty():
    nodes = tuple(KnowledgeNode(id=i, type="function", name=i) for i in ("alpha", "beta"))
    g = KnowledgeGraph(
        id="g",
        nodes=nodes,
        edges=(KnowledgeEdge("alpha", "calls", "beta"),),
        metadata=GraphMetadata(root_path="/r", generated_at=_WHEN),
    )
    assert run_query(g, "alpha", type="cluster").hits == ()


# ---------------------------------------------------------------------------
# Result serialisation
# ---------------------------------------------------------------------------


def test_query_result_to_json(tmp_path):
    result = run_query(_graph(tmp_path), "parses tree")
    data = json.loads(result.to_json())
    assert data["graph_id"] == "kg_q"
    assert data["type"] == "similarity"
    assert data["count"] == 2
    first = data["results"][0]
    assert first["node"]["name"] == "parser.ts"
    assert len(first["node"]["embedding"]) == 64
    assert result.node_ids() == [h.node.id for h in result.hits]


def test_query_result_summary(tmp_path, capsys):
    run_query(_graph(tmp_path), "parses tree").print_summary()
    out = capsys.readouterr().out
    assert 'Query: "parses tree"' in out
    assert "Results found: 2" in out
    assert "1. parser.ts (file)" in out
    assert "Score: 1.000" in out


# ---------------------------------------------------------------------------
# relevant_nodes
# ---------------------------------------------------------------------------


def test_relevant_nodes_explicit_ids_win(tmp_path):
    g = _graph(tmp_path)
    ids = [g.nodes[5].id, g.nodes[1].id, "unknown"]
    picked = relevant_nodes(g, related_node_ids=ids, description="parse")
    assert [n.name for n in picked] == ["README.md", "parser.ts"]


def test_relevant_nodes_by_description_keywords(tmp_path):
    picked = relevant_nodes(_graph(tmp_path), description="Tokenize demo")
    assert [n.name for n in picked] == ["README.md", "lexer.ts", "Lexer"]


def test_relevant_nodes_default_first_five(tmp_path):
    g = _graph(tmp_path)
    assert relevant_nodes(g) == list(g.nodes[:5])
