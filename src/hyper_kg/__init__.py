"""
hyper_kg: A hyperbolic knowledge graph of source trees.

Lexical/AST extraction → typed graph → feature vectors → Poincaré-ball
embeddings → graph metrics, queries and layouts.

Public API
----------
Primary entry point::

    from hyper_kg import HyperKG

    kg = HyperKG()
    report = kg.analyze("/path/to/src")
    result = kg.query("parser", type="dependency")
    viz = kg.visualize(layout="hierarchical")

Individual layers::

    from hyper_kg import extract_path, GraphAssembler, FeatureExtractor, GraphStore
    from hyper_kg import FallbackEmbedder, ModelEmbedder, make_embedder

Result types::

    from hyper_kg import AnalysisReport, QueryResult, QueryHit, NotFound

Low-level primitives::

    from hyper_kg import KnowledgeNode, KnowledgeEdge, NodeMeta, KnowledgeGraph

Logging is off until the application calls
:func:`hyper_kg.log.configure_logging`.
"""

from loguru import logger

__version__ = "0.1.0"

# Low-level primitives
from hyper_kg.hyperkg import AnalyzeOptions, KnowledgeEdge, KnowledgeNode, NodeMeta, extract_path

# Layered classes
from hyper_kg.graph import GraphAssembler, GraphMetadata, KnowledgeGraph
from hyper_kg.features import FeatureExtractor
from hyper_kg.embedding import Embedder, FallbackEmbedder, ModelEmbedder, make_embedder
from hyper_kg.store import GraphStore

# Orchestrator + result types
from hyper_kg.errors import (
    AnalysisTimeoutError,
    GraphExistsError,
    HyperKGError,
    NotFound,
    PathNotFoundError,
)
from hyper_kg.kg import AnalysisReport, HyperKG
from hyper_kg.query import QueryHit, QueryResult

logger.disable("hyper_kg")

__all__ = [
    # primitives
    "NodeMeta",
    "KnowledgeNode",
    "KnowledgeEdge",
    "AnalyzeOptions",
    "extract_path",
    # layers
    "GraphAssembler",
    "GraphMetadata",
    "KnowledgeGraph",
    "FeatureExtractor",
    "Embedder",
    "FallbackEmbedder",
    "ModelEmbedder",
    "make_embedder",
    "GraphStore",
    # orchestrator
    "HyperKG",
    # result types
    "AnalysisReport",
    "QueryResult",
    "QueryHit",
    "NotFound",
    # errors
    "HyperKGError",
    "PathNotFoundError",
    "AnalysisTimeoutError",
    "GraphExistsError",
]
