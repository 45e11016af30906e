#!/usr/bin/env python3
"""
errors.py

Failure types for the hyperbolic knowledge graph.

Fatal problems are exceptions; a missing graph is a :class:`NotFound`
result so that callers behind a tool-call boundary never crash on it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass


class HyperKGError(Exception):
    """Base class for all hyper_kg exceptions."""


class PathNotFoundError(HyperKGError, FileNotFoundError):
    """
    The root path handed to an analysis run does not exist or cannot be read.

    :param path: The offending path, as supplied by the caller.
    :param reason: Message prefix.
    """

    def __init__(self, path: str, *, reason: str = "Path does not exist") -> None:
        self.path = str(path)
        super().__init__(f"{reason}: {self.path}")


class AnalysisTimeoutError(HyperKGError, TimeoutError):
    """The caller-supplied analysis timeout elapsed before extraction finished."""

    def __init__(self, path: str, timeout: float) -> None:
        self.path = str(path)
        self.timeout = timeout
        super().__init__(f"Analysis of {self.path} exceeded {timeout:g}s")


class GraphExistsError(HyperKGError):
    """A graph id was published twice (graphs are insert-once)."""

    def __init__(self, graph_id: str) -> None:
        self.graph_id = graph_id
        super().__init__(f"Graph already published: {graph_id!r}")


@dataclass(frozen=True)
class NotFound:
    """
    Typed "not found" result for read operations.

    :param graph_id: Requested graph id (``None`` when the latest graph was
                     requested and the store is empty).
    :param message: Human-readable explanation.
    """

    graph_id: str | None
    message: str

    @classmethod
    def for_graph(cls, graph_id: str | None) -> NotFound:
        if graph_id is None:
            return cls(None, "No knowledge graph available. Please analyze a path first.")
        return cls(graph_id, f"Knowledge graph not found: {graph_id!r}")

    def to_dict(self) -> dict:
        return {"error": "not_found", "graph_id": self.graph_id, "message": self.message}

    def to_json(self, *, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __bool__(self) -> bool:
        return False
