#!/usr/bin/env python3
"""
embedding.py

Hyperbolic embedder — projects feature vectors into the open unit
(Poincaré) ball.

Two strategies share one contract:

* :class:`FallbackEmbedder` — deterministic geometric projection, always
  available.
* :class:`ModelEmbedder` — delegates to a trained projection model.

Whatever the strategy returns is passed through :func:`to_ball`, so every
embedding satisfies ``norm < 1`` even when a model misbehaves or raises.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
from loguru import logger

EMBEDDING_DIM = 64

# rescaled vectors land on this radius
BALL_MARGIN = 0.95

# half-width of the uniform box for degenerate substitutes, and their norm cap
_DEGENERATE_SPREAD = 0.05
_DEGENERATE_MAX_NORM = 0.5

ProjectionModel = Callable[[np.ndarray], Sequence[float]]


# ---------------------------------------------------------------------------
# Ball geometry
# ---------------------------------------------------------------------------


def degenerate_vector(key: str, dim: int = EMBEDDING_DIM) -> np.ndarray:
    """
    Small pseudo-random vector, reproducible from ``key``.

    The box narrows for wide vectors so the norm stays at most 0.5 for
    any ``dim``.

    :param key: Seed material, usually the node id.
    :param dim: Vector length.
    """
    seed = int.from_bytes(hashlib.sha1(key.encode("utf-8")).digest()[:8], "big")
    rng = np.random.default_rng(seed)
    spread = min(_DEGENERATE_SPREAD, _DEGENERATE_MAX_NORM / math.sqrt(dim)) if dim else 0.0
    return rng.uniform(-spread, spread, size=dim)


def to_ball(
    vector: Sequence[float] | np.ndarray | None,
    *,
    key: str = "",
    dim: int = EMBEDDING_DIM,
) -> np.ndarray:
    """
    Clamp ``vector`` into the open unit ball.

    Takes the first ``dim`` components (zero-padding short input). If the
    Euclidean norm is ``>= 1`` the vector is rescaled to norm
    :data:`BALL_MARGIN`. ``None`` or non-finite input is replaced by
    :func:`degenerate_vector`.

    :return: float64 array of length ``dim`` with norm < 1.
    """
    if vector is None:
        return degenerate_vector(key, dim)
    try:
        arr = np.asarray(vector, dtype=np.float64).ravel()
    except (TypeError, ValueError):
        return degenerate_vector(key, dim)

    out = np.zeros(dim, dtype=np.float64)
    n = min(arr.size, dim)
    out[:n] = arr[:n]

    if not np.all(np.isfinite(out)):
        return degenerate_vector(key, dim)
    peak = float(np.max(np.abs(out))) if dim else 0.0
    if peak == 0.0:
        return out
    # normalise by the largest component first so huge inputs do not overflow
    unit = out / peak
    norm = peak * float(np.linalg.norm(unit))
    if norm >= 1.0:
        out = unit * (BALL_MARGIN / float(np.linalg.norm(unit)))
    return out


# ---------------------------------------------------------------------------
# Embedder interface (pluggable)
# ---------------------------------------------------------------------------


class Embedder:
    """
    Abstract embedding strategy.

    Subclass and implement :meth:`project`; :meth:`embed` applies the ball
    clamp and the failure fallback.

    :param dim: Embedding dimension.
    """

    dim: int = EMBEDDING_DIM

    def project(self, features: np.ndarray) -> Sequence[float] | np.ndarray:
        """
        Map a feature vector to an unconstrained embedding.

        :param features: Feature vector.
        :return: Vector of any norm.
        """
        raise NotImplementedError

    def embed(self, features: Sequence[float] | np.ndarray | None, *, key: str = "") -> tuple[float, ...]:
        """
        Embed ``features`` into the open unit ball.

        Never raises: a failing :meth:`project` or missing features yield
        the deterministic degenerate vector for ``key``.

        :param features: Feature vector, or ``None`` if extraction failed.
        :param key: Stable key (node id) seeding the degenerate vector.
        :return: Tuple of ``dim`` floats with Euclidean norm < 1.
        """
        projected = None
        if features is not None:
            try:
                projected = self.project(np.asarray(features, dtype=np.float64))
            except Exception as exc:  # strategy failures never propagate
                logger.warning("{} failed for {!r}: {}", type(self).__name__, key, exc)
        return tuple(float(x) for x in to_ball(projected, key=key, dim=self.dim))


class FallbackEmbedder(Embedder):
    """
    Geometric projection: the first ``dim`` features, clamped to the ball.

    Bit-reproducible for identical input.
    """

    def __init__(self, dim: int = EMBEDDING_DIM) -> None:
        self.dim = dim

    def project(self, features: np.ndarray) -> np.ndarray:
        return features[: self.dim]

    def __repr__(self) -> str:
        return f"FallbackEmbedder(dim={self.dim})"


class ModelEmbedder(Embedder):
    """
    Delegates to a trained projection model.

    The model's output norm is not trusted; :meth:`Embedder.embed` clamps it.

    :param model: Callable mapping a feature vector to a vector.
    :param dim: Embedding dimension.
    """

    def __init__(self, model: ProjectionModel, dim: int = EMBEDDING_DIM) -> None:
        self.model = model
        self.dim = dim

    def project(self, features: np.ndarray) -> Sequence[float]:
        return self.model(features)

    def __repr__(self) -> str:
        return f"ModelEmbedder(model={self.model!r}, dim={self.dim})"


class LinearProjectionModel:
    """
    ``tanh(W @ x)`` projection from a stored weight matrix.

    :param weights: ``(out_dim, in_dim)`` matrix; inputs are zero-padded or
                    truncated to ``in_dim``.
    """

    def __init__(self, weights: np.ndarray) -> None:
        w = np.asarray(weights, dtype=np.float64)
        if w.ndim != 2:
            raise ValueError(f"Projection weights must be 2-D, got shape {w.shape}")
        self.weights = w

    @classmethod
    def load(cls, path: str | Path) -> LinearProjectionModel:
        """Load weights saved with ``numpy.save``."""
        return cls(np.load(Path(path), allow_pickle=False))

    def __call__(self, features: np.ndarray) -> np.ndarray:
        in_dim = self.weights.shape[1]
        x = np.zeros(in_dim, dtype=np.float64)
        f = np.asarray(features, dtype=np.float64).ravel()
        n = min(f.size, in_dim)
        x[:n] = f[:n]
        return np.tanh(self.weights @ x)

    def __repr__(self) -> str:
        return f"LinearProjectionModel(shape={self.weights.shape})"


def make_embedder(model: ProjectionModel | str | Path | None = None, *, dim: int = EMBEDDING_DIM) -> Embedder:
    """
    Select the embedding strategy once, at construction time.

    :param model: A projection callable, a path to ``.npy`` weights, or
                  ``None`` for the fallback projection.
    :return: :class:`ModelEmbedder` when a usable model is given, else
             :class:`FallbackEmbedder`.
    """
    if model is None:
        return FallbackEmbedder(dim)
    if isinstance(model, str | Path):
        try:
            model = LinearProjectionModel.load(model)
        except (OSError, ValueError) as exc:
            logger.warning("projection model {} unusable, using fallback: {}", model, exc)
            return FallbackEmbedder(dim)
    if not callable(model):
        raise TypeError(f"Projection model must be callable, got {type(model).__name__}")
    return ModelEmbedder(model, dim)
