#!/usr/bin/env python3
"""
config.py

Process-level settings, read from ``HYPERKG_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_MAX_GRAPHS = 16


@dataclass(frozen=True)
class Settings:
    """
    Settings shared by the CLI entry points and the tool-call server.

    :param log_level: Minimum loguru level for the stderr sink.
    :param max_graphs: Graph store capacity before LRU eviction.
    :param model_path: Optional ``.npy`` projection matrix for the model
                       embedding path.
    """

    log_level: str = _DEFAULT_LOG_LEVEL
    max_graphs: int = _DEFAULT_MAX_GRAPHS
    model_path: Path | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        raw_max = env.get("HYPERKG_MAX_GRAPHS", "").strip()
        try:
            max_graphs = int(raw_max) if raw_max else _DEFAULT_MAX_GRAPHS
        except ValueError:
            raise ValueError(f"HYPERKG_MAX_GRAPHS must be an integer, got {raw_max!r}") from None
        if max_graphs < 1:
            raise ValueError(f"HYPERKG_MAX_GRAPHS must be >= 1, got {max_graphs}")
        model = env.get("HYPERKG_MODEL", "").strip()
        return cls(
            log_level=env.get("HYPERKG_LOG_LEVEL", _DEFAULT_LOG_LEVEL).strip().upper()
            or _DEFAULT_LOG_LEVEL,
            max_graphs=max_graphs,
            model_path=Path(model) if model else None,
        )
