#!/usr/bin/env python3
"""
log.py

loguru setup for the command-line tools and the tool-call server.

The package disables its own log namespace on import; applications opt
in with :func:`configure_logging`.
"""

from __future__ import annotations

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", *, sink=None) -> None:
    """
    Route hyper_kg log records to a single sink.

    stdout is reserved for command output (JSON, reports), so the default
    sink is stderr; the stdio tool-call transport depends on that too.

    :param level: Minimum level name (``DEBUG``, ``INFO``, ``WARNING``...).
    :param sink: Any loguru sink; defaults to ``sys.stderr``.
    """
    logger.remove()
    logger.add(
        sys.stderr if sink is None else sink,
        format=_FORMAT,
        level=level.upper(),
        colorize=sink is None,
    )
    logger.enable("hyper_kg")
