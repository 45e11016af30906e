"""Shared fixtures."""

from __future__ import annotations

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging() calls made by CLI and server tests."""
    yield
    logger.remove()
    logger.disable("hyper_kg")
