"""Pytest configuration — ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from probate_engine.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env overrides in one test never leak into the next."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
