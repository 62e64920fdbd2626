"""Pytest configuration — ensures the project root is importable."""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture
def today() -> date:
    """Fixed reference date so age and expiry checks never drift."""
    return date(2025, 6, 15)
