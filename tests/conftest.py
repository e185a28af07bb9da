"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mastery_path.core.models import Attempt, Ledger  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fresh_ledger():
    """A first-use ledger."""
    return Ledger.initial()


@pytest.fixture
def make_attempt():
    """Factory for attempts with increasing timestamps."""
    counter = {"ts": 1_700_000_000_000}

    def _make(table, multiplier, is_correct=True, time_taken_ms=1500, timestamp=None):
        if timestamp is None:
            counter["ts"] += 1000
            timestamp = counter["ts"]
        return Attempt(
            table=table,
            multiplier=multiplier,
            is_correct=is_correct,
            time_taken_ms=time_taken_ms,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def rng():
    """Seeded random source for sampling tests."""
    return random.Random(20240611)
