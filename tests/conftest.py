"""
Shared pytest fixtures and configuration for scoring engine tests.

This file is automatically discovered by pytest and provides
fixtures available to all tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from ascendly.models import Account  # noqa: E402
from ascendly.storage import InMemoryStore, JsonFileStore  # noqa: E402


NOW = datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """
    Fixed reference time for deterministic decay, mastery and day buckets.

    Returns:
        datetime: 2025-03-12 15:30 UTC
    """
    return NOW


@pytest.fixture
def student():
    """
    Fixture providing a student enrolled in two classes.

    Returns:
        Account: ``acc-alice`` enrolled in AP Biology and AP Calculus BC
    """
    return Account(
        account_id="acc-alice",
        username="alice",
        role="student",
        classes=["AP Biology", "AP Calculus BC"],
        created_at="2025-01-01T00:00:00+00:00",
    )


@pytest.fixture
def memory_store(student):
    """In-memory store seeded with the ``student`` account."""
    store = InMemoryStore()
    store.upsert_account(student)
    return store


@pytest.fixture
def json_store(tmp_path, student):
    """JSON file store in a temporary directory, seeded with ``student``."""
    store = JsonFileStore(tmp_path / "data")
    store.upsert_account(student)
    return store


# Pytest hooks for better test output


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
