"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the harness test suite.
"""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# =============================================================================
# Plugin Registration
# =============================================================================

pytest_plugins = [
    "mongoharness.mongo.testing",
    "tests.fixtures.logging",
    "tests.fixtures.mongo",
]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require a MongoDB deployment)"
    )
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line(
        "markers", "asyncio: Mark test as an async test (requires async runner)"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provide a temporary directory that is cleaned up after the test.

    Yields:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp(prefix="mongoharness-test-"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_dict() -> dict:
    """
    Provide a sample configuration dictionary for testing.

    Returns:
        dict: Sample configuration
    """
    return {
        "logging": {
            "level": "debug",
            "colors": False,
        },
        "mongo": {
            "uri": "mongodb://db1.example.net:27017,db2.example.net:27018/?replicaSet=rs0",
            "working_db": "harness",
            "server_selection_timeout_ms": 2000,
            "options": {"appname": "harness-tests"},
            "codes": {"namespace_not_found": 26},
        },
    }


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Add the 'unit' marker to tests without another category marker.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    for item in items:
        if not any(
            mark.name in ["integration", "property"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
