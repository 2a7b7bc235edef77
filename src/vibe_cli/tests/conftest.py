"""
Shared pytest configuration for Vibe CLI tests.

This file provides shared fixtures and configuration for all test modules.
"""

import os

import pytest

# Import shared fixtures from the fixtures module
from .fixtures.api_fixtures import fake_sleep, test_config

# Re-export fixtures so they're available to all test modules
__all__ = ["fake_sleep", "test_config"]


# Test markers for categorizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture(autouse=True)
def isolate_vibe_environment(monkeypatch):
    """Keep VIBE_* variables from the developer's shell out of every test."""
    for key in list(os.environ):
        if key.startswith("VIBE_"):
            monkeypatch.delenv(key, raising=False)
    yield
