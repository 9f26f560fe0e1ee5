"""
Pytest configuration and fixtures.

This file provides pytest-specific fixtures. unittest-style tests use
tests.fixtures.matching_fixtures.MatchingTestCase instead.
"""

import pytest

from core.config_loader import AppConfig
from tests.fixtures.matching_fixtures import build_test_context
from tests.mocks.matching_mocks import FakeClock, make_mock_notifier


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "web: marks tests that exercise the FastAPI layer"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return make_mock_notifier()


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def context(app_config, notifier, clock):
    """Wired AppContext over an in-memory SQLite database."""
    ctx = build_test_context(app_config, notifier=notifier, clock=clock)
    yield ctx
    ctx.engine.dispose()
