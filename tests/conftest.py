"""Shared fixtures for the kitbash guard test suite."""

from datetime import datetime

import pytest
import structlog

from kitbash_guard.infrastructure.config import CONFIG_ENV_VAR, LOG_LEVEL_ENV_VAR, ConfigManager


FIXED_NOW = datetime(2026, 3, 15, 9, 30)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep a developer's guard configuration out of the tests."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Keep logging configuration from one test out of the next."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fixed_clock():
    """Clock pinned to March 2026."""
    return lambda: FIXED_NOW


@pytest.fixture
def default_config():
    """The configuration shipped with the package."""
    return ConfigManager().load_config()
