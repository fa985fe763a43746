"""Shared test fixtures."""

from collections.abc import Callable

import pytest

import trackbridge.settings as settings_module
from trackbridge.log import configure_logging
from trackbridge.settings import BridgeSettings

_BASE_VALUES = {
    "jira_url": "https://example.atlassian.net",
    "jira_email": "dev@example.com",
    "jira_token": "jira-api-token",
    "jira_project": "TEST",
    "gitlab_url": "https://gitlab.example.com",
    "gitlab_token": "glpat-test-token",
    "gitlab_project_id": "42",
    "default_platform": "jira",
    "log_level": "info",
    "environment": "test",
    "anthropic_api_key": None,
}


def _make_settings(**overrides) -> BridgeSettings:
    # Explicit values (None included) outrank anything in the real environment
    values = {**_BASE_VALUES, **overrides}
    return BridgeSettings(_env_file=None, **values)  # type: ignore[call-arg]


@pytest.fixture
def settings_factory() -> Callable[..., BridgeSettings]:
    return _make_settings


@pytest.fixture
def settings() -> BridgeSettings:
    return _make_settings()


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh logging config and TOML cache for every test."""
    configure_logging("debug")
    settings_module._load_toml.cache_clear()
    yield
    settings_module._load_toml.cache_clear()
