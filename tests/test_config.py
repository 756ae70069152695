"""Tests for environment-driven settings."""

import pytest

from endpoints.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.api_prefix == "/v1"
    assert settings.fanout_limit == 8
    assert settings.debug is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ENDPOINTS_API_PREFIX", "/api")
    monkeypatch.setenv("ENDPOINTS_FANOUT_LIMIT", "2")
    monkeypatch.setenv("ENDPOINTS_DEBUG", "true")

    settings = get_settings()

    assert settings.api_prefix == "/api"
    assert settings.fanout_limit == 2
    assert settings.debug is True
    assert get_settings() is settings
