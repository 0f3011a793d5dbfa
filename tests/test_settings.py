"""Tests for ClientSettings."""

import pytest

from aspotify.auth import ClientCredentials
from aspotify.settings import ClientSettings, get_settings


def test_defaults() -> None:
    """Settings have sensible defaults."""
    settings = ClientSettings(CLIENT_ID="cid", CLIENT_SECRET="csecret")
    assert settings.REFRESH_TOKEN == ""
    assert settings.TOKEN_REFRESH_MARGIN_SECONDS == 60
    assert settings.MAX_RATE_LIMIT_RETRIES == 3
    assert settings.DEFAULT_RETRY_AFTER_SECONDS == 2.0
    assert settings.REQUEST_TIMEOUT_SECONDS == 30.0


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings can be overridden via SPOTIFY_* environment variables."""
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "env-id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("SPOTIFY_REFRESH_TOKEN", "env-refresh")
    monkeypatch.setenv("SPOTIFY_MAX_RATE_LIMIT_RETRIES", "0")

    settings = ClientSettings()
    assert settings.CLIENT_ID == "env-id"
    assert settings.REFRESH_TOKEN == "env-refresh"
    assert settings.MAX_RATE_LIMIT_RETRIES == 0


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "cached-id")
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
        assert get_settings().CLIENT_ID == "cached-id"
    finally:
        get_settings.cache_clear()


def test_credentials_from_settings() -> None:
    settings = ClientSettings(CLIENT_ID="cid", CLIENT_SECRET="csecret")
    assert ClientCredentials.from_settings(settings) == ClientCredentials(id="cid", secret="csecret")
