"""Client settings loaded from environment variables."""

import functools

from pydantic_settings import BaseSettings

from aspotify.constants import (
    DEFAULT_AUTH_TIMEOUT,
    DEFAULT_MAX_RATE_LIMIT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS,
)


class ClientSettings(BaseSettings):
    """Spotify client configuration.

    Only consumed by :meth:`aspotify.SpotifyClient.from_settings`; the client
    core itself never reads the environment.
    """

    CLIENT_ID: str = ""
    CLIENT_SECRET: str = ""
    REFRESH_TOKEN: str = ""  # Empty = client credentials flow

    TOKEN_REFRESH_MARGIN_SECONDS: int = DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS
    MAX_RATE_LIMIT_RETRIES: int = DEFAULT_MAX_RATE_LIMIT_RETRIES
    DEFAULT_RETRY_AFTER_SECONDS: float = DEFAULT_RETRY_AFTER_SECONDS
    REQUEST_TIMEOUT_SECONDS: float = DEFAULT_REQUEST_TIMEOUT
    AUTH_TIMEOUT_SECONDS: float = DEFAULT_AUTH_TIMEOUT

    model_config = {"env_prefix": "SPOTIFY_"}


@functools.lru_cache(maxsize=1)
def get_settings() -> ClientSettings:
    """Return cached client settings singleton."""
    return ClientSettings()
