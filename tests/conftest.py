"""Shared fixtures: a controllable clock, a recording sleep and a scripted authorizer."""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from aspotify.auth import Authorizer
from aspotify.exceptions import SpotifyAuthFailure
from aspotify.tokens import AccessToken

TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE = "https://api.spotify.com/v1"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingSleep:
    """Sleep replacement that records delays and advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.clock.advance(delay)


class FakeAuthorizer(Authorizer):
    """Authorizer that issues ``token-1``, ``token-2``, ... without HTTP."""

    def __init__(
        self,
        clock: FakeClock,
        *,
        expires_in: int = 3600,
        delay: float = 0.0,
        failure: SpotifyAuthFailure | None = None,
        scopes: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__("client-id", "client-secret", clock=clock)
        self.expires_in = expires_in
        self.delay = delay
        self.failure = failure
        self.scopes = scopes
        self.mints = 0

    def _grant(self) -> dict[str, str]:
        return {"grant_type": "client_credentials"}

    async def mint(self, http: httpx.AsyncClient) -> AccessToken:
        self.mints += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failure is not None:
            raise self.failure
        return AccessToken(
            value=f"token-{self.mints}",
            expires_at=self._clock() + timedelta(seconds=self.expires_in),
            scopes=self.scopes,
        )


def token_json(access_token: str = "access-1", expires_in: int = 3600, **extra: object) -> dict[str, object]:
    """Helper to build a /api/token response body."""
    return {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in, **extra}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
async def http() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client
