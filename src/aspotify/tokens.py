"""Access-token cache shared by every request a client makes."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import httpx

from aspotify.constants import DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS
from aspotify.models import TokenResponse

if TYPE_CHECKING:
    from aspotify.auth import Authorizer

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class AccessToken:
    """A bearer token and the instant it stops being accepted.

    Tokens are never mutated; a refresh produces a new instance.
    """

    value: str = field(repr=False)
    expires_at: datetime
    scopes: frozenset[str] = frozenset()

    @classmethod
    def from_response(cls, payload: TokenResponse, issued_at: datetime) -> "AccessToken":
        scopes = frozenset(payload.scope.split()) if payload.scope else frozenset()
        return cls(
            value=payload.access_token,
            expires_at=issued_at + timedelta(seconds=payload.expires_in),
            scopes=scopes,
        )

    def is_fresh(self, now: datetime, margin: timedelta) -> bool:
        """Return True while the token is usable with ``margin`` to spare."""
        return now < self.expires_at - margin


class TokenStore:
    """Holds the current access token for one client and refreshes it on demand.

    The lock is held only while minting, so requests holding a fresh token
    never wait on each other. Callers that arrive during a mint wait for it
    and then reuse its result instead of minting again.
    """

    def __init__(
        self,
        authorizer: "Authorizer",
        http: httpx.AsyncClient,
        *,
        margin_seconds: float = DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self._authorizer = authorizer
        self._http = http
        self._margin = timedelta(seconds=margin_seconds)
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    @property
    def authorizer(self) -> "Authorizer":
        return self._authorizer

    @property
    def token(self) -> AccessToken | None:
        """The cached token, fresh or not."""
        return self._token

    def _is_fresh(self, token: AccessToken | None) -> bool:
        return token is not None and token.is_fresh(self._clock(), self._margin)

    async def get_valid_token(self) -> AccessToken:
        """Return the cached token, minting a new one if it is missing or about to expire.

        Raises:
            SpotifyAuthFailure: If the authorizer could not mint a token.
        """
        seen = self._token
        if self._is_fresh(seen):
            return seen  # type: ignore[return-value]

        async with self._lock:
            # A token minted while we waited for the lock is used as is.
            current = self._token
            if current is not None and (current is not seen or self._is_fresh(current)):
                return current
            return await self._mint()

    async def refresh(self, stale: AccessToken | None) -> AccessToken:
        """Force a new token after ``stale`` was rejected by the API.

        If a concurrent caller has already replaced ``stale``, its token is
        returned instead of minting again.
        """
        async with self._lock:
            current = self._token
            if current is not None and current is not stale and self._is_fresh(current):
                return current
            return await self._mint()

    def invalidate(self) -> None:
        """Drop the cached token so the next request mints a new one."""
        self._token = None

    async def install(self, authorizer: "Authorizer", token: AccessToken) -> None:
        """Switch to a different authorizer, seeding the cache with a token it issued."""
        async with self._lock:
            self._authorizer = authorizer
            self._token = token

    async def _mint(self) -> AccessToken:
        # Caller holds the lock.
        self._token = None
        logger.debug("Minting Spotify access token via %s", type(self._authorizer).__name__)
        token = await self._authorizer.mint(self._http)
        self._token = token
        lifetime = token.expires_at - self._clock()
        if lifetime <= self._margin:
            logger.warning(
                "Spotify issued a token valid for %ds, within the %ds refresh margin; every call will mint",
                lifetime.total_seconds(),
                self._margin.total_seconds(),
            )
        return token
