"""Request execution: bearer auth, response classification, 401 refresh and 429 backoff."""

import asyncio
import enum
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import httpx

from aspotify.constants import (
    DEFAULT_MAX_RATE_LIMIT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_AFTER_SECONDS,
    SPOTIFY_API_BASE,
)
from aspotify.exceptions import (
    SpotifyAuthError,
    SpotifyDecodeError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
    SpotifyTransportError,
)
from aspotify.models import ErrorResponse
from aspotify.tokens import AccessToken, Clock, TokenStore, utc_now

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
QueryValue = str | int | float | bool | None


@dataclass(frozen=True, slots=True)
class RequestTemplate:
    """Everything needed to send one API call, minus the bearer token.

    ``path`` is relative to the Web API base (``/albums/{id}``) unless it is
    already absolute, as the ``next`` links in paging objects are.
    """

    method: str
    path: str
    params: Mapping[str, QueryValue] = field(default_factory=dict)
    json_body: Any = None
    scopes: frozenset[str] = frozenset()

    @property
    def url(self) -> str:
        if self.path.startswith(("http://", "https://")):
            return self.path
        return f"{SPOTIFY_API_BASE}{self.path}"

    def query(self) -> dict[str, str | int | float] | None:
        """Query parameters with unset values dropped and booleans spelled the way Spotify expects."""
        query: dict[str, str | int | float] = {}
        for key, value in self.params.items():
            if value is None:
                continue
            query[key] = ("true" if value else "false") if isinstance(value, bool) else value
        return query or None


class OutcomeKind(enum.StrEnum):
    """Classification of a single HTTP attempt."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    AUTH_EXPIRED = "auth_expired"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    kind: OutcomeKind
    response: httpx.Response | None = None
    retry_after: float | None = None
    error: httpx.RequestError | None = None


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in whole seconds."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return float(seconds) if seconds >= 0 else None


def classify_response(response: httpx.Response) -> RequestOutcome:
    status = response.status_code
    if 200 <= status < 300:
        return RequestOutcome(OutcomeKind.SUCCESS, response)
    if status == 401:
        return RequestOutcome(OutcomeKind.AUTH_EXPIRED, response)
    if status == 429:
        return RequestOutcome(
            OutcomeKind.RATE_LIMITED,
            response,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )
    if status >= 500:
        return RequestOutcome(OutcomeKind.SERVER_ERROR, response)
    return RequestOutcome(OutcomeKind.CLIENT_ERROR, response)


def cache_max_age(headers: httpx.Headers) -> int:
    """Return the ``max-age`` directive of ``Cache-Control`` in seconds, or 0."""
    for directive in headers.get_list("Cache-Control", split_commas=True):
        name, _, value = directive.strip().partition("=")
        if name.lower() == "max-age":
            try:
                return max(int(value), 0)
            except ValueError:
                return 0
    return 0


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """Raw body of a successful call, ready for deserialization.

    ``expires_at`` is when the response may no longer be served from a cache,
    from ``Cache-Control: max-age``.
    """

    status_code: int
    headers: httpx.Headers
    text: str
    expires_at: datetime

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except ValueError as exc:
            raise SpotifyDecodeError(f"Response body is not valid JSON (HTTP {self.status_code})") from exc


class RequestExecutor:
    """Sends request templates with a valid bearer token and applies the retry policy.

    Per logical call:
    1. Attach a token from the :class:`TokenStore` and send.
    2. 2xx: return the body.
    3. 401: force one token refresh and resend; a second 401 raises SpotifyAuthError.
    4. 429: sleep for Retry-After (or the default) and resend, at most
       ``max_rate_limit_retries`` times, then raise SpotifyRateLimitError.
    5. 5xx: raise SpotifyServerError. Other 4xx: raise SpotifyRequestError.
    6. Connection failure, timeout or other transport-level failure: raise SpotifyTransportError.
    """

    def __init__(
        self,
        store: TokenStore,
        http: httpx.AsyncClient,
        *,
        max_rate_limit_retries: int = DEFAULT_MAX_RATE_LIMIT_RETRIES,
        default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._http = http
        self._max_rate_limit_retries = max_rate_limit_retries
        self._default_retry_after = default_retry_after
        self._request_timeout = request_timeout
        self._sleep = sleep
        self._clock = clock

    async def execute(self, template: RequestTemplate) -> ApiResponse:
        token = await self._store.get_valid_token()
        self._check_scopes(template, token)
        refreshed = False
        rate_limited = 0

        while True:
            outcome = await self._attempt(template, token)

            if outcome.kind is OutcomeKind.SUCCESS:
                return self._success(outcome.response)  # type: ignore[arg-type]

            if outcome.kind is OutcomeKind.AUTH_EXPIRED:
                if refreshed:
                    raise SpotifyAuthError("Spotify returned 401 Unauthorized after a token refresh")
                refreshed = True
                logger.warning(
                    "Spotify returned 401 for %s %s, forcing token refresh",
                    template.method,
                    template.path,
                    extra={"method": template.method, "path": template.path, "status_code": 401},
                )
                token = await self._store.refresh(token)
                continue

            if outcome.kind is OutcomeKind.RATE_LIMITED:
                delay = outcome.retry_after if outcome.retry_after is not None else self._default_retry_after
                if rate_limited >= self._max_rate_limit_retries:
                    raise SpotifyRateLimitError(retry_after=delay, attempts=rate_limited + 1)
                rate_limited += 1
                logger.warning(
                    "Spotify rate limited (429), sleeping %.1fs (retry %d/%d)",
                    delay,
                    rate_limited,
                    self._max_rate_limit_retries,
                    extra={
                        "method": template.method,
                        "path": template.path,
                        "status_code": 429,
                        "retry_after": delay,
                        "attempt": rate_limited,
                    },
                )
                await self._sleep(delay)
                # The token may have aged past the margin while we slept.
                token = await self._store.get_valid_token()
                continue

            if outcome.kind is OutcomeKind.TRANSPORT_ERROR:
                exc = outcome.error
                raise SpotifyTransportError(f"{type(exc).__name__}: {exc}") from exc

            response = outcome.response
            assert response is not None
            if outcome.kind is OutcomeKind.SERVER_ERROR:
                raise SpotifyServerError(status_code=response.status_code, body=response.text)
            raise self._client_error(response)

    async def _attempt(self, template: RequestTemplate, token: AccessToken) -> RequestOutcome:
        try:
            response = await self._http.request(
                template.method,
                template.url,
                params=template.query(),
                json=template.json_body,
                headers={"Authorization": f"Bearer {token.value}"},
                timeout=self._request_timeout,
            )
        except httpx.RequestError as exc:
            logger.warning(
                "Spotify request %s %s failed: %s",
                template.method,
                template.path,
                type(exc).__name__,
                extra={"method": template.method, "path": template.path, "error_type": type(exc).__name__},
            )
            return RequestOutcome(OutcomeKind.TRANSPORT_ERROR, error=exc)
        return classify_response(response)

    def _success(self, response: httpx.Response) -> ApiResponse:
        return ApiResponse(
            status_code=response.status_code,
            headers=response.headers,
            text=response.text,
            expires_at=self._clock() + timedelta(seconds=cache_max_age(response.headers)),
        )

    @staticmethod
    def _client_error(response: httpx.Response) -> SpotifyRequestError:
        detail = f"HTTP {response.status_code}"
        error = None
        try:
            error = ErrorResponse.model_validate(response.json()).error
            detail = error.message or detail
        except ValueError:
            if response.text:
                detail = response.text[:200]
        return SpotifyRequestError(
            status_code=response.status_code,
            detail=detail,
            body=response.text,
            error=error,
        )

    @staticmethod
    def _check_scopes(template: RequestTemplate, token: AccessToken) -> None:
        missing = template.scopes - token.scopes
        if missing:
            logger.warning(
                "Access token lacks scopes %s required by %s %s",
                ", ".join(sorted(missing)),
                template.method,
                template.path,
                extra={"method": template.method, "path": template.path},
            )
