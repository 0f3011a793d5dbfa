"""Spotify API client exceptions."""

from aspotify.models import ErrorObject


class SpotifyClientError(Exception):
    """Base exception for Spotify client errors."""


class SpotifyTransportError(SpotifyClientError):
    """The request never produced an HTTP response (connection failure or timeout)."""


class SpotifyAuthFailure(SpotifyClientError):
    """The token endpoint refused to issue an access token or could not be reached.

    ``permanent`` is set when Spotify rejected the credentials (400/401); the
    authorizer that raised it will not contact the token endpoint again.
    """

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        error: str | None = None,
        error_description: str | None = None,
        permanent: bool = False,
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        self.error = error
        self.error_description = error_description
        self.permanent = permanent
        msg = "Spotify authentication failed"
        if status_code is not None:
            msg += f": HTTP {status_code}"
        super().__init__(msg + (f" - {detail}" if detail else ""))


class SpotifyAuthTransportError(SpotifyAuthFailure, SpotifyTransportError):
    """The token endpoint could not be reached or timed out."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)


class SpotifyAuthError(SpotifyClientError):
    """Spotify returned 401 Unauthorized and a forced token refresh did not resolve it."""


class SpotifyRateLimitError(SpotifyClientError):
    """Spotify returned 429 Too Many Requests and the retry ceiling was reached."""

    def __init__(self, retry_after: float | None = None, attempts: int = 0) -> None:
        self.retry_after = retry_after
        self.attempts = attempts
        msg = "Spotify rate limit exceeded"
        if retry_after is not None:
            msg += f" (retry-after: {retry_after}s)"
        super().__init__(msg)


class SpotifyServerError(SpotifyClientError):
    """Spotify returned a 5xx server error."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Spotify server error: HTTP {status_code}" + (f" - {body[:200]}" if body else ""))


class SpotifyRequestError(SpotifyClientError):
    """Spotify returned a non-retryable client error (4xx other than 401/429)."""

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        *,
        body: str = "",
        error: ErrorObject | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.body = body
        self.error = error
        super().__init__(f"Spotify request error: HTTP {status_code}" + (f" - {detail}" if detail else ""))


class SpotifyDecodeError(SpotifyClientError):
    """A successful response body did not match the expected model."""


class RedirectError(SpotifyClientError):
    """Base exception for authorization-code redirect handling."""


class IncorrectStateError(RedirectError):
    """The redirect URL has no state parameter, or it does not match."""


class AuthorizationDeniedError(RedirectError):
    """The user declined authorization or Spotify reported an error in the redirect."""

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(f"Spotify authorization failed: {error or 'no code in redirect'}")
