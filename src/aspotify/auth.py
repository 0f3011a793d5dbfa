"""Authorizers: mint Spotify access tokens from client credentials or a refresh token."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Self

import httpx

from aspotify.constants import DEFAULT_AUTH_TIMEOUT, SPOTIFY_TOKEN_URL
from aspotify.exceptions import SpotifyAuthFailure, SpotifyAuthTransportError
from aspotify.models import AuthErrorBody, TokenResponse
from aspotify.settings import ClientSettings
from aspotify.tokens import AccessToken, Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientCredentials:
    """Client ID and secret of a Spotify application."""

    id: str
    secret: str = field(repr=False)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> Self:
        return cls(id=settings.CLIENT_ID, secret=settings.CLIENT_SECRET)


@dataclass(frozen=True, slots=True)
class AuthorizationCode:
    """Client credentials plus a refresh token obtained through the authorization code flow."""

    id: str
    secret: str = field(repr=False)
    refresh_token: str = field(repr=False)


class Authorizer(ABC):
    """Mints access tokens with one POST to the accounts service.

    A 400 or 401 from the token endpoint means the credentials were rejected;
    the authorizer remembers the failure and raises it again on every later
    :meth:`mint` without contacting Spotify.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = DEFAULT_AUTH_TIMEOUT,
        clock: Clock = utc_now,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._clock = clock
        self._failure: SpotifyAuthFailure | None = None

    @property
    def credentials(self) -> ClientCredentials:
        return ClientCredentials(id=self._client_id, secret=self._client_secret)

    @property
    def failed(self) -> bool:
        """True once Spotify has permanently rejected this authorizer's credentials."""
        return self._failure is not None

    @abstractmethod
    def _grant(self) -> dict[str, str]:
        """Form fields identifying the grant for the next mint."""

    def _accept(self, payload: TokenResponse) -> None:
        """Hook for grant-specific bookkeeping on a successful mint."""

    async def mint(self, http: httpx.AsyncClient) -> AccessToken:
        """Request a fresh access token.

        Raises:
            SpotifyAuthFailure: If Spotify rejects the grant or returns a malformed response.
            SpotifyAuthTransportError: If the token request fails below the HTTP level (unreachable, timeout, undecodable body).
        """
        if self._failure is not None:
            raise self._failure

        grant = self._grant()
        issued_at = self._clock()
        payload = await self._request_token(http, grant)
        self._accept(payload)
        logger.info(
            "Obtained Spotify access token (%s, expires in %ds)",
            grant["grant_type"],
            payload.expires_in,
            extra={"grant_type": grant["grant_type"]},
        )
        return AccessToken.from_response(payload, issued_at)

    async def _request_token(self, http: httpx.AsyncClient, data: dict[str, str]) -> TokenResponse:
        """POST form-encoded grant parameters with HTTP Basic client authentication."""
        try:
            response = await http.post(
                SPOTIFY_TOKEN_URL,
                data=data,
                auth=(self._client_id, self._client_secret),
                timeout=self._timeout,
            )
        except httpx.RequestError as exc:
            logger.warning(
                "Spotify token request failed: %s",
                type(exc).__name__,
                extra={"grant_type": data["grant_type"], "error_type": type(exc).__name__},
            )
            raise SpotifyAuthTransportError(f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise self._rejection(response)

        try:
            return TokenResponse.model_validate(response.json())
        except ValueError as exc:
            raise SpotifyAuthFailure("Malformed token response", status_code=response.status_code) from exc

    def _rejection(self, response: httpx.Response) -> SpotifyAuthFailure:
        error: str | None = None
        description: str | None = None
        try:
            body = AuthErrorBody.model_validate(response.json())
            error, description = body.error, body.error_description
        except ValueError:
            pass
        permanent = response.status_code in (400, 401)
        failure = SpotifyAuthFailure(
            description or error or response.text[:200],
            status_code=response.status_code,
            error=error,
            error_description=description,
            permanent=permanent,
        )
        if permanent:
            logger.error(
                "Spotify rejected %s credentials (HTTP %d, %s); no further token requests will be made",
                type(self).__name__,
                response.status_code,
                error or "no error code",
                extra={"status_code": response.status_code},
            )
            self._failure = failure
        return failure


class ClientCredentialsAuthorizer(Authorizer):
    """Client credentials flow: app-only tokens, no user context, no refresh token."""

    def __init__(
        self,
        credentials: ClientCredentials,
        *,
        timeout: float = DEFAULT_AUTH_TIMEOUT,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(credentials.id, credentials.secret, timeout=timeout, clock=clock)

    def _grant(self) -> dict[str, str]:
        return {"grant_type": "client_credentials"}


class AuthorizationCodeAuthorizer(Authorizer):
    """Authorization code flow: user tokens minted from a long-lived refresh token.

    If Spotify rotates the refresh token, the new one replaces the stored one
    for every later mint.
    """

    def __init__(
        self,
        credentials: AuthorizationCode,
        *,
        timeout: float = DEFAULT_AUTH_TIMEOUT,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(credentials.id, credentials.secret, timeout=timeout, clock=clock)
        self._refresh_token = credentials.refresh_token

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def _grant(self) -> dict[str, str]:
        return {"grant_type": "refresh_token", "refresh_token": self._refresh_token}

    def _accept(self, payload: TokenResponse) -> None:
        if payload.refresh_token and payload.refresh_token != self._refresh_token:
            logger.info("Spotify rotated the refresh token")
            self._refresh_token = payload.refresh_token

    @classmethod
    async def exchange_code(
        cls,
        http: httpx.AsyncClient,
        credentials: ClientCredentials,
        code: str,
        redirect_uri: str,
        *,
        timeout: float = DEFAULT_AUTH_TIMEOUT,
        clock: Clock = utc_now,
    ) -> tuple[Self, AccessToken]:
        """Trade an authorization code for an authorizer and its first access token.

        Raises:
            SpotifyAuthFailure: If Spotify rejects the code or issues no refresh token.
        """
        authorizer = cls(
            AuthorizationCode(id=credentials.id, secret=credentials.secret, refresh_token=""),
            timeout=timeout,
            clock=clock,
        )
        issued_at = clock()
        payload = await authorizer._request_token(
            http,
            {"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri},
        )
        if not payload.refresh_token:
            raise SpotifyAuthFailure("Token response for authorization code carried no refresh token")
        authorizer._refresh_token = payload.refresh_token
        logger.info("Exchanged authorization code for Spotify user token")
        return authorizer, AccessToken.from_response(payload, issued_at)


def build_authorizer(
    credentials: ClientCredentials | AuthorizationCode,
    *,
    timeout: float = DEFAULT_AUTH_TIMEOUT,
    clock: Clock = utc_now,
) -> Authorizer:
    """Pick the authorizer matching the kind of credentials supplied."""
    if isinstance(credentials, AuthorizationCode):
        return AuthorizationCodeAuthorizer(credentials, timeout=timeout, clock=clock)
    return ClientCredentialsAuthorizer(credentials, timeout=timeout, clock=clock)
