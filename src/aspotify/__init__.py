"""Async typed client for the Spotify Web API."""

from aspotify.auth import (
    AuthorizationCode,
    AuthorizationCodeAuthorizer,
    Authorizer,
    ClientCredentials,
    ClientCredentialsAuthorizer,
)
from aspotify.authorization_url import Scope, authorization_url, parse_redirect
from aspotify.client import SpotifyClient
from aspotify.exceptions import (
    AuthorizationDeniedError,
    IncorrectStateError,
    RedirectError,
    SpotifyAuthError,
    SpotifyAuthFailure,
    SpotifyAuthTransportError,
    SpotifyClientError,
    SpotifyDecodeError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
    SpotifyTransportError,
)
from aspotify.executor import ApiResponse, OutcomeKind, RequestExecutor, RequestOutcome, RequestTemplate
from aspotify.settings import ClientSettings, get_settings
from aspotify.tokens import AccessToken, TokenStore

__all__ = [
    "AccessToken",
    "ApiResponse",
    "AuthorizationCode",
    "AuthorizationCodeAuthorizer",
    "AuthorizationDeniedError",
    "Authorizer",
    "ClientCredentials",
    "ClientCredentialsAuthorizer",
    "ClientSettings",
    "IncorrectStateError",
    "OutcomeKind",
    "RedirectError",
    "RequestExecutor",
    "RequestOutcome",
    "RequestTemplate",
    "Scope",
    "SpotifyAuthError",
    "SpotifyAuthFailure",
    "SpotifyAuthTransportError",
    "SpotifyClient",
    "SpotifyClientError",
    "SpotifyDecodeError",
    "SpotifyRateLimitError",
    "SpotifyRequestError",
    "SpotifyServerError",
    "SpotifyTransportError",
    "TokenStore",
    "authorization_url",
    "get_settings",
    "parse_redirect",
]
