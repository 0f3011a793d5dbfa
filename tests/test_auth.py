"""Tests for the client-credentials and authorization-code authorizers."""

import base64
from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from aspotify.auth import (
    AuthorizationCode,
    AuthorizationCodeAuthorizer,
    ClientCredentials,
    ClientCredentialsAuthorizer,
    build_authorizer,
)
from aspotify.exceptions import SpotifyAuthFailure, SpotifyAuthTransportError, SpotifyTransportError
from conftest import TOKEN_URL, FakeClock, token_json

CREDENTIALS = ClientCredentials(id="client-id", secret="client-secret")
REFRESH_SEED = AuthorizationCode(id="client-id", secret="client-secret", refresh_token="refresh-1")


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@respx.mock
async def test_client_credentials_grant(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """Client credentials mint posts the grant with HTTP Basic client auth."""
    route = respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=token_json("cc-token")))
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    token = await authorizer.mint(http)

    assert token.value == "cc-token"
    assert token.expires_at == clock.now + timedelta(seconds=3600)
    request = route.calls[0].request
    assert _form(request) == {"grant_type": "client_credentials"}
    expected = base64.b64encode(b"client-id:client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"


@respx.mock
async def test_client_credentials_never_uses_refresh_token(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """Even if Spotify sends a refresh token, client credentials mints stay fresh grants."""
    route = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json=token_json("cc-token", refresh_token="unexpected"))
    )
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    await authorizer.mint(http)
    await authorizer.mint(http)

    assert route.call_count == 2
    for call in route.calls:
        assert _form(call.request) == {"grant_type": "client_credentials"}


@respx.mock
async def test_refresh_token_grant(http: httpx.AsyncClient, clock: FakeClock) -> None:
    route = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json=token_json("user-token", scope="user-top-read"))
    )
    authorizer = AuthorizationCodeAuthorizer(REFRESH_SEED, clock=clock)

    token = await authorizer.mint(http)

    assert token.value == "user-token"
    assert token.scopes == {"user-top-read"}
    assert _form(route.calls[0].request) == {"grant_type": "refresh_token", "refresh_token": "refresh-1"}
    assert authorizer.refresh_token == "refresh-1"


@respx.mock
async def test_rotated_refresh_token_replaces_stored_one(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """A refresh token in the response is used for every later mint."""
    route = respx.post(TOKEN_URL).mock(
        side_effect=[
            httpx.Response(200, json=token_json("user-token-1", refresh_token="refresh-2")),
            httpx.Response(200, json=token_json("user-token-2")),
            httpx.Response(200, json=token_json("user-token-3")),
        ]
    )
    authorizer = AuthorizationCodeAuthorizer(REFRESH_SEED, clock=clock)

    await authorizer.mint(http)
    await authorizer.mint(http)
    await authorizer.mint(http)

    assert authorizer.refresh_token == "refresh-2"
    sent = [_form(call.request)["refresh_token"] for call in route.calls]
    assert sent == ["refresh-1", "refresh-2", "refresh-2"]


@respx.mock
async def test_revoked_refresh_token_fails_permanently(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """400 invalid_grant fails this mint and every later one without another request."""
    route = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "Refresh token revoked"}
        )
    )
    authorizer = AuthorizationCodeAuthorizer(REFRESH_SEED, clock=clock)

    with pytest.raises(SpotifyAuthFailure, match="Refresh token revoked") as exc_info:
        await authorizer.mint(http)
    assert exc_info.value.permanent
    assert exc_info.value.status_code == 400
    assert exc_info.value.error == "invalid_grant"
    assert authorizer.failed

    with pytest.raises(SpotifyAuthFailure):
        await authorizer.mint(http)
    assert route.call_count == 1


@respx.mock
async def test_rejected_client_credentials_fail_permanently(http: httpx.AsyncClient, clock: FakeClock) -> None:
    route = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(401, json={"error": "invalid_client", "error_description": "Invalid client"})
    )
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    for _ in range(3):
        with pytest.raises(SpotifyAuthFailure, match="HTTP 401"):
            await authorizer.mint(http)
    assert route.call_count == 1


@respx.mock
async def test_server_error_is_not_permanent(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """A 5xx from the token endpoint fails the mint but a later mint tries again."""
    route = respx.post(TOKEN_URL).mock(
        side_effect=[
            httpx.Response(503, text="Service Unavailable"),
            httpx.Response(200, json=token_json("recovered")),
        ]
    )
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    with pytest.raises(SpotifyAuthFailure, match="503") as exc_info:
        await authorizer.mint(http)
    assert not exc_info.value.permanent
    assert not authorizer.failed

    token = await authorizer.mint(http)
    assert token.value == "recovered"
    assert route.call_count == 2


@respx.mock
async def test_unreachable_token_endpoint(http: httpx.AsyncClient, clock: FakeClock) -> None:
    respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("connection refused"))
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    with pytest.raises(SpotifyAuthTransportError, match="ConnectError") as exc_info:
        await authorizer.mint(http)
    assert isinstance(exc_info.value, SpotifyAuthFailure)
    assert isinstance(exc_info.value, SpotifyTransportError)
    assert not authorizer.failed


@respx.mock
async def test_token_endpoint_timeout(http: httpx.AsyncClient, clock: FakeClock) -> None:
    respx.post(TOKEN_URL).mock(side_effect=httpx.ReadTimeout("timed out"))
    authorizer = AuthorizationCodeAuthorizer(REFRESH_SEED, clock=clock, timeout=0.5)

    with pytest.raises(SpotifyTransportError, match="ReadTimeout"):
        await authorizer.mint(http)


@respx.mock
async def test_undecodable_token_response(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """A body httpx cannot decode surfaces typed rather than as a raw httpx error."""
    respx.post(TOKEN_URL).mock(side_effect=httpx.DecodingError("corrupt gzip body"))
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    with pytest.raises(SpotifyAuthTransportError, match="DecodingError") as exc_info:
        await authorizer.mint(http)
    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
    assert not authorizer.failed


@respx.mock
async def test_malformed_token_response(http: httpx.AsyncClient, clock: FakeClock) -> None:
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"token_type": "Bearer"}))
    authorizer = ClientCredentialsAuthorizer(CREDENTIALS, clock=clock)

    with pytest.raises(SpotifyAuthFailure, match="Malformed token response"):
        await authorizer.mint(http)


@respx.mock
async def test_exchange_code(http: httpx.AsyncClient, clock: FakeClock) -> None:
    """Authorization code exchange yields an authorizer holding the issued refresh token."""
    route = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json=token_json("first-user-token", refresh_token="issued-refresh"))
    )

    authorizer, token = await AuthorizationCodeAuthorizer.exchange_code(
        http, CREDENTIALS, "auth-code", "http://localhost:8888/callback", clock=clock
    )

    assert token.value == "first-user-token"
    assert authorizer.refresh_token == "issued-refresh"
    assert _form(route.calls[0].request) == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "redirect_uri": "http://localhost:8888/callback",
    }


@respx.mock
async def test_exchange_code_without_refresh_token(http: httpx.AsyncClient, clock: FakeClock) -> None:
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=token_json("first-user-token")))

    with pytest.raises(SpotifyAuthFailure, match="no refresh token"):
        await AuthorizationCodeAuthorizer.exchange_code(http, CREDENTIALS, "auth-code", "http://localhost/cb")


def test_build_authorizer_picks_flow() -> None:
    assert isinstance(build_authorizer(CREDENTIALS), ClientCredentialsAuthorizer)
    assert isinstance(build_authorizer(REFRESH_SEED), AuthorizationCodeAuthorizer)


def test_credentials_hide_secrets() -> None:
    assert "client-secret" not in repr(CREDENTIALS)
    assert "refresh-1" not in repr(REFRESH_SEED)
