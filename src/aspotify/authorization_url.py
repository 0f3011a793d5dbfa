"""Authorization code flow helpers: build the consent URL and read the redirect back."""

import enum
import secrets
from collections.abc import Iterable
from urllib.parse import parse_qs, urlsplit, urlunsplit

import httpx

from aspotify.constants import SPOTIFY_AUTHORIZE_URL, STATE_CHARS, STATE_LENGTH
from aspotify.exceptions import AuthorizationDeniedError, IncorrectStateError


class Scope(enum.StrEnum):
    """A permission the user can grant to the application."""

    UGC_IMAGE_UPLOAD = "ugc-image-upload"
    USER_READ_PLAYBACK_STATE = "user-read-playback-state"
    USER_MODIFY_PLAYBACK_STATE = "user-modify-playback-state"
    USER_READ_CURRENTLY_PLAYING = "user-read-currently-playing"
    STREAMING = "streaming"
    APP_REMOTE_CONTROL = "app-remote-control"
    USER_READ_EMAIL = "user-read-email"
    USER_READ_PRIVATE = "user-read-private"
    PLAYLIST_READ_COLLABORATIVE = "playlist-read-collaborative"
    PLAYLIST_MODIFY_PUBLIC = "playlist-modify-public"
    PLAYLIST_READ_PRIVATE = "playlist-read-private"
    PLAYLIST_MODIFY_PRIVATE = "playlist-modify-private"
    USER_LIBRARY_MODIFY = "user-library-modify"
    USER_LIBRARY_READ = "user-library-read"
    USER_TOP_READ = "user-top-read"
    USER_READ_RECENTLY_PLAYED = "user-read-recently-played"
    USER_READ_PLAYBACK_POSITION = "user-read-playback-position"
    USER_FOLLOW_READ = "user-follow-read"
    USER_FOLLOW_MODIFY = "user-follow-modify"


def generate_state() -> str:
    return "".join(secrets.choice(STATE_CHARS) for _ in range(STATE_LENGTH))


def authorization_url(
    client_id: str,
    scopes: Iterable[Scope | str],
    redirect_uri: str,
    *,
    force_approve: bool = False,
) -> tuple[str, str]:
    """Build the URL to send the user's browser to, plus the state it carries.

    ``redirect_uri`` must be registered for the application and must not
    contain a query string. ``force_approve`` makes Spotify show the consent
    dialog even if the user already approved the app.

    Returns:
        ``(url, state)``; keep the state to check the redirect with :func:`parse_redirect`.
    """
    state = generate_state()
    url = httpx.URL(
        SPOTIFY_AUTHORIZE_URL,
        params={
            "response_type": "code",
            "state": state,
            "client_id": client_id,
            "scope": " ".join(str(scope) for scope in scopes),
            "show_dialog": "true" if force_approve else "false",
            "redirect_uri": redirect_uri,
        },
    )
    return str(url), state


def parse_redirect(url: str, state: str) -> tuple[str, str]:
    """Extract the authorization code from the URL Spotify redirected the user to.

    Returns:
        ``(code, redirect_uri)`` where ``redirect_uri`` is ``url`` without its query.

    Raises:
        IncorrectStateError: If the state parameter is missing or does not match ``state``.
        AuthorizationDeniedError: If Spotify reported an error or sent no code.
    """
    parts = urlsplit(url)
    query = {key: values[0] for key, values in parse_qs(parts.query).items()}

    received = query.get("state")
    if received is None or not secrets.compare_digest(received.encode(), state.encode()):
        raise IncorrectStateError("State parameter not found or is incorrect")
    if "error" in query:
        raise AuthorizationDeniedError(query["error"])
    code = query.get("code")
    if not code:
        raise AuthorizationDeniedError("")

    redirect_uri = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return code, redirect_uri
