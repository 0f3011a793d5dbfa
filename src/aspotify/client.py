"""Spotify Web API async client."""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, Self, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from aspotify.auth import (
    AuthorizationCode,
    AuthorizationCodeAuthorizer,
    Authorizer,
    ClientCredentials,
    build_authorizer,
)
from aspotify.authorization_url import Scope, parse_redirect
from aspotify.constants import (
    DEFAULT_AUTH_TIMEOUT,
    DEFAULT_MAX_RATE_LIMIT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS,
    MAX_ALBUMS_PER_REQUEST,
    MAX_ARTISTS_PER_REQUEST,
    MAX_TRACKS_PER_REQUEST,
)
from aspotify.exceptions import SpotifyDecodeError
from aspotify.executor import ApiResponse, RequestExecutor, RequestTemplate, Sleep
from aspotify.models import (
    Album,
    AlbumSimplified,
    Artist,
    CurrentlyPlaying,
    Page,
    Playlist,
    PrivateUser,
    PublicUser,
    RecentlyPlayed,
    SearchResults,
    SnapshotResponse,
    Track,
    TrackSimplified,
)
from aspotify.settings import ClientSettings, get_settings
from aspotify.tokens import AccessToken, Clock, TokenStore, utc_now

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _chunks(ids: Sequence[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(ids), size):
        yield list(ids[start : start + size])


def _scopes(*scopes: Scope) -> frozenset[str]:
    return frozenset(str(scope) for scope in scopes)


class _Albums(BaseModel):
    albums: list[Album | None]


class _Artists(BaseModel):
    artists: list[Artist | None]


class _Tracks(BaseModel):
    tracks: list[Track | None]


class SpotifyClient:
    """Async Spotify Web API client.

    Owns one token cache and one request executor; every endpoint method
    builds a :class:`RequestTemplate`, runs it through :meth:`execute` and
    validates the body into a model. Instances are independent, so several
    clients (for different apps or users) can coexist in one process.

    Pass ``http`` to share an existing ``httpx.AsyncClient``; otherwise the
    client creates one and closes it in :meth:`aclose`.
    """

    def __init__(
        self,
        credentials: ClientCredentials | AuthorizationCode | Authorizer,
        *,
        http: httpx.AsyncClient | None = None,
        token_refresh_margin: float = DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS,
        max_rate_limit_retries: int = DEFAULT_MAX_RATE_LIMIT_RETRIES,
        default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        auth_timeout: float = DEFAULT_AUTH_TIMEOUT,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utc_now,
    ) -> None:
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=request_timeout)
        self._auth_timeout = auth_timeout
        self._clock = clock

        if isinstance(credentials, Authorizer):
            authorizer = credentials
        else:
            authorizer = build_authorizer(credentials, timeout=auth_timeout, clock=clock)

        self._store = TokenStore(authorizer, self._http, margin_seconds=token_refresh_margin, clock=clock)
        self._executor = RequestExecutor(
            self._store,
            self._http,
            max_rate_limit_retries=max_rate_limit_retries,
            default_retry_after=default_retry_after,
            request_timeout=request_timeout,
            sleep=sleep,
            clock=clock,
        )

    @classmethod
    def with_refresh_token(cls, credentials: ClientCredentials, refresh_token: str, **kwargs: Any) -> Self:
        """Create a client acting for a user who already authorized the app."""
        code = AuthorizationCode(id=credentials.id, secret=credentials.secret, refresh_token=refresh_token)
        return cls(code, **kwargs)

    @classmethod
    def from_settings(cls, settings: ClientSettings | None = None, **kwargs: Any) -> Self:
        """Create a client from ``SPOTIFY_*`` settings (see :class:`ClientSettings`)."""
        settings = settings or get_settings()
        credentials = ClientCredentials.from_settings(settings)
        kwargs.setdefault("token_refresh_margin", settings.TOKEN_REFRESH_MARGIN_SECONDS)
        kwargs.setdefault("max_rate_limit_retries", settings.MAX_RATE_LIMIT_RETRIES)
        kwargs.setdefault("default_retry_after", settings.DEFAULT_RETRY_AFTER_SECONDS)
        kwargs.setdefault("request_timeout", settings.REQUEST_TIMEOUT_SECONDS)
        kwargs.setdefault("auth_timeout", settings.AUTH_TIMEOUT_SECONDS)
        if settings.REFRESH_TOKEN:
            return cls.with_refresh_token(credentials, settings.REFRESH_TOKEN, **kwargs)
        return cls(credentials, **kwargs)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def token_store(self) -> TokenStore:
        return self._store

    @property
    def authorizer(self) -> Authorizer:
        return self._store.authorizer

    # -------------------------------------------------------------------
    # Core primitives
    # -------------------------------------------------------------------

    async def access_token(self) -> AccessToken:
        """Return a valid access token, minting one if needed."""
        return await self._store.get_valid_token()

    async def execute(self, template: RequestTemplate) -> ApiResponse:
        """Send one API call with automatic re-authorization and rate-limit backoff."""
        return await self._executor.execute(template)

    async def redirected(self, url: str, state: str) -> None:
        """Finish the authorization code flow from the URL Spotify redirected the user to.

        Afterwards the client acts for that user, refreshing with the refresh
        token Spotify issued.
        """
        code, redirect_uri = parse_redirect(url, state)
        authorizer, token = await AuthorizationCodeAuthorizer.exchange_code(
            self._http,
            self.authorizer.credentials,
            code,
            redirect_uri,
            timeout=self._auth_timeout,
            clock=self._clock,
        )
        await self._store.install(authorizer, token)

    async def _send(self, template: RequestTemplate, model: type[ModelT]) -> ModelT:
        response = await self.execute(template)
        return self._validate(response, model)

    async def _send_optional(self, template: RequestTemplate, model: type[ModelT]) -> ModelT | None:
        response = await self.execute(template)
        if response.status_code == 204 or response.is_empty:
            return None
        return self._validate(response, model)

    @staticmethod
    def _validate(response: ApiResponse, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except ValidationError as exc:
            raise SpotifyDecodeError(f"Unexpected {model.__name__} payload") from exc

    # -------------------------------------------------------------------
    # Albums
    # -------------------------------------------------------------------

    async def get_album(self, album_id: str, *, market: str | None = None) -> Album:
        """GET /albums/{id}."""
        return await self._send(RequestTemplate("GET", f"/albums/{album_id}", {"market": market}), Album)

    async def get_albums(self, album_ids: Sequence[str], *, market: str | None = None) -> list[Album | None]:
        """GET /albums?ids=..., split into requests of 20 ids."""
        albums: list[Album | None] = []
        for chunk in _chunks(album_ids, MAX_ALBUMS_PER_REQUEST):
            template = RequestTemplate("GET", "/albums", {"ids": ",".join(chunk), "market": market})
            albums.extend((await self._send(template, _Albums)).albums)
        return albums

    async def get_album_tracks(
        self,
        album_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        market: str | None = None,
    ) -> Page[TrackSimplified]:
        """GET /albums/{id}/tracks."""
        template = RequestTemplate(
            "GET",
            f"/albums/{album_id}/tracks",
            {"limit": limit, "offset": offset, "market": market},
        )
        return await self._send(template, Page[TrackSimplified])

    # -------------------------------------------------------------------
    # Artists
    # -------------------------------------------------------------------

    async def get_artist(self, artist_id: str) -> Artist:
        """GET /artists/{id}."""
        return await self._send(RequestTemplate("GET", f"/artists/{artist_id}"), Artist)

    async def get_artists(self, artist_ids: Sequence[str]) -> list[Artist | None]:
        """GET /artists?ids=..., split into requests of 50 ids."""
        artists: list[Artist | None] = []
        for chunk in _chunks(artist_ids, MAX_ARTISTS_PER_REQUEST):
            template = RequestTemplate("GET", "/artists", {"ids": ",".join(chunk)})
            artists.extend((await self._send(template, _Artists)).artists)
        return artists

    async def get_artist_albums(
        self,
        artist_id: str,
        *,
        include_groups: Iterable[str] | None = None,
        limit: int = 20,
        offset: int = 0,
        market: str | None = None,
    ) -> Page[AlbumSimplified]:
        """GET /artists/{id}/albums.

        Without a market Spotify tends to return one copy of each album per
        market, so passing one is advisable.
        """
        groups = ",".join(include_groups) if include_groups is not None else None
        template = RequestTemplate(
            "GET",
            f"/artists/{artist_id}/albums",
            {"include_groups": groups, "limit": limit, "offset": offset, "market": market},
        )
        return await self._send(template, Page[AlbumSimplified])

    async def get_artist_top_tracks(self, artist_id: str, *, market: str) -> list[Track]:
        """GET /artists/{id}/top-tracks (market is required)."""
        template = RequestTemplate("GET", f"/artists/{artist_id}/top-tracks", {"market": market})
        return [track for track in (await self._send(template, _Tracks)).tracks if track is not None]

    async def get_related_artists(self, artist_id: str) -> list[Artist]:
        """GET /artists/{id}/related-artists."""
        template = RequestTemplate("GET", f"/artists/{artist_id}/related-artists")
        return [artist for artist in (await self._send(template, _Artists)).artists if artist is not None]

    # -------------------------------------------------------------------
    # Tracks and search
    # -------------------------------------------------------------------

    async def get_track(self, track_id: str, *, market: str | None = None) -> Track:
        """GET /tracks/{id}."""
        return await self._send(RequestTemplate("GET", f"/tracks/{track_id}", {"market": market}), Track)

    async def get_tracks(self, track_ids: Sequence[str], *, market: str | None = None) -> list[Track | None]:
        """GET /tracks?ids=..., split into requests of 50 ids."""
        tracks: list[Track | None] = []
        for chunk in _chunks(track_ids, MAX_TRACKS_PER_REQUEST):
            template = RequestTemplate("GET", "/tracks", {"ids": ",".join(chunk), "market": market})
            tracks.extend((await self._send(template, _Tracks)).tracks)
        return tracks

    async def search(
        self,
        query: str,
        *,
        types: Iterable[str] = ("track",),
        limit: int = 20,
        offset: int = 0,
        market: str | None = None,
    ) -> SearchResults:
        """GET /search."""
        template = RequestTemplate(
            "GET",
            "/search",
            {"q": query, "type": ",".join(types), "limit": limit, "offset": offset, "market": market},
        )
        return await self._send(template, SearchResults)

    # -------------------------------------------------------------------
    # Users and personalization
    # -------------------------------------------------------------------

    async def get_current_user(self) -> PrivateUser:
        """GET /me."""
        template = RequestTemplate("GET", "/me", scopes=_scopes(Scope.USER_READ_PRIVATE))
        return await self._send(template, PrivateUser)

    async def get_user(self, user_id: str) -> PublicUser:
        """GET /users/{id}."""
        return await self._send(RequestTemplate("GET", f"/users/{user_id}"), PublicUser)

    async def get_top_artists(
        self,
        *,
        time_range: str = "medium_term",
        limit: int = 20,
        offset: int = 0,
    ) -> Page[Artist]:
        """GET /me/top/artists."""
        template = RequestTemplate(
            "GET",
            "/me/top/artists",
            {"time_range": time_range, "limit": limit, "offset": offset},
            scopes=_scopes(Scope.USER_TOP_READ),
        )
        return await self._send(template, Page[Artist])

    async def get_top_tracks(
        self,
        *,
        time_range: str = "medium_term",
        limit: int = 20,
        offset: int = 0,
    ) -> Page[Track]:
        """GET /me/top/tracks."""
        template = RequestTemplate(
            "GET",
            "/me/top/tracks",
            {"time_range": time_range, "limit": limit, "offset": offset},
            scopes=_scopes(Scope.USER_TOP_READ),
        )
        return await self._send(template, Page[Track])

    # -------------------------------------------------------------------
    # Player
    # -------------------------------------------------------------------

    async def get_recently_played(
        self,
        *,
        limit: int = 50,
        before: int | None = None,
        after: int | None = None,
    ) -> RecentlyPlayed:
        """GET /me/player/recently-played."""
        template = RequestTemplate(
            "GET",
            "/me/player/recently-played",
            {"limit": limit, "before": before, "after": after},
            scopes=_scopes(Scope.USER_READ_RECENTLY_PLAYED),
        )
        return await self._send(template, RecentlyPlayed)

    async def get_currently_playing(self, *, market: str | None = None) -> CurrentlyPlaying | None:
        """GET /me/player/currently-playing; ``None`` when nothing is playing (204)."""
        template = RequestTemplate(
            "GET",
            "/me/player/currently-playing",
            {"market": market},
            scopes=_scopes(Scope.USER_READ_CURRENTLY_PLAYING),
        )
        return await self._send_optional(template, CurrentlyPlaying)

    # -------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------

    async def get_playlist(self, playlist_id: str, *, market: str | None = None) -> Playlist:
        """GET /playlists/{id}."""
        return await self._send(RequestTemplate("GET", f"/playlists/{playlist_id}", {"market": market}), Playlist)

    async def create_playlist(
        self,
        name: str,
        *,
        description: str = "",
        public: bool = True,
        collaborative: bool = False,
    ) -> Playlist:
        """POST /me/playlists."""
        template = RequestTemplate(
            "POST",
            "/me/playlists",
            json_body={"name": name, "description": description, "public": public, "collaborative": collaborative},
            scopes=_scopes(Scope.PLAYLIST_MODIFY_PUBLIC if public else Scope.PLAYLIST_MODIFY_PRIVATE),
        )
        return await self._send(template, Playlist)

    async def add_tracks_to_playlist(
        self,
        playlist_id: str,
        uris: Sequence[str],
        *,
        position: int | None = None,
    ) -> str:
        """POST /playlists/{id}/tracks; returns the new snapshot id."""
        body: dict[str, Any] = {"uris": list(uris)}
        if position is not None:
            body["position"] = position
        template = RequestTemplate("POST", f"/playlists/{playlist_id}/tracks", json_body=body)
        return (await self._send(template, SnapshotResponse)).snapshot_id

    async def update_playlist_details(
        self,
        playlist_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        public: bool | None = None,
        collaborative: bool | None = None,
    ) -> None:
        """PUT /playlists/{id}; Spotify answers with an empty body."""
        body: dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if description is not None:
            body["description"] = description
        if public is not None:
            body["public"] = public
        if collaborative is not None:
            body["collaborative"] = collaborative
        await self.execute(RequestTemplate("PUT", f"/playlists/{playlist_id}", json_body=body))
