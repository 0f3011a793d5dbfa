"""Pydantic models for the Spotify accounts service and Web API.

Only the wire contract the client itself depends on (token responses and
error payloads) is modelled completely. The object models cover the
subset returned by the bundled endpoint methods; unknown fields are
ignored so newer API payloads still validate.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Accounts service
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Response from the accounts service's /api/token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str | None = None
    refresh_token: str | None = None


class AuthErrorBody(BaseModel):
    """Error body returned by /api/token (``{"error": ..., "error_description": ...}``)."""

    error: str
    error_description: str | None = None


# ---------------------------------------------------------------------------
# Web API errors
# ---------------------------------------------------------------------------


class ErrorObject(BaseModel):
    """Regular error object. Player endpoints add a ``reason`` such as ``PREMIUM_REQUIRED``."""

    status: int
    message: str = ""
    reason: str | None = None


class ErrorResponse(BaseModel):
    """Envelope around :class:`ErrorObject` (``{"error": {...}}``)."""

    error: ErrorObject


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------


class Page(BaseModel, Generic[T]):
    """Offset-based paging object."""

    items: list[T] = Field(default_factory=list)
    total: int | None = None
    limit: int | None = None
    offset: int | None = None
    next: str | None = None
    previous: str | None = None
    href: str | None = None


class Cursors(BaseModel):
    """Cursors for cursor-based paging."""

    after: str | None = None
    before: str | None = None


# ---------------------------------------------------------------------------
# Artists, albums, tracks
# ---------------------------------------------------------------------------


class Image(BaseModel):
    url: str
    height: int | None = None
    width: int | None = None


class ArtistSimplified(BaseModel):
    """Simplified artist object (embedded in tracks, albums)."""

    id: str | None = None
    name: str
    uri: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)


class Artist(ArtistSimplified):
    """Full artist object."""

    genres: list[str] = Field(default_factory=list)
    popularity: int | None = None
    images: list[Image] = Field(default_factory=list)
    followers: dict[str, object] | None = None


class AlbumSimplified(BaseModel):
    id: str | None = None
    name: str
    uri: str | None = None
    album_type: str | None = None
    album_group: str | None = None
    release_date: str | None = None
    artists: list[ArtistSimplified] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)


class TrackSimplified(BaseModel):
    """Track object without album (album track listings)."""

    id: str | None = None
    name: str
    uri: str | None = None
    duration_ms: int | None = None
    explicit: bool | None = None
    track_number: int | None = None
    disc_number: int | None = None
    is_local: bool = False
    artists: list[ArtistSimplified] = Field(default_factory=list)


class Track(TrackSimplified):
    """Full track object."""

    popularity: int | None = None
    album: AlbumSimplified | None = None
    external_ids: dict[str, str] = Field(default_factory=dict)


class Album(AlbumSimplified):
    """Full album object from GET /albums/{id}."""

    genres: list[str] = Field(default_factory=list)
    label: str | None = None
    popularity: int | None = None
    total_tracks: int | None = None
    tracks: Page[TrackSimplified] | None = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class PublicUser(BaseModel):
    id: str
    display_name: str | None = None
    uri: str | None = None
    images: list[Image] = Field(default_factory=list)
    followers: dict[str, object] | None = None


class PrivateUser(PublicUser):
    """The current user's profile; extra fields depend on granted scopes."""

    email: str | None = None
    country: str | None = None
    product: str | None = None


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------


class PlaylistItem(BaseModel):
    track: Track | None = None
    added_at: datetime | None = None
    added_by: PublicUser | None = None
    is_local: bool = False


class Playlist(BaseModel):
    """Full playlist object from GET /playlists/{id} or playlist creation."""

    id: str
    name: str
    description: str | None = None
    public: bool | None = None
    collaborative: bool = False
    owner: PublicUser | None = None
    images: list[Image] = Field(default_factory=list)
    snapshot_id: str | None = None
    uri: str | None = None
    tracks: Page[PlaylistItem] | None = None


class SnapshotResponse(BaseModel):
    snapshot_id: str


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------


class Context(BaseModel):
    """Playback context (playlist, album, artist)."""

    type: str | None = None
    uri: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)


class PlayHistory(BaseModel):
    track: Track
    played_at: datetime
    context: Context | None = None


class RecentlyPlayed(BaseModel):
    """Response from GET /me/player/recently-played."""

    items: list[PlayHistory] = Field(default_factory=list)
    next: str | None = None
    cursors: Cursors | None = None
    limit: int | None = None


class CurrentlyPlaying(BaseModel):
    """Response from GET /me/player/currently-playing."""

    context: Context | None = None
    timestamp: int | None = None
    progress_ms: int | None = None
    is_playing: bool = False
    item: Track | None = None
    currently_playing_type: str | None = None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchResults(BaseModel):
    """Response from GET /search; only requested sections are present."""

    tracks: Page[Track] | None = None
    artists: Page[Artist] | None = None
    albums: Page[AlbumSimplified] | None = None
