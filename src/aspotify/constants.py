"""Spotify API URLs and client policy defaults."""

# Spotify Auth
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"

# Spotify Web API base
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

# Token lifecycle
DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS = 60  # Treat tokens as expired this many seconds early

# Retry defaults
DEFAULT_MAX_RATE_LIMIT_RETRIES = 3
DEFAULT_RETRY_AFTER_SECONDS = 2.0  # Used when a 429 carries no usable Retry-After
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_AUTH_TIMEOUT = 30.0  # seconds

# Authorization URL state
STATE_LENGTH = 16
STATE_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"

# Batch limits for multi-id endpoints
MAX_ALBUMS_PER_REQUEST = 20
MAX_ARTISTS_PER_REQUEST = 50
MAX_TRACKS_PER_REQUEST = 50
