"""
Configuration and constants for the Vibecheck.me engine.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping

# =============================================================================
# SPOTIFY API CONFIGURATION
# =============================================================================
SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.environ.get("SPOTIFY_REDIRECT_URI", "http://localhost:5173/callback")

SPOTIFY_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "playlist-modify-private",
    "playlist-modify-public",
]

# Per-request limits enforced by the Web API
TOP_TRACKS_MAX_LIMIT = 50
AUDIO_FEATURES_BATCH_SIZE = 100
ARTISTS_BATCH_SIZE = 50
PLAYLIST_TRACK_LIMIT = 100

# spotipy transport settings
REQUESTS_TIMEOUT = 10
REQUESTS_RETRIES = 3

# =============================================================================
# LISTENING WINDOWS
# =============================================================================
class Window(Enum):
    """Listening-history range a top-tracks query is scoped to."""
    RECENT = "short_term"
    MEDIUM = "medium_term"
    LONG_TERM = "long_term"

    @property
    def time_range(self) -> str:
        return self.value

    @property
    def weight(self) -> int:
        return CALIBRATION.window_weights[self]


# Aggregation order: recent first, long-term last
WINDOW_ORDER = [Window.RECENT, Window.MEDIUM, Window.LONG_TERM]

# =============================================================================
# AUDIO FEATURE CONFIGURATION
# =============================================================================
# Order of the 12-d vibe vector
AUDIO_FEATURES = [
    "acousticness",
    "danceability",
    "energy",
    "instrumentalness",
    "liveness",
    "loudness",
    "speechiness",
    "tempo",
    "valence",
    "key",
    "mode",
    "time_signature",
]

# Averaged as categories, rounded to the nearest integer
INTEGER_FEATURES = ["key", "mode", "time_signature"]

# value -> value / divisor + offset
FEATURE_SCALING = {
    "loudness": {"divisor": 60.0, "offset": 1.0},   # [-60, 0] dB -> [0, 1]
    "tempo": {"divisor": 200.0, "offset": 0.0},     # BPM
    "key": {"divisor": 11.0, "offset": 0.0},        # pitch class 0-11
    "time_signature": {"divisor": 7.0, "offset": 0.0},
}

# Neutral values substituted when a track has no features
NEUTRAL_FEATURE_VALUES = {
    "acousticness": 0.5,
    "danceability": 0.5,
    "energy": 0.5,
    "instrumentalness": 0.5,
    "liveness": 0.5,
    "loudness": -10.0,
    "speechiness": 0.5,
    "tempo": 120.0,
    "valence": 0.5,
    "key": 5,
    "mode": 1,
    "time_signature": 4,
}

TOP_GENRE_COUNT = 5

# =============================================================================
# CALIBRATION (fixed; not runtime-configurable)
# =============================================================================
@dataclass(frozen=True)
class Calibration:
    """Ranking and compatibility weights shared by the aggregator and scorer."""
    window_weights: Mapping[Window, int] = field(default_factory=lambda: MappingProxyType({
        Window.RECENT: 100,
        Window.MEDIUM: 50,
        Window.LONG_TERM: 25,
    }))

    # Compatibility blend; sums to 1.0
    audio_similarity: float = 0.7
    genre_overlap: float = 0.2
    track_overlap: float = 0.1


CALIBRATION = Calibration()

# =============================================================================
# PLAYLIST CONFIGURATION
# =============================================================================
@dataclass
class PlaylistConfig:
    """Settings for building and publishing the ultimate playlist."""
    # Tracks requested per listening window (1-50)
    tracks_per_window: int = TOP_TRACKS_MAX_LIMIT

    name: str = "Vibecheck.me - Ultimate Playlist"
    description: str = "Your ultimate playlist created from your top tracks across all time periods"
    public: bool = False

    # Fetch artist metadata so the profile has genre tags
    enrich_genres: bool = True

    # Write the playlist to the account (False = dry run)
    publish: bool = True

    # Threads used for audio-feature chunks
    feature_workers: int = 1

DEFAULT_PLAYLIST_CONFIG = PlaylistConfig()

# =============================================================================
# COMPATIBILITY
# =============================================================================
COMPATIBLE_THRESHOLD = 70

# =============================================================================
# CACHING CONFIGURATION
# =============================================================================
CACHE_DIR = os.path.join(os.path.dirname(__file__), ".cache")
CACHE_TTL_HOURS = 24 * 7  # Audio features never change for a track id

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================
OUTPUT_FORMATS: List[str] = ["json", "simple"]
