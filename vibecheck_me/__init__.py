"""
Vibecheck.me - Ultimate Playlists and Vibe Compatibility
========================================================

Merges a user's top tracks from three listening windows into one
"ultimate" playlist and turns their audio features into a vibe profile
that can be scored against other users.

Modules:
    - config: Configuration and calibration constants
    - aggregator: Weighted merge of per-window top tracks
    - features: Audio-feature normalization and vibe profiles
    - scoring: Compatibility scoring between profiles
    - spotify_client: Spotify API wrapper bound to a user session
    - playlist: Ultimate playlist orchestration
    - cli: Command-line interface
"""

from .aggregator import AggregatedTrack, Track, TrackAggregator, aggregate_top_tracks
from .config import CALIBRATION, Window
from .features import (
    DEFAULT_AUDIO_FEATURES,
    AudioFeatures,
    VibeProfile,
    VibeProfileBuilder,
    audio_features_to_vector,
)
from .scoring import calculate_compatibility_score, find_compatible_users

__version__ = "1.0.0"
__author__ = "Vibecheck.me Team"
