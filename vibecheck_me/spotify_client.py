"""
Spotify API Client Wrapper
==========================

Handles all interactions with the Spotify Web API on behalf of one user:
- Session handling (explicit access token, no ambient storage)
- Top tracks per listening window
- Audio features retrieval (batched, cached per track)
- Artist genre lookup
- Ultimate playlist creation and replacement
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth

from .config import (
    ARTISTS_BATCH_SIZE,
    AUDIO_FEATURES_BATCH_SIZE,
    CACHE_DIR,
    CACHE_TTL_HOURS,
    PLAYLIST_TRACK_LIMIT,
    REQUESTS_RETRIES,
    REQUESTS_TIMEOUT,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    TOP_TRACKS_MAX_LIMIT,
    Window,
)
from .exceptions import ConfigurationError, UpstreamFailure
from .utils import Cache, chunked, dedupe

logger = logging.getLogger(__name__)


@dataclass
class SpotifySession:
    """Tokens and identity of a logged-in user, passed in explicitly."""
    access_token: str
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch seconds

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.time() >= self.expires_at

    @classmethod
    def from_token_info(cls, token_info: Dict[str, Any]) -> "SpotifySession":
        """Build from a spotipy/OAuth token payload."""
        return cls(
            access_token=token_info['access_token'],
            refresh_token=token_info.get('refresh_token'),
            expires_at=token_info.get('expires_at'),
        )


@contextmanager
def _upstream(action: str):
    """Re-raise transport and API errors as UpstreamFailure."""
    try:
        yield
    except SpotifyException as e:
        raise UpstreamFailure(f"{action} failed: {e.msg}", status=e.http_status) from e
    except requests.RequestException as e:
        raise UpstreamFailure(f"{action} failed: {e}") from e


class SpotifyClient:
    """
    Wrapper around Spotipy with caching and batch operations.

    Attributes:
        sp: Spotipy client instance
        session: Session the client acts for
        cache_enabled: Whether audio features are cached locally
    """

    def __init__(
        self,
        session: Optional[SpotifySession] = None,
        use_cache: bool = True,
        sp: Optional[spotipy.Spotify] = None,
        cache_dir: str = CACHE_DIR,
    ):
        """
        Initialize a client for one user's session.

        Args:
            session: User session with an access token
            use_cache: Enable local caching for audio features
            sp: Pre-built spotipy client (takes precedence over session)
            cache_dir: Directory for cached audio features
        """
        if sp is None:
            if session is None:
                raise ConfigurationError("A SpotifySession or spotipy client is required")
            if session.is_expired:
                logger.warning("Access token for %s has expired", session.user_id or "user")
            sp = spotipy.Spotify(
                auth=session.access_token,
                requests_timeout=REQUESTS_TIMEOUT,
                retries=REQUESTS_RETRIES,
            )

        self.sp = sp
        self.session = session
        self.cache_enabled = use_cache
        self.cache = Cache(cache_dir, CACHE_TTL_HOURS) if use_cache else None

        # Request throttling
        self._last_request_time = 0.0
        self._min_request_interval = 0.05  # 50ms between requests

    @classmethod
    def from_oauth(cls, use_cache: bool = True, open_browser: bool = True) -> "SpotifyClient":
        """
        Log in with the authorization-code flow using environment credentials.

        Raises:
            ConfigurationError: if client id/secret are not set
        """
        # Get credentials from environment at runtime (not import time)
        client_id = os.environ.get("SPOTIFY_CLIENT_ID") or os.environ.get("SPOTIPY_CLIENT_ID") or SPOTIFY_CLIENT_ID
        client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET") or os.environ.get("SPOTIPY_CLIENT_SECRET") or SPOTIFY_CLIENT_SECRET
        redirect_uri = os.environ.get("SPOTIFY_REDIRECT_URI") or SPOTIFY_REDIRECT_URI

        if not client_id or not client_secret:
            raise ConfigurationError("SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET must be set")

        auth_manager = SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=" ".join(SPOTIFY_SCOPES),
            open_browser=open_browser,
        )
        with _upstream("OAuth login"):
            token_info = auth_manager.get_access_token(as_dict=True)

        return cls(session=SpotifySession.from_token_info(token_info), use_cache=use_cache)

    def _throttle(self):
        """Ensure minimum time between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    # =========================================================================
    # USER OPERATIONS
    # =========================================================================

    def current_user(self) -> Dict:
        """
        Fetch the session user's profile and remember its id/display name.
        """
        self._throttle()
        with _upstream("Fetching current user"):
            user = self.sp.current_user()

        if self.session is not None:
            self.session.user_id = self.session.user_id or user.get('id')
            self.session.display_name = self.session.display_name or user.get('display_name')
        return user

    @property
    def user_id(self) -> str:
        if self.session is not None and self.session.user_id:
            return self.session.user_id
        return self.current_user()['id']

    def get_top_tracks(self, window: Window, limit: int = TOP_TRACKS_MAX_LIMIT) -> List[Dict]:
        """
        Fetch the user's top tracks for a listening window.

        Args:
            window: Listening window
            limit: Number of tracks (clamped to 1-50)

        Returns:
            Track dictionaries ordered by listening rank
        """
        limit = max(1, min(limit, TOP_TRACKS_MAX_LIMIT))

        self._throttle()
        with _upstream(f"Fetching {window.time_range} top tracks"):
            result = self.sp.current_user_top_tracks(limit=limit, time_range=window.time_range)

        return [t for t in (result or {}).get('items', []) if t and t.get('id')]

    # =========================================================================
    # TRACK OPERATIONS
    # =========================================================================

    def get_audio_features_batch(self, track_ids: Sequence[str]) -> List[Optional[Dict]]:
        """
        Fetch audio features for up to 100 tracks.

        Args:
            track_ids: Spotify track IDs (max 100)

        Returns:
            One feature dict per id, in request order (None for unavailable)

        Raises:
            ValueError: more than 100 ids
            UpstreamFailure: the API call failed
        """
        if len(track_ids) > AUDIO_FEATURES_BATCH_SIZE:
            raise ValueError(
                f"At most {AUDIO_FEATURES_BATCH_SIZE} ids per request, got {len(track_ids)}"
            )
        if not track_ids:
            return []

        found: Dict[str, Dict] = {}
        if self.cache is not None:
            for tid in track_ids:
                cached = self.cache.get(f"audio_features_{tid}")
                if cached:
                    found[tid] = cached

        missing = dedupe([tid for tid in track_ids if tid not in found])
        if missing:
            self._throttle()
            with _upstream("Fetching audio features"):
                result = self.sp.audio_features(missing)

            for tid, features in zip(missing, result or []):
                if features:
                    found[tid] = features
                    if self.cache is not None:
                        self.cache.set(f"audio_features_{tid}", features)

        return [found.get(tid) for tid in track_ids]

    # =========================================================================
    # ARTIST OPERATIONS
    # =========================================================================

    def get_artists(self, artist_ids: Sequence[str]) -> List[Dict]:
        """
        Fetch artist metadata (including genres) in batches.

        Args:
            artist_ids: Spotify artist IDs

        Returns:
            List of artist metadata dictionaries
        """
        artist_ids = dedupe([a for a in artist_ids if a])
        if not artist_ids:
            return []

        artists = []
        # Spotify API limit: 50 artists per request
        for batch in chunked(artist_ids, ARTISTS_BATCH_SIZE):
            self._throttle()
            with _upstream("Fetching artists"):
                result = self.sp.artists(list(batch))
            artists.extend([a for a in result.get('artists', []) if a])

        return artists

    # =========================================================================
    # PLAYLIST OPERATIONS
    # =========================================================================

    def create_playlist(self, name: str, description: str = "", public: bool = False) -> str:
        """
        Create a playlist on the user's account.

        Returns:
            New playlist ID
        """
        user_id = self.user_id

        self._throttle()
        with _upstream("Creating playlist"):
            playlist = self.sp.user_playlist_create(
                user_id,
                name,
                public=public,
                description=description,
            )
        return playlist['id']

    def replace_playlist_tracks(self, playlist_id: str, track_uris: Sequence[str]) -> List[str]:
        """
        Replace a playlist's items, keeping only the first 100 URIs.

        Returns:
            URIs actually written
        """
        uris = list(track_uris)[:PLAYLIST_TRACK_LIMIT]

        self._throttle()
        with _upstream("Replacing playlist tracks"):
            self.sp.playlist_replace_items(playlist_id, uris)
        return uris
