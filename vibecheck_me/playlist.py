"""
Ultimate Playlist Generator
===========================

Orchestrates the complete pipeline for one logged-in user:
1. Fetch top tracks for each listening window
2. Aggregate them into one weighted ranking
3. Enrich artists with genre tags
4. Publish the ultimate playlist (first 100 tracks)
5. Build the user's vibe profile

A failing window, genre lookup or feature lookup degrades the result; it
never aborts the run. Errors propagate only from the user lookup (when
no user_id or display_name is given) and from playlist publishing.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .aggregator import AggregatedTrack, Artist, Track, TrackAggregator
from .config import DEFAULT_PLAYLIST_CONFIG, WINDOW_ORDER, PlaylistConfig, Window
from .exceptions import DataUnavailable
from .features import VibeProfile, VibeProfileBuilder
from .spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


@dataclass
class UltimatePlaylistResult:
    """Complete output of one playlist-generation cycle."""
    user_id: str
    display_name: str
    playlist_id: Optional[str]
    track_uris: List[str]
    tracks: List[AggregatedTrack]
    profile: VibeProfile
    window_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return bool(self.tracks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "playlist_id": self.playlist_id,
            "track_uris": self.track_uris,
            "window_counts": self.window_counts,
            "tracks": [t.to_dict() for t in self.tracks],
            "profile": self.profile.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class UltimatePlaylistGenerator:
    """
    Builds and publishes a user's ultimate playlist and vibe profile.

    Usage:
        client = SpotifyClient(session)
        generator = UltimatePlaylistGenerator(client)
        result = generator.generate()
        print(result.to_json())
    """

    def __init__(
        self,
        spotify_client: SpotifyClient,
        config: PlaylistConfig = DEFAULT_PLAYLIST_CONFIG
    ):
        """
        Args:
            spotify_client: Client bound to the user's session
            config: Playlist generation settings
        """
        self.spotify = spotify_client
        self.config = config
        self.aggregator = TrackAggregator()
        self.profile_builder = VibeProfileBuilder(
            spotify_client,
            max_workers=config.feature_workers,
        )

    def generate(
        self,
        user_id: Optional[str] = None,
        display_name: Optional[str] = None,
        playlist_id: Optional[str] = None
    ) -> UltimatePlaylistResult:
        """
        Run one playlist-generation cycle.

        Args:
            user_id: Owner; looked up from the session when omitted
            display_name: Owner's display name
            playlist_id: Existing ultimate playlist to overwrite

        Returns:
            UltimatePlaylistResult (playlist_id is None when nothing was published)
        """
        if not user_id or display_name is None:
            user = self.spotify.current_user()
            user_id = user_id or user['id']
            if display_name is None:
                display_name = user.get('display_name') or user_id

        window_tracks = self.fetch_window_tracks()
        window_counts = {w.time_range: len(window_tracks[w]) for w in WINDOW_ORDER}

        aggregated = self.aggregator.aggregate(window_tracks)

        if aggregated and self.config.enrich_genres:
            aggregated = self.enrich_genres(aggregated)

        track_uris: List[str] = []
        if not aggregated:
            logger.info("No top tracks found for %s", user_id)
        elif self.config.publish:
            playlist_id, track_uris = self.publish(aggregated, playlist_id)

        profile = self.profile_builder.build(user_id, display_name, aggregated)

        return UltimatePlaylistResult(
            user_id=user_id,
            display_name=display_name,
            playlist_id=playlist_id if track_uris else None,
            track_uris=track_uris,
            tracks=aggregated,
            profile=profile,
            window_counts=window_counts,
        )

    def fetch_window_tracks(self) -> Dict[Window, List[Track]]:
        """Top tracks per window; an unavailable window is empty."""
        window_tracks: Dict[Window, List[Track]] = {}
        for window in WINDOW_ORDER:
            try:
                items = self.spotify.get_top_tracks(window, limit=self.config.tracks_per_window)
            except DataUnavailable as e:
                logger.warning("Skipping %s window: %s", window.time_range, e)
                items = []
            window_tracks[window] = [Track.from_spotify(item) for item in items]
        return window_tracks

    def enrich_genres(self, aggregated: List[AggregatedTrack]) -> List[AggregatedTrack]:
        """
        Attach artist genre tags to every track.

        Returns the input unchanged if artist metadata is unavailable.
        """
        artist_ids = [
            artist.id
            for at in aggregated
            for artist in at.track.artists
            if artist.id
        ]
        try:
            artists = self.spotify.get_artists(artist_ids)
        except DataUnavailable as e:
            logger.warning("Genre lookup failed, profile will have no genres: %s", e)
            return aggregated

        artist_map = {a['id']: a for a in artists if a.get('id')}

        enriched = []
        for at in aggregated:
            artists_with_genres = [
                Artist.from_spotify(artist_map[a.id]) if a.id in artist_map else a
                for a in at.track.artists
            ]
            enriched.append(AggregatedTrack(
                track=at.track.with_artists(artists_with_genres),
                score=at.score,
                appearances=list(at.appearances),
            ))
        return enriched

    def publish(
        self,
        aggregated: List[AggregatedTrack],
        playlist_id: Optional[str] = None
    ):
        """
        Create (if needed) and fill the ultimate playlist.

        Returns:
            Tuple of (playlist_id, uris written)
        """
        if not playlist_id:
            playlist_id = self.spotify.create_playlist(
                self.config.name,
                description=self.config.description,
                public=self.config.public,
            )
            logger.info("Created playlist %s", playlist_id)

        uris = self.spotify.replace_playlist_tracks(playlist_id, [t.uri for t in aggregated])
        logger.info("Updated playlist %s with %d tracks", playlist_id, len(uris))
        return playlist_id, uris
