"""
Track Aggregation Module
========================

Merges the user's top tracks from the three listening windows into one
deduplicated ranking (the "ultimate playlist").

Scoring:
--------

    position_score = (L - i) × w_window

for a track at zero-based position i of a window list of length L.
A track's score is the sum over every window it appears in, so tracks
that rank highly in several windows beat tracks that rank highly in one
(recency + consistency).

Window weights come from config.CALIBRATION and cannot be overridden.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import WINDOW_ORDER, Window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artist:
    """Artist credit on a track."""
    name: str
    id: Optional[str] = None
    genres: Tuple[str, ...] = ()

    @classmethod
    def from_spotify(cls, data: Dict[str, Any]) -> "Artist":
        return cls(
            name=data.get('name', ''),
            id=data.get('id'),
            genres=tuple(data.get('genres') or ()),
        )


@dataclass(frozen=True)
class Track:
    """A playable track as returned by the top-tracks endpoint."""
    id: str
    name: str
    uri: str
    artists: Tuple[Artist, ...] = ()

    # Raw audio-feature record, when the source already carries one
    audio_features: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    @property
    def artist_names(self) -> List[str]:
        return [a.name for a in self.artists]

    @property
    def genres(self) -> List[str]:
        """All genre tags of all artists, in credit order."""
        tags = []
        for artist in self.artists:
            tags.extend(artist.genres)
        return tags

    @classmethod
    def from_spotify(cls, data: Dict[str, Any]) -> "Track":
        """
        Build a Track from a Spotify track object.

        Args:
            data: Track JSON (full or simplified)

        Returns:
            Track instance
        """
        return cls(
            id=data.get('id') or '',
            name=data.get('name', ''),
            uri=data.get('uri') or '',
            artists=tuple(Artist.from_spotify(a) for a in data.get('artists', []) if a),
            audio_features=data.get('audio_features'),
        )

    def with_artists(self, artists: Sequence[Artist]) -> "Track":
        return Track(
            id=self.id,
            name=self.name,
            uri=self.uri,
            artists=tuple(artists),
            audio_features=self.audio_features,
        )


@dataclass(frozen=True)
class WindowAppearance:
    """Where a track was found: the window and its 1-based rank there."""
    window: Window
    rank: int


@dataclass
class AggregatedTrack:
    """A track with its accumulated score across listening windows."""
    track: Track
    score: int = 0
    appearances: List[WindowAppearance] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.track.id

    @property
    def uri(self) -> str:
        return self.track.uri

    @property
    def windows(self) -> List[Window]:
        return [a.window for a in self.appearances]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.track.id,
            "name": self.track.name,
            "artists": self.track.artist_names,
            "uri": self.track.uri,
            "score": self.score,
            "appearances": [
                {"window": a.window.time_range, "rank": a.rank}
                for a in self.appearances
            ],
        }


WindowTracks = Mapping[Window, Optional[Sequence[Track]]]


class TrackAggregator:
    """
    Merges ranked per-window track lists into one weighted ranking.

    Usage:
        aggregator = TrackAggregator()
        ranked = aggregator.aggregate({
            Window.RECENT: recent_tracks,
            Window.MEDIUM: medium_tracks,
            Window.LONG_TERM: long_term_tracks,
        })
    """

    def aggregate(self, window_tracks: WindowTracks) -> List[AggregatedTrack]:
        """
        Aggregate top tracks across all listening windows.

        Args:
            window_tracks: Ordered track list per window; a missing or
                None window contributes nothing

        Returns:
            AggregatedTrack list sorted by score, descending. Ties keep
            first-encountered order (recent window first).
        """
        merged: Dict[str, AggregatedTrack] = {}

        for window in WINDOW_ORDER:
            tracks = window_tracks.get(window) or []
            length = len(tracks)
            weight = window.weight

            for i, track in enumerate(tracks):
                position_score = (length - i) * weight

                entry = merged.get(track.id)
                if entry is None:
                    entry = AggregatedTrack(track=track)
                    merged[track.id] = entry

                entry.score += position_score
                entry.appearances.append(WindowAppearance(window=window, rank=i + 1))

        # sorted() is stable, dict preserves insertion order
        ranked = sorted(merged.values(), key=lambda t: t.score, reverse=True)

        logger.debug(
            "Aggregated %d unique tracks from %s",
            len(ranked),
            {w.time_range: len(window_tracks.get(w) or []) for w in WINDOW_ORDER},
        )
        return ranked


def aggregate_top_tracks(window_tracks: WindowTracks) -> List[AggregatedTrack]:
    """Convenience wrapper around TrackAggregator.aggregate."""
    return TrackAggregator().aggregate(window_tracks)
