"""
Feature Engineering Module
==========================

Turns per-track audio features into a user's vibe profile.

    1. AudioFeatures record (12 descriptors, neutral default sentinel)
    2. Normalized 12-d vibe vector (comparable scales per dimension)
    3. VibeProfile: mean features + top genres of the aggregated tracks
"""

import json
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .aggregator import AggregatedTrack, Track
from .config import (
    AUDIO_FEATURES,
    AUDIO_FEATURES_BATCH_SIZE,
    FEATURE_SCALING,
    INTEGER_FEATURES,
    NEUTRAL_FEATURE_VALUES,
    TOP_GENRE_COUNT,
)
from .utils import chunked, normalize_genre, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioFeatures:
    """Spotify audio descriptors for one track."""
    acousticness: float = 0.5
    danceability: float = 0.5
    energy: float = 0.5
    instrumentalness: float = 0.5
    liveness: float = 0.5
    loudness: float = -10.0     # dB, roughly [-60, 0]
    speechiness: float = 0.5
    tempo: float = 120.0        # BPM
    valence: float = 0.5
    key: int = 5                # pitch class 0-11
    mode: int = 1               # 1 major, 0 minor
    time_signature: int = 4

    @classmethod
    def from_spotify(cls, data: Dict[str, Any]) -> "AudioFeatures":
        """
        Build from an audio-features API object.

        Missing or null fields take their neutral value.
        """
        values = {}
        for name in AUDIO_FEATURES:
            value = data.get(name)
            if value is None:
                value = NEUTRAL_FEATURE_VALUES[name]
            values[name] = int(value) if name in INTEGER_FEATURES else float(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


# Null object substituted when a lookup fails
DEFAULT_AUDIO_FEATURES = AudioFeatures(**NEUTRAL_FEATURE_VALUES)


def audio_features_to_vector(features: AudioFeatures) -> np.ndarray:
    """
    Normalize an AudioFeatures record into the 12-d vibe vector.

    [0, 1] descriptors and mode pass through; loudness, tempo, key and
    time_signature are rescaled (see config.FEATURE_SCALING).

    Args:
        features: Audio features record

    Returns:
        12-dimensional float vector in AUDIO_FEATURES order
    """
    vector = []
    for name in AUDIO_FEATURES:
        value = float(getattr(features, name))
        scaling = FEATURE_SCALING.get(name)
        if scaling:
            value = value / scaling['divisor'] + scaling['offset']
        vector.append(value)

    return np.array(vector, dtype=float)


def average_features(features: Sequence[AudioFeatures]) -> AudioFeatures:
    """
    Arithmetic mean of every descriptor.

    key, mode and time_signature are rounded to the nearest integer.
    An empty input yields the neutral default.
    """
    if not features:
        return DEFAULT_AUDIO_FEATURES

    matrix = np.array(
        [[float(getattr(f, name)) for name in AUDIO_FEATURES] for f in features],
        dtype=float,
    )
    means = matrix.mean(axis=0)

    values = {}
    for name, mean in zip(AUDIO_FEATURES, means):
        values[name] = round_half_up(mean) if name in INTEGER_FEATURES else float(mean)
    return AudioFeatures(**values)


def top_genres(genres: Sequence[str], n: int = TOP_GENRE_COUNT) -> List[str]:
    """
    Most frequent genres, case-insensitive.

    Ties keep first-seen order.
    """
    counts = Counter(normalize_genre(g) for g in genres if g and g.strip())
    # most_common sorts stably over insertion order
    return [genre for genre, _ in counts.most_common(n)]


@dataclass
class TrackWithFeatures:
    """A profile track with the features it contributed."""
    id: str
    name: str
    uri: str
    artist_names: List[str] = field(default_factory=list)
    audio_features: AudioFeatures = DEFAULT_AUDIO_FEATURES

    # True when DEFAULT_AUDIO_FEATURES was substituted
    used_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uri": self.uri,
            "artists": self.artist_names,
            "audio_features": self.audio_features.to_dict(),
            "used_default": self.used_default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackWithFeatures":
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            uri=data.get('uri', ''),
            artist_names=list(data.get('artists', [])),
            audio_features=AudioFeatures.from_spotify(data.get('audio_features') or {}),
            used_default=bool(data.get('used_default', False)),
        )


@dataclass
class VibeProfile:
    """A user's listening signature, rebuilt on every aggregation."""
    user_id: str
    display_name: str

    tracks: List[TrackWithFeatures] = field(default_factory=list)
    average_features: AudioFeatures = DEFAULT_AUDIO_FEATURES
    top_genres: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Feature lookups asked for vs. answered with real data
    requested_count: int = 0
    resolved_count: int = 0

    @property
    def vibe_vector(self) -> np.ndarray:
        return audio_features_to_vector(self.average_features)

    @property
    def degraded(self) -> bool:
        """True when any track fell back to default features."""
        return self.resolved_count < self.requested_count

    @property
    def track_uris(self) -> List[str]:
        return [t.uri for t in self.tracks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "tracks": [t.to_dict() for t in self.tracks],
            "average_features": self.average_features.to_dict(),
            "top_genres": list(self.top_genres),
            "created_at": self.created_at.isoformat(),
            "requested_count": self.requested_count,
            "resolved_count": self.resolved_count,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VibeProfile":
        tracks = [TrackWithFeatures.from_dict(t) for t in data.get('tracks', [])]
        created_at = data.get('created_at')
        return cls(
            user_id=data['user_id'],
            display_name=data.get('display_name', ''),
            tracks=tracks,
            average_features=AudioFeatures.from_spotify(data.get('average_features') or {}),
            top_genres=list(data.get('top_genres', [])),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(timezone.utc),
            requested_count=data.get('requested_count', len(tracks)),
            resolved_count=data.get('resolved_count', len(tracks)),
        )


class VibeProfileBuilder:
    """
    Builds a VibeProfile from aggregated tracks.

    The feature source is any object with
    ``get_audio_features_batch(ids) -> List[Optional[dict]]`` accepting at
    most 100 ids and answering positionally (SpotifyClient does). Tracks
    that already carry a feature record are not looked up.
    """

    def __init__(self, feature_source, max_workers: int = 1):
        """
        Args:
            feature_source: Audio-feature collaborator
            max_workers: Threads used to fetch chunks; 1 = sequential
        """
        self.feature_source = feature_source
        self.max_workers = max(1, max_workers)

    def build(
        self,
        user_id: str,
        display_name: str,
        aggregated_tracks: Sequence[AggregatedTrack],
    ) -> VibeProfile:
        """
        Create a vibe profile. Never raises for collaborator failures.

        Args:
            user_id: Owner of the profile
            display_name: Owner's display name
            aggregated_tracks: Output of TrackAggregator.aggregate

        Returns:
            VibeProfile with mean features and top genres
        """
        tracks: List[Track] = [at.track for at in aggregated_tracks if at.track.id]
        track_ids = [t.id for t in tracks]

        # Records the track already carries win over a lookup
        embedded = {}
        for track in tracks:
            features = self._parse_features(track.id, track.audio_features)
            if features is not None:
                embedded[track.id] = features

        missing_ids = [tid for tid in track_ids if tid not in embedded]
        fetched = dict(zip(missing_ids, self.fetch_features(missing_ids)))

        profile_tracks = []
        resolved = 0
        for track in tracks:
            features = embedded.get(track.id)
            if features is None:
                features = self._parse_features(track.id, fetched.get(track.id))

            used_default = features is None
            if used_default:
                features = DEFAULT_AUDIO_FEATURES
            else:
                resolved += 1

            profile_tracks.append(TrackWithFeatures(
                id=track.id,
                name=track.name,
                uri=track.uri,
                artist_names=track.artist_names,
                audio_features=features,
                used_default=used_default,
            ))

        genres = []
        for track in tracks:
            genres.extend(track.genres)

        profile = VibeProfile(
            user_id=user_id,
            display_name=display_name,
            tracks=profile_tracks,
            average_features=average_features([t.audio_features for t in profile_tracks]),
            top_genres=top_genres(genres),
            requested_count=len(track_ids),
            resolved_count=resolved,
        )

        logger.info(
            "Vibe profile for %s: %d tracks (%d with features), genres=%s, energy=%.2f, valence=%.2f",
            display_name,
            len(profile_tracks),
            resolved,
            profile.top_genres,
            profile.average_features.energy,
            profile.average_features.valence,
        )
        return profile

    def fetch_features(self, track_ids: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        """
        Fetch raw features in chunks of at most 100 ids.

        Returns:
            One dict or None per id, aligned with track_ids
        """
        if not track_ids:
            return []

        batches = list(chunked(list(track_ids), AUDIO_FEATURES_BATCH_SIZE))

        if self.max_workers > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # map() yields in submission order
                results = list(pool.map(self._fetch_batch, batches))
        else:
            results = [self._fetch_batch(batch) for batch in batches]

        features: List[Optional[Dict[str, Any]]] = []
        for batch_result in results:
            features.extend(batch_result)
        return features

    @staticmethod
    def _parse_features(track_id: str, raw: Optional[Dict[str, Any]]) -> Optional[AudioFeatures]:
        """AudioFeatures from a raw record, or None if absent or malformed."""
        if not raw:
            return None
        try:
            return AudioFeatures.from_spotify(raw)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Malformed audio features for %s: %s", track_id, e)
            return None

    def _fetch_batch(self, batch: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        """Fetch one chunk; any failure becomes a row of None."""
        try:
            result = self.feature_source.get_audio_features_batch(list(batch))
        except Exception as e:
            logger.warning("Audio features unavailable for %d tracks: %s", len(batch), e)
            return [None] * len(batch)

        result = list(result or [])
        if len(result) < len(batch):
            result.extend([None] * (len(batch) - len(result)))
        return result[:len(batch)]
