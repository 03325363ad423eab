"""Factory Boy factories for tracks, features and profiles used in tests."""

import factory

from vibecheck_me.aggregator import AggregatedTrack, Artist, Track
from vibecheck_me.features import AudioFeatures, TrackWithFeatures, VibeProfile


class ArtistFactory(factory.Factory):
    class Meta:
        model = Artist

    name = factory.Sequence(lambda n: f"Artist {n}")
    id = factory.Sequence(lambda n: f"artist-{n}")
    genres = ()


class TrackFactory(factory.Factory):
    class Meta:
        model = Track

    id = factory.Sequence(lambda n: f"track-{n}")
    name = factory.Sequence(lambda n: f"Track {n}")
    uri = factory.LazyAttribute(lambda obj: f"spotify:track:{obj.id}")
    artists = factory.LazyFunction(lambda: (ArtistFactory(),))


class AudioFeaturesFactory(factory.Factory):
    class Meta:
        model = AudioFeatures

    acousticness = 0.2
    danceability = 0.7
    energy = 0.8
    instrumentalness = 0.0
    liveness = 0.1
    loudness = -6.0
    speechiness = 0.05
    tempo = 124.0
    valence = 0.6
    key = 7
    mode = 1
    time_signature = 4


class TrackWithFeaturesFactory(factory.Factory):
    class Meta:
        model = TrackWithFeatures

    id = factory.Sequence(lambda n: f"track-{n}")
    name = factory.Sequence(lambda n: f"Track {n}")
    uri = factory.LazyAttribute(lambda obj: f"spotify:track:{obj.id}")
    artist_names = factory.LazyFunction(lambda: ["Artist"])
    audio_features = factory.SubFactory(AudioFeaturesFactory)
    used_default = False


class VibeProfileFactory(factory.Factory):
    class Meta:
        model = VibeProfile

    user_id = factory.Sequence(lambda n: f"user-{n}")
    display_name = factory.LazyAttribute(lambda obj: obj.user_id.title())
    tracks = factory.LazyFunction(lambda: TrackWithFeaturesFactory.build_batch(3))
    average_features = factory.SubFactory(AudioFeaturesFactory)
    top_genres = factory.LazyFunction(lambda: ["indie pop", "synthwave"])
    requested_count = factory.LazyAttribute(lambda obj: len(obj.tracks))
    resolved_count = factory.LazyAttribute(lambda obj: len(obj.tracks))


def aggregated(tracks):
    """Wrap plain tracks as single-window AggregatedTrack entries."""
    return [AggregatedTrack(track=t, score=len(tracks) - i) for i, t in enumerate(tracks)]


def raw_features(track_id, **overrides):
    """Audio-features API payload for one track."""
    payload = {
        "id": track_id,
        "uri": f"spotify:track:{track_id}",
        "type": "audio_features",
        "acousticness": 0.1,
        "danceability": 0.8,
        "energy": 0.9,
        "instrumentalness": 0.0,
        "liveness": 0.2,
        "loudness": -5.0,
        "speechiness": 0.04,
        "tempo": 128.0,
        "valence": 0.7,
        "key": 2,
        "mode": 0,
        "time_signature": 4,
        "duration_ms": 200000,
    }
    payload.update(overrides)
    return payload


def spotify_track(track_id, name=None, artists=None):
    """Top-tracks API item."""
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "uri": f"spotify:track:{track_id}",
        "artists": artists or [{"id": f"a-{track_id}", "name": f"Band {track_id}"}],
    }


__all__ = [
    "ArtistFactory",
    "TrackFactory",
    "AudioFeaturesFactory",
    "TrackWithFeaturesFactory",
    "VibeProfileFactory",
    "aggregated",
    "raw_features",
    "spotify_track",
]
