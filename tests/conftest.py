import os
import sys
from unittest.mock import MagicMock

import pytest

# Ensure project root is on sys.path so 'vibecheck_me' and 'tests' import correctly
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from tests.support import factories as test_factories


class FakeFeatureSource:
    """Feature collaborator that records each batch it is asked for."""

    def __init__(self, features=None, fail=False):
        self.features = features or {}
        self.fail = fail
        self.calls = []

    def get_audio_features_batch(self, track_ids):
        self.calls.append(list(track_ids))
        if self.fail:
            raise RuntimeError("audio-features endpoint unavailable")
        return [self.features.get(tid) for tid in track_ids]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep real credentials and tokens out of tests."""
    for name in (
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
        "SPOTIPY_CLIENT_ID",
        "SPOTIPY_CLIENT_SECRET",
        "SPOTIFY_ACCESS_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def factories():
    return test_factories


@pytest.fixture
def feature_source():
    return FakeFeatureSource


@pytest.fixture
def sp():
    """Spotipy double injected into SpotifyClient."""
    mock = MagicMock(name="spotipy.Spotify")
    mock.current_user.return_value = {"id": "alice", "display_name": "Alice"}
    mock.current_user_top_tracks.return_value = {"items": []}
    mock.audio_features.return_value = []
    mock.artists.return_value = {"artists": []}
    mock.user_playlist_create.return_value = {"id": "playlist-1"}
    return mock


@pytest.fixture
def spotify_client(sp, tmp_path):
    from vibecheck_me.spotify_client import SpotifyClient, SpotifySession

    client = SpotifyClient(
        session=SpotifySession(access_token="token", user_id="alice", display_name="Alice"),
        sp=sp,
        cache_dir=str(tmp_path / "cache"),
    )
    client._min_request_interval = 0
    return client
