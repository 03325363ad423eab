import time

import pytest
import requests
from spotipy.exceptions import SpotifyException

from vibecheck_me.config import Window
from vibecheck_me.exceptions import ConfigurationError, DataUnavailable, UpstreamFailure
from vibecheck_me.spotify_client import SpotifyClient, SpotifySession

from tests.support.factories import raw_features, spotify_track


def test_requires_session_or_spotipy_client():
    with pytest.raises(ConfigurationError):
        SpotifyClient()


def test_session_expiry():
    assert SpotifySession("t", expires_at=int(time.time()) - 10).is_expired
    assert not SpotifySession("t", expires_at=int(time.time()) + 3600).is_expired
    assert not SpotifySession("t").is_expired


def test_session_from_token_info():
    session = SpotifySession.from_token_info(
        {"access_token": "abc", "refresh_token": "r", "expires_at": 123, "scope": "user-top-read"}
    )

    assert session.access_token == "abc"
    assert session.refresh_token == "r"
    assert session.expires_at == 123


def test_from_oauth_without_credentials_raises():
    with pytest.raises(ConfigurationError):
        SpotifyClient.from_oauth(open_browser=False)


def test_get_top_tracks_passes_window_and_clamps_limit(spotify_client, sp):
    sp.current_user_top_tracks.return_value = {
        "items": [spotify_track("a"), None, {"id": None, "name": "local file"}, spotify_track("b")]
    }

    items = spotify_client.get_top_tracks(Window.LONG_TERM, limit=500)

    sp.current_user_top_tracks.assert_called_once_with(limit=50, time_range="long_term")
    assert [t["id"] for t in items] == ["a", "b"]


def test_spotify_errors_become_upstream_failures(spotify_client, sp):
    sp.current_user_top_tracks.side_effect = SpotifyException(429, -1, "rate limited")

    with pytest.raises(UpstreamFailure) as excinfo:
        spotify_client.get_top_tracks(Window.RECENT)

    assert excinfo.value.status == 429
    assert isinstance(excinfo.value, DataUnavailable)


def test_transport_errors_become_upstream_failures(spotify_client, sp):
    sp.audio_features.side_effect = requests.ConnectionError("connection reset")

    with pytest.raises(UpstreamFailure):
        spotify_client.get_audio_features_batch(["a"])


def test_audio_features_batch_keeps_request_order_and_nulls(spotify_client, sp):
    sp.audio_features.return_value = [raw_features("a"), None, raw_features("c")]

    result = spotify_client.get_audio_features_batch(["a", "b", "c"])

    assert [r["id"] if r else None for r in result] == ["a", None, "c"]


def test_audio_features_batch_rejects_more_than_100_ids(spotify_client):
    with pytest.raises(ValueError):
        spotify_client.get_audio_features_batch([f"t{i}" for i in range(101)])


def test_audio_features_are_cached_per_track(spotify_client, sp):
    sp.audio_features.return_value = [raw_features("a"), raw_features("b")]
    spotify_client.get_audio_features_batch(["a", "b"])

    sp.audio_features.reset_mock()
    sp.audio_features.return_value = [raw_features("c")]
    result = spotify_client.get_audio_features_batch(["b", "c", "a"])

    sp.audio_features.assert_called_once_with(["c"])
    assert [r["id"] for r in result] == ["b", "c", "a"]


def test_cache_can_be_disabled(sp):
    client = SpotifyClient(session=SpotifySession("t"), sp=sp, use_cache=False)
    client._min_request_interval = 0
    sp.audio_features.return_value = [raw_features("a")]

    client.get_audio_features_batch(["a"])
    client.get_audio_features_batch(["a"])

    assert sp.audio_features.call_count == 2
    assert client.cache is None


def test_get_artists_batches_by_50_and_dedupes(spotify_client, sp):
    sp.artists.side_effect = lambda ids: {"artists": [{"id": i, "genres": []} for i in ids]}
    ids = [f"a{i}" for i in range(60)] + ["a0", None]

    artists = spotify_client.get_artists(ids)

    assert [len(c.args[0]) for c in sp.artists.call_args_list] == [50, 10]
    assert len(artists) == 60


def test_create_playlist_uses_session_user(spotify_client, sp):
    playlist_id = spotify_client.create_playlist("Ultimate", description="desc")

    sp.user_playlist_create.assert_called_once_with("alice", "Ultimate", public=False, description="desc")
    assert playlist_id == "playlist-1"
    sp.current_user.assert_not_called()


def test_user_id_is_looked_up_when_session_lacks_it(sp):
    client = SpotifyClient(session=SpotifySession("t"), sp=sp, use_cache=False)

    assert client.user_id == "alice"
    assert client.session.display_name == "Alice"


def test_replace_playlist_tracks_writes_first_100(spotify_client, sp):
    uris = [f"spotify:track:{i}" for i in range(130)]

    written = spotify_client.replace_playlist_tracks("pl", uris)

    sp.playlist_replace_items.assert_called_once_with("pl", uris[:100])
    assert written == uris[:100]
