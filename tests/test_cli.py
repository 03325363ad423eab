import json

import pytest

from vibecheck_me import cli

from tests.support.factories import VibeProfileFactory, spotify_track


def _write_profile(path, profile):
    path.write_text(profile.to_json(), encoding="utf-8")
    return str(path)


def test_compare_prints_score(tmp_path, capsys):
    a = VibeProfileFactory(user_id="a", display_name="Ann", top_genres=["house"])
    b = VibeProfileFactory(user_id="b", display_name="Ben", tracks=list(a.tracks), top_genres=["house"])

    code = cli.main([
        "compare",
        _write_profile(tmp_path / "a.json", a),
        _write_profile(tmp_path / "b.json", b),
        "--breakdown",
    ])

    out = capsys.readouterr().out
    assert code == 0
    assert "Ann ↔ Ben: 100%" in out
    assert "Genre similarity: 100.0%" in out


def test_compare_accepts_full_result_json(tmp_path, capsys):
    a = VibeProfileFactory(display_name="Ann")
    wrapped = tmp_path / "result.json"
    wrapped.write_text(json.dumps({"playlist_id": None, "profile": a.to_dict()}), encoding="utf-8")

    code = cli.main(["compare", str(wrapped), str(wrapped)])

    assert code == 0
    assert "Ann ↔ Ann" in capsys.readouterr().out


def test_compare_missing_file_returns_error(tmp_path, capsys):
    code = cli.main(["compare", str(tmp_path / "nope.json"), str(tmp_path / "nope.json")])

    assert code == 1
    assert "Error" in capsys.readouterr().err


def test_playlist_command_writes_profile(tmp_path, capsys, monkeypatch, spotify_client, sp):
    sp.current_user_top_tracks.side_effect = lambda limit, time_range: {
        "items": [spotify_track("t1")] if time_range == "short_term" else []
    }
    monkeypatch.setattr(cli, "build_client", lambda token, use_cache: spotify_client)
    output = tmp_path / "me.json"

    code = cli.main(["playlist", "--token", "abc", "--no-publish", "-o", str(output), "--format", "simple"])

    assert code == 0
    saved = json.loads(output.read_text(encoding="utf-8"))
    assert saved["user_id"] == "alice"
    assert saved["tracks"][0]["id"] == "t1"
    out = capsys.readouterr().out
    assert "Ultimate playlist for: Alice" in out
    assert "(not published)" in out
    sp.user_playlist_create.assert_not_called()


def test_playlist_command_without_credentials_fails(capsys):
    code = cli.main(["playlist"])

    assert code == 1
    assert "SPOTIFY_CLIENT_ID" in capsys.readouterr().err


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_playlist_command_clears_feature_cache(tmp_path, capsys, monkeypatch, spotify_client, sp):
    spotify_client.cache.set("audio_features_stale", {"id": "stale", "energy": 0.1})
    stale = tmp_path / "cache" / "audio_features_stale.json"
    assert stale.exists()
    monkeypatch.setattr(cli, "build_client", lambda token, use_cache: spotify_client)

    code = cli.main(["playlist", "--token", "abc", "--no-publish", "--clear-cache"])

    assert code == 0
    assert not stale.exists()
    assert "Cleared 1 cached audio feature records" in capsys.readouterr().err


def test_playlist_command_keeps_cache_by_default(tmp_path, monkeypatch, spotify_client, sp):
    spotify_client.cache.set("audio_features_kept", {"id": "kept"})
    monkeypatch.setattr(cli, "build_client", lambda token, use_cache: spotify_client)

    assert cli.main(["playlist", "--token", "abc", "--no-publish"]) == 0
    assert (tmp_path / "cache" / "audio_features_kept.json").exists()
