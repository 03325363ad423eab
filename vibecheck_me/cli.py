"""
Command-Line Interface for Vibecheck.me
=======================================

Usage:
    python -m vibecheck_me.cli playlist [options]
    python -m vibecheck_me.cli compare <profile_a.json> <profile_b.json>

Commands:
    playlist    Build the ultimate playlist and vibe profile for the
                logged-in user
    compare     Compatibility score between two saved vibe profiles

Examples:
    python -m vibecheck_me.cli playlist --token $SPOTIFY_ACCESS_TOKEN -o me.json
    python -m vibecheck_me.cli playlist --no-publish --limit 20 --format simple
    python -m vibecheck_me.cli playlist --clear-cache -o me.json
    python -m vibecheck_me.cli compare me.json friend.json --breakdown
"""

import argparse
import json
import os
import sys
from dataclasses import replace
from typing import List, Optional

from .config import DEFAULT_PLAYLIST_CONFIG, OUTPUT_FORMATS, TOP_TRACKS_MAX_LIMIT
from .exceptions import VibeCheckError
from .features import VibeProfile
from .playlist import UltimatePlaylistGenerator, UltimatePlaylistResult
from .scoring import CompatibilityScorer
from .spotify_client import SpotifyClient, SpotifySession
from .utils import configure_logging


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='vibecheck-me',
        description='🎵 Vibecheck.me - Ultimate playlists and vibe compatibility',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  SPOTIFY_ACCESS_TOKEN   User access token (instead of --token)
  SPOTIFY_CLIENT_ID      Client ID for the interactive OAuth login
  SPOTIFY_CLIENT_SECRET  Client secret for the interactive OAuth login
  SPOTIFY_REDIRECT_URI   Redirect URI registered for the app
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    playlist = subparsers.add_parser(
        'playlist',
        help='Build the ultimate playlist and vibe profile'
    )
    playlist.add_argument(
        '--token',
        type=str,
        default=None,
        help='Spotify user access token (default: $SPOTIFY_ACCESS_TOKEN, else OAuth login)'
    )
    playlist.add_argument(
        '--playlist-id',
        type=str,
        default=None,
        help='Existing ultimate playlist to overwrite'
    )
    playlist.add_argument(
        '--limit',
        type=int,
        default=TOP_TRACKS_MAX_LIMIT,
        help=f'Top tracks per listening window, 1-{TOP_TRACKS_MAX_LIMIT} (default: {TOP_TRACKS_MAX_LIMIT})'
    )
    playlist.add_argument(
        '--no-publish',
        action='store_true',
        help='Do not write the playlist to Spotify'
    )
    playlist.add_argument(
        '--no-genres',
        action='store_true',
        help='Skip artist genre lookup'
    )
    playlist.add_argument(
        '--workers',
        type=int,
        default=1,
        help='Threads for audio-feature requests (default: 1)'
    )
    playlist.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Write the vibe profile JSON to this file'
    )
    playlist.add_argument(
        '--format',
        type=str,
        choices=OUTPUT_FORMATS,
        default='json',
        help='Output format (default: json)'
    )
    playlist.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable audio feature caching'
    )
    playlist.add_argument(
        '--clear-cache',
        action='store_true',
        help='Delete cached audio features before running'
    )

    compare = subparsers.add_parser(
        'compare',
        help='Compatibility score between two saved profiles'
    )
    compare.add_argument('profile_a', type=str, help='Vibe profile JSON file')
    compare.add_argument('profile_b', type=str, help='Vibe profile JSON file')
    compare.add_argument(
        '--breakdown',
        action='store_true',
        help='Show the component similarities'
    )

    return parser


def format_result(result: UltimatePlaylistResult, fmt: str) -> str:
    """Format a playlist run based on requested format."""
    if fmt == 'simple':
        profile = result.profile
        lines = [
            f"🎵 Ultimate playlist for: {result.display_name}",
            f"   Playlist ID: {result.playlist_id or '(not published)'}",
            f"   Tracks per window: {result.window_counts}",
            f"   Top genres: {', '.join(profile.top_genres) or '-'}",
            f"   Features resolved: {profile.resolved_count}/{profile.requested_count}",
            "",
            "Ranking:",
            "-" * 50,
        ]
        for i, track in enumerate(result.tracks, 1):
            windows = ", ".join(f"{a.window.time_range}#{a.rank}" for a in track.appearances)
            lines.append(f"{i:3}. {track.track.name} - {', '.join(track.track.artist_names)}")
            lines.append(f"     Score: {track.score}  ({windows})")
        return '\n'.join(lines)

    return result.to_json(indent=2)


def load_profile(path: str) -> VibeProfile:
    """Load a profile saved by `playlist -o` (or a full result JSON)."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if 'profile' in data and 'user_id' not in data:
        data = data['profile']
    return VibeProfile.from_dict(data)


def build_client(token: Optional[str], use_cache: bool) -> SpotifyClient:
    token = token or os.environ.get('SPOTIFY_ACCESS_TOKEN')
    if token:
        return SpotifyClient(session=SpotifySession(access_token=token), use_cache=use_cache)
    return SpotifyClient.from_oauth(use_cache=use_cache)


def run_playlist(args) -> int:
    config = replace(
        DEFAULT_PLAYLIST_CONFIG,
        tracks_per_window=args.limit,
        publish=not args.no_publish,
        enrich_genres=not args.no_genres,
        feature_workers=args.workers,
    )

    print("🔐 Connecting to Spotify...", file=sys.stderr)
    client = build_client(args.token, use_cache=not args.no_cache)

    if args.clear_cache and client.cache is not None:
        removed = client.cache.clear()
        print(f"🧹 Cleared {removed} cached audio feature records", file=sys.stderr)

    print("📥 Aggregating top tracks...", file=sys.stderr)
    generator = UltimatePlaylistGenerator(client, config)
    result = generator.generate(playlist_id=args.playlist_id)

    if not result.has_data:
        print("⚠️  No top tracks found for this account", file=sys.stderr)

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(result.profile.to_json())
        print(f"✅ Vibe profile saved to: {args.output}", file=sys.stderr)

    print(format_result(result, args.format))
    return 0


def run_compare(args) -> int:
    profile_a = load_profile(args.profile_a)
    profile_b = load_profile(args.profile_b)

    breakdown = CompatibilityScorer().breakdown(profile_a, profile_b)

    print(f"🤝 {profile_a.display_name} ↔ {profile_b.display_name}: {breakdown.score}%")
    if args.breakdown:
        print(f"   Audio similarity: {breakdown.audio_similarity * 100:.1f}%")
        print(f"   Genre similarity: {breakdown.genre_similarity * 100:.1f}%")
        print(f"   Shared tracks:    {breakdown.track_similarity * 100:.1f}%")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        if args.command == 'playlist':
            return run_playlist(args)
        return run_compare(args)

    except (VibeCheckError, OSError, KeyError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
