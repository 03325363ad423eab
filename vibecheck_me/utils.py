"""
Utility Functions
=================

Common utilities used across the Vibecheck.me engine.
"""

import json
import logging
import math
import sys
import time
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence


class Cache:
    """Simple file-based cache with TTL support."""

    def __init__(self, cache_dir: str = ".cache", ttl_hours: int = 24):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache files
            ttl_hours: Time-to-live in hours
        """
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_hours * 3600
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        cache_file = self._path(key)

        if not cache_file.exists():
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)

            # Check TTL
            if time.time() - cached.get('timestamp', 0) > self.ttl_seconds:
                cache_file.unlink()
                return None

            return cached.get('data')
        except (json.JSONDecodeError, OSError):
            return None

    def set(self, key: str, data: Any) -> None:
        """Set value in cache."""
        try:
            with open(self._path(key), 'w', encoding='utf-8') as f:
                json.dump({'timestamp': time.time(), 'data': data}, f)
        except OSError as e:
            logging.getLogger(__name__).debug("Cache write failed for %s: %s", key, e)

    def clear(self) -> int:
        """Clear all cache files. Returns number of files deleted."""
        count = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                cache_file.unlink()
                count += 1
            except OSError:
                continue
        return count


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    """
    Split a sequence into consecutive chunks.

    Args:
        items: Items to split
        size: Maximum chunk size

    Yields:
        Slices of at most `size` items, in order
    """
    if size <= 0:
        raise ValueError("chunk size must be positive")

    for i in range(0, len(items), size):
        yield items[i:i + size]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


def normalize_genre(genre: str) -> str:
    return genre.strip().lower()


def configure_logging(verbose: bool = False) -> None:
    """Send package logs to stderr; DEBUG when verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger("vibecheck_me")
    root.handlers[:] = [handler]
    root.setLevel(level)


def dedupe(items: List[str]) -> List[str]:
    """Drop repeats, keeping first occurrence order."""
    return list(dict.fromkeys(items))
