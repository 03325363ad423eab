"""
Compatibility Scoring Engine
============================

Scores how well two users' vibes match, as an integer 0-100:

Mathematical Formulation:
-------------------------

    score = round(100 × (w_a·S_audio + w_g·S_genre + w_t·S_tracks))

where:
    S_audio  = cos(v_A, v_B)                       vibe vectors (features.py)
    S_genre  = |G_A ∩ G_B| / |G_A ∪ G_B|           case-insensitive Jaccard
    S_tracks = |U_A ∩ U_B| / max(|T_A|, |T_B|)     shared track URIs

Weights (0.7, 0.2, 0.1) come from config.CALIBRATION: sonic signature
dominates, genre is secondary, literally shared songs count least.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as sk_cosine_similarity

from .config import CALIBRATION, COMPATIBLE_THRESHOLD
from .features import TrackWithFeatures, VibeProfile
from .utils import normalize_genre, round_half_up

logger = logging.getLogger(__name__)


def cosine_similarity(vector1: np.ndarray, vector2: np.ndarray) -> float:
    """
    Cosine similarity of two vectors; 0.0 if either has zero magnitude.
    """
    v1 = np.asarray(vector1, dtype=float).reshape(1, -1)
    v2 = np.asarray(vector2, dtype=float).reshape(1, -1)

    if not np.any(v1) or not np.any(v2):
        return 0.0

    return float(sk_cosine_similarity(v1, v2)[0, 0])


def genre_jaccard(genres1: Iterable[str], genres2: Iterable[str]) -> float:
    """
    Jaccard similarity of two genre lists, case-insensitive.

    Two empty lists are identical (1.0); one empty list shares nothing (0.0).
    """
    set1 = {normalize_genre(g) for g in genres1}
    set2 = {normalize_genre(g) for g in genres2}

    if not set1 and not set2:
        return 1.0
    if not set1 or not set2:
        return 0.0

    return len(set1 & set2) / len(set1 | set2)


def track_overlap(
    tracks1: Sequence[TrackWithFeatures],
    tracks2: Sequence[TrackWithFeatures]
) -> float:
    """
    Shared track URIs over the longer track list's length.
    """
    denominator = max(len(tracks1), len(tracks2))
    if denominator == 0:
        return 0.0

    uris1 = {t.uri for t in tracks1}
    uris2 = {t.uri for t in tracks2}
    return len(uris1 & uris2) / denominator


@dataclass
class CompatibilityBreakdown:
    """Component similarities behind a compatibility score."""
    audio_similarity: float
    genre_similarity: float
    track_similarity: float
    score: int

    def to_dict(self) -> Dict[str, float]:
        return {
            "audio_similarity": round(self.audio_similarity, 4),
            "genre_similarity": round(self.genre_similarity, 4),
            "track_similarity": round(self.track_similarity, 4),
            "score": self.score,
        }


@dataclass
class CompatibilityMatch:
    """Another user's profile and how compatible it is."""
    profile: VibeProfile
    score: int


class CompatibilityScorer:
    """
    Pairwise compatibility between vibe profiles.

    Usage:
        scorer = CompatibilityScorer()
        score = scorer.score(profile_a, profile_b)
    """

    def __init__(self):
        self.calibration = CALIBRATION

    def breakdown(self, profile1: VibeProfile, profile2: VibeProfile) -> CompatibilityBreakdown:
        """
        Compute every component and the blended score.

        Args:
            profile1, profile2: Profiles to compare (order does not matter)

        Returns:
            CompatibilityBreakdown
        """
        audio = cosine_similarity(profile1.vibe_vector, profile2.vibe_vector)
        genre = genre_jaccard(profile1.top_genres, profile2.top_genres)
        tracks = track_overlap(profile1.tracks, profile2.tracks)

        blended = (
            self.calibration.audio_similarity * audio +
            self.calibration.genre_overlap * genre +
            self.calibration.track_overlap * tracks
        )
        score = min(100, max(0, round_half_up(blended * 100)))

        logger.debug(
            "Compatibility %s <-> %s: audio=%.1f%% genre=%.1f%% tracks=%.1f%% final=%d",
            profile1.display_name,
            profile2.display_name,
            audio * 100,
            genre * 100,
            tracks * 100,
            score,
        )

        return CompatibilityBreakdown(
            audio_similarity=audio,
            genre_similarity=genre,
            track_similarity=tracks,
            score=score,
        )

    def score(self, profile1: VibeProfile, profile2: VibeProfile) -> int:
        return self.breakdown(profile1, profile2).score

    def find_compatible(
        self,
        profile: VibeProfile,
        candidates: Iterable[VibeProfile],
        threshold: int = COMPATIBLE_THRESHOLD
    ) -> List[CompatibilityMatch]:
        """
        Rank other users whose compatibility reaches the threshold.

        Args:
            profile: The user looking for matches
            candidates: Profiles to compare against; the user's own is skipped
            threshold: Minimum score kept

        Returns:
            Matches sorted by score, descending (ties keep input order)
        """
        matches = []
        for candidate in candidates:
            if candidate.user_id == profile.user_id:
                continue
            score = self.score(profile, candidate)
            if score >= threshold:
                matches.append(CompatibilityMatch(profile=candidate, score=score))

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches


def calculate_compatibility_score(profile1: VibeProfile, profile2: VibeProfile) -> int:
    """Compatibility score 0-100 between two profiles."""
    return CompatibilityScorer().score(profile1, profile2)


def find_compatible_users(
    profile: VibeProfile,
    candidates: Iterable[VibeProfile],
    threshold: int = COMPATIBLE_THRESHOLD
) -> List[CompatibilityMatch]:
    """Convenience wrapper around CompatibilityScorer.find_compatible."""
    return CompatibilityScorer().find_compatible(profile, candidates, threshold)
