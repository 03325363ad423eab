"""
Exception types raised at the edges of the engine.

The aggregation, profile and scoring code never raises for missing data;
these types mark where a collaborator could not deliver it.
"""


class VibeCheckError(Exception):
    """Base class for all Vibecheck.me errors."""


class DataUnavailable(VibeCheckError):
    """A listening window or a track's audio features could not be obtained."""


class UpstreamFailure(DataUnavailable):
    """The Spotify Web API call failed or timed out."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class ConfigurationError(VibeCheckError):
    """Required Spotify configuration is missing."""
