"""
Error taxonomy shared by the discovery and playback packages.

Upstream errors are absorbed inside a sampling call. ContentExhausted is
surfaced once per discovery request. PlaybackMediaError drives source
fallback. PersistenceError is only ever logged.
"""

from typing import Optional


class PlayerError(Exception):
    """Base class for every error raised by this project."""


class UpstreamError(PlayerError):
    """The upstream content index did not give us a usable answer."""


class UpstreamUnavailable(UpstreamError):
    """Network failure or timeout talking to the upstream index."""


class UpstreamInvalid(UpstreamError):
    """The upstream index answered with a malformed or incomplete payload."""


class ContentExhausted(PlayerError):
    """The sampler hit its attempt bound without finding valid content."""

    def __init__(self, source_id: int, attempts: int):
        self.source_id = source_id
        self.attempts = attempts
        super().__init__(
            f"No valid content found for source {source_id} after {attempts} attempts"
        )


# The name callers of the sampler know it by
ExhaustedError = ContentExhausted


class UnknownSourceError(PlayerError):
    """The requested content source does not exist or is inactive."""

    def __init__(self, source_id: int):
        self.source_id = source_id
        super().__init__(f"Content source {source_id} not found or inactive")


class PlaybackMediaError(PlayerError):
    """A media sink reported that it could not play the current url."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class PersistenceError(PlayerError):
    """Best-effort persistence (positions, settings) failed."""
