"""Exception types shared across worship-chords."""

from typing import Optional


class WorshipChordsError(Exception):
    """Base class for worship-chords errors."""


class InvalidKey(WorshipChordsError, ValueError):
    """A musical key string is not one of the recognized key names."""

    def __init__(self, key: str):
        super().__init__(f"Unrecognized key: {key!r}")
        self.key = key


class UnparsableChord(WorshipChordsError, ValueError):
    """A chord token has no recognizable root note."""

    def __init__(self, chord: str):
        super().__init__(f"Cannot parse chord: {chord!r}")
        self.chord = chord


class DecodeFailure(WorshipChordsError):
    """Audio could not be fetched or decoded for playback."""

    def __init__(self, source_url: str, cause: Optional[Exception] = None):
        message = f"Failed to decode audio from {source_url}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.source_url = source_url
        self.cause = cause


class LoadAborted(WorshipChordsError):
    """A pending load was superseded by a newer source or by teardown."""

    def __init__(self, source_url: str):
        super().__init__(f"Load superseded: {source_url}")
        self.source_url = source_url


class ServiceError(WorshipChordsError):
    """Error communicating with an external service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
