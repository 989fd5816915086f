"""Transposable audio playback.

The playback controller drives an abstract audio context so the same
state machine runs against the miniaudio engine in the practice player
and against a scripted context in tests.
"""

from worship_chords.audio.controller import (
    EndPolicy,
    PlaybackPosition,
    PlaybackSession,
    PlaybackStatus,
    PlayStateOwner,
    StopEventGuard,
)
from worship_chords.audio.coordinator import TransposeCoordinator
from worship_chords.audio.engine import AudioBuffer, AudioContext, AudioContextProvider

__all__ = [
    "AudioBuffer",
    "AudioContext",
    "AudioContextProvider",
    "EndPolicy",
    "PlaybackPosition",
    "PlaybackSession",
    "PlaybackStatus",
    "PlayStateOwner",
    "StopEventGuard",
    "TransposeCoordinator",
]
