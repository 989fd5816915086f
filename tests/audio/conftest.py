"""Fake audio context for playback tests.

The clock only moves when a test calls ``advance()`` and frame callbacks
only run when a test calls ``run_frame()``, so no audio hardware or real
time is involved.
"""

import asyncio

import numpy as np
import pytest

from worship_chords.audio.controller import PlaybackSession
from worship_chords.audio.engine import (
    AudioBuffer,
    AudioContext,
    AudioContextProvider,
    AudioNode,
    GainNode,
    PitchShiftNode,
    PlayerNode,
)
from worship_chords.errors import DecodeFailure

SAMPLE_RATE = 100


class FakeNode(AudioNode):
    pass


class FakePlayer(PlayerNode):
    def __init__(self, buffer: AudioBuffer):
        super().__init__(buffer)
        self._started = False
        self.start_calls = []
        self.stop_calls = 0

    @property
    def started(self) -> bool:
        return self._started

    def start(self, offset: float = 0.0) -> None:
        self._started = True
        self.start_calls.append(offset)

    def stop(self) -> None:
        self._started = False
        self.stop_calls += 1
        if self.on_stop:
            self.on_stop()

    def run_out(self) -> None:
        """Simulate the buffer running out of samples."""
        self._started = False
        if self.on_stop:
            self.on_stop()


class FakeContext(AudioContext):
    def __init__(self):
        self.time = 0.0
        self.durations = {}
        self.errors = {}
        self.gates = {}
        self.frames = {}
        self._next_handle = 0
        self.players = []
        self.pitch_nodes = []
        self.gain_nodes = []
        self._destination = FakeNode()
        self.closed = False

    def now(self) -> float:
        return self.time

    def advance(self, seconds: float) -> None:
        self.time += seconds

    def gate(self, source_url: str) -> asyncio.Event:
        """Hold decoding of a source until the returned event is set."""
        event = asyncio.Event()
        self.gates[source_url] = event
        return event

    async def decode(self, source_url: str) -> AudioBuffer:
        if source_url in self.gates:
            await self.gates[source_url].wait()
        if source_url in self.errors:
            raise self.errors[source_url]
        duration = self.durations.get(source_url, 30.0)
        samples = np.zeros((int(duration * SAMPLE_RATE), 2), dtype=np.float32)
        return AudioBuffer(samples=samples, sample_rate=SAMPLE_RATE)

    def create_player(self, buffer: AudioBuffer) -> PlayerNode:
        player = FakePlayer(buffer)
        self.players.append(player)
        return player

    def create_pitch_shift(self, pitch: float = 0.0, window_size: float = 0.1) -> PitchShiftNode:
        node = PitchShiftNode(pitch=pitch, window_size=window_size)
        self.pitch_nodes.append(node)
        return node

    def create_gain(self, gain: float = 1.0) -> GainNode:
        node = GainNode(gain)
        self.gain_nodes.append(node)
        return node

    @property
    def destination(self) -> AudioNode:
        return self._destination

    def request_frame(self, callback):
        self._next_handle += 1
        self.frames[self._next_handle] = callback
        return self._next_handle

    def cancel_frame(self, handle) -> None:
        self.frames.pop(handle, None)

    def run_frame(self) -> None:
        """Run every pending frame callback once."""
        pending = list(self.frames.values())
        self.frames.clear()
        for callback in pending:
            callback()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def context():
    """Fake audio context with a manual clock."""
    return FakeContext()


@pytest.fixture
def provider(context):
    """Provider handing out the fake context."""
    return AudioContextProvider(lambda: context)


@pytest.fixture
def session(provider):
    """Session with the default STOP policy."""
    session = PlaybackSession(provider)
    yield session
    session.dispose()


@pytest.fixture
def decode_failure():
    """Factory for a decode failure."""
    return lambda url: DecodeFailure(url, ValueError("bad data"))
