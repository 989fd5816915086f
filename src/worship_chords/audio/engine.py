"""Abstract audio graph used by the playback controller.

A context decodes sources and hands out nodes that are wired into a
chain ``player -> pitch shift -> gain -> destination``. It also owns the
clock and the per-frame scheduler, so the controller never reads wall
time or timers directly.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np

from worship_chords.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AudioBuffer:
    """Decoded audio ready for playback.

    Attributes:
        samples: float32 array shaped (frames, channels)
        sample_rate: Frames per second
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def nchannels(self) -> int:
        return self.samples.shape[1] if self.samples.ndim > 1 else 1

    @property
    def frames(self) -> int:
        return self.samples.shape[0]

    @property
    def duration(self) -> float:
        """Length in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate


class AudioNode(ABC):
    """A node in the audio graph."""

    def __init__(self) -> None:
        self.output: Optional["AudioNode"] = None
        self.disposed = False

    def connect(self, node: "AudioNode") -> "AudioNode":
        """Route this node's output into ``node`` and return ``node`` for chaining."""
        self.output = node
        return node

    def disconnect(self) -> None:
        self.output = None

    def dispose(self) -> None:
        """Release the node. A disposed node is silent and cannot be reused."""
        self.disconnect()
        self.disposed = True


class PlayerNode(AudioNode):
    """Transport over a decoded buffer.

    ``on_stop`` fires whenever the transport stops, whether it was stopped
    programmatically or ran out of samples.
    """

    def __init__(self, buffer: AudioBuffer) -> None:
        super().__init__()
        self.buffer = buffer
        self.on_stop: Optional[Callable[[], None]] = None

    @property
    @abstractmethod
    def started(self) -> bool:
        """Whether the transport is currently running."""

    @abstractmethod
    def start(self, offset: float = 0.0) -> None:
        """Start the transport ``offset`` seconds into the buffer."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the transport."""

    def dispose(self) -> None:
        self.on_stop = None
        if self.started:
            self.stop()
        super().dispose()


class PitchShiftNode(AudioNode):
    """Pitch shifter with a live ``pitch`` parameter in semitones."""

    def __init__(self, pitch: float = 0.0, window_size: float = 0.1) -> None:
        super().__init__()
        self._pitch = float(pitch)
        self.window_size = window_size

    @property
    def pitch(self) -> float:
        return self._pitch

    @pitch.setter
    def pitch(self, semitones: float) -> None:
        self._pitch = float(semitones)


class GainNode(AudioNode):
    """Volume stage."""

    def __init__(self, gain: float = 1.0) -> None:
        super().__init__()
        self._gain = float(gain)

    @property
    def gain(self) -> float:
        return self._gain

    @gain.setter
    def gain(self, value: float) -> None:
        self._gain = max(0.0, float(value))


class AudioContext(ABC):
    """Shared audio runtime: clock, decoder, node factory and frame scheduler."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on the context clock."""

    @abstractmethod
    async def decode(self, source_url: str) -> AudioBuffer:
        """Fetch and decode a source.

        Raises:
            DecodeFailure: If the source cannot be fetched or decoded
        """

    @abstractmethod
    def create_player(self, buffer: AudioBuffer) -> PlayerNode:
        """Create a transport for a decoded buffer."""

    @abstractmethod
    def create_pitch_shift(self, pitch: float = 0.0, window_size: float = 0.1) -> PitchShiftNode:
        """Create a pitch-shift node."""

    @abstractmethod
    def create_gain(self, gain: float = 1.0) -> GainNode:
        """Create a gain node."""

    @property
    @abstractmethod
    def destination(self) -> AudioNode:
        """Final output node."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> Any:
        """Schedule ``callback`` for the next rendering frame.

        Returns:
            Handle accepted by cancel_frame
        """

    @abstractmethod
    def cancel_frame(self, handle: Any) -> None:
        """Cancel a callback scheduled with request_frame."""

    def close(self) -> None:
        """Release the runtime."""


class AudioContextProvider:
    """Lazily creates the single shared audio context.

    Sessions receive the provider rather than a context so nothing touches
    the audio device until the first load.

    Attributes:
        factory: Callable that builds the context on first use
    """

    def __init__(self, factory: Callable[[], AudioContext]):
        self.factory = factory
        self._context: Optional[AudioContext] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._context is not None

    def get(self) -> AudioContext:
        """Get or create the shared context."""
        with self._lock:
            if self._context is None:
                logger.debug("Creating shared audio context")
                self._context = self.factory()
            return self._context

    def close(self) -> None:
        """Close the shared context if it was ever created."""
        with self._lock:
            context, self._context = self._context, None
        if context is not None:
            context.close()
