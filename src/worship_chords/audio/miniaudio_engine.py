"""Audio context backed by miniaudio.

One playback device is opened lazily and fed by a mixing generator that
pulls every running player through its node chain. Node parameters are
read on the audio thread under the context lock, so pitch and gain
changes apply from the next device period.
"""

import asyncio
import threading
import time
from pathlib import Path
from typing import Any, Callable, Generator, List, Optional

import miniaudio
import numpy as np
import requests

from worship_chords.audio.dsp import GranularPitchShifter, apply_gain
from worship_chords.audio.engine import (
    AudioBuffer,
    AudioContext,
    AudioNode,
    GainNode,
    PitchShiftNode,
    PlayerNode,
)
from worship_chords.errors import DecodeFailure
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

FRAME_INTERVAL = 1 / 60


class _Destination(AudioNode):
    """Terminal node; whatever reaches it is mixed to the device."""


class MiniaudioPitchShift(PitchShiftNode):
    def __init__(self, context: "MiniaudioContext", pitch: float = 0.0, window_size: float = 0.1):
        super().__init__(pitch=pitch, window_size=window_size)
        self._shifter = GranularPitchShifter(context.sample_rate, context.nchannels, window_size)

    def process(self, block: np.ndarray) -> np.ndarray:
        return self._shifter.process(block, self.pitch)

    def reset(self) -> None:
        self._shifter.reset()


class MiniaudioGain(GainNode):
    def process(self, block: np.ndarray) -> np.ndarray:
        return apply_gain(block, self.gain)


class MiniaudioPlayer(PlayerNode):
    """Transport reading frames out of a decoded buffer."""

    def __init__(self, context: "MiniaudioContext", buffer: AudioBuffer):
        super().__init__(buffer)
        self._context = context
        self._cursor = 0
        self._started = False
        self._run = 0

    @property
    def started(self) -> bool:
        return self._started

    def start(self, offset: float = 0.0) -> None:
        frame = int(max(0.0, offset) * self.buffer.sample_rate)
        with self._context.lock:
            self._cursor = min(frame, self.buffer.frames)
            self._started = True
            self._run += 1
            node = self.output
            while node is not None:
                if isinstance(node, MiniaudioPitchShift):
                    node.reset()
                node = node.output
        self._context.activate(self)

    def stop(self) -> None:
        with self._context.lock:
            was_started = self._started
            self._started = False
            self._run += 1
        self._context.deactivate(self)
        if was_started and self.on_stop:
            self.on_stop()

    def render(self, frames: int) -> Optional[np.ndarray]:
        """Produce the next block through the node chain.

        Called on the audio thread with the context lock held.

        Returns:
            Block for the destination, or None if the chain is not connected
        """
        if not self._started:
            return None
        end = self._cursor + frames
        block = self.buffer.samples[self._cursor:end]
        self._cursor = min(end, self.buffer.frames)
        if block.shape[0] < frames:
            pad = np.zeros((frames - block.shape[0], block.shape[1]), dtype=np.float32)
            block = np.concatenate([block, pad])
            self._started = False
            self._context.schedule_natural_end(self, self._run)

        node = self.output
        while node is not None and not isinstance(node, _Destination):
            block = node.process(block)
            node = node.output
        return block if node is not None else None

    def finish(self, run: int) -> None:
        """Report a natural end on the event loop, unless restarted since."""
        if run != self._run or self.disposed:
            return
        self._context.deactivate(self)
        if self.on_stop:
            self.on_stop()


class MiniaudioContext(AudioContext):
    """Shared miniaudio runtime.

    Attributes:
        sample_rate: Device sample rate
        nchannels: Device channel count
        buffer_ms: Device buffer size in milliseconds
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        nchannels: int = 2,
        buffer_ms: int = 200,
        frame_interval: float = FRAME_INTERVAL,
    ):
        """Initialize the context. The device opens on first playback.

        Args:
            sample_rate: Device sample rate
            nchannels: Device channel count
            buffer_ms: Device buffer size in milliseconds
            frame_interval: Seconds between frame callbacks
        """
        self.sample_rate = sample_rate
        self.nchannels = nchannels
        self.buffer_ms = buffer_ms
        self.frame_interval = frame_interval

        self.lock = threading.Lock()
        self._destination = _Destination()
        self._active: List[MiniaudioPlayer] = []
        self._device: Optional[miniaudio.PlaybackDevice] = None
        self._generator: Optional[Generator] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def now(self) -> float:
        return time.monotonic()

    @property
    def destination(self) -> AudioNode:
        return self._destination

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    # -- decoding --------------------------------------------------------

    def _decode_sync(self, source_url: str) -> np.ndarray:
        if source_url.startswith(("http://", "https://")):
            response = requests.get(source_url, timeout=60)
            response.raise_for_status()
            decoded = miniaudio.decode(
                response.content,
                output_format=miniaudio.SampleFormat.FLOAT32,
                nchannels=self.nchannels,
                sample_rate=self.sample_rate,
            )
        else:
            path = Path(source_url[len("file://"):] if source_url.startswith("file://") else source_url)
            decoded = miniaudio.decode_file(
                str(path),
                output_format=miniaudio.SampleFormat.FLOAT32,
                nchannels=self.nchannels,
                sample_rate=self.sample_rate,
            )
        samples = np.asarray(decoded.samples, dtype=np.float32)
        return samples.reshape((-1, self.nchannels))

    async def decode(self, source_url: str) -> AudioBuffer:
        loop = self._event_loop()
        logger.debug(f"Decoding {source_url}")
        try:
            samples = await loop.run_in_executor(None, self._decode_sync, source_url)
        except (miniaudio.MiniaudioError, requests.exceptions.RequestException, OSError, ValueError) as e:
            raise DecodeFailure(source_url, e) from e
        if samples.shape[0] == 0:
            raise DecodeFailure(source_url, ValueError("no audio frames"))
        return AudioBuffer(samples=samples, sample_rate=self.sample_rate)

    # -- nodes -----------------------------------------------------------

    def create_player(self, buffer: AudioBuffer) -> PlayerNode:
        return MiniaudioPlayer(self, buffer)

    def create_pitch_shift(self, pitch: float = 0.0, window_size: float = 0.1) -> PitchShiftNode:
        return MiniaudioPitchShift(self, pitch=pitch, window_size=window_size)

    def create_gain(self, gain: float = 1.0) -> GainNode:
        return MiniaudioGain(gain)

    # -- device ----------------------------------------------------------

    def activate(self, player: MiniaudioPlayer) -> None:
        self._event_loop()
        with self.lock:
            if player not in self._active:
                self._active.append(player)
        self._ensure_device()

    def deactivate(self, player: MiniaudioPlayer) -> None:
        with self.lock:
            if player in self._active:
                self._active.remove(player)

    def schedule_natural_end(self, player: MiniaudioPlayer, run: int) -> None:
        """Hand a natural end from the audio thread to the event loop."""
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(player.finish, run)

    def _mix(self) -> Generator[np.ndarray, int, None]:
        """Generator fed frame counts by miniaudio; yields mixed blocks."""
        num_frames = yield np.zeros((0, self.nchannels), dtype=np.float32)
        while True:
            mixed = np.zeros((num_frames, self.nchannels), dtype=np.float32)
            with self.lock:
                for player in list(self._active):
                    block = player.render(num_frames)
                    if block is not None:
                        mixed += block
            np.clip(mixed, -1.0, 1.0, out=mixed)
            num_frames = yield mixed

    def _ensure_device(self) -> None:
        if self._device is not None:
            return
        logger.debug(f"Opening playback device: {self.sample_rate}Hz, {self.nchannels}ch")
        self._generator = self._mix()
        next(self._generator)
        self._device = miniaudio.PlaybackDevice(
            output_format=miniaudio.SampleFormat.FLOAT32,
            nchannels=self.nchannels,
            sample_rate=self.sample_rate,
            buffersize_msec=self.buffer_ms,
        )
        self._device.start(self._generator)

    # -- frames ----------------------------------------------------------

    def request_frame(self, callback: Callable[[], None]) -> Any:
        return self._event_loop().call_later(self.frame_interval, callback)

    def cancel_frame(self, handle: Any) -> None:
        handle.cancel()

    def close(self) -> None:
        with self.lock:
            self._active.clear()
        if self._device is not None:
            self._device.close()
            self._device = None
        if self._generator is not None:
            self._generator.close()
            self._generator = None
        logger.debug("Audio context closed")
