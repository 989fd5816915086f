"""Block-based DSP for the miniaudio engine.

The pitch shifter is a delay-line granular shifter: two read taps sweep
through a short delay window in a sawtooth, half a window apart, and are
crossfaded with triangular envelopes so each tap is silent at the moment
it jumps. Moving the taps at a constant rate resamples the signal by
``2 ** (semitones / 12)`` without changing its duration.
"""

import numpy as np


class GranularPitchShifter:
    """Streaming pitch shifter for float32 blocks shaped (frames, channels).

    Attributes:
        sample_rate: Frames per second
        nchannels: Channel count
        window: Delay window length in frames
    """

    def __init__(self, sample_rate: int, nchannels: int, window_size: float = 0.1):
        """Initialize the shifter.

        Args:
            sample_rate: Frames per second
            nchannels: Channel count
            window_size: Delay window length in seconds
        """
        self.sample_rate = sample_rate
        self.nchannels = nchannels
        self.window = max(4, int(window_size * sample_rate))
        self._history = np.zeros((self.window + 1, nchannels), dtype=np.float32)
        self._phase = 0.0

    def reset(self) -> None:
        """Forget buffered input (after a seek or restart)."""
        self._history[:] = 0.0
        self._phase = 0.0

    def process(self, block: np.ndarray, semitones: float) -> np.ndarray:
        """Shift one block.

        Args:
            block: float32 samples shaped (frames, channels)
            semitones: Pitch offset; 0 passes audio through untouched

        Returns:
            Shifted block with the same shape
        """
        frames = block.shape[0]
        if frames == 0:
            return block

        buf = np.concatenate([self._history, block.astype(np.float32, copy=False)])
        hist_len = self._history.shape[0]
        self._history = buf[-hist_len:].copy()

        if semitones == 0:
            return block

        ratio = 2.0 ** (semitones / 12.0)
        # Delay grows by (1 - ratio) frames per frame, as a fraction of the window
        rate = (1.0 - ratio) / self.window
        phases = (self._phase + rate * np.arange(1, frames + 1)) % 1.0
        self._phase = float(phases[-1])

        out = np.zeros((frames, self.nchannels), dtype=np.float32)
        positions = hist_len + np.arange(frames)
        last = buf.shape[0] - 1
        for tap_offset in (0.0, 0.5):
            tap = (phases + tap_offset) % 1.0
            read = positions - tap * (self.window - 1)
            i0 = np.floor(read).astype(np.int64)
            frac = (read - i0).astype(np.float32)[:, None]
            i1 = np.minimum(i0 + 1, last)
            sample = buf[i0] * (1.0 - frac) + buf[i1] * frac
            envelope = (1.0 - np.abs(2.0 * tap - 1.0)).astype(np.float32)[:, None]
            out += sample * envelope
        return out


def apply_gain(block: np.ndarray, gain: float) -> np.ndarray:
    """Scale a block by a linear gain."""
    if gain == 1.0:
        return block
    return (block * np.float32(gain)).astype(np.float32, copy=False)
