"""Tests for the block DSP used by the miniaudio engine."""

import numpy as np
import pytest

from worship_chords.audio.dsp import GranularPitchShifter, apply_gain

SAMPLE_RATE = 8000


def sine(freq, seconds, sample_rate=SAMPLE_RATE):
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    mono = np.sin(2 * np.pi * freq * t).astype(np.float32)
    return np.stack([mono, mono], axis=1)


def dominant_frequency(block, sample_rate=SAMPLE_RATE):
    spectrum = np.abs(np.fft.rfft(block[:, 0] * np.hanning(block.shape[0])))
    freqs = np.fft.rfftfreq(block.shape[0], 1 / sample_rate)
    return freqs[np.argmax(spectrum)]


class TestGranularPitchShifter:
    """Tests for GranularPitchShifter."""

    def test_zero_semitones_passes_through(self):
        shifter = GranularPitchShifter(SAMPLE_RATE, 2)
        block = sine(440, 0.1)
        assert np.array_equal(shifter.process(block, 0), block)

    def test_shape_is_preserved(self):
        shifter = GranularPitchShifter(SAMPLE_RATE, 2)
        block = sine(440, 0.05)
        out = shifter.process(block, 3)
        assert out.shape == block.shape
        assert out.dtype == np.float32

    def test_empty_block(self):
        shifter = GranularPitchShifter(SAMPLE_RATE, 2)
        empty = np.zeros((0, 2), dtype=np.float32)
        assert shifter.process(empty, 5).shape == (0, 2)

    @pytest.mark.parametrize("semitones", [12, -12, 7])
    def test_shifts_frequency(self, semitones):
        shifter = GranularPitchShifter(SAMPLE_RATE, 2, window_size=0.05)
        signal = sine(400, 2.0)
        out = np.concatenate(
            [shifter.process(signal[i:i + 256], semitones) for i in range(0, signal.shape[0], 256)]
        )
        expected = 400 * 2 ** (semitones / 12)
        assert dominant_frequency(out[SAMPLE_RATE:]) == pytest.approx(expected, rel=0.05)

    def test_block_size_does_not_change_output(self):
        signal = sine(300, 0.5)
        whole = GranularPitchShifter(SAMPLE_RATE, 2).process(signal, 4)

        chunked_shifter = GranularPitchShifter(SAMPLE_RATE, 2)
        chunked = np.concatenate(
            [chunked_shifter.process(signal[i:i + 100], 4) for i in range(0, signal.shape[0], 100)]
        )
        np.testing.assert_allclose(chunked, whole, atol=1e-5)

    def test_reset_clears_history(self):
        shifter = GranularPitchShifter(SAMPLE_RATE, 2)
        shifter.process(sine(300, 0.2), 4)
        shifter.reset()
        fresh = GranularPitchShifter(SAMPLE_RATE, 2)
        block = sine(500, 0.1)
        np.testing.assert_allclose(shifter.process(block, 2), fresh.process(block, 2), atol=1e-6)


class TestApplyGain:
    """Tests for apply_gain."""

    def test_unity_gain_returns_block(self):
        block = sine(440, 0.01)
        assert apply_gain(block, 1.0) is block

    def test_scales(self):
        block = np.ones((4, 2), dtype=np.float32)
        out = apply_gain(block, 0.5)
        assert out.dtype == np.float32
        assert np.allclose(out, 0.5)
