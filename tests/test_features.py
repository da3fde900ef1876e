"""Unit tests for the log-Mel spectral front end."""

from __future__ import annotations

import unittest

import numpy as np

from wakeword_engine.audio.config import EngineConfig
from wakeword_engine.audio.features import (
    LOG_FLOOR,
    SpectralFrontEnd,
    band_centers,
    hz_to_mel,
    mel_filterbank,
    mel_to_hz,
)
from model_fixtures import tone


class TestMelFilterbank(unittest.TestCase):
    """Tests for mel_filterbank and the mel scale."""

    def test_shape_and_nonnegative(self) -> None:
        """32 bands over 257 one-sided bins, all weights >= 0."""
        filters = mel_filterbank(32, 512, 16_000.0)
        self.assertEqual(filters.shape, (32, 257))
        self.assertEqual(filters.dtype, np.float32)
        self.assertTrue(np.all(filters >= 0))
        self.assertTrue(np.all(filters.sum(axis=1) > 0))

    def test_slaney_break_frequency(self) -> None:
        """Slaney scale is linear up to 1 kHz, which maps to mel 15."""
        self.assertAlmostEqual(float(hz_to_mel(1000.0)), 15.0, places=6)
        self.assertAlmostEqual(float(mel_to_hz(15.0)), 1000.0, places=6)
        self.assertAlmostEqual(float(hz_to_mel(500.0)), 7.5, places=6)

    def test_htk_filters_have_unit_peak(self) -> None:
        """HTK filters are not area-normalized, so peaks stay <= 1."""
        filters = mel_filterbank(32, 512, 16_000.0, htk=True)
        self.assertLessEqual(float(filters.max()), 1.0 + 1e-6)
        slaney = mel_filterbank(32, 512, 16_000.0)
        self.assertFalse(np.allclose(filters, slaney))

    def test_band_centers_increase(self) -> None:
        """Band centers are strictly increasing and below Nyquist."""
        centers = band_centers(EngineConfig())
        self.assertEqual(len(centers), 32)
        self.assertTrue(np.all(np.diff(centers) > 0))
        self.assertLess(centers[-1], 8000.0)


class TestSpectralFrontEnd(unittest.TestCase):
    """Tests for SpectralFrontEnd."""

    def setUp(self) -> None:
        self.config = EngineConfig()
        self.front_end = SpectralFrontEnd(self.config)

    def test_hann_window_coefficients(self) -> None:
        """Window is 0.5 * (1 - cos(2*pi*i / N)) with N = 400."""
        n = self.config.window_size
        i = np.arange(n)
        expected = 0.5 * (1 - np.cos(2 * np.pi * i / n))
        np.testing.assert_allclose(self.front_end.window, expected, atol=1e-6)

    def test_precomputed_state_is_read_only(self) -> None:
        """Window and filterbank cannot be mutated after construction."""
        with self.assertRaises(ValueError):
            self.front_end.window[0] = 1.0
        with self.assertRaises(ValueError):
            self.front_end.mel_filters[0, 0] = 1.0

    def test_silence_hits_log_floor(self) -> None:
        """All-zero window gives log10(1e-10) in every band."""
        frame = self.front_end.compute(np.zeros(400, dtype=np.float32))
        self.assertEqual(frame.shape, (32,))
        np.testing.assert_allclose(frame, np.log10(LOG_FLOOR), atol=1e-5)

    def test_matches_reference_computation(self) -> None:
        """Frame equals window -> pad -> FFT -> |X|^2 -> mel -> log10 done by hand."""
        rng = np.random.default_rng(0)
        x = rng.uniform(-1, 1, 400).astype(np.float32)
        padded = np.zeros(512)
        padded[:400] = x * self.front_end.window
        spectrum = np.fft.fft(padded)[:257]
        power = np.abs(spectrum) ** 2
        mel = self.front_end.mel_filters.astype(np.float64) @ power
        expected = np.log10(np.maximum(mel, 1e-10))
        np.testing.assert_allclose(self.front_end.compute(x), expected, rtol=1e-4, atol=1e-4)

    def test_scratch_reuse_does_not_leak_between_calls(self) -> None:
        """A loud window followed by silence still yields the floor."""
        self.front_end.compute(tone(440.0, 400))
        frame = self.front_end.compute(np.zeros(400, dtype=np.float32))
        np.testing.assert_allclose(frame, np.log10(LOG_FLOOR), atol=1e-5)

    def test_tone_peaks_in_nearest_band(self) -> None:
        """A pure tone puts its max energy in the band whose center is nearest."""
        centers = band_centers(self.config)
        # Exact centers plus off-center tones in the linear and log regions
        freqs = [centers[2], centers[5], centers[8], 650.0, 1200.0, 2500.0, 4000.0]
        for freq in freqs:
            with self.subTest(freq=freq):
                frame = self.front_end.compute(tone(freq, 400))
                nearest = int(np.argmin(np.abs(centers - freq)))
                self.assertEqual(int(np.argmax(frame)), nearest)

    def test_off_center_tones_land_in_expected_bands(self) -> None:
        """1.2 kHz and 4 kHz fall in fixed Slaney bands 12 and 25."""
        self.assertEqual(int(np.argmax(self.front_end.compute(tone(1200.0, 400)))), 12)
        self.assertEqual(int(np.argmax(self.front_end.compute(tone(4000.0, 400)))), 25)

    def test_wrong_window_length(self) -> None:
        """Windows that are not window_size long are rejected."""
        with self.assertRaises(ValueError):
            self.front_end.compute(np.zeros(399, dtype=np.float32))

    def test_extract_frame_count(self) -> None:
        """Batch extraction frames at every hop while a full window fits."""
        audio = tone(1000.0, 1600)
        frames = self.front_end.extract(audio)
        self.assertEqual(frames.shape, ((1600 - 400) // 160 + 1, 32))
        np.testing.assert_allclose(frames[3], self.front_end.compute(audio[480:880]))

    def test_extract_short_audio(self) -> None:
        """Less than one window yields no frames."""
        frames = self.front_end.extract(np.zeros(100, dtype=np.float32))
        self.assertEqual(frames.shape, (0, 32))


if __name__ == "__main__":
    unittest.main(verbosity=2)
