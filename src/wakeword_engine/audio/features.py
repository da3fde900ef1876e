"""Feature extraction: Hann window, FFT power spectrum, 32-bin log10-Mel."""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.fft import rfft
from scipy.signal import get_window

from wakeword_engine.audio.config import DEFAULT_CONFIG, EngineConfig

# Energy floor applied before log compression
LOG_FLOOR = 1e-10

# Slaney mel scale: linear below 1 kHz, logarithmic above
_F_SP = 200.0 / 3
_MIN_LOG_HZ = 1000.0
_MIN_LOG_MEL = _MIN_LOG_HZ / _F_SP
_LOGSTEP = np.log(6.4) / 27.0


def hz_to_mel(hz, htk: bool = False):
    """Convert frequency in Hz to mel (Slaney by default, HTK if requested)."""
    hz = np.asanyarray(hz, dtype=np.float64)
    if htk:
        return 2595.0 * np.log10(1.0 + hz / 700.0)
    mel = hz / _F_SP
    log_region = hz >= _MIN_LOG_HZ
    return np.where(
        log_region,
        _MIN_LOG_MEL + np.log(np.maximum(hz, _MIN_LOG_HZ) / _MIN_LOG_HZ) / _LOGSTEP,
        mel,
    )


def mel_to_hz(mel, htk: bool = False):
    """Inverse of hz_to_mel."""
    mel = np.asanyarray(mel, dtype=np.float64)
    if htk:
        return 700.0 * (10.0 ** (mel / 2595.0) - 1.0)
    hz = _F_SP * mel
    log_region = mel >= _MIN_LOG_MEL
    return np.where(
        log_region,
        _MIN_LOG_HZ * np.exp(_LOGSTEP * (mel - _MIN_LOG_MEL)),
        hz,
    )


def mel_frequencies(
    n_mels: int,
    sample_rate: float,
    fmin: float = 0.0,
    fmax: Optional[float] = None,
    htk: bool = False,
) -> np.ndarray:
    """Return the n_mels + 2 filter edge frequencies in Hz (edges and centers)."""
    if fmax is None:
        fmax = sample_rate / 2
    mels = np.linspace(hz_to_mel(fmin, htk), hz_to_mel(fmax, htk), n_mels + 2)
    return mel_to_hz(mels, htk)


def mel_filterbank(
    n_mels: int,
    n_fft: int,
    sample_rate: float,
    fmin: float = 0.0,
    fmax: Optional[float] = None,
    htk: bool = False,
) -> np.ndarray:
    """Build a Mel filterbank matrix of shape (n_mels, n_fft // 2 + 1).

    Triangles are evaluated on the continuous bin frequencies. With the
    default Slaney scale each triangle is area-normalized by
    2 / (upper_edge - lower_edge); HTK filters keep unit peak height.
    """
    fft_freqs = np.linspace(0.0, sample_rate / 2, n_fft // 2 + 1)
    edges = mel_frequencies(n_mels, sample_rate, fmin=fmin, fmax=fmax, htk=htk)
    widths = np.diff(edges)
    ramps = edges[:, np.newaxis] - fft_freqs[np.newaxis, :]

    filters = np.zeros((n_mels, len(fft_freqs)))
    for i in range(n_mels):
        lower = -ramps[i] / widths[i]
        upper = ramps[i + 2] / widths[i + 1]
        filters[i] = np.maximum(0.0, np.minimum(lower, upper))

    if not htk:
        enorm = 2.0 / (edges[2 : n_mels + 2] - edges[:n_mels])
        filters *= enorm[:, np.newaxis]
    return filters.astype(np.float32)


def band_centers(config: EngineConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Center frequency in Hz of every mel band for the given config."""
    edges = mel_frequencies(config.n_mels, float(config.sample_rate), htk=config.mel_htk)
    return edges[1:-1]


class SpectralFrontEnd:
    """Turn one analysis window into one log10-Mel frame.

    All DSP constants (Hann window, filterbank) are computed once here and
    exposed read-only; the padded FFT input is a scratch buffer reused across
    calls.

    Interface:
      front_end = SpectralFrontEnd()
      frame = front_end.compute(window)   # (window_size,) -> (n_mels,)
      frames = front_end.extract(audio)   # whole recording -> (n_frames, n_mels)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.config.validate()

        window = get_window("hann", self.config.window_size, fftbins=True).astype(np.float32)
        window.setflags(write=False)
        self._window = window

        filters = mel_filterbank(
            self.config.n_mels,
            self.config.fft_size,
            float(self.config.sample_rate),
            htk=self.config.mel_htk,
        )
        filters.setflags(write=False)
        self._mel_filters = filters

        self._fft_input = np.zeros(self.config.fft_size, dtype=np.float32)

    @property
    def window(self) -> np.ndarray:
        """Periodic Hann coefficients, 0.5 * (1 - cos(2*pi*i / N))."""
        return self._window

    @property
    def mel_filters(self) -> np.ndarray:
        """Filterbank matrix, shape (n_mels, fft_size // 2 + 1)."""
        return self._mel_filters

    def power_spectrum(self, window: np.ndarray) -> np.ndarray:
        """Windowed, zero-padded FFT power for bins 0 .. fft_size / 2."""
        n = self.config.window_size
        if len(window) != n:
            raise ValueError(f"expected {n} samples, got {len(window)}")
        # Tail past the window stays zero from construction
        np.multiply(window, self._window, out=self._fft_input[:n], casting="unsafe")
        spectrum = rfft(self._fft_input, n=self.config.fft_size)
        return (spectrum.real ** 2 + spectrum.imag ** 2).astype(np.float32)

    def power_to_mel(self, power_spec: np.ndarray) -> np.ndarray:
        """Project power onto the filterbank and apply log10 with a floor."""
        mel = np.dot(self._mel_filters, power_spec)
        mel = np.maximum(mel, LOG_FLOOR)
        return np.log10(mel).astype(np.float32)

    def compute(self, window: np.ndarray) -> np.ndarray:
        """Produce one SpectralFrame (n_mels,) from one window of samples."""
        return self.power_to_mel(self.power_spectrum(window))

    def extract(self, audio: np.ndarray) -> np.ndarray:
        """Extract log-Mel frames from a complete recording (batch).

        Frames are taken at every hop while a full window fits, the same
        framing the streaming engine applies.
        """
        audio = np.asarray(audio, dtype=np.float32).reshape(-1)
        window_size = self.config.window_size
        hop = self.config.hop_size
        if len(audio) < window_size:
            return np.zeros((0, self.config.n_mels), dtype=np.float32)
        n_frames = (len(audio) - window_size) // hop + 1
        out = np.empty((n_frames, self.config.n_mels), dtype=np.float32)
        for i in range(n_frames):
            start = i * hop
            out[i] = self.compute(audio[start : start + window_size])
        return out
