"""Centralized framing and feature configuration for the wakeword engine.

Encoding standards:
- Audio: mono 16 kHz, float32 in [-1, 1]
- STFT: 25 ms Hann window / 10 ms hop, FFT 512
- Features: 32-bin log10-Mel filterbanks
- Context: 76 frames fed to the classifier as (1, 76, 32, 1)
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class EngineConfig:
    """Framing, feature and classifier-context configuration."""

    # Input
    sample_rate: int = 16_000

    # STFT
    window_ms: float = 25.0
    hop_ms: float = 10.0
    fft_size: int = 512

    # Mel filterbanks
    n_mels: int = 32
    mel_htk: bool = False  # Slaney scale + area norm unless True

    # Classifier context, in frames
    embedding_size: int = 76

    # Inference runtime
    intra_op_threads: int = 1

    @property
    def window_size(self) -> int:
        """STFT window length in samples."""
        return int(self.sample_rate * self.window_ms / 1000)

    @property
    def hop_size(self) -> int:
        """STFT hop length in samples."""
        return int(self.sample_rate * self.hop_ms / 1000)

    @property
    def n_bins(self) -> int:
        """Number of one-sided spectrum bins (DC through Nyquist)."""
        return self.fft_size // 2 + 1

    @property
    def frames_per_second(self) -> float:
        """Number of feature frames per second."""
        return self.sample_rate / self.hop_size

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        """Classifier input tensor shape (batch, time, mel, channel)."""
        return (1, self.embedding_size, self.n_mels, 1)

    def validate(self) -> None:
        """Raise ValueError if the sizes cannot be framed consistently."""
        for name in ("sample_rate", "fft_size", "n_mels", "embedding_size", "intra_op_threads"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.window_size < 1 or self.hop_size < 1:
            raise ValueError("window_ms and hop_ms must cover at least one sample")
        if self.hop_size > self.window_size:
            raise ValueError("hop must not exceed the window")
        if self.fft_size & (self.fft_size - 1):
            raise ValueError("fft_size must be a power of two")
        if self.fft_size < self.window_size:
            raise ValueError("fft_size must be >= window size")


DEFAULT_CONFIG = EngineConfig()
