"""Streaming buffers: FIFO sample accumulator and fixed-size frame context."""

from __future__ import annotations

from typing import Optional

import numpy as np

from wakeword_engine.audio.config import DEFAULT_CONFIG, EngineConfig


class SampleAccumulator:
    """Unbounded FIFO of audio samples with O(1) amortized front removal.

    Samples live in one numpy array; the front is an index that moves
    forward on advance(). Dead space before the index is reclaimed when a
    push would otherwise need to grow the array.
    """

    def __init__(
        self,
        window_size: int,
        hop_size: int,
        capacity: Optional[int] = None,
        dtype: type = np.float32,
    ):
        self.window_size = window_size
        self.hop_size = hop_size
        self.dtype = dtype
        self._data = np.zeros(capacity or window_size * 2, dtype=dtype)
        self._start = 0
        self._end = 0

    def __len__(self) -> int:
        return self._end - self._start

    def push(self, samples: np.ndarray) -> None:
        """Append samples at the back."""
        samples = np.asarray(samples, dtype=self.dtype)
        if samples.ndim > 1:
            raise ValueError(f"expected mono 1-D samples, got shape {samples.shape}")
        samples = samples.reshape(-1)
        n = len(samples)
        if n == 0:
            return
        if self._end + n > len(self._data):
            self._make_room(n)
        self._data[self._end : self._end + n] = samples
        self._end += n

    def _make_room(self, n: int) -> None:
        live = len(self)
        needed = live + n
        if needed <= len(self._data) // 2:
            # Enough space once the consumed prefix is dropped
            self._data[:live] = self._data[self._start : self._end]
        else:
            grown = np.zeros(max(needed * 2, len(self._data) * 2), dtype=self.dtype)
            grown[:live] = self._data[self._start : self._end]
            self._data = grown
        self._start = 0
        self._end = live

    def has_full_window(self) -> bool:
        """True iff at least one full window is buffered."""
        return len(self) >= self.window_size

    def window(self) -> np.ndarray:
        """Read-only view of the first window_size samples."""
        if not self.has_full_window():
            raise ValueError("fewer than window_size samples buffered")
        view = self._data[self._start : self._start + self.window_size]
        view.flags.writeable = False
        return view

    def advance(self) -> None:
        """Drop exactly hop_size samples from the front."""
        self._start = min(self._start + self.hop_size, self._end)
        if self._start == self._end:
            self._start = self._end = 0

    def get_all(self) -> np.ndarray:
        """Return all buffered samples in order (copy)."""
        return self._data[self._start : self._end].copy()

    def clear(self) -> None:
        """Reset buffer."""
        self._start = 0
        self._end = 0


class FeatureContext:
    """Fixed-size ring of the most recent feature frames.

    Always holds exactly `size` frames; starts as all zeros. push() overwrites
    the oldest frame and moves the write index, so the oldest frame is always
    at the write index.
    """

    def __init__(self, size: int, n_mels: int, dtype: type = np.float32):
        self.size = size
        self.n_mels = n_mels
        self.dtype = dtype
        self._data = np.zeros((size, n_mels), dtype=dtype)
        self._write_idx = 0

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "FeatureContext":
        return cls(config.embedding_size, config.n_mels)

    def __len__(self) -> int:
        return self.size

    def push(self, frame: np.ndarray) -> None:
        """Evict the oldest frame and store `frame` as the newest."""
        frame = np.asarray(frame, dtype=self.dtype).reshape(-1)
        if len(frame) != self.n_mels:
            raise ValueError(f"expected frame of {self.n_mels} values, got {len(frame)}")
        self._data[self._write_idx] = frame
        self._write_idx = (self._write_idx + 1) % self.size

    def get_all(self) -> np.ndarray:
        """Return all frames oldest to newest, shape (size, n_mels) (copy)."""
        return np.roll(self._data, -self._write_idx, axis=0)

    def materialize(self) -> np.ndarray:
        """Classifier input tensor, shape (1, size, n_mels, 1), time-major."""
        return np.ascontiguousarray(self.get_all()).reshape(1, self.size, self.n_mels, 1)

    def clear(self) -> None:
        """Back to the cold-start context of all-zero frames."""
        self._data[:] = 0
        self._write_idx = 0
