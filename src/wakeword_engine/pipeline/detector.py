"""Locked handle around WakeWordEngine: the construct / process boundary."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Union

import numpy as np

from wakeword_engine.audio.config import EngineConfig
from wakeword_engine.errors import ConcurrencyError, ConstructionError, WakewordError
from wakeword_engine.models.classifier import Classifier
from wakeword_engine.pipeline.engine import EngineState, ScoreCallback, WakeWordEngine

logger = logging.getLogger(__name__)


class WakeWordDetector:
    """Exclusive, lock-guarded access to one engine instance.

    One lock is held for the whole of each process(), reset() and close().
    An unexpected exception (anything that is not a WakewordError) raised
    while the lock is held poisons the detector: later calls raise
    ConcurrencyError because buffer state can no longer be trusted.

    Interface:
      with WakeWordDetector("hey_model.onnx") as detector:
          for chunk in stream:
              if detector.process(chunk):
                  ...
    """

    def __init__(
        self,
        model_path: Optional[Union[str, Path]] = None,
        *,
        classifier: Optional[Classifier] = None,
        config: Optional[EngineConfig] = None,
        on_score: Optional[ScoreCallback] = None,
    ):
        if (model_path is None) == (classifier is None):
            raise ConstructionError("pass exactly one of model_path or classifier")
        if classifier is not None:
            self._engine = WakeWordEngine(classifier, config=config, on_score=on_score)
        else:
            self._engine = WakeWordEngine.from_path(model_path, config=config, on_score=on_score)
        self._lock = threading.Lock()
        self._poisoned = False

    def _acquire(self, blocking: bool, timeout: Optional[float]) -> None:
        if blocking and timeout is not None:
            acquired = self._lock.acquire(timeout=timeout)
        else:
            acquired = self._lock.acquire(blocking)
        if not acquired:
            raise ConcurrencyError("engine is in use by another caller")
        if self._poisoned:
            self._lock.release()
            logger.warning("Refusing call on a poisoned wakeword engine")
            raise ConcurrencyError("engine state is inconsistent after an earlier failure")

    def _call(self, method, *args, blocking: bool = True, timeout: Optional[float] = None):
        self._acquire(blocking, timeout)
        try:
            return method(*args)
        except WakewordError:
            raise
        except Exception:
            self._poisoned = True
            raise
        finally:
            self._lock.release()

    def process(
        self,
        samples,
        *,
        blocking: bool = True,
        timeout: Optional[float] = None,
    ) -> bool:
        """Feed samples; True if any window in this call crossed the threshold.

        Args:
            samples: 1-D float samples, mono 16 kHz, amplitude in [-1, 1].
            blocking: If False, raise ConcurrencyError instead of waiting
                      for another caller to finish.
            timeout: Seconds to wait for the lock when blocking (None = forever).
        """
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim > 1:
            raise ValueError(f"expected mono 1-D samples, got shape {samples.shape}")
        return self._call(self._engine.process, samples, blocking=blocking, timeout=timeout)

    def reset(self) -> None:
        """Return to cold-start buffers without reloading the model."""
        self._call(self._engine.reset)

    def close(self) -> None:
        """Release the model. Further process() calls raise ConcurrencyError."""
        with self._lock:
            self._engine.close()

    @property
    def state(self) -> EngineState:
        return self._engine.state

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @property
    def config(self) -> EngineConfig:
        return self._engine.config

    @property
    def buffered_samples(self) -> int:
        with self._lock:
            return self._engine.buffered_samples

    @property
    def windows_processed(self) -> int:
        with self._lock:
            return self._engine.windows_processed

    def context(self) -> np.ndarray:
        """Copy of the feature context, oldest frame first."""
        with self._lock:
            return self._engine.context()

    def __enter__(self) -> "WakeWordDetector":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def construct(model_path: Union[str, Path], config: Optional[EngineConfig] = None) -> WakeWordDetector:
    """Load `model_path` and return a ready detector (raises ConstructionError)."""
    return WakeWordDetector(model_path, config=config)
