"""Streaming wakeword engine: samples -> windows -> log-Mel -> context -> score.

Glue that wires the accumulator, front end, feature context and classifier.
The classifier is injected (anything with run(tensor)) so ONNX Runtime,
TorchScript or a test double can be plugged in.

Not thread-safe: use WakeWordDetector for a locked handle.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np

from wakeword_engine.audio.buffers import FeatureContext, SampleAccumulator
from wakeword_engine.audio.config import DEFAULT_CONFIG, EngineConfig
from wakeword_engine.audio.features import SpectralFrontEnd
from wakeword_engine.errors import (
    ConcurrencyError,
    ConstructionError,
    InferenceError,
    WakewordError,
)
from wakeword_engine.models.classifier import (
    Classifier,
    check_input_shape,
    first_score,
    load_classifier,
)
from wakeword_engine.pipeline.policy import CallDetection

logger = logging.getLogger(__name__)

ScoreCallback = Callable[[float], None]


class EngineState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class WakeWordEngine:
    """Runs the per-window pipeline over a continuous sample stream.

    Interface:
      engine = WakeWordEngine.from_path("hey_model.onnx")
      detected = engine.process(chunk)   # float32 mono 16 kHz, any length
      engine.close()

    Every process() call appends the chunk, then for each full window:
    frame -> context push -> inference -> policy -> advance by one hop.
    If inference fails mid-call, windows already handled stay consumed and
    the failing window's frame stays in the context; its hop is not advanced.
    """

    def __init__(
        self,
        classifier: Classifier,
        config: Optional[EngineConfig] = None,
        front_end: Optional[SpectralFrontEnd] = None,
        on_score: Optional[ScoreCallback] = None,
    ):
        self._state = EngineState.UNINITIALIZED
        self.config = config or DEFAULT_CONFIG
        try:
            self.config.validate()
        except ValueError as e:
            raise ConstructionError(f"Invalid engine config: {e}") from e

        self.classifier = classifier
        self.front_end = front_end or SpectralFrontEnd(self.config)
        self.on_score = on_score

        self._samples = SampleAccumulator(self.config.window_size, self.config.hop_size)
        self._context = FeatureContext.from_config(self.config)
        self.windows_processed = 0

        declared = getattr(classifier, "input_shape", None)
        if declared is not None:
            try:
                check_input_shape(declared, self.config.input_shape)
            except WakewordError:
                logger.warning(
                    "Model input %s does not match engine tensor %s; every window will fail",
                    declared,
                    self.config.input_shape,
                )
        self._state = EngineState.READY

    @classmethod
    def from_path(
        cls,
        model_path: Union[str, Path],
        config: Optional[EngineConfig] = None,
        on_score: Optional[ScoreCallback] = None,
    ) -> "WakeWordEngine":
        """Load the classifier at `model_path` and build a ready engine."""
        config = config or DEFAULT_CONFIG
        try:
            config.validate()
        except ValueError as e:
            raise ConstructionError(f"Invalid engine config: {e}") from e
        classifier = load_classifier(model_path, config)
        engine = cls(classifier, config=config, on_score=on_score)
        logger.info(
            "Wakeword engine ready: model=%s input=%s",
            model_path,
            getattr(classifier, "input_shape", None),
        )
        return engine

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def buffered_samples(self) -> int:
        """Samples waiting in the accumulator."""
        return len(self._samples)

    def context(self) -> np.ndarray:
        """Copy of the feature context, shape (embedding_size, n_mels), oldest first."""
        return self._context.get_all()

    def pending_samples(self) -> np.ndarray:
        """Copy of the buffered samples, oldest first."""
        return self._samples.get_all()

    def _score(self, tensor: np.ndarray) -> float:
        check_input_shape(getattr(self.classifier, "input_shape", None), tensor.shape)
        try:
            output = self.classifier.run(tensor)
        except WakewordError:
            raise
        except Exception as e:
            raise InferenceError(f"Classifier failed: {e}") from e
        return first_score(output)

    def process(self, samples) -> bool:
        """Append `samples` and score every full window now available.

        Args:
            samples: 1-D float samples, mono 16 kHz, amplitude in [-1, 1].

        Returns:
            True if any window processed in this call scored above 0.5.

        Raises:
            ShapeMismatchError: context tensor does not fit the model input.
            ValueError: samples are not 1-D (multi-channel audio).
            InferenceError: the classifier failed.
            ConcurrencyError: the engine is closed.
        """
        if self._state is not EngineState.READY:
            logger.warning("process() called on a %s engine", self._state.value)
            raise ConcurrencyError(f"engine is {self._state.value}")

        self._samples.push(samples)
        detection = CallDetection()
        while self._samples.has_full_window():
            frame = self.front_end.compute(self._samples.window())
            self._context.push(frame)
            score = self._score(self._context.materialize())
            if detection.update(score):
                logger.debug("Wakeword score %.3f at window %d", score, self.windows_processed)
            if self.on_score is not None:
                self.on_score(score)
            self._samples.advance()
            self.windows_processed += 1

        if detection.windows:
            logger.debug(
                "Processed %d windows (max score %.3f), %d samples buffered",
                detection.windows,
                detection.max_score,
                len(self._samples),
            )
        return detection.detected

    def reset(self) -> None:
        """Drop buffered samples and return the context to all zeros."""
        self._samples.clear()
        self._context.clear()

    def close(self) -> None:
        """Release the classifier. Safe to call more than once."""
        if self._state is EngineState.CLOSED:
            return
        close = getattr(self.classifier, "close", None)
        if close is not None:
            close()
        self._state = EngineState.CLOSED
        logger.info("Wakeword engine closed")
