"""Unit tests for the locked WakeWordDetector handle."""

from __future__ import annotations

import threading
import unittest

import numpy as np

from wakeword_engine import (
    ConcurrencyError,
    ConstructionError,
    InferenceError,
    WakeWordDetector,
    construct,
)
from wakeword_engine.pipeline import EngineState
from model_fixtures import FakeClassifier


class BlockingClassifier(FakeClassifier):
    """Holds run() until released, so another thread can find the lock taken."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def run(self, tensor):
        self.entered.set()
        self.release.wait(5.0)
        return super().run(tensor)


class TestWakeWordDetector(unittest.TestCase):
    """Tests for WakeWordDetector."""

    def test_requires_exactly_one_source(self) -> None:
        """Either a model path or a classifier, never both or neither."""
        with self.assertRaises(ConstructionError):
            WakeWordDetector()
        with self.assertRaises(ConstructionError):
            WakeWordDetector("model.onnx", classifier=FakeClassifier())

    def test_missing_model(self) -> None:
        with self.assertRaises(ConstructionError):
            construct("/nonexistent/wakeword.onnx")

    def test_process_accepts_lists(self) -> None:
        """Plain Python sequences are converted to float32."""
        classifier = FakeClassifier(default=0.9)
        detector = WakeWordDetector(classifier=classifier)
        self.assertTrue(detector.process([0.0] * 400))
        self.assertEqual(detector.buffered_samples, 240)
        self.assertEqual(detector.windows_processed, 1)

    def test_rejects_multichannel_without_poisoning(self) -> None:
        """Stereo frames raise ValueError, nothing is buffered, detector stays usable."""
        classifier = FakeClassifier()
        detector = WakeWordDetector(classifier=classifier)
        with self.assertRaises(ValueError):
            detector.process(np.zeros((200, 2), dtype=np.float32))
        self.assertEqual(detector.buffered_samples, 0)
        self.assertEqual(classifier.inputs, [])
        self.assertFalse(detector.poisoned)
        detector.process(np.zeros(400, dtype=np.float32))
        self.assertEqual(detector.windows_processed, 1)

    def test_busy_engine_non_blocking(self) -> None:
        """A non-blocking call while another call is running raises ConcurrencyError."""
        classifier = BlockingClassifier()
        detector = WakeWordDetector(classifier=classifier)
        worker = threading.Thread(target=detector.process, args=(np.zeros(400, dtype=np.float32),))
        worker.start()
        try:
            self.assertTrue(classifier.entered.wait(5.0))
            with self.assertRaises(ConcurrencyError):
                detector.process(np.zeros(400, dtype=np.float32), blocking=False)
            with self.assertRaises(ConcurrencyError):
                detector.process(np.zeros(400, dtype=np.float32), timeout=0.05)
        finally:
            classifier.release.set()
            worker.join(5.0)
        self.assertEqual(detector.windows_processed, 1)

    def test_blocking_calls_are_serialized(self) -> None:
        """Concurrent blocking calls all complete and every window is scored once."""
        classifier = FakeClassifier()
        detector = WakeWordDetector(classifier=classifier)
        threads = [
            threading.Thread(target=detector.process, args=(np.zeros(160, dtype=np.float32),))
            for _ in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5.0)
        # 3200 samples -> 18 windows, 320 left over
        self.assertEqual(len(classifier.inputs), 18)
        self.assertEqual(detector.buffered_samples, 320)

    def test_engine_errors_do_not_poison(self) -> None:
        """InferenceError aborts the call but the detector stays usable."""
        detector = WakeWordDetector(classifier=FakeClassifier(fail_at=0))
        with self.assertRaises(InferenceError):
            detector.process(np.zeros(400, dtype=np.float32))
        self.assertFalse(detector.poisoned)
        self.assertEqual(detector.buffered_samples, 400)
        # Failed window is scored again, then the newly completed one
        self.assertFalse(detector.process(np.zeros(160, dtype=np.float32)))
        self.assertEqual(detector.windows_processed, 2)
        self.assertEqual(detector.buffered_samples, 240)

    def test_unexpected_error_poisons(self) -> None:
        """A non-engine exception under the lock makes later calls fail."""

        def explode(score: float) -> None:
            raise RuntimeError("callback bug")

        detector = WakeWordDetector(classifier=FakeClassifier(), on_score=explode)
        with self.assertRaises(RuntimeError):
            detector.process(np.zeros(400, dtype=np.float32))
        self.assertTrue(detector.poisoned)
        with self.assertRaises(ConcurrencyError):
            detector.process(np.zeros(400, dtype=np.float32))

    def test_context_manager_closes(self) -> None:
        """Leaving the with-block releases the model."""
        classifier = FakeClassifier()
        with WakeWordDetector(classifier=classifier) as detector:
            detector.process(np.zeros(400, dtype=np.float32))
        self.assertEqual(detector.state, EngineState.CLOSED)
        self.assertEqual(classifier.close_calls, 1)
        with self.assertRaises(ConcurrencyError):
            detector.process(np.zeros(400, dtype=np.float32))

    def test_reset_and_context_copy(self) -> None:
        """context() is a copy; reset() returns to cold start."""
        detector = WakeWordDetector(classifier=FakeClassifier())
        detector.process(np.ones(800, dtype=np.float32) * 0.1)
        ctx = detector.context()
        ctx[:] = 123.0
        self.assertFalse(np.any(detector.context() == 123.0))
        detector.reset()
        self.assertEqual(detector.buffered_samples, 0)
        self.assertTrue(np.all(detector.context() == 0))


if __name__ == "__main__":
    unittest.main(verbosity=2)
