"""Classifier capability and the ONNX Runtime backend.

The engine only needs `run(tensor) -> scores`. Any object with that method
(plus an optional declared `input_shape`) can be plugged in, so PyTorch /
ONNX / a test double all work the same way.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from wakeword_engine.audio.config import DEFAULT_CONFIG, EngineConfig
from wakeword_engine.errors import ConstructionError, InferenceError, ShapeMismatchError

logger = logging.getLogger(__name__)

# Declared dims; None marks a dynamic/symbolic dimension
DeclaredShape = Tuple[Optional[int], ...]

ONNX_SUFFIXES = (".onnx",)
TORCHSCRIPT_SUFFIXES = (".pt", ".pth", ".ts")


class Classifier(Protocol):
    """Opaque inference capability: one fixed-shape input, one score output."""

    input_shape: Optional[DeclaredShape]

    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...


def normalize_shape(dims: Sequence) -> DeclaredShape:
    """Map runtime dims (ints, names, None) to ints with None for dynamic ones."""
    return tuple(d if isinstance(d, int) and d > 0 else None for d in dims)


def check_input_shape(declared: Optional[DeclaredShape], actual: Sequence[int]) -> None:
    """Raise ShapeMismatchError unless `actual` fits the declared shape."""
    if declared is None:
        return
    actual = tuple(actual)
    if len(declared) != len(actual):
        raise ShapeMismatchError(declared, actual)
    for want, got in zip(declared, actual):
        if want is not None and want != got:
            raise ShapeMismatchError(declared, actual)


def first_score(output: np.ndarray) -> float:
    """First scalar of the output tensor; 0.0 if the output is empty."""
    flat = np.asarray(output).reshape(-1)
    if flat.size == 0:
        logger.debug("Classifier returned an empty output, using score 0.0")
        return 0.0
    return float(flat[0])


class OnnxClassifier:
    """ONNX Runtime session configured for low-latency, deterministic scoring.

    Full graph optimization, one intra-op thread, sequential execution on
    the CPU provider. The session is owned by this object until close().
    """

    def __init__(self, path: Union[str, Path], config: Optional[EngineConfig] = None):
        try:
            import onnxruntime as ort
        except ImportError as e:
            raise ConstructionError("onnxruntime is required for .onnx models. pip install onnxruntime") from e

        self.config = config or DEFAULT_CONFIG
        self.path = Path(path)
        if not self.path.is_file():
            raise ConstructionError(f"ONNX model not found: {self.path}")

        options = ort.SessionOptions()
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        options.intra_op_num_threads = self.config.intra_op_threads
        options.inter_op_num_threads = 1
        options.execution_mode = ort.ExecutionMode.ORT_SEQUENTIAL

        try:
            self._session = ort.InferenceSession(
                str(self.path),
                options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as e:
            raise ConstructionError(f"Failed to load model {self.path}: {e}") from e

        inputs = self._session.get_inputs()
        outputs = self._session.get_outputs()
        if not inputs or not outputs:
            raise ConstructionError(f"Model {self.path} declares no inputs or outputs")
        self._input_name = inputs[0].name
        self._output_name = outputs[0].name
        self.input_shape: Optional[DeclaredShape] = normalize_shape(inputs[0].shape)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run the session on `tensor` and return its first output."""
        if self._session is None:
            raise InferenceError("ONNX session is closed")
        try:
            outputs = self._session.run([self._output_name], {self._input_name: tensor})
        except Exception as e:
            raise InferenceError(f"ONNX Runtime failed: {e}") from e
        return np.asarray(outputs[0])

    def close(self) -> None:
        self._session = None


def load_classifier(
    path: Union[str, Path],
    config: Optional[EngineConfig] = None,
) -> Classifier:
    """Load a classifier graph, choosing the backend from the file suffix.

    Args:
        path: `.onnx` for ONNX Runtime; `.pt` / `.pth` / `.ts` for TorchScript.
        config: Engine configuration (thread budget).

    Returns:
        A Classifier ready for run().

    Raises:
        ConstructionError: missing file, unknown suffix, or load failure.
    """
    path = Path(path)
    if not path.exists():
        raise ConstructionError(f"Model not found: {path}")
    suffix = path.suffix.lower()
    if suffix in ONNX_SUFFIXES:
        return OnnxClassifier(path, config)
    if suffix in TORCHSCRIPT_SUFFIXES:
        from wakeword_engine.models.torch_model import TorchScriptClassifier

        return TorchScriptClassifier(path, config)
    raise ConstructionError(f"Unsupported model format {suffix!r}: {path}")
