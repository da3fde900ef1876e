"""TorchScript classifier backend.

The scripted module must take the (1, T, n_mels, 1) float32 context tensor
and return a tensor whose first element is the wakeword score.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np

from wakeword_engine.audio.config import DEFAULT_CONFIG, EngineConfig
from wakeword_engine.errors import ConstructionError, InferenceError


def _get_torch():
    import torch
    return torch


class TorchScriptClassifier:
    """Runs a TorchScript module on CPU with a single intra-op thread."""

    # TorchScript archives carry no declared input shape
    input_shape = None

    def __init__(self, path: Union[str, Path], config: Optional[EngineConfig] = None):
        try:
            torch = _get_torch()
        except ImportError as e:
            raise ConstructionError("torch is required for TorchScript models. pip install torch") from e

        self.config = config or DEFAULT_CONFIG
        self.path = Path(path)
        if not self.path.is_file():
            raise ConstructionError(f"TorchScript model not found: {self.path}")

        torch.set_num_threads(self.config.intra_op_threads)
        try:
            module = torch.jit.load(str(self.path), map_location=torch.device("cpu"))
        except Exception as e:
            raise ConstructionError(f"Failed to load model {self.path}: {e}") from e
        module.eval()
        self._torch = torch
        self._module = module

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._module is None:
            raise InferenceError("TorchScript module is closed")
        torch = self._torch
        try:
            with torch.no_grad():
                out = self._module(torch.from_numpy(np.ascontiguousarray(tensor)))
        except Exception as e:
            raise InferenceError(f"TorchScript forward failed: {e}") from e
        if isinstance(out, (tuple, list)):
            out = out[0]
        return out.detach().cpu().numpy()

    def close(self) -> None:
        self._module = None
