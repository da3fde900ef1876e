"""Streaming wakeword engine - log-Mel front end, rolling context, classifier scoring."""

from wakeword_engine.errors import (
    ConcurrencyError,
    ConstructionError,
    InferenceError,
    ProcessingError,
    ShapeMismatchError,
    WakewordError,
)
from wakeword_engine.pipeline import WakeWordDetector, WakeWordEngine, construct

__all__ = [
    "ConcurrencyError",
    "ConstructionError",
    "InferenceError",
    "ProcessingError",
    "ShapeMismatchError",
    "WakeWordDetector",
    "WakeWordEngine",
    "WakewordError",
    "construct",
]
