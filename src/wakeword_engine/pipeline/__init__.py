"""Streaming detection pipeline and its locked handle."""

from wakeword_engine.pipeline.detector import WakeWordDetector, construct
from wakeword_engine.pipeline.engine import EngineState, WakeWordEngine

__all__ = ["EngineState", "WakeWordDetector", "WakeWordEngine", "construct"]
