"""Sample buffering and log-Mel feature extraction."""

from wakeword_engine.audio.config import EngineConfig
from wakeword_engine.audio.buffers import FeatureContext, SampleAccumulator
from wakeword_engine.audio.features import SpectralFrontEnd, mel_filterbank

__all__ = [
    "EngineConfig",
    "FeatureContext",
    "SampleAccumulator",
    "SpectralFrontEnd",
    "mel_filterbank",
]
