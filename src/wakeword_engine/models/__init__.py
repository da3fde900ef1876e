"""Classifier backends (ONNX Runtime, TorchScript)."""

from wakeword_engine.models.classifier import Classifier, OnnxClassifier, load_classifier

__all__ = ["Classifier", "OnnxClassifier", "load_classifier"]
