"""Exception hierarchy for the wakeword engine."""


class WakewordError(Exception):
    """Base class for all engine errors."""


class ConstructionError(WakewordError):
    """Model missing/corrupt, runtime initialization failed, or bad config."""


class ProcessingError(WakewordError):
    """A process() call failed; buffers keep the progress made so far."""


class ShapeMismatchError(ProcessingError):
    """Assembled tensor does not match the model's declared input."""

    def __init__(self, expected, actual):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(f"model expects input shape {self.expected}, got {self.actual}")


class InferenceError(ProcessingError):
    """The inference runtime rejected the input or failed while executing."""


class ConcurrencyError(ProcessingError):
    """Engine is locked by another caller, poisoned, or already closed."""
