"""Detection policy: fixed threshold, OR across the windows of one call."""

from __future__ import annotations

from typing import Optional

# Scores strictly above this count as a detection
DETECTION_THRESHOLD = 0.5


def is_detection(score: float) -> bool:
    return score > DETECTION_THRESHOLD


class CallDetection:
    """Aggregate for a single process() call.

    Starts false; once any window scores above the threshold it stays true
    for the rest of the call. Not carried over between calls.
    """

    def __init__(self) -> None:
        self.detected = False
        self.windows = 0
        self.max_score: Optional[float] = None

    def update(self, score: float) -> bool:
        """Record one window's score; return True if this window detected."""
        self.windows += 1
        if self.max_score is None or score > self.max_score:
            self.max_score = score
        hit = is_detection(score)
        if hit:
            self.detected = True
        return hit
