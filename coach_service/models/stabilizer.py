"""
FORMCOACH Coach Service - Label Stabilizer

Majority vote over the last few raw labels so a single misclassified frame
does not flip the recognized exercise.
"""

from collections import Counter, deque
from enum import Enum
from typing import Deque, Optional
import logging

from .classifier import ExerciseLabel

logger = logging.getLogger(__name__)


class StabilizerStatus(str, Enum):
    """What the last push() decided."""
    IDLE = "idle"            # nothing recognized recently
    CONFIDENT = "confident"  # a stable exercise label is being reported
    GRACE = "grace"          # label lost, history kept until the reset window expires
    RESET = "reset"          # history was cleared on this frame


class LabelStabilizer:
    """
    Rolling majority vote over raw exercise labels.

    The stable label is the most frequent non-none label in the window; ties go
    to the label seen first (oldest to newest). A none-only window is treated as
    transient tracking loss until ``reset_ms`` has passed since the last
    confident label, after which the history is cleared.
    """

    def __init__(self, window: int = 5, reset_ms: float = 2000.0):
        if window < 1:
            raise ValueError("Stabilizer window must be at least 1")
        self.window = window
        self.reset_ms = reset_ms
        self.history: Deque[ExerciseLabel] = deque(maxlen=window)
        self.last_confident_ms: Optional[float] = None
        self.status = StabilizerStatus.IDLE
        self.reset()

    def reset(self):
        """Fill the history with none and forget the last confident label."""
        self.history.clear()
        self.history.extend([ExerciseLabel.NONE] * self.window)
        self.last_confident_ms = None
        self.status = StabilizerStatus.IDLE

    @property
    def stable_label(self) -> ExerciseLabel:
        votes = Counter(label for label in self.history if label != ExerciseLabel.NONE)
        if not votes:
            return ExerciseLabel.NONE
        # most_common keeps first-encountered order among equal counts
        return votes.most_common(1)[0][0]

    def push(self, raw_label: ExerciseLabel, timestamp_ms: float) -> ExerciseLabel:
        """
        Record this frame's raw label and return the stabilized label.

        Args:
            raw_label: Classifier output for the current frame
            timestamp_ms: Frame timestamp in milliseconds

        Returns:
            Stabilized exercise label
        """
        self.history.append(ExerciseLabel(raw_label))
        stable = self.stable_label

        if stable != ExerciseLabel.NONE:
            self.last_confident_ms = timestamp_ms
            self.status = StabilizerStatus.CONFIDENT
        elif self.last_confident_ms is None:
            self.status = StabilizerStatus.IDLE
        elif timestamp_ms - self.last_confident_ms > self.reset_ms:
            logger.debug(
                f"No confident label for {timestamp_ms - self.last_confident_ms:.0f}ms, clearing history"
            )
            self.reset()
            self.status = StabilizerStatus.RESET
        else:
            self.status = StabilizerStatus.GRACE

        return stable
