"""
FORMCOACH Coach Service - Exercise Classifier

Rule-based exercise recognition from a single frame.

Rules are evaluated in priority order and the first match wins:
push-ups, lunges, squats, plank, then none. Lunges must be checked before
squats since both bend the knees; knee asymmetry is what separates them.
"""

from enum import Enum
from typing import Optional

from .geometry import FrameGeometry
from .landmarks import Pose
from .thresholds import ExerciseThresholds


class ExerciseLabel(str, Enum):
    """Exercises the coach can recognize."""
    NONE = "none"
    SQUATS = "squats"
    LUNGES = "lunges"
    PLANK = "plank"
    PUSHUPS = "pushups"

    @property
    def display_name(self) -> str:
        return EXERCISE_NAMES[self]

    @property
    def is_counted(self) -> bool:
        return self in (ExerciseLabel.SQUATS, ExerciseLabel.LUNGES, ExerciseLabel.PUSHUPS)


EXERCISE_NAMES = {
    ExerciseLabel.SQUATS: "Squats",
    ExerciseLabel.LUNGES: "Lunges",
    ExerciseLabel.PLANK: "Plank",
    ExerciseLabel.PUSHUPS: "Push-ups",
    ExerciseLabel.NONE: "Stance",
}


class ExerciseClassifier:
    """Stateless classifier; the same pose always yields the same label."""

    def __init__(self, thresholds: Optional[ExerciseThresholds] = None):
        self.thresholds = thresholds or ExerciseThresholds()

    def classify(self, pose: Optional[Pose]) -> ExerciseLabel:
        if pose is None:
            return ExerciseLabel.NONE
        return self.classify_with_geometry(pose, FrameGeometry.measure(pose, self.thresholds))

    def classify_with_geometry(self, pose: Pose, geometry: FrameGeometry) -> ExerciseLabel:
        """Classify using measurements already taken for this frame."""
        t = self.thresholds

        if pose.mean_visibility() < t.min_visibility:
            return ExerciseLabel.NONE

        if t.support_pushups and self._is_pushup(geometry):
            return ExerciseLabel.PUSHUPS
        if self._is_lunge(geometry):
            return ExerciseLabel.LUNGES
        if self._is_squat(geometry):
            return ExerciseLabel.SQUATS
        if self._is_plank(geometry):
            return ExerciseLabel.PLANK

        return ExerciseLabel.NONE

    def _is_pushup(self, g: FrameGeometry) -> bool:
        t = self.thresholds
        return (
            g.avg_elbow < t.pushup_elbow_max
            and g.horizontal
            and g.body_line > t.pushup_body_line_min
        )

    def _is_lunge(self, g: FrameGeometry) -> bool:
        t = self.thresholds
        staggered = g.hip_height_diff > t.stance_offset_min or g.ankle_height_diff > t.stance_offset_min
        return (
            g.knee_asymmetry > t.lunge_asymmetry_min
            and g.front_knee < t.lunge_front_knee_max
            and g.back_knee > t.lunge_back_knee_min
            and g.vertical
            and staggered
        )

    def _is_squat(self, g: FrameGeometry) -> bool:
        t = self.thresholds
        return (
            g.left_knee < t.squat_knee_max
            and g.right_knee < t.squat_knee_max
            and g.knee_asymmetry <= t.lunge_asymmetry_min
            and g.vertical
            and g.hips_below_shoulders
        )

    def _is_plank(self, g: FrameGeometry) -> bool:
        t = self.thresholds
        return (
            g.left_knee > t.plank_knee_min
            and g.right_knee > t.plank_knee_min
            and g.horizontal
            and g.body_line > t.plank_body_line_min
        )
