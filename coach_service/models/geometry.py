"""
FORMCOACH Coach Service - Geometry

Joint angle calculation and body orientation predicates.
Missing or unusable landmarks propagate as NaN instead of raising, and every
predicate built on top of them evaluates to False.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional, Any
import math

import numpy as np

from .landmarks import Landmark, Pose, PoseLandmark
from .thresholds import ExerciseThresholds


NAN = float("nan")


def angle_at(a: Optional[Landmark], b: Optional[Landmark], c: Optional[Landmark]) -> float:
    """
    Calculate the interior angle at point b formed by points a-b-c.

    Args:
        a, b, c: Landmarks (only x/y are used)

    Returns:
        Angle in degrees (0-180), NaN if any point is missing
    """
    if a is None or b is None or c is None:
        return NAN

    radians = np.arctan2(c.y - b.y, c.x - b.x) - np.arctan2(a.y - b.y, a.x - b.x)
    angle = abs(float(np.degrees(radians)))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def _mean_y(pose: Pose, left: PoseLandmark, right: PoseLandmark) -> float:
    lm_left, lm_right = pose.point(left), pose.point(right)
    if lm_left is None or lm_right is None:
        return NAN
    return (lm_left.y + lm_right.y) / 2


def _height_diff(pose: Pose, left: PoseLandmark, right: PoseLandmark) -> float:
    lm_left, lm_right = pose.point(left), pose.point(right)
    if lm_left is None or lm_right is None:
        return NAN
    return abs(lm_left.y - lm_right.y)


def torso_drop(pose: Pose) -> float:
    """Vertical separation between mean shoulder height and mean hip height."""
    shoulder_y = _mean_y(pose, PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER)
    hip_y = _mean_y(pose, PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP)
    return abs(shoulder_y - hip_y)


def is_body_horizontal(pose: Pose, tolerance: float = 0.1) -> bool:
    """True when shoulders and hips are at (nearly) the same height."""
    return torso_drop(pose) < tolerance


def is_body_vertical(pose: Pose, tolerance: float = 0.1) -> bool:
    """Complement of is_body_horizontal that is also False for unusable input."""
    return torso_drop(pose) >= tolerance


def is_nan(value: float) -> bool:
    return math.isnan(value)


@dataclass
class FrameGeometry:
    """Joint angles and body measurements of one frame."""
    left_knee: float
    right_knee: float
    avg_knee: float
    knee_asymmetry: float
    front_knee: float
    back_knee: float
    left_elbow: float
    right_elbow: float
    avg_elbow: float
    elbow_asymmetry: float
    hip_angle: float
    body_line: float
    shoulder_y: float
    hip_y: float
    hip_height_diff: float
    ankle_height_diff: float
    horizontal: bool
    vertical: bool

    @property
    def hips_below_shoulders(self) -> bool:
        # Image y grows downwards
        return self.hip_y > self.shoulder_y

    @property
    def hips_above_shoulders(self) -> bool:
        return self.hip_y < self.shoulder_y

    @classmethod
    def measure(cls, pose: Pose, thresholds: Optional[ExerciseThresholds] = None) -> "FrameGeometry":
        """Compute every measurement the classifier, counters and feedback read."""
        thresholds = thresholds or ExerciseThresholds()
        p = pose.point
        L = PoseLandmark

        left_knee = angle_at(p(L.LEFT_HIP), p(L.LEFT_KNEE), p(L.LEFT_ANKLE))
        right_knee = angle_at(p(L.RIGHT_HIP), p(L.RIGHT_KNEE), p(L.RIGHT_ANKLE))
        left_elbow = angle_at(p(L.LEFT_SHOULDER), p(L.LEFT_ELBOW), p(L.LEFT_WRIST))
        right_elbow = angle_at(p(L.RIGHT_SHOULDER), p(L.RIGHT_ELBOW), p(L.RIGHT_WRIST))

        # min()/max() are order dependent with NaN
        if is_nan(left_knee) or is_nan(right_knee):
            front_knee = back_knee = NAN
        else:
            front_knee = min(left_knee, right_knee)
            back_knee = max(left_knee, right_knee)

        # Side-on views hide one side; measure the trunk on the better-visible one
        left_vis = pose.mean_visibility((L.LEFT_SHOULDER, L.LEFT_HIP, L.LEFT_ANKLE))
        right_vis = pose.mean_visibility((L.RIGHT_SHOULDER, L.RIGHT_HIP, L.RIGHT_ANKLE))
        if right_vis > left_vis:
            shoulder, hip, knee, ankle = L.RIGHT_SHOULDER, L.RIGHT_HIP, L.RIGHT_KNEE, L.RIGHT_ANKLE
        else:
            shoulder, hip, knee, ankle = L.LEFT_SHOULDER, L.LEFT_HIP, L.LEFT_KNEE, L.LEFT_ANKLE

        return cls(
            left_knee=left_knee,
            right_knee=right_knee,
            avg_knee=(left_knee + right_knee) / 2,
            knee_asymmetry=abs(left_knee - right_knee),
            front_knee=front_knee,
            back_knee=back_knee,
            left_elbow=left_elbow,
            right_elbow=right_elbow,
            avg_elbow=(left_elbow + right_elbow) / 2,
            elbow_asymmetry=abs(left_elbow - right_elbow),
            hip_angle=angle_at(p(shoulder), p(hip), p(knee)),
            body_line=angle_at(p(shoulder), p(hip), p(ankle)),
            shoulder_y=_mean_y(pose, L.LEFT_SHOULDER, L.RIGHT_SHOULDER),
            hip_y=_mean_y(pose, L.LEFT_HIP, L.RIGHT_HIP),
            hip_height_diff=_height_diff(pose, L.LEFT_HIP, L.RIGHT_HIP),
            ankle_height_diff=_height_diff(pose, L.LEFT_ANKLE, L.RIGHT_ANKLE),
            horizontal=is_body_horizontal(pose, thresholds.horizontal_tolerance),
            vertical=is_body_vertical(pose, thresholds.horizontal_tolerance),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; NaN becomes None."""
        result = {}
        for name, value in asdict(self).items():
            if isinstance(value, float):
                digits = 3 if name.endswith(("_y", "_diff")) else 1
                result[name] = None if is_nan(value) else round(value, digits)
            else:
                result[name] = value
        return result
