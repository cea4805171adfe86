"""
FORMCOACH Coach Service - Pose Landmarks

Named body landmarks and the per-frame Pose container produced by the pose source.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Any
from enum import Enum

import numpy as np


class PoseLandmark(Enum):
    """MediaPipe Pose landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# Landmarks whose visibility decides whether a frame is classifiable at all
CORE_LANDMARKS = (
    PoseLandmark.LEFT_SHOULDER,
    PoseLandmark.RIGHT_SHOULDER,
    PoseLandmark.LEFT_HIP,
    PoseLandmark.RIGHT_HIP,
    PoseLandmark.LEFT_KNEE,
    PoseLandmark.RIGHT_KNEE,
)


@dataclass
class Landmark:
    """A single pose landmark in normalized image coordinates."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


@dataclass
class Pose:
    """All landmarks of the single detected person in one frame."""
    landmarks: Dict[PoseLandmark, Landmark] = field(default_factory=dict)
    timestamp_ms: float = 0.0
    min_visibility: float = 0.0

    def get(self, joint: PoseLandmark) -> Optional[Landmark]:
        return self.landmarks.get(joint)

    def point(self, joint: PoseLandmark) -> Optional[Landmark]:
        """
        Landmark usable for geometry, or None.

        A landmark that is missing or whose visibility falls below
        ``min_visibility`` cannot take part in an angle computation.
        """
        landmark = self.landmarks.get(joint)
        if landmark is None or landmark.visibility < self.min_visibility:
            return None
        return landmark

    def visibility(self, joint: PoseLandmark) -> float:
        landmark = self.landmarks.get(joint)
        return landmark.visibility if landmark else 0.0

    def mean_visibility(self, joints: Sequence[PoseLandmark] = CORE_LANDMARKS) -> float:
        return float(np.mean([self.visibility(j) for j in joints]))

    @classmethod
    def from_sequence(
        cls,
        points: Sequence[Any],
        timestamp_ms: float = 0.0,
        min_visibility: float = 0.0,
    ) -> "Pose":
        """
        Build a pose from an index-ordered landmark sequence.

        Items may be Landmark objects, objects exposing x/y/z/visibility
        (MediaPipe NormalizedLandmark) or dicts with the same keys.
        Indices beyond the 33 known landmarks are ignored.
        """
        landmarks = {}
        for idx, item in enumerate(points):
            if idx >= len(PoseLandmark):
                break
            if item is None:
                continue
            if isinstance(item, Landmark):
                landmark = item
            elif isinstance(item, dict):
                landmark = Landmark(
                    x=float(item["x"]),
                    y=float(item["y"]),
                    z=float(item.get("z", 0.0)),
                    visibility=float(item.get("visibility", 1.0)),
                )
            else:
                landmark = Landmark(
                    x=float(item.x),
                    y=float(item.y),
                    z=float(getattr(item, "z", 0.0)),
                    visibility=float(getattr(item, "visibility", 1.0)),
                )
            landmarks[PoseLandmark(idx)] = landmark

        return cls(landmarks=landmarks, timestamp_ms=timestamp_ms, min_visibility=min_visibility)

    def to_dict(self) -> Dict[str, Any]:
        """Convert pose landmarks to JSON-serializable dict."""
        return {
            "timestamp_ms": self.timestamp_ms,
            "landmarks": [
                {
                    "id": joint.value,
                    "name": joint.name,
                    "x": lm.x,
                    "y": lm.y,
                    "z": lm.z,
                    "visibility": lm.visibility,
                }
                for joint, lm in sorted(self.landmarks.items(), key=lambda item: item[0].value)
            ],
        }
