"""
Shared fixtures for the coach service tests.

Poses are synthetic side-view skeletons built from target joint angles, so a
test can ask for "left knee 80°, right knee 170°" directly.
"""

import math
from typing import List, Optional

import pytest

from coach_service.models import (
    CoachSession,
    ExerciseThresholds,
    Landmark,
    Pose,
    PoseLandmark,
    PoseSourceError,
)

L = PoseLandmark

THIGH = 0.2
SHIN = 0.2
UPPER_ARM = 0.12
FOREARM = 0.12


def _limb_end(joint: Landmark, angle_deg: float, length: float, visibility: float) -> Landmark:
    """
    Point at ``length`` from ``joint`` so that the angle between "straight up"
    (towards the parent segment) and the new segment equals ``angle_deg``.
    """
    theta = math.radians(angle_deg)
    return Landmark(
        x=joint.x + length * math.sin(theta),
        y=joint.y - length * math.cos(theta),
        visibility=visibility,
    )


def make_upright_pose(
    left_knee: float = 175.0,
    right_knee: float = 175.0,
    left_elbow: float = 180.0,
    right_elbow: float = 180.0,
    visibility: float = 0.9,
    hip=(0.5, 0.5),
    torso: float = 0.25,
    timestamp_ms: float = 0.0,
) -> Pose:
    """Standing / squatting / lunging figure seen from the side."""
    hx, hy = hip
    landmarks = {}
    for side, knee_angle, elbow_angle in (
        ("LEFT", left_knee, left_elbow),
        ("RIGHT", right_knee, right_elbow),
    ):
        shoulder = Landmark(hx, hy - torso, visibility=visibility)
        hip_lm = Landmark(hx, hy, visibility=visibility)
        knee = Landmark(hx, hy + THIGH, visibility=visibility)
        ankle = _limb_end(knee, knee_angle, SHIN, visibility)
        elbow = Landmark(hx, hy - torso + UPPER_ARM, visibility=visibility)
        wrist = _limb_end(elbow, elbow_angle, FOREARM, visibility)

        landmarks[L[f"{side}_SHOULDER"]] = shoulder
        landmarks[L[f"{side}_HIP"]] = hip_lm
        landmarks[L[f"{side}_KNEE"]] = knee
        landmarks[L[f"{side}_ANKLE"]] = ankle
        landmarks[L[f"{side}_ELBOW"]] = elbow
        landmarks[L[f"{side}_WRIST"]] = wrist

    return Pose(landmarks=landmarks, timestamp_ms=timestamp_ms)


def make_prone_pose(
    hip_sag: float = 0.0,
    elbow: float = 180.0,
    visibility: float = 0.9,
    timestamp_ms: float = 0.0,
) -> Pose:
    """Plank / push-up figure lying horizontally, head on the left."""
    landmarks = {}
    for side in ("LEFT", "RIGHT"):
        shoulder = Landmark(0.3, 0.5, visibility=visibility)
        elbow_lm = Landmark(0.3, 0.5 + UPPER_ARM, visibility=visibility)
        landmarks[L[f"{side}_SHOULDER"]] = shoulder
        landmarks[L[f"{side}_ELBOW"]] = elbow_lm
        landmarks[L[f"{side}_WRIST"]] = _limb_end(elbow_lm, elbow, FOREARM, visibility)
        landmarks[L[f"{side}_HIP"]] = Landmark(0.55, 0.5 + hip_sag, visibility=visibility)
        landmarks[L[f"{side}_KNEE"]] = Landmark(0.75, 0.5, visibility=visibility)
        landmarks[L[f"{side}_ANKLE"]] = Landmark(0.95, 0.5, visibility=visibility)
    return Pose(landmarks=landmarks, timestamp_ms=timestamp_ms)


def make_vertical_plank_pose(visibility: float = 0.9) -> Pose:
    """Same straight body line as a plank, but standing upright."""
    landmarks = {}
    for side in ("LEFT", "RIGHT"):
        landmarks[L[f"{side}_SHOULDER"]] = Landmark(0.5, 0.1, visibility=visibility)
        landmarks[L[f"{side}_ELBOW"]] = Landmark(0.5, 0.22, visibility=visibility)
        landmarks[L[f"{side}_WRIST"]] = Landmark(0.5, 0.34, visibility=visibility)
        landmarks[L[f"{side}_HIP"]] = Landmark(0.5, 0.45, visibility=visibility)
        landmarks[L[f"{side}_KNEE"]] = Landmark(0.5, 0.65, visibility=visibility)
        landmarks[L[f"{side}_ANKLE"]] = Landmark(0.5, 0.85, visibility=visibility)
    return Pose(landmarks=landmarks)


def pose_to_payload(pose: Pose) -> List[dict]:
    """33-entry landmark list as sent by a browser client."""
    payload = []
    for joint in PoseLandmark:
        lm = pose.get(joint)
        if lm is None:
            payload.append({"x": 0.0, "y": 0.0, "z": 0.0, "visibility": 0.0})
        else:
            payload.append({"x": lm.x, "y": lm.y, "z": lm.z, "visibility": lm.visibility})
    return payload


class FakePoseSource:
    """Pose source that replays prepared poses."""

    def __init__(self, poses: Optional[List[Optional[Pose]]] = None, fail_open: bool = False,
                 fail_detect: bool = False):
        self.poses = list(poses or [])
        self.fail_open = fail_open
        self.fail_detect = fail_detect
        self.opened_static: Optional[bool] = None
        self.closed = 0
        self.detect_calls = 0

    def open(self, static_image: bool = False):
        if self.fail_open:
            raise PoseSourceError("camera unavailable")
        self.opened_static = static_image

    def detect(self, image, timestamp_ms: float = 0.0):
        self.detect_calls += 1
        if self.fail_detect:
            raise PoseSourceError("inference failed")
        if not self.poses:
            return None
        return self.poses.pop(0)

    def close(self):
        self.closed += 1


@pytest.fixture
def thresholds():
    return ExerciseThresholds()


@pytest.fixture
def pose_source():
    return FakePoseSource()


@pytest.fixture
def session(thresholds, pose_source):
    return CoachSession(thresholds=thresholds, pose_source=pose_source)


@pytest.fixture
def live_session(session):
    session.start()
    return session
