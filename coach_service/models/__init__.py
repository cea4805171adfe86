"""
FORMCOACH Coach Service Models

Rule-based exercise recognition, rep counting and form feedback on top of
MediaPipe pose landmarks.
"""

from .landmarks import (
    PoseLandmark,
    Landmark,
    Pose,
    CORE_LANDMARKS,
)

from .thresholds import ExerciseThresholds

from .geometry import (
    angle_at,
    is_body_horizontal,
    is_body_vertical,
    FrameGeometry,
)

from .classifier import (
    ExerciseLabel,
    ExerciseClassifier,
    EXERCISE_NAMES,
)

from .stabilizer import (
    LabelStabilizer,
    StabilizerStatus,
)

from .rep_counter import (
    RepState,
    RepEvent,
    RepStateMachine,
    STAGE_UP,
    STAGE_DOWN,
)

from .feedback import (
    Feedback,
    FeedbackGenerator,
    Severity,
)

from .pose_source import (
    PoseSource,
    PoseSourceError,
    MediaPipePoseSource,
    decode_image,
)

from .exercise_session import (
    CoachSession,
    FrameResult,
    SessionError,
    SessionState,
    parse_exercise,
    AUTO,
)

__all__ = [
    # Landmarks
    "PoseLandmark",
    "Landmark",
    "Pose",
    "CORE_LANDMARKS",
    "ExerciseThresholds",
    # Geometry
    "angle_at",
    "is_body_horizontal",
    "is_body_vertical",
    "FrameGeometry",
    # Classification
    "ExerciseLabel",
    "ExerciseClassifier",
    "EXERCISE_NAMES",
    "LabelStabilizer",
    "StabilizerStatus",
    # Counting
    "RepState",
    "RepEvent",
    "RepStateMachine",
    "STAGE_UP",
    "STAGE_DOWN",
    # Feedback
    "Feedback",
    "FeedbackGenerator",
    "Severity",
    # Pose source
    "PoseSource",
    "PoseSourceError",
    "MediaPipePoseSource",
    "decode_image",
    # Session
    "CoachSession",
    "FrameResult",
    "SessionError",
    "SessionState",
    "parse_exercise",
    "AUTO",
]
