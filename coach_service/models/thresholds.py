"""
FORMCOACH Coach Service - Exercise Thresholds

The single table of tunable constants shared by the classifier, the label
stabilizer, the rep/hold state machine and the feedback generator.
Every value can be overridden through a COACH_* environment variable.
"""

from pydantic_settings import BaseSettings


class ExerciseThresholds(BaseSettings):
    """Angle, distance and timing thresholds (degrees, normalized units, ms)."""

    # Pose quality
    min_visibility: float = 0.3           # mean visibility of shoulders/hips/knees
    landmark_min_visibility: float = 0.1  # below this a landmark is unusable for angles

    # Body orientation
    horizontal_tolerance: float = 0.1     # |shoulder y - hip y| below this is horizontal
    stance_offset_min: float = 0.05       # hip or ankle height difference of a staggered stance

    # Classification
    support_pushups: bool = True
    pushup_elbow_max: float = 120.0
    pushup_body_line_min: float = 160.0
    lunge_asymmetry_min: float = 40.0
    lunge_front_knee_max: float = 120.0
    lunge_back_knee_min: float = 150.0
    squat_knee_max: float = 140.0
    plank_knee_min: float = 160.0
    plank_body_line_min: float = 170.0

    # Rep counting
    squat_down: float = 95.0
    squat_up: float = 155.0
    lunge_down: float = 90.0
    lunge_up: float = 140.0
    pushup_down: float = 100.0
    pushup_up: float = 150.0
    rep_debounce_ms: float = 800.0

    # Hold timing
    plank_hold_min: float = 170.0

    # Label stabilizer
    stabilizer_window: int = 5
    stabilizer_reset_ms: float = 2000.0

    # Feedback
    squat_good_depth: float = 100.0
    squat_shallow: float = 120.0
    squat_back_min: float = 140.0
    lunge_ideal_min: float = 85.0
    lunge_ideal_max: float = 95.0
    lunge_front_max: float = 100.0
    lunge_front_min: float = 80.0
    lunge_back_min: float = 120.0
    hip_level_max: float = 0.1
    pushup_shallow: float = 130.0
    symmetry_max: float = 20.0
    body_line_min: float = 170.0
    plank_praise_seconds: int = 30

    class Config:
        env_prefix = "COACH_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
