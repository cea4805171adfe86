"""
FORMCOACH Coach Service - Coaching Session

The session aggregate: owns the stabilizer and rep state for one camera run
(or one photo) and runs the per-frame pipeline

    geometry -> classify -> stabilize -> rep/hold update -> feedback

strictly in that order, so feedback always reflects the updated counters.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from enum import Enum
import logging
import time

import numpy as np

from .classifier import ExerciseClassifier, ExerciseLabel
from .feedback import Feedback, FeedbackGenerator
from .geometry import FrameGeometry
from .landmarks import Pose
from .pose_source import PoseSource, PoseSourceError
from .rep_counter import RepEvent, RepState, RepStateMachine, STAGE_DOWN
from .stabilizer import LabelStabilizer, StabilizerStatus
from .thresholds import ExerciseThresholds

logger = logging.getLogger(__name__)

AUTO = "auto"


class SessionError(RuntimeError):
    """Operation not allowed in the current session state."""


class SessionState(str, Enum):
    """Coaching session modes."""
    IDLE = "idle"
    LIVE = "live"
    PHOTO = "photo"


@dataclass
class FrameResult:
    """Result emitted once per processed frame or photo."""
    label: ExerciseLabel
    raw_label: ExerciseLabel
    rep_count: int
    hold_seconds: int
    stage: Optional[str]
    feedback: Feedback
    pose_detected: bool
    stabilizer_status: StabilizerStatus
    mode: SessionState
    timestamp_ms: float
    event: RepEvent = RepEvent.NONE
    geometry: Optional[FrameGeometry] = None
    pose: Optional[Pose] = None

    @property
    def message(self) -> str:
        return self.feedback.message

    @property
    def severity(self):
        return self.feedback.severity

    @property
    def advice(self) -> List[str]:
        return self.feedback.advice

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "label": self.label.value,
            "exercise_name": self.label.display_name,
            "raw_label": self.raw_label.value,
            "rep_count": self.rep_count,
            "hold_seconds": self.hold_seconds,
            "stage": self.stage,
            "event": self.event.value,
            "pose_detected": self.pose_detected,
            "stabilizer_status": self.stabilizer_status.value,
            "mode": self.mode.value,
            "timestamp_ms": self.timestamp_ms,
            **self.feedback.to_dict(),
            "angles": self.geometry.to_dict() if self.geometry else None,
            "landmarks": self.pose.to_dict()["landmarks"] if self.pose else None,
        }


def now_ms() -> float:
    return time.monotonic() * 1000.0


def parse_exercise(value: Union[str, ExerciseLabel, None]) -> Optional[ExerciseLabel]:
    """
    Parse an exercise selection; "auto" (or None) means automatic classification.

    Raises:
        ValueError: unknown label
    """
    if value is None or value == AUTO:
        return None
    valid = [AUTO] + [label.value for label in ExerciseLabel if label != ExerciseLabel.NONE]
    try:
        label = ExerciseLabel(value)
    except ValueError:
        raise ValueError(f"Invalid exercise '{value}'. Valid choices: {valid}")
    if label == ExerciseLabel.NONE:
        raise ValueError(f"Invalid exercise '{value}'. Valid choices: {valid}")
    return label


# The top of a push-up is a plank; switching between them keeps the counters
EXERCISE_FAMILIES = {
    ExerciseLabel.PUSHUPS: ExerciseLabel.PLANK,
}


def same_family(a: Optional[ExerciseLabel], b: Optional[ExerciseLabel]) -> bool:
    if a is None or b is None:
        return False
    return EXERCISE_FAMILIES.get(a, a) == EXERCISE_FAMILIES.get(b, b)


class CoachSession:
    """
    One coaching session: live camera run or still-photo analysis.

    Features:
    - Automatic or pinned exercise selection
    - Majority-vote label stabilization
    - Rep counting with debounce, plank hold timing
    - Per-frame coaching feedback
    """

    def __init__(
        self,
        thresholds: Optional[ExerciseThresholds] = None,
        pose_source: Optional[PoseSource] = None,
    ):
        """
        Initialize session.

        Args:
            thresholds: Threshold table (defaults, overridable via COACH_* env vars)
            pose_source: Pose detector used by process_frame/analyze_image
        """
        self.thresholds = thresholds or ExerciseThresholds()
        self.pose_source = pose_source

        self.classifier = ExerciseClassifier(self.thresholds)
        self.stabilizer = LabelStabilizer(
            window=self.thresholds.stabilizer_window,
            reset_ms=self.thresholds.stabilizer_reset_ms,
        )
        self.state_machine = RepStateMachine(self.thresholds)
        self.feedback_generator = FeedbackGenerator(self.thresholds)

        self.rep_state = RepState()
        self.state = SessionState.IDLE
        self.selected_exercise: Optional[ExerciseLabel] = None
        self.active_exercise: Optional[ExerciseLabel] = None
        self.frames_processed = 0
        self.last_result: Optional[FrameResult] = None

    # ------------------------------------------------------------ control

    @property
    def is_live(self) -> bool:
        return self.state == SessionState.LIVE

    def _reset_state(self):
        self.rep_state.reset()
        self.stabilizer.reset()
        self.active_exercise = None
        self.frames_processed = 0
        self.last_result = None

    def start(self) -> Dict[str, Any]:
        """
        Begin a live session from a clean state.

        Raises:
            PoseSourceError: the pose source could not be opened; the session stays idle
        """
        self._reset_state()
        if self.pose_source is not None:
            try:
                self.pose_source.open(static_image=False)
            except PoseSourceError:
                self.state = SessionState.IDLE
                raise

        self.state = SessionState.LIVE
        logger.info(f"Live session started (exercise: {self.selection_name})")
        return self.status()

    def stop(self) -> Dict[str, Any]:
        """End the session; counters are kept for status until the next start."""
        was_live = self.is_live
        self.state = SessionState.IDLE
        if self.pose_source is not None:
            self.pose_source.close()
        if was_live:
            logger.info(f"Live session stopped after {self.frames_processed} frames, {self.rep_state.count} reps")
        return self.status()

    def reset(self) -> Dict[str, Any]:
        """Zero counters without ending the session."""
        self._reset_state()
        logger.info("Session counters reset")
        return self.status()

    def select_exercise(self, exercise: Union[str, ExerciseLabel, None]) -> Dict[str, Any]:
        """
        Pin classification to one exercise, or "auto" to classify every frame.

        Raises:
            ValueError: unknown exercise
        """
        self.selected_exercise = parse_exercise(exercise)
        self._reset_state()
        logger.info(f"Exercise selection: {self.selection_name}")
        return self.status()

    @property
    def selection_name(self) -> str:
        return self.selected_exercise.value if self.selected_exercise else AUTO

    # ----------------------------------------------------------- pipeline

    def process_frame(self, image: np.ndarray, timestamp_ms: Optional[float] = None) -> FrameResult:
        """
        Detect the pose in a video frame and run the pipeline on it.

        Raises:
            SessionError: no live session
            PoseSourceError: detection failed; the session is stopped
        """
        if not self.is_live:
            raise SessionError("Session not active")
        if self.pose_source is None:
            raise SessionError("No pose source configured")

        timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
        try:
            pose = self.pose_source.detect(image, timestamp_ms)
        except PoseSourceError:
            logger.error("Pose source failed, stopping session")
            self.stop()
            raise
        return self.process_pose(pose, timestamp_ms)

    def process_pose(self, pose: Optional[Pose], timestamp_ms: Optional[float] = None) -> FrameResult:
        """
        Run the pipeline on one frame's pose (None when no person was detected).

        Raises:
            SessionError: no live session
        """
        if not self.is_live:
            raise SessionError("Session not active")

        timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
        geometry = FrameGeometry.measure(pose, self.thresholds) if pose is not None else None

        if pose is None:
            raw_label = ExerciseLabel.NONE
        else:
            raw_label = self.classifier.classify_with_geometry(pose, geometry)

        if self.selected_exercise is not None:
            label = self.selected_exercise
            stabilizer_status = StabilizerStatus.CONFIDENT
        else:
            label = self.stabilizer.push(raw_label, timestamp_ms)
            stabilizer_status = self.stabilizer.status
            if stabilizer_status == StabilizerStatus.RESET and self.active_exercise is not None:
                logger.info(f"Lost {self.active_exercise.value} for too long, counters reset")
                self.rep_state.reset()
                self.active_exercise = None
            # Straight arms on the way up read as plank; finish the push-up first
            if (
                label == ExerciseLabel.PLANK
                and self.active_exercise == ExerciseLabel.PUSHUPS
                and self.rep_state.stage(ExerciseLabel.PUSHUPS) == STAGE_DOWN
            ):
                label = ExerciseLabel.PUSHUPS

        if label != ExerciseLabel.NONE and label != self.active_exercise:
            if not same_family(label, self.active_exercise):
                if self.active_exercise is not None:
                    logger.info(f"Exercise changed: {self.active_exercise.value} -> {label.value}")
                self.rep_state.reset()
            self.active_exercise = label

        event = RepEvent.NONE
        # A frame without a measurable body line breaks the plank hold
        if label != ExerciseLabel.PLANK or geometry is None:
            self.rep_state.clear_hold()
        if geometry is not None and label != ExerciseLabel.NONE:
            event = self.state_machine.update(label, geometry, self.rep_state, timestamp_ms)

        if geometry is None:
            feedback = self.feedback_generator.no_pose()
        else:
            feedback = self.feedback_generator.generate(
                label, geometry, self.rep_state, event, stabilizer_status
            )

        return self._emit(label, raw_label, feedback, geometry, stabilizer_status, event, timestamp_ms, pose)

    # -------------------------------------------------------------- photo

    def analyze_image(self, image: np.ndarray) -> FrameResult:
        """
        Switch to still-photo mode and analyze one image.

        Raises:
            SessionError: no pose source configured
            PoseSourceError: the model failed to load or run
        """
        if self.pose_source is None:
            raise SessionError("No pose source configured")

        self._enter_photo_mode()
        self.pose_source.open(static_image=True)
        pose = self.pose_source.detect(image, 0.0)
        return self.analyze_pose(pose)

    def analyze_pose(self, pose: Optional[Pose]) -> FrameResult:
        """Photo-mode pipeline: classify and give feedback, no counting."""
        self._enter_photo_mode()

        if pose is None:
            return self._emit(
                ExerciseLabel.NONE, ExerciseLabel.NONE, self.feedback_generator.no_pose(),
                None, StabilizerStatus.IDLE, RepEvent.NONE, 0.0,
            )

        geometry = FrameGeometry.measure(pose, self.thresholds)
        raw_label = self.classifier.classify_with_geometry(pose, geometry)
        label = self.selected_exercise or raw_label
        status = StabilizerStatus.CONFIDENT if label != ExerciseLabel.NONE else StabilizerStatus.IDLE

        # A still image has no motion; only a plank hold is meaningful
        event = RepEvent.NONE
        if label == ExerciseLabel.PLANK:
            event = self.state_machine.update(label, geometry, RepState(), 0.0)

        feedback = self.feedback_generator.generate(label, geometry, self.rep_state, event, status)
        return self._emit(label, raw_label, feedback, geometry, status, event, 0.0, pose)

    def _enter_photo_mode(self):
        if self.state != SessionState.PHOTO:
            logger.info(f"Switching to photo mode from {self.state.value}")
        self._reset_state()
        self.state = SessionState.PHOTO

    # ------------------------------------------------------------ results

    def _emit(
        self,
        label: ExerciseLabel,
        raw_label: ExerciseLabel,
        feedback: Feedback,
        geometry: Optional[FrameGeometry],
        stabilizer_status: StabilizerStatus,
        event: RepEvent,
        timestamp_ms: float,
        pose: Optional[Pose] = None,
    ) -> FrameResult:
        self.frames_processed += 1
        result = FrameResult(
            label=label,
            raw_label=raw_label,
            rep_count=self.rep_state.count,
            hold_seconds=self.rep_state.hold_seconds if label == ExerciseLabel.PLANK else 0,
            stage=self.rep_state.stage(label),
            feedback=feedback,
            pose_detected=geometry is not None,
            stabilizer_status=stabilizer_status,
            mode=self.state,
            timestamp_ms=timestamp_ms,
            event=event,
            geometry=geometry,
            pose=pose,
        )
        self.last_result = result
        return result

    def status(self) -> Dict[str, Any]:
        """Current session snapshot."""
        return {
            "state": self.state.value,
            "exercise": self.selection_name,
            "active_exercise": self.active_exercise.value if self.active_exercise else None,
            "rep_count": self.rep_state.count,
            "hold_seconds": self.rep_state.hold_seconds,
            "frames_processed": self.frames_processed,
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }
