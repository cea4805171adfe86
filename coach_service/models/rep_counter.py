"""
FORMCOACH Coach Service - Rep/Hold State Machine

Counts repetitions of squats, lunges and push-ups and times plank holds.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from enum import Enum
import logging
import math

from .classifier import ExerciseLabel
from .geometry import FrameGeometry
from .thresholds import ExerciseThresholds

logger = logging.getLogger(__name__)


STAGE_UP = "up"
STAGE_DOWN = "down"


class RepEvent(str, Enum):
    """Transition produced by one update."""
    NONE = "none"
    DOWN = "down"
    REP = "rep"
    HOLD_STARTED = "hold_started"
    HOLDING = "holding"
    HOLD_BROKEN = "hold_broken"


def _initial_stages() -> Dict[ExerciseLabel, str]:
    return {label: STAGE_UP for label in ExerciseLabel if label.is_counted}


@dataclass
class RepState:
    """Counters owned by a session and mutated only by RepStateMachine."""
    stages: Dict[ExerciseLabel, str] = field(default_factory=_initial_stages)
    count: int = 0
    last_rep_ms: float = 0.0
    hold_start_ms: Optional[float] = None
    hold_seconds: int = 0

    def stage(self, label: ExerciseLabel) -> Optional[str]:
        return self.stages.get(label)

    def clear_hold(self):
        self.hold_start_ms = None
        self.hold_seconds = 0

    def reset(self):
        self.stages = _initial_stages()
        self.count = 0
        self.last_rep_ms = 0.0
        self.clear_hold()


class RepStateMachine:
    """
    Up/down rep counter with debounce, plus the plank hold timer.

    A rep is counted on the down -> up transition, and only if more than
    ``rep_debounce_ms`` has passed since the previous rep; a debounced frame
    keeps the stage at "down" so the next qualifying frame completes the rep.
    """

    def __init__(self, thresholds: Optional[ExerciseThresholds] = None):
        self.thresholds = thresholds or ExerciseThresholds()

    def rep_thresholds(self, label: ExerciseLabel) -> Tuple[float, float]:
        """(down, up) thresholds of the driving angle."""
        t = self.thresholds
        return {
            ExerciseLabel.SQUATS: (t.squat_down, t.squat_up),
            ExerciseLabel.LUNGES: (t.lunge_down, t.lunge_up),
            ExerciseLabel.PUSHUPS: (t.pushup_down, t.pushup_up),
        }[label]

    @staticmethod
    def driving_angle(label: ExerciseLabel, geometry: FrameGeometry) -> float:
        if label == ExerciseLabel.SQUATS:
            return geometry.avg_knee
        if label == ExerciseLabel.LUNGES:
            return geometry.front_knee
        if label == ExerciseLabel.PUSHUPS:
            return geometry.avg_elbow
        return float("nan")

    def update(
        self,
        label: ExerciseLabel,
        geometry: FrameGeometry,
        state: RepState,
        timestamp_ms: float,
    ) -> RepEvent:
        """
        Advance the state for the current stable label.

        Returns:
            The transition that happened on this frame
        """
        if label == ExerciseLabel.PLANK:
            return self._update_hold(geometry, state, timestamp_ms)
        if label.is_counted:
            return self._update_reps(label, geometry, state, timestamp_ms)
        return RepEvent.NONE

    def _update_reps(
        self,
        label: ExerciseLabel,
        geometry: FrameGeometry,
        state: RepState,
        timestamp_ms: float,
    ) -> RepEvent:
        angle = self.driving_angle(label, geometry)
        if math.isnan(angle):
            return RepEvent.NONE

        down, up = self.rep_thresholds(label)
        stage = state.stages.get(label, STAGE_UP)

        if stage == STAGE_UP and angle < down:
            state.stages[label] = STAGE_DOWN
            return RepEvent.DOWN

        if stage == STAGE_DOWN and angle > up:
            if timestamp_ms - state.last_rep_ms > self.thresholds.rep_debounce_ms:
                state.stages[label] = STAGE_UP
                state.count += 1
                state.last_rep_ms = timestamp_ms
                logger.debug(f"{label.value} rep {state.count} at {angle:.0f} deg")
                return RepEvent.REP

        return RepEvent.NONE

    def _update_hold(self, geometry: FrameGeometry, state: RepState, timestamp_ms: float) -> RepEvent:
        if geometry.body_line > self.thresholds.plank_hold_min:
            if state.hold_start_ms is None:
                state.hold_start_ms = timestamp_ms
                state.hold_seconds = 0
                return RepEvent.HOLD_STARTED
            state.hold_seconds = int((timestamp_ms - state.hold_start_ms) // 1000)
            return RepEvent.HOLDING

        was_holding = state.hold_start_ms is not None
        state.clear_hold()
        return RepEvent.HOLD_BROKEN if was_holding else RepEvent.NONE
