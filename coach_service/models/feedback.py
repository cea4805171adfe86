"""
FORMCOACH Coach Service - Feedback Generator

Turns the stable label, this frame's geometry and the (already updated) rep
state into a coaching message, a severity and itemized technique advice.
Reads RepState, never writes it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

from .classifier import ExerciseLabel
from .geometry import FrameGeometry
from .rep_counter import RepEvent, RepState
from .stabilizer import StabilizerStatus
from .thresholds import ExerciseThresholds


class Severity(str, Enum):
    """How well the current frame matches the ideal form."""
    GOOD = "good"
    WARN = "warn"
    BAD = "bad"

    @property
    def color(self) -> str:
        return SEVERITY_COLORS[self]


SEVERITY_COLORS = {
    Severity.GOOD: "#00ff00",
    Severity.WARN: "#ffcc00",
    Severity.BAD: "#ff4757",
}

START_POSITION_TIPS = [
    "Stand side-on to the camera",
    "Make sure your whole body is in the frame",
    "Wear fitted clothing",
]

NO_POSE_TIPS = [
    "Make sure your whole body is in the frame",
    "Use good lighting",
    "Stand side-on to the camera",
]


@dataclass
class Feedback:
    """Coaching output for one frame."""
    message: str
    severity: Severity
    advice: List[str] = field(default_factory=list)

    @property
    def color(self) -> str:
        return self.severity.color

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "severity": self.severity.value,
            "color": self.color,
            "advice": list(self.advice),
        }


class FeedbackGenerator:
    """Pure mapping from label + geometry + counters to a Feedback."""

    def __init__(self, thresholds: Optional[ExerciseThresholds] = None):
        self.thresholds = thresholds or ExerciseThresholds()

    def no_pose(self) -> Feedback:
        return Feedback("No pose detected.", Severity.BAD, list(NO_POSE_TIPS))

    def generate(
        self,
        label: ExerciseLabel,
        geometry: Optional[FrameGeometry],
        state: Optional[RepState] = None,
        event: RepEvent = RepEvent.NONE,
        stabilizer_status: StabilizerStatus = StabilizerStatus.CONFIDENT,
    ) -> Feedback:
        """
        Build feedback for the current frame.

        Args:
            label: Stable exercise label
            geometry: This frame's measurements (None when no pose)
            state: Rep state after this frame's update
            event: Transition returned by the rep/hold state machine
            stabilizer_status: Status reported by the label stabilizer
        """
        if geometry is None:
            return self.no_pose()

        if label == ExerciseLabel.NONE:
            if stabilizer_status == StabilizerStatus.GRACE:
                return Feedback(
                    "Lost track of the exercise. Hold on, keep going.",
                    Severity.WARN,
                    list(START_POSITION_TIPS),
                )
            return Feedback(
                "Stance. Get into the start position of an exercise.",
                Severity.WARN,
                list(START_POSITION_TIPS),
            )

        state = state or RepState()
        if label == ExerciseLabel.SQUATS:
            return self._squats(geometry, state, event)
        if label == ExerciseLabel.LUNGES:
            return self._lunges(geometry, state, event)
        if label == ExerciseLabel.PLANK:
            return self._plank(geometry, state, event)
        return self._pushups(geometry, state, event)

    # ------------------------------------------------------------------ advice

    def squat_advice(self, g: FrameGeometry) -> List[str]:
        t = self.thresholds
        advice = []
        if g.avg_knee > t.squat_shallow:
            advice.append("Squat deeper (aim for about 90° at the knees)")
        if g.hip_angle < t.squat_back_min:
            advice.append("Keep your back straight, chest forward")
        if g.knee_asymmetry > t.symmetry_max:
            advice.append("Spread your weight evenly over both legs")
        return advice or ["Great technique! Keep it up"]

    def lunge_advice(self, g: FrameGeometry) -> List[str]:
        t = self.thresholds
        advice = []
        if g.front_knee > t.lunge_front_max:
            advice.append("Bend your front knee more (aim for 90°)")
        elif g.front_knee < t.lunge_front_min:
            advice.append("Don't drop too low, keep the front knee at 90°")
        if g.back_knee < t.lunge_back_min:
            advice.append("Keep your back leg almost straight")
        if g.hip_height_diff > t.hip_level_max:
            advice.append("Keep your hips level, don't lean to the side")
        return advice or ["Perfect lunge! Knee stays behind the toes"]

    def plank_advice(self, g: FrameGeometry) -> List[str]:
        t = self.thresholds
        advice = []
        if g.body_line < t.body_line_min:
            advice.append("Brace your abs and glutes to keep your body straight")
        if g.hip_angle < t.body_line_min:
            advice.append("Lower your hips so your body forms a straight line")
        if g.hips_above_shoulders:
            advice.append("Hips are too high, lower them")
        return advice or ["Great plank! Body straight as an arrow"]

    def pushup_advice(self, g: FrameGeometry) -> List[str]:
        t = self.thresholds
        advice = []
        if g.avg_elbow > t.pushup_shallow:
            advice.append("Go lower, bend your elbows to 90°")
        if g.elbow_asymmetry > t.symmetry_max:
            advice.append("Keep your elbows symmetric")
        if g.body_line < t.body_line_min:
            advice.append("Keep your body in a straight line, don't sag at the lower back")
        return advice or ["Excellent push-up technique!"]

    # ---------------------------------------------------------------- messages

    def _squats(self, g: FrameGeometry, state: RepState, event: RepEvent) -> Feedback:
        t = self.thresholds
        if g.avg_knee < t.squat_good_depth and g.hip_angle > t.squat_back_min:
            message, severity = "Great! Deep squat, back straight 🔥", Severity.GOOD
        elif g.avg_knee < t.squat_good_depth:
            message, severity = "Deep, but your back is leaning", Severity.BAD
        elif g.avg_knee < t.squat_shallow:
            message, severity = "Good, you can go deeper", Severity.WARN
        else:
            message, severity = "Start the squat", Severity.BAD

        if event == RepEvent.DOWN:
            message, severity = "Going down...", Severity.WARN
        elif event == RepEvent.REP:
            message, severity = f"Great! +1 rep 💪 ({state.count})", Severity.GOOD

        return Feedback(message, severity, self.squat_advice(g))

    def _lunges(self, g: FrameGeometry, state: RepState, event: RepEvent) -> Feedback:
        t = self.thresholds
        if t.lunge_ideal_min < g.front_knee < t.lunge_ideal_max:
            message, severity = "Perfect! Front knee at 90° 👌", Severity.GOOD
        elif g.front_knee < t.lunge_ideal_min:
            message, severity = "Front knee is bent too far", Severity.BAD
        else:
            message, severity = "Bend your front leg more", Severity.BAD

        if event == RepEvent.DOWN:
            message, severity = "Lowering into the lunge...", Severity.WARN
        elif event == RepEvent.REP:
            message, severity = f"Great! +1 lunge 💪 ({state.count})", Severity.GOOD

        return Feedback(message, severity, self.lunge_advice(g))

    def _plank(self, g: FrameGeometry, state: RepState, event: RepEvent) -> Feedback:
        t = self.thresholds
        if event == RepEvent.HOLD_STARTED:
            message, severity = "Plank started! Hold it 💪", Severity.WARN
        elif event == RepEvent.HOLDING:
            message = f"Hold it! {state.hold_seconds} s. Body straight 🔥"
            if state.hold_seconds > t.plank_praise_seconds:
                message += " Excellent!"
            severity = Severity.GOOD
        else:
            message, severity = "Back or hips are sagging, straighten up!", Severity.BAD

        return Feedback(message, severity, self.plank_advice(g))

    def _pushups(self, g: FrameGeometry, state: RepState, event: RepEvent) -> Feedback:
        t = self.thresholds
        if g.avg_elbow < t.pushup_down:
            message, severity = "Great! Full range of motion 💪", Severity.GOOD
        elif g.avg_elbow < t.pushup_shallow:
            message, severity = "Good, go a little lower", Severity.WARN
        else:
            message, severity = "Start the push-up", Severity.BAD

        if event == RepEvent.DOWN:
            message, severity = "Going down...", Severity.WARN
        elif event == RepEvent.REP:
            message, severity = f"Great! +1 push-up 💪 ({state.count})", Severity.GOOD

        return Feedback(message, severity, self.pushup_advice(g))
