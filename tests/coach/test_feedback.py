"""Tests for coaching feedback messages and advice."""

from coach_service.models import (
    ExerciseLabel,
    FeedbackGenerator,
    FrameGeometry,
    RepEvent,
    RepState,
    Severity,
    StabilizerStatus,
)

from .conftest import make_prone_pose, make_upright_pose


def geometry(pose):
    return FrameGeometry.measure(pose)


class TestFeedback:
    def setup_method(self):
        self.generator = FeedbackGenerator()

    def test_no_pose(self):
        feedback = self.generator.generate(ExerciseLabel.SQUATS, None)
        assert feedback.message == "No pose detected."
        assert feedback.severity == Severity.BAD
        assert feedback.advice

    def test_stance(self):
        feedback = self.generator.generate(ExerciseLabel.NONE, geometry(make_upright_pose()))
        assert feedback.message.startswith("Stance")
        assert feedback.severity == Severity.WARN

    def test_grace_message(self):
        feedback = self.generator.generate(
            ExerciseLabel.NONE, geometry(make_upright_pose()),
            stabilizer_status=StabilizerStatus.GRACE,
        )
        assert feedback.message.startswith("Lost track")

    def test_deep_squat(self):
        feedback = self.generator.generate(ExerciseLabel.SQUATS, geometry(make_upright_pose(85, 85)))
        assert feedback.severity == Severity.GOOD
        assert "Deep squat" in feedback.message

    def test_shallow_squat_advice(self):
        feedback = self.generator.generate(ExerciseLabel.SQUATS, geometry(make_upright_pose(130, 130)))
        assert feedback.severity == Severity.BAD
        assert any("deeper" in item for item in feedback.advice)

    def test_uneven_squat_advice(self):
        feedback = self.generator.generate(ExerciseLabel.SQUATS, geometry(make_upright_pose(80, 110)))
        assert any("evenly" in item for item in feedback.advice)

    def test_rep_message_reads_updated_count(self):
        state = RepState(count=3)
        feedback = self.generator.generate(
            ExerciseLabel.SQUATS, geometry(make_upright_pose(170, 170)), state, RepEvent.REP
        )
        assert feedback.message == "Great! +1 rep 💪 (3)"
        assert feedback.severity == Severity.GOOD

    def test_down_message(self):
        feedback = self.generator.generate(
            ExerciseLabel.SQUATS, geometry(make_upright_pose(90, 90)), RepState(), RepEvent.DOWN
        )
        assert feedback.message == "Going down..."

    def test_ideal_lunge(self):
        feedback = self.generator.generate(ExerciseLabel.LUNGES, geometry(make_upright_pose(90, 170)))
        assert feedback.severity == Severity.GOOD
        assert feedback.advice == ["Perfect lunge! Knee stays behind the toes"]

    def test_lunge_back_leg_advice(self):
        feedback = self.generator.generate(ExerciseLabel.LUNGES, geometry(make_upright_pose(90, 110)))
        assert any("back leg" in item for item in feedback.advice)

    def test_plank_hold_messages(self):
        g = geometry(make_prone_pose())
        started = self.generator.generate(ExerciseLabel.PLANK, g, RepState(), RepEvent.HOLD_STARTED)
        assert started.message == "Plank started! Hold it 💪"

        state = RepState(hold_start_ms=0, hold_seconds=12)
        holding = self.generator.generate(ExerciseLabel.PLANK, g, state, RepEvent.HOLDING)
        assert holding.message == "Hold it! 12 s. Body straight 🔥"
        assert holding.severity == Severity.GOOD

        state.hold_seconds = 31
        praised = self.generator.generate(ExerciseLabel.PLANK, g, state, RepEvent.HOLDING)
        assert praised.message.endswith("Excellent!")

    def test_sagging_plank(self):
        g = geometry(make_prone_pose(hip_sag=0.05))
        feedback = self.generator.generate(ExerciseLabel.PLANK, g, RepState(), RepEvent.HOLD_BROKEN)
        assert feedback.severity == Severity.BAD
        assert any("straight" in item for item in feedback.advice)

    def test_pushup_full_range(self):
        feedback = self.generator.generate(ExerciseLabel.PUSHUPS, geometry(make_prone_pose(elbow=90)))
        assert feedback.severity == Severity.GOOD

    def test_feedback_is_pure(self):
        state = RepState(count=2)
        g = geometry(make_upright_pose(85, 85))
        self.generator.generate(ExerciseLabel.SQUATS, g, state, RepEvent.REP)
        assert state.count == 2

    def test_to_dict(self):
        data = self.generator.no_pose().to_dict()
        assert data["severity"] == "bad"
        assert data["color"] == "#ff4757"
