"""Tests for joint angles and orientation predicates."""

import math

import pytest

from coach_service.models import (
    FrameGeometry,
    Landmark,
    PoseLandmark,
    angle_at,
    is_body_horizontal,
    is_body_vertical,
)

from .conftest import make_prone_pose, make_upright_pose, make_vertical_plank_pose


class TestAngleAt:
    def test_right_angle(self):
        a, b, c = Landmark(0, 0), Landmark(0, 1), Landmark(1, 1)
        assert angle_at(a, b, c) == pytest.approx(90.0)

    def test_straight_line(self):
        a, b, c = Landmark(0, 0), Landmark(0.5, 0.5), Landmark(1, 1)
        assert angle_at(a, b, c) == pytest.approx(180.0)

    def test_symmetric_in_outer_points(self):
        a, b, c = Landmark(0.1, 0.9), Landmark(0.4, 0.5), Landmark(0.8, 0.7)
        assert angle_at(a, b, c) == pytest.approx(angle_at(c, b, a))

    @pytest.mark.parametrize("a,b,c", [
        (Landmark(0.9, 0.1), Landmark(0.5, 0.5), Landmark(0.1, 0.2)),
        (Landmark(0.2, 0.8), Landmark(0.5, 0.5), Landmark(0.1, 0.9)),
        (Landmark(0.0, 0.5), Landmark(0.5, 0.5), Landmark(1.0, 0.49)),
    ])
    def test_range_is_0_to_180(self, a, b, c):
        assert 0.0 <= angle_at(a, b, c) <= 180.0

    def test_missing_point_is_nan(self):
        assert math.isnan(angle_at(None, Landmark(0, 0), Landmark(1, 1)))


class TestOrientation:
    def test_prone_body_is_horizontal(self):
        pose = make_prone_pose()
        assert is_body_horizontal(pose)
        assert not is_body_vertical(pose)

    def test_standing_body_is_vertical(self):
        pose = make_upright_pose()
        assert is_body_vertical(pose)
        assert not is_body_horizontal(pose)

    def test_missing_hips_is_neither(self):
        pose = make_upright_pose()
        del pose.landmarks[PoseLandmark.LEFT_HIP]
        assert not is_body_horizontal(pose)
        assert not is_body_vertical(pose)


class TestFrameGeometry:
    def test_knee_angles(self):
        g = FrameGeometry.measure(make_upright_pose(80, 170))
        assert g.left_knee == pytest.approx(80.0)
        assert g.right_knee == pytest.approx(170.0)
        assert g.front_knee == pytest.approx(80.0)
        assert g.back_knee == pytest.approx(170.0)
        assert g.knee_asymmetry == pytest.approx(90.0)

    def test_elbow_angles(self):
        g = FrameGeometry.measure(make_prone_pose(elbow=90))
        assert g.avg_elbow == pytest.approx(90.0)
        assert g.elbow_asymmetry == pytest.approx(0.0)

    def test_straight_plank_body_line(self):
        g = FrameGeometry.measure(make_prone_pose())
        assert g.body_line == pytest.approx(180.0)
        assert g.horizontal

    def test_sagging_hips_break_body_line(self):
        g = FrameGeometry.measure(make_prone_pose(hip_sag=0.05))
        assert g.body_line < 170

    def test_vertical_plank_keeps_body_line(self):
        g = FrameGeometry.measure(make_vertical_plank_pose())
        assert g.body_line == pytest.approx(180.0)
        assert g.vertical

    def test_hips_below_shoulders_when_standing(self):
        g = FrameGeometry.measure(make_upright_pose())
        assert g.hips_below_shoulders
        assert not g.hips_above_shoulders

    def test_missing_ankle_propagates_nan(self):
        pose = make_upright_pose(90, 90)
        del pose.landmarks[PoseLandmark.LEFT_ANKLE]
        g = FrameGeometry.measure(pose)
        assert math.isnan(g.left_knee)
        assert math.isnan(g.avg_knee)
        assert math.isnan(g.front_knee)
        assert g.right_knee == pytest.approx(90.0)

    def test_low_visibility_landmark_is_unusable(self):
        pose = make_upright_pose(90, 90)
        pose.min_visibility = 0.5
        pose.landmarks[PoseLandmark.RIGHT_KNEE].visibility = 0.2
        g = FrameGeometry.measure(pose)
        assert math.isnan(g.right_knee)

    def test_to_dict_maps_nan_to_none(self):
        pose = make_upright_pose(90, 90)
        del pose.landmarks[PoseLandmark.LEFT_ANKLE]
        data = FrameGeometry.measure(pose).to_dict()
        assert data["left_knee"] is None
        assert data["right_knee"] == 90.0
        assert data["vertical"] is True
