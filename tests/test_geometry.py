import math

import pytest

from swerve_waypoint.geometry import (
    ChassisSpeeds,
    GoalOffset,
    Pose2D,
    angle_difference,
    wrap_angle,
)


@pytest.mark.parametrize(
    "angle, expected",
    [
        (0.0, 0.0),
        (math.pi, math.pi),
        (-math.pi, math.pi),
        (3 * math.pi, math.pi),
        (2 * math.pi + 0.5, 0.5),
        (-2 * math.pi - 0.5, -0.5),
    ],
)
def test_wrap_angle_half_open_range(angle, expected):
    assert wrap_angle(angle) == pytest.approx(expected)


def test_angle_difference_takes_short_way_round():
    assert angle_difference(math.radians(179), math.radians(-179)) == pytest.approx(math.radians(-2))
    assert angle_difference(math.radians(-179), math.radians(179)) == pytest.approx(math.radians(2))


def test_pose_heading_wrapped_on_construction():
    pose = Pose2D(1.0, 2.0, 2 * math.pi + 0.25)
    assert pose.heading == pytest.approx(0.25)


def test_distance_and_bearing():
    a = Pose2D(1.0, 1.0)
    b = Pose2D(4.0, 5.0)
    assert a.distance_to(b) == pytest.approx(5.0)
    assert a.bearing_to(b) == pytest.approx(math.atan2(4.0, 3.0))


def test_transform_by_uses_own_heading():
    pose = Pose2D(1.0, 0.0, math.pi / 2)
    moved = pose.transform_by(1.0, 0.5)
    # Forward is +y, left is -x when facing +y
    assert moved.x == pytest.approx(0.5)
    assert moved.y == pytest.approx(1.0)
    assert moved.heading == pytest.approx(math.pi / 2)


def test_relative_to_inverts_transform_by():
    origin = Pose2D(2.0, -1.0, 0.7)
    target = origin.transform_by(0.3, -0.4, 0.2)
    local = target.relative_to(origin)
    assert local.x == pytest.approx(0.3)
    assert local.y == pytest.approx(-0.4)
    assert local.heading == pytest.approx(0.2)


def test_field_to_robot_relative_rotation():
    speeds = ChassisSpeeds.from_field_relative(1.0, 0.0, 0.3, math.pi / 2)
    assert speeds.vx == pytest.approx(0.0, abs=1e-12)
    assert speeds.vy == pytest.approx(-1.0)
    assert speeds.omega == 0.3

    vx, vy, omega = speeds.to_field_relative(math.pi / 2)
    assert vx == pytest.approx(1.0)
    assert vy == pytest.approx(0.0, abs=1e-12)
    assert omega == 0.3


class TestGoalOffset:
    def test_center_leaves_goal_unchanged(self):
        goal = Pose2D(3.0, 1.0, 0.4)
        assert GoalOffset.CENTER.apply(goal, 0.5) == goal

    def test_left_and_right_are_opposite_lateral_shifts(self):
        goal = Pose2D(3.0, 0.0, 0.0)
        left = GoalOffset.LEFT.apply(goal, 0.5)
        right = GoalOffset.RIGHT.apply(goal, 0.5)
        assert (left.x, left.y) == pytest.approx((3.0, -0.5))
        assert (right.x, right.y) == pytest.approx((3.0, 0.5))
        assert left.heading == goal.heading

    def test_shift_follows_goal_heading(self):
        goal = Pose2D(0.0, 0.0, math.pi / 2)
        left = GoalOffset.LEFT.apply(goal, 1.0)
        assert left.x == pytest.approx(1.0)
        assert left.y == pytest.approx(0.0, abs=1e-12)

    @pytest.mark.parametrize("text, expected", [("left", GoalOffset.LEFT), (" RIGHT ", GoalOffset.RIGHT)])
    def test_parse(self, text, expected):
        assert GoalOffset.parse(text) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown goal offset"):
            GoalOffset.parse("up")
