import math

import pytest

from swerve_waypoint.geometry import ChassisSpeeds
from swerve_waypoint.kinematics import SwerveDriveKinematics, WheelState, desaturate_wheel_speeds


@pytest.fixture
def kinematics():
    return SwerveDriveKinematics()


def test_pure_translation_gives_identical_modules(kinematics):
    states = kinematics.to_wheel_states(ChassisSpeeds(1.0, 1.0, 0.0))
    assert len(states) == 4
    for state in states:
        assert state.speed == pytest.approx(math.sqrt(2.0))
        assert state.angle == pytest.approx(math.pi / 4)


def test_pure_rotation_points_modules_tangentially(kinematics):
    states = kinematics.to_wheel_states(ChassisSpeeds(0.0, 0.0, 2.0))
    radius = math.hypot(0.25, 0.25)
    for (x, y), state in zip(kinematics.module_positions, states):
        assert state.speed == pytest.approx(2.0 * radius)
        # Perpendicular to the radius vector, counter-clockwise
        tangent = math.atan2(x, -y)
        assert math.cos(state.angle - tangent) == pytest.approx(1.0)


def test_stationary_modules_report_zero_angle(kinematics):
    states = kinematics.to_wheel_states(ChassisSpeeds())
    assert all(s.speed == 0.0 and s.angle == 0.0 for s in states)


def test_forward_kinematics_recovers_chassis_speeds(kinematics):
    speeds = ChassisSpeeds(0.8, -0.3, 1.1)
    recovered = kinematics.to_chassis_speeds(kinematics.to_wheel_states(speeds))
    assert recovered.vx == pytest.approx(speeds.vx)
    assert recovered.vy == pytest.approx(speeds.vy)
    assert recovered.omega == pytest.approx(speeds.omega)


def test_forward_kinematics_checks_module_count(kinematics):
    with pytest.raises(ValueError, match="Expected 4 wheel states"):
        kinematics.to_chassis_speeds([WheelState(1.0, 0.0)])


def test_needs_two_modules():
    with pytest.raises(ValueError):
        SwerveDriveKinematics([(0.0, 0.0)])


def test_desaturation_preserves_ratios():
    states = [WheelState(10.0, 0.1), WheelState(5.0, 0.2), WheelState(-2.5, 0.3)]
    limited = desaturate_wheel_speeds(states, 5.0)
    assert [s.speed for s in limited] == pytest.approx([5.0, 2.5, -1.25])
    assert [s.angle for s in limited] == [0.1, 0.2, 0.3]


def test_desaturation_leaves_feasible_speeds_alone():
    states = [WheelState(1.0, 0.0), WheelState(2.0, 1.0)]
    assert desaturate_wheel_speeds(states, 5.0) == states
    assert desaturate_wheel_speeds([], 5.0) == []
