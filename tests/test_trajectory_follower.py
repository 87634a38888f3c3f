import math

import pytest

from swerve_waypoint.generator import TrajectoryConfig, generate_trajectory
from swerve_waypoint.geometry import Pose2D
from swerve_waypoint.simulation import SimulatedClock, SwerveSimulator
from swerve_waypoint.timer import Timer
from swerve_waypoint.tracker import TrajectoryFollower

PERIOD = 0.02


def make_follower(rig, trajectory, **kwargs):
    kwargs.setdefault("timer", Timer(rig.clock))
    return TrajectoryFollower(
        trajectory,
        pose_source=rig.pose_source,
        gyro_rate_source=rig.gyro_source,
        wheel_sink=rig.sink,
        **kwargs,
    )


@pytest.fixture
def straight():
    return generate_trajectory(Pose2D(), Pose2D(3.0, 0.0, 0.0), TrajectoryConfig())


def test_done_only_once_duration_has_elapsed(rig, clock, straight):
    follower = make_follower(rig, straight)
    follower.start()
    assert not follower.is_done()

    clock.advance(straight.duration / 2)
    follower.update()
    assert not follower.is_done()

    clock.advance(straight.duration / 2)
    assert follower.is_done()
    assert len(rig.emitted) == 1


def test_stop_freezes_completion(rig, clock, straight):
    follower = make_follower(rig, straight)
    follower.start()
    clock.advance(0.5)
    follower.stop()
    clock.advance(straight.duration)
    assert follower.elapsed == pytest.approx(0.5)
    assert not follower.is_done()


def test_default_heading_is_final_state_heading(rig):
    trajectory = generate_trajectory(Pose2D(), Pose2D(0.0, 2.0, 0.0), TrajectoryConfig())
    follower = make_follower(rig, trajectory)
    assert follower.desired_heading() == pytest.approx(math.pi / 2)
    assert follower.desired_heading() == trajectory.final_state.pose.heading


def test_heading_source_overrides_default(rig, straight):
    follower = make_follower(rig, straight, heading_source=lambda: 0.3)
    assert follower.desired_heading() == 0.3


def test_gyro_correction_turns_robot_at_rest(rig, straight):
    follower = make_follower(rig, straight)
    follower.start()
    assert all(w.speed == pytest.approx(0.0, abs=1e-9) for w in follower.update())

    rig.gyro = 0.2
    follower.start()
    wheels = follower.update()
    assert all(w.speed > 0.0 for w in wheels)
    assert len({round(w.speed, 9) for w in wheels}) == 1


def test_rejects_missing_collaborators(rig, straight):
    with pytest.raises(ValueError, match="trajectory"):
        TrajectoryFollower(None, rig.pose_source, rig.gyro_source, rig.sink)
    with pytest.raises(ValueError, match="wheel_sink"):
        TrajectoryFollower(straight, rig.pose_source, rig.gyro_source, None)
    with pytest.raises(ValueError, match="heading_source"):
        TrajectoryFollower(straight, rig.pose_source, rig.gyro_source, rig.sink, heading_source=1.0)


def test_closed_loop_playback_ends_near_final_pose(straight):
    plant = SwerveSimulator()
    clock = SimulatedClock(PERIOD)
    follower = TrajectoryFollower(
        straight,
        pose_source=plant.measured_pose,
        gyro_rate_source=plant.gyro_rate_correction,
        wheel_sink=plant.apply_wheel_states,
        timer=Timer(clock),
    )
    follower.start()
    ticks = 0
    while not follower.is_done():
        follower.update()
        plant.step(PERIOD)
        clock.advance()
        ticks += 1

    assert ticks == math.ceil(straight.duration / PERIOD - 1e-9)
    assert plant.pose.distance_to(straight.end_pose) < 0.1
