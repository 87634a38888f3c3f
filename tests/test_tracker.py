import math

import pytest

from swerve_waypoint.geometry import GoalOffset, Pose2D
from swerve_waypoint.trajectory import Trajectory
from swerve_waypoint.tracker import TrackerState, WaypointTracker

GOAL = Pose2D(3.0, 0.0, 0.0)
PERIOD = 0.02


def test_idle_update_emits_nothing(rig):
    tracker = rig.make_tracker()
    assert tracker.state is TrackerState.IDLE
    assert tracker.update() is None
    assert rig.emitted == []
    assert not tracker.is_done()


def test_start_generates_from_live_pose(rig):
    rig.pose = Pose2D(0.5, 0.0, 0.0)
    tracker = rig.make_tracker()
    tracker.start()
    assert tracker.state is TrackerState.TRACKING
    assert isinstance(tracker.trajectory, Trajectory)
    assert tracker.trajectory.start_pose.x == pytest.approx(0.5)
    assert tracker.trajectory.initial_state.velocity == 0.0
    assert tracker.active_goal == GOAL
    assert tracker.previous_offset is GoalOffset.CENTER
    assert tracker.elapsed == 0.0


def test_update_emits_wheel_states_and_notifies_observer(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    clock.advance(0.5)
    wheels = tracker.update()
    assert wheels is not None and len(wheels) == 4
    assert rig.emitted == [wheels]
    snapshot = rig.snapshots[-1]
    assert snapshot.elapsed == pytest.approx(0.5)
    assert snapshot.desired_state == tracker.trajectory.sample(0.5)
    assert snapshot.wheel_states == wheels
    assert not snapshot.replanned
    # Robot has not moved: desired minus measured is the distance travelled
    assert snapshot.error_x == pytest.approx(tracker.trajectory.sample(0.5).pose.x)


def test_three_metre_trajectory_ends_on_goal(rig):
    tracker = rig.make_tracker()
    tracker.start()
    trajectory = tracker.trajectory
    assert trajectory.duration > 0.0
    final = trajectory.sample(trajectory.duration)
    assert math.hypot(final.pose.x - 3.0, final.pose.y) < 1e-3


def test_holding_the_goal_at_rest_commands_zero_wheel_speeds(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    clock.advance(tracker.trajectory.duration + 1.0)
    rig.pose = Pose2D(3.0, 0.0, 0.0)
    for _ in range(20):
        wheels = tracker.update()
        assert wheels is not None
        assert all(w.speed == pytest.approx(0.0, abs=1e-9) for w in wheels)
        clock.advance(PERIOD)


def test_offset_change_at_tick_ten_replans_to_left_goal(rig, clock):
    tracker = rig.make_tracker(goal=GOAL, y_offset=0.5)
    tracker.start()
    for _ in range(10):
        assert tracker.update() is not None
        clock.advance(PERIOD)

    old_trajectory = tracker.trajectory
    in_flight = old_trajectory.sample(tracker.elapsed)
    rig.offset = GoalOffset.LEFT

    assert tracker.update() is not None
    assert tracker.trajectory is not old_trajectory
    assert tracker.active_goal.y == pytest.approx(GOAL.y - 0.5)
    assert tracker.trajectory.end_pose.y == pytest.approx(GOAL.y - 0.5)
    assert tracker.elapsed == 0.0
    assert tracker.previous_offset is GoalOffset.LEFT
    assert tracker.replan_count == 1
    assert tracker.state is TrackerState.TRACKING
    assert rig.snapshots[-1].replanned


def test_replan_preserves_velocity(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    clock.advance(1.0)
    old = tracker.trajectory.sample(1.0)
    rig.pose = old.pose
    rig.offset = GoalOffset.RIGHT

    tracker.update()
    assert tracker.trajectory.initial_state.velocity == pytest.approx(old.velocity, abs=1e-6)
    assert tracker.trajectory.start_pose.x == pytest.approx(old.pose.x)
    assert tracker.active_goal.y == pytest.approx(0.5)


def test_replan_tick_reads_pose_once(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    clock.advance(1.0)
    readings = []

    def drifting_pose():
        pose = Pose2D(1.0 + 0.1 * len(readings), 0.0, 0.0)
        readings.append(pose)
        return pose

    tracker.pose_source = drifting_pose
    rig.offset = GoalOffset.LEFT
    tracker.update()

    assert len(readings) == 1
    assert tracker.trajectory.start_pose.x == pytest.approx(readings[0].x)
    assert rig.snapshots[-1].measured_pose == readings[0]


def test_unchanged_offset_does_not_replan(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    trajectory = tracker.trajectory
    for _ in range(5):
        tracker.update()
        clock.advance(PERIOD)
    assert tracker.trajectory is trajectory
    assert tracker.replan_count == 0


def test_start_at_goal_fails(rig):
    rig.pose = GOAL
    tracker = rig.make_tracker()
    tracker.start()
    assert tracker.state is TrackerState.FAILED
    assert tracker.is_done()
    assert "zero-length" in tracker.failure.reason
    assert tracker.update() is None
    assert rig.emitted == []


def test_failed_replan_emits_nothing_and_is_terminal(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    clock.advance(1.2)
    # Too close to the new goal to brake from the in-flight speed
    rig.pose = Pose2D(2.95, -0.45, 0.0)
    rig.offset = GoalOffset.LEFT

    assert tracker.update() is None
    assert tracker.state is TrackerState.FAILED
    assert tracker.is_done()
    assert rig.emitted == []

    frozen = tracker.elapsed
    clock.advance(1.0)
    assert tracker.elapsed == frozen
    assert tracker.update() is None


def test_start_after_failure_recovers(rig):
    rig.pose = GOAL
    tracker = rig.make_tracker()
    tracker.start()
    assert tracker.is_done()

    rig.pose = Pose2D(0.0, 0.0, 0.0)
    tracker.start()
    assert tracker.state is TrackerState.TRACKING
    assert not tracker.is_done()
    assert tracker.failure is None


def test_stop_freezes_time_and_keeps_state(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    trajectory = tracker.trajectory
    clock.advance(0.5)
    tracker.stop()
    clock.advance(1.0)
    assert tracker.elapsed == pytest.approx(0.5)
    assert tracker.state is TrackerState.TRACKING
    assert tracker.trajectory is trajectory
    assert not tracker.is_done()


def test_gyro_correction_moves_heading_target(rig, clock):
    tracker = rig.make_tracker()
    tracker.start()
    rig.gyro = 0.2
    tracker.update()
    snapshot = rig.snapshots[-1]
    assert snapshot.gyro_rate_correction == 0.2
    assert snapshot.error_heading == pytest.approx(-0.2)
    assert snapshot.speeds.omega < 0.0


def test_wheel_speeds_desaturated_when_limit_given(rig, clock):
    tracker = rig.make_tracker(max_wheel_speed=0.1)
    tracker.start()
    clock.advance(1.0)
    wheels = tracker.update()
    assert max(w.speed for w in wheels) == pytest.approx(0.1)


def test_goal_for_each_offset(rig):
    tracker = rig.make_tracker(goal=Pose2D(1.0, 1.0, 0.0), y_offset=0.25)
    assert tracker.goal_for(GoalOffset.CENTER) == Pose2D(1.0, 1.0, 0.0)
    assert tracker.goal_for(GoalOffset.LEFT).y == pytest.approx(0.75)
    assert tracker.goal_for(GoalOffset.RIGHT).y == pytest.approx(1.25)


class TestValidation:
    def test_rejects_missing_collaborator(self, rig):
        with pytest.raises(ValueError, match="pose_source"):
            WaypointTracker(GOAL, 0.5, None, rig.gyro_source, rig.offset_source, rig.sink)

    def test_rejects_non_callable_sink(self, rig):
        with pytest.raises(ValueError, match="wheel_sink"):
            WaypointTracker(GOAL, 0.5, rig.pose_source, rig.gyro_source, rig.offset_source, [])

    def test_rejects_negative_offset(self, rig):
        with pytest.raises(ValueError, match="y_offset"):
            rig.make_tracker(y_offset=-0.1)

    def test_rejects_non_pose_goal(self, rig):
        with pytest.raises(ValueError, match="Pose2D"):
            rig.make_tracker(goal=(3.0, 0.0, 0.0))

    def test_rejects_bad_offset_value(self, rig):
        tracker = rig.make_tracker()
        rig.offset = "left"
        with pytest.raises(ValueError, match="GoalOffset"):
            tracker.start()
