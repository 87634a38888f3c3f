"""Shared fixtures: a hand-advanced clock and a scripted collaborator rig."""

from typing import List

import matplotlib

matplotlib.use("Agg")

import pytest  # noqa: E402

from swerve_waypoint.geometry import GoalOffset, Pose2D  # noqa: E402
from swerve_waypoint.kinematics import WheelState  # noqa: E402
from swerve_waypoint.timer import Timer  # noqa: E402
from swerve_waypoint.tracker import WaypointTracker  # noqa: E402


class FakeClock:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TrackerRig:
    """Scripted pose, gyro and offset sources plus a recording wheel sink."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.pose = Pose2D(0.0, 0.0, 0.0)
        self.gyro = 0.0
        self.offset = GoalOffset.CENTER
        self.emitted: List[List[WheelState]] = []
        self.snapshots = []

    def pose_source(self) -> Pose2D:
        return self.pose

    def gyro_source(self) -> float:
        return self.gyro

    def offset_source(self) -> GoalOffset:
        return self.offset

    def sink(self, states: List[WheelState]) -> None:
        self.emitted.append(states)

    def observer(self, snapshot) -> None:
        self.snapshots.append(snapshot)

    def make_tracker(self, goal: Pose2D = Pose2D(3.0, 0.0, 0.0), y_offset: float = 0.5, **kwargs):
        kwargs.setdefault("timer", Timer(self.clock))
        kwargs.setdefault("observer", self.observer)
        return WaypointTracker(
            goal,
            y_offset,
            pose_source=self.pose_source,
            gyro_rate_source=self.gyro_source,
            offset_source=self.offset_source,
            wheel_sink=self.sink,
            **kwargs,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rig(clock: FakeClock) -> TrackerRig:
    return TrackerRig(clock)


@pytest.fixture
def clean_run_dir_env(monkeypatch):
    monkeypatch.delenv("RUN_DIR", raising=False)
