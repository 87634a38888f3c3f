"""Time-parameterized trajectory and sampling.

A trajectory is an immutable, time-ordered sequence of states produced by the
generator. The tracker samples it every control tick at the elapsed time since
the trajectory started.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
import numpy.typing as npt

from .geometry import Pose2D, angle_difference


@dataclass(frozen=True)
class TrajectoryState:
    """One time-stamped point on a trajectory.

    Attributes:
        time: Seconds since the start of the trajectory
        pose: Desired pose at that time
        velocity: Signed speed along the path tangent (m/s)
        acceleration: Signed acceleration along the path tangent (m/s²)
        curvature: Path curvature (rad/m), zero for straight paths
    """

    time: float
    pose: Pose2D
    velocity: float = 0.0
    acceleration: float = 0.0
    curvature: float = 0.0


@dataclass(frozen=True)
class Trajectory:
    """Immutable sequence of trajectory states.

    Timestamps start at 0 and increase strictly. Replanning replaces the
    whole object; nothing mutates a trajectory after generation.
    """

    states: Tuple[TrajectoryState, ...]
    _times: npt.NDArray[np.float64] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        states = tuple(self.states)
        if not states:
            raise ValueError("A trajectory needs at least one state")
        if states[0].time != 0.0:
            raise ValueError(f"First trajectory timestamp must be 0, got {states[0].time}")

        times = np.array([s.time for s in states], dtype=np.float64)
        if np.any(np.diff(times) <= 0.0):
            raise ValueError("Trajectory timestamps must be strictly increasing")

        object.__setattr__(self, "states", states)
        object.__setattr__(self, "_times", times)

    @property
    def duration(self) -> float:
        """Total time of the trajectory (seconds)."""
        return self.states[-1].time

    @property
    def initial_state(self) -> TrajectoryState:
        return self.states[0]

    @property
    def final_state(self) -> TrajectoryState:
        return self.states[-1]

    @property
    def start_pose(self) -> Pose2D:
        return self.states[0].pose

    @property
    def end_pose(self) -> Pose2D:
        return self.states[-1].pose

    def __len__(self) -> int:
        return len(self.states)

    def sample(self, t: float) -> TrajectoryState:
        """Desired state at time ``t``. See :func:`sample_trajectory`."""
        return sample_trajectory(self, t)

    def as_arrays(self) -> Dict[str, npt.NDArray[np.float64]]:
        """Export states as numpy arrays for plotting.

        Returns:
            Dictionary containing:
                't': Timestamps (s)
                'x': X positions (m)
                'y': Y positions (m)
                'heading': Headings (rad)
                'velocity': Tangent velocities (m/s)
        """
        return {
            "t": self._times.copy(),
            "x": np.array([s.pose.x for s in self.states]),
            "y": np.array([s.pose.y for s in self.states]),
            "heading": np.array([s.pose.heading for s in self.states]),
            "velocity": np.array([s.velocity for s in self.states]),
        }


def _lerp(start: float, end: float, fraction: float) -> float:
    return start + (end - start) * fraction


def interpolate_states(
    start: TrajectoryState, end: TrajectoryState, t: float
) -> TrajectoryState:
    """Linearly interpolate between two bracketing states at time ``t``.

    Heading is interpolated along the shortest arc between the two headings.
    """
    span = end.time - start.time
    fraction = 0.0 if span <= 0.0 else (t - start.time) / span

    heading = start.pose.heading + angle_difference(end.pose.heading, start.pose.heading) * fraction
    pose = Pose2D(
        _lerp(start.pose.x, end.pose.x, fraction),
        _lerp(start.pose.y, end.pose.y, fraction),
        heading,
    )
    return TrajectoryState(
        time=t,
        pose=pose,
        velocity=_lerp(start.velocity, end.velocity, fraction),
        acceleration=_lerp(start.acceleration, end.acceleration, fraction),
        curvature=_lerp(start.curvature, end.curvature, fraction),
    )


def sample_trajectory(trajectory: Trajectory, t: float) -> TrajectoryState:
    """Sample the desired state of a trajectory at time ``t``.

    Times before the start return the first state and times after the end
    return the last state; pose and velocity are held, never extrapolated.

    Args:
        trajectory: Trajectory to sample
        t: Seconds since the trajectory started

    Returns:
        The interpolated TrajectoryState
    """
    states = trajectory.states
    if math.isnan(t) or t <= 0.0:
        return states[0]
    if t >= trajectory.duration:
        return states[-1]

    # First index whose timestamp is >= t; 1 <= idx <= len - 1 here
    idx = int(np.searchsorted(trajectory._times, t, side="left"))
    upper = states[idx]
    if upper.time == t:
        return upper
    return interpolate_states(states[idx - 1], upper, t)
