"""Trajectory generation between two poses.

This module builds the reference trajectory the tracker follows:
- Straight path from the start translation to the goal translation
- Both end headings face the direction of travel
- Trapezoidal velocity profile seeded with the current speed, so a replan
  continues from the speed the robot already has

Generation never raises for bad geometry or limits. It returns an
InfeasiblePath value instead, and the caller decides what that means.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np

from .config import (
    GENERATOR_EPSILON,
    TRAJECTORY_MAX_ACCELERATION,
    TRAJECTORY_MAX_VELOCITY,
    TRAJECTORY_SAMPLE_PERIOD,
)
from .geometry import Pose2D
from .trajectory import Trajectory, TrajectoryState


@dataclass(frozen=True)
class TrajectoryConfig:
    """Constraints for one generation call.

    Attributes:
        max_velocity: Cruise speed limit along the path (m/s)
        max_acceleration: Acceleration and deceleration limit (m/s²)
        start_velocity: Speed along the path at t=0 (m/s)
        end_velocity: Speed along the path at the goal (m/s)
        sample_period: Spacing of generated states (s)
    """

    max_velocity: float = TRAJECTORY_MAX_VELOCITY
    max_acceleration: float = TRAJECTORY_MAX_ACCELERATION
    start_velocity: float = 0.0
    end_velocity: float = 0.0
    sample_period: float = TRAJECTORY_SAMPLE_PERIOD

    def with_start_velocity(self, start_velocity: float) -> "TrajectoryConfig":
        return TrajectoryConfig(
            max_velocity=self.max_velocity,
            max_acceleration=self.max_acceleration,
            start_velocity=start_velocity,
            end_velocity=self.end_velocity,
            sample_period=self.sample_period,
        )


@dataclass(frozen=True)
class InfeasiblePath:
    """No trajectory satisfies the constraints for these inputs.

    Not retryable: the same inputs always fail the same way.

    Attributes:
        reason: Human-readable cause, suitable for logging
    """

    reason: str


GenerationResult = Union[Trajectory, InfeasiblePath]


class StraightLineProfile:
    """Closed-form trapezoidal velocity profile over a fixed distance.

    The profile accelerates from v0 towards the peak speed, cruises, then
    decelerates to v_end. When the distance is too short to reach
    max_velocity the cruise phase vanishes and the peak is:
        v_peak = sqrt((2 * a * d + v0² + v_end²) / 2)
    """

    def __init__(
        self,
        distance: float,
        start_velocity: float,
        end_velocity: float,
        max_velocity: float,
        max_acceleration: float,
    ):
        self.distance = distance
        self.start_velocity = start_velocity
        self.end_velocity = end_velocity
        self.max_acceleration = max_acceleration

        a = max_acceleration
        peak_squared = (2.0 * a * distance + start_velocity**2 + end_velocity**2) / 2.0
        # Never below either end speed, even when rounding shaves the square root
        self.peak_velocity = max(
            min(max_velocity, math.sqrt(peak_squared)), start_velocity, end_velocity
        )

        self.accel_time = (self.peak_velocity - start_velocity) / a
        self.accel_distance = (self.peak_velocity**2 - start_velocity**2) / (2.0 * a)
        self.decel_time = (self.peak_velocity - end_velocity) / a
        self.decel_distance = (self.peak_velocity**2 - end_velocity**2) / (2.0 * a)

        cruise_distance = max(0.0, distance - self.accel_distance - self.decel_distance)
        self.cruise_time = cruise_distance / self.peak_velocity
        self.cruise_end_time = self.accel_time + self.cruise_time
        self.duration = self.cruise_end_time + self.decel_time

    def evaluate(self, t: float) -> Tuple[float, float, float]:
        """Position, velocity and acceleration along the path at time ``t``.

        Args:
            t: Seconds since the profile started, clamped to [0, duration]

        Returns:
            (distance travelled m, velocity m/s, acceleration m/s²)
        """
        a = self.max_acceleration
        t = min(max(t, 0.0), self.duration)

        if t < self.accel_time:
            v = self.start_velocity + a * t
            s = self.start_velocity * t + 0.5 * a * t * t
            return s, v, a

        if t < self.cruise_end_time:
            s = self.accel_distance + self.peak_velocity * (t - self.accel_time)
            return s, self.peak_velocity, 0.0

        if t < self.duration:
            # Measured backwards from the end to land exactly on the goal
            remaining = self.duration - t
            v = self.end_velocity + a * remaining
            s = self.distance - (self.end_velocity * remaining + 0.5 * a * remaining * remaining)
            return s, v, -a

        return self.distance, self.end_velocity, 0.0


def _check_constraints(start: Pose2D, goal: Pose2D, config: TrajectoryConfig) -> Optional[str]:
    values = (
        start.x, start.y, start.heading, goal.x, goal.y, goal.heading,
        config.max_velocity, config.max_acceleration,
        config.start_velocity, config.end_velocity, config.sample_period,
    )
    if not all(math.isfinite(v) for v in values):
        return "non-finite pose or constraint"
    if config.max_velocity <= 0.0 or config.max_acceleration <= 0.0:
        return (
            f"limits must be positive (max_velocity={config.max_velocity}, "
            f"max_acceleration={config.max_acceleration})"
        )
    if config.sample_period <= 0.0:
        return f"sample period must be positive, got {config.sample_period}"
    for name, v in (("start", config.start_velocity), ("end", config.end_velocity)):
        if v < 0.0 or v > config.max_velocity + GENERATOR_EPSILON:
            return f"{name} velocity {v:.3f} m/s outside [0, {config.max_velocity:.3f}]"
    return None


def generate_trajectory(
    start_pose: Pose2D, goal_pose: Pose2D, config: TrajectoryConfig
) -> GenerationResult:
    """Generate a trajectory from ``start_pose`` to ``goal_pose``.

    The start and end headings of the trajectory both equal the bearing from
    start to goal; the heading the robot should finally face is supplied to
    the feedback controller separately.

    Args:
        start_pose: Pose the trajectory starts from (heading ignored)
        goal_pose: Pose the trajectory ends at (heading ignored)
        config: Velocity/acceleration constraints and start/end speeds

    Returns:
        Trajectory whose first state has velocity config.start_velocity and
        whose last state lies exactly on the goal, or InfeasiblePath when:
        - an input is non-finite or a limit is non-positive
        - a start/end velocity is negative or above max_velocity
        - start and goal positions coincide (zero-length path)
        - the path is too short to change speed from start to end velocity
    """
    problem = _check_constraints(start_pose, goal_pose, config)
    if problem is not None:
        return InfeasiblePath(problem)

    distance = start_pose.distance_to(goal_pose)
    if distance <= GENERATOR_EPSILON:
        return InfeasiblePath("zero-length path: start and goal positions coincide")

    a = config.max_acceleration
    required = abs(config.start_velocity**2 - config.end_velocity**2) / (2.0 * a)
    if required > distance + GENERATOR_EPSILON:
        return InfeasiblePath(
            f"path of {distance:.3f} m is shorter than the {required:.3f} m needed to go "
            f"from {config.start_velocity:.3f} to {config.end_velocity:.3f} m/s at {a:.3f} m/s²"
        )

    profile = StraightLineProfile(
        distance,
        config.start_velocity,
        config.end_velocity,
        config.max_velocity,
        config.max_acceleration,
    )

    bearing = start_pose.bearing_to(goal_pose)
    dx, dy = start_pose.translation_to(goal_pose)
    unit_x, unit_y = dx / distance, dy / distance

    times = np.arange(0.0, profile.duration, config.sample_period)
    if len(times) > 1 and profile.duration - times[-1] < GENERATOR_EPSILON:
        times = times[:-1]

    states: List[TrajectoryState] = []
    for t in times:
        s, v, accel = profile.evaluate(float(t))
        pose = Pose2D(start_pose.x + unit_x * s, start_pose.y + unit_y * s, bearing)
        states.append(TrajectoryState(float(t), pose, v, accel, 0.0))

    states.append(
        TrajectoryState(
            profile.duration,
            Pose2D(goal_pose.x, goal_pose.y, bearing),
            config.end_velocity,
            0.0,
            0.0,
        )
    )
    return Trajectory(tuple(states))


def generate(
    start_pose: Pose2D,
    start_velocity: float,
    goal_pose: Pose2D,
    max_velocity: float = TRAJECTORY_MAX_VELOCITY,
    max_acceleration: float = TRAJECTORY_MAX_ACCELERATION,
) -> GenerationResult:
    """Positional form of :func:`generate_trajectory`.

    Example:
        >>> result = generate(Pose2D(0, 0, 0), 0.0, Pose2D(3, 0, 0), 5.0, 2.0)
        >>> isinstance(result, Trajectory)
        True
    """
    config = TrajectoryConfig(
        max_velocity=max_velocity,
        max_acceleration=max_acceleration,
        start_velocity=start_velocity,
    )
    return generate_trajectory(start_pose, goal_pose, config)
