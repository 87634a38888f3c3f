"""Feedback controllers for holonomic trajectory tracking.

This module provides the feedback layer that sits between the trajectory
sampler and the swerve kinematics, correcting for lateral and heading drift
from model mismatch, wheel slip, and disturbances.

- PIDController: position controller with clamped integrator (x and y axes)
- TrapezoidProfile: bounded velocity/acceleration motion profile
- ProfiledPIDController: PID tracking a trapezoidal setpoint (heading)
- HolonomicDriveController: combines the three into chassis speeds
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import (
    CONTROL_PERIOD,
    THETA_KD,
    THETA_KI,
    THETA_KP,
    THETA_MAX_ACCELERATION,
    THETA_MAX_VELOCITY,
    THETA_TOLERANCE,
    X_INTEGRATOR_RANGE,
    X_KD,
    X_KI,
    X_KP,
    X_TOLERANCE,
    Y_INTEGRATOR_RANGE,
    Y_KD,
    Y_KI,
    Y_KP,
    Y_TOLERANCE,
)
from .geometry import ChassisSpeeds, Pose2D, angle_difference, wrap_angle
from .trajectory import TrajectoryState


def input_modulus(value: float, minimum_input: float, maximum_input: float) -> float:
    """Wrap ``value`` into [minimum_input, maximum_input] for continuous inputs.

    Args:
        value: Value to wrap
        minimum_input: Lower bound of the input range
        maximum_input: Upper bound of the input range

    Returns:
        Equivalent value within the range
    """
    modulus = maximum_input - minimum_input

    # Wrap input if it's above the maximum input
    num_max = int((value - minimum_input) / modulus)
    value -= num_max * modulus

    # Wrap input if it's below the minimum input
    num_min = int((value - maximum_input) / modulus)
    value -= num_min * modulus

    return value


@dataclass(frozen=True)
class PIDGains:
    """Gains for one linear axis.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        integrator_range: (min, max) clamp on the integral contribution
        tolerance: Position error considered "at setpoint" (reporting only)
    """

    kp: float
    ki: float = 0.0
    kd: float = 0.0
    integrator_range: Tuple[float, float] = (-1.0, 1.0)
    tolerance: float = 0.05


@dataclass(frozen=True)
class ProfiledPIDGains(PIDGains):
    """Gains for a profiled axis.

    Attributes:
        max_velocity: Profile velocity limit (units/s)
        max_acceleration: Profile acceleration limit (units/s²)
    """

    max_velocity: float = math.inf
    max_acceleration: float = math.inf


X_GAINS = PIDGains(X_KP, X_KI, X_KD, X_INTEGRATOR_RANGE, X_TOLERANCE)
Y_GAINS = PIDGains(Y_KP, Y_KI, Y_KD, Y_INTEGRATOR_RANGE, Y_TOLERANCE)
THETA_GAINS = ProfiledPIDGains(
    THETA_KP,
    THETA_KI,
    THETA_KD,
    tolerance=THETA_TOLERANCE,
    max_velocity=THETA_MAX_VELOCITY,
    max_acceleration=THETA_MAX_ACCELERATION,
)


class PIDController:
    """PID position controller with anti-windup.

    Control law:
        error = setpoint - measurement
        output = kp * error + ki * integral(error) + kd * d(error)/dt

    The integral is accumulated once per period and clamped so that
    ki * integral stays within the integrator range.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        period: Time between calculate() calls (seconds)
    """

    def __init__(self, kp: float, ki: float = 0.0, kd: float = 0.0, period: float = CONTROL_PERIOD):
        """Initialize the controller.

        Args:
            kp: Proportional gain. Output units per unit of error.
            ki: Integral gain. Default: 0.0 (no integral action)
            kd: Derivative gain. Default: 0.0 (no derivative action)
            period: Loop period in seconds. Default: config.CONTROL_PERIOD

        Raises:
            ValueError: If period is not positive.
        """
        if period <= 0.0:
            raise ValueError(f"Controller period must be positive, got {period}")

        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.period = period

        # Anti-windup limits on ki * integral
        self.integrator_min: float = -1.0
        self.integrator_max: float = 1.0

        self.position_tolerance: float = 0.05
        self.velocity_tolerance: float = math.inf

        self.continuous: bool = False
        self.minimum_input: float = 0.0
        self.maximum_input: float = 0.0

        self.setpoint: float = 0.0
        self.measurement: float = 0.0

        # Integral state (accumulated error) and previous-error history
        self.total_error: float = 0.0
        self.position_error: float = 0.0
        self.velocity_error: float = 0.0
        self._have_setpoint: bool = False
        self._have_measurement: bool = False

    @classmethod
    def from_gains(cls, gains: PIDGains, period: float = CONTROL_PERIOD) -> "PIDController":
        controller = cls(gains.kp, gains.ki, gains.kd, period)
        controller.set_integrator_range(*gains.integrator_range)
        controller.set_tolerance(gains.tolerance)
        return controller

    def set_integrator_range(self, minimum: float, maximum: float) -> None:
        """Clamp the integral contribution to [minimum, maximum] output units."""
        if minimum > maximum:
            raise ValueError(f"Integrator range is inverted: ({minimum}, {maximum})")
        self.integrator_min = minimum
        self.integrator_max = maximum

    def set_tolerance(self, position_tolerance: float, velocity_tolerance: float = math.inf) -> None:
        self.position_tolerance = position_tolerance
        self.velocity_tolerance = velocity_tolerance

    def enable_continuous_input(self, minimum_input: float, maximum_input: float) -> None:
        """Treat the input range as circular (e.g. angles)."""
        self.continuous = True
        self.minimum_input = minimum_input
        self.maximum_input = maximum_input

    def _error(self, setpoint: float, measurement: float) -> float:
        if self.continuous:
            error_bound = (self.maximum_input - self.minimum_input) / 2.0
            return input_modulus(setpoint - measurement, -error_bound, error_bound)
        return setpoint - measurement

    def calculate(self, measurement: float, setpoint: Optional[float] = None) -> float:
        """Compute the controller output for one period.

        Args:
            measurement: Current process value
            setpoint: New setpoint. If None, the previous setpoint is kept.

        Returns:
            Controller output
        """
        if setpoint is not None:
            self.setpoint = setpoint
            self._have_setpoint = True
        self.measurement = measurement

        previous_error = self.position_error
        self.position_error = self._error(self.setpoint, measurement)

        # No derivative kick on the first sample after a reset
        if self._have_measurement:
            self.velocity_error = (self.position_error - previous_error) / self.period
        else:
            self.velocity_error = 0.0
        self._have_measurement = True

        if self.ki != 0.0:
            self.total_error = max(
                self.integrator_min / self.ki,
                min(self.integrator_max / self.ki, self.total_error + self.position_error * self.period),
            )

        return (
            self.kp * self.position_error
            + self.ki * self.total_error
            + self.kd * self.velocity_error
        )

    def at_setpoint(self) -> bool:
        """Whether the last error was within tolerance. Reporting only."""
        return (
            self._have_setpoint
            and self._have_measurement
            and abs(self.position_error) < self.position_tolerance
            and abs(self.velocity_error) < self.velocity_tolerance
        )

    def reset(self) -> None:
        """Clear integral and derivative history."""
        self.total_error = 0.0
        self.position_error = 0.0
        self.velocity_error = 0.0
        self._have_measurement = False


@dataclass(frozen=True)
class Constraints:
    """Trapezoid profile limits."""

    max_velocity: float
    max_acceleration: float


@dataclass(frozen=True)
class ProfileState:
    """Position and velocity on a motion profile."""

    position: float = 0.0
    velocity: float = 0.0


class TrapezoidProfile:
    """Time-optimal motion from an initial state to a goal state.

    The profile accelerates at max_acceleration until max_velocity, cruises,
    and decelerates at max_acceleration to arrive at the goal. Profiles that
    move in the negative direction are computed mirrored and flipped back.
    """

    def __init__(
        self,
        constraints: Constraints,
        goal: ProfileState,
        initial: ProfileState = ProfileState(),
    ):
        self.constraints = constraints
        self._direction = -1.0 if initial.position > goal.position else 1.0

        self._initial = self._direct(initial)
        self._goal = self._direct(goal)
        if self._initial.velocity > constraints.max_velocity:
            self._initial = ProfileState(self._initial.position, constraints.max_velocity)

        max_v = constraints.max_velocity
        max_a = constraints.max_acceleration

        # Distances that would be covered ramping from/to rest at the ends
        cutoff_begin = self._initial.velocity / max_a
        cutoff_dist_begin = cutoff_begin * cutoff_begin * max_a / 2.0
        cutoff_end = self._goal.velocity / max_a
        cutoff_dist_end = cutoff_end * cutoff_end * max_a / 2.0

        full_trapezoid_dist = (
            cutoff_dist_begin + (self._goal.position - self._initial.position) + cutoff_dist_end
        )
        acceleration_time = max_v / max_a if math.isfinite(max_v) else math.inf

        full_speed_dist = full_trapezoid_dist - acceleration_time * acceleration_time * max_a
        if not math.isfinite(full_speed_dist) or full_speed_dist < 0.0:
            acceleration_time = math.sqrt(max(full_trapezoid_dist, 0.0) / max_a)
            full_speed_dist = 0.0

        self._end_accel = acceleration_time - cutoff_begin
        self._end_full_speed = self._end_accel + full_speed_dist / max_v
        self._end_deccel = self._end_full_speed + acceleration_time - cutoff_end

    def _direct(self, state: ProfileState) -> ProfileState:
        return ProfileState(state.position * self._direction, state.velocity * self._direction)

    def calculate(self, t: float) -> ProfileState:
        """Profile state ``t`` seconds after the initial state."""
        max_a = self.constraints.max_acceleration
        max_v = self.constraints.max_velocity
        initial = self._initial

        if t < self._end_accel:
            velocity = initial.velocity + t * max_a
            position = initial.position + (initial.velocity + t * max_a / 2.0) * t
        elif t < self._end_full_speed:
            velocity = max_v
            position = (
                initial.position
                + (initial.velocity + self._end_accel * max_a / 2.0) * self._end_accel
                + max_v * (t - self._end_accel)
            )
        elif t <= self._end_deccel:
            time_left = self._end_deccel - t
            velocity = self._goal.velocity + time_left * max_a
            position = self._goal.position - (self._goal.velocity + time_left * max_a / 2.0) * time_left
        else:
            return self._direct(self._goal)

        return self._direct(ProfileState(position, velocity))

    def total_time(self) -> float:
        return self._end_deccel

    def is_finished(self, t: float) -> bool:
        return t >= self.total_time()


class ProfiledPIDController:
    """PID controller whose setpoint follows a trapezoidal profile to the goal.

    Each calculate() advances the setpoint one period along a profile from the
    previous setpoint to the goal, bounding how fast the commanded target can
    move. With continuous input enabled the goal and setpoint are taken along
    the shortest way round.
    """

    def __init__(
        self,
        kp: float,
        ki: float,
        kd: float,
        constraints: Constraints,
        period: float = CONTROL_PERIOD,
    ):
        self.controller = PIDController(kp, ki, kd, period)
        self.constraints = constraints
        self.goal = ProfileState()
        self.setpoint = ProfileState()

    @classmethod
    def from_gains(cls, gains: ProfiledPIDGains, period: float = CONTROL_PERIOD) -> "ProfiledPIDController":
        controller = cls(
            gains.kp,
            gains.ki,
            gains.kd,
            Constraints(gains.max_velocity, gains.max_acceleration),
            period,
        )
        controller.controller.set_integrator_range(*gains.integrator_range)
        controller.controller.set_tolerance(gains.tolerance)
        return controller

    @property
    def period(self) -> float:
        return self.controller.period

    @property
    def position_error(self) -> float:
        return self.controller.position_error

    def enable_continuous_input(self, minimum_input: float, maximum_input: float) -> None:
        self.controller.enable_continuous_input(minimum_input, maximum_input)

    def set_tolerance(self, position_tolerance: float, velocity_tolerance: float = math.inf) -> None:
        self.controller.set_tolerance(position_tolerance, velocity_tolerance)

    def calculate(self, measurement: float, goal: Optional[float] = None) -> float:
        """Advance the profiled setpoint and compute the controller output.

        Args:
            measurement: Current process value
            goal: New goal position (velocity 0). If None, keeps the old goal.

        Returns:
            Controller output
        """
        if goal is not None:
            self.goal = ProfileState(goal, 0.0)

        if self.controller.continuous:
            error_bound = (self.controller.maximum_input - self.controller.minimum_input) / 2.0
            goal_min_distance = input_modulus(self.goal.position - measurement, -error_bound, error_bound)
            setpoint_min_distance = input_modulus(
                self.setpoint.position - measurement, -error_bound, error_bound
            )
            self.goal = ProfileState(goal_min_distance + measurement, self.goal.velocity)
            self.setpoint = ProfileState(setpoint_min_distance + measurement, self.setpoint.velocity)

        profile = TrapezoidProfile(self.constraints, self.goal, self.setpoint)
        self.setpoint = profile.calculate(self.period)
        return self.controller.calculate(measurement, self.setpoint.position)

    def at_setpoint(self) -> bool:
        return self.controller.at_setpoint()

    def reset(self, measured_position: float, measured_velocity: float = 0.0) -> None:
        """Clear PID history and restart the profile from the measured state."""
        self.controller.reset()
        self.setpoint = ProfileState(measured_position, measured_velocity)


class HolonomicDriveController:
    """Trajectory tracking controller for a holonomic drivetrain.

    Combines independent x and y position controllers with a profiled heading
    controller. Translation tracks the sampled trajectory state; heading
    tracks a separately supplied desired heading, so the robot can face one
    way while driving another.

    Control law (field frame, then rotated into the robot frame):
        vx = v_ref * cos(theta_ref) + PID_x(x_ref - x)
        vy = v_ref * sin(theta_ref) + PID_y(y_ref - y)
        omega = PID_theta(desired_heading - gyro_correction - theta)
    """

    def __init__(
        self,
        x_controller: PIDController,
        y_controller: PIDController,
        theta_controller: ProfiledPIDController,
    ):
        """Initialize the holonomic controller.

        Args:
            x_controller: Field x position controller
            y_controller: Field y position controller
            theta_controller: Heading controller. Continuous input over
                (-π, π] is enabled on it here.

        Raises:
            ValueError: If a controller is missing.
        """
        for name, controller in (
            ("x_controller", x_controller),
            ("y_controller", y_controller),
            ("theta_controller", theta_controller),
        ):
            if controller is None:
                raise ValueError(f"HolonomicDriveController requires {name}")

        self.x_controller = x_controller
        self.y_controller = y_controller
        self.theta_controller = theta_controller
        self.theta_controller.enable_continuous_input(-math.pi, math.pi)

        self.enabled: bool = True
        self._first_run: bool = True

        # Last computed errors, for diagnostics
        self.pose_error = Pose2D()
        self.heading_error: float = 0.0

    def set_enabled(self, enabled: bool) -> None:
        """Enable or bypass x/y feedback. Heading control always runs."""
        self.enabled = enabled

    def calculate(
        self,
        measured_pose: Pose2D,
        desired_state: TrajectoryState,
        desired_heading: float,
        gyro_rate_correction: float = 0.0,
    ) -> ChassisSpeeds:
        """Compute robot-relative chassis speeds for one control period.

        Args:
            measured_pose: Live field-relative robot pose
            desired_state: Sampled trajectory state (pose and tangent velocity)
            desired_heading: Heading the robot should face (radians)
            gyro_rate_correction: Weighted gyro rate subtracted from the
                desired heading before the error is computed (rad/s)

        Returns:
            Robot-relative ChassisSpeeds
        """
        if self._first_run:
            self.theta_controller.reset(measured_pose.heading)
            self._first_run = False

        reference = desired_state.pose
        x_ff = desired_state.velocity * math.cos(reference.heading)
        y_ff = desired_state.velocity * math.sin(reference.heading)

        target_heading = wrap_angle(desired_heading - gyro_rate_correction)
        omega = self.theta_controller.calculate(measured_pose.heading, target_heading)

        self.pose_error = reference.relative_to(measured_pose)
        self.heading_error = angle_difference(target_heading, measured_pose.heading)

        if not self.enabled:
            return ChassisSpeeds.from_field_relative(x_ff, y_ff, omega, measured_pose.heading)

        x_feedback = self.x_controller.calculate(measured_pose.x, reference.x)
        y_feedback = self.y_controller.calculate(measured_pose.y, reference.y)

        return ChassisSpeeds.from_field_relative(
            x_ff + x_feedback, y_ff + y_feedback, omega, measured_pose.heading
        )

    def at_reference(self) -> bool:
        """Whether every axis is within its tolerance. Reporting only."""
        return (
            self.x_controller.at_setpoint()
            and self.y_controller.at_setpoint()
            and self.theta_controller.at_setpoint()
        )

    def reset(self) -> None:
        """Clear every axis' history; heading restarts from the next measurement."""
        self.x_controller.reset()
        self.y_controller.reset()
        self._first_run = True

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information for logging and debugging.

        Returns:
            Dictionary containing per-axis errors and integral states
        """
        return {
            "x_error": self.x_controller.position_error,
            "y_error": self.y_controller.position_error,
            "heading_error": self.heading_error,
            "x_integral": self.x_controller.total_error,
            "y_integral": self.y_controller.total_error,
            "theta_setpoint": self.theta_controller.setpoint.position,
        }


def default_holonomic_controller(period: float = CONTROL_PERIOD) -> HolonomicDriveController:
    """Build a HolonomicDriveController with the gains from config."""
    return HolonomicDriveController(
        PIDController.from_gains(X_GAINS, period),
        PIDController.from_gains(Y_GAINS, period),
        ProfiledPIDController.from_gains(THETA_GAINS, period),
    )
