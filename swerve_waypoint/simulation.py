"""
Closed-loop simulation of the waypoint tracker on a swerve drive plant.

This module provides everything needed to exercise WaypointTracker without
hardware: a simulated clock, a kinematic swerve plant with optional module
lag, pose noise and gyro bias, a scripted goal offset source, and a
fixed-period runner that wires them together and optionally records the run
through a DataCollector.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .component_modes import ComponentMode
from .config import (
    CONTROL_PERIOD,
    DEFAULT_Y_OFFSET,
    GYRO_RATE_CORRECTION_WEIGHT,
    MAX_WHEEL_SPEED,
    SIM_DEFAULT_DURATION,
    SIM_GYRO_BIAS,
    SIM_MODULE_RESPONSE,
    SIM_POSE_NOISE_STD,
    TERM_BLUE,
    TERM_ORANGE,
    TERM_RESET,
)
from .controllers import default_holonomic_controller
from .data_collector import DataCollector
from .geometry import ChassisSpeeds, GoalOffset, Pose2D
from .kinematics import SwerveDriveKinematics, WheelState
from .timer import Timer
from .tracker import TrackerState, WaypointTracker


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record based on its level.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class SimulatedClock:
    """Time source advanced in whole control periods.

    Time is computed as ticks * period rather than accumulated, so tick n
    reads exactly n * period.
    """

    def __init__(self, period: float = CONTROL_PERIOD) -> None:
        if period <= 0.0:
            raise ValueError(f"Clock period must be positive, got {period}")
        self.period = period
        self.ticks: int = 0

    def __call__(self) -> float:
        return self.ticks * self.period

    def advance(self, ticks: int = 1) -> None:
        self.ticks += ticks


def parse_offset_change(text: str) -> Tuple[float, GoalOffset]:
    """Parse a scheduled offset change of the form ``TIME:OFFSET``.

    Args:
        text: e.g. "1.5:left"

    Returns:
        (time in seconds, GoalOffset)

    Raises:
        ValueError: If the text is malformed, the time is negative or
            non-finite, or the offset name is unknown.
    """
    time_text, sep, offset_text = text.partition(":")
    if not sep:
        raise ValueError(f"Offset change must look like TIME:OFFSET, got {text!r}")
    try:
        at = float(time_text)
    except ValueError:
        raise ValueError(f"Invalid time in offset change {text!r}") from None
    if not math.isfinite(at) or at < 0.0:
        raise ValueError(f"Offset change time must be a non-negative number, got {text!r}")
    return at, GoalOffset.parse(offset_text)


class ScriptedOffsetSource:
    """Goal offset source that follows a fixed (time, offset) schedule.

    Returns the offset of the latest schedule entry whose time has been
    reached, or the initial offset before the first entry.
    """

    def __init__(
        self,
        clock: SimulatedClock,
        schedule: Sequence[Tuple[float, GoalOffset]] = (),
        initial: GoalOffset = GoalOffset.CENTER,
    ) -> None:
        self.clock = clock
        self.schedule: List[Tuple[float, GoalOffset]] = sorted(schedule, key=lambda entry: entry[0])
        self.initial = initial

    def __call__(self) -> GoalOffset:
        now = self.clock()
        current = self.initial
        for at, offset in self.schedule:
            if at > now:
                break
            current = offset
        return current


class SwerveSimulator:
    """Kinematic swerve drive plant.

    Wheel states received from the tracker are mapped back to chassis speeds
    with the least-squares forward kinematics. The achieved speeds follow the
    commanded ones through a first-order response (1.0 = instant), are
    rotated into the field frame and integrated each step.

    Attributes:
        pose: True field pose of the robot
        speeds: Achieved robot-relative chassis speeds
        commanded: Last wheel states received
    """

    def __init__(
        self,
        initial_pose: Optional[Pose2D] = None,
        kinematics: Optional[SwerveDriveKinematics] = None,
        module_response: float = SIM_MODULE_RESPONSE,
        pose_noise_std: float = SIM_POSE_NOISE_STD,
        gyro_bias: float = SIM_GYRO_BIAS,
        seed: Optional[int] = None,
    ) -> None:
        """Initialize the plant at rest.

        Args:
            initial_pose: Starting pose. Default: origin facing +x
            kinematics: Module layout. Default: config geometry
            module_response: Fraction of the speed error closed per step, in (0, 1]
            pose_noise_std: Standard deviation of measurement noise on x, y and
                heading (meters / radians)
            gyro_bias: Constant bias added to the measured yaw rate (rad/s)
            seed: Seed for the noise generator

        Raises:
            ValueError: If module_response is outside (0, 1] or the noise
                level is negative.
        """
        if not 0.0 < module_response <= 1.0:
            raise ValueError(f"module_response must be in (0, 1], got {module_response}")
        if pose_noise_std < 0.0:
            raise ValueError(f"pose_noise_std must be non-negative, got {pose_noise_std}")

        self.pose = initial_pose if initial_pose is not None else Pose2D()
        self.kinematics = kinematics if kinematics is not None else SwerveDriveKinematics()
        self.module_response = module_response
        self.pose_noise_std = pose_noise_std
        self.gyro_bias = gyro_bias
        self.rng = np.random.default_rng(seed)

        self.speeds = ChassisSpeeds()
        self.commanded: List[WheelState] = []

    def apply_wheel_states(self, states: List[WheelState]) -> None:
        """Wheel sink: latch the commanded module states."""
        self.commanded = list(states)

    def step(self, dt: float) -> None:
        """Advance the plant by ``dt`` seconds."""
        if self.commanded:
            target = self.kinematics.to_chassis_speeds(self.commanded)
        else:
            target = ChassisSpeeds()

        k = self.module_response
        self.speeds = ChassisSpeeds(
            self.speeds.vx + k * (target.vx - self.speeds.vx),
            self.speeds.vy + k * (target.vy - self.speeds.vy),
            self.speeds.omega + k * (target.omega - self.speeds.omega),
        )

        # Integrate at the mid-step heading
        mid_heading = self.pose.heading + 0.5 * self.speeds.omega * dt
        field_vx, field_vy, omega = self.speeds.to_field_relative(mid_heading)
        self.pose = Pose2D(
            self.pose.x + field_vx * dt,
            self.pose.y + field_vy * dt,
            self.pose.heading + omega * dt,
        )

    def measured_pose(self) -> Pose2D:
        """Pose source: true pose plus Gaussian measurement noise."""
        if self.pose_noise_std == 0.0:
            return self.pose
        noise = self.rng.normal(0.0, self.pose_noise_std, size=3)
        return Pose2D(
            self.pose.x + noise[0],
            self.pose.y + noise[1],
            self.pose.heading + noise[2],
        )

    def gyro_rate(self) -> float:
        """Measured yaw rate (rad/s), including bias."""
        return self.speeds.omega + self.gyro_bias

    def gyro_rate_correction(self) -> float:
        """Gyro source: weighted yaw rate subtracted from the heading target."""
        return GYRO_RATE_CORRECTION_WEIGHT * self.gyro_rate()


@dataclass
class SimulationResult:
    """Outcome of a simulated run.

    Attributes:
        final_pose: True pose of the plant at the end of the run
        goal: Goal the tracker was driving to at the end (None if never planned)
        state: Final tracker state
        ticks: Number of control ticks executed
        replan_count: Number of successful replans
        failure_reason: Reason given by the generator if the tracker failed
        run_dir: Directory the run was recorded to, if any
    """

    final_pose: Pose2D
    goal: Optional[Pose2D]
    state: TrackerState
    ticks: int
    replan_count: int
    failure_reason: Optional[str] = None
    run_dir: Optional[Path] = None

    @property
    def residual(self) -> float:
        """Distance from the final pose to the goal (inf if never planned)."""
        if self.goal is None:
            return math.inf
        return self.final_pose.distance_to(self.goal)


def run_simulation(
    goal: Pose2D,
    y_offset: float = DEFAULT_Y_OFFSET,
    duration: float = SIM_DEFAULT_DURATION,
    offset_changes: Sequence[Tuple[float, GoalOffset]] = (),
    start_pose: Optional[Pose2D] = None,
    component_mode: Optional[ComponentMode] = None,
    pose_noise_std: float = SIM_POSE_NOISE_STD,
    gyro_bias: float = SIM_GYRO_BIAS,
    module_response: float = SIM_MODULE_RESPONSE,
    seed: Optional[int] = None,
    data_collector: Optional[DataCollector] = None,
    period: float = CONTROL_PERIOD,
) -> SimulationResult:
    """Run the tracker against the simulated plant for ``duration`` seconds.

    Each tick: the tracker reads the plant, emits wheel states to it, then the
    plant integrates one period and the clock advances. The run ends early if
    the tracker fails.

    Args:
        goal: Fixed goal pose
        y_offset: Lateral distance used for LEFT/RIGHT offsets (meters)
        duration: Simulated seconds to run
        offset_changes: Schedule of (time, GoalOffset); CENTER before the first
        start_pose: Initial plant pose. Default: origin
        component_mode: Which tracking components are active. Default: all
        pose_noise_std: Measurement noise on the pose source
        gyro_bias: Bias on the simulated gyro (rad/s)
        module_response: Plant first-order response per step, in (0, 1]
        seed: Noise generator seed
        data_collector: If given (and set up), records every tick and event
        period: Control period (seconds)

    Returns:
        SimulationResult describing the end of the run
    """
    if component_mode is None:
        component_mode = ComponentMode()

    clock = SimulatedClock(period)
    plant = SwerveSimulator(
        initial_pose=start_pose,
        module_response=module_response,
        pose_noise_std=pose_noise_std,
        gyro_bias=gyro_bias,
        seed=seed,
    )
    offsets = ScriptedOffsetSource(clock, offset_changes)
    if data_collector is not None:
        # Rows are stamped with simulated time
        data_collector.time_source = clock

    controller = default_holonomic_controller(period)
    controller.set_enabled(component_mode.use_feedback)

    if component_mode.use_gyro_correction:
        gyro_source = plant.gyro_rate_correction
    else:
        gyro_source = lambda: 0.0  # noqa: E731

    tracker = WaypointTracker(
        goal,
        y_offset,
        pose_source=plant.measured_pose,
        gyro_rate_source=gyro_source,
        offset_source=offsets,
        wheel_sink=plant.apply_wheel_states,
        kinematics=plant.kinematics,
        controller=controller,
        timer=Timer(clock),
        observer=data_collector.log_snapshot if data_collector is not None else None,
        max_wheel_speed=MAX_WHEEL_SPEED if component_mode.use_desaturation else None,
    )

    logging.info(f"{TERM_BLUE}Components: {component_mode}{TERM_RESET}")
    tracker.start()
    if data_collector is not None:
        data_collector.log_event("start", offsets().value, f"goal=({goal.x:.3f}, {goal.y:.3f})")

    total_ticks = int(round(duration / period))
    ticks = 0
    for _ in range(total_ticks):
        if tracker.is_done():
            break
        tracker.update()
        plant.step(period)
        clock.advance()
        ticks += 1

    tracker.stop()

    failure_reason = tracker.failure.reason if tracker.failure is not None else None
    if failure_reason is not None:
        logging.info(f"{TERM_ORANGE}✗ Tracker failed after {ticks} ticks: {failure_reason}{TERM_RESET}")
        if data_collector is not None:
            data_collector.log_event("failed", tracker.previous_offset.value, failure_reason)

    result = SimulationResult(
        final_pose=plant.pose,
        goal=tracker.active_goal,
        state=tracker.state,
        ticks=ticks,
        replan_count=tracker.replan_count,
        failure_reason=failure_reason,
        run_dir=data_collector.run_dir if data_collector is not None else None,
    )

    if result.goal is not None:
        logging.info(
            f"{TERM_BLUE}✓ Finished at ({plant.pose.x:.3f}, {plant.pose.y:.3f}), "
            f"{result.residual:.3f}m from goal after {ticks * period:.2f}s "
            f"({result.replan_count} replans){TERM_RESET}"
        )
        if data_collector is not None:
            data_collector.log_summary(plant.pose, result.goal, failure_reason is not None)

    return result
