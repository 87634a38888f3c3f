"""Waypoint tracker: drive to a goal pose, replanning when the goal offset changes.

This module owns the live control loop state:
- The active trajectory and the clock measuring time along it
- The goal offset that trajectory was generated for
- The feedback controller whose integrators are reset on start and replan

Each update() samples the trajectory, runs the feedback controller, maps the
result to wheel states and hands them to the actuation sink. When the polled
goal offset differs from the one in use, the trajectory is regenerated from
the live pose, seeded with the speed the old trajectory commanded at that
instant, so the robot never has to stop to change target.

TrajectoryFollower is the simpler mode: it plays back one trajectory built
ahead of time and reports done once its duration has elapsed.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import CONTROL_PERIOD, TERM_BLUE, TERM_RESET
from .controllers import HolonomicDriveController, default_holonomic_controller
from .generator import InfeasiblePath, TrajectoryConfig, generate_trajectory
from .geometry import ChassisSpeeds, GoalOffset, Pose2D, angle_difference
from .kinematics import SwerveDriveKinematics, WheelState, desaturate_wheel_speeds
from .timer import Timer
from .trajectory import Trajectory, TrajectoryState

PoseSource = Callable[[], Pose2D]
GyroRateSource = Callable[[], float]
OffsetSource = Callable[[], GoalOffset]
WheelSink = Callable[[List[WheelState]], None]


class TrackerState(enum.Enum):
    """Lifecycle of a WaypointTracker."""

    IDLE = "idle"
    TRACKING = "tracking"
    REPLANNING = "replanning"  # transient, never observed between ticks
    FAILED = "failed"


@dataclass(frozen=True)
class TrackingSnapshot:
    """Everything one tick decided, for observers (logging, CSV, plots).

    Attributes:
        elapsed: Seconds along the active trajectory
        state: Tracker state after the tick
        offset: Goal offset in use
        measured_pose: Live pose used for feedback
        desired_state: Sampled trajectory state
        desired_heading: Heading target before gyro correction (radians)
        gyro_rate_correction: Correction subtracted from the heading target
        error_x: Desired minus measured x (meters)
        error_y: Desired minus measured y (meters)
        error_heading: Heading target minus measured heading (radians)
        speeds: Commanded robot-relative chassis speeds
        wheel_states: States sent to the actuation sink
        replanned: Whether this tick regenerated the trajectory
        at_reference: Whether every axis was within tolerance
    """

    elapsed: float
    state: TrackerState
    offset: GoalOffset
    measured_pose: Pose2D
    desired_state: TrajectoryState
    desired_heading: float
    gyro_rate_correction: float
    error_x: float
    error_y: float
    error_heading: float
    speeds: ChassisSpeeds
    wheel_states: List[WheelState] = field(default_factory=list)
    replanned: bool = False
    at_reference: bool = False


TrackingObserver = Callable[[TrackingSnapshot], None]


def _require_callable(value: object, name: str) -> None:
    if value is None or not callable(value):
        raise ValueError(f"{name} must be callable, got {value!r}")


def _checked_offset(offset: object) -> GoalOffset:
    if not isinstance(offset, GoalOffset):
        raise ValueError(f"offset_source must return a GoalOffset, got {offset!r}")
    return offset


class WaypointTracker:
    """Trajectory-following state machine for a swerve drive.

    States:
        IDLE → start() → TRACKING, or FAILED if generation fails
        TRACKING → offset change → REPLANNING → TRACKING, or FAILED
        FAILED is a no-op until start() is called again

    The tracker never finishes on its own while tracking: it keeps holding
    the goal until the host stops calling update(). It only reports done
    once trajectory generation has failed.
    """

    def __init__(
        self,
        goal: Pose2D,
        y_offset: float,
        pose_source: PoseSource,
        gyro_rate_source: GyroRateSource,
        offset_source: OffsetSource,
        wheel_sink: WheelSink,
        kinematics: Optional[SwerveDriveKinematics] = None,
        controller: Optional[HolonomicDriveController] = None,
        trajectory_config: Optional[TrajectoryConfig] = None,
        timer: Optional[Timer] = None,
        observer: Optional[TrackingObserver] = None,
        max_wheel_speed: Optional[float] = None,
    ):
        """Initialize the tracker.

        Args:
            goal: Fixed goal pose; its heading is the heading held throughout
            y_offset: Lateral displacement for LEFT/RIGHT offsets (meters, >= 0)
            pose_source: Returns the live field-relative pose
            gyro_rate_source: Returns the weighted gyro rate correction (rad/s)
            offset_source: Returns the currently selected GoalOffset
            wheel_sink: Receives the wheel states computed each tick
            kinematics: Chassis-to-wheel mapping. Default: config geometry
            controller: Feedback controller. Default: config gains
            trajectory_config: Generation limits. Default: config limits
            timer: Clock for trajectory time. Default: wall-clock Timer
            observer: Optional callback receiving a TrackingSnapshot per tick
            max_wheel_speed: If given, wheel states are desaturated to it

        Raises:
            ValueError: If a collaborator is missing or not callable, or the
                goal or y_offset is invalid.
        """
        if not isinstance(goal, Pose2D):
            raise ValueError(f"goal must be a Pose2D, got {goal!r}")
        if y_offset < 0.0:
            raise ValueError(f"y_offset must be non-negative, got {y_offset}")
        _require_callable(pose_source, "pose_source")
        _require_callable(gyro_rate_source, "gyro_rate_source")
        _require_callable(offset_source, "offset_source")
        _require_callable(wheel_sink, "wheel_sink")
        if observer is not None:
            _require_callable(observer, "observer")

        self.goal = goal
        self.y_offset = y_offset
        self.pose_source = pose_source
        self.gyro_rate_source = gyro_rate_source
        self.offset_source = offset_source
        self.wheel_sink = wheel_sink
        self.observer = observer
        self.max_wheel_speed = max_wheel_speed

        self.kinematics = kinematics if kinematics is not None else SwerveDriveKinematics()
        self.controller = (
            controller if controller is not None else default_holonomic_controller(CONTROL_PERIOD)
        )
        self.trajectory_config = (
            trajectory_config if trajectory_config is not None else TrajectoryConfig()
        )
        self.timer = timer if timer is not None else Timer()

        self.state = TrackerState.IDLE
        self.trajectory: Optional[Trajectory] = None
        self.previous_offset: Optional[GoalOffset] = None
        self.active_goal: Optional[Pose2D] = None
        self.failure: Optional[InfeasiblePath] = None
        self.replan_count: int = 0

    @property
    def elapsed(self) -> float:
        """Seconds along the active trajectory."""
        return self.timer.get()

    def goal_for(self, offset: GoalOffset) -> Pose2D:
        """The fixed goal displaced by ``offset``."""
        return offset.apply(self.goal, self.y_offset)

    def _make_trajectory(self, start_pose: Pose2D, offset: GoalOffset, start_velocity: float) -> bool:
        """Generate from ``start_pose`` towards the offset goal.

        Returns:
            True if a trajectory was installed, False if generation failed
            (the tracker is then FAILED).
        """
        goal = self.goal_for(offset)
        config = self.trajectory_config.with_start_velocity(start_velocity)

        result = generate_trajectory(start_pose, goal, config)
        if isinstance(result, InfeasiblePath):
            self.state = TrackerState.FAILED
            self.failure = result
            self.timer.stop()
            logging.warning(
                f"Trajectory generation failed towards {offset.value} goal "
                f"({goal.x:.3f}, {goal.y:.3f}): {result.reason}"
            )
            return False

        self.trajectory = result
        self.active_goal = goal
        self.failure = None
        logging.debug(
            f"Generated trajectory to ({goal.x:.3f}, {goal.y:.3f}) "
            f"from v0={start_velocity:.3f} m/s, duration={result.duration:.3f}s"
        )
        return True

    def start(self) -> None:
        """Begin tracking from the live pose, starting at rest."""
        self.previous_offset = _checked_offset(self.offset_source())
        self.replan_count = 0
        self.controller.reset()

        if self._make_trajectory(self.pose_source(), self.previous_offset, 0.0):
            self.state = TrackerState.TRACKING
            self.timer.restart()
            logging.info(
                f"{TERM_BLUE}✓ Tracking to {self.previous_offset.value} goal "
                f"({self.active_goal.x:.3f}, {self.active_goal.y:.3f}) "
                f"over {self.trajectory.duration:.2f}s{TERM_RESET}"
            )

    def _replan(self, measured_pose: Pose2D, offset: GoalOffset) -> bool:
        self.state = TrackerState.REPLANNING
        in_flight = self.trajectory.sample(self.timer.get())
        start_velocity = abs(in_flight.velocity)

        if not self._make_trajectory(measured_pose, offset, start_velocity):
            return False

        logging.info(
            f"{TERM_BLUE}↻ Goal offset {self.previous_offset.value} → {offset.value}, "
            f"replanning at {start_velocity:.3f} m/s{TERM_RESET}"
        )
        self.previous_offset = offset
        self.replan_count += 1
        self.controller.reset()
        self.timer.restart()
        self.state = TrackerState.TRACKING
        return True

    def update(self) -> Optional[List[WheelState]]:
        """Run one control tick.

        Returns:
            The wheel states sent to the sink, or None if nothing was sent
            (idle, failed, or the replan on this tick failed)
        """
        if self.state is not TrackerState.TRACKING:
            return None

        # One pose read per tick seeds any replan and feeds the controller
        measured_pose = self.pose_source()
        replanned = False
        offset = _checked_offset(self.offset_source())
        if offset != self.previous_offset:
            if not self._replan(measured_pose, offset):
                return None
            replanned = True

        elapsed = self.timer.get()
        desired_state = self.trajectory.sample(elapsed)
        gyro_correction = self.gyro_rate_source()

        speeds = self.controller.calculate(
            measured_pose, desired_state, self.goal.heading, gyro_correction
        )
        wheel_states = self.kinematics.to_wheel_states(speeds)
        if self.max_wheel_speed is not None:
            wheel_states = desaturate_wheel_speeds(wheel_states, self.max_wheel_speed)

        self.wheel_sink(wheel_states)

        if self.observer is not None:
            self.observer(
                TrackingSnapshot(
                    elapsed=elapsed,
                    state=self.state,
                    offset=self.previous_offset,
                    measured_pose=measured_pose,
                    desired_state=desired_state,
                    desired_heading=self.goal.heading,
                    gyro_rate_correction=gyro_correction,
                    error_x=desired_state.pose.x - measured_pose.x,
                    error_y=desired_state.pose.y - measured_pose.y,
                    error_heading=angle_difference(
                        self.goal.heading - gyro_correction, measured_pose.heading
                    ),
                    speeds=speeds,
                    wheel_states=wheel_states,
                    replanned=replanned,
                    at_reference=self.controller.at_reference(),
                )
            )

        return wheel_states

    def is_done(self) -> bool:
        """True only once trajectory generation has failed."""
        return self.state is TrackerState.FAILED

    def stop(self) -> None:
        """Halt the clock. Trajectory, offset and state are kept as they are."""
        self.timer.stop()
        logging.debug(f"Tracker stopped at {self.timer.get():.3f}s ({self.state.value})")


HeadingSource = Callable[[], float]


class TrajectoryFollower:
    """Follow a trajectory generated ahead of time, then report done.

    Unlike WaypointTracker there is no goal offset and no replanning: the
    trajectory is fixed at construction. The heading target comes from
    ``heading_source`` each tick, defaulting to the final state's heading,
    and has the gyro rate correction subtracted like the tracker does.
    """

    def __init__(
        self,
        trajectory: Trajectory,
        pose_source: PoseSource,
        gyro_rate_source: GyroRateSource,
        wheel_sink: WheelSink,
        heading_source: Optional[HeadingSource] = None,
        kinematics: Optional[SwerveDriveKinematics] = None,
        controller: Optional[HolonomicDriveController] = None,
        timer: Optional[Timer] = None,
        max_wheel_speed: Optional[float] = None,
    ):
        if not isinstance(trajectory, Trajectory):
            raise ValueError(f"trajectory must be a Trajectory, got {trajectory!r}")
        _require_callable(pose_source, "pose_source")
        _require_callable(gyro_rate_source, "gyro_rate_source")
        _require_callable(wheel_sink, "wheel_sink")
        if heading_source is not None:
            _require_callable(heading_source, "heading_source")

        self.trajectory = trajectory
        self.pose_source = pose_source
        self.gyro_rate_source = gyro_rate_source
        self.wheel_sink = wheel_sink
        self.heading_source = heading_source
        self.max_wheel_speed = max_wheel_speed

        self.kinematics = kinematics if kinematics is not None else SwerveDriveKinematics()
        self.controller = (
            controller if controller is not None else default_holonomic_controller(CONTROL_PERIOD)
        )
        self.timer = timer if timer is not None else Timer()

    @property
    def elapsed(self) -> float:
        return self.timer.get()

    def desired_heading(self) -> float:
        if self.heading_source is None:
            return self.trajectory.final_state.pose.heading
        return self.heading_source()

    def start(self) -> None:
        """Reset the controller and start the clock from zero."""
        self.controller.reset()
        self.timer.restart()
        logging.info(
            f"{TERM_BLUE}✓ Following fixed trajectory over "
            f"{self.trajectory.duration:.2f}s{TERM_RESET}"
        )

    def update(self) -> List[WheelState]:
        """Run one control tick and send the wheel states to the sink."""
        desired_state = self.trajectory.sample(self.timer.get())
        speeds = self.controller.calculate(
            self.pose_source(),
            desired_state,
            self.desired_heading(),
            self.gyro_rate_source(),
        )
        wheel_states = self.kinematics.to_wheel_states(speeds)
        if self.max_wheel_speed is not None:
            wheel_states = desaturate_wheel_speeds(wheel_states, self.max_wheel_speed)

        self.wheel_sink(wheel_states)
        return wheel_states

    def is_done(self) -> bool:
        """True once the clock has run for the whole trajectory."""
        return self.timer.has_elapsed(self.trajectory.duration)

    def stop(self) -> None:
        """Halt the clock. The last wheel states are left with the sink."""
        self.timer.stop()
