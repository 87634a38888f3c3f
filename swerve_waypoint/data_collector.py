"""Data collection and CSV logging for waypoint tracking runs.

This module provides CSV data logging for:
- Tracking data (measured pose, desired pose, errors, commanded speeds)
- Wheel states sent to the actuation sink
- Events (start, replans, generation failures)
- Final summary (end pose and residual error)

DataCollector.log_snapshot matches the tracker observer signature, so a
collector can be passed straight to WaypointTracker(observer=...).
"""

import csv
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

from .config import RESULTS_DIR, TERM_BLUE, TERM_RESET
from .geometry import Pose2D
from .tracker import TrackingSnapshot

WHEEL_LABELS = ("fl", "fr", "rl", "rr")


class DataCollector:
    """Manages CSV file creation and logging for tracking runs.

    This class handles all data logging responsibilities:
    - Creates timestamped output directories
    - Initializes CSV files with headers
    - Writes one row per tracker tick, plus event rows
    - Ensures proper cleanup on shutdown

    Attributes:
        run_dir: Directory path for this run's output files.
        tracking_csv_file: File handle for tracking data CSV.
        wheel_csv_file: File handle for wheel states CSV.
        events_csv_file: File handle for events CSV.
        summary_output_path: Path for final summary text file.
    """

    def __init__(
        self,
        output_dir: str = ".",
        run_dir: Optional[str] = None,
        time_source: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.
            time_source: Callable returning the timestamp written on each row.
                Defaults to time.time; simulations pass their simulated clock.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.time_source: Callable[[], float] = time_source if time_source is not None else time.time

        # CSV file handles
        self.tracking_csv_file: Optional[TextIO] = None
        self.tracking_csv_writer: Any = None
        self.wheel_csv_file: Optional[TextIO] = None
        self.wheel_csv_writer: Any = None
        self.events_csv_file: Optional[TextIO] = None
        self.events_csv_writer: Any = None

        self.rows_written: int = 0

        # Determine run directory
        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # Create timestamped directory: results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / RESULTS_DIR / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        # Define output file paths
        self.tracking_output_path: Path = self.run_dir / "tracking_data.csv"
        self.wheel_output_path: Path = self.run_dir / "wheel_states.csv"
        self.events_output_path: Path = self.run_dir / "events.csv"
        self.summary_output_path: Path = self.run_dir / "summary.txt"

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Creates and opens all CSV files with appropriate column headers.
        Must be called before writing data.
        """
        self.tracking_csv_file = open(self.tracking_output_path, "w", newline="")
        self.tracking_csv_writer = csv.writer(self.tracking_csv_file)
        self.tracking_csv_writer.writerow(
            [
                "timestamp",
                "elapsed",
                "state",
                "offset",
                "x_meas",
                "y_meas",
                "heading_meas",
                "x_des",
                "y_des",
                "heading_des",
                "v_des",
                "error_x",
                "error_y",
                "error_heading",
                "vx_cmd",
                "vy_cmd",
                "omega_cmd",
                "gyro_correction",
                "replanned",
                "at_reference",
            ]
        )
        self.tracking_csv_file.flush()

        self.wheel_csv_file = open(self.wheel_output_path, "w", newline="")
        self.wheel_csv_writer = csv.writer(self.wheel_csv_file)
        header = ["timestamp"]
        for label in WHEEL_LABELS:
            header.extend([f"{label}_speed", f"{label}_angle"])
        self.wheel_csv_writer.writerow(header)
        self.wheel_csv_file.flush()

        self.events_csv_file = open(self.events_output_path, "w", newline="")
        self.events_csv_writer = csv.writer(self.events_csv_file)
        self.events_csv_writer.writerow(["timestamp", "event", "offset", "detail"])
        self.events_csv_file.flush()

        print(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}/{TERM_RESET}")

    def log_snapshot(self, snapshot: TrackingSnapshot) -> None:
        """Log one tracker tick (tracker observer callback).

        Args:
            snapshot: Tick data produced by WaypointTracker.update().
        """
        timestamp = self.time_source()
        measured = snapshot.measured_pose
        desired = snapshot.desired_state

        self.tracking_csv_writer.writerow(
            [
                timestamp,
                snapshot.elapsed,
                snapshot.state.value,
                snapshot.offset.value,
                measured.x,
                measured.y,
                measured.heading,
                desired.pose.x,
                desired.pose.y,
                snapshot.desired_heading,
                desired.velocity,
                snapshot.error_x,
                snapshot.error_y,
                snapshot.error_heading,
                snapshot.speeds.vx,
                snapshot.speeds.vy,
                snapshot.speeds.omega,
                snapshot.gyro_rate_correction,
                int(snapshot.replanned),
                int(snapshot.at_reference),
            ]
        )
        if self.tracking_csv_file:
            self.tracking_csv_file.flush()

        row = [timestamp]
        for state in snapshot.wheel_states:
            row.extend([state.speed, state.angle])
        self.wheel_csv_writer.writerow(row)
        if self.wheel_csv_file:
            self.wheel_csv_file.flush()

        if snapshot.replanned:
            self.log_event(
                "replan",
                snapshot.offset.value,
                f"v0={desired.velocity:.4f}",
            )

        self.rows_written += 1

    def log_event(self, event: str, offset: str = "", detail: str = "") -> None:
        """Log a lifecycle event to CSV.

        Args:
            event: Event name (e.g. "start", "replan", "failed").
            offset: Goal offset involved, if any.
            detail: Free-form detail (velocities, failure reason).
        """
        self.events_csv_writer.writerow([self.time_source(), event, offset, detail])
        if self.events_csv_file:
            self.events_csv_file.flush()

    def log_summary(self, final_pose: Pose2D, goal: Pose2D, failed: bool) -> None:
        """Write the final pose and residual distance to the goal.

        Args:
            final_pose: Measured pose when the run ended.
            goal: Goal the tracker was driving to when the run ended.
            failed: Whether the tracker ended in the FAILED state.
        """
        residual = final_pose.distance_to(goal)
        with open(self.summary_output_path, "w") as f:
            f.write(f"final_x={final_pose.x:.6f}\n")
            f.write(f"final_y={final_pose.y:.6f}\n")
            f.write(f"final_heading={final_pose.heading:.6f}\n")
            f.write(f"goal_x={goal.x:.6f}\n")
            f.write(f"goal_y={goal.y:.6f}\n")
            f.write(f"residual={residual:.6f}\n")
            f.write(f"failed={int(failed)}\n")
        print(f"{TERM_BLUE}✓ Saved summary: residual {residual:.3f}m to {self.summary_output_path.name}{TERM_RESET}")

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.tracking_csv_file:
            self.tracking_csv_file.close()
        if self.wheel_csv_file:
            self.wheel_csv_file.close()
        if self.events_csv_file:
            self.events_csv_file.close()

        print(f"{TERM_BLUE}✓ Saved tracking data to {self.run_dir}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        """Context manager entry point.

        Returns:
            Self reference for use in with statement.
        """
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        self.cleanup()
