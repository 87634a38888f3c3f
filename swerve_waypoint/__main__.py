"""
Main entry point when running the swerve_waypoint module with python -m.

Runs the waypoint tracker against the simulated swerve plant and records the
run to results/run_YYYYMMDD_HHMMSS/ unless --no-log is given.
"""

import argparse
import logging
import math
import sys
from typing import List, Optional

from .component_modes import parse_component_flags
from .config import (
    DEFAULT_Y_OFFSET,
    SIM_DEFAULT_DURATION,
    SIM_DEFAULT_GOAL,
    SIM_GYRO_BIAS,
    SIM_MODULE_RESPONSE,
    SIM_POSE_NOISE_STD,
)
from .data_collector import DataCollector
from .geometry import Pose2D
from .simulation import parse_offset_change, run_simulation, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate a swerve drive tracking a straight-line trajectory to a waypoint",
        epilog="Component flags: --no-feedback, --no-gyro-correction, --no-desaturate",
    )
    parser.add_argument("--goal-x", type=float, default=SIM_DEFAULT_GOAL[0], help="Goal x (m)")
    parser.add_argument("--goal-y", type=float, default=SIM_DEFAULT_GOAL[1], help="Goal y (m)")
    parser.add_argument(
        "--goal-heading", type=float, default=SIM_DEFAULT_GOAL[2], help="Goal heading (degrees)"
    )
    parser.add_argument(
        "--y-offset", type=float, default=DEFAULT_Y_OFFSET, help="Lateral offset for left/right goals (m)"
    )
    parser.add_argument(
        "--duration", type=float, default=SIM_DEFAULT_DURATION, help="Simulated run time (s)"
    )
    parser.add_argument(
        "--offset-change",
        action="append",
        default=[],
        metavar="T:OFFSET",
        help="Switch the goal offset at time T (e.g. 1.5:left). Repeatable.",
    )
    parser.add_argument(
        "--noise", type=float, default=SIM_POSE_NOISE_STD, help="Pose measurement noise std"
    )
    parser.add_argument(
        "--module-response",
        type=float,
        default=SIM_MODULE_RESPONSE,
        help="Plant response per step in (0, 1], 1 = instant",
    )
    parser.add_argument("--seed", type=int, default=None, help="Noise seed")
    parser.add_argument(
        "--gyro-bias", type=float, default=SIM_GYRO_BIAS, help="Simulated gyro bias (rad/s)"
    )
    parser.add_argument("--output-dir", type=str, default=".", help="Base directory for results/")
    parser.add_argument("--no-log", action="store_true", help="Do not write CSV files")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one simulation from command-line arguments.

    Returns:
        Process exit code: 0 on success, 1 if the tracker failed.
    """
    component_mode, remaining_args = parse_component_flags(argv)
    parser = build_parser()
    args = parser.parse_args(remaining_args)

    setup_logging(args.verbose)

    try:
        offset_changes = [parse_offset_change(text) for text in args.offset_change]
    except ValueError as e:
        parser.error(str(e))

    goal = Pose2D(args.goal_x, args.goal_y, math.radians(args.goal_heading))
    run_kwargs = dict(
        goal=goal,
        y_offset=args.y_offset,
        duration=args.duration,
        offset_changes=offset_changes,
        component_mode=component_mode,
        pose_noise_std=args.noise,
        gyro_bias=args.gyro_bias,
        module_response=args.module_response,
        seed=args.seed,
    )

    if args.no_log:
        result = run_simulation(**run_kwargs)
    else:
        with DataCollector(output_dir=args.output_dir) as collector:
            result = run_simulation(data_collector=collector, **run_kwargs)

    return 1 if result.failure_reason is not None else 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
