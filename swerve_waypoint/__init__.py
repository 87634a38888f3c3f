"""Swerve Waypoint - Drive-to-Waypoint Trajectory Tracking for Swerve Drives

Drives a holonomic (swerve) robot from its current pose to a fixed goal pose
along a time-parameterized straight-line trajectory, while holding the goal
heading. The goal may be shifted left or right at any time; the trajectory is
then regenerated from the live pose without stopping.

## Architecture Overview

Each control tick flows through four layers:

### Layer 1: Trajectory Generation (generator.py)
Builds a straight-line trajectory under velocity/acceleration limits.
- Trapezoidal (or triangular) speed profile, seeded with the current speed
- States every 20 ms, final state exactly on the goal
- Infeasible requests return an explicit InfeasiblePath value

### Layer 2: Trajectory Sampling (trajectory.py)
Looks up the desired state at the elapsed time.
- Clamped at both ends, linear interpolation between samples

### Layer 3: Holonomic Feedback (controllers.py)
Combines feedforward velocity with independent x, y and heading controllers.
- PID on x and y with integrator clamping
- Trapezoid-profiled PID on heading with continuous (wrapping) input
- Output: robot-relative chassis speeds (vx, vy, ω)

### Layer 4: Swerve Kinematics (kinematics.py)
Converts chassis speeds into a speed and steering angle per module.
- Four modules on a 0.5 m × 0.5 m square
- Optional desaturation to the maximum wheel speed

`tracker.py` ties the layers together in the WaypointTracker state machine
(IDLE → TRACKING ⇄ REPLANNING, FAILED when generation fails). TrajectoryFollower
plays back a pre-built trajectory and finishes when its duration elapses.

## Modules

### Core
- `geometry.py` - Pose2D, ChassisSpeeds, GoalOffset, angle helpers
- `kinematics.py` - Swerve inverse/forward kinematics
- `trajectory.py` - Trajectory states and sampling
- `generator.py` - Straight-line trajectory generation
- `controllers.py` - PID, trapezoid profile, holonomic drive controller
- `timer.py` - Restartable clock with injectable time source
- `tracker.py` - WaypointTracker orchestration and TrajectoryFollower
- `config.py` - Centralized configuration parameters with documentation

### Simulation & Data
- `simulation.py` - Swerve plant, scripted offsets and simulation runner
- `component_modes.py` - Component isolation flags
- `data_collector.py` - CSV logging of every tick and event

### Visualization
- `plot_styles.py` - Shared plotting utilities and color scheme
- `visualization.py` - Post-run path, error and wheel speed plots
- `plot_results.py` - CLI for visualization tools

## Quick Start

```python
from swerve_waypoint import Pose2D, run_simulation

result = run_simulation(Pose2D(3.0, 0.0, 0.0))
print(result.final_pose, result.residual)
```

Or use the command-line interface:
```bash
python -m swerve_waypoint --offset-change 1.0:left
python -m swerve_waypoint.plot_results --save
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

from .controllers import HolonomicDriveController, PIDController, ProfiledPIDController
from .data_collector import DataCollector
from .generator import InfeasiblePath, TrajectoryConfig, generate, generate_trajectory
from .geometry import ChassisSpeeds, GoalOffset, Pose2D
from .kinematics import SwerveDriveKinematics, WheelState, desaturate_wheel_speeds
from .simulation import run_simulation
from .trajectory import Trajectory, TrajectoryState, sample_trajectory
from .tracker import TrackerState, TrackingSnapshot, TrajectoryFollower, WaypointTracker

__all__ = [
    "Pose2D",
    "ChassisSpeeds",
    "GoalOffset",
    "SwerveDriveKinematics",
    "WheelState",
    "desaturate_wheel_speeds",
    "Trajectory",
    "TrajectoryState",
    "sample_trajectory",
    "TrajectoryConfig",
    "InfeasiblePath",
    "generate",
    "generate_trajectory",
    "PIDController",
    "ProfiledPIDController",
    "HolonomicDriveController",
    "TrajectoryFollower",
    "WaypointTracker",
    "TrackerState",
    "TrackingSnapshot",
    "DataCollector",
    "run_simulation",
]
