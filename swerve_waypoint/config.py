"""Configuration parameters for the swerve waypoint tracker.

This module centralizes all configuration parameters including:
- Physical drivetrain geometry
- Trajectory generation limits
- Feedback controller gains
- Goal offset and gyro correction settings
- Simulation and output settings

All parameters are documented with their purpose, valid ranges, and tuning rationale.
"""

import math

# ============================================================================
# Physical Drivetrain Parameters
# ============================================================================

WHEELBASE = 0.5
"""Distance between front and rear module axles (meters).
Fixed by chassis design."""

TRACK_WIDTH = 0.5
"""Distance between left and right module centres (meters).
Fixed by chassis design."""

MODULE_POSITIONS = (
    (WHEELBASE / 2.0, TRACK_WIDTH / 2.0),  # front-left
    (WHEELBASE / 2.0, -TRACK_WIDTH / 2.0),  # front-right
    (-WHEELBASE / 2.0, TRACK_WIDTH / 2.0),  # rear-left
    (-WHEELBASE / 2.0, -TRACK_WIDTH / 2.0),  # rear-right
)
"""Module positions (x forward, y left) relative to the robot centre (meters).

Order is fixed: front-left, front-right, rear-left, rear-right. Every wheel
state array produced by the kinematics follows this order.
"""

MAX_WHEEL_SPEED = 5.0
"""Maximum module drive speed (m/s). Hardware limit.

Used to desaturate wheel states so that the ratio between modules (and so the
direction of travel) is preserved when one module would exceed the limit.
"""


# ============================================================================
# Trajectory Generation Parameters
# ============================================================================

TRAJECTORY_MAX_VELOCITY = 5.0
"""Maximum translational velocity along the path (m/s).

Tuning rationale:
- Matches the module speed limit so a straight-line cruise never saturates
- Short field moves rarely reach it; the profile is usually triangular
"""

TRAJECTORY_MAX_ACCELERATION = 2.0
"""Maximum translational acceleration along the path (m/s²).

Tuning rationale:
- 2 m/s² keeps the wheels well inside the traction limit on carpet
- Higher values shorten moves but make the replan braking check fail sooner
"""

TRAJECTORY_SAMPLE_PERIOD = 0.02
"""Spacing between generated trajectory states (seconds).

Matches the control period so sampling mostly interpolates between adjacent
states one tick apart.
"""

GENERATOR_EPSILON = 1e-9
"""Tolerance for zero-length paths and velocity limit checks (meters, m/s)."""


# ============================================================================
# Feedback Controller Parameters
# ============================================================================

# X axis (field frame)
X_KP = 1.0
"""Proportional gain for x position error (1/s).

Output is a velocity correction in m/s per metre of error.
"""

X_KI = 0.0
"""Integral gain for x position error. Disabled by default."""

X_KD = 0.0
"""Derivative gain for x position error. Disabled by default."""

X_INTEGRATOR_RANGE = (-0.3, 0.3)
"""Clamp on the x integral contribution (m/s). Prevents windup."""

X_TOLERANCE = 1e-11
"""Position tolerance for x (meters). Reporting only, never stops tracking."""

# Y axis (field frame)
Y_KP = 0.7
"""Proportional gain for y position error (1/s).

Tuning rationale:
- Softer than x because lateral corrections fight the goal offset replans
"""

Y_KI = 0.0
"""Integral gain for y position error. Disabled by default."""

Y_KD = 0.0
"""Derivative gain for y position error. Disabled by default."""

Y_INTEGRATOR_RANGE = (-0.3, 0.3)
"""Clamp on the y integral contribution (m/s). Prevents windup."""

Y_TOLERANCE = 0.05
"""Position tolerance for y (meters). Reporting only."""

# Rotation (profiled)
THETA_KP = 1.3
"""Proportional gain for heading error (1/s)."""

THETA_KI = 0.0
"""Integral gain for heading error. Disabled by default."""

THETA_KD = 0.0
"""Derivative gain for heading error. Disabled by default."""

THETA_TOLERANCE = math.pi / 180.0
"""Heading tolerance (radians). One degree, reporting only."""

THETA_MAX_VELOCITY = 6.0
"""Maximum angular velocity of the heading profile (rad/s)."""

THETA_MAX_ACCELERATION = 12.0
"""Maximum angular acceleration of the heading profile (rad/s²).

Tuning rationale:
- The profile bounds the setpoint, not the output, so a large heading error
  is walked down gradually instead of saturating the modules
"""


# ============================================================================
# Goal Offset and Gyro Correction
# ============================================================================

DEFAULT_Y_OFFSET = 0.5
"""Lateral goal displacement applied for LEFT/RIGHT goal offsets (meters)."""

GYRO_RATE_CORRECTION_WEIGHT = 0.25
"""Weight applied to the raw gyro rate before it is subtracted from the
desired heading (dimensionless).

Origin: the drivetrain lags the heading command at high yaw rates; leading the
target by a quarter of the measured rate cancels most of the lag without
oscillation.
"""


# ============================================================================
# Control Loop and Simulation Parameters
# ============================================================================

CONTROL_PERIOD = 0.02
"""Fixed scheduling period of the control loop (seconds). 50 Hz."""

SIM_DEFAULT_DURATION = 6.0
"""Default simulated run length (seconds)."""

SIM_DEFAULT_GOAL = (3.0, 0.0, 0.0)
"""Default goal pose (x m, y m, heading degrees) for the simulation CLI."""

SIM_POSE_NOISE_STD = 0.0
"""Standard deviation of the simulated pose measurement noise (meters)."""

SIM_GYRO_BIAS = 0.0
"""Constant bias added to the simulated gyro rate (rad/s)."""

SIM_MODULE_RESPONSE = 1.0
"""Fraction of the commanded module speed reached each tick (range: (0, 1]).

1.0 is an ideal drivetrain; lower values model a first-order lag.
"""

RESULTS_DIR = "results"
"""Base directory for collected run data."""


# ============================================================================
# Visualization Colors (Monumental Branding)
# ============================================================================

# Brand colors (hex codes for matplotlib)
MONUMENTAL_ORANGE = "#f74823"
"""Primary brand color - used for measured pose, actual trajectory."""

MONUMENTAL_BLUE = "#2374f7"
"""Secondary brand color - used for desired pose, trajectory reference."""

MONUMENTAL_CREAM = "#fffdee"
"""Light color for text and labels on dark backgrounds."""

MONUMENTAL_TAUPE = "#686a5f"
"""Neutral color for guides, grids, and secondary elements."""

MONUMENTAL_YELLOW_ORANGE = "#ffa726"
"""Accent color for replan markers and goal highlights."""

MONUMENTAL_DARK_BLUE = "#0d1b2a"
"""Dark background color for dark mode displays."""

# Terminal color codes (ANSI escape sequences)
TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for Monumental orange (RGB: 247, 72, 35)."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for complementary blue (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""
