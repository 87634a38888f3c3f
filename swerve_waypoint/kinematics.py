"""
Swerve drive kinematic model.

This module provides the inverse kinematics for a swerve drive robot,
converting a desired chassis velocity into a speed and steering angle for
every module.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import MODULE_POSITIONS
from .geometry import ChassisSpeeds


@dataclass(frozen=True)
class WheelState:
    """Desired state of one swerve module.

    Attributes:
        speed: Drive speed (m/s), never negative from ``to_wheel_states``
        angle: Steering angle relative to robot forward (radians)
    """

    speed: float = 0.0
    angle: float = 0.0


class SwerveDriveKinematics:
    """Maps robot-relative chassis speeds to per-module wheel states.

    For a module mounted at (x_i, y_i) relative to the robot centre, the
    module velocity is the chassis translation plus the tangential velocity
    from rotation:
        vx_i = vx - omega * y_i
        vy_i = vy + omega * x_i

    Stacking these rows for every module gives a (2n × 3) matrix that is
    applied to [vx, vy, omega] in a single product.
    """

    def __init__(self, module_positions: Optional[Sequence[Tuple[float, float]]] = None):
        """Initialize the kinematics.

        Args:
            module_positions: (x, y) of each module relative to the robot
                centre (meters). Output order follows this order. Defaults to
                config.MODULE_POSITIONS (front-left, front-right, rear-left,
                rear-right).

        Raises:
            ValueError: If fewer than two modules are given.
        """
        if module_positions is None:
            module_positions = MODULE_POSITIONS
        if len(module_positions) < 2:
            raise ValueError("Swerve kinematics needs at least two modules")

        self.module_positions: Tuple[Tuple[float, float], ...] = tuple(
            (float(x), float(y)) for x, y in module_positions
        )
        self.num_modules = len(self.module_positions)

        rows = []
        for x, y in self.module_positions:
            rows.append([1.0, 0.0, -y])
            rows.append([0.0, 1.0, x])
        self._inverse_matrix = np.array(rows)
        self._forward_matrix = np.linalg.pinv(self._inverse_matrix)

    def to_wheel_states(self, speeds: ChassisSpeeds) -> List[WheelState]:
        """Compute module states from desired chassis speeds.

        A stationary module reports angle 0.0.

        Args:
            speeds: Robot-relative chassis speeds

        Returns:
            One WheelState per module in construction order

        Example:
            >>> kinematics = SwerveDriveKinematics()
            >>> states = kinematics.to_wheel_states(ChassisSpeeds(1.0, 0.0, 0.0))
            >>> # Every module drives forward at 1 m/s
        """
        chassis = np.array([speeds.vx, speeds.vy, speeds.omega])
        module_velocities = (self._inverse_matrix @ chassis).reshape(self.num_modules, 2)

        states = []
        for vx, vy in module_velocities:
            speed = math.hypot(vx, vy)
            angle = math.atan2(vy, vx) if speed > 0.0 else 0.0
            states.append(WheelState(float(speed), float(angle)))
        return states

    def to_chassis_speeds(self, states: Sequence[WheelState]) -> ChassisSpeeds:
        """Least-squares chassis speeds from measured module states.

        Args:
            states: One WheelState per module in construction order

        Returns:
            Robot-relative ChassisSpeeds best explaining the module states

        Raises:
            ValueError: If the number of states does not match the modules.
        """
        if len(states) != self.num_modules:
            raise ValueError(
                f"Expected {self.num_modules} wheel states, got {len(states)}"
            )
        module_velocities = np.array(
            [[s.speed * math.cos(s.angle), s.speed * math.sin(s.angle)] for s in states]
        ).reshape(-1)
        vx, vy, omega = self._forward_matrix @ module_velocities
        return ChassisSpeeds(float(vx), float(vy), float(omega))


def desaturate_wheel_speeds(states: Sequence[WheelState], max_speed: float) -> List[WheelState]:
    """Scale module speeds so none exceeds ``max_speed``.

    All modules are scaled by the same factor, so the ratios between them, and
    therefore the direction of chassis motion, are preserved.

    Args:
        states: Module states to limit
        max_speed: Maximum allowed module speed (m/s)

    Returns:
        New list of WheelState, unchanged if already within the limit
    """
    if not states:
        return []
    highest = max(abs(s.speed) for s in states)
    if highest <= max_speed or highest == 0.0:
        return list(states)
    scale = max_speed / highest
    return [WheelState(s.speed * scale, s.angle) for s in states]
