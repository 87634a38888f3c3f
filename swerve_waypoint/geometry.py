"""Planar geometry types for the swerve waypoint tracker.

Poses are field-relative: x forward from the driver station wall, y to the
left, heading counter-clockwise from +x. All headings are wrapped to (-π, π].
"""

import enum
import math
from dataclasses import dataclass
from typing import Tuple


def wrap_angle(angle: float) -> float:
    """Wrap an angle to the half-open interval (-π, π].

    Args:
        angle: Angle in radians

    Returns:
        Equivalent angle in (-π, π]
    """
    wrapped = math.atan2(math.sin(angle), math.cos(angle))
    if wrapped <= -math.pi:
        wrapped = math.pi
    return wrapped


def angle_difference(target: float, current: float) -> float:
    """Shortest signed rotation from ``current`` to ``target`` (radians)."""
    return wrap_angle(target - current)


@dataclass(frozen=True)
class Pose2D:
    """Robot pose on the field.

    Attributes:
        x: Position along the field x axis (meters)
        y: Position along the field y axis (meters)
        heading: Orientation (radians), wrapped to (-π, π]
    """

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "heading", wrap_angle(self.heading))

    def translation_to(self, other: "Pose2D") -> Tuple[float, float]:
        """Field-frame vector from this pose's position to ``other``'s."""
        return (other.x - self.x, other.y - self.y)

    def distance_to(self, other: "Pose2D") -> float:
        dx, dy = self.translation_to(other)
        return math.hypot(dx, dy)

    def bearing_to(self, other: "Pose2D") -> float:
        """Direction of travel from this pose to ``other`` (radians).

        Returns 0.0 when the two positions coincide.
        """
        dx, dy = self.translation_to(other)
        return math.atan2(dy, dx)

    def transform_by(self, dx: float, dy: float, dheading: float = 0.0) -> "Pose2D":
        """Apply an offset expressed in this pose's own frame.

        The translation (dx, dy) is rotated by the pose heading before being
        added, so dy is always perpendicular to the direction the pose faces.

        Args:
            dx: Forward offset (meters)
            dy: Leftward offset (meters)
            dheading: Additional rotation (radians)

        Returns:
            The transformed pose
        """
        cos_h = math.cos(self.heading)
        sin_h = math.sin(self.heading)
        return Pose2D(
            self.x + dx * cos_h - dy * sin_h,
            self.y + dx * sin_h + dy * cos_h,
            self.heading + dheading,
        )

    def relative_to(self, origin: "Pose2D") -> "Pose2D":
        """Express this pose in the frame of ``origin``."""
        dx, dy = origin.translation_to(self)
        cos_h = math.cos(origin.heading)
        sin_h = math.sin(origin.heading)
        return Pose2D(
            dx * cos_h + dy * sin_h,
            -dx * sin_h + dy * cos_h,
            self.heading - origin.heading,
        )


@dataclass(frozen=True)
class ChassisSpeeds:
    """Commanded velocity of the robot body.

    Speeds produced by the feedback controller and consumed by the kinematics
    are robot-relative: vx forward, vy to the left, omega counter-clockwise.

    Attributes:
        vx: Forward velocity (m/s)
        vy: Leftward velocity (m/s)
        omega: Angular velocity (rad/s)
    """

    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    @classmethod
    def from_field_relative(
        cls, vx: float, vy: float, omega: float, heading: float
    ) -> "ChassisSpeeds":
        """Rotate field-relative velocities into the robot frame.

        Args:
            vx: Field x velocity (m/s)
            vy: Field y velocity (m/s)
            omega: Angular velocity (rad/s), identical in both frames
            heading: Current robot heading (radians)

        Returns:
            Robot-relative ChassisSpeeds
        """
        cos_h = math.cos(heading)
        sin_h = math.sin(heading)
        return cls(vx * cos_h + vy * sin_h, -vx * sin_h + vy * cos_h, omega)

    def to_field_relative(self, heading: float) -> Tuple[float, float, float]:
        cos_h = math.cos(heading)
        sin_h = math.sin(heading)
        return (
            self.vx * cos_h - self.vy * sin_h,
            self.vx * sin_h + self.vy * cos_h,
            self.omega,
        )


class GoalOffset(enum.Enum):
    """Lateral displacement selected for the goal pose.

    LEFT moves the goal by -y_offset along the goal's lateral axis, RIGHT by
    +y_offset, CENTER leaves it in place.
    """

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @property
    def lateral_sign(self) -> int:
        if self is GoalOffset.LEFT:
            return -1
        if self is GoalOffset.RIGHT:
            return 1
        return 0

    def apply(self, goal: Pose2D, y_offset: float) -> Pose2D:
        """Return ``goal`` displaced by this offset (heading unchanged)."""
        if self is GoalOffset.CENTER:
            return goal
        return goal.transform_by(0.0, self.lateral_sign * y_offset)

    @classmethod
    def parse(cls, text: str) -> "GoalOffset":
        """Parse a case-insensitive offset name.

        Raises:
            ValueError: If ``text`` does not name an offset.
        """
        try:
            return cls(text.strip().lower())
        except ValueError:
            names = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown goal offset: {text!r}. Expected one of: {names}") from None
