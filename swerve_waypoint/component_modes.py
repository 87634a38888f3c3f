"""
Component isolation modes for modular testing.

This module defines which tracking components are active/bypassed
to enable systematic evaluation of each component's contribution.
"""

import argparse
import sys
from dataclasses import dataclass


@dataclass
class ComponentMode:
    """Configuration for which tracking components are active."""

    # Feedback Layer
    use_feedback: bool = True  # If False, x/y track on feedforward only
    use_gyro_correction: bool = True  # If False, heading target ignores gyro rate

    # Kinematics Layer
    use_desaturation: bool = True  # If False, wheel speeds are not limited

    def __str__(self):
        """Human-readable description of active components."""
        components = ["Trajectory"]

        if self.use_feedback:
            components.append("Feedback(x+y+θ)")
        else:
            components.append("Feedforward+θ")

        if self.use_gyro_correction:
            components.append("Gyro Correction")

        if self.use_desaturation:
            components.append("Kinematics(Desaturated)")
        else:
            components.append("Kinematics")

        return " → ".join(components)

    def to_dict(self):
        """Convert to dictionary for logging."""
        return {
            "use_feedback": self.use_feedback,
            "use_gyro_correction": self.use_gyro_correction,
            "use_desaturation": self.use_desaturation,
        }


def parse_component_flags(args=None):
    """
    Parse command-line flags to determine which components are active.

    Args:
        args: List of command-line arguments (default: sys.argv[1:])

    Returns:
        tuple: (ComponentMode, remaining_args)
            - ComponentMode with appropriate settings
            - List of remaining arguments not consumed
    """
    parser = argparse.ArgumentParser(add_help=False)

    # Component bypass flags
    parser.add_argument("--no-feedback", action="store_true",
                        help="Bypass x/y position feedback (feedforward only)")
    parser.add_argument("--no-gyro-correction", action="store_true",
                        help="Do not subtract the gyro rate from the heading target")
    parser.add_argument("--no-desaturate", action="store_true",
                        help="Do not limit wheel speeds to the module maximum")

    # Parse known args, keep the rest
    if args is None:
        args = sys.argv[1:]

    known_args, remaining_args = parser.parse_known_args(args)

    mode = ComponentMode(
        use_feedback=not known_args.no_feedback,
        use_gyro_correction=not known_args.no_gyro_correction,
        use_desaturation=not known_args.no_desaturate,
    )

    return mode, remaining_args
