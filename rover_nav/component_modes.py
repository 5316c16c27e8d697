"""
Component isolation modes for modular testing.

This module defines which navigation components are active/bypassed
to enable systematic evaluation of each component's contribution.
"""

from dataclasses import dataclass
import argparse
import sys


@dataclass
class ComponentMode:
    """Configuration for which navigation components are active."""

    # Estimation Layer
    use_localizer: bool = True  # If False, steer on the raw (true) pose

    # Reactive Layer
    use_avoidance: bool = True  # If False, follow the path blind

    # Mission Layer
    use_route_optimizer: bool = True  # If False, visit targets in input order
    use_area_search: bool = True  # If False, ignore target search areas

    def __str__(self):
        """Human-readable description of active components."""
        components = []

        if self.use_localizer:
            components.append("Trilateration")
        else:
            components.append("Raw Pose")

        components.append("Follower + Avoidance" if self.use_avoidance else "Follower")

        mission = "Optimal Route" if self.use_route_optimizer else "Input Order"
        if self.use_area_search:
            mission += " + Search"
        components.append(f"Mission({mission})")

        return " → ".join(components)

    def to_dict(self):
        """Convert to dictionary for logging."""
        return {
            'use_localizer': self.use_localizer,
            'use_avoidance': self.use_avoidance,
            'use_route_optimizer': self.use_route_optimizer,
            'use_area_search': self.use_area_search,
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

    parser.add_argument('--no-localizer', action='store_true',
                        help='Bypass trilateration (use the raw pose)')
    parser.add_argument('--no-avoidance', action='store_true',
                        help='Disable reactive obstacle avoidance')
    parser.add_argument('--no-optimizer', action='store_true',
                        help='Visit targets in the given order instead of the optimal route')
    parser.add_argument('--no-search', action='store_true',
                        help='Ignore target search areas')

    if args is None:
        args = sys.argv[1:]

    known_args, remaining_args = parser.parse_known_args(args)

    mode = ComponentMode(
        use_localizer=not known_args.no_localizer,
        use_avoidance=not known_args.no_avoidance,
        use_route_optimizer=not known_args.no_optimizer,
        use_area_search=not known_args.no_search,
    )

    return mode, remaining_args
