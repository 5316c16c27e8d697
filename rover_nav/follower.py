"""Look-ahead path follower for rover control.

This module implements the steering and speed controller that:
- Queries the path provider for a polyline to the active target
- Picks a look-ahead point a fixed path distance ahead of the robot
- Computes a proportional steering angle toward that point
- Ramps throttle down quadratically inside the slowing distance
- Latches a one-shot "target reached" event and brakes on arrival
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from . import config as cfg
from .geometry import distance, world_to_local
from .interfaces import PathProvider
from .nav_types import Pose, as_vec3


@dataclass
class FollowerOutput:
    """Follower commands for one tick.

    Attributes:
        steering: Commanded (unfiltered) steering angle in degrees.
        throttle: Throttle in [0, 1].
        brake: True when the follower asks for a full stop.
        target_reached: One-shot arrival event.
        distance: Distance from the robot to the active target (inf if none).
        look_ahead_point: Point used for steering this tick.
    """

    steering: float = 0.0
    throttle: float = 0.0
    brake: bool = True
    target_reached: bool = False
    distance: float = float("inf")
    look_ahead_point: Optional[np.ndarray] = None


class PathFollower:
    """Steers the robot along provider paths toward the active target.

    Uses the estimated pose from the localizer; the active target is
    written by the mission coordinator through set_target().
    """

    def __init__(
        self,
        path_provider: Optional[PathProvider] = None,
        look_ahead_distance: float = cfg.FOLLOWER_LOOK_AHEAD_DISTANCE,
        arrival_distance: float = cfg.FOLLOWER_ARRIVAL_DISTANCE,
        slowing_distance: float = cfg.FOLLOWER_SLOWING_DISTANCE,
        max_steering_angle: float = cfg.MAX_STEERING_ANGLE,
        turn_speed: float = cfg.STEERING_TURN_SPEED,
        turn_responsiveness: float = cfg.STEERING_RESPONSIVENESS,
    ):
        """Initialize the path follower.

        Args:
            path_provider: Path service; None means always drive straight-line.
            look_ahead_distance: Path distance to the steering point (meters).
            arrival_distance: Distance counting as target reached (meters).
            slowing_distance: Distance where throttle starts to ramp down (meters).
            max_steering_angle: Steering saturation (degrees).
            turn_speed: Base rate of the steering low-pass filter (1/s).
            turn_responsiveness: Extra filter responsiveness in [0, 1].
        """
        self.path_provider = path_provider
        self.look_ahead_distance = look_ahead_distance
        self.arrival_distance = arrival_distance
        self.slowing_distance = slowing_distance
        self.max_steering_angle = max_steering_angle
        self.turn_speed = turn_speed
        self.turn_responsiveness = turn_responsiveness

        self.target: Optional[np.ndarray] = None
        self.applied_steering: float = 0.0
        self.target_reached: bool = False  # Arrival latch
        self.last_path: List[np.ndarray] = []

    def set_target(self, position: Optional[np.ndarray]) -> None:
        """Set the active target. None stops the robot.

        A new target re-arms the arrival latch.
        """
        self.target = None if position is None else as_vec3(position)
        self.target_reached = False

    def plan_path(self, start: np.ndarray, goal: np.ndarray) -> List[np.ndarray]:
        """Get a polyline to the goal, falling back to a straight line."""
        path: Optional[Sequence[np.ndarray]] = None
        if self.path_provider is not None:
            path = self.path_provider.path(start, goal)

        if not path:
            return [as_vec3(start), as_vec3(goal)]
        return [as_vec3(p) for p in path]

    def select_look_ahead_point(self, polyline: Sequence[np.ndarray]) -> np.ndarray:
        """Pick the corner where accumulated path length reaches the look-ahead.

        Args:
            polyline: Path corners starting at the robot.

        Returns:
            The first corner at or beyond look_ahead_distance along the path,
            else the final corner.
        """
        if len(polyline) == 1:
            return as_vec3(polyline[0])

        distance_sum = 0.0
        for i in range(len(polyline) - 1):
            distance_sum += distance(polyline[i], polyline[i + 1])
            if distance_sum >= self.look_ahead_distance:
                return as_vec3(polyline[i + 1])

        return as_vec3(polyline[-1])

    def compute_steering(self, pose: Pose, point: np.ndarray) -> float:
        """Proportional steering toward a point.

        angle = (lateral offset / distance to point) * max_steering_angle,
        saturating at ±max for points directly to the side.

        Returns:
            Steering angle in degrees, positive to the right.
        """
        lateral, vertical, longitudinal = world_to_local(pose.position, pose.heading, point)
        magnitude = float(np.sqrt(lateral**2 + vertical**2 + longitudinal**2))
        if magnitude < 1e-9:
            return 0.0
        return (lateral / magnitude) * self.max_steering_angle

    def compute_throttle(self, distance_to_target: float) -> float:
        """Quadratic speed reduction inside the slowing distance.

        Returns:
            1.0 beyond slowing_distance, else clamp01(d / slowing)², 0 at the target.
        """
        if distance_to_target >= self.slowing_distance:
            return 1.0
        factor = min(1.0, max(0.0, distance_to_target / self.slowing_distance))
        return factor * factor

    def update(self, pose: Pose, dt: float) -> FollowerOutput:
        """Compute steering and throttle for the current tick.

        Args:
            pose: Estimated robot pose.
            dt: Elapsed time since last tick (seconds). Unused by the
                commands themselves; filtering happens in smooth_steering().

        Returns:
            FollowerOutput for this tick.
        """
        if self.target is None:
            self.last_path = []
            return FollowerOutput()

        distance_to_target = distance(pose.position, self.target)

        if distance_to_target <= self.arrival_distance:
            fired = not self.target_reached
            if fired:
                self.target_reached = True
                logging.debug(f"Target reached at distance {distance_to_target:.2f}m")
            return FollowerOutput(
                steering=0.0,
                throttle=0.0,
                brake=True,
                target_reached=fired,
                distance=distance_to_target,
                look_ahead_point=self.target.copy(),
            )

        # Moved back outside arrival distance: re-arm the latch
        self.target_reached = False

        self.last_path = self.plan_path(pose.position, self.target)
        look_ahead_point = self.select_look_ahead_point(self.last_path)

        return FollowerOutput(
            steering=self.compute_steering(pose, look_ahead_point),
            throttle=self.compute_throttle(distance_to_target),
            brake=False,
            target_reached=False,
            distance=distance_to_target,
            look_ahead_point=look_ahead_point,
        )

    def smooth_steering(self, commanded: float, dt: float) -> float:
        """Low-pass the applied wheel angle toward the commanded angle.

        Args:
            commanded: Steering command after avoidance arbitration (degrees).
            dt: Elapsed time since last tick (seconds).

        Returns:
            New applied steering angle (degrees).
        """
        factor = dt * self.turn_speed * (1.0 + self.turn_responsiveness * 5.0)
        factor = min(1.0, max(0.0, factor))
        self.applied_steering += (commanded - self.applied_steering) * factor
        return self.applied_steering

    def reset(self) -> None:
        """Clear target, applied steering and arrival latch."""
        self.target = None
        self.applied_steering = 0.0
        self.target_reached = False
        self.last_path = []
