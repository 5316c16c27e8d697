"""Reactive obstacle avoidance with stuck recovery.

Short-range rays from the robot front feed a signed avoidance accumulator:

    right side ray    -1.0   (steer left)
    right angled ray  -0.5   (cast only if the right side ray misses)
    left side ray     +1.0   (steer right)
    left angled ray   +0.5   (cast only if the left side ray misses)
    center fan        ±1.0   (only while the accumulator is exactly zero;
                              sign from the hit normal's lateral component)

The sign of the accumulator picks the steer-away direction. A center hit
while the robot is driving slower than the stuck threshold for long enough
switches to REVERSING, which overrides everything until a full sensor sweep
comes back clear.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from . import config as cfg
from .geometry import UP, forward_vector, local_direction, right_vector, rotate_about_up
from .interfaces import RayQueryProvider
from .nav_types import AvoidanceState, Pose, SensorReading

SIDE_WEIGHT = 1.0
ANGLED_WEIGHT = 0.5
CENTER_WEIGHT = 1.0


@dataclass
class AvoidanceOutput:
    """Avoidance decision for one tick.

    Attributes:
        state: Active avoidance state after this tick.
        accumulator: Signed sum of the sensor contributions.
        steering_override: Steering (degrees) replacing the follower's, or None.
        throttle_override: Throttle replacing the follower's, or None.
        brake: True for the single full-stop tick after reversing ends.
        readings: Every ray evaluated this tick.
    """

    state: AvoidanceState = AvoidanceState.FOLLOWING
    accumulator: float = 0.0
    steering_override: Optional[float] = None
    throttle_override: Optional[float] = None
    brake: bool = False
    readings: List[SensorReading] = field(default_factory=list)


class ObstacleAvoidance:
    """Sensor-driven avoidance state machine over FOLLOWING/AVOIDING/REVERSING."""

    def __init__(
        self,
        ray_provider: RayQueryProvider,
        obstacle_tag: str = cfg.OBSTACLE_TAG,
        sensor_length: float = cfg.SENSOR_LENGTH,
        forward_offset: float = cfg.SENSOR_FORWARD_OFFSET,
        height_offset: float = cfg.SENSOR_HEIGHT_OFFSET,
        side_offset: float = cfg.SIDE_SENSOR_OFFSET,
        side_angle: float = cfg.SIDE_SENSOR_ANGLE,
        center_width: float = cfg.CENTER_FAN_WIDTH,
        center_rays: int = cfg.CENTER_RAY_COUNT,
        max_steering_angle: float = cfg.MAX_STEERING_ANGLE,
        stuck_speed: float = cfg.STUCK_SPEED_THRESHOLD,
        stuck_time: float = cfg.STUCK_TIME,
        reverse_throttle: float = cfg.REVERSE_THROTTLE,
    ):
        """Initialize the avoidance sensors.

        Args:
            ray_provider: Physics query service used for ray casts.
            obstacle_tag: Only hits on colliders with this tag count.
            sensor_length: Ray range (meters).
            forward_offset: Sensor bar distance ahead of the robot origin (meters).
            height_offset: Sensor bar height above the robot origin (meters).
            side_offset: Lateral offset of the side sensors (meters).
            side_angle: Outward angle of the angled sensors (degrees).
            center_width: Width spanned by the center fan (meters).
            center_rays: Number of parallel center rays.
            max_steering_angle: Steering used while avoiding (degrees).
            stuck_speed: Speed under which a blocked robot counts as stuck (m/s).
            stuck_time: Time blocked and slow before reversing (seconds).
            reverse_throttle: Throttle magnitude while reversing.
        """
        if center_rays < 1:
            raise ValueError("center_rays must be at least 1")

        self.ray_provider = ray_provider
        self.obstacle_tag = obstacle_tag
        self.sensor_length = sensor_length
        self.forward_offset = forward_offset
        self.height_offset = height_offset
        self.side_offset = side_offset
        self.side_angle = side_angle
        self.center_width = center_width
        self.center_rays = center_rays
        self.max_steering_angle = max_steering_angle
        self.stuck_speed = stuck_speed
        self.stuck_time = stuck_time
        self.reverse_throttle = reverse_throttle

        self.state = AvoidanceState.FOLLOWING
        self.stuck_timer = 0.0
        self.accumulator = 0.0

    def _sensor_origin(self, pose: Pose) -> np.ndarray:
        return (
            pose.position
            + forward_vector(pose.heading) * self.forward_offset
            + UP * self.height_offset
        )

    def _cast(self, label: str, origin: np.ndarray, direction: np.ndarray) -> SensorReading:
        hit = self.ray_provider.raycast(origin, direction, self.sensor_length)
        if hit is None or hit.tag != self.obstacle_tag:
            return SensorReading(label)
        return SensorReading(label, hit=True, point=hit.point, normal=hit.normal)

    def _cast_side(
        self, pose: Pose, side: str, always_cast_angled: bool
    ) -> List[SensorReading]:
        """Cast the direct and angled ray of one side.

        The angled ray is only cast when the direct ray misses, unless a full
        sweep is requested.
        """
        sign = 1.0 if side == "right" else -1.0
        forward = forward_vector(pose.heading)
        origin = self._sensor_origin(pose) + right_vector(pose.heading) * sign * self.side_offset

        # Right hits steer left (negative), left hits steer right (positive)
        direct = self._cast(side, origin, forward)
        if direct.hit:
            direct.weight = -sign * SIDE_WEIGHT

        readings = [direct]
        if not direct.hit or always_cast_angled:
            angled_dir = rotate_about_up(forward, sign * self.side_angle)
            angled = self._cast(f"{side}_angled", origin, angled_dir)
            if angled.hit and not direct.hit:
                angled.weight = -sign * ANGLED_WEIGHT
            readings.append(angled)
        return readings

    def _cast_center(self, pose: Pose) -> List[SensorReading]:
        forward = forward_vector(pose.heading)
        right = right_vector(pose.heading)
        origin = self._sensor_origin(pose)
        if self.center_rays == 1:
            offsets = [0.0]
        else:
            offsets = np.linspace(-self.center_width / 2.0, self.center_width / 2.0, self.center_rays)
        return [
            self._cast(f"center_{k}", origin + right * float(offset), forward)
            for k, offset in enumerate(offsets)
        ]

    def _center_weight(self, pose: Pose, center: List[SensorReading]) -> float:
        """Steer-away sign from the nearest center hit's surface normal."""
        hits = [r for r in center if r.hit]
        if not hits:
            return 0.0
        origin = self._sensor_origin(pose)
        nearest = min(hits, key=lambda r: float(np.linalg.norm(r.point - origin)))
        lateral, _, _ = local_direction(pose.heading, nearest.normal)
        weight = CENTER_WEIGHT if lateral > 0 else -CENTER_WEIGHT
        nearest.weight = weight
        return weight

    def scan(
        self, pose: Pose, full_sweep: bool = False, include_center: bool = False
    ) -> Tuple[float, List[SensorReading], bool]:
        """Cast the sensor rays and build the avoidance accumulator.

        Args:
            pose: Robot pose the sensors are mounted on.
            full_sweep: Cast every ray regardless of earlier hits.
            include_center: Cast the center fan even when the sides detect
                something (used for stuck detection); those center hits do
                not change the accumulator.

        Returns:
            Tuple of (accumulator, readings, center_blocked).
        """
        readings = self._cast_side(pose, "right", full_sweep)
        readings += self._cast_side(pose, "left", full_sweep)
        accumulator = sum(r.weight for r in readings)

        center: List[SensorReading] = []
        if accumulator == 0 or full_sweep or include_center:
            center = self._cast_center(pose)
            readings += center
            if accumulator == 0:
                accumulator = self._center_weight(pose, center)

        center_blocked = any(r.hit for r in center)
        return accumulator, readings, center_blocked

    def _reverse_output(self, readings: List[SensorReading]) -> AvoidanceOutput:
        return AvoidanceOutput(
            state=AvoidanceState.REVERSING,
            accumulator=self.accumulator,
            steering_override=0.0,
            throttle_override=-self.reverse_throttle,
            brake=False,
            readings=readings,
        )

    def update(self, pose: Pose, speed: float, dt: float, driving: bool = True) -> AvoidanceOutput:
        """Run one avoidance tick.

        Args:
            pose: Actual robot pose (sensors are physically mounted on the robot).
            speed: Current velocity magnitude (m/s).
            dt: Elapsed time since last tick (seconds).
            driving: Whether the follower is commanding forward motion. Stuck
                detection only runs while driving.

        Returns:
            AvoidanceOutput with overrides for the command arbitration.
        """
        if self.state == AvoidanceState.REVERSING:
            _, readings, _ = self.scan(pose, full_sweep=True)
            if any(r.hit for r in readings):
                return self._reverse_output(readings)

            # Sweep clear: one full stop, then resume following
            logging.info("Obstacle cleared, stopping before resuming path following")
            self.state = AvoidanceState.FOLLOWING
            self.stuck_timer = 0.0
            self.accumulator = 0.0
            return AvoidanceOutput(
                state=self.state,
                steering_override=0.0,
                throttle_override=0.0,
                brake=True,
                readings=readings,
            )

        slow = abs(speed) < self.stuck_speed
        accumulator, readings, center_blocked = self.scan(pose, include_center=slow)
        self.accumulator = accumulator

        if driving and slow and center_blocked:
            self.stuck_timer += dt
        else:
            self.stuck_timer = 0.0

        if self.stuck_timer >= self.stuck_time:
            logging.warning(
                f"Stuck for {self.stuck_timer:.2f}s at speed {speed:.2f}m/s, reversing"
            )
            self.state = AvoidanceState.REVERSING
            self.stuck_timer = 0.0
            return self._reverse_output(readings)

        if accumulator != 0:
            if self.state != AvoidanceState.AVOIDING:
                logging.debug(f"Avoiding obstacle (accumulator {accumulator:+.1f})")
            self.state = AvoidanceState.AVOIDING
            return AvoidanceOutput(
                state=self.state,
                accumulator=accumulator,
                steering_override=self.max_steering_angle * float(np.sign(accumulator)),
                readings=readings,
            )

        self.state = AvoidanceState.FOLLOWING
        return AvoidanceOutput(state=self.state, accumulator=0.0, readings=readings)

    def reset(self) -> None:
        self.state = AvoidanceState.FOLLOWING
        self.stuck_timer = 0.0
        self.accumulator = 0.0
