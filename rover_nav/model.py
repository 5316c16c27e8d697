"""
Kinematic bicycle model of the wheeled rover.

This module integrates the drive command produced by the navigation core
into a new vehicle pose: throttle becomes longitudinal acceleration, the
brake decelerates toward standstill and the steering angle sets the yaw
rate through the wheelbase.
"""

import math
from typing import Optional

import numpy as np

from . import config as cfg
from .geometry import forward_vector
from .nav_types import DriveCommand, Pose, vec3


class KinematicVehicle:
    """Rear-axle bicycle model with speed limits and collision stop.

    Attributes:
        pose: True vehicle pose.
        speed: Signed longitudinal speed (m/s), negative when reversing.
        collisions: Number of ticks whose motion was blocked by an obstacle.
    """

    def __init__(
        self,
        pose: Optional[Pose] = None,
        wheelbase: float = cfg.WHEELBASE,
        max_speed: float = cfg.MAX_SPEED,
        max_reverse_speed: float = cfg.MAX_REVERSE_SPEED,
        max_acceleration: float = cfg.MAX_ACCELERATION,
        brake_deceleration: float = cfg.BRAKE_DECELERATION,
        rolling_drag: float = cfg.ROLLING_DRAG,
        radius: float = cfg.ROBOT_RADIUS,
    ) -> None:
        self.pose = pose.copy() if pose is not None else Pose(vec3(), 0.0)
        self.wheelbase = wheelbase
        self.max_speed = max_speed
        self.max_reverse_speed = max_reverse_speed
        self.max_acceleration = max_acceleration
        self.brake_deceleration = brake_deceleration
        self.rolling_drag = rolling_drag
        self.radius = radius
        self.speed = 0.0
        self.collisions = 0

    @property
    def velocity(self) -> np.ndarray:
        """World-frame velocity vector (m/s)."""
        return forward_vector(self.pose.heading) * self.speed

    def step(self, command: DriveCommand, dt: float, obstacles=None) -> Pose:
        """
        Advance the vehicle by one tick.

        Args:
            command: Drive command (steering in degrees, throttle in [-1, 1], brake).
            dt: Time step (seconds).
            obstacles: Optional object with collides(position, radius); a
                blocked move leaves the vehicle in place with zero speed.

        Returns:
            Pose: New true pose (copy).
        """
        if command.brake:
            decel = self.brake_deceleration * dt
            if abs(self.speed) <= decel:
                self.speed = 0.0
            else:
                self.speed -= math.copysign(decel, self.speed)
        else:
            throttle = max(-1.0, min(1.0, command.throttle))
            accel = throttle * self.max_acceleration - self.rolling_drag * self.speed
            self.speed += accel * dt

        self.speed = max(-self.max_reverse_speed, min(self.max_speed, self.speed))

        # Yaw rate of a bicycle model: v / L * tan(delta)
        steering = math.radians(command.steering)
        heading = self.pose.heading + self.speed / self.wheelbase * math.tan(steering) * dt
        position = self.pose.position + forward_vector(heading) * self.speed * dt

        if obstacles is not None and obstacles.collides(position, self.radius):
            self.speed = 0.0
            self.collisions += 1
            self.pose = Pose(self.pose.position.copy(), heading)
        else:
            self.pose = Pose(position, heading)

        return self.pose.copy()
