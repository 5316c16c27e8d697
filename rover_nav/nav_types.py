"""Shared data types for the navigation stack.

World frame is y-up with the ground in the x-z plane. A heading of 0 faces
+z and positive headings turn toward +x (the robot's right). Steering
angles are degrees with positive meaning "steer right".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import numpy as np


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    """Build a 3D float vector."""
    return np.array([x, y, z], dtype=float)


def as_vec3(value) -> np.ndarray:
    """Convert a sequence of three numbers to a float vector (copy)."""
    arr = np.array(value, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3D point, got shape {arr.shape}")
    return arr


@dataclass
class Pose:
    """Robot position and heading (radians about +y)."""

    position: np.ndarray = field(default_factory=vec3)
    heading: float = 0.0

    def copy(self) -> "Pose":
        return Pose(self.position.copy(), float(self.heading))


@dataclass(frozen=True)
class Landmark:
    """Fixed ranging beacon with a known position."""

    id: str
    position: np.ndarray


@dataclass(frozen=True)
class RangeMeasurement:
    landmark_id: str
    distance: float


@dataclass
class AreaGrid:
    """Ordered sweep points searched once the owning target is reached."""

    points: List[np.ndarray] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)


@dataclass
class Target:
    """Mission target, optionally owning an area to sweep on arrival."""

    id: str
    position: np.ndarray
    area_grid: Optional[AreaGrid] = None

    @property
    def has_search_area(self) -> bool:
        return self.area_grid is not None and len(self.area_grid) > 0


@dataclass(frozen=True)
class Route:
    """Immutable visiting order over a target list.

    Attributes:
        order: Permutation of target indices.
        return_to_start: Whether the tour ends back at the start position.
        length: Total traversed length under the optimizer's distance metric.
    """

    order: Tuple[int, ...]
    return_to_start: bool = False
    length: float = 0.0

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self) -> Iterator[int]:
        return iter(self.order)

    def __getitem__(self, index: int) -> int:
        return self.order[index]


@dataclass(frozen=True)
class RayHit:
    point: np.ndarray
    normal: np.ndarray
    distance: float
    tag: str
    collider_id: str = ""


@dataclass(frozen=True)
class Collider:
    """Result entry of a volume overlap query."""

    id: str
    tag: str
    position: np.ndarray


@dataclass
class SensorReading:
    """One avoidance ray result for the current tick."""

    label: str
    hit: bool = False
    point: Optional[np.ndarray] = None
    normal: Optional[np.ndarray] = None
    weight: float = 0.0


class AvoidanceState(Enum):
    FOLLOWING = "following"
    AVOIDING = "avoiding"
    REVERSING = "reversing"


class MissionState(Enum):
    NAVIGATING_TO_TARGET = "navigating_to_target"
    SEARCHING_AREA = "searching_area"
    MOVING_TO_DETECTED_OBJECT = "moving_to_detected_object"
    TARGET_HANDLED = "target_handled"
    ROUTE_COMPLETE = "route_complete"


@dataclass
class DriveCommand:
    """Actuator command produced once per tick.

    Attributes:
        steering: Applied (filtered) steering angle in degrees, + = right.
        throttle: Normalized wheel torque in [-1, 1]. Negative only when reversing.
        brake: True to apply full brake torque.
    """

    steering: float = 0.0
    throttle: float = 0.0
    brake: bool = False

    @classmethod
    def stop(cls, steering: float = 0.0) -> "DriveCommand":
        return cls(steering=steering, throttle=0.0, brake=True)

    def to_dict(self) -> dict:
        return {
            "steering": float(self.steering),
            "throttle": float(self.throttle),
            "brake": bool(self.brake),
        }
