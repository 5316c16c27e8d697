"""In-process simulation world.

Stand-ins for the external collaborators of the navigation core, used by the
command-line demo and the end-to-end tests:
- StraightLinePathProvider: path service over an open plane
- ObstacleField: sphere and box colliders answering ray and volume queries
- FlatGroundSampler: walkable-surface queries on a bounded flat ground
- run_simulation(): drives a NavigationController against a KinematicVehicle
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import config as cfg
from .geometry import distance
from .model import KinematicVehicle
from .nav_types import Collider, MissionState, RayHit, as_vec3


class StraightLinePathProvider:
    """Path service for an obstacle-free plane: the path is the segment itself."""

    def __init__(self) -> None:
        self.queries = 0

    def path(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        self.queries += 1
        return [as_vec3(start), as_vec3(goal)]


@dataclass
class SphereObstacle:
    """Spherical collider. Non-solid colliders are triggers: detectable, not blocking."""

    id: str
    center: np.ndarray
    radius: float
    tag: str = cfg.OBSTACLE_TAG
    solid: bool = True

    def __post_init__(self) -> None:
        self.center = as_vec3(self.center)

    @property
    def position(self) -> np.ndarray:
        return self.center

    def raycast(self, origin: np.ndarray, direction: np.ndarray, max_distance: float) -> Optional[RayHit]:
        oc = origin - self.center
        b = float(np.dot(oc, direction))
        c = float(np.dot(oc, oc)) - self.radius**2
        if c <= 0:
            # Origin inside the sphere
            return RayHit(origin.copy(), -direction, 0.0, self.tag, self.id)
        disc = b * b - c
        if disc < 0:
            return None
        t = -b - float(np.sqrt(disc))
        if t < 0 or t > max_distance:
            return None
        point = origin + direction * t
        normal = (point - self.center) / self.radius
        return RayHit(point, normal, t, self.tag, self.id)

    def closest_point(self, point: np.ndarray) -> np.ndarray:
        offset = point - self.center
        norm = float(np.linalg.norm(offset))
        if norm <= self.radius:
            return point.copy()
        return self.center + offset / norm * self.radius


@dataclass
class BoxObstacle:
    """Axis-aligned box collider given by center and half extents."""

    id: str
    center: np.ndarray
    half_extents: np.ndarray
    tag: str = cfg.OBSTACLE_TAG
    solid: bool = True

    def __post_init__(self) -> None:
        self.center = as_vec3(self.center)
        self.half_extents = as_vec3(self.half_extents)

    @property
    def position(self) -> np.ndarray:
        return self.center

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.center - self.half_extents, self.center + self.half_extents

    def raycast(self, origin: np.ndarray, direction: np.ndarray, max_distance: float) -> Optional[RayHit]:
        """Slab test. The hit normal is the face normal of the entry face."""
        lo, hi = self.bounds
        t_near, t_far = -np.inf, np.inf
        near_axis, near_sign = 0, 1.0
        for axis in range(3):
            d = direction[axis]
            if abs(d) < 1e-12:
                if origin[axis] < lo[axis] or origin[axis] > hi[axis]:
                    return None
                continue
            t1 = (lo[axis] - origin[axis]) / d
            t2 = (hi[axis] - origin[axis]) / d
            if min(t1, t2) > t_near:
                t_near = min(t1, t2)
                near_axis = axis
                near_sign = -1.0 if d > 0 else 1.0
            t_far = min(t_far, max(t1, t2))

        if t_near > t_far or t_far < 0:
            return None
        if t_near < 0:
            return RayHit(origin.copy(), -direction, 0.0, self.tag, self.id)
        if t_near > max_distance:
            return None

        normal = np.zeros(3)
        normal[near_axis] = near_sign
        return RayHit(origin + direction * t_near, normal, float(t_near), self.tag, self.id)

    def closest_point(self, point: np.ndarray) -> np.ndarray:
        lo, hi = self.bounds
        return np.clip(point, lo, hi)


class ObstacleField:
    """Ray and volume query service over a set of colliders."""

    def __init__(self, obstacles: Iterable = ()) -> None:
        self.obstacles = list(obstacles)

    def add(self, obstacle):
        self.obstacles.append(obstacle)
        return obstacle

    def remove(self, obstacle_id: str) -> None:
        self.obstacles = [o for o in self.obstacles if o.id != obstacle_id]

    def replace_obstacles(self, obstacles: Iterable) -> None:
        self.obstacles = list(obstacles)

    def raycast(self, origin: np.ndarray, direction: np.ndarray, max_distance: float) -> Optional[RayHit]:
        """Nearest hit on a solid collider, or None."""
        origin = as_vec3(origin)
        direction = as_vec3(direction)
        norm = float(np.linalg.norm(direction))
        if norm < 1e-12:
            return None
        direction = direction / norm

        nearest: Optional[RayHit] = None
        for obstacle in self.obstacles:
            if not obstacle.solid:
                continue
            hit = obstacle.raycast(origin, direction, max_distance)
            if hit is not None and (nearest is None or hit.distance < nearest.distance):
                nearest = hit
        return nearest

    def overlap_volume(self, center: np.ndarray, radius: float) -> List[Collider]:
        """Every collider (solid or trigger) intersecting the sphere."""
        center = as_vec3(center)
        return [
            Collider(o.id, o.tag, o.position.copy())
            for o in self.obstacles
            if distance(center, o.closest_point(center)) <= radius
        ]

    def collides(self, position: np.ndarray, radius: float) -> bool:
        """True if a disc of the given radius at position touches a solid collider."""
        position = as_vec3(position)
        return any(
            distance(position, o.closest_point(position)) < radius
            for o in self.obstacles
            if o.solid
        )


class FlatGroundSampler:
    """Walkable-surface queries on flat ground, optionally bounded in x and z."""

    def __init__(
        self,
        height: float = 0.0,
        bounds: Optional[Tuple[float, float, float, float]] = None,
    ) -> None:
        """
        Args:
            height: Ground height (y).
            bounds: Optional (min_x, min_z, max_x, max_z) walkable rectangle.
        """
        self.height = height
        self.bounds = bounds

    def nearest_walkable(self, point: np.ndarray, tolerance: float) -> Optional[np.ndarray]:
        point = as_vec3(point)
        x, z = float(point[0]), float(point[2])
        if self.bounds is not None:
            min_x, min_z, max_x, max_z = self.bounds
            x = min(max(x, min_x), max_x)
            z = min(max(z, min_z), max_z)
        snapped = np.array([x, self.height, z])
        horizontal = float(np.hypot(snapped[0] - point[0], snapped[2] - point[2]))
        if horizontal > tolerance:
            return None
        return snapped


@dataclass
class SimulationResult:
    """Outcome of a simulated run.

    Attributes:
        ticks: Ticks executed.
        completed: Whether the mission reached ROUTE_COMPLETE.
        collisions: Blocked vehicle moves.
        trajectory: True positions after every tick.
        estimation_errors: Distance between estimated and true position per tick.
    """

    ticks: int = 0
    completed: bool = False
    collisions: int = 0
    trajectory: List[np.ndarray] = field(default_factory=list)
    estimation_errors: List[float] = field(default_factory=list)

    @property
    def final_position(self) -> Optional[np.ndarray]:
        return self.trajectory[-1] if self.trajectory else None


def run_simulation(
    controller,
    vehicle: KinematicVehicle,
    world: Optional[ObstacleField] = None,
    ticks: int = cfg.SIM_MAX_TICKS,
    dt: float = cfg.SIM_DT,
    stop_on_complete: bool = True,
) -> SimulationResult:
    """Drive a controller against a simulated vehicle.

    Args:
        controller: NavigationController with a started mission.
        vehicle: Simulated vehicle providing the true pose.
        world: Obstacle field used for collisions.
        ticks: Tick budget.
        dt: Tick length (seconds).
        stop_on_complete: Stop as soon as the mission completes.

    Returns:
        SimulationResult of the run.
    """
    result = SimulationResult()
    for _ in range(ticks):
        command = controller.step(vehicle.pose, vehicle.velocity, dt)
        pose = vehicle.step(command, dt, world)
        result.ticks += 1
        result.trajectory.append(pose.position.copy())
        result.estimation_errors.append(distance(controller.get_estimated_position(), pose.position))
        if controller.mission_state == MissionState.ROUTE_COMPLETE:
            result.completed = True
            if stop_on_complete:
                break

    result.collisions = vehicle.collisions
    logging.info(
        f"Simulation finished after {result.ticks} ticks "
        f"(completed: {result.completed}, collisions: {result.collisions})"
    )
    return result


def scenario_obstacles(positions: Sequence[Tuple[float, float, float]], radius: float = 0.5) -> ObstacleField:
    """Obstacle field of equal spheres, ids obstacle_0..n."""
    return ObstacleField(
        SphereObstacle(f"obstacle_{i}", p, radius) for i, p in enumerate(positions)
    )
