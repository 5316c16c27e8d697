"""Search-area grid builders.

Produces the AreaGrid swept by the mission coordinator when a target owns a
search area. Grid points are laid out on a regular lattice, snapped onto the
walkable surface, filtered against obstacles and returned in serpentine
(boustrophedon) order so consecutive sweep points are neighbours.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from . import config as cfg
from .interfaces import RayQueryProvider, SurfaceSampler
from .nav_types import AreaGrid, as_vec3

# Obstacle clearance around a grid point (meters)
GRID_CLEARANCE = 0.25


def order_corners(corners: Sequence[np.ndarray]) -> List[np.ndarray]:
    """Sort polygon corners by angle around their centroid in the x-z plane."""
    points = [as_vec3(c) for c in corners]
    center = np.mean(points, axis=0)
    return sorted(points, key=lambda p: math.atan2(p[2] - center[2], p[0] - center[0]))


def point_in_polygon(point: np.ndarray, polygon: Sequence[np.ndarray]) -> bool:
    """Even-odd ray crossing test in the x-z plane."""
    px, pz = point[0], point[2]
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, zi = polygon[i][0], polygon[i][2]
        xj, zj = polygon[j][0], polygon[j][2]
        if (zi > pz) != (zj > pz) and px < (xj - xi) * (pz - zi) / (zj - zi) + xi:
            inside = not inside
        j = i
    return inside


def serpentine_order(columns: Sequence[Sequence[np.ndarray]]) -> List[np.ndarray]:
    """Flatten lattice columns (each ordered by ascending z), reversing every other one."""
    ordered: List[np.ndarray] = []
    for n, column in enumerate(c for c in columns if c):
        ordered.extend(reversed(column) if n % 2 == 1 else column)
    return ordered


def _blocked(
    point: np.ndarray,
    volume_query: Optional[RayQueryProvider],
    obstacle_tag: str,
    clearance: float,
) -> bool:
    if volume_query is None:
        return False
    return any(c.tag == obstacle_tag for c in volume_query.overlap_volume(point, clearance))


def _accept(
    candidate: np.ndarray,
    sampler: Optional[SurfaceSampler],
    volume_query: Optional[RayQueryProvider],
    tolerance: float,
    obstacle_tag: str,
    clearance: float,
) -> Optional[np.ndarray]:
    point = candidate
    if sampler is not None:
        point = sampler.nearest_walkable(candidate, tolerance)
        if point is None:
            return None
    if _blocked(point, volume_query, obstacle_tag, clearance):
        return None
    return as_vec3(point)


def quadrilateral_search_grid(
    corners: Sequence[np.ndarray],
    spacing: float = cfg.SEARCH_GRID_SPACING,
    sampler: Optional[SurfaceSampler] = None,
    volume_query: Optional[RayQueryProvider] = None,
    obstacle_tag: str = cfg.OBSTACLE_TAG,
    clearance: float = GRID_CLEARANCE,
) -> AreaGrid:
    """Build a sweep grid covering a quadrilateral area.

    Args:
        corners: Four corner points in any order.
        spacing: Lattice spacing (meters).
        sampler: Walkable-surface service; points it rejects are dropped.
        volume_query: Volume query service for obstacle clearance.
        obstacle_tag: Collider tag treated as an obstacle.
        clearance: Radius that must be free of obstacles (meters).

    Returns:
        AreaGrid in serpentine order.

    Raises:
        ValueError: If not exactly four corners are given or spacing <= 0.
    """
    if len(corners) != 4:
        raise ValueError(f"Search area needs exactly 4 corners, got {len(corners)}")
    if spacing <= 0:
        raise ValueError("Grid spacing must be positive")

    polygon = order_corners(corners)
    lo = np.min(polygon, axis=0)
    hi = np.max(polygon, axis=0)
    count_x = math.ceil((hi[0] - lo[0]) / spacing)
    count_z = math.ceil((hi[2] - lo[2]) / spacing)

    columns: List[List[np.ndarray]] = []
    for ix in range(count_x + 1):
        columns.append([])
        for iz in range(count_z + 1):
            candidate = lo + np.array([ix * spacing, 0.0, iz * spacing])
            if not point_in_polygon(candidate, polygon):
                continue
            point = _accept(candidate, sampler, volume_query, spacing, obstacle_tag, clearance)
            if point is not None:
                columns[-1].append(point)

    points = serpentine_order(columns)
    logging.debug(f"Quadrilateral search grid: {len(points)} point(s)")
    return AreaGrid(points)


def circular_search_grid(
    center: np.ndarray,
    radius: float = cfg.SEARCH_GRID_RADIUS,
    spacing: float = cfg.SEARCH_GRID_SPACING,
    sampler: Optional[SurfaceSampler] = None,
    volume_query: Optional[RayQueryProvider] = None,
    tolerance: float = cfg.WALKABLE_TOLERANCE,
    obstacle_tag: str = cfg.OBSTACLE_TAG,
    clearance: float = GRID_CLEARANCE,
) -> AreaGrid:
    """Build a local sweep grid of lattice points within radius of a center."""
    if spacing <= 0:
        raise ValueError("Grid spacing must be positive")

    center = as_vec3(center)
    steps = int(math.floor(radius / spacing))
    columns: List[List[np.ndarray]] = []
    for ix in range(-steps, steps + 1):
        columns.append([])
        for iz in range(-steps, steps + 1):
            offset = np.array([ix * spacing, 0.0, iz * spacing])
            if np.linalg.norm(offset) > radius + 1e-9:
                continue
            point = _accept(center + offset, sampler, volume_query, tolerance, obstacle_tag, clearance)
            if point is not None:
                columns[-1].append(point)

    return AreaGrid(serpentine_order(columns))
