"""Frame transforms and polyline helpers shared by the navigation components."""

import math
from typing import Sequence, Tuple

import numpy as np

UP = np.array([0.0, 1.0, 0.0])


def forward_vector(heading: float) -> np.ndarray:
    """Unit vector the robot faces for a heading (radians, 0 = +z)."""
    return np.array([math.sin(heading), 0.0, math.cos(heading)])


def right_vector(heading: float) -> np.ndarray:
    """Unit vector pointing to the robot's right for a heading."""
    return np.array([math.cos(heading), 0.0, -math.sin(heading)])


def rotate_about_up(direction: np.ndarray, angle_deg: float) -> np.ndarray:
    """Rotate a direction about +y. Positive angles turn toward the right."""
    a = math.radians(angle_deg)
    c, s = math.cos(a), math.sin(a)
    x, y, z = direction
    return np.array([x * c + z * s, y, -x * s + z * c])


def world_to_local(
    position: np.ndarray, heading: float, point: np.ndarray
) -> Tuple[float, float, float]:
    """Express a world point in the robot frame.

    Returns:
        Tuple of (lateral, vertical, longitudinal) where lateral is positive
        to the right and longitudinal positive ahead.
    """
    delta = np.asarray(point, dtype=float) - np.asarray(position, dtype=float)
    lateral = float(np.dot(delta, right_vector(heading)))
    vertical = float(delta[1])
    longitudinal = float(np.dot(delta, forward_vector(heading)))
    return lateral, vertical, longitudinal


def local_direction(heading: float, direction: np.ndarray) -> Tuple[float, float, float]:
    """Express a world direction (e.g. a surface normal) in the robot frame."""
    return world_to_local(np.zeros(3), heading, direction)


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(b, dtype=float) - np.asarray(a, dtype=float)))


def polyline_length(points: Sequence[np.ndarray]) -> float:
    """Sum of segment lengths. Zero for fewer than two points."""
    if len(points) < 2:
        return 0.0
    pts = np.asarray(points, dtype=float)
    return float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))
