"""Contracts of the external collaborators consumed by the navigation core.

The core never talks to a navigation mesh or physics engine directly; it
receives objects satisfying these protocols at construction time.
"""

from typing import List, Optional, Protocol, Sequence

import numpy as np

from .nav_types import Collider, RayHit


class PathProvider(Protocol):
    def path(self, start: np.ndarray, goal: np.ndarray) -> Optional[Sequence[np.ndarray]]:
        """Ordered polyline from start to goal, or None when no path exists.

        Must be deterministic for fixed inputs within one tick.
        """
        ...


class SurfaceSampler(Protocol):
    def nearest_walkable(self, point: np.ndarray, tolerance: float) -> Optional[np.ndarray]:
        """Closest walkable point within tolerance, or None."""
        ...


class RayQueryProvider(Protocol):
    def raycast(
        self, origin: np.ndarray, direction: np.ndarray, max_distance: float
    ) -> Optional[RayHit]:
        """Nearest hit along a unit direction within max_distance, or None."""
        ...

    def overlap_volume(self, center: np.ndarray, radius: float) -> List[Collider]:
        """Colliders intersecting the sphere (center, radius)."""
        ...
