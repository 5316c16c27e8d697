"""Exact multi-target route optimization.

Finds the visiting order over N targets that minimizes total path length
from the robot's start position, optionally returning to the start. The
search is exhaustive (O(N!)) and meant for small target sets.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from . import config as cfg
from .geometry import distance as euclidean
from .geometry import polyline_length
from .interfaces import PathProvider
from .nav_types import Route, as_vec3


class RouteOptimizer:
    """Brute-force travelling-salesman solver over provider path lengths.

    Distances use the path provider's polyline length when a path exists and
    fall back to straight-line distance otherwise. The same metric is used
    for optimization and for reporting route lengths.
    """

    def __init__(
        self,
        path_provider: Optional[PathProvider] = None,
        max_exhaustive_targets: int = cfg.ROUTE_MAX_EXHAUSTIVE_TARGETS,
    ):
        """Initialize the optimizer.

        Args:
            path_provider: Path service; None means straight-line distances.
            max_exhaustive_targets: Target count above which a warning is logged.
        """
        self.path_provider = path_provider
        self.max_exhaustive_targets = max_exhaustive_targets
        self.permutations_evaluated = 0

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Path length from a to b, or straight-line distance without a path."""
        if self.path_provider is not None:
            path = self.path_provider.path(a, b)
            if path:
                return polyline_length(path)
        return euclidean(a, b)

    def distance_matrix(self, points: Sequence[np.ndarray]) -> np.ndarray:
        """Directed distance matrix between all points (row = from, col = to)."""
        n = len(points)
        matrix = np.zeros((n, n))
        for i in range(n):
            for j in range(n):
                if i != j:
                    matrix[i, j] = self.distance(points[i], points[j])
        return matrix

    @staticmethod
    def _tour_length(
        matrix: np.ndarray, order: Sequence[int], return_to_start: bool, end: int = 0
    ) -> float:
        # Row/column 0 is the start; target k sits at k + 1; the closing leg ends at `end`
        if not order:
            return 0.0
        total = matrix[0, order[0] + 1]
        for a, b in zip(order[:-1], order[1:]):
            total += matrix[a + 1, b + 1]
        if return_to_start:
            total += matrix[order[-1] + 1, end]
        return float(total)

    def route_length(
        self,
        start: np.ndarray,
        positions: Sequence[np.ndarray],
        order: Sequence[int],
        return_to_start: bool = False,
        end: Optional[np.ndarray] = None,
    ) -> float:
        """Total length of a given visiting order (for reporting)."""
        points = [as_vec3(start)] + [as_vec3(p) for p in positions]
        if end is not None:
            points.append(as_vec3(end))
        closing = len(points) - 1 if end is not None else 0
        return self._tour_length(self.distance_matrix(points), list(order), return_to_start, closing)

    def optimize(
        self,
        start: np.ndarray,
        positions: Sequence[np.ndarray],
        return_to_start: bool = False,
        end: Optional[np.ndarray] = None,
    ) -> Route:
        """Compute the optimal visiting order.

        Enumerates every permutation of the target indices by swap-based
        recursion with the start fixed, keeping the strictly shortest tour.
        Ties keep the first permutation found, so identical inputs always
        give the identical route.

        Args:
            start: Robot start position.
            positions: Target positions.
            return_to_start: Include the closing leg from the last target.
            end: Where the closing leg ends (default: start). Used when
                re-planning a route that must finish at a fixed home position.

        Returns:
            Immutable Route with the optimal order and its length.
        """
        n = len(positions)
        self.permutations_evaluated = 0
        if n == 0:
            return Route(order=(), return_to_start=return_to_start, length=0.0)

        if n > self.max_exhaustive_targets:
            logging.warning(
                f"Exhaustive route search over {n} targets "
                f"(> {self.max_exhaustive_targets}) evaluates {math.factorial(n)} permutations"
            )

        points = [as_vec3(start)] + [as_vec3(p) for p in positions]
        if end is not None:
            points.append(as_vec3(end))
        closing = n + 1 if end is not None else 0
        matrix = self.distance_matrix(points)

        indices: List[int] = list(range(n))
        best_order: List[int] = list(indices)
        best_length = math.inf

        def permute(k: int) -> None:
            nonlocal best_order, best_length
            if k == n:
                self.permutations_evaluated += 1
                length = self._tour_length(matrix, indices, return_to_start, closing)
                if length < best_length:
                    best_length = length
                    best_order = list(indices)
                return

            for i in range(k, n):
                indices[k], indices[i] = indices[i], indices[k]
                permute(k + 1)
                indices[k], indices[i] = indices[i], indices[k]

        permute(0)

        route = Route(order=tuple(best_order), return_to_start=return_to_start, length=best_length)
        logging.info(
            f"Optimal route {' → '.join(str(i) for i in route.order)} "
            f"with total distance {route.length:.2f} units"
        )
        return route
