import unittest

import numpy as np

from rover_nav.nav_types import vec3
from rover_nav.search_grid import (
    circular_search_grid,
    order_corners,
    point_in_polygon,
    quadrilateral_search_grid,
    serpentine_order,
)
from rover_nav.simulation import FlatGroundSampler, ObstacleField, SphereObstacle


class TestPolygonHelpers(unittest.TestCase):
    def test_corners_sorted_by_angle(self) -> None:
        corners = [vec3(4, 0, 4), vec3(0, 0, 0), vec3(4, 0, 0), vec3(0, 0, 4)]
        ordered = order_corners(corners)
        np.testing.assert_allclose(ordered[0], [0, 0, 0])
        np.testing.assert_allclose(ordered[1], [4, 0, 0])
        np.testing.assert_allclose(ordered[2], [4, 0, 4])
        np.testing.assert_allclose(ordered[3], [0, 0, 4])

    def test_point_in_polygon(self) -> None:
        diamond = order_corners([vec3(0, 0, -2), vec3(2, 0, 0), vec3(0, 0, 2), vec3(-2, 0, 0)])
        self.assertTrue(point_in_polygon(vec3(0.5, 0, 0.5), diamond))
        self.assertFalse(point_in_polygon(vec3(1.8, 0, 1.8), diamond))

    def test_serpentine_alternates_columns(self) -> None:
        columns = [[vec3(x, 0, z) for z in (0, 1, 2)] for x in (0, 1, 2)]
        columns.insert(1, [])
        ordered = serpentine_order(columns)
        zs = [p[2] for p in ordered]
        self.assertEqual(zs, [0, 1, 2, 2, 1, 0, 0, 1, 2])


class TestQuadrilateralGrid(unittest.TestCase):
    corners = [vec3(4.5, 0, 4.5), vec3(-0.5, 0, -0.5), vec3(4.5, 0, -0.5), vec3(-0.5, 0, 4.5)]

    def test_covers_area(self) -> None:
        grid = quadrilateral_search_grid(self.corners, spacing=1.0)
        self.assertEqual(len(grid), 25)
        for p in grid.points:
            self.assertTrue(-0.5 <= p[0] < 4.5 and -0.5 <= p[2] < 4.5)

    def test_obstacles_remove_points(self) -> None:
        field = ObstacleField([SphereObstacle("rock", vec3(1.5, 0, 1.5), 0.3)])
        grid = quadrilateral_search_grid(self.corners, spacing=1.0, volume_query=field)
        self.assertEqual(len(grid), 24)

    def test_unwalkable_points_are_dropped(self) -> None:
        sampler = FlatGroundSampler(bounds=(-10.0, -10.0, 1.0, 10.0))
        grid = quadrilateral_search_grid(self.corners, spacing=1.0, sampler=sampler)
        self.assertTrue(all(p[0] <= 1.0 for p in grid.points))
        self.assertLess(len(grid), 25)

    def test_requires_four_corners(self) -> None:
        with self.assertRaises(ValueError):
            quadrilateral_search_grid(self.corners[:3])


class TestCircularGrid(unittest.TestCase):
    def test_lattice_points_within_radius(self) -> None:
        grid = circular_search_grid(vec3(0, 0, 0), radius=2.0, spacing=1.0)
        self.assertEqual(len(grid), 13)
        self.assertTrue(all(np.linalg.norm(p) <= 2.0 + 1e-9 for p in grid.points))
        np.testing.assert_allclose(grid.points[0], [-2.0, 0.0, 0.0])

    def test_obstacle_clearance(self) -> None:
        field = ObstacleField([SphereObstacle("rock", vec3(1, 0, 1), 0.3)])
        grid = circular_search_grid(vec3(0, 0, 0), radius=2.0, spacing=1.0, volume_query=field)
        self.assertEqual(len(grid), 12)

    def test_triggers_do_not_block(self) -> None:
        field = ObstacleField([SphereObstacle("bomb", vec3(1, 0, 1), 0.3, tag="Detectable", solid=False)])
        grid = circular_search_grid(vec3(0, 0, 0), radius=2.0, spacing=1.0, volume_query=field)
        self.assertEqual(len(grid), 13)


if __name__ == "__main__":
    unittest.main()
