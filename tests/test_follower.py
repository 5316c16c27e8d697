import math
import unittest

import numpy as np

from rover_nav.follower import PathFollower
from rover_nav.nav_types import Pose, vec3


class DetourProvider:
    """Returns a fixed polyline regardless of the query."""

    def __init__(self, polyline):
        self.polyline = polyline

    def path(self, start, goal):
        return self.polyline


class NoPathProvider:
    def path(self, start, goal):
        return None


ORIGIN = Pose(vec3(0.0, 0.0, 0.0), 0.0)


class TestSteering(unittest.TestCase):
    def setUp(self) -> None:
        self.follower = PathFollower(max_steering_angle=40.0)

    def test_sign_follows_lateral_offset(self) -> None:
        self.assertGreater(self.follower.compute_steering(ORIGIN, vec3(5.0, 0.0, 5.0)), 0)
        self.assertLess(self.follower.compute_steering(ORIGIN, vec3(-5.0, 0.0, 5.0)), 0)
        self.assertEqual(self.follower.compute_steering(ORIGIN, vec3(0.0, 0.0, 5.0)), 0.0)

    def test_saturates_for_point_abeam(self) -> None:
        self.assertAlmostEqual(self.follower.compute_steering(ORIGIN, vec3(3.0, 0.0, 0.0)), 40.0)
        self.assertAlmostEqual(self.follower.compute_steering(ORIGIN, vec3(-3.0, 0.0, 0.0)), -40.0)

    def test_magnitude_grows_with_lateral_offset(self) -> None:
        angles = [self.follower.compute_steering(ORIGIN, vec3(x, 0.0, 5.0)) for x in (0.5, 1.0, 2.0, 4.0)]
        self.assertEqual(angles, sorted(angles))
        self.assertTrue(all(abs(a) <= 40.0 for a in angles))

    def test_respects_heading(self) -> None:
        # Facing +x, a point at +x is straight ahead and a point at -z is to the right
        pose = Pose(vec3(0.0, 0.0, 0.0), math.pi / 2)
        self.assertAlmostEqual(self.follower.compute_steering(pose, vec3(5.0, 0.0, 0.0)), 0.0, places=9)
        self.assertGreater(self.follower.compute_steering(pose, vec3(5.0, 0.0, -2.0)), 0)

    def test_point_at_robot_gives_zero(self) -> None:
        self.assertEqual(self.follower.compute_steering(ORIGIN, vec3(0.0, 0.0, 0.0)), 0.0)


class TestThrottle(unittest.TestCase):
    def setUp(self) -> None:
        self.follower = PathFollower(slowing_distance=3.0)

    def test_full_throttle_beyond_slowing_distance(self) -> None:
        self.assertEqual(self.follower.compute_throttle(3.0), 1.0)
        self.assertEqual(self.follower.compute_throttle(20.0), 1.0)

    def test_quadratic_ramp(self) -> None:
        self.assertAlmostEqual(self.follower.compute_throttle(1.5), 0.25)
        self.assertEqual(self.follower.compute_throttle(0.0), 0.0)

    def test_monotone_non_increasing_as_target_approaches(self) -> None:
        distances = np.linspace(5.0, 0.0, 51)
        throttles = [self.follower.compute_throttle(d) for d in distances]
        for before, after in zip(throttles, throttles[1:]):
            self.assertLessEqual(after, before)


class TestLookAhead(unittest.TestCase):
    def test_first_corner_reaching_look_ahead(self) -> None:
        follower = PathFollower(look_ahead_distance=2.0)
        polyline = [vec3(0, 0, 0), vec3(1, 0, 0), vec3(1, 0, 1), vec3(1, 0, 5)]
        np.testing.assert_allclose(follower.select_look_ahead_point(polyline), [1.0, 0.0, 1.0])

    def test_short_path_uses_last_corner(self) -> None:
        follower = PathFollower(look_ahead_distance=10.0)
        polyline = [vec3(0, 0, 0), vec3(1, 0, 0), vec3(1, 0, 1)]
        np.testing.assert_allclose(follower.select_look_ahead_point(polyline), [1.0, 0.0, 1.0])

    def test_missing_path_falls_back_to_straight_line(self) -> None:
        follower = PathFollower(path_provider=NoPathProvider())
        path = follower.plan_path(vec3(0, 0, 0), vec3(4, 0, 4))
        self.assertEqual(len(path), 2)
        np.testing.assert_allclose(path[-1], [4.0, 0.0, 4.0])

    def test_provider_path_drives_steering(self) -> None:
        # Path bends right before reaching a target straight ahead
        detour = [vec3(0, 0, 0), vec3(3, 0, 3), vec3(0, 0, 10)]
        follower = PathFollower(path_provider=DetourProvider(detour), look_ahead_distance=2.0)
        follower.set_target(vec3(0.0, 0.0, 10.0))
        output = follower.update(ORIGIN, 0.05)
        self.assertGreater(output.steering, 0)
        np.testing.assert_allclose(output.look_ahead_point, [3.0, 0.0, 3.0])


class TestArrival(unittest.TestCase):
    def setUp(self) -> None:
        self.follower = PathFollower(arrival_distance=1.0)

    def test_no_target_brakes(self) -> None:
        output = self.follower.update(ORIGIN, 0.05)
        self.assertTrue(output.brake)
        self.assertEqual(output.throttle, 0.0)
        self.assertFalse(output.target_reached)

    def test_arrival_fires_once_per_approach(self) -> None:
        self.follower.set_target(vec3(0.0, 0.0, 0.5))

        first = self.follower.update(ORIGIN, 0.05)
        second = self.follower.update(ORIGIN, 0.05)
        self.assertTrue(first.target_reached)
        self.assertTrue(first.brake)
        self.assertFalse(second.target_reached)
        self.assertTrue(second.brake)

        away = self.follower.update(Pose(vec3(0.0, 0.0, -5.0), 0.0), 0.05)
        self.assertFalse(away.target_reached)
        self.assertFalse(away.brake)

        again = self.follower.update(ORIGIN, 0.05)
        self.assertTrue(again.target_reached)

    def test_new_target_rearms_latch(self) -> None:
        self.follower.set_target(vec3(0.0, 0.0, 0.5))
        self.assertTrue(self.follower.update(ORIGIN, 0.05).target_reached)
        self.follower.set_target(vec3(0.5, 0.0, 0.0))
        self.assertTrue(self.follower.update(ORIGIN, 0.05).target_reached)

    def test_driving_output_toward_distant_target(self) -> None:
        self.follower.set_target(vec3(0.0, 0.0, 10.0))
        output = self.follower.update(ORIGIN, 0.05)
        self.assertFalse(output.brake)
        self.assertEqual(output.throttle, 1.0)
        self.assertAlmostEqual(output.distance, 10.0)


class TestSteeringFilter(unittest.TestCase):
    def test_low_pass_moves_toward_command(self) -> None:
        follower = PathFollower(turn_speed=1.0, turn_responsiveness=0.0)
        self.assertAlmostEqual(follower.smooth_steering(10.0, 0.5), 5.0)
        self.assertAlmostEqual(follower.smooth_steering(10.0, 0.5), 7.5)

    def test_large_step_snaps_to_command(self) -> None:
        follower = PathFollower(turn_speed=1.0, turn_responsiveness=0.0)
        self.assertAlmostEqual(follower.smooth_steering(-20.0, 5.0), -20.0)

    def test_responsiveness_speeds_up_filter(self) -> None:
        slow = PathFollower(turn_speed=1.0, turn_responsiveness=0.0)
        fast = PathFollower(turn_speed=1.0, turn_responsiveness=0.1)
        self.assertGreater(fast.smooth_steering(10.0, 0.1), slow.smooth_steering(10.0, 0.1))


if __name__ == "__main__":
    unittest.main()
