import unittest

from rover_nav.avoidance import ObstacleAvoidance
from rover_nav.nav_types import AvoidanceState, Pose, vec3
from rover_nav.simulation import ObstacleField, SphereObstacle

# Robot at the origin facing +z. Sensor bar at z = 0.3, side rays at x = +/-0.3,
# center fan at x = -0.2, 0, 0.2.
ORIGIN = Pose(vec3(0.0, 0.0, 0.0), 0.0)
CRUISING = 2.0


def make_avoidance(*obstacles, **kwargs) -> ObstacleAvoidance:
    field = ObstacleField(obstacles)
    return ObstacleAvoidance(field, max_steering_angle=40.0, **kwargs)


class TestSensorWeights(unittest.TestCase):
    def test_clear_path_keeps_following(self) -> None:
        avoidance = make_avoidance()
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.state, AvoidanceState.FOLLOWING)
        self.assertEqual(output.accumulator, 0.0)
        self.assertIsNone(output.steering_override)

    def test_right_hit_steers_left(self) -> None:
        avoidance = make_avoidance(SphereObstacle("rock", vec3(0.6, 0.0, 3.0), 0.35))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.state, AvoidanceState.AVOIDING)
        self.assertEqual(output.accumulator, -1.0)
        self.assertEqual(output.steering_override, -40.0)

    def test_left_hit_steers_right(self) -> None:
        avoidance = make_avoidance(SphereObstacle("rock", vec3(-0.6, 0.0, 3.0), 0.35))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, 1.0)
        self.assertEqual(output.steering_override, 40.0)

    def test_angled_ray_only_counts_half(self) -> None:
        # On the right angled ray (30 degrees outward), clear of the direct rays
        avoidance = make_avoidance(SphereObstacle("rock", vec3(2.3, 0.0, 3.76), 0.5))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, -0.5)
        self.assertEqual(output.steering_override, -40.0)
        angled = [r for r in output.readings if r.label == "right_angled"]
        self.assertEqual(len(angled), 1)
        self.assertTrue(angled[0].hit)

    def test_angled_ray_skipped_when_direct_hits(self) -> None:
        avoidance = make_avoidance(SphereObstacle("rock", vec3(0.6, 0.0, 3.0), 0.35))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        labels = [r.label for r in output.readings]
        self.assertIn("right", labels)
        self.assertNotIn("right_angled", labels)

    def test_exact_cancellation_falls_through_to_center(self) -> None:
        avoidance = make_avoidance(
            SphereObstacle("left", vec3(-0.6, 0.0, 3.0), 0.35),
            SphereObstacle("right", vec3(0.6, 0.0, 3.0), 0.35),
        )
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, 0.0)
        self.assertEqual(output.state, AvoidanceState.FOLLOWING)
        self.assertTrue(any(r.label.startswith("center") for r in output.readings))

    def test_center_hit_uses_normal_side(self) -> None:
        # Obstacle slightly left of center: nearest center ray hits its right flank
        avoidance = make_avoidance(SphereObstacle("rock", vec3(-0.1, 0.0, 3.0), 0.15))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, 1.0)
        self.assertEqual(output.steering_override, 40.0)

    def test_head_on_center_hit_steers_left(self) -> None:
        avoidance = make_avoidance(SphereObstacle("rock", vec3(0.0, 0.0, 3.0), 0.22))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, -1.0)

    def test_other_tags_are_ignored(self) -> None:
        avoidance = make_avoidance(SphereObstacle("sign", vec3(0.6, 0.0, 3.0), 0.35, tag="Scenery"))
        output = avoidance.update(ORIGIN, CRUISING, 0.05)
        self.assertEqual(output.accumulator, 0.0)
        self.assertEqual(output.state, AvoidanceState.FOLLOWING)

    def test_out_of_range_obstacle_is_ignored(self) -> None:
        avoidance = make_avoidance(SphereObstacle("rock", vec3(0.6, 0.0, 9.0), 0.35))
        self.assertEqual(avoidance.update(ORIGIN, CRUISING, 0.05).accumulator, 0.0)

    def test_invalid_center_ray_count(self) -> None:
        with self.assertRaises(ValueError):
            make_avoidance(center_rays=0)


class TestStuckRecovery(unittest.TestCase):
    def setUp(self) -> None:
        self.field = ObstacleField([SphereObstacle("wall", vec3(0.0, 0.0, 1.5), 0.22)])
        self.avoidance = ObstacleAvoidance(self.field, stuck_time=1.0, stuck_speed=0.2)

    def test_slow_with_center_hit_starts_reversing(self) -> None:
        first = self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.assertEqual(first.state, AvoidanceState.AVOIDING)

        with self.assertLogs(level="WARNING"):
            second = self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.assertEqual(second.state, AvoidanceState.REVERSING)
        self.assertLess(second.throttle_override, 0)
        self.assertEqual(second.steering_override, 0.0)
        self.assertFalse(second.brake)

    def test_fast_robot_is_not_stuck(self) -> None:
        for _ in range(10):
            output = self.avoidance.update(ORIGIN, 1.0, 0.5)
        self.assertEqual(output.state, AvoidanceState.AVOIDING)

    def test_parked_robot_is_not_stuck(self) -> None:
        for _ in range(10):
            output = self.avoidance.update(ORIGIN, 0.0, 0.5, driving=False)
        self.assertNotEqual(output.state, AvoidanceState.REVERSING)

    def test_reversing_wins_over_side_obstacle(self) -> None:
        self.field.add(SphereObstacle("rock", vec3(0.6, 0.0, 3.0), 0.35))
        states = []
        for _ in range(3):
            states.append(self.avoidance.update(ORIGIN, 0.0, 0.5).state)
        self.assertEqual(states[-1], AvoidanceState.REVERSING)

    def test_reversing_holds_until_full_sweep_clear_then_stops_once(self) -> None:
        self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.assertEqual(self.avoidance.state, AvoidanceState.REVERSING)

        # Still blocked: keep reversing even at speed
        held = self.avoidance.update(ORIGIN, 1.0, 0.05)
        self.assertEqual(held.state, AvoidanceState.REVERSING)

        self.field.replace_obstacles([])
        stop = self.avoidance.update(ORIGIN, 0.5, 0.05)
        self.assertEqual(stop.state, AvoidanceState.FOLLOWING)
        self.assertTrue(stop.brake)
        self.assertEqual(stop.throttle_override, 0.0)

        resumed = self.avoidance.update(ORIGIN, 0.5, 0.05)
        self.assertFalse(resumed.brake)
        self.assertIsNone(resumed.throttle_override)

    def test_reset_returns_to_following(self) -> None:
        self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.avoidance.update(ORIGIN, 0.0, 0.5)
        self.avoidance.reset()
        self.assertEqual(self.avoidance.state, AvoidanceState.FOLLOWING)
        self.assertEqual(self.avoidance.stuck_timer, 0.0)


if __name__ == "__main__":
    unittest.main()
