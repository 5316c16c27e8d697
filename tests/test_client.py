import json
import unittest

from rover_nav.client import NavigationClient, parse_obstacles, parse_targets
from rover_nav.simulation import BoxObstacle, SphereObstacle

SETUP = {
    "message_type": "setup",
    "seed": 3,
    "pose": {"position": [-5.0, 0.0, 5.0], "heading": 0.0},
    "landmarks": [
        {"id": "north", "position": [-20.0, 0.0, -20.0]},
        {"id": "east", "position": [30.0, 0.0, -20.0]},
        {"id": "south", "position": [0.0, 0.0, 30.0]},
        {"id": "mast", "position": [5.0, 15.0, 5.0]},
    ],
    "obstacles": [{"id": "rock", "position": [3.0, 0.0, 3.0], "radius": 0.5}],
    "targets": [
        {"id": "a", "position": [0.0, 0.0, 0.0]},
        {"id": "b", "position": [10.0, 0.0, 0.0]},
    ],
}


class TestMessageParsing(unittest.TestCase):
    def test_parse_obstacles(self) -> None:
        obstacles = parse_obstacles(
            [
                {"id": "rock", "position": [1, 0, 1], "radius": 0.5},
                {"id": 7, "position": [0, 0, 4], "half_extents": [1, 1, 1], "solid": False, "tag": "Detectable"},
            ]
        )
        self.assertIsInstance(obstacles[0], SphereObstacle)
        self.assertIsInstance(obstacles[1], BoxObstacle)
        self.assertEqual(obstacles[1].id, "7")
        self.assertFalse(obstacles[1].solid)

    def test_parse_targets(self) -> None:
        targets = parse_targets([{"position": [1, 0, 2], "area_grid": [[1, 0, 3], [2, 0, 3]]}])
        self.assertEqual(targets[0].id, "target_0")
        self.assertEqual(len(targets[0].area_grid), 2)


class TestNavigationClient(unittest.TestCase):
    def setUp(self) -> None:
        self.client = NavigationClient("ws://localhost:8765")

    def test_invalid_uri(self) -> None:
        with self.assertRaises(ValueError):
            NavigationClient("http://localhost:8765")

    def test_setup_starts_mission(self) -> None:
        reply = self.client.parse_and_route_message(json.dumps(SETUP))
        self.assertEqual(reply["message_type"], "mission")
        self.assertTrue(reply["started"])
        self.assertEqual(sorted(reply["route"]), [0, 1])
        self.assertEqual(len(self.client.world.obstacles), 1)

    def test_sensor_frame_returns_command(self) -> None:
        self.client.parse_and_route_message(json.dumps(SETUP))
        frame = {
            "message_type": "sensors",
            "position": [-5.0, 0.0, 5.0],
            "heading": 0.0,
            "velocity": [0.0, 0.0, 0.0],
            "dt": 0.05,
        }
        reply = self.client.parse_and_route_message(json.dumps(frame).encode("utf-8"))
        self.assertEqual(reply["message_type"], "command")
        self.assertEqual(set(reply), {"message_type", "steering", "throttle", "brake",
                                      "mission_state", "avoidance_state", "estimate"})
        self.assertEqual(reply["mission_state"], "navigating_to_target")
        self.assertEqual(len(reply["estimate"]), 3)

    def test_sensor_frame_before_setup_brakes(self) -> None:
        with self.assertLogs(level="WARNING"):
            reply = self.client.parse_and_route_message(
                json.dumps({"message_type": "sensors", "position": [0, 0, 0], "heading": 0.0})
            )
        self.assertTrue(reply["brake"])

    def test_stop_message(self) -> None:
        self.client.parse_and_route_message(json.dumps(SETUP))
        reply = self.client.parse_and_route_message(json.dumps({"message_type": "stop"}))
        self.assertTrue(reply["brake"])
        self.assertTrue(self.client.should_stop)
        self.assertFalse(self.client.controller.mission.is_running)

    def test_invalid_json_is_logged(self) -> None:
        with self.assertLogs(level="ERROR"):
            self.assertIsNone(self.client.parse_and_route_message("{not json"))

    def test_unknown_message_has_no_reply(self) -> None:
        self.assertIsNone(self.client.parse_and_route_message(json.dumps({"message_type": "ping"})))


if __name__ == "__main__":
    unittest.main()
