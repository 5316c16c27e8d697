import csv
import tempfile
import unittest
from pathlib import Path

from rover_nav.data_collector import DataCollector
from rover_nav.nav_types import DriveCommand, Pose, Route, vec3


class TestDataCollector(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.run_dir = Path(self.tmp.name) / "run"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def read_rows(self, path: Path):
        with open(path, newline="") as f:
            return list(csv.reader(f))

    def test_writes_csv_rows(self) -> None:
        with DataCollector(run_dir=str(self.run_dir)) as collector:
            collector.log_pose(0.05, Pose(vec3(3.0, 0.0, 4.0), 0.1), vec3(3.0, 0.0, 4.5))
            collector.log_command(0.05, DriveCommand(12.0, 0.8, False), "avoiding", -1.0)
            collector.log_mission_event(0.05, "navigating_to_target", "route entry")

        poses = self.read_rows(collector.pose_output_path)
        self.assertEqual(poses[0][0], "timestamp")
        self.assertAlmostEqual(float(poses[1][-1]), 0.5)

        commands = self.read_rows(collector.command_output_path)
        self.assertEqual(commands[1][3:], ["0", "avoiding", "-1.0"])

        events = self.read_rows(collector.mission_output_path)
        self.assertEqual(events[1], ["0.05", "navigating_to_target", "route entry"])

    def test_route_summary(self) -> None:
        collector = DataCollector(run_dir=str(self.run_dir))
        collector.log_route(Route((1, 0), return_to_start=True, length=12.5), ["a", "b"])
        text = collector.route_output_path.read_text()
        self.assertIn("order: b -> a -> start", text)
        self.assertIn("length: 12.500000", text)

    def test_rejects_file_as_output_dir(self) -> None:
        path = Path(self.tmp.name) / "file.txt"
        path.write_text("x")
        with self.assertRaises(ValueError):
            DataCollector(output_dir=str(path))


if __name__ == "__main__":
    unittest.main()
