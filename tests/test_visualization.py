import tempfile
import unittest
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from rover_nav.data_collector import DataCollector
from rover_nav.nav_types import DriveCommand, Pose, vec3
from rover_nav.plot_results import main
from rover_nav.visualization import load_run_csv, plot_run_summary, recorded_runs, resolve_run_dir


class TestRunPlots(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.results = Path(self.tmp.name) / "results"
        self.run_dir = self.results / "run_20250101_120000"
        with DataCollector(run_dir=str(self.run_dir)) as collector:
            for i in range(5):
                t = 0.05 * i
                collector.log_pose(t, Pose(vec3(0.0, 0.0, 0.1 * i), 0.0), vec3(0.02, 0.0, 0.1 * i))
                state = "avoiding" if i == 2 else "following"
                collector.log_command(t, DriveCommand(5.0, 0.5, False), state, 0.0)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_load_run_csv(self) -> None:
        poses = load_run_csv(self.run_dir / "pose_data.csv")
        self.assertEqual(len(poses["x_true"]), 5)
        self.assertAlmostEqual(float(poses["error"][0]), 0.02)

        commands = load_run_csv(self.run_dir / "command_data.csv")
        self.assertEqual(commands["avoidance_state"][2], "avoiding")

    def test_missing_csv(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_run_csv(self.run_dir / "missing.csv")

    def test_summary_saves_figures(self) -> None:
        plot_run_summary(self.run_dir, save_plots=True, show_plots=False)
        self.assertTrue((self.run_dir / "trajectory.png").exists())
        self.assertTrue((self.run_dir / "timeseries.png").exists())

    def test_latest_run_is_default(self) -> None:
        older = self.results / "run_20240101_000000"
        older.mkdir()
        (older / "pose_data.csv").write_text("timestamp\n")
        (self.results / "run_20990101_000000").mkdir()
        self.assertEqual(recorded_runs(self.results), [older, self.run_dir])
        self.assertEqual(resolve_run_dir(self.results), self.run_dir)
        self.assertEqual(resolve_run_dir(self.results, older.name), older)

    def test_unknown_run_name(self) -> None:
        with self.assertRaises(FileNotFoundError):
            resolve_run_dir(self.results, "run_missing")

    def test_cli_exits_on_unknown_run(self) -> None:
        with self.assertRaises(SystemExit):
            main(["run_missing", "--results-dir", str(self.results), "--no-show"])


if __name__ == "__main__":
    unittest.main()
