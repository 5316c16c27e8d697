"""Data collection and CSV logging for rover navigation runs.

This module provides CSV data logging for:
- Poses (true position, estimated position, estimation error)
- Drive commands (steering, throttle, brake, avoidance state)
- Mission events (state transitions with their reason)
- Route summary (optimized visiting order and length)
"""

import csv
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, TextIO

import numpy as np

from .config import TERM_BLUE, TERM_RESET
from .nav_types import DriveCommand, Pose, Route


class DataCollector:
    """Manages CSV file creation and logging for navigation runs.

    Attributes:
        run_dir: Directory path for this run's output files.
        pose_csv_file: File handle for pose data CSV.
        command_csv_file: File handle for drive command CSV.
        mission_csv_file: File handle for mission event CSV.
        route_output_path: Path for the route summary text file.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.pose_csv_file: Optional[TextIO] = None
        self.pose_csv_writer: Any = None
        self.command_csv_file: Optional[TextIO] = None
        self.command_csv_writer: Any = None
        self.mission_csv_file: Optional[TextIO] = None
        self.mission_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # Create timestamped directory: results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.pose_output_path: Path = self.run_dir / "pose_data.csv"
        self.command_output_path: Path = self.run_dir / "command_data.csv"
        self.mission_output_path: Path = self.run_dir / "mission_events.csv"
        self.route_output_path: Path = self.run_dir / "route.txt"

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Must be called before writing data.
        """
        self.pose_csv_file = open(self.pose_output_path, "w", newline="")
        self.pose_csv_writer = csv.writer(self.pose_csv_file)
        self.pose_csv_writer.writerow(
            ["timestamp", "x_true", "z_true", "heading", "x_est", "z_est", "error"]
        )

        self.command_csv_file = open(self.command_output_path, "w", newline="")
        self.command_csv_writer = csv.writer(self.command_csv_file)
        self.command_csv_writer.writerow(
            ["timestamp", "steering", "throttle", "brake", "avoidance_state", "accumulator"]
        )

        self.mission_csv_file = open(self.mission_output_path, "w", newline="")
        self.mission_csv_writer = csv.writer(self.mission_csv_file)
        self.mission_csv_writer.writerow(["timestamp", "state", "reason"])

        print(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}/{TERM_RESET}")

    def log_pose(self, timestamp: float, true_pose: Pose, estimated_position: np.ndarray) -> None:
        """Log true and estimated position to CSV.

        Args:
            timestamp: Mission time (seconds).
            true_pose: Raw pose reported by the host.
            estimated_position: Localizer estimate.
        """
        error = float(np.linalg.norm(np.asarray(estimated_position) - true_pose.position))
        self.pose_csv_writer.writerow(
            [
                timestamp,
                true_pose.position[0],
                true_pose.position[2],
                true_pose.heading,
                estimated_position[0],
                estimated_position[2],
                error,
            ]
        )
        if self.pose_csv_file:
            self.pose_csv_file.flush()

    def log_command(
        self, timestamp: float, command: DriveCommand, avoidance_state: str, accumulator: float
    ) -> None:
        """Log a drive command and the avoidance state behind it."""
        self.command_csv_writer.writerow(
            [
                timestamp,
                command.steering,
                command.throttle,
                int(command.brake),
                avoidance_state,
                accumulator,
            ]
        )
        if self.command_csv_file:
            self.command_csv_file.flush()

    def log_mission_event(self, timestamp: float, state: str, reason: str = "") -> None:
        self.mission_csv_writer.writerow([timestamp, state, reason])
        if self.mission_csv_file:
            self.mission_csv_file.flush()

    def log_route(self, route: Route, target_ids: Sequence[str]) -> None:
        """Write the optimized route summary.

        Args:
            route: Route returned by the optimizer.
            target_ids: Target ids indexed like the route order.
        """
        stops = [target_ids[i] for i in route.order]
        if route.return_to_start:
            stops.append("start")
        with open(self.route_output_path, "w") as f:
            f.write(f"order: {' -> '.join(stops)}\n")
            f.write(f"length: {route.length:.6f}\n")
        print(f"{TERM_BLUE}✓ Saved route: {' → '.join(stops)} ({route.length:.2f}m){TERM_RESET}")

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.pose_csv_file:
            self.pose_csv_file.close()
        if self.command_csv_file:
            self.command_csv_file.close()
        if self.mission_csv_file:
            self.mission_csv_file.close()

        print(f"{TERM_BLUE}✓ Saved run data to {self.run_dir}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.cleanup()
