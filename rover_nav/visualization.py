"""
Visualization utilities for recorded navigation runs.

This module loads the CSV files written by DataCollector and plots the
driven trajectory against the localizer estimate, the estimation error and
the drive commands over time.
"""

import csv
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from .config import PLOT_BLUE, PLOT_CREAM, PLOT_DARK_BLUE, PLOT_ORANGE, PLOT_YELLOW_ORANGE


def load_run_csv(filepath: Path) -> Dict[str, np.ndarray]:
    """Load a run CSV into column arrays.

    Numeric columns become float arrays; any column holding a non-numeric
    value (e.g. avoidance_state) is kept as an array of strings.

    Args:
        filepath: Path to the CSV file.

    Returns:
        Dictionary mapping header names to column arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If the file has no header row.
    """
    if not filepath.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    with open(filepath, newline="") as f:
        reader = csv.reader(f)
        headers = next(reader, None)
        if not headers:
            raise ValueError(f"Missing CSV header in {filepath}")
        rows = [row for row in reader if len(row) == len(headers)]

    columns: Dict[str, np.ndarray] = {}
    for i, name in enumerate(headers):
        values: List[str] = [row[i] for row in rows]
        try:
            columns[name] = np.array([float(v) if v else np.nan for v in values])
        except ValueError:
            columns[name] = np.array(values)
    return columns


def style_axis(ax: Axes, title: str, xlabel: str, ylabel: str) -> None:
    """Apply the dark plot theme to an axis."""
    ax.set_facecolor(PLOT_DARK_BLUE)
    for spine in ax.spines.values():
        spine.set_color(PLOT_CREAM)
    ax.tick_params(colors=PLOT_CREAM, which="both")
    ax.set_xlabel(xlabel, color=PLOT_CREAM)
    ax.set_ylabel(ylabel, color=PLOT_CREAM)
    ax.set_title(title, color=PLOT_CREAM)
    ax.grid(True, alpha=0.2, color=PLOT_CREAM)


def _legend(ax: Axes) -> None:
    legend = ax.legend(facecolor=PLOT_DARK_BLUE, edgecolor=PLOT_CREAM)
    plt.setp(legend.get_texts(), color=PLOT_CREAM)


def plot_trajectory(
    pose_data: Dict[str, np.ndarray],
    title: str = "Trajectory",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot the true trajectory and the localizer estimate in the x-z plane.

    Args:
        pose_data: Columns of pose_data.csv.
        title: Plot title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, ax = plt.subplots(figsize=(10, 8), facecolor=PLOT_DARK_BLUE)
    style_axis(ax, title, "X Position (m)", "Z Position (m)")

    x, z = pose_data["x_true"], pose_data["z_true"]
    if len(x) > 0:
        ax.plot(x, z, "-", color=PLOT_ORANGE, linewidth=1.5, label="True", zorder=2)
        ax.plot(
            pose_data["x_est"],
            pose_data["z_est"],
            ".",
            color=PLOT_BLUE,
            markersize=2,
            alpha=0.6,
            label="Estimate",
            zorder=1,
        )
        ax.plot(x[0], z[0], "o", color=PLOT_BLUE, markersize=8, markeredgecolor="black", label="Start", zorder=5)
        ax.plot(x[-1], z[-1], "o", color=PLOT_YELLOW_ORANGE, markersize=8, markeredgecolor="black", label="End", zorder=5)

    ax.set_aspect("equal")
    _legend(ax)
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_run_timeseries(
    pose_data: Dict[str, np.ndarray],
    command_data: Dict[str, np.ndarray],
    title: str = "Run",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot estimation error and drive commands over time.

    Args:
        pose_data: Columns of pose_data.csv.
        command_data: Columns of command_data.csv.
        title: Plot title prefix.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), facecolor=PLOT_DARK_BLUE, sharex=True)

    style_axis(ax1, f"{title} - Localization Error", "", "Error (m)")
    ax1.plot(pose_data["timestamp"], pose_data["error"], color=PLOT_ORANGE, alpha=0.8, label="Error")
    _legend(ax1)

    style_axis(ax2, f"{title} - Drive Commands", "Time (s)", "Steering (deg)")
    t = command_data["timestamp"]
    ax2.plot(t, command_data["steering"], color=PLOT_ORANGE, alpha=0.8, label="Steering")
    throttle_ax = ax2.twinx()
    throttle_ax.plot(t, command_data["throttle"], color=PLOT_BLUE, alpha=0.6, label="Throttle")
    throttle_ax.set_ylabel("Throttle", color=PLOT_CREAM)
    throttle_ax.tick_params(colors=PLOT_CREAM)

    # Shade ticks where avoidance overrode the follower
    states = command_data["avoidance_state"]
    overridden = np.isin(states, ["avoiding", "reversing"])
    if np.any(overridden):
        ax2.fill_between(
            t,
            0,
            1,
            where=overridden,
            transform=ax2.get_xaxis_transform(),
            color=PLOT_YELLOW_ORANGE,
            alpha=0.15,
            label="Avoidance",
        )
    _legend(ax2)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> None:
    """Generate summary plots for a complete run.

    Args:
        run_dir: Directory containing pose_data.csv and command_data.csv.
        save_plots: If True, save plots to run directory.
        show_plots: If True, display plots interactively.

    Raises:
        FileNotFoundError: If required CSV files are not found.
    """
    pose_data = load_run_csv(run_dir / "pose_data.csv")
    command_data = load_run_csv(run_dir / "command_data.csv")
    run_name = run_dir.name

    plot_trajectory(
        pose_data,
        title=f"Trajectory - {run_name}",
        save_path=run_dir / "trajectory.png" if save_plots else None,
    )
    plot_run_timeseries(
        pose_data,
        command_data,
        title=run_name,
        save_path=run_dir / "timeseries.png" if save_plots else None,
    )

    if show_plots:
        plt.show()
    else:
        plt.close("all")


def recorded_runs(results_dir: Path) -> List[Path]:
    """Run directories under results_dir holding a pose log, oldest first.

    DataCollector names runs run_YYYYMMDD_HHMMSS, so name order is time order.
    """
    if not results_dir.is_dir():
        return []
    return sorted(d for d in results_dir.glob("run_*") if (d / "pose_data.csv").is_file())


def resolve_run_dir(results_dir: Path, run_name: Optional[str] = None) -> Path:
    """Pick a recorded run by name, or the latest one.

    Raises:
        FileNotFoundError: If the named run has no pose log or no run exists.
    """
    runs = recorded_runs(results_dir)
    if run_name is None:
        if not runs:
            raise FileNotFoundError(f"No recorded runs in {results_dir}")
        return runs[-1]

    for run in runs:
        if run.name == run_name:
            return run
    raise FileNotFoundError(f"No recorded run '{run_name}' in {results_dir}")
