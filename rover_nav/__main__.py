"""
Main entry point when running the rover_nav module with python -m.

Runs the built-in simulated mission: four targets around an obstacle, one of
them with a search area hiding a detectable object.
"""

import argparse
import logging
import sys

from .component_modes import parse_component_flags
from .config import SIM_DT, SIM_MAX_TICKS, TERM_BLUE, TERM_ORANGE, TERM_RESET
from .client import setup_logging
from .controller import NavigationController
from .data_collector import DataCollector
from .model import KinematicVehicle
from .nav_types import Landmark, Pose, Target, vec3
from .search_grid import circular_search_grid
from .simulation import (
    FlatGroundSampler,
    ObstacleField,
    SphereObstacle,
    StraightLinePathProvider,
    run_simulation,
)


def build_scenario():
    """World, landmarks, targets and start pose of the demo mission."""
    world = ObstacleField(
        [
            SphereObstacle("rock", vec3(5.0, 0.0, 0.0), 0.6),
            SphereObstacle("crate", vec3(10.0, 0.0, 5.0), 0.5),
            SphereObstacle("beacon", vec3(12.0, 0.0, 11.0), 0.3, tag="Detectable", solid=False),
        ]
    )
    landmarks = [
        Landmark("north", vec3(-20.0, 0.0, -20.0)),
        Landmark("east", vec3(30.0, 0.0, -20.0)),
        Landmark("south", vec3(0.0, 0.0, 30.0)),
        Landmark("mast", vec3(5.0, 15.0, 5.0)),
    ]
    sampler = FlatGroundSampler(bounds=(-15.0, -15.0, 25.0, 25.0))
    targets = [
        Target("alpha", vec3(0.0, 0.0, 0.0)),
        Target("bravo", vec3(10.0, 0.0, 0.0)),
        Target(
            "charlie",
            vec3(10.0, 0.0, 10.0),
            circular_search_grid(vec3(10.0, 0.0, 10.0), radius=3.0, sampler=sampler, volume_query=world),
        ),
        Target("delta", vec3(0.0, 0.0, 10.0)),
    ]
    start = Pose(vec3(-5.0, 0.0, 5.0), 0.0)
    return world, landmarks, targets, start


if __name__ == "__main__":
    component_mode, remaining_args = parse_component_flags()

    parser = argparse.ArgumentParser(description="Simulated multi-target rover mission")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument("--ticks", type=int, default=SIM_MAX_TICKS, help="Tick budget")
    parser.add_argument("--dt", type=float, default=SIM_DT, help="Tick length (seconds)")
    parser.add_argument("--seed", type=int, default=None, help="Measurement noise seed")
    parser.add_argument("--return-to-start", action="store_true", help="Finish at the start pose")
    parser.add_argument("--no-record", action="store_true", help="Do not write run data")
    parser.add_argument("--output-dir", default=".", help="Base directory for results/")
    args = parser.parse_args(remaining_args)

    setup_logging(args.verbose)

    world, landmarks, targets, start = build_scenario()
    collector = None if args.no_record else DataCollector(output_dir=args.output_dir)

    try:
        if collector is not None:
            collector.setup()
        controller = NavigationController(
            landmarks,
            path_provider=StraightLinePathProvider(),
            ray_provider=world,
            component_mode=component_mode,
            initial_pose=start,
            seed=args.seed,
            data_collector=collector,
        )
        if not controller.start_mission(targets, return_to_start=args.return_to_start):
            sys.exit(1)

        vehicle = KinematicVehicle(start)
        result = run_simulation(controller, vehicle, world, ticks=args.ticks, dt=args.dt)

        color = TERM_BLUE if result.completed else TERM_ORANGE
        mean_error = sum(result.estimation_errors) / max(1, len(result.estimation_errors))
        logging.info(
            f"{color}\033[1m→ Completed: {result.completed}  Time: {result.ticks * args.dt:.1f}s  "
            f"Collisions: {result.collisions}  Mean estimate error: {mean_error * 1000:.0f}mm{TERM_RESET}"
        )
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
    finally:
        if collector is not None:
            collector.cleanup()
