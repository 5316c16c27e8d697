#!/usr/bin/env python3
"""
Plot a recorded navigation run.

    python -m rover_nav.plot_results                 # latest run
    python -m rover_nav.plot_results run_20251114_184704 --save --no-show
    python -m rover_nav.plot_results --list
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import TERM_BLUE, TERM_RESET
from .visualization import plot_run_summary, recorded_runs, resolve_run_dir


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(description="Plot a recorded rover navigation run")
    parser.add_argument("run", nargs="?", help="Run directory name (default: latest run)")
    parser.add_argument("--results-dir", type=Path, default=Path("results"))
    parser.add_argument("--save", action="store_true", help="Write PNGs into the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not open plot windows")
    parser.add_argument("--list", action="store_true", help="List recorded runs and exit")
    args = parser.parse_args(argv)

    if args.list:
        runs = recorded_runs(args.results_dir)
        for run in runs:
            logging.info(run.name)
        if not runs:
            logging.info(f"No recorded runs in {args.results_dir}")
        return

    try:
        run_dir = resolve_run_dir(args.results_dir, args.run)
        logging.info(f"{TERM_BLUE}Plotting {run_dir.name}{TERM_RESET}")
        plot_run_summary(run_dir, save_plots=args.save, show_plots=not args.no_show)
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Cannot plot run: {e}")
        sys.exit(1)

    if args.save:
        logging.info(f"{TERM_BLUE}✓ Saved trajectory.png and timeseries.png to {run_dir}/{TERM_RESET}")


if __name__ == "__main__":
    main()
