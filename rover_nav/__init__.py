"""Rover Navigation - Autonomous Multi-Target Navigation for Wheeled Ground Robots

A tick-driven navigation core that steers a wheeled robot along paths to a
sequence of mission targets, reacts to obstacles with short-range sensors and
estimates its own position from ranges to fixed landmarks.

## Architecture Overview

Every control tick runs the components synchronously in a fixed order:

### Layer 1: State Estimation (localizer.py)
Trilateration from noisy range measurements to known landmarks.
- Closed-form solution from the first three landmarks
- Gauss-Newton least-squares refinement with more than three landmarks
- Output: Estimated position (heading passes through)

### Layer 2: Mission Sequencing (mission.py, route_optimizer.py)
Optimal visiting order and per-target sub-phases.
- Exhaustive route optimization over provider path lengths
- Area sweeps with periodic object detection
- Optional return to the start position
- Output: Active target for the follower

### Layer 3: Path Following (follower.py)
Look-ahead steering toward the active target.
- Proportional steering toward a look-ahead path corner
- Quadratic throttle ramp inside the slowing distance
- One-shot arrival event with brake
- Output: Steering angle and throttle

### Layer 4: Obstacle Avoidance (avoidance.py)
Reactive sensor layer overriding the follower.
- Signed ray accumulator (side, angled and center rays)
- Stuck detection and reversing recovery
- Output: Steering/throttle overrides

## Modules

### Core Navigation Modules
- `config.py` - Centralized configuration parameters with documentation
- `nav_types.py` - Shared data types (Pose, Target, Route, DriveCommand, states)
- `geometry.py` - Frame transforms and polyline helpers
- `localizer.py` - Trilateration localizer
- `follower.py` - Look-ahead path follower
- `avoidance.py` - Obstacle avoidance state machine
- `route_optimizer.py` - Brute-force route optimizer
- `mission.py` - Multi-target mission coordinator
- `scheduler.py` - Tick-driven delayed actions
- `controller.py` - Host entry point wiring the pipeline

### World, Communication & Data
- `interfaces.py` - Path, surface and physics query protocols
- `simulation.py` - In-process world (obstacles, paths, ground)
- `model.py` - Kinematic bicycle model of the rover
- `search_grid.py` - Search-area grid builders
- `client.py` - WebSocket link to a simulator host
- `data_collector.py` - CSV data logging for navigation runs
- `component_modes.py` - Component isolation flags
- `visualization.py` - Trajectory, error and command plots of recorded runs
- `plot_results.py` - Command-line run plotter

## Quick Start

```bash
# Run the built-in simulated mission
python -m rover_nav

# Serve a simulator host over WebSocket
python -m rover_nav.client

# Plot the most recent recorded run
python -m rover_nav.plot_results
```
"""

__version__ = "0.1.0"

from .avoidance import ObstacleAvoidance
from .controller import NavigationController
from .data_collector import DataCollector
from .errors import ConfigurationError, NavigationError
from .follower import PathFollower
from .localizer import TrilaterationLocalizer
from .mission import MissionCoordinator
from .nav_types import (
    AreaGrid,
    AvoidanceState,
    DriveCommand,
    Landmark,
    MissionState,
    Pose,
    Route,
    Target,
)
from .route_optimizer import RouteOptimizer
from .scheduler import TickScheduler

__all__ = [
    "NavigationController",
    "TrilaterationLocalizer",
    "PathFollower",
    "ObstacleAvoidance",
    "RouteOptimizer",
    "MissionCoordinator",
    "TickScheduler",
    "DataCollector",
    "NavigationError",
    "ConfigurationError",
    "AreaGrid",
    "AvoidanceState",
    "DriveCommand",
    "Landmark",
    "MissionState",
    "Pose",
    "Route",
    "Target",
]
