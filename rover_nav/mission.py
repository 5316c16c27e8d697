"""Multi-target mission sequencing.

The coordinator owns the optimized Route and the active target. It drives
the path follower through the route, sweeps a target's search area when it
has one, diverts to objects picked up by the periodic detector scan, and
optionally returns to the start position at the end.

State machine:

    NAVIGATING_TO_TARGET --arrived, has area--> SEARCHING_AREA
    NAVIGATING_TO_TARGET --arrived, settled---> TARGET_HANDLED
    SEARCHING_AREA ------detector hit--------> MOVING_TO_DETECTED_OBJECT
    SEARCHING_AREA ------sweep exhausted-----> TARGET_HANDLED
    MOVING_TO_DETECTED_OBJECT --arrived------> TARGET_HANDLED
    TARGET_HANDLED --next entry / return----> NAVIGATING_TO_TARGET
    TARGET_HANDLED --route exhausted--------> ROUTE_COMPLETE (terminal)
"""

import logging
from typing import Callable, List, Optional, Sequence, Set

import numpy as np

from . import config as cfg
from .errors import ConfigurationError
from .follower import PathFollower
from .geometry import distance
from .interfaces import RayQueryProvider
from .nav_types import Collider, MissionState, Pose, Route, Target, as_vec3
from .route_optimizer import RouteOptimizer
from .scheduler import ScheduledAction, TickScheduler

# Detected object must move this far before the active target is refreshed (meters)
_TARGET_REFRESH_DISTANCE = 0.05


class MissionCoordinator:
    """Sequences route targets, area sweeps and detected objects."""

    def __init__(
        self,
        follower: PathFollower,
        route_optimizer: RouteOptimizer,
        scheduler: TickScheduler,
        detector: Optional[RayQueryProvider] = None,
        detection_tag: str = cfg.DETECTION_TAG,
        detection_radius: float = cfg.DETECTION_RADIUS,
        detection_interval: float = cfg.DETECTION_INTERVAL,
        start_delay: float = cfg.MISSION_START_DELAY,
        settle_time: float = cfg.MISSION_SETTLE_TIME,
        sweep_delay: float = cfg.MISSION_SWEEP_DELAY,
        search_enabled: bool = True,
    ):
        """Initialize the coordinator.

        Args:
            follower: Path follower whose target this coordinator drives.
            route_optimizer: Optimizer invoked once per mission start.
            scheduler: Tick scheduler used for every delay.
            detector: Volume query service for the area-search detector. Only
                required when a target owns an AreaGrid.
            detection_tag: Collider tag of searched-for objects.
            detection_radius: Detector query radius (meters).
            detection_interval: Detector scan period (seconds).
            start_delay: Delay before the first target becomes active (seconds).
            settle_time: Pause after arriving at a plain target (seconds).
            sweep_delay: Pause before starting an area sweep (seconds).
            search_enabled: If False, area grids are ignored.

        Raises:
            ConfigurationError: If follower, route_optimizer or scheduler is missing.
        """
        missing = [
            name
            for name, ref in (
                ("follower", follower),
                ("route_optimizer", route_optimizer),
                ("scheduler", scheduler),
            )
            if ref is None
        ]
        if missing:
            raise ConfigurationError(f"MissionCoordinator missing collaborators: {', '.join(missing)}")

        self.follower = follower
        self.route_optimizer = route_optimizer
        self.scheduler = scheduler
        self.detector = detector
        self.detection_tag = detection_tag
        self.detection_radius = detection_radius
        self.detection_interval = detection_interval
        self.start_delay = start_delay
        self.settle_time = settle_time
        self.sweep_delay = sweep_delay
        self.search_enabled = search_enabled

        self.state: Optional[MissionState] = None
        self.enabled = True
        self.is_running = False
        self.targets: List[Target] = []
        self.route: Optional[Route] = None
        self.route_index = -1
        self.start_position: Optional[np.ndarray] = None
        self.returning_to_start = False
        self.active_target: Optional[np.ndarray] = None
        self.active_label = ""
        self.sweep_index = -1
        self.detected_object: Optional[Collider] = None
        self.handled_objects: Set[str] = set()
        self.on_state_change: Optional[Callable[[MissionState, str], None]] = None

        self._pending: List[ScheduledAction] = []
        self._arrival_pending = False
        self._detection_elapsed = 0.0

    # ==================== Mission control ====================

    def start_mission(
        self,
        targets: Sequence[Target],
        start_position: np.ndarray,
        return_to_start: bool = False,
        order: Optional[Sequence[int]] = None,
    ) -> bool:
        """Optimize the route once and start navigating to its first target.

        Args:
            targets: Mission targets.
            start_position: Robot position at mission start (route start).
            return_to_start: Finish the mission back at start_position.
            order: Fixed visiting order, bypassing the optimizer.

        Returns:
            True if the mission started.

        Raises:
            ConfigurationError: If a target owns a search area but no detector
                was provided.
        """
        if not self.enabled:
            logging.warning("Mission coordinator is disabled, ignoring mission start")
            return False
        if not targets:
            logging.warning("No targets set for multi-target navigation!")
            return False
        if self.is_running:
            logging.warning("Already processing a route!")
            return False
        if self.search_enabled and self.detector is None and any(t.has_search_area for t in targets):
            raise ConfigurationError("Area search requires a detector (volume query provider)")

        self.targets = list(targets)
        self.start_position = as_vec3(start_position)
        positions = [t.position for t in self.targets]
        if order is None:
            self.route = self.route_optimizer.optimize(self.start_position, positions, return_to_start)
        else:
            length = self.route_optimizer.route_length(
                self.start_position, positions, order, return_to_start
            )
            self.route = Route(tuple(order), return_to_start, length)

        self.route_index = 0
        self.returning_to_start = False
        self.handled_objects.clear()
        self.detected_object = None
        self._arrival_pending = False
        self.is_running = True

        logging.info(
            f"Mission started: {len(self.route)} target(s), "
            f"route length {self.route.length:.2f}, return to start: {return_to_start}"
        )
        self._after(self.start_delay, self._navigate_to_route_entry, "start route")
        return True

    def stop_navigation(self) -> None:
        """Stop immediately: clear the active target and abandon pending delays."""
        self._cancel_pending()
        self.is_running = False
        self._arrival_pending = False
        self._set_active(None, "")
        logging.info("Navigation stopped")

    def disable(self, reason: str) -> None:
        """Disable the coordinator after a configuration failure."""
        self.stop_navigation()
        self.enabled = False
        logging.error(f"Mission coordinator disabled: {reason}")

    def force_next_target(self) -> None:
        """Treat the current route entry as handled and move on."""
        if not self.is_running or self.route is None:
            return
        self._cancel_pending()
        if self.returning_to_start:
            self._complete_route("Return to start skipped")
            return
        self._handle_target()

    def request_reoptimization(self, current_position: np.ndarray) -> Optional[Route]:
        """Re-optimize the unvisited part of the route from the current position.

        Only valid while navigating to a route target. The visited prefix is
        kept; a new immutable Route replaces the old one.

        Returns:
            The new Route, or None if re-optimization is not possible now.
        """
        if (
            not self.is_running
            or self.route is None
            or self.state != MissionState.NAVIGATING_TO_TARGET
            or self.returning_to_start
        ):
            logging.warning("Route re-optimization is only possible while navigating to a target")
            return None

        visited = list(self.route.order[: self.route_index])
        remaining = list(self.route.order[self.route_index :])
        sub_route = self.route_optimizer.optimize(
            as_vec3(current_position),
            [self.targets[i].position for i in remaining],
            self.route.return_to_start,
            end=self.start_position,
        )
        new_order = visited + [remaining[k] for k in sub_route.order]
        length = self.route_optimizer.route_length(
            self.start_position,
            [t.position for t in self.targets],
            new_order,
            self.route.return_to_start,
        )
        self.route = Route(tuple(new_order), self.route.return_to_start, length)

        self._cancel_pending()
        self._arrival_pending = False
        self._navigate_to_route_entry()
        return self.route

    # ==================== Tick / events ====================

    def tick(self, dt: float, pose: Pose) -> None:
        """Run the periodic detector scan while searching.

        Args:
            dt: Elapsed time since last tick (seconds).
            pose: Estimated robot pose.
        """
        if not self.is_running or self.state not in (
            MissionState.SEARCHING_AREA,
            MissionState.MOVING_TO_DETECTED_OBJECT,
        ):
            return

        self._detection_elapsed += dt
        if self._detection_elapsed < self.detection_interval:
            return
        self._detection_elapsed = 0.0

        if self.state == MissionState.SEARCHING_AREA:
            found = self.detect(pose.position)
            if found is not None:
                self._cancel_pending()
                self.detected_object = found
                self._set_state(
                    MissionState.MOVING_TO_DETECTED_OBJECT, f"Object '{found.id}' detected nearby"
                )
                self._set_active(found.position, found.id)
        elif self.detected_object is not None and self.detector is not None:
            tracked = [
                c
                for c in self.detector.overlap_volume(pose.position, self.detection_radius)
                if c.id == self.detected_object.id
            ]
            if tracked and distance(tracked[0].position, self.active_target) > _TARGET_REFRESH_DISTANCE:
                self.detected_object = tracked[0]
                self._set_active(tracked[0].position, tracked[0].id)

    def detect(self, position: np.ndarray) -> Optional[Collider]:
        """Nearest unhandled object with the detection tag within range."""
        if self.detector is None:
            return None
        candidates = [
            c
            for c in self.detector.overlap_volume(position, self.detection_radius)
            if c.tag == self.detection_tag and c.id not in self.handled_objects
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda c: distance(position, c.position))

    def on_target_reached(self) -> None:
        """Handle the follower's one-shot arrival event."""
        if not self.is_running:
            return

        if self.state == MissionState.NAVIGATING_TO_TARGET:
            if self._arrival_pending:
                return
            if self.returning_to_start:
                self._complete_route("Multi-target route complete! Returned to start position.")
                return
            target = self.current_target
            if target is None:
                return
            if self.search_enabled and target.has_search_area:
                self._start_search(target)
            else:
                self._arrival_pending = True
                self._after(self.settle_time, self._handle_target, f"settle at {target.id}")

        elif self.state == MissionState.SEARCHING_AREA:
            if self.sweep_index >= 0:
                self._next_sweep_point()

        elif self.state == MissionState.MOVING_TO_DETECTED_OBJECT:
            if self.detected_object is not None:
                self.handled_objects.add(self.detected_object.id)
                logging.info(f"Object '{self.detected_object.id}' reached, area search complete")
            self._handle_target()

    # ==================== Internals ====================

    @property
    def current_target(self) -> Optional[Target]:
        if self.route is None or not 0 <= self.route_index < len(self.route):
            return None
        return self.targets[self.route[self.route_index]]

    def _set_state(self, state: MissionState, reason: str = "") -> None:
        self.state = state
        logging.info(f"[Mission] {state.name}: {reason}" if reason else f"[Mission] {state.name}")
        if self.on_state_change is not None:
            self.on_state_change(state, reason)

    def _set_active(self, position: Optional[np.ndarray], label: str) -> None:
        self.active_target = None if position is None else as_vec3(position)
        self.active_label = label
        self.follower.set_target(self.active_target)

    def _after(self, delay: float, action: Callable[[], None], label: str) -> None:
        """Run action now, or schedule it when a delay is configured."""
        if delay <= 0:
            action()
            return

        def fire() -> None:
            self._pending = [h for h in self._pending if h is not entry]
            action()

        entry = self.scheduler.schedule(delay, fire, label)
        self._pending.append(entry)

    def _cancel_pending(self) -> None:
        for entry in self._pending:
            self.scheduler.cancel(entry)
        self._pending = []

    def _navigate_to_route_entry(self) -> None:
        target = self.current_target
        if target is None:
            return
        self._set_state(
            MissionState.NAVIGATING_TO_TARGET,
            f"Moving to target {self.route_index + 1}/{len(self.route)} ({target.id})",
        )
        self._set_active(target.position, target.id)

    def _start_search(self, target: Target) -> None:
        self.sweep_index = -1
        self._detection_elapsed = 0.0
        self._set_state(
            MissionState.SEARCHING_AREA,
            f"Arrived at {target.id}, sweeping {len(target.area_grid)} point(s)",
        )
        self._after(self.sweep_delay, self._next_sweep_point, f"start sweep at {target.id}")

    def _next_sweep_point(self) -> None:
        target = self.current_target
        points = target.area_grid.points if target is not None and target.area_grid else []
        self.sweep_index += 1
        if self.sweep_index >= len(points):
            logging.info("Finished sweeping this area, nothing detected")
            self._handle_target()
            return
        self._set_active(points[self.sweep_index], f"{target.id} sweep {self.sweep_index + 1}/{len(points)}")

    def _handle_target(self) -> None:
        self._arrival_pending = False
        self.detected_object = None
        self.sweep_index = -1
        target = self.current_target
        self._set_state(MissionState.TARGET_HANDLED, target.id if target is not None else "")
        self._advance()

    def _advance(self) -> None:
        self.route_index += 1
        if self.route_index < len(self.route):
            self._navigate_to_route_entry()
        elif self.route.return_to_start and not self.returning_to_start:
            self.returning_to_start = True
            self._set_state(
                MissionState.NAVIGATING_TO_TARGET, "All targets visited, returning to start position"
            )
            self._set_active(self.start_position, "start")
        else:
            self._complete_route("Multi-target route complete!")

    def _complete_route(self, message: str) -> None:
        self._cancel_pending()
        self.is_running = False
        self.returning_to_start = False
        self._set_active(None, "")
        self._set_state(MissionState.ROUTE_COMPLETE, message)
