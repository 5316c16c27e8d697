"""Host entry point of the navigation core.

NavigationController wires the components together with explicit
dependency injection and runs them once per tick in a fixed order:

    Localizer -> scheduler -> mission detector scan -> PathFollower
    -> (target reached -> MissionCoordinator) -> ObstacleAvoidance
    -> command arbitration -> steering low-pass filter -> DriveCommand

Arbitration priority: REVERSING > stop tick after reversing > follower
brake > AVOIDING steering override > path following.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from . import config as cfg
from .avoidance import AvoidanceOutput, ObstacleAvoidance
from .component_modes import ComponentMode
from .data_collector import DataCollector
from .errors import ConfigurationError
from .follower import FollowerOutput, PathFollower
from .interfaces import PathProvider, RayQueryProvider
from .localizer import TrilaterationLocalizer
from .mission import MissionCoordinator
from .nav_types import AvoidanceState, DriveCommand, Landmark, MissionState, Pose, Target
from .route_optimizer import RouteOptimizer
from .scheduler import TickScheduler


class NavigationController:
    """Per-tick navigation pipeline for one robot.

    Attributes:
        localizer: Trilateration localizer, or None when bypassed.
        follower: Path follower.
        avoidance: Obstacle avoidance, or None when bypassed.
        route_optimizer: Route optimizer.
        scheduler: Tick scheduler shared with the mission coordinator.
        mission: Mission coordinator.
        estimated_pose: Pose used by the follower this tick.
        time: Accumulated mission time (seconds).
    """

    def __init__(
        self,
        landmarks: Sequence[Landmark],
        path_provider: Optional[PathProvider] = None,
        ray_provider: Optional[RayQueryProvider] = None,
        component_mode: Optional[ComponentMode] = None,
        initial_pose: Optional[Pose] = None,
        seed: Optional[int] = None,
        measurement_noise: float = cfg.LOCALIZER_MEASUREMENT_NOISE,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        """Build the component graph.

        Args:
            landmarks: Ranging beacons for the localizer.
            path_provider: Path service shared by follower and route optimizer.
            ray_provider: Physics query service for avoidance and area search.
            component_mode: Component isolation flags (default: everything on).
            initial_pose: Pose before the first tick.
            seed: Seed of the localizer's measurement noise.
            measurement_noise: Half-width of the uniform range noise (meters).
            data_collector: Optional run recorder.

        Raises:
            ConfigurationError: If avoidance is enabled without a ray provider.
        """
        if component_mode is None:
            component_mode = ComponentMode()
        self.component_mode = component_mode
        logging.info(f"{cfg.TERM_BLUE}Component Configuration: {component_mode}{cfg.TERM_RESET}")

        if component_mode.use_avoidance and ray_provider is None:
            raise ConfigurationError("Obstacle avoidance requires a ray query provider")

        self.estimated_pose = initial_pose.copy() if initial_pose is not None else Pose()
        self.time = 0.0
        self.data_collector = data_collector

        self.localizer: Optional[TrilaterationLocalizer] = None
        if component_mode.use_localizer:
            self.localizer = TrilaterationLocalizer(
                landmarks,
                initial_pose=self.estimated_pose,
                measurement_noise=measurement_noise,
                seed=seed,
            )

        self.follower = PathFollower(path_provider)
        self.avoidance: Optional[ObstacleAvoidance] = None
        if component_mode.use_avoidance:
            self.avoidance = ObstacleAvoidance(ray_provider)

        self.route_optimizer = RouteOptimizer(path_provider)
        self.scheduler = TickScheduler()
        self.mission = MissionCoordinator(
            self.follower,
            self.route_optimizer,
            self.scheduler,
            detector=ray_provider,
            search_enabled=component_mode.use_area_search,
        )
        self.mission.on_state_change = self._record_mission_event

        self.last_follower_output = FollowerOutput()
        self.last_avoidance_output: Optional[AvoidanceOutput] = None

    # ==================== Host API ====================

    def start_mission(self, targets: Sequence[Target], return_to_start: bool = False) -> bool:
        """Optimize the route over targets and start the mission.

        Configuration errors are logged and disable the mission instead of
        propagating to the host.

        Returns:
            True if the mission started.
        """
        order = None if self.component_mode.use_route_optimizer else list(range(len(targets)))
        try:
            started = self.mission.start_mission(
                targets, self.estimated_pose.position, return_to_start, order=order
            )
        except ConfigurationError as e:
            self.mission.disable(str(e))
            return False

        if started and self.data_collector is not None:
            self.data_collector.log_route(self.mission.route, [t.id for t in targets])
        return started

    def stop_navigation(self) -> DriveCommand:
        """Stop the mission. The returned command brakes in the same tick."""
        self.mission.stop_navigation()
        if self.avoidance is not None:
            self.avoidance.reset()
        return DriveCommand.stop(self.follower.applied_steering)

    def get_estimated_position(self) -> np.ndarray:
        return self.estimated_pose.position.copy()

    @property
    def mission_state(self) -> Optional[MissionState]:
        return self.mission.state

    @property
    def avoidance_state(self) -> AvoidanceState:
        if self.avoidance is None:
            return AvoidanceState.FOLLOWING
        return self.avoidance.state

    # ==================== Tick ====================

    def step(self, raw_pose: Pose, velocity: np.ndarray, dt: float) -> DriveCommand:
        """Run one control tick.

        Args:
            raw_pose: True pose reported by the host (ranging and sensors).
            velocity: Current velocity vector (m/s).
            dt: Elapsed time since last tick (seconds).

        Returns:
            DriveCommand for this tick.
        """
        self.time += dt

        if self.localizer is not None:
            pose = self.localizer.update(raw_pose)
        else:
            pose = raw_pose.copy()
        self.estimated_pose = pose

        self.scheduler.advance(dt)
        self.mission.tick(dt, pose)

        follow = self.follower.update(pose, dt)
        if follow.target_reached:
            self.mission.on_target_reached()

        avoid: Optional[AvoidanceOutput] = None
        if self.avoidance is not None:
            speed = float(np.linalg.norm(velocity))
            # Sensors are mounted on the robot: cast from the true pose
            avoid = self.avoidance.update(raw_pose, speed, dt, driving=not follow.brake)

        command = self._arbitrate(follow, avoid, dt)

        self.last_follower_output = follow
        self.last_avoidance_output = avoid
        if self.data_collector is not None:
            self.data_collector.log_pose(self.time, raw_pose, pose.position)
            self.data_collector.log_command(
                self.time,
                command,
                self.avoidance_state.value,
                avoid.accumulator if avoid is not None else 0.0,
            )
        return command

    def _arbitrate(
        self, follow: FollowerOutput, avoid: Optional[AvoidanceOutput], dt: float
    ) -> DriveCommand:
        if avoid is not None and avoid.state == AvoidanceState.REVERSING:
            steering, throttle, brake = avoid.steering_override, avoid.throttle_override, False
        elif avoid is not None and avoid.brake:
            steering, throttle, brake = 0.0, 0.0, True
        elif follow.brake:
            steering, throttle, brake = follow.steering, 0.0, True
        elif avoid is not None and avoid.steering_override is not None:
            steering, throttle, brake = avoid.steering_override, follow.throttle, False
        else:
            steering, throttle, brake = follow.steering, follow.throttle, False

        applied = self.follower.smooth_steering(steering, dt)
        return DriveCommand(steering=applied, throttle=throttle, brake=brake)

    def _record_mission_event(self, state: MissionState, reason: str) -> None:
        if self.data_collector is not None:
            self.data_collector.log_mission_event(self.time, state.value, reason)
