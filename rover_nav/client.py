#!/usr/bin/env python3
"""
WebSocket Client linking the navigation core to a simulator host

This module connects to a simulator host, receives the mission setup and
per-tick sensor frames (true pose, velocity, nearby obstacles), runs one
navigation step per frame and replies with the resulting drive command.
The session ends on a "stop" message or a shutdown signal.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Dict, List, Optional, Union

import websockets

from rover_nav.component_modes import ComponentMode, parse_component_flags
from rover_nav.config import (
    OBSTACLE_TAG,
    SIM_DT,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    WS_URI,
)
from rover_nav.controller import NavigationController
from rover_nav.data_collector import DataCollector
from rover_nav.nav_types import AreaGrid, Landmark, Pose, Target, as_vec3
from rover_nav.simulation import BoxObstacle, ObstacleField, SphereObstacle, StraightLinePathProvider


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        else:
            return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def parse_obstacles(entries: List[Dict[str, Any]]) -> List[Any]:
    """Build colliders from host obstacle descriptions.

    Each entry has "id", "position" and either "radius" (sphere) or
    "half_extents" (box), plus optional "tag" and "solid".
    """
    obstacles = []
    for entry in entries:
        kwargs = {"tag": entry.get("tag", OBSTACLE_TAG), "solid": bool(entry.get("solid", True))}
        if "half_extents" in entry:
            obstacles.append(
                BoxObstacle(str(entry["id"]), entry["position"], entry["half_extents"], **kwargs)
            )
        else:
            obstacles.append(
                SphereObstacle(str(entry["id"]), entry["position"], float(entry["radius"]), **kwargs)
            )
    return obstacles


def parse_targets(entries: List[Dict[str, Any]]) -> List[Target]:
    targets = []
    for n, entry in enumerate(entries):
        grid = None
        if entry.get("area_grid"):
            grid = AreaGrid([as_vec3(p) for p in entry["area_grid"]])
        targets.append(Target(str(entry.get("id", f"target_{n}")), as_vec3(entry["position"]), grid))
    return targets


class NavigationClient:
    """Navigation session driven by a simulator host over WebSocket.

    The host owns the world: it reports obstacles near the robot with every
    sensor frame, and this client mirrors them into an ObstacleField that
    answers the avoidance and detector queries.

    Attributes:
        uri: WebSocket URI to connect to.
        world: Mirror of the obstacles reported by the host.
        controller: Navigation pipeline, created by the setup message.
        data_collector: Optional run recorder.
        should_stop: Flag indicating whether to stop the session.
    """

    def __init__(
        self,
        uri: str,
        component_mode: Optional[ComponentMode] = None,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        """Initialize the client.

        Args:
            uri: WebSocket URI to connect to (must start with ws:// or wss://).
            component_mode: ComponentMode configuration for component isolation testing.
            data_collector: Optional run recorder.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.component_mode = component_mode or ComponentMode()
        self.data_collector = data_collector
        self.world = ObstacleField()
        self.path_provider = StraightLinePathProvider()
        self.controller: Optional[NavigationController] = None
        self.should_stop: bool = False

    def handle_setup(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Build the controller from a setup message and start the mission."""
        landmarks = [
            Landmark(str(lm.get("id", f"landmark_{n}")), as_vec3(lm["position"]))
            for n, lm in enumerate(data.get("landmarks", []))
        ]
        start = data.get("pose", {})
        initial_pose = Pose(as_vec3(start.get("position", [0.0, 0.0, 0.0])), float(start.get("heading", 0.0)))
        self.world.replace_obstacles(parse_obstacles(data.get("obstacles", [])))

        self.controller = NavigationController(
            landmarks,
            path_provider=self.path_provider,
            ray_provider=self.world,
            component_mode=self.component_mode,
            initial_pose=initial_pose,
            seed=data.get("seed"),
            data_collector=self.data_collector,
        )
        started = self.controller.start_mission(
            parse_targets(data.get("targets", [])), bool(data.get("return_to_start", False))
        )
        route = self.controller.mission.route
        return {
            "message_type": "mission",
            "started": started,
            "route": list(route.order) if route is not None else [],
            "length": route.length if route is not None else 0.0,
        }

    def handle_sensors(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Run one navigation step for a sensor frame."""
        if self.controller is None:
            logging.warning("Sensor frame received before setup, ignoring")
            return {"message_type": "command", "steering": 0.0, "throttle": 0.0, "brake": True}

        if "obstacles" in data:
            self.world.replace_obstacles(parse_obstacles(data["obstacles"]))

        pose = Pose(as_vec3(data["position"]), float(data["heading"]))
        velocity = as_vec3(data.get("velocity", [0.0, 0.0, 0.0]))
        dt = float(data.get("dt", SIM_DT))

        command = self.controller.step(pose, velocity, dt)
        reply = {"message_type": "command"}
        reply.update(command.to_dict())
        reply["mission_state"] = (
            self.controller.mission_state.value if self.controller.mission_state else None
        )
        reply["avoidance_state"] = self.controller.avoidance_state.value
        reply["estimate"] = [float(v) for v in self.controller.get_estimated_position()]
        return reply

    def handle_stop(self) -> Dict[str, Any]:
        self.should_stop = True
        if self.controller is None:
            return {"message_type": "command", "steering": 0.0, "throttle": 0.0, "brake": True}
        reply = {"message_type": "command"}
        reply.update(self.controller.stop_navigation().to_dict())
        logging.info(f"{TERM_BLUE}✓ Navigation stopped by host{TERM_RESET}")
        return reply

    def parse_and_route_message(self, message: Union[str, bytes]) -> Optional[Dict[str, Any]]:
        """Parse incoming message and route to appropriate handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            Reply to send back, or None if the message produced no reply.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            message_type = data.get("message_type")

            if message_type == "setup":
                return self.handle_setup(data)
            elif message_type == "sensors":
                return self.handle_sensors(data)
            elif message_type == "stop":
                return self.handle_stop()
            else:
                logging.debug(f"\nReceived unknown message: {json.dumps(data, indent=2)}\n")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")
        return None

    async def run(self) -> None:
        """Connect to the host and serve navigation steps.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff until should_stop is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS
        max_retry_delay = WS_MAX_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(
                                websocket.recv(), timeout=WS_TIMEOUT_SECONDS
                            )
                            reply = self.parse_and_route_message(message)
                            if reply is not None:
                                await websocket.send(json.dumps(reply))
                        except asyncio.TimeoutError:
                            continue
                        except websockets.exceptions.ConnectionClosed:
                            logging.warning("Connection closed by server")
                            break

            except (OSError, websockets.exceptions.WebSocketException) as e:
                if self.should_stop:
                    break
                logging.error(f"Connection error: {e}")
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, max_retry_delay)

    def stop(self) -> None:
        """Signal the client to stop."""
        self.should_stop = True


async def main(component_mode: Optional[ComponentMode] = None, record: bool = True) -> None:
    """Main entry point for the WebSocket client.

    Args:
        component_mode: ComponentMode configuration for component isolation testing.
        record: Write run data with a DataCollector.
    """
    collector = DataCollector() if record else None
    if collector is not None:
        collector.setup()

    client = NavigationClient(WS_URI, component_mode=component_mode, data_collector=collector)
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        """Handle shutdown signals (SIGINT, SIGTERM)."""
        logging.info("\nShutdown signal received...")
        client.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await client.run()
    finally:
        if collector is not None:
            collector.cleanup()


if __name__ == "__main__":
    component_mode, remaining_args = parse_component_flags()

    parser = argparse.ArgumentParser(
        description="WebSocket client linking the rover navigation core to a simulator host"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument("--no-record", action="store_true", help="Do not write run data")
    args = parser.parse_args(remaining_args)

    setup_logging(args.verbose)

    try:
        asyncio.run(main(component_mode=component_mode, record=not args.no_record))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
