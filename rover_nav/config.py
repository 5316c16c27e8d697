"""Configuration parameters for the rover navigation stack.

This module centralizes all configuration parameters including:
- Physical robot parameters
- Path following (steering and speed control)
- Obstacle avoidance sensors and recovery
- Landmark localization
- Route optimization and mission sequencing
- Logging and plot colors, host link settings

All parameters are documented with their purpose, units and valid ranges.
Angles that describe steering or sensor geometry are in degrees; headings
are in radians.
"""

# ============================================================================
# Physical Robot Parameters
# ============================================================================

WHEELBASE = 1.0
"""Distance between front and rear axles (meters).
Sets the turning radius of the kinematic vehicle model."""

MAX_SPEED = 3.0
"""Maximum forward speed of the vehicle (m/s). Hardware limit."""

MAX_REVERSE_SPEED = 1.5
"""Maximum reverse speed of the vehicle (m/s). Hardware limit."""

MAX_ACCELERATION = 2.0
"""Acceleration produced at full throttle (m/s²)."""

BRAKE_DECELERATION = 6.0
"""Deceleration produced with the brake applied (m/s²)."""

ROLLING_DRAG = 0.5
"""Linear drag coefficient (1/s). Speed decays as -ROLLING_DRAG * v."""

ROBOT_RADIUS = 0.4
"""Collision radius of the robot body (meters)."""


# ============================================================================
# Path Following Parameters
# ============================================================================

FOLLOWER_LOOK_AHEAD_DISTANCE = 2.0
"""Path distance ahead of the robot used to pick the steering point (meters).

Too small (<1m) makes steering twitchy around path corners.
Too large (>4m) cuts corners near obstacles.
"""

FOLLOWER_ARRIVAL_DISTANCE = 1.0
"""Distance at which the active target counts as reached (meters)."""

FOLLOWER_SLOWING_DISTANCE = 3.0
"""Distance from the target where throttle starts to ramp down (meters).

Throttle = (distance / slowing_distance)² inside this radius.
"""

MAX_STEERING_ANGLE = 40.0
"""Maximum front-wheel steering angle (degrees, range: (0, 90))."""

STEERING_TURN_SPEED = 20.0
"""Base rate of the steering low-pass filter (1/s)."""

STEERING_RESPONSIVENESS = 0.8
"""Steering responsiveness (range: [0, 1]).

Filter factor = clamp01(dt * STEERING_TURN_SPEED * (1 + 5 * responsiveness)).
Higher values make wheel steering follow the command more instantly.
"""


# ============================================================================
# Obstacle Avoidance Parameters
# ============================================================================

OBSTACLE_TAG = "Obstacles"
"""Collider tag that the avoidance sensors react to."""

SENSOR_LENGTH = 5.0
"""Maximum range of every avoidance ray (meters)."""

SENSOR_FORWARD_OFFSET = 0.3
"""Distance of the sensor bar ahead of the robot origin (meters)."""

SENSOR_HEIGHT_OFFSET = 0.0
"""Height of the sensor bar above the robot origin (meters)."""

SIDE_SENSOR_OFFSET = 0.3
"""Lateral offset of the left/right sensors from the center line (meters)."""

SIDE_SENSOR_ANGLE = 30.0
"""Outward angle of the angled side sensors (degrees)."""

CENTER_FAN_WIDTH = 0.4
"""Width spanned by the parallel center rays (meters)."""

CENTER_RAY_COUNT = 3
"""Number of parallel center rays (>= 1)."""

STUCK_SPEED_THRESHOLD = 0.2
"""Speed below which a blocked robot is considered stuck (m/s)."""

STUCK_TIME = 1.0
"""Time the robot must stay blocked and slow before reversing (seconds)."""

REVERSE_THROTTLE = 0.6
"""Throttle magnitude applied to all wheels while reversing (range: (0, 1])."""


# ============================================================================
# Localization Parameters (Trilateration)
# ============================================================================

LOCALIZER_MEASUREMENT_NOISE = 0.1
"""Bound of the uniform range measurement noise (meters).

Each distance is perturbed by U(-noise, +noise).
"""

LOCALIZER_MAX_ITERATIONS = 10
"""Iteration cap for the Gauss-Newton refinement."""

LOCALIZER_TOLERANCE = 1e-3
"""Convergence tolerance on the Gauss-Newton update magnitude (meters)."""

LOCALIZER_MIN_LANDMARKS = 3
"""Minimum number of landmarks for 3D trilateration."""


# ============================================================================
# Route Optimization Parameters
# ============================================================================

ROUTE_MAX_EXHAUSTIVE_TARGETS = 10
"""Practical ceiling for the exhaustive O(N!) permutation search.

Above this a warning is logged; the search still runs to completion.
"""


# ============================================================================
# Mission Parameters
# ============================================================================

MISSION_START_DELAY = 0.0
"""Delay between mission start and the first target becoming active (seconds)."""

MISSION_SETTLE_TIME = 0.5
"""Pause after arriving at a target before moving on (seconds)."""

MISSION_SWEEP_DELAY = 0.5
"""Pause after arriving at a search area before the sweep starts (seconds)."""

DETECTION_TAG = "Detectable"
"""Collider tag of objects the area search is looking for."""

DETECTION_RADIUS = 4.0
"""Radius of the periodic detector volume query (meters)."""

DETECTION_INTERVAL = 0.2
"""Period of the detector scan during area search (seconds)."""

SEARCH_GRID_SPACING = 2.0
"""Default spacing between sweep points of generated search grids (meters)."""

SEARCH_GRID_RADIUS = 6.0
"""Default radius of generated circular search grids (meters)."""

WALKABLE_TOLERANCE = 1.0
"""Max distance a sweep point may be snapped onto the walkable surface (meters)."""


# ============================================================================
# Simulation Parameters
# ============================================================================

SIM_DT = 0.05
"""Simulation tick (seconds). 20 Hz control loop."""

SIM_MAX_TICKS = 6000
"""Default tick budget of a simulated mission run."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for warnings and highlights."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for headline status messages."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# Plot Colors
# ============================================================================

PLOT_ORANGE = "#f74823"
"""Primary plot color (true trajectory, steering)."""

PLOT_BLUE = "#2374f7"
"""Secondary plot color (estimates, throttle)."""

PLOT_CREAM = "#fffdee"
"""Foreground color for axes and text on the dark background."""

PLOT_YELLOW_ORANGE = "#ffa726"
"""Accent color for targets and the planned route."""

PLOT_DARK_BLUE = "#0d1b2a"
"""Figure background color."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket URI of the simulator host."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
