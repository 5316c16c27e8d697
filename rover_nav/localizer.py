"""Landmark localization module for rover state estimation.

This module estimates the robot position from noisy range measurements to
fixed landmarks:
- Closed-form trilateration from the first three landmarks
- Gauss-Newton least-squares refinement when more landmarks are available
- Bounded uniform measurement noise on every range
- Estimate recomputed from scratch every tick (no fusion across ticks)
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from . import config as cfg
from .errors import ConfigurationError
from .nav_types import Landmark, Pose, RangeMeasurement, as_vec3

# Below this, landmark geometry or predicted distances are treated as degenerate.
_EPS = 1e-9


class TrilaterationLocalizer:
    """Position estimator using range-only measurements to known landmarks.

    Estimation pipeline (each tick):
        1. Measure distance to every landmark with additive U(-noise, +noise)
        2. Closed-form trilateration with the first three landmarks
        3. Gauss-Newton refinement over all landmarks (only if more than 3)

    With fewer than three landmarks the localizer is inert: it logs a
    ConfigurationError once and keeps returning its initial pose.
    """

    def __init__(
        self,
        landmarks: Sequence[Landmark],
        initial_pose: Optional[Pose] = None,
        measurement_noise: float = cfg.LOCALIZER_MEASUREMENT_NOISE,
        max_iterations: int = cfg.LOCALIZER_MAX_ITERATIONS,
        tolerance: float = cfg.LOCALIZER_TOLERANCE,
        seed: Optional[int] = None,
        strict: bool = False,
    ):
        """Initialize the localizer.

        Args:
            landmarks: Known landmark positions (at least 3).
            initial_pose: Pose reported until the first estimate. Default: origin.
            measurement_noise: Bound of the uniform range noise (meters).
            max_iterations: Gauss-Newton iteration cap.
            tolerance: Gauss-Newton convergence tolerance (meters).
            seed: Seed of the noise generator, for reproducible runs.
            strict: If True, raise ConfigurationError instead of disabling.

        Raises:
            ConfigurationError: Only when strict=True and the landmark set is invalid.
        """
        self.landmarks: List[Landmark] = list(landmarks)
        self._landmark_positions = np.array(
            [as_vec3(lm.position) for lm in self.landmarks], dtype=float
        ).reshape(-1, 3)
        self.measurement_noise = measurement_noise
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.rng = np.random.default_rng(seed)

        self.pose: Pose = initial_pose.copy() if initial_pose is not None else Pose()
        self.error: Optional[ConfigurationError] = self._validate_landmarks()
        self.enabled = self.error is None

        if self.error is not None:
            if strict:
                raise self.error
            logging.error(f"Localizer disabled: {self.error}")

        # Diagnostics of the most recent estimate
        self.last_measurements: List[RangeMeasurement] = []
        self.last_iterations = 0
        self.last_residual_rms = 0.0
        self.radicand_clamped = False

    def _validate_landmarks(self) -> Optional[ConfigurationError]:
        if len(self.landmarks) < cfg.LOCALIZER_MIN_LANDMARKS:
            return ConfigurationError(
                f"Trilateration requires at least {cfg.LOCALIZER_MIN_LANDMARKS} "
                f"landmarks, got {len(self.landmarks)}"
            )
        p1, p2, p3 = self._landmark_positions[:3]
        if np.linalg.norm(p2 - p1) < _EPS:
            return ConfigurationError("First two landmarks coincide")
        if np.linalg.norm(np.cross(p2 - p1, p3 - p1)) < _EPS:
            return ConfigurationError("First three landmarks are collinear")
        return None

    def measure(self, true_position: np.ndarray) -> List[RangeMeasurement]:
        """Simulate one noisy range measurement per landmark.

        Args:
            true_position: Actual robot position (ground truth).

        Returns:
            List of RangeMeasurement in landmark order.
        """
        true_position = as_vec3(true_position)
        distances = np.linalg.norm(self._landmark_positions - true_position, axis=1)
        if self.measurement_noise > 0:
            distances = distances + self.rng.uniform(
                -self.measurement_noise, self.measurement_noise, size=len(distances)
            )
        return [
            RangeMeasurement(lm.id, float(d)) for lm, d in zip(self.landmarks, distances)
        ]

    def closed_form(self, distances: Sequence[float]) -> np.ndarray:
        """Closed-form trilateration using the first three landmarks.

        Builds an orthonormal frame (ex, ey, ez) anchored at the first landmark,
        solves the planar equations for the ex/ey offsets and takes the ez
        offset from the Pythagorean remainder. A negative remainder (noisy,
        geometrically inconsistent ranges) is clamped to zero height offset.

        Args:
            distances: Measured ranges, at least three, in landmark order.

        Returns:
            Estimated world position.
        """
        p1, p2, p3 = self._landmark_positions[:3]
        r1, r2, r3 = (float(d) for d in distances[:3])

        d = float(np.linalg.norm(p2 - p1))
        ex = (p2 - p1) / d
        i = float(np.dot(ex, p3 - p1))
        ey_raw = p3 - p1 - i * ex
        ey = ey_raw / np.linalg.norm(ey_raw)
        ez = np.cross(ex, ey)
        j = float(np.dot(ey, p3 - p1))

        x = (r1 * r1 - r2 * r2 + d * d) / (2.0 * d)
        y = (r1 * r1 - r3 * r3 + i * i + j * j) / (2.0 * j) - (i / j) * x

        z_squared = r1 * r1 - x * x - y * y
        self.radicand_clamped = z_squared < 0
        if self.radicand_clamped:
            logging.debug(f"Trilateration radicand {z_squared:.4f} < 0, clamped to 0")
        z = math.sqrt(z_squared) if z_squared > 0 else 0.0

        return p1 + x * ex + y * ey + z * ez

    def refine(self, initial: np.ndarray, distances: Sequence[float]) -> np.ndarray:
        """Refine a position estimate with Gauss-Newton least squares.

        Each iteration linearizes the range residuals around the current
        estimate and solves J @ delta = r in the least-squares sense, where
        J rows are the unit vectors from each landmark to the estimate and
        r = measured - predicted distance.

        Stops when |delta| < tolerance, after max_iterations, or early on a
        rank-deficient Jacobian / zero predicted distance. Non-convergence
        returns the best available estimate.

        Args:
            initial: Starting estimate (typically the closed-form solution).
            distances: Measured ranges to all landmarks.

        Returns:
            Refined position estimate.
        """
        position = as_vec3(initial)
        measured = np.asarray(distances, dtype=float)
        self.last_iterations = 0

        for _ in range(self.max_iterations):
            offsets = position - self._landmark_positions
            predicted = np.linalg.norm(offsets, axis=1)
            if np.any(predicted < _EPS):
                logging.debug("Estimate coincides with a landmark, stopping refinement")
                break

            jacobian = offsets / predicted[:, np.newaxis]
            residual = measured - predicted

            update, _, rank, _ = np.linalg.lstsq(jacobian, residual, rcond=None)
            if rank < 3:
                logging.debug("Near-singular Jacobian, stopping refinement")
                break

            position = position + update
            self.last_iterations += 1

            if np.linalg.norm(update) < self.tolerance:
                break

        return position

    def estimate(self, distances: Sequence[float]) -> np.ndarray:
        """Estimate position from one set of range measurements."""
        position = self.closed_form(distances)
        if len(self.landmarks) > 3:
            position = self.refine(position, distances)

        predicted = np.linalg.norm(self._landmark_positions - position, axis=1)
        self.last_residual_rms = float(
            np.sqrt(np.mean((np.asarray(distances, dtype=float) - predicted) ** 2))
        )
        return position

    def update(self, raw_pose: Pose) -> Pose:
        """Re-measure ranges from the true pose and recompute the estimate.

        Heading is passed through from the raw pose; only position is
        estimated from landmarks.

        Args:
            raw_pose: Ground-truth pose of the robot this tick.

        Returns:
            Estimated pose (last-known pose when disabled).
        """
        if not self.enabled:
            return self.pose.copy()

        self.last_measurements = self.measure(raw_pose.position)
        distances = [m.distance for m in self.last_measurements]
        self.pose = Pose(self.estimate(distances), float(raw_pose.heading))
        return self.pose.copy()

    def get_estimated_position(self) -> np.ndarray:
        return self.pose.position.copy()

    def get_state(self) -> Dict[str, float]:
        """Get current state estimate.

        Returns:
            Dictionary containing:
                - x, y, z: Estimated position (m)
                - heading: Heading angle (rad)
        """
        x, y, z = self.pose.position
        return {
            "x": float(x),
            "y": float(y),
            "z": float(z),
            "heading": float(self.pose.heading),
        }

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information for logging and monitoring.

        Returns:
            Dictionary containing:
                - residual_rms: RMS range residual of the last estimate (m)
                - iterations: Gauss-Newton iterations used
                - radicand_clamped: 1.0 if the height offset was clamped
                - enabled: 1.0 if the localizer is operational
        """
        return {
            "residual_rms": self.last_residual_rms,
            "iterations": float(self.last_iterations),
            "radicand_clamped": 1.0 if self.radicand_clamped else 0.0,
            "enabled": 1.0 if self.enabled else 0.0,
        }

    def reset(self, pose: Optional[Pose] = None) -> None:
        """Reset the estimate and diagnostics."""
        self.pose = pose.copy() if pose is not None else Pose()
        self.last_measurements = []
        self.last_iterations = 0
        self.last_residual_rms = 0.0
        self.radicand_clamped = False
