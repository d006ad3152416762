"""
Joint limit envelopes for the joint dynamics monitor.

Angles are in degrees, velocities in deg/s and accelerations in deg/s².
Angle bounds may be asymmetric; velocity and acceleration bounds are
symmetric magnitudes.

Limits come either from the manual defaults below (ABB IRB 6700-200/2.60
data sheet) or from a kinematic-limits source reported by the robot model,
in which case velocity and acceleration are derated by a safety factor.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from axiswatch.config.monitor_config import ConfigError
from axiswatch.interface.robot_state import NUM_JOINTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KinematicJointLimits:
    """Rated limits of one joint as reported by the robot's kinematic model."""

    min_angle: float  # deg
    max_angle: float  # deg
    max_speed: float  # deg/s
    max_accel: float  # deg/s²


@dataclass
class JointLimitEnvelope:
    """Per-joint angle/velocity/acceleration limits.

    Arrays are length NUM_JOINTS (6).
    """

    angle_min: np.ndarray = field(
        default_factory=lambda: np.array(
            [-170.0, -65.0, -180.0, -300.0, -130.0, -360.0], dtype=np.float64
        )
    )
    angle_max: np.ndarray = field(
        default_factory=lambda: np.array(
            [170.0, 85.0, 70.0, 300.0, 130.0, 360.0], dtype=np.float64
        )
    )
    velocity_max: np.ndarray = field(
        default_factory=lambda: np.array(
            [110.0, 110.0, 110.0, 190.0, 150.0, 210.0], dtype=np.float64
        )
    )
    acceleration_max: np.ndarray = field(
        default_factory=lambda: np.array(
            [800.0, 800.0, 800.0, 1500.0, 1200.0, 1800.0], dtype=np.float64
        )
    )
    source: str = "manual"

    def __post_init__(self):
        for name in ("angle_min", "angle_max", "velocity_max", "acceleration_max"):
            arr = np.asarray(getattr(self, name), dtype=np.float64)
            if arr.shape != (NUM_JOINTS,):
                raise ConfigError(f"{name} must have {NUM_JOINTS} elements, got shape {arr.shape}")
            if not np.all(np.isfinite(arr)):
                raise ConfigError(f"{name} contains NaN/Inf")
            setattr(self, name, arr)
        if np.any(self.angle_min >= self.angle_max):
            raise ConfigError("angle_min must be strictly less than angle_max for all joints")
        if np.any(self.velocity_max <= 0):
            raise ConfigError("velocity_max must be positive for all joints")
        if np.any(self.acceleration_max <= 0):
            raise ConfigError("acceleration_max must be positive for all joints")

    # Per-joint violation masks; all comparisons are strict.

    def angle_violations(self, angles: np.ndarray) -> np.ndarray:
        angles = np.asarray(angles, dtype=np.float64)
        return (angles < self.angle_min) | (angles > self.angle_max)

    def velocity_violations(self, velocities: np.ndarray) -> np.ndarray:
        return np.abs(np.asarray(velocities, dtype=np.float64)) > self.velocity_max

    def acceleration_violations(self, accelerations: np.ndarray) -> np.ndarray:
        return np.abs(np.asarray(accelerations, dtype=np.float64)) > self.acceleration_max

    @classmethod
    def from_kinematic_limits(
        cls,
        joints: Sequence[KinematicJointLimits],
        derating: float = 0.8,
    ) -> JointLimitEnvelope:
        """Derive an envelope from rated joint limits.

        ``derating`` scales velocity and acceleration only; angle bounds are
        taken as-is.
        """
        if not 0.0 < derating <= 1.0:
            raise ConfigError(f"derating must be in (0, 1], got {derating}")
        if len(joints) < NUM_JOINTS:
            raise ConfigError(f"Expected {NUM_JOINTS} joint limits, got {len(joints)}")
        for i, j in enumerate(joints[:NUM_JOINTS]):
            if j is None:
                raise ConfigError(f"Joint {i} limits missing")
            values = (j.min_angle, j.max_angle, j.max_speed, j.max_accel)
            if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
                raise ConfigError(f"Joint {i} limits are not finite numbers: {values}")

        used = joints[:NUM_JOINTS]
        return cls(
            angle_min=np.array([j.min_angle for j in used], dtype=np.float64),
            angle_max=np.array([j.max_angle for j in used], dtype=np.float64),
            velocity_max=np.array([j.max_speed * derating for j in used], dtype=np.float64),
            acceleration_max=np.array([j.max_accel * derating for j in used], dtype=np.float64),
            source="kinematic",
        )


def resolve_limits(
    source_limits: Optional[Sequence[KinematicJointLimits]],
    derating: float = 0.8,
    fallback: Optional[JointLimitEnvelope] = None,
) -> JointLimitEnvelope:
    """Pick the envelope the monitor should use.

    Derives limits from ``source_limits`` when it is usable, otherwise logs a
    warning and returns ``fallback`` (manual defaults if None).
    """
    manual = fallback if fallback is not None else JointLimitEnvelope()
    if source_limits is None:
        return manual
    try:
        envelope = JointLimitEnvelope.from_kinematic_limits(source_limits, derating)
    except ConfigError as e:
        logger.warning("Cannot use kinematic joint limits (%s), using manual limits", e)
        return manual
    logger.info("Using kinematic joint limits (derating %.0f%%)", derating * 100)
    return envelope
