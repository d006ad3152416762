"""
Robot state sources.

A RobotStateSource is the narrow adapter between the monitors and whatever
actually knows the robot: a controller connection, a simulator or a log
replay.  The monitors never talk to a host API directly.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from axiswatch.interface.robot_state import NUM_JOINTS, JointConfiguration, RobotState
from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS, DHLink
from axiswatch.safety.limits import KinematicJointLimits

logger = logging.getLogger(__name__)


class RobotStateSource(ABC):
    """Supplies joint configurations and the robot's kinematic description."""

    @abstractmethod
    def get_joint_configuration(self) -> Optional[JointConfiguration]:
        """Current joint angles in degrees, or None if unavailable."""
        ...

    @abstractmethod
    def get_link_parameters(self) -> Optional[List[DHLink]]:
        """DH table base->tool, or None if the robot model is unknown."""
        ...

    def get_joint_limits(self) -> Optional[List[KinematicJointLimits]]:
        """Rated joint limits, if the source knows them."""
        return None

    def read_state(self, dt: float) -> RobotState:
        return RobotState(joints=self.get_joint_configuration(), dt=dt)


# Rated IRB 6700-200/2.60 axis data (deg, deg/s, deg/s²)
IRB6700_RATED_LIMITS: List[KinematicJointLimits] = [
    KinematicJointLimits(-170.0, 170.0, 110.0, 800.0),
    KinematicJointLimits(-65.0, 85.0, 110.0, 800.0),
    KinematicJointLimits(-180.0, 70.0, 110.0, 800.0),
    KinematicJointLimits(-300.0, 300.0, 190.0, 1500.0),
    KinematicJointLimits(-130.0, 130.0, 150.0, 1200.0),
    KinematicJointLimits(-360.0, 360.0, 210.0, 1800.0),
]

# How fast the simulated robot moves toward targets (fraction per read)
_DEFAULT_INTERP_FACTOR = 0.15


class SimulatedRobot(RobotStateSource):
    """In-memory robot for offline runs and tests.

    Joint angles interpolate toward the commanded target each time
    ``get_joint_configuration()`` is called.  Thread-safe: all state access
    is guarded by a lock.
    """

    def __init__(
        self,
        links: Optional[Sequence[DHLink]] = IRB6700_DH_LINKS,
        joint_limits: Optional[Sequence[KinematicJointLimits]] = IRB6700_RATED_LIMITS,
        interp_factor: float = _DEFAULT_INTERP_FACTOR,
        initial_angles: Optional[Sequence[float]] = None,
    ) -> None:
        if not 0.0 < interp_factor <= 1.0:
            raise ValueError(f"interp_factor must be in (0, 1], got {interp_factor}")
        self._lock = threading.Lock()
        self._links = list(links) if links is not None else None
        self._joint_limits = list(joint_limits) if joint_limits is not None else None
        self._interp = interp_factor

        start = np.zeros(NUM_JOINTS) if initial_angles is None else np.asarray(initial_angles, dtype=np.float64)
        if start.shape != (NUM_JOINTS,):
            raise ValueError(f"initial_angles must have {NUM_JOINTS} elements, got shape {start.shape}")
        self._angles = start.astype(np.float64)
        self._target = self._angles.copy()
        self._connected = True
        self._last_update = time.monotonic()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        with self._lock:
            self._connected = False
        logger.info("SimulatedRobot disconnected")

    def set_target(self, angles_deg: Sequence[float]) -> None:
        target = np.asarray(angles_deg, dtype=np.float64)
        if target.shape != (NUM_JOINTS,):
            raise ValueError(f"Target must have {NUM_JOINTS} elements, got shape {target.shape}")
        with self._lock:
            self._target = target.copy()

    def teleport(self, angles_deg: Sequence[float]) -> None:
        """Jump straight to ``angles_deg`` (no interpolation)."""
        self.set_target(angles_deg)
        with self._lock:
            self._angles = self._target.copy()

    def _interpolate(self) -> None:
        """Move current angles toward the target (must hold lock)."""
        self._angles += (self._target - self._angles) * self._interp
        self._last_update = time.monotonic()

    def get_joint_configuration(self) -> Optional[JointConfiguration]:
        with self._lock:
            if not self._connected:
                return None
            self._interpolate()
            return JointConfiguration(tuple(self._angles))

    def get_link_parameters(self) -> Optional[List[DHLink]]:
        return list(self._links) if self._links is not None else None

    def get_joint_limits(self) -> Optional[List[KinematicJointLimits]]:
        return list(self._joint_limits) if self._joint_limits is not None else None
