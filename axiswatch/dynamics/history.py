"""
Bounded joint-sample history and finite-difference derivatives.

Samples arrive with the elapsed time since the previous sample.  Velocity
needs two samples and acceleration three; both are recomputed from the raw
angle deltas so filter lag never feeds back into the difference formulas.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np

from axiswatch.interface.robot_state import JointConfiguration

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 15
MIN_HISTORY_SIZE = 3


@dataclass(frozen=True)
class JointSample:
    """A joint configuration plus the seconds elapsed since the previous one."""

    joints: JointConfiguration
    dt: float


class JointHistory:
    """FIFO of the most recent joint samples, oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE):
        if capacity < MIN_HISTORY_SIZE:
            raise ValueError(
                f"History capacity must be at least {MIN_HISTORY_SIZE}, got {capacity}"
            )
        self._capacity = capacity
        self._samples: deque[JointSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, joints: JointConfiguration, dt: float) -> bool:
        """Record a sample.  Returns False (and records nothing) if dt is unusable."""
        if not math.isfinite(dt) or dt <= 0.0:
            logger.debug("Rejecting joint sample with dt=%r", dt)
            return False
        self._samples.append(JointSample(joints=joints, dt=float(dt)))
        return True

    def clear(self) -> None:
        self._samples.clear()

    def latest(self) -> Optional[JointSample]:
        return self._samples[-1] if self._samples else None

    def raw_velocities(self) -> Optional[np.ndarray]:
        """Per-joint velocity from the two newest samples, or None if too few."""
        if len(self._samples) < 2:
            return None
        current, previous = self._samples[-1], self._samples[-2]
        return (current.joints.as_array() - previous.joints.as_array()) / current.dt

    def raw_accelerations(self) -> Optional[np.ndarray]:
        """Per-joint acceleration from the three newest samples, or None if too few."""
        if len(self._samples) < 3:
            return None
        current, previous, before = self._samples[-1], self._samples[-2], self._samples[-3]
        a_cur = current.joints.as_array()
        a_prev = previous.joints.as_array()
        a_before = before.joints.as_array()
        v_cur = (a_cur - a_prev) / current.dt
        v_prev = (a_prev - a_before) / previous.dt
        return (v_cur - v_prev) / current.dt
