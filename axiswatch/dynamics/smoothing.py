"""
Signal conditioning for joint velocity and acceleration estimates.

Each quantity goes through the same four stages per joint:

  1. append the raw value to a bounded window
  2. update an exponential moving average
  3. output the window mean once the window is full, the EMA before that
  4. clamp the change against the previous window mean to a fraction of the
     joint's limit for that quantity

The clamp is keyed to the limit so a single bad sample cannot push the
estimate across it on its own.  Once the window is full a clamped sample is
stored in its clamped form, so it cannot drag the window mean later either.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional, Sequence

import numpy as np

from axiswatch.dynamics.history import DEFAULT_HISTORY_SIZE, JointHistory
from axiswatch.interface.robot_state import NUM_JOINTS, JointConfiguration

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.2
DEFAULT_WINDOW_SIZE = 8
DEFAULT_VELOCITY_OUTLIER_FRACTION = 0.2
DEFAULT_ACCEL_OUTLIER_FRACTION = 0.15


class QuantitySmoother:
    """EMA + moving window + spike clamp for one quantity across all joints."""

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        alpha: float = DEFAULT_ALPHA,
        outlier_fraction: float = DEFAULT_VELOCITY_OUTLIER_FRACTION,
        num_joints: int = NUM_JOINTS,
    ):
        if window_size < 1:
            raise ValueError(f"window_size must be positive, got {window_size}")
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if not 0.0 < outlier_fraction <= 1.0:
            raise ValueError(f"outlier_fraction must be in (0, 1], got {outlier_fraction}")
        self.window_size = window_size
        self.alpha = alpha
        self.outlier_fraction = outlier_fraction
        self._num_joints = num_joints
        self._window: deque[np.ndarray] = deque(maxlen=window_size)
        self._ema = np.zeros(num_joints, dtype=np.float64)

    @property
    def ema(self) -> np.ndarray:
        return self._ema.copy()

    @property
    def window_fill(self) -> int:
        return len(self._window)

    def reset(self) -> None:
        self._window.clear()
        self._ema = np.zeros(self._num_joints, dtype=np.float64)

    def update(self, raw: np.ndarray, max_magnitude: np.ndarray) -> np.ndarray:
        """Feed one raw sample and return the conditioned estimate.

        Args:
            raw: Raw per-joint values.
            max_magnitude: Per-joint limit for this quantity; the outlier cap
                is ``max_magnitude * outlier_fraction``.
        """
        raw = np.asarray(raw, dtype=np.float64)
        self._window.append(raw.copy())

        self._ema = self.alpha * raw + (1.0 - self.alpha) * self._ema

        if len(self._window) >= self.window_size:
            out = np.mean(np.stack(self._window), axis=0)
        else:
            out = self._ema.copy()

        if len(self._window) > 1:
            prior = np.mean(np.stack(list(self._window)[:-1]), axis=0)
            max_change = np.asarray(max_magnitude, dtype=np.float64) * self.outlier_fraction
            delta = out - prior
            spikes = np.abs(delta) > max_change
            if np.any(spikes):
                logger.debug(
                    "Clamping spike on joints %s (delta=%s, cap=%s)",
                    np.flatnonzero(spikes).tolist(),
                    np.round(delta[spikes], 3).tolist(),
                    np.round(max_change[spikes], 3).tolist(),
                )
                clamped = np.where(spikes, prior + np.sign(delta) * max_change, out)
                if len(self._window) >= self.window_size:
                    # Rewrite the newest entry so the window mean equals the
                    # clamped output; the spike must not resurface next tick.
                    self._window[-1] = self._window[-1] + (clamped - out) * len(self._window)
                out = clamped

        return out


class SignalConditioner:
    """Turns raw joint-angle samples into smoothed velocity/acceleration estimates.

    Until enough samples are present the previous estimate is kept unchanged
    (zeros after construction or reset).
    """

    def __init__(
        self,
        velocity_limits: Sequence[float],
        acceleration_limits: Sequence[float],
        history_size: int = DEFAULT_HISTORY_SIZE,
        window_size: int = DEFAULT_WINDOW_SIZE,
        alpha: float = DEFAULT_ALPHA,
        velocity_outlier_fraction: float = DEFAULT_VELOCITY_OUTLIER_FRACTION,
        accel_outlier_fraction: float = DEFAULT_ACCEL_OUTLIER_FRACTION,
        smoothing_enabled: bool = True,
    ):
        self._history = JointHistory(history_size)
        self._velocity_smoother = QuantitySmoother(window_size, alpha, velocity_outlier_fraction)
        self._accel_smoother = QuantitySmoother(window_size, alpha, accel_outlier_fraction)
        self._velocity_limits = np.asarray(velocity_limits, dtype=np.float64)
        self._accel_limits = np.asarray(acceleration_limits, dtype=np.float64)
        self._smoothing_enabled = smoothing_enabled
        self._velocities = np.zeros(NUM_JOINTS, dtype=np.float64)
        self._accelerations = np.zeros(NUM_JOINTS, dtype=np.float64)

    # -- Properties ----------------------------------------------------------

    @property
    def velocities(self) -> np.ndarray:
        return self._velocities.copy()

    @property
    def accelerations(self) -> np.ndarray:
        return self._accelerations.copy()

    @property
    def history(self) -> JointHistory:
        return self._history

    @property
    def smoothing_enabled(self) -> bool:
        return self._smoothing_enabled

    @property
    def alpha(self) -> float:
        return self._velocity_smoother.alpha

    @property
    def window_size(self) -> int:
        return self._velocity_smoother.window_size

    # -- Updates -------------------------------------------------------------

    def add_sample(self, joints: JointConfiguration, dt: float) -> bool:
        """Record a sample and refresh the derivative estimates.

        Returns False if the sample was rejected (non-positive or non-finite dt).
        """
        if not self._history.append(joints, dt):
            return False

        raw_v = self._history.raw_velocities()
        if raw_v is not None:
            if self._smoothing_enabled:
                self._velocities = self._velocity_smoother.update(raw_v, self._velocity_limits)
            else:
                self._velocities = raw_v

        raw_a = self._history.raw_accelerations()
        if raw_a is not None:
            if self._smoothing_enabled:
                self._accelerations = self._accel_smoother.update(raw_a, self._accel_limits)
            else:
                self._accelerations = raw_a

        return True

    def set_limits(
        self,
        velocity_limits: Optional[Sequence[float]] = None,
        acceleration_limits: Optional[Sequence[float]] = None,
    ) -> None:
        if velocity_limits is not None:
            self._velocity_limits = np.asarray(velocity_limits, dtype=np.float64)
        if acceleration_limits is not None:
            self._accel_limits = np.asarray(acceleration_limits, dtype=np.float64)

    def set_smoothing_enabled(self, enabled: bool) -> None:
        self._smoothing_enabled = enabled
        if not enabled:
            self.reset_smoothing()

    def reset_smoothing(self) -> None:
        """Clear EMA accumulators and window buffers; keep the sample history."""
        self._velocity_smoother.reset()
        self._accel_smoother.reset()

    def reset(self) -> None:
        """Clear everything: history, smoothing state and current estimates."""
        self._history.clear()
        self.reset_smoothing()
        self._velocities = np.zeros(NUM_JOINTS, dtype=np.float64)
        self._accelerations = np.zeros(NUM_JOINTS, dtype=np.float64)
