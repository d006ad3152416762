"""
Joint angle, velocity and acceleration limit monitoring.

Velocities and accelerations are estimated from the joint-angle stream by a
SignalConditioner; angles are checked raw.  Every (joint, quantity) pair has
one sticky violation flag and an event is emitted only when it flips.

Entry severity depends only on the quantity:

    angle         -> INFO
    velocity      -> WARNING
    acceleration  -> CRITICAL

Leaving a violation always emits RESOLVED.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from axiswatch.config.monitor_config import MonitorSettings
from axiswatch.dynamics.smoothing import SignalConditioner
from axiswatch.interface.robot_state import NUM_JOINTS, JointConfiguration, RobotState
from axiswatch.safety.events import JointDynamicsInfo, SafetyEvent, SafetyEventType
from axiswatch.safety.limits import JointLimitEnvelope, KinematicJointLimits, resolve_limits
from axiswatch.safety.monitor_base import SafetyMonitor

logger = logging.getLogger(__name__)

MONITOR_NAME = "Joint Dynamics Monitor"


class DynamicsQuantity(Enum):
    ANGLE = 0
    VELOCITY = 1
    ACCELERATION = 2

    @property
    def event_name(self) -> str:
        return _EVENT_NAMES[self]

    @property
    def entry_severity(self) -> SafetyEventType:
        return _ENTRY_SEVERITY[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]


_EVENT_NAMES = {
    DynamicsQuantity.ANGLE: "JointAngleLimit",
    DynamicsQuantity.VELOCITY: "JointVelocityLimit",
    DynamicsQuantity.ACCELERATION: "JointAccelerationLimit",
}

_ENTRY_SEVERITY = {
    DynamicsQuantity.ANGLE: SafetyEventType.INFO,
    DynamicsQuantity.VELOCITY: SafetyEventType.WARNING,
    DynamicsQuantity.ACCELERATION: SafetyEventType.CRITICAL,
}

_UNITS = {
    DynamicsQuantity.ANGLE: "°",
    DynamicsQuantity.VELOCITY: "°/s",
    DynamicsQuantity.ACCELERATION: "°/s²",
}


class JointDynamicsMonitor(SafetyMonitor):
    """Checks every joint against its angle/velocity/acceleration envelope.

    Only every ``update_stride``-th tick with joint data is processed; the
    ``dt`` of skipped ticks is carried into the next processed sample so the
    finite differences see the real elapsed time.

    Args:
        settings: Tunables (smoothing, stride, history, derating).
        limits: Manual limit envelope.  Defaults to the IRB 6700 data sheet.
        source_limits: Rated per-joint limits from the robot model.  Used
            (derated) instead of ``limits`` when ``use_kinematic_limits`` is
            set and the data is complete.
    """

    def __init__(
        self,
        settings: Optional[MonitorSettings] = None,
        limits: Optional[JointLimitEnvelope] = None,
        source_limits: Optional[Sequence[KinematicJointLimits]] = None,
        name: str = MONITOR_NAME,
    ):
        super().__init__(name)
        self.settings = settings or MonitorSettings()
        self._manual_limits = limits or JointLimitEnvelope()
        self._source_limits = source_limits
        self.limits = self._manual_limits
        self.update_stride = self.settings.update_stride

        self._conditioner = self._make_conditioner()
        self._violations = np.zeros((NUM_JOINTS, len(DynamicsQuantity)), dtype=bool)
        self._tick_counter = 0
        self._pending_dt = 0.0

    def _make_conditioner(self) -> SignalConditioner:
        s = self.settings
        return SignalConditioner(
            velocity_limits=self.limits.velocity_max,
            acceleration_limits=self.limits.acceleration_max,
            history_size=s.history_buffer_size,
            window_size=s.window_size,
            alpha=s.smoothing_alpha,
            velocity_outlier_fraction=s.velocity_outlier_fraction,
            accel_outlier_fraction=s.accel_outlier_fraction,
            smoothing_enabled=s.smoothing_enabled,
        )

    # -- Lifecycle -----------------------------------------------------------

    def initialize(self) -> None:
        if self.settings.use_kinematic_limits and self._source_limits is not None:
            self.limits = resolve_limits(
                self._source_limits,
                derating=self.settings.safety_derating_factor,
                fallback=self._manual_limits,
            )
        else:
            self.limits = self._manual_limits
        self._conditioner.set_limits(self.limits.velocity_max, self.limits.acceleration_max)
        logger.info("%s: using %s joint limits, stride %d", self.name, self.limits.source, self.update_stride)
        self.set_active(True)

    def _reset_state(self) -> None:
        self._conditioner.reset()
        self._violations[:] = False
        self._tick_counter = 0
        self._pending_dt = 0.0

    # -- Accessors -----------------------------------------------------------

    @property
    def current_velocities(self) -> np.ndarray:
        return self._conditioner.velocities

    @property
    def current_accelerations(self) -> np.ndarray:
        return self._conditioner.accelerations

    @property
    def smoothing_enabled(self) -> bool:
        return self._conditioner.smoothing_enabled

    def set_smoothing_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._conditioner.set_smoothing_enabled(enabled)

    def reset_smoothing(self) -> None:
        with self._lock:
            self._conditioner.reset_smoothing()
        logger.debug("%s: smoothing state reset", self.name)

    def is_violated(self, joint: int, quantity: DynamicsQuantity) -> bool:
        return bool(self._violations[joint, quantity.value])

    # -- Per tick ------------------------------------------------------------

    def update_state(self, state: RobotState) -> None:
        if state is None or not state.has_valid_joint_data:
            return
        with self._lock:
            if not self._active:
                return

            self._tick_counter += 1
            self._pending_dt += state.dt
            if self._tick_counter % self.update_stride != 0:
                return

            dt = self._pending_dt
            self._pending_dt = 0.0
            if not self._conditioner.add_sample(state.joints, dt):
                logger.debug("%s: sample rejected (dt=%r), keeping previous estimates", self.name, dt)

            self._check_limits(state.joints)

    def _check_limits(self, joints: JointConfiguration) -> None:
        angles = joints.as_array()
        velocities = self._conditioner.velocities
        accelerations = self._conditioner.accelerations
        lim = self.limits

        raw = np.zeros_like(self._violations)
        raw[:, DynamicsQuantity.ANGLE.value] = lim.angle_violations(angles)
        raw[:, DynamicsQuantity.VELOCITY.value] = lim.velocity_violations(velocities)
        raw[:, DynamicsQuantity.ACCELERATION.value] = lim.acceleration_violations(accelerations)

        flips = np.argwhere(raw != self._violations)
        if flips.size == 0:
            return
        self._violations[:] = raw

        values = {
            DynamicsQuantity.ANGLE: angles,
            DynamicsQuantity.VELOCITY: velocities,
            DynamicsQuantity.ACCELERATION: accelerations,
        }
        for joint, q in flips:
            quantity = DynamicsQuantity(int(q))
            joint = int(joint)
            self._emit(
                self._build_event(
                    quantity,
                    joint,
                    float(values[quantity][joint]),
                    entering=bool(raw[joint, q]),
                    angles=angles,
                    velocities=velocities,
                    accelerations=accelerations,
                )
            )

    # -- Events --------------------------------------------------------------

    def _limits_for(self, quantity: DynamicsQuantity, joint: int) -> tuple[float, float]:
        lim = self.limits
        if quantity is DynamicsQuantity.ANGLE:
            return float(lim.angle_min[joint]), float(lim.angle_max[joint])
        if quantity is DynamicsQuantity.VELOCITY:
            m = float(lim.velocity_max[joint])
        else:
            m = float(lim.acceleration_max[joint])
        return -m, m

    def _build_event(
        self,
        quantity: DynamicsQuantity,
        joint: int,
        value: float,
        entering: bool,
        angles: np.ndarray,
        velocities: np.ndarray,
        accelerations: np.ndarray,
    ) -> SafetyEvent:
        event_name = quantity.event_name if entering else quantity.event_name + "Resolved"
        lo, hi = self._limits_for(quantity, joint)
        label = quantity.name.lower()
        status = "exceeded" if entering else "resolved"
        info = JointDynamicsInfo(
            event_name=event_name,
            joint_index=joint,
            current_value=value,
            min_limit=lo,
            max_limit=hi,
            joint_angles=tuple(float(a) for a in angles),
            joint_velocities=tuple(float(v) for v in velocities),
            joint_accelerations=tuple(float(a) for a in accelerations),
            smoothing_enabled=self._conditioner.smoothing_enabled,
            smoothing_alpha=self._conditioner.alpha,
            smoothing_window_size=self._conditioner.window_size,
        )
        return SafetyEvent(
            monitor_name=self.name,
            event_type=quantity.entry_severity if entering else SafetyEventType.RESOLVED,
            description=f"Joint {joint + 1} {label} limit {status}: {value:.2f}{quantity.unit}",
            data=info,
        )
