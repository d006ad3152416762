"""
Kinematic singularity detection for a 6R spherical-wrist arm.

Three independent conditions are tested on every tick:

  - wrist:    joint 4 and joint 6 axes (anti-)parallel
  - shoulder: wrist centre on the base rotation axis (horizontal distance only)
  - elbow:    links 2, 3 and the wrist centre collinear (arm stretched or folded)

Each condition keeps one sticky flag.  An event is emitted only when the raw
predicate disagrees with the flag: WARNING on entry, RESOLVED on exit.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from axiswatch.config.monitor_config import MonitorSettings
from axiswatch.interface.robot_state import JointConfiguration, RobotState
from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS, DHLink, validate_dh_links
from axiswatch.kinematics.forward import (
    WRIST_CENTER_LINK,
    KinematicModel,
    KinematicsError,
    angle_between_deg,
)
from axiswatch.kinematics.manipulability import manipulability
from axiswatch.safety.events import SafetyEvent, SafetyEventType, SingularityInfo
from axiswatch.safety.monitor_base import SafetyMonitor

logger = logging.getLogger(__name__)

MONITOR_NAME = "Singularity Detector"


class SingularityType(Enum):
    WRIST = "wrist"
    SHOULDER = "shoulder"
    ELBOW = "elbow"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    SingularityType.WRIST: "Wrist Singularity (θ₅ ≈ 0°)",
    SingularityType.SHOULDER: "Shoulder Singularity (Wrist on Y₀)",
    SingularityType.ELBOW: "Elbow Singularity (J2-J3-J5 Coplanar)",
}

_SINGULARITY_ORDER = (SingularityType.WRIST, SingularityType.SHOULDER, SingularityType.ELBOW)


class SingularityDetectionMonitor(SafetyMonitor):
    """Watches joint configurations for wrist, shoulder and elbow singularities.

    If the DH table is missing or malformed the monitor stays usable but skips
    every check and logs why at initialisation.
    """

    def __init__(
        self,
        settings: Optional[MonitorSettings] = None,
        links: Optional[Sequence[DHLink]] = IRB6700_DH_LINKS,
        name: str = MONITOR_NAME,
    ):
        super().__init__(name)
        self.settings = settings or MonitorSettings()
        self.wrist_threshold_deg = self.settings.wrist_threshold_deg
        self.shoulder_threshold_len = self.settings.shoulder_threshold_len
        self.elbow_threshold_deg = self.settings.elbow_threshold_deg
        self._enabled_checks = {
            SingularityType.WRIST: self.settings.check_wrist,
            SingularityType.SHOULDER: self.settings.check_shoulder,
            SingularityType.ELBOW: self.settings.check_elbow,
        }

        self._links = list(links) if links is not None else None
        self._model: Optional[KinematicModel] = None
        self._kinematics_ok = False
        self._sticky = np.zeros(len(SingularityType), dtype=bool)

    # -- Lifecycle -----------------------------------------------------------

    def initialize(self) -> None:
        problem = validate_dh_links(self._links)
        if problem is not None:
            logger.warning("%s: %s; singularity checks disabled", self.name, problem)
            self._model = None
            self._kinematics_ok = False
        else:
            self._model = KinematicModel(self._links)
            self._kinematics_ok = True
            logger.debug("%s: initialised with %d DH links", self.name, self._model.num_links)
        self.set_active(True)

    def _reset_state(self) -> None:
        self._sticky[:] = False

    @property
    def kinematics_available(self) -> bool:
        return self._kinematics_ok

    def is_in_singularity(self, singularity_type: SingularityType) -> bool:
        return bool(self._sticky[_SINGULARITY_ORDER.index(singularity_type)])

    # -- Per tick ------------------------------------------------------------

    def update_state(self, state: RobotState) -> None:
        if state is None or not state.has_valid_joint_data:
            return
        with self._lock:
            if not self._active or not self._kinematics_ok:
                return
            self._check_singularities(state.joints)

    def _check_singularities(self, joints: JointConfiguration) -> None:
        angles = joints.angles
        for idx, kind in enumerate(_SINGULARITY_ORDER):
            if not self._enabled_checks[kind]:
                continue
            try:
                singular = self._predicate(kind, angles)
            except KinematicsError as e:
                logger.warning("%s: %s check skipped: %s", self.name, kind.value, e)
                continue
            if singular != self._sticky[idx]:
                self._sticky[idx] = singular
                self._emit(self._build_event(kind, joints, entering=singular))

    def _predicate(self, kind: SingularityType, angles: Sequence[float]) -> bool:
        if kind is SingularityType.WRIST:
            return self.is_wrist_singular(angles)
        if kind is SingularityType.SHOULDER:
            return self.is_shoulder_singular(angles)
        return self.is_elbow_singular(angles)

    # -- Geometric tests -----------------------------------------------------

    def wrist_axis_angle(self, angles: Sequence[float]) -> float:
        z4 = self._model.link_axis(angles, 4)
        z6 = self._model.link_axis(angles, 6)
        return angle_between_deg(z4, z6)

    def is_wrist_singular(self, angles: Sequence[float]) -> bool:
        angle = self.wrist_axis_angle(angles)
        logger.debug("Wrist axis angle %.3f°", angle)
        return angle < self.wrist_threshold_deg or abs(180.0 - angle) < self.wrist_threshold_deg

    def wrist_horizontal_distance(self, angles: Sequence[float]) -> float:
        # Y is vertical; only the X/Z offset from the base axis counts
        p = self._model.link_position(angles, WRIST_CENTER_LINK)
        return math.hypot(p[0], p[2])

    def is_shoulder_singular(self, angles: Sequence[float]) -> bool:
        dist = self.wrist_horizontal_distance(angles)
        logger.debug("Wrist centre horizontal distance %.4f", dist)
        return dist < self.shoulder_threshold_len

    def elbow_angle(self, angles: Sequence[float]) -> float:
        p2 = self._model.link_position(angles, 2)
        p3 = self._model.link_position(angles, 3)
        p5 = self._model.link_position(angles, WRIST_CENTER_LINK)
        return angle_between_deg(p3 - p2, p5 - p2)

    def is_elbow_singular(self, angles: Sequence[float]) -> bool:
        angle = self.elbow_angle(angles)
        logger.debug("Elbow angle %.3f°", angle)
        return angle < self.elbow_threshold_deg or angle > 180.0 - self.elbow_threshold_deg

    def get_manipulability(self, angles: Sequence[float]) -> float:
        """Yoshikawa manipulability at ``angles`` (0.0 if kinematics are unavailable)."""
        if not self._kinematics_ok:
            return 0.0
        return manipulability(self._model.jacobian(angles))

    # -- Events --------------------------------------------------------------

    def _build_event(
        self,
        kind: SingularityType,
        joints: JointConfiguration,
        entering: bool,
    ) -> SafetyEvent:
        info = SingularityInfo(
            singularity_type=kind.value,
            joint_angles=joints.angles,
            wrist_threshold=self.wrist_threshold_deg,
            shoulder_threshold=self.shoulder_threshold_len,
            elbow_threshold=self.elbow_threshold_deg,
            manipulability=self.get_manipulability(joints.angles),
            is_entering=entering,
        )
        verb = "Entering" if entering else "Exiting"
        return SafetyEvent(
            monitor_name=self.name,
            event_type=SafetyEventType.WARNING if entering else SafetyEventType.RESOLVED,
            description=f"{verb} {kind.description} at joint configuration: {joints.format(1)}°",
            data=info,
        )
