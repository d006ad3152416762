"""
Safety events produced by the monitors.

A SafetyEvent is immutable once created.  Its ``data`` field carries a tagged
payload (``kind``) with the full numeric context needed to reconstruct why
the event fired.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from axiswatch.interface.robot_state import RobotStateSnapshot


class SafetyEventType(Enum):
    """Severity of a safety event."""

    INFO = "info"
    RESOLVED = "resolved"  # a previous warning/critical condition cleared
    WARNING = "warning"
    CRITICAL = "critical"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]

    @classmethod
    def parse(cls, value: Union[str, SafetyEventType]) -> SafetyEventType:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown safety event type {value!r}, expected one of "
                f"{[t.value for t in cls]}"
            ) from None


_SEVERITY_RANK = {
    SafetyEventType.INFO: 0,
    SafetyEventType.RESOLVED: 1,
    SafetyEventType.WARNING: 2,
    SafetyEventType.CRITICAL: 3,
    SafetyEventType.EMERGENCY: 4,
}

_LOG_LEVELS = {
    SafetyEventType.INFO: logging.INFO,
    SafetyEventType.RESOLVED: logging.INFO,
    SafetyEventType.WARNING: logging.WARNING,
    SafetyEventType.CRITICAL: logging.ERROR,
    SafetyEventType.EMERGENCY: logging.CRITICAL,
}


@dataclass(frozen=True)
class SingularityInfo:
    """Context for a singularity enter/exit event."""

    singularity_type: str
    joint_angles: tuple[float, ...]
    wrist_threshold: float
    shoulder_threshold: float
    elbow_threshold: float
    manipulability: float
    is_entering: bool
    detection_time: float = field(default_factory=time.time)
    kind: str = field(default="singularity", init=False)


@dataclass(frozen=True)
class JointDynamicsInfo:
    """Context for a joint angle/velocity/acceleration limit event."""

    event_name: str  # e.g. "JointVelocityLimit", "JointAngleLimitResolved"
    joint_index: int
    current_value: float
    min_limit: float
    max_limit: float
    joint_angles: tuple[float, ...]
    joint_velocities: tuple[float, ...]
    joint_accelerations: tuple[float, ...]
    smoothing_enabled: bool
    smoothing_alpha: float
    smoothing_window_size: int
    detection_time: float = field(default_factory=time.time)
    kind: str = field(default="joint_dynamics", init=False)


EventData = Union[SingularityInfo, JointDynamicsInfo]


@dataclass(frozen=True)
class SafetyEvent:
    """A safety event detected by one monitor."""

    monitor_name: str
    event_type: SafetyEventType
    description: str
    timestamp: float = field(default_factory=time.time)
    robot_state: Optional[RobotStateSnapshot] = None
    data: Optional[EventData] = None

    @property
    def is_resolved(self) -> bool:
        return self.event_type is SafetyEventType.RESOLVED

    def __str__(self) -> str:
        return f"{self.event_type.value.upper()} - {self.monitor_name}: {self.description}"
