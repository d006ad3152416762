"""
Robot state containers shared by the safety monitors.

A RobotState is produced once per telemetry tick by whatever talks to the
controller (poller, simulator, replay).  Monitors only read from it.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

import numpy as np

NUM_JOINTS = 6


@dataclass(frozen=True)
class JointConfiguration:
    """Immutable snapshot of the 6 joint angles (degrees)."""

    angles: tuple[float, ...]

    def __post_init__(self):
        if len(self.angles) != NUM_JOINTS:
            raise ValueError(
                f"JointConfiguration needs {NUM_JOINTS} angles, got {len(self.angles)}"
            )
        values = tuple(float(a) for a in self.angles)
        if not all(math.isfinite(a) for a in values):
            raise ValueError(f"JointConfiguration contains NaN/Inf: {values}")
        object.__setattr__(self, "angles", values)

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> JointConfiguration:
        return cls(tuple(values))

    @classmethod
    def zeros(cls) -> JointConfiguration:
        return cls((0.0,) * NUM_JOINTS)

    def as_array(self) -> np.ndarray:
        return np.array(self.angles, dtype=np.float64)

    def __len__(self) -> int:
        return NUM_JOINTS

    def __iter__(self) -> Iterator[float]:
        return iter(self.angles)

    def __getitem__(self, index: int) -> float:
        return self.angles[index]

    def format(self, precision: int = 1) -> str:
        return "[" + ", ".join(f"{a:.{precision}f}" for a in self.angles) + "]"


@dataclass
class RobotState:
    """One telemetry tick from the controller.

    ``dt`` is the elapsed time in seconds since the previous tick.
    """

    joints: Optional[JointConfiguration]
    dt: float
    timestamp: float = field(default_factory=time.time)
    motor_state: str = ""
    controller_state: str = ""
    is_program_running: bool = False
    current_module: str = ""
    current_routine: str = ""
    current_line: int = 0
    robot_type: str = ""

    @property
    def has_valid_joint_data(self) -> bool:
        return self.joints is not None

    def joint_angles(self) -> Optional[tuple[float, ...]]:
        return self.joints.angles if self.joints is not None else None


@dataclass(frozen=True)
class RobotStateSnapshot:
    """Immutable copy of the robot state attached to a safety event."""

    capture_time: float
    joint_angles: tuple[float, ...]
    has_valid_joint_data: bool
    motor_state: str = ""
    controller_state: str = ""
    is_program_running: bool = False
    current_module: str = ""
    current_routine: str = ""
    current_line: int = 0
    robot_type: str = ""

    @classmethod
    def from_state(cls, state: RobotState) -> RobotStateSnapshot:
        angles = state.joint_angles()
        return cls(
            capture_time=time.time(),
            joint_angles=angles if angles is not None else (),
            has_valid_joint_data=state.has_valid_joint_data,
            motor_state=state.motor_state,
            controller_state=state.controller_state,
            is_program_running=state.is_program_running,
            current_module=state.current_module,
            current_routine=state.current_routine,
            current_line=state.current_line,
            robot_type=state.robot_type,
        )

    def program_context(self) -> str:
        if self.is_program_running and self.current_module:
            return f"{self.current_module}.{self.current_routine}:{self.current_line}"
        return "No program running"
