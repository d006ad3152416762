"""Pydantic models for serialised safety events."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from axiswatch.interface.robot_state import RobotStateSnapshot
from axiswatch.safety.events import (
    JointDynamicsInfo,
    SafetyEvent,
    SafetyEventType,
    SingularityInfo,
)


class SingularityInfoModel(BaseModel):
    """Context of a singularity enter/exit event."""

    kind: Literal["singularity"] = "singularity"
    singularity_type: str = Field(description="wrist, shoulder or elbow")
    joint_angles: list[float] = Field(description="6 joint angles in degrees")
    wrist_threshold: float = Field(description="Wrist threshold in degrees")
    shoulder_threshold: float = Field(description="Shoulder threshold in metres")
    elbow_threshold: float = Field(description="Elbow threshold in degrees")
    manipulability: float = Field(ge=0.0, description="Yoshikawa manipulability")
    is_entering: bool = Field(description="True on entry, False on exit")
    detection_time: float = Field(description="Unix timestamp of detection")


class JointDynamicsInfoModel(BaseModel):
    """Context of a joint angle/velocity/acceleration limit event."""

    kind: Literal["joint_dynamics"] = "joint_dynamics"
    event_name: str = Field(description="e.g. JointVelocityLimit, JointAngleLimitResolved")
    joint_index: int = Field(ge=0, le=5, description="0-based joint index")
    current_value: float = Field(description="Value that triggered the event")
    min_limit: float = Field(description="Lower limit in effect")
    max_limit: float = Field(description="Upper limit in effect")
    joint_angles: list[float] = Field(description="6 joint angles in degrees")
    joint_velocities: list[float] = Field(description="6 smoothed velocities in deg/s")
    joint_accelerations: list[float] = Field(description="6 smoothed accelerations in deg/s²")
    smoothing_enabled: bool
    smoothing_alpha: float
    smoothing_window_size: int
    detection_time: float = Field(description="Unix timestamp of detection")


class RobotStateSnapshotModel(BaseModel):
    """Robot state captured when the event was handled."""

    capture_time: float
    joint_angles: list[float] = Field(default_factory=list)
    has_valid_joint_data: bool = False
    motor_state: str = ""
    controller_state: str = ""
    is_program_running: bool = False
    current_module: str = ""
    current_routine: str = ""
    current_line: int = 0
    robot_type: str = ""
    program_context: str = Field(default="No program running", description="module.routine:line")

    @classmethod
    def from_snapshot(cls, snapshot: RobotStateSnapshot) -> RobotStateSnapshotModel:
        return cls(
            capture_time=snapshot.capture_time,
            joint_angles=list(snapshot.joint_angles),
            has_valid_joint_data=snapshot.has_valid_joint_data,
            motor_state=snapshot.motor_state,
            controller_state=snapshot.controller_state,
            is_program_running=snapshot.is_program_running,
            current_module=snapshot.current_module,
            current_routine=snapshot.current_routine,
            current_line=snapshot.current_line,
            robot_type=snapshot.robot_type,
            program_context=snapshot.program_context(),
        )


EventDataModel = Annotated[
    Union[SingularityInfoModel, JointDynamicsInfoModel], Field(discriminator="kind")
]


class SafetyEventMessage(BaseModel):
    """A safety event as written to logs or sent to a UI."""

    monitor_name: str = Field(description="Monitor that produced the event")
    event_type: SafetyEventType = Field(description="info, resolved, warning, critical, emergency")
    description: str = Field(description="Human-readable description")
    timestamp: float = Field(description="Unix timestamp")
    robot_state: Optional[RobotStateSnapshotModel] = None
    data: Optional[EventDataModel] = None

    class Config:
        json_schema_extra = {
            "example": {
                "monitor_name": "Joint Dynamics Monitor",
                "event_type": "warning",
                "description": "Joint 3 velocity limit exceeded: 123.45°/s",
                "timestamp": 1700000000.0,
                "robot_state": None,
                "data": {
                    "kind": "joint_dynamics",
                    "event_name": "JointVelocityLimit",
                    "joint_index": 2,
                    "current_value": 123.45,
                    "min_limit": -110.0,
                    "max_limit": 110.0,
                    "joint_angles": [0.0, 10.0, 20.0, 0.0, 45.0, 0.0],
                    "joint_velocities": [0.0, 0.0, 123.45, 0.0, 0.0, 0.0],
                    "joint_accelerations": [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
                    "smoothing_enabled": True,
                    "smoothing_alpha": 0.2,
                    "smoothing_window_size": 8,
                    "detection_time": 1700000000.0,
                },
            }
        }

    @classmethod
    def from_event(cls, event: SafetyEvent) -> SafetyEventMessage:
        data: Optional[EventDataModel] = None
        if isinstance(event.data, SingularityInfo):
            d = event.data
            data = SingularityInfoModel(
                singularity_type=d.singularity_type,
                joint_angles=list(d.joint_angles),
                wrist_threshold=d.wrist_threshold,
                shoulder_threshold=d.shoulder_threshold,
                elbow_threshold=d.elbow_threshold,
                manipulability=d.manipulability,
                is_entering=d.is_entering,
                detection_time=d.detection_time,
            )
        elif isinstance(event.data, JointDynamicsInfo):
            d = event.data
            data = JointDynamicsInfoModel(
                event_name=d.event_name,
                joint_index=d.joint_index,
                current_value=d.current_value,
                min_limit=d.min_limit,
                max_limit=d.max_limit,
                joint_angles=list(d.joint_angles),
                joint_velocities=list(d.joint_velocities),
                joint_accelerations=list(d.joint_accelerations),
                smoothing_enabled=d.smoothing_enabled,
                smoothing_alpha=d.smoothing_alpha,
                smoothing_window_size=d.smoothing_window_size,
                detection_time=d.detection_time,
            )
        return cls(
            monitor_name=event.monitor_name,
            event_type=event.event_type,
            description=event.description,
            timestamp=event.timestamp,
            robot_state=(
                RobotStateSnapshotModel.from_snapshot(event.robot_state)
                if event.robot_state is not None
                else None
            ),
            data=data,
        )
