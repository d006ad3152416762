"""Pydantic message schemas for safety event export."""

from axiswatch.messages.safety import (
    JointDynamicsInfoModel,
    RobotStateSnapshotModel,
    SafetyEventMessage,
    SingularityInfoModel,
)
