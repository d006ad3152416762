"""
Safety monitors for a 6-axis manipulator.

Provides the singularity detector, the joint dynamics (limit) monitor, the
event types they emit, the event sink and the manager that drives them.
"""

from axiswatch.safety.events import (
    JointDynamicsInfo,
    SafetyEvent,
    SafetyEventType,
    SingularityInfo,
)
from axiswatch.safety.joint_dynamics_monitor import DynamicsQuantity, JointDynamicsMonitor
from axiswatch.safety.limits import JointLimitEnvelope, KinematicJointLimits, resolve_limits
from axiswatch.safety.manager import SafetyManager
from axiswatch.safety.monitor_base import SafetyMonitor
from axiswatch.safety.singularity_monitor import SingularityDetectionMonitor, SingularityType
from axiswatch.safety.sink import SafetyEventSink, Subscription

__all__ = [
    "DynamicsQuantity",
    "JointDynamicsInfo",
    "JointDynamicsMonitor",
    "JointLimitEnvelope",
    "KinematicJointLimits",
    "SafetyEvent",
    "SafetyEventSink",
    "SafetyEventType",
    "SafetyManager",
    "SafetyMonitor",
    "SingularityDetectionMonitor",
    "SingularityInfo",
    "SingularityType",
    "Subscription",
    "resolve_limits",
]
