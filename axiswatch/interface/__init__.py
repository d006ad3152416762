from .robot_state import (
    NUM_JOINTS,
    JointConfiguration,
    RobotState,
    RobotStateSnapshot,
)

# Sources and the poller depend on the safety package; import them from
# axiswatch.interface.source / axiswatch.interface.poller directly.

__all__ = [
    "JointConfiguration",
    "NUM_JOINTS",
    "RobotState",
    "RobotStateSnapshot",
]
