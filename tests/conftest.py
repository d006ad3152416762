"""
Shared fixtures for the axiswatch test suite.
"""

import math

import pytest

from axiswatch.config.monitor_config import MonitorSettings
from axiswatch.interface.robot_state import JointConfiguration, RobotState
from axiswatch.kinematics.dh_params import DHLink

# Wrist-singular only (theta5 = 0 lines up the joint 4 and joint 6 axes)
ZERO_CONFIG = [0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
# No singularity of any kind
SAFE_CONFIG = [0.0, 0.0, 0.0, 0.0, 45.0, 0.0]
# Arm fully stretched: link 2 -> link 3 -> wrist centre collinear
ELBOW_SINGULAR_THETA3 = math.degrees(math.atan2(-1.1425, 0.2))


def shoulder_singular_theta2() -> float:
    """Joint 2 angle (theta1 = theta3 = 0) that puts the wrist centre on the base axis."""
    r = math.hypot(1.325, 1.1425)
    phi = math.atan2(1.1425, 1.325)
    return math.degrees(math.asin(-0.32 / r) - phi)


def make_state(angles, dt=0.05, **kwargs) -> RobotState:
    return RobotState(joints=JointConfiguration.from_sequence(angles), dt=dt, **kwargs)


@pytest.fixture
def settings():
    return MonitorSettings()


@pytest.fixture
def every_tick_settings():
    """Default tunables but with the dynamics pipeline running on every tick."""
    return MonitorSettings(update_stride=1)


@pytest.fixture
def stacked_links():
    """Every joint axis vertical and every origin on the base axis."""
    return [DHLink(alpha=0.0, a=0.0, d=0.2) for _ in range(6)]


@pytest.fixture
def collected():
    """A list plus a listener that appends to it."""
    events = []
    return events, events.append
