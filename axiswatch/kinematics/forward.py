"""
Forward kinematics and the geometric Jacobian for a 6R manipulator.

Link frames are expressed in a Y-up model frame: the base rotation axis is
+Y and every joint turns about the Y column of the frame that precedes it.
Internally each link is a standard DH transform re-expressed in that basis,
so distances and angles are identical to the plain DH chain.
"""

from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np

from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS, DHLink

# Link whose frame origin is the wrist centre (1-based)
WRIST_CENTER_LINK = 5

# Standard DH basis (z up) -> model basis (y up)
_Z_UP_TO_Y_UP = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, -1.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ],
    dtype=np.float64,
)


class KinematicsError(ValueError):
    """Raised when a kinematic query cannot be answered for the configured chain."""
    pass


def _dh_transform(link: DHLink, theta_var: float) -> np.ndarray:
    """Compute the 4x4 standard DH transform for one link.

    Args:
        link: DH parameters for this link.
        theta_var: Variable joint angle (radians).

    Returns:
        4x4 homogeneous transformation matrix (z-up basis).
    """
    theta = theta_var + link.theta_offset
    ct, st = math.cos(theta), math.sin(theta)
    ca, sa = math.cos(link.alpha), math.sin(link.alpha)
    a, d = link.a, link.d

    return np.array([
        [ct,  -st * ca,  st * sa,  a * ct],
        [st,   ct * ca, -ct * sa,  a * st],
        [0.0,  sa,       ca,       d],
        [0.0,  0.0,      0.0,      1.0],
    ], dtype=np.float64)


def link_transform_from_dh(link: DHLink, theta_var: float) -> np.ndarray:
    """DH transform for one link, expressed in the Y-up model basis."""
    return _Z_UP_TO_Y_UP @ _dh_transform(link, theta_var) @ _Z_UP_TO_Y_UP.T


def angle_between_deg(u: np.ndarray, v: np.ndarray) -> float:
    """Unsigned angle between two vectors in degrees (0 for degenerate input)."""
    nu = float(np.linalg.norm(u))
    nv = float(np.linalg.norm(v))
    if nu < 1e-15 or nv < 1e-15:
        return 0.0
    cos_angle = float(np.dot(u, v)) / (nu * nv)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


class KinematicModel:
    """Forward kinematics over a DH chain.

    Joint angles are given in degrees (as reported by the controller) and
    converted to radians before the DH offset is added.  Nothing is cached:
    every query recomposes the chain from identity for the given configuration.
    """

    def __init__(self, links: Sequence[DHLink] | None = None) -> None:
        self._links: List[DHLink] = list(links) if links is not None else list(IRB6700_DH_LINKS)

    @property
    def links(self) -> List[DHLink]:
        return list(self._links)

    @property
    def num_links(self) -> int:
        return len(self._links)

    # ----- frames -----

    def link_transform(self, joint_angles_deg: Sequence[float], link_index: int) -> np.ndarray:
        """Pose of link ``link_index`` (1-based) in the base frame.

        The frame of link k is obtained by composing the first k-1 DH
        transforms, so link 1 is the base frame itself.
        """
        if link_index < 1 or link_index > len(self._links):
            raise KinematicsError(
                f"Link index {link_index} out of range 1..{len(self._links)}"
            )
        if len(joint_angles_deg) < link_index - 1:
            raise KinematicsError(
                f"Need at least {link_index - 1} joint angles, got {len(joint_angles_deg)}"
            )

        T = np.eye(4, dtype=np.float64)
        for i in range(link_index - 1):
            T = T @ link_transform_from_dh(self._links[i], math.radians(joint_angles_deg[i]))
        return T

    def link_position(self, joint_angles_deg: Sequence[float], link_index: int) -> np.ndarray:
        """Origin of link ``link_index``'s frame in the base frame."""
        return self.link_transform(joint_angles_deg, link_index)[:3, 3].copy()

    def link_axis(
        self,
        joint_angles_deg: Sequence[float],
        link_index: int,
        axis_index: int = 1,
    ) -> np.ndarray:
        """Unit direction of one column of link ``link_index``'s rotation.

        ``axis_index`` 1 (the Y column) is the joint axis.
        """
        if axis_index not in (0, 1, 2):
            raise KinematicsError(f"Axis index must be 0, 1 or 2, got {axis_index}")
        axis = self.link_transform(joint_angles_deg, link_index)[:3, axis_index]
        norm = float(np.linalg.norm(axis))
        if norm == 0.0:
            return axis.copy()
        return axis / norm

    def wrist_center(self, joint_angles_deg: Sequence[float]) -> np.ndarray:
        return self.link_position(joint_angles_deg, WRIST_CENTER_LINK)

    # ----- geometric Jacobian -----

    def jacobian(self, joint_angles_deg: Sequence[float]) -> np.ndarray:
        """Compute the 6xN geometric Jacobian referenced at the wrist centre.

        Column i: linear = z_i x (p_E - p_i), angular = z_i, where z_i and
        p_i are the Y axis and origin of link i+1 and p_E is the wrist centre.
        """
        n = len(self._links)
        p_e = self.wrist_center(joint_angles_deg)
        J = np.zeros((6, n), dtype=np.float64)
        for i in range(n):
            p_i = self.link_position(joint_angles_deg, i + 1)
            z_i = self.link_axis(joint_angles_deg, i + 1, 1)
            J[:3, i] = np.cross(z_i, p_e - p_i)  # linear velocity
            J[3:, i] = z_i  # angular velocity
        return J
