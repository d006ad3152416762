"""
Kinematics module.

Provides DH parameters, forward kinematics, the geometric Jacobian and the
manipulability measure for a 6R spherical-wrist manipulator.
"""

from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS, NUM_ARM_JOINTS, DHLink
from axiswatch.kinematics.forward import KinematicModel, KinematicsError
from axiswatch.kinematics.manipulability import gram_matrix, lu_determinant, manipulability

__all__ = [
    "IRB6700_DH_LINKS",
    "NUM_ARM_JOINTS",
    "DHLink",
    "KinematicModel",
    "KinematicsError",
    "gram_matrix",
    "lu_determinant",
    "manipulability",
]
