"""
Joint dynamics estimation.

Finite-difference velocity/acceleration from discrete angle samples, with
EMA + moving-window smoothing and spike rejection.
"""

from axiswatch.dynamics.history import JointHistory, JointSample
from axiswatch.dynamics.smoothing import QuantitySmoother, SignalConditioner

__all__ = [
    "JointHistory",
    "JointSample",
    "QuantitySmoother",
    "SignalConditioner",
]
