"""
Denavit-Hartenberg parameters for a 6R spherical-wrist manipulator.

The default table describes an ABB IRB 6700-200/2.60.  Joints 4-6 intersect
at the wrist centre, which is the origin of link 5's frame.

Convention: standard DH (Rz(theta) . Tz(d) . Tx(a) . Rx(alpha))
  - alpha        : link twist (rad)
  - a            : link length (m)
  - d            : link offset (m)
  - theta_offset : joint angle offset (rad), added to the variable joint angle
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

NUM_ARM_JOINTS = 6


@dataclass(frozen=True)
class DHLink:
    """A single row of the DH parameter table."""
    alpha: float               # link twist (rad)
    a: float                   # link length (m)
    d: float                   # link offset (m)
    theta_offset: float = 0.0  # joint angle offset (rad)

    def is_finite(self) -> bool:
        return all(
            math.isfinite(v) for v in (self.alpha, self.a, self.d, self.theta_offset)
        )


# ABB IRB 6700-200/2.60 (6 joints, standard DH)
# Taken from the published dimension drawing; verify against the controller's
# kinematic model before relying on millimetre accuracy.
IRB6700_DH_LINKS: List[DHLink] = [
    # Joint 1: base rotation
    DHLink(alpha=-math.pi / 2, a=0.320,  d=0.780,  theta_offset=0.0),
    # Joint 2: shoulder
    DHLink(alpha=0.0,          a=1.125,  d=0.0,    theta_offset=-math.pi / 2),
    # Joint 3: elbow
    DHLink(alpha=-math.pi / 2, a=0.200,  d=0.0,    theta_offset=0.0),
    # Joint 4: forearm roll
    DHLink(alpha=math.pi / 2,  a=0.0,    d=1.1425, theta_offset=0.0),
    # Joint 5: wrist bend
    DHLink(alpha=-math.pi / 2, a=0.0,    d=0.0,    theta_offset=0.0),
    # Joint 6: flange roll
    DHLink(alpha=0.0,          a=0.0,    d=0.200,  theta_offset=math.pi),
]


def validate_dh_links(links: Optional[Sequence[DHLink]]) -> Optional[str]:
    """Return a diagnostic message if the DH table is unusable, else None."""
    if links is None:
        return "no DH parameters supplied"
    if len(links) < NUM_ARM_JOINTS:
        return f"expected {NUM_ARM_JOINTS} DH links, got {len(links)}"
    for i, link in enumerate(links):
        if not isinstance(link, DHLink):
            return f"link {i} is {type(link).__name__}, not DHLink"
        if not link.is_finite():
            return f"link {i} has non-finite parameters"
    return None
