"""Circular motion used for tracked objects.

Each object runs around the unit circle centred on the map origin. The phase
is an accumulator ``phase_origin + angular_speed * now``: the origin captured
at registration is folded in once and reused unchanged on every tick, so the
trajectory is a continuous function of the clock.
"""

from __future__ import annotations
from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation as R

from object_controller.messages import Quaternion


def phase_at(phase_origin: float, angular_speed: float, now: float) -> float:
    """Return the accumulated phase (radians) at time ``now``."""
    return phase_origin + angular_speed * now


def position_at(phase_origin: float, angular_speed: float, now: float) -> Tuple[float, float, float]:
    """Return ``(x, y, heading)`` on the unit circle at time ``now``.

    ``heading`` is the rotation about the vertical axis and equals the phase.
    """
    t = phase_at(phase_origin, angular_speed, now)
    return float(np.cos(t)), float(np.sin(t)), float(t)


def heading_quaternion(heading: float) -> Quaternion:
    """Convert a yaw angle into an ``(x, y, z, w)`` quaternion (roll = pitch = 0)."""
    x, y, z, w = R.from_euler("xyz", [0.0, 0.0, heading]).as_quat()
    return float(x), float(y), float(z), float(w)
