"""Plain data records exchanged between the controller components."""

from __future__ import annotations
from typing import Tuple, Union, Optional
from dataclasses import dataclass


MAP_FRAME = "map"
TABLE_NAME = "table"

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]  # (x, y, z, w)


@dataclass(frozen=True)
class TrackedObject:
    """A named object moved by a recurring schedule.

    Parameters are fixed when the schedule is registered.
    """

    name: str
    angular_speed: float
    phase_origin: float


@dataclass(frozen=True)
class Pose:
    """Position and optional orientation of an object in the map frame."""

    object_name: str
    position: Vector3
    orientation: Optional[Quaternion] = None
    frame: str = MAP_FRAME


@dataclass(frozen=True)
class MoveTable:
    """Place the table at an absolute position on the floor."""

    x: float
    y: float


@dataclass(frozen=True)
class Grasp:
    """Tell the simulator that an object has been grasped."""

    object_name: str

    @property
    def payload(self) -> str:
        return f"grasped,{self.object_name}"


@dataclass(frozen=True)
class Release:
    """Tell the simulator that the held object has been released."""

    @property
    def payload(self) -> str:
        return "released"


Command = Union[MoveTable, Grasp, Release]
