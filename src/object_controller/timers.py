"""Registry of recurring pose schedules, one per tracked object.

Schedules are plain records rather than callbacks: ``fire_due`` is the single
ticking step that walks the registry and publishes a pose for every schedule
whose due time has passed. The registry is owned by the controller loop and
is only touched from that loop, so it holds no locks.
"""

from __future__ import annotations
import time
import logging
from typing import Any, Dict, List, Callable, Iterator, Optional
from dataclasses import dataclass

from object_controller.motion import position_at, heading_quaternion
from object_controller.messages import Pose, TrackedObject


logger = logging.getLogger(__name__)

DEFAULT_TIMER_PERIOD = 0.05  # seconds, 20 poses per second per object


@dataclass
class ScheduledTask:
    """A tracked object and the timing of its recurring schedule.

    Due times are computed as ``anchor + n * period`` rather than accumulated,
    so they do not drift.
    """

    tracked: TrackedObject
    period: float
    anchor: float
    ticks: int = 0
    fire_count: int = 0

    @property
    def next_due(self) -> float:
        return self.anchor + (self.ticks + 1) * self.period


class TimerRegistry:
    """Own one recurring schedule per object name and fire them on time."""

    def __init__(
        self,
        publisher: "Any",
        period: float = DEFAULT_TIMER_PERIOD,
        clock: Optional[Callable[[], float]] = None,
        include_orientation: bool = True,
    ):
        """Initialize the registry.

        Args:
            publisher: object exposing ``publish_pose(pose)``
            period: schedule period in seconds
            clock: time source used for phase origins, defaults to ``time.monotonic``
            include_orientation: attach the heading quaternion to tick poses

        """
        if period <= 0:
            raise ValueError(f"Timer period must be positive, got {period}")
        self.publisher = publisher
        self.period = period
        self.include_orientation = include_orientation
        self._now = clock or time.monotonic
        self._tasks: Dict[str, ScheduledTask] = {}

    def register(self, name: str, angular_speed: float) -> TrackedObject:
        """Start moving ``name`` at ``angular_speed`` rad/s, replacing any existing schedule."""
        if name in self._tasks:
            self.unregister(name)
            logger.info(f"Replacing existing schedule for '{name}'")

        now = self._now()
        tracked = TrackedObject(name=name, angular_speed=float(angular_speed), phase_origin=now)
        self._tasks[name] = ScheduledTask(tracked=tracked, period=self.period, anchor=now)
        logger.debug(f"Registered '{name}' at {angular_speed} rad/s, period {self.period}s")
        return tracked

    def unregister(self, name: str) -> None:
        """Stop the schedule for ``name``. Does nothing if there is none."""
        if self._tasks.pop(name, None) is not None:
            logger.debug(f"Unregistered '{name}'")

    def get(self, name: str) -> Optional[TrackedObject]:
        task = self._tasks.get(name)
        return task.tracked if task is not None else None

    def names(self) -> List[str]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[TrackedObject]:
        return (task.tracked for task in self._tasks.values())

    def fire_due(self, now: Optional[float] = None) -> int:
        """Publish one pose for every schedule that is due at ``now``.

        Each schedule fires at most once per call. When the caller fell behind
        by more than a period, missed ticks are skipped and the schedule is
        re-anchored one period after ``now``.

        Returns:
            The number of schedules fired.

        """
        if now is None:
            now = self._now()

        fired = 0
        # Snapshot so a publisher callback cannot change the dict under us
        for task in list(self._tasks.values()):
            if now < task.next_due:
                continue
            self.publisher.publish_pose(self.pose_for(task.tracked, now))
            task.fire_count += 1
            fired += 1

            task.ticks += 1
            if task.next_due <= now:
                task.anchor = now
                task.ticks = 0
        return fired

    def pose_for(self, tracked: TrackedObject, now: float) -> Pose:
        """Build the pose of ``tracked`` at time ``now``."""
        x, y, heading = position_at(tracked.phase_origin, tracked.angular_speed, now)
        orientation = heading_quaternion(heading) if self.include_orientation else None
        return Pose(object_name=tracked.name, position=(x, y, 0.0), orientation=orientation)
