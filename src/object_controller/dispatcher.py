"""Map operator keystrokes to simulator commands and send them."""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Union, Optional

from object_controller.messages import TABLE_NAME, Pose, Grasp, Command, Release, MoveTable


logger = logging.getLogger(__name__)

# Fixed, case-sensitive key table
KEY_BINDINGS: Dict[bytes, Command] = {
    b"1": MoveTable(0.0, 0.0),
    b"2": MoveTable(0.5, 0.0),
    b"3": MoveTable(0.0, 0.5),
    b"g": Grasp("bear_doll"),
    b"h": Grasp("dog_doll"),
    b"i": Grasp("rabbit_doll"),
    b"r": Release(),
}

KEY_DESCRIPTIONS: Dict[bytes, str] = {
    b"1": "Move Table to Position1",
    b"2": "Move Table to Position2",
    b"3": "Move Table to Position3",
    b"g": "Send Grasped bear_doll",
    b"h": "Send Grasped dog_doll",
    b"i": "Send Grasped rabbit_doll",
    b"r": "Send Released",
}


class CommandDispatcher:
    """Translate one input byte into at most one publish."""

    def __init__(self, publisher: Any):
        """``publisher`` exposes ``publish_pose(pose)`` and ``publish_message(text)``."""
        self.publisher = publisher

    @staticmethod
    def dispatch(key: Union[bytes, str, int]) -> Optional[Command]:
        """Return the command bound to ``key``, or None for unbound keys."""
        if isinstance(key, int):
            key = bytes([key])
        elif isinstance(key, str):
            key = key.encode("utf-8", errors="replace")
        return KEY_BINDINGS.get(key)

    def execute(self, command: Command) -> None:
        """Send ``command`` to the simulator with exactly one publish."""
        if isinstance(command, MoveTable):
            # One-shot pose, the table never has a recurring schedule
            pose = Pose(object_name=TABLE_NAME, position=(command.x, command.y, 0.0))
            logger.info(f"Moving {TABLE_NAME} to ({command.x}, {command.y})")
            self.publisher.publish_pose(pose)
        elif isinstance(command, (Grasp, Release)):
            logger.info(f"Sent message: {command.payload}")
            self.publisher.publish_message(command.payload)
        else:
            logger.warning("Unknown command ignored: %s", command)

    def handle_key(self, key: Union[bytes, str, int]) -> Optional[Command]:
        """Dispatch and execute ``key``; return the executed command, if any."""
        command = self.dispatch(key)
        if command is None:
            logger.debug("Ignoring unbound key %r", key)
            return None
        self.execute(command)
        return command


def help_lines() -> List[str]:
    """Return the operator help table, one line per key binding."""
    rule = "---------------------------"
    lines = [rule, "-- Object Controller --", rule]
    for key, description in KEY_DESCRIPTIONS.items():
        lines.append(f"{key.decode()} : {description}")
    lines.append(rule)
    return lines
