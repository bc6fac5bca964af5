"""Unit tests for the dispatcher module."""

from unittest.mock import MagicMock

import pytest

from conftest import FakeClock, published_poses
from object_controller.timers import TimerRegistry
from object_controller.messages import TABLE_NAME, Grasp, Release, MoveTable
from object_controller.dispatcher import KEY_BINDINGS, CommandDispatcher, help_lines


class TestDispatch:
    """Tests for the key to command table."""

    @pytest.mark.parametrize(
        "key, expected",
        [
            (b"1", MoveTable(0.0, 0.0)),
            (b"2", MoveTable(0.5, 0.0)),
            (b"3", MoveTable(0.0, 0.5)),
            (b"g", Grasp("bear_doll")),
            (b"h", Grasp("dog_doll")),
            (b"i", Grasp("rabbit_doll")),
            (b"r", Release()),
        ],
    )
    def test_bound_keys(self, key: bytes, expected: object) -> None:
        """Every bound key maps to its command."""
        assert CommandDispatcher.dispatch(key) == expected

    @pytest.mark.parametrize("key", [b"x", b"G", b"R", b"4", b" ", b"\x1b", b""])
    def test_unbound_keys_are_noop(self, key: bytes) -> None:
        """Anything else, including other cases, is ignored."""
        assert CommandDispatcher.dispatch(key) is None

    def test_accepts_str_and_int(self) -> None:
        """Keys may be given as str or as a byte value."""
        assert CommandDispatcher.dispatch("g") == Grasp("bear_doll")
        assert CommandDispatcher.dispatch(ord("2")) == MoveTable(0.5, 0.0)

    def test_table_has_seven_bindings(self) -> None:
        """The key table is fixed."""
        assert sorted(KEY_BINDINGS) == [b"1", b"2", b"3", b"g", b"h", b"i", b"r"]


class TestExecute:
    """Tests for the side effects of each command."""

    def test_grasp_publishes_one_message(self, mock_publisher: MagicMock) -> None:
        """'g' sends exactly one grasped message."""
        dispatcher = CommandDispatcher(mock_publisher)

        command = dispatcher.handle_key(b"g")

        assert command == Grasp("bear_doll")
        mock_publisher.publish_message.assert_called_once_with("grasped,bear_doll")
        mock_publisher.publish_pose.assert_not_called()

    def test_release_publishes_one_message(self, mock_publisher: MagicMock) -> None:
        """'r' sends exactly one released message."""
        dispatcher = CommandDispatcher(mock_publisher)

        dispatcher.handle_key(b"r")

        mock_publisher.publish_message.assert_called_once_with("released")

    def test_unbound_key_publishes_nothing(self, mock_publisher: MagicMock) -> None:
        """'x' produces zero publishes."""
        dispatcher = CommandDispatcher(mock_publisher)

        assert dispatcher.handle_key(b"x") is None

        mock_publisher.publish_message.assert_not_called()
        mock_publisher.publish_pose.assert_not_called()

    def test_move_table_publishes_one_pose(self, mock_publisher: MagicMock) -> None:
        """'2' places the table at (0.5, 0, 0) without orientation."""
        dispatcher = CommandDispatcher(mock_publisher)

        dispatcher.handle_key(b"2")

        (pose,) = published_poses(mock_publisher)
        assert pose.object_name == TABLE_NAME
        assert pose.position == (0.5, 0.0, 0.0)
        assert pose.orientation is None
        assert pose.frame == "map"
        mock_publisher.publish_message.assert_not_called()

    def test_move_table_leaves_schedules_alone(self, mock_publisher: MagicMock, fake_clock: FakeClock) -> None:
        """Table moves do not touch the recurring schedules."""
        registry = TimerRegistry(mock_publisher, clock=fake_clock)
        registry.register("bear_doll", 0.5)
        before = (registry.names(), registry.get("bear_doll"))

        CommandDispatcher(mock_publisher).handle_key(b"2")

        assert (registry.names(), registry.get("bear_doll")) == before
        assert TABLE_NAME not in registry

    def test_unknown_command_object_is_ignored(self, mock_publisher: MagicMock) -> None:
        """execute() ignores objects that are not commands."""
        CommandDispatcher(mock_publisher).execute("not a command")  # type: ignore[arg-type]

        mock_publisher.publish_message.assert_not_called()
        mock_publisher.publish_pose.assert_not_called()


class TestHelp:
    """Tests for the operator help table."""

    def test_lists_every_key(self) -> None:
        """Each binding has a help line."""
        lines = help_lines()

        assert lines[1] == "-- Object Controller --"
        assert "1 : Move Table to Position1" in lines
        assert "g : Send Grasped bear_doll" in lines
        assert "r : Send Released" in lines
        assert len(lines) == 3 + len(KEY_BINDINGS) + 1
