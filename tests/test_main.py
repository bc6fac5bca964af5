"""Unit tests for the main entrypoint."""

import argparse
from typing import Any, Iterator
from unittest.mock import MagicMock, patch

import pytest

from object_controller import main as main_module
from object_controller.keyboard import InputStreamError
from object_controller.transport import TransportError, LoggingTransport, RosbridgeTransport


def make_args(**overrides: Any) -> argparse.Namespace:
    values = {"url": None, "dry_run": False, "debug": False}
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.fixture
def mock_runtime() -> Iterator[MagicMock]:
    """Patch the controller and the terminal helpers so nothing touches stdin."""
    with (
        patch("object_controller.controller.ObjectController") as mock_controller_cls,
        patch("object_controller.keyboard.KeyboardPoller"),
        patch("object_controller.keyboard.RawTerminal"),
    ):
        mock_controller_cls.return_value.run.return_value = 0
        yield mock_controller_cls


class TestRun:
    """Tests for run()."""

    def test_rosbridge_transport_by_default(self, mock_runtime: MagicMock) -> None:
        """The controller talks to rosbridge using the configured topics."""
        assert main_module.run(make_args(url="ws://sim:9090")) == 0

        transport = mock_runtime.call_args.args[0]
        assert isinstance(transport, RosbridgeTransport)
        assert transport.url == "ws://sim:9090"
        assert transport.transform_topic == "/goods/transform"
        kwargs = mock_runtime.call_args.kwargs
        assert kwargs["loop_hz"] > 0
        assert kwargs["timer_period"] > 0

    def test_dry_run_uses_logging_transport(self, mock_runtime: MagicMock) -> None:
        """--dry-run never opens a websocket."""
        main_module.run(make_args(dry_run=True))

        assert isinstance(mock_runtime.call_args.args[0], LoggingTransport)

    def test_transport_error_exits_with_failure(self, mock_runtime: MagicMock) -> None:
        """An unreachable simulator gives exit status 1."""
        mock_runtime.return_value.run.side_effect = TransportError("refused")

        assert main_module.run(make_args()) == 1

    def test_input_error_exits_with_failure(self, mock_runtime: MagicMock) -> None:
        """A broken keyboard gives exit status 1."""
        mock_runtime.return_value.run.side_effect = InputStreamError("read() failed")

        assert main_module.run(make_args()) == 1


class TestMain:
    """Tests for the console entrypoint."""

    def test_exits_with_run_status(self) -> None:
        """main() exits with whatever run() returned."""
        args = make_args()
        with (
            patch.object(main_module, "parse_args", return_value=(args, [])),
            patch.object(main_module, "run", return_value=0) as mock_run,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main_module.main()

        mock_run.assert_called_once_with(args)
        assert exc_info.value.code == 0


class TestParseArgs:
    """Tests for command line parsing."""

    def test_flags(self) -> None:
        """Known flags are parsed, unknown ones are passed through."""
        from object_controller.utils import parse_args

        with patch("sys.argv", ["object-controller", "--dry-run", "--debug", "--url", "ws://x:1", "__name:=foo"]):
            args, rest = parse_args()

        assert args.dry_run is True
        assert args.debug is True
        assert args.url == "ws://x:1"
        assert rest == ["__name:=foo"]
