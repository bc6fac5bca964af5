"""Pytest configuration and shared fixtures for all tests."""

import sys
from pathlib import Path
from typing import Any, List, Generator
from unittest.mock import MagicMock

import pytest


# Ensure src is in path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


# ---------------------------------------------------------------------------
# Clock Fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually driven monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a fake clock starting at t=100s."""
    return FakeClock()


# ---------------------------------------------------------------------------
# Environment Variables Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Provide a clean environment without controller-specific env vars."""
    env_vars = [
        "ROSBRIDGE_URL",
        "OBJECT_CONTROLLER_TRANSFORM_TOPIC",
        "OBJECT_CONTROLLER_MESSAGE_TOPIC",
        "OBJECT_CONTROLLER_INBOUND_TOPIC",
        "OBJECT_CONTROLLER_LOOP_HZ",
        "OBJECT_CONTROLLER_TIMER_PERIOD",
        "OBJECT_CONTROLLER_TRACKED_OBJECTS",
        "OBJECT_CONTROLLER_PUBLISH_ROTATION",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)
    yield


# ---------------------------------------------------------------------------
# Publisher / Transport Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_publisher() -> MagicMock:
    """Create a mock exposing publish_pose and publish_message."""
    mock = MagicMock()
    mock.publish_pose = MagicMock(return_value=True)
    mock.publish_message = MagicMock(return_value=True)
    return mock


@pytest.fixture
def mock_transport() -> MagicMock:
    """Create a mock transport that never receives anything."""
    mock = MagicMock()
    mock.spin_once = MagicMock(return_value=0)
    return mock


def published_poses(publisher: MagicMock) -> List[Any]:
    """Return the poses passed to ``publish_pose`` in call order."""
    return [c.args[0] for c in publisher.publish_pose.call_args_list]
