"""Middleware transports used to reach the simulator.

The controller only needs four primitives: publish a pose, publish a string,
deliver pending inbound strings, and connect/close. ``RosbridgeTransport``
implements them over the rosbridge v2 JSON protocol, which is how SIGVerse
exchanges ROS topics with external processes. ``LoggingTransport`` logs the
traffic instead of sending it, for dry runs without a simulator.

``GuardedTransport`` wraps any transport and turns publish/receive failures
into rate-limited error logs so the control loop keeps running.
"""

from __future__ import annotations
import json
import time
import logging
from abc import ABC, abstractmethod
from types import TracebackType
from contextlib import ExitStack
from typing import Any, Dict, Type, Callable, Optional

from websockets.exceptions import WebSocketException
from websockets.sync.client import ClientConnection, connect

from object_controller.messages import Pose


logger = logging.getLogger(__name__)

TRANSFORM_TYPE = "geometry_msgs/TransformStamped"
STRING_TYPE = "std_msgs/String"

# Receive at most this many inbound messages per loop iteration
INBOUND_QUEUE_SIZE = 100

MessageHandler = Callable[[str], None]


class TransportError(RuntimeError):
    """Raised when the connection to the simulator cannot be established."""


def pose_to_transform(pose: Pose) -> Dict[str, Any]:
    """Encode a pose as a ``geometry_msgs/TransformStamped`` dict.

    A pose without orientation is sent with the all-zero quaternion; the
    simulator then computes the rotation itself.
    """
    x, y, z = pose.position
    if pose.orientation is None:
        qx, qy, qz, qw = 0.0, 0.0, 0.0, 0.0
    else:
        qx, qy, qz, qw = pose.orientation
    return {
        "header": {"frame_id": pose.frame},
        "child_frame_id": pose.object_name,
        "transform": {
            "translation": {"x": float(x), "y": float(y), "z": float(z)},
            "rotation": {"x": float(qx), "y": float(qy), "z": float(qz), "w": float(qw)},
        },
    }


class Transport(ABC):
    """Connection to the simulator middleware."""

    @abstractmethod
    def connect(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_pose(self, pose: Pose) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_message(self, text: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def spin_once(self, on_message: MessageHandler) -> int:
        """Deliver pending inbound messages without blocking; return how many."""
        raise NotImplementedError

    def __enter__(self) -> "Transport":
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


class RosbridgeTransport(Transport):
    """rosbridge v2 client built on the synchronous ``websockets`` API."""

    def __init__(
        self,
        url: str,
        transform_topic: str,
        message_topic: str,
        inbound_topic: str,
        open_timeout: float = 5.0,
    ):
        """Store the endpoint and topic names; nothing is opened until ``connect``."""
        self.url = url
        self.transform_topic = transform_topic
        self.message_topic = message_topic
        self.inbound_topic = inbound_topic
        self.open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._stack: ExitStack | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def connect(self) -> None:
        if self._ws is not None:
            return
        stack = ExitStack()
        try:
            ws = stack.enter_context(connect(self.url, open_timeout=self.open_timeout))
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"Could not connect to rosbridge at {self.url}: {e}") from e
        self._ws, self._stack = ws, stack
        logger.info(f"Connected to rosbridge at {self.url}")

        try:
            self._send({"op": "advertise", "topic": self.transform_topic, "type": TRANSFORM_TYPE})
            self._send({"op": "advertise", "topic": self.message_topic, "type": STRING_TYPE})
            self._send(
                {
                    "op": "subscribe",
                    "topic": self.inbound_topic,
                    "type": STRING_TYPE,
                    "queue_length": INBOUND_QUEUE_SIZE,
                }
            )
        except WebSocketException as e:
            self._ws, self._stack = None, None
            stack.close()
            raise TransportError(f"rosbridge at {self.url} closed during setup: {e}") from e

    def close(self) -> None:
        if self._ws is None or self._stack is None:
            return
        ws, stack = self._ws, self._stack
        self._ws, self._stack = None, None
        try:
            for op, topic in (
                ("unsubscribe", self.inbound_topic),
                ("unadvertise", self.transform_topic),
                ("unadvertise", self.message_topic),
            ):
                ws.send(json.dumps({"op": op, "topic": topic}))
        except WebSocketException as e:
            logger.debug(f"Could not clean up rosbridge topics: {e}")
        finally:
            stack.close()
        logger.info("Disconnected from rosbridge")

    def publish_pose(self, pose: Pose) -> None:
        self._send({"op": "publish", "topic": self.transform_topic, "msg": pose_to_transform(pose)})

    def publish_message(self, text: str) -> None:
        self._send({"op": "publish", "topic": self.message_topic, "msg": {"data": text}})

    def spin_once(self, on_message: MessageHandler) -> int:
        ws = self._require_connection()
        delivered = 0
        while delivered < INBOUND_QUEUE_SIZE:
            try:
                raw = ws.recv(timeout=0)
            except TimeoutError:
                break
            delivered += self._handle_frame(raw, on_message)
        return delivered

    def _handle_frame(self, raw: str | bytes, on_message: MessageHandler) -> int:
        """Route one rosbridge frame; return 1 when a message was delivered."""
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed rosbridge frame: %r", raw)
            return 0

        if frame.get("op") != "publish" or frame.get("topic") != self.inbound_topic:
            if frame.get("op") == "status":
                logger.warning("rosbridge status: %s", frame.get("msg"))
            return 0

        data = (frame.get("msg") or {}).get("data")
        if not isinstance(data, str):
            logger.warning("Ignoring inbound message without string data: %s", frame)
            return 0
        on_message(data)
        return 1

    def _send(self, payload: Dict[str, Any]) -> None:
        self._require_connection().send(json.dumps(payload))

    def _require_connection(self) -> ClientConnection:
        if self._ws is None:
            raise TransportError("rosbridge transport is not connected")
        return self._ws


class LoggingTransport(Transport):
    """Transport that only logs outbound traffic. Nothing is ever received."""

    def connect(self) -> None:
        logger.info("Dry run: publishes are logged, nothing is sent")

    def close(self) -> None:
        return None

    def publish_pose(self, pose: Pose) -> None:
        x, y, z = pose.position
        logger.debug(f"[dry-run] pose {pose.object_name}: ({x:.3f}, {y:.3f}, {z:.3f})")

    def publish_message(self, text: str) -> None:
        logger.info(f"[dry-run] message: {text}")

    def spin_once(self, on_message: MessageHandler) -> int:
        _ = on_message
        return 0


class GuardedTransport(Transport):
    """Best-effort wrapper: failures are logged (rate-limited) and swallowed.

    Publishing has no retry and no backpressure. ``publish_*`` return whether
    the call went through so callers and tests can observe the outcome.
    """

    def __init__(self, inner: Transport, error_log_interval: float = 1.0):
        """Wrap ``inner``; at most one error log per ``error_log_interval`` seconds."""
        self.inner = inner
        self._now = time.monotonic
        self._error_log_interval = error_log_interval
        self._last_error_log = float("-inf")
        self._suppressed = 0
        self.failures = 0

    def connect(self) -> None:
        self.inner.connect()

    def close(self) -> None:
        self.inner.close()

    def publish_pose(self, pose: Pose) -> bool:  # type: ignore[override]
        try:
            self.inner.publish_pose(pose)
        except Exception as e:
            self._report(f"Failed to publish pose for {pose.object_name}", e)
            return False
        return True

    def publish_message(self, text: str) -> bool:  # type: ignore[override]
        try:
            self.inner.publish_message(text)
        except Exception as e:
            self._report(f"Failed to publish message {text!r}", e)
            return False
        return True

    def spin_once(self, on_message: MessageHandler) -> int:
        try:
            return self.inner.spin_once(on_message)
        except Exception as e:
            self._report("Failed to receive inbound messages", e)
            return 0

    def _report(self, what: str, error: Exception) -> None:
        self.failures += 1
        now = self._now()
        if now - self._last_error_log >= self._error_log_interval:
            msg = f"{what}: {error}"
            if self._suppressed:
                msg += f" (suppressed {self._suppressed} repeats)"
                self._suppressed = 0
            logger.error(msg)
            self._last_error_log = now
        else:
            self._suppressed += 1
