"""Top-level control loop of the object controller.

Design overview
- A single thread runs a fixed-rate loop (50 Hz by default). Each iteration
  polls the keyboard without blocking, dispatches the last key read, fires the
  due pose schedules, delivers inbound simulator messages, then sleeps until
  the next cadence boundary.
- The loop owns the timer registry and the command dispatcher. Nothing else
  touches them, so there are no locks.
- SIGINT/SIGTERM only flip the state to ``SHUTTING_DOWN``. The flag is checked
  once per iteration, so an iteration in progress always completes.
- Terminal raw mode and the transport connection are scoped resources,
  released on every exit path.

Errors
- Publish and receive failures are logged by ``GuardedTransport`` and ignored.
- A failing keyboard read raises ``InputStreamError``, which ends the loop.
"""

from __future__ import annotations
import time
import signal
import logging
from enum import Enum
from typing import Any, Dict, List, Tuple, Callable, Optional, Sequence
from contextlib import nullcontext
from dataclasses import dataclass

from object_controller.timers import DEFAULT_TIMER_PERIOD, TimerRegistry
from object_controller.keyboard import RawTerminal, KeyboardPoller, last_key
from object_controller.transport import Transport, GuardedTransport
from object_controller.dispatcher import CommandDispatcher, help_lines


logger = logging.getLogger(__name__)

# Configuration constants
CONTROL_LOOP_FREQUENCY_HZ = 50.0  # Hz - Target frequency for the control loop
DEFAULT_TRACKED_OBJECTS: List[Tuple[str, float]] = [
    ("bear_doll", 0.5),
    ("dog_doll", 0.6),
    ("rabbit_doll", 0.7),
]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class ControllerState(Enum):
    """Lifecycle of the control loop."""

    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class LoopTiming:
    """Achieved loop rate since the controller started."""

    samples: int = 0
    total_period: float = 0.0
    last_freq: float = 0.0
    min_freq: float = 0.0
    overruns: int = 0

    @property
    def mean_freq(self) -> float:
        if self.total_period <= 0.0:
            return 0.0
        return self.samples / self.total_period

    def record_period(self, period: float) -> None:
        """Record the time between two iteration starts."""
        if period <= 0.0:
            return
        freq = 1.0 / period
        self.min_freq = freq if self.samples == 0 else min(self.min_freq, freq)
        self.last_freq = freq
        self.samples += 1
        self.total_period += period


class ObjectController:
    """Drive tracked objects and forward operator commands at a fixed rate.

    Timing:
    - All timing goes through ``self._now`` (``time.monotonic`` by default);
      the timer registry shares the same clock.
    - Sleeps are computed from the iteration start so the loop stays
      phase-aligned to ``loop_hz``.
    """

    def __init__(
        self,
        transport: Transport,
        keyboard: Optional[KeyboardPoller] = None,
        terminal: Optional[RawTerminal] = None,
        tracked_objects: Sequence[Tuple[str, float]] = DEFAULT_TRACKED_OBJECTS,
        loop_hz: float = CONTROL_LOOP_FREQUENCY_HZ,
        timer_period: float = DEFAULT_TIMER_PERIOD,
        include_orientation: bool = True,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        handle_signals: bool = True,
    ):
        """Initialize the controller; nothing is connected until ``run``."""
        if loop_hz <= 0:
            raise ValueError(f"Loop frequency must be positive, got {loop_hz}")

        self._now = clock or time.monotonic
        self._sleep = sleep or time.sleep

        self.transport = transport if isinstance(transport, GuardedTransport) else GuardedTransport(transport)
        self.keyboard = keyboard
        self.terminal = terminal
        self.tracked_objects = list(tracked_objects)
        self.handle_signals = handle_signals

        self.registry = TimerRegistry(
            self.transport,
            period=timer_period,
            clock=self._now,
            include_orientation=include_orientation,
        )
        self.dispatcher = CommandDispatcher(self.transport)

        self.target_frequency = loop_hz
        self.target_period = 1.0 / loop_hz

        self.state: ControllerState | None = None
        self.iterations = 0
        self.inbound_count = 0
        self.timing = LoopTiming()

    # ---- lifecycle ----

    def bootstrap(self) -> None:
        """Show the key help and start the schedules, then enter ``RUNNING``.

        A shutdown requested during startup (e.g. Ctrl-C while connecting)
        is kept, so the loop never starts.
        """
        self.show_help()
        for name, speed in self.tracked_objects:
            self.registry.register(name, speed)
        if self.state is ControllerState.SHUTTING_DOWN:
            logger.info("Shutdown requested during startup, not starting the control loop")
            return
        self.state = ControllerState.RUNNING
        logger.info(f"Object controller running, tracking {', '.join(self.registry.names()) or 'nothing'}")

    def request_shutdown(self) -> None:
        """Ask the loop to stop after the current iteration."""
        if self.state is not ControllerState.SHUTTING_DOWN:
            logger.info("Shutdown requested")
        self.state = ControllerState.SHUTTING_DOWN

    @staticmethod
    def show_help() -> None:
        for line in help_lines():
            print(line)

    def run(self) -> int:
        """Run until shutdown is requested and return the process exit status.

        Raises:
            InputStreamError: the keyboard can no longer be read.
            TransportError: the simulator could not be reached.

        """
        previous_handlers = self._install_signal_handlers() if self.handle_signals else {}
        try:
            with self.terminal if self.terminal is not None else nullcontext():
                with self.transport:
                    self.bootstrap()
                    self._working_loop()
        finally:
            self._restore_signal_handlers(previous_handlers)
        logger.info("Object controller stopped")
        return EXIT_SUCCESS

    # ---- one iteration ----

    def run_once(self, now: Optional[float] = None) -> None:
        """Run one iteration: keyboard, due schedules, inbound messages."""
        self._poll_keyboard()
        self.spin_once(now)
        self.iterations += 1

    def spin_once(self, now: Optional[float] = None) -> None:
        """Process one round of middleware callbacks."""
        self.registry.fire_due(self._now() if now is None else now)
        self.transport.spin_once(self._on_inbound_message)

    def _poll_keyboard(self) -> None:
        if self.keyboard is None:
            return
        data = self.keyboard.poll()
        if not data:
            return
        key = last_key(data)
        if key is not None:
            self.dispatcher.handle_key(key)

    def _on_inbound_message(self, text: str) -> None:
        self.inbound_count += 1
        logger.info(f"Subscribe Message: {text}")

    # ---- loop timing ----

    def _working_loop(self) -> None:
        if self.state is not ControllerState.RUNNING:
            return
        logger.debug(f"Starting control loop ({self.target_frequency:.0f}Hz)")

        log_every = max(1, int(self.target_frequency * 2))
        prev_loop_start: Optional[float] = None

        while self.state is ControllerState.RUNNING:
            loop_start = self._now()
            if prev_loop_start is not None:
                self.timing.record_period(loop_start - prev_loop_start)
            prev_loop_start = loop_start

            self.run_once()

            sleep_time = self._time_to_next_tick(loop_start)
            if self.iterations % log_every == 0:
                self._log_timing()

            if sleep_time > 0 and self.state is ControllerState.RUNNING:
                self._sleep(sleep_time)

        logger.debug("Control loop stopped")

    def _time_to_next_tick(self, loop_start: float) -> float:
        """Return how long to sleep to stay on the cadence; count overruns."""
        busy = self._now() - loop_start
        if busy > self.target_period:
            self.timing.overruns += 1
        return max(0.0, self.target_period - busy)

    def _log_timing(self) -> None:
        timing = self.timing
        if timing.samples == 0:
            return
        logger.debug(
            "Loop %.1fHz (mean %.1fHz, min %.1fHz, target %.0fHz), %d overrun(s) in %d iterations",
            timing.last_freq,
            timing.mean_freq,
            timing.min_freq,
            self.target_frequency,
            timing.overruns,
            self.iterations,
        )

    # ---- signals ----

    def _handle_signal(self, signum: int, frame: Any) -> None:
        _ = frame
        logger.debug(f"Received signal {signum}")
        self.request_shutdown()

    def _install_signal_handlers(self) -> Dict[int, Any]:
        previous: Dict[int, Any] = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._handle_signal)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: Dict[int, Any]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    # ---- observability ----

    def get_status(self) -> Dict[str, Any]:
        """Return a lightweight status snapshot."""
        timing = self.timing
        return {
            "state": self.state.value if self.state is not None else None,
            "tracked_objects": self.registry.names(),
            "iterations": self.iterations,
            "inbound_messages": self.inbound_count,
            "publish_failures": self.transport.failures,
            "loop_frequency": {
                "last": timing.last_freq,
                "mean": timing.mean_freq,
                "min": timing.min_freq,
                "target": self.target_frequency,
            },
            "loop_overruns": timing.overruns,
        }
