"""Non-blocking operator input from a terminal.

``RawTerminal`` switches the terminal to non-canonical, no-echo mode for the
duration of a ``with`` block and always restores the saved settings on exit.
``KeyboardPoller`` checks for pending bytes with a zero-timeout ``select`` so
the control loop is never suspended waiting for the operator.
"""

from __future__ import annotations
import os
import sys
import select
import logging
from types import TracebackType
from typing import Any, List, Type, Optional


try:
    import termios
except ImportError:  # pragma: no cover - not available on Windows
    termios = None  # type: ignore[assignment]


logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024


class InputStreamError(RuntimeError):
    """The operator input stream can no longer be read."""


class RawTerminal:
    """Scoped raw-mode terminal: no line buffering, no echo."""

    def __init__(self, fd: Optional[int] = None):
        """Use ``fd`` or stdin's file descriptor."""
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._saved: Optional[List[Any]] = None

    @property
    def active(self) -> bool:
        return self._saved is not None

    def __enter__(self) -> "RawTerminal":
        if termios is None or not os.isatty(self.fd):
            logger.info("Input is not a terminal, leaving terminal mode unchanged")
            return self
        self._saved = termios.tcgetattr(self.fd)
        raw = termios.tcgetattr(self.fd)
        raw[3] &= ~(termios.ICANON | termios.ECHO)
        raw[6][termios.VMIN] = 1
        raw[6][termios.VTIME] = 0
        termios.tcsetattr(self.fd, termios.TCSANOW, raw)
        logger.debug("Terminal switched to raw mode")
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the saved terminal settings back. Safe to call more than once."""
        if self._saved is None:
            return
        saved, self._saved = self._saved, None
        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, saved)
        except termios.error as e:
            logger.error(f"Failed to restore terminal settings: {e}")
        else:
            logger.debug("Terminal settings restored")


class KeyboardPoller:
    """Poll a file descriptor for keystrokes without blocking."""

    def __init__(self, fd: Optional[int] = None):
        """Poll ``fd`` or stdin's file descriptor."""
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.closed = False

    def poll(self) -> Optional[bytes]:
        """Return the bytes available right now, or None when there are none.

        Raises:
            InputStreamError: when the read itself fails.

        """
        if self.closed:
            return None
        try:
            ready, _, _ = select.select([self.fd], [], [], 0)
            if not ready:
                return None
            data = os.read(self.fd, READ_CHUNK_SIZE)
        except (OSError, ValueError) as e:
            raise InputStreamError(f"read() failed on fd {self.fd}: {e}") from e

        if not data:
            # End of file: stop polling, scheduled publishing carries on
            logger.warning("Operator input closed, keyboard commands disabled")
            self.closed = True
            return None
        return data


def last_key(data: bytes) -> Optional[bytes]:
    """Return the last byte of a read; earlier bytes in the same read are dropped."""
    if not data:
        return None
    if len(data) > 1:
        logger.debug(f"Dropping {len(data) - 1} earlier byte(s) of {data!r}, keeping the last one")
    return data[-1:]
