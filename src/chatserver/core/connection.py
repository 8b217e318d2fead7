"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps an accepted client socket with the small API the event
loop and the chat protocol need: non-blocking reads, blocking-until-drained
line writes, and a close that happens exactly once.

=============================================================================
READS: DRIVEN BY READINESS
=============================================================================

The socket is non-blocking. The event loop only calls ``receive()`` after
the selector reported the socket readable, so recv() normally returns at
once. Three outcomes are possible:

    ┌───────────────────────┬─────────────────────┬─────────────────────────┐
    │ recv() result         │ receive() returns   │ Event loop does         │
    ├───────────────────────┼─────────────────────┼─────────────────────────┤
    │ b"data..."            │ b"data..."          │ feed framer, dispatch   │
    │ BlockingIOError       │ b""                 │ nothing, try later      │
    │ b"" (peer sent FIN)   │ None                │ teardown                │
    └───────────────────────┴─────────────────────┴─────────────────────────┘

Any other OSError propagates and also ends in teardown.

=============================================================================
WRITES: BEST EFFORT, NEVER RAISE
=============================================================================

Writes happen in the middle of broadcasts, while the protocol is
iterating over room members. Raising there would abort delivery to
everyone else in the room, so ``send_line()`` reports failure instead:

    sendall() ok        → True
    sendall() fails     → False, state = FAILED

The failure is reported through ``on_failed``. The event loop then tears
the connection down through the normal path after the current event.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──────────────► CLOSED
      │                    ▲
      ▼                    │
    FAILED ────────────────┘
    (write error, awaiting teardown)

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional
import uuid

from .framer import LineFramer, DEFAULT_MAX_LINE_LENGTH


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    OPEN = "open"          # Accepted and registered with the selector
    FAILED = "failed"      # A write failed; teardown pending
    CLOSED = "closed"      # Socket closed and released


@dataclass(eq=False)
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket (non-blocking).
        address: Client's (ip, port) tuple.
        id: Short connection identifier (for logging).
        state: Current connection state.
        lines_received: Number of complete lines framed so far.
        on_failed: Called once when a write fails, so the owner can
            schedule teardown.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    lines_received: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 16384
    write_timeout: Optional[float] = 5.0
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH

    on_failed: Optional[Callable[["Connection"], None]] = field(default=None, repr=False)

    framer: LineFramer = field(init=False, repr=False)

    def __post_init__(self):
        # Reads are readiness-driven; never let recv() block the loop
        self.socket.setblocking(False)
        self.framer = LineFramer(max_line_length=self.max_line_length)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def is_open(self) -> bool:
        """True until a write fails or the connection is closed."""
        return self.state is ConnectionState.OPEN

    def fileno(self) -> int:
        return self.socket.fileno()

    # =========================================================================
    # READING
    # =========================================================================

    def receive(self) -> Optional[bytes]:
        """
        Read whatever bytes are available.

        Returns:
            The bytes read, b"" if nothing was available yet, or None if
            the peer closed the connection.

        Raises:
            OSError: On a transport error (reset, etc.).
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except (BlockingIOError, InterruptedError):
            return b""

        if not data:
            return None

        return data

    def read_lines(self) -> Optional[Iterator[str]]:
        """
        Read available bytes and frame them into lines.

        Returns:
            A lazy iterator of complete lines, or None on end-of-stream.

        Raises:
            OSError: On a transport error.
            FrameDecodeError: On invalid UTF-8.
            LineTooLong: When the line limit is exceeded.
        """
        data = self.receive()
        if data is None:
            return None
        return self._count(self.framer.feed(data))

    def _count(self, lines: Iterator[str]) -> Iterator[str]:
        for line in lines:
            self.lines_received += 1
            yield line

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_line(self, line: str) -> bool:
        """
        Send one protocol line, blocking until it is fully written.

        The socket is switched to a bounded blocking mode for the duration
        of the write, then back to non-blocking for the event loop.

        Args:
            line: Protocol line without the trailing newline.

        Returns:
            True if the line was written, False if the connection is not
            open or the write failed.
        """
        if not self.is_open:
            return False

        data = (line + "\n").encode("utf-8")

        try:
            self.socket.settimeout(self.write_timeout)
            self.socket.sendall(data)
            return True
        except OSError as e:
            # socket.timeout is an OSError too: a peer that stopped reading
            logger.warning(f"[{self.id}] Send failed: {e}")
            self.state = ConnectionState.FAILED
            if self.on_failed is not None:
                self.on_failed(self)
            return False
        finally:
            if self.state is not ConnectionState.CLOSED:
                try:
                    self.socket.setblocking(False)
                except OSError:
                    pass

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the socket. Calling it again is a no-op.

        shutdown(SHUT_RDWR) first so the peer sees FIN right away even if
        the descriptor is still referenced elsewhere.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.lines_received} lines")
