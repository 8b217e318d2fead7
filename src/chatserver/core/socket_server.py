"""
=============================================================================
SINGLE-THREADED TCP EVENT LOOP
=============================================================================

This module owns the listening socket and every client connection. One
thread waits for readiness events and services them one at a time.

=============================================================================
WHY AN EVENT LOOP (AND NOT A THREAD PER CLIENT)?
=============================================================================

Chat state is shared by everyone: the nickname table and the room table
are read and written by every command. With a thread per client each of
those accesses needs a lock. With one thread there is nothing to lock:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ONE THREAD OWNS EVERYTHING                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   selector.select()  ◄── the ONLY place the loop blocks             │
    │        │                                                            │
    │        ├── listener readable  → accept(), register client           │
    │        │                                                            │
    │        └── client readable    → recv() → framer → handler           │
    │                                     │                               │
    │                                     └─ handler writes replies       │
    │                                        (sessions, rooms, sockets)   │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Because events are drained one at a time, lines from one client reach
the handler in exactly the order that client sent them.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the listening socket
    2. bind()      Reserve IP:PORT
    3. listen()    Start queueing incoming connections
    4. select()    Wait until accept() or recv() will not block
    5. close()     Release every client socket, then the listener

=============================================================================
TEARDOWN
=============================================================================

Every way a connection can end goes through ``close_connection()``:

    peer closed (recv → b"")     ─┐
    recv()/send() OSError        ─┤
    invalid UTF-8, line too long ─┼──► close_connection(conn)
    write failed (on_failed)     ─┤        │
    client sent /bye             ─┘        ├── unregister from selector
                                           ├── drop from _connections
                                           ├── handler.connection_lost()
                                           └── conn.close()

The connection is removed from the watch set BEFORE the handler runs,
so teardown happens at most once per connection.

=============================================================================
"""

import selectors
import socket
import signal
import logging
import threading
from typing import Dict, Optional, Set, Tuple

from ..config import ServerConfig
from ..chat.errors import ConnectionFatalError
from .connection import Connection


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Callbacks the event loop invokes for each connection.

    All three run on the event loop thread and must not block.
    """

    def connection_made(self, conn: Connection):
        """A client was accepted."""

    def line_received(self, conn: Connection, line: str):
        """A complete, trimmed, non-empty line arrived."""

    def connection_lost(self, conn: Connection):
        """The connection is being torn down (socket still open)."""


class SocketServer:
    """
    Selector-based TCP server.

    Usage:
        class Echo(ConnectionHandler):
            def line_received(self, conn, line):
                conn.send_line(line)

        server = SocketServer(config)
        server.start(Echo())  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, buffers).

        The listening socket is created in start(), not here.
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._handler: Optional[ConnectionHandler] = None

        # conn.id → Connection for every live client
        self._connections: Dict[str, Connection] = {}

        # ids of connections whose last write failed, awaiting teardown
        self._failed: Set[str] = set()

        self._running = False

        # Set once the listener is bound; tests wait on it
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); reports the real port when port=0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow a quick restart while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.setblocking(False)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers for graceful shutdown.

        Python only allows this from the main thread; when the server is
        run from another thread (tests, embedding) the caller is expected
        to call shutdown() itself.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, handler: ConnectionHandler):
        """
        Bind, listen and run the event loop.

        This method BLOCKS until shutdown() is called.

        Args:
            handler: Receives connection and line events.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._handler = handler
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._socket, selectors.EVENT_READ, data=None)

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._event_loop()
        finally:
            self._cleanup()

    def _event_loop(self):
        """
        Wait for readiness and dispatch events until shutdown.

        The select() timeout is only there so a shutdown() from a signal
        handler or another thread is noticed within ``poll_interval``.
        """
        while self._running:
            try:
                events = self._selector.select(timeout=self.config.poll_interval)
            except InterruptedError:
                continue

            for key, mask in events:
                if not self._running:
                    break
                if key.data is None:
                    self._accept()
                elif key.data.id in self._connections:
                    # Skip clients torn down earlier in this batch
                    self._service(key.data)
                self._reap_failed()

    def _accept(self):
        """Accept one pending client and start watching it."""
        try:
            client_socket, client_address = self._socket.accept()
        except (BlockingIOError, InterruptedError):
            return  # Another event already took it
        except OSError as e:
            logger.error(f"Accept error: {e}")
            return

        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            write_timeout=self.config.write_timeout,
            max_line_length=self.config.max_line_length,
            on_failed=self._mark_failed,
        )
        logger.info(f"[{conn.id}] Connection from {conn.client_ip}:{conn.client_port}")

        self._connections[conn.id] = conn
        self._selector.register(client_socket, selectors.EVENT_READ, data=conn)
        self._handler.connection_made(conn)

    def _service(self, conn: Connection):
        """Read from a readable client and hand each line to the handler."""
        try:
            lines = conn.read_lines()
            if lines is None:
                logger.info(f"[{conn.id}] Peer closed the connection")
                self.close_connection(conn)
                return

            for line in lines:
                self._handler.line_received(conn, line)
                if not conn.is_open:
                    break  # /bye, or a write to this client failed

        except ConnectionFatalError as e:
            logger.warning(f"[{conn.id}] {e}")
            self.close_connection(conn)
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            self.close_connection(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            self.close_connection(conn)

    def _mark_failed(self, conn: Connection):
        self._failed.add(conn.id)

    def _reap_failed(self):
        """Tear down connections whose writes failed during the last event."""
        # Teardown broadcasts LEFT, which may fail further writes
        while self._failed:
            conn = self._connections.get(self._failed.pop())
            if conn is not None:
                self.close_connection(conn)

    def close_connection(self, conn: Connection):
        """
        Tear a connection down. Later calls for the same connection are
        ignored.
        """
        if self._connections.get(conn.id) is not conn:
            return

        del self._connections[conn.id]
        self._failed.discard(conn.id)
        try:
            self._selector.unregister(conn.socket)
        except (KeyError, ValueError):
            pass

        try:
            self._handler.connection_lost(conn)
        finally:
            conn.close()
            logger.info(f"[{conn.id}] Disconnected")

    def shutdown(self):
        """
        Ask the event loop to stop.

        Safe to call from a signal handler or another thread, and safe to
        call more than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Close every client, then the listener."""
        self._restore_signals()

        for conn in list(self._connections.values()):
            self.close_connection(conn)

        if self._selector is not None:
            self._selector.close()
            self._selector = None

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the server to shut down.

        Returns:
            True if shutdown completed, False if timeout.
        """
        return self._shutdown_event.wait(timeout)
