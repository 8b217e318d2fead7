"""
=============================================================================
CHAT SERVER
=============================================================================

Wires the transport (SocketServer) to the chat protocol (ChatProtocol).

=============================================================================
REQUEST FLOW
=============================================================================

    client socket
        │
        ▼
    SocketServer            select() → recv() → LineFramer
        │  line_received(conn, line)
        ▼
    ChatServer              conn.id → Session lookup
        │  handle_line(session, line)
        ▼
    ChatProtocol            validate against lifecycle state, apply
        │
        ├──► SessionRegistry / RoomRegistry
        └──► session.send(...)  →  conn.send_line(...)  →  client sockets

Teardown runs the other way: SocketServer.close_connection() calls
connection_lost(), which lets the protocol leave the room and free the
nickname before the socket is closed. A /bye from the client enters the
same path through the protocol's ``on_disconnect`` hook.

=============================================================================
"""

import logging
from typing import Dict, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, ConnectionHandler, Connection
from .chat import ChatProtocol, Session


logger = logging.getLogger(__name__)


class ChatServer(ConnectionHandler):
    """
    Multi-room, line-based chat server.

    =========================================================================
    USAGE
    =========================================================================

        server = ChatServer(ServerConfig(port=5000))
        server.run()  # Blocks until Ctrl+C / SIGTERM

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the chat server.

        Args:
            config: Server configuration. Uses defaults if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self.protocol = ChatProtocol(on_disconnect=self._disconnect)

        # conn.id → Session for every live connection
        self._sessions: Dict[str, Session] = {}

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """Start the server (blocking)."""
        self._setup_logging()

        try:
            self._socket_server.start(self)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("chatserver").setLevel(level)

    def shutdown(self):
        """Stop the event loop; every client is disconnected."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    # =========================================================================
    # CONNECTION EVENTS (called by SocketServer on the loop thread)
    # =========================================================================

    def connection_made(self, conn: Connection):
        self._sessions[conn.id] = self.protocol.open_session(conn)

    def line_received(self, conn: Connection, line: str):
        session = self._sessions.get(conn.id)
        if session is None:
            logger.warning(f"[{conn.id}] Line for unknown session dropped")
            return
        self.protocol.handle_line(session, line)

    def connection_lost(self, conn: Connection):
        session = self._sessions.pop(conn.id, None)
        if session is not None:
            self.protocol.close_session(session)

    def _disconnect(self, session: Session):
        """/bye: tear the connection down through the event loop."""
        self._socket_server.close_connection(session.connection)
