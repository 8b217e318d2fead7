"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The transport layer: everything that touches sockets.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Owns the listening socket and a selectors.DefaultSelector        │
    │  • Accepts clients, reads from readable ones                        │
    │  • Routes every kind of failure to one teardown path                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                 │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Non-blocking recv(), blocking-until-drained line writes          │
    │  • OPEN → FAILED → CLOSED state tracking                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ raw bytes
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          LINE FRAMER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Incremental UTF-8 decoding                                       │
    │  • Splits on "\\n", trims, drops empty lines, keeps the tail        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, ConnectionHandler
from .connection import Connection, ConnectionState
from .framer import LineFramer

__all__ = [
    "SocketServer",       # Event loop - accepts, reads, tears down
    "ConnectionHandler",  # Callback interface for the event loop
    "Connection",         # Wrapper for a client socket
    "ConnectionState",    # OPEN / FAILED / CLOSED
    "LineFramer",         # Bytes → lines
]
