"""
=============================================================================
CHATSERVER - Multi-Room Line Protocol Chat Server
=============================================================================

A TCP chat server built on raw sockets and a single-threaded selector
loop. Clients claim a unique nickname, join named rooms, and exchange
room or private messages over newline-terminated UTF-8 lines.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    chatserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m chatserver PORT)
    ├── server.py            # ChatServer: transport ↔ protocol wiring
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Transport
    │   ├── socket_server.py # Selector event loop, accept, teardown
    │   ├── connection.py    # Client socket wrapper
    │   └── framer.py        # Bytes → lines
    └── chat/                # Protocol
        ├── protocol.py      # ChatProtocol state machine
        ├── commands.py      # Line → Command parsing
        ├── sessions.py      # Session + nickname registry
        ├── rooms.py         # Room registry + broadcast
        ├── replies.py       # Server → client lines
        └── errors.py        # Error taxonomy

=============================================================================
QUICK START
=============================================================================

    $ python -m chatserver 5000

    $ nc localhost 5000
    /nick alice
    OK
    /join lobby
    OK
    hello everyone

=============================================================================
"""

__version__ = "1.0.0"

from .server import ChatServer
from .config import ServerConfig

__all__ = ["ChatServer", "ServerConfig", "__version__"]
