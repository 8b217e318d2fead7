"""
=============================================================================
CHAT PROTOCOL COMPONENTS
=============================================================================

Everything above the transport: what a line means and who receives the
answer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ commands.py   line → Command (keyword + up to two arguments)       │
    │ protocol.py   ChatProtocol: per-state command handlers              │
    │ sessions.py   Session, LifecycleState, SessionRegistry (nicknames)  │
    │ rooms.py      RoomRegistry: membership + broadcast                  │
    │ replies.py    server → client line formatting, escape rule          │
    │ errors.py     ChatError family + connection-fatal errors            │
    └─────────────────────────────────────────────────────────────────────┘

None of these modules touch sockets. A session only needs a connection
object exposing ``id``, ``is_open``, ``send_line()`` and ``close()``.

=============================================================================
"""

from .commands import Command, parse_command
from .errors import (
    ChatError, NameConflict, InvalidState, TargetNotFound, MalformedCommand,
    ConnectionFatalError, FrameDecodeError, LineTooLong, Reason,
)
from .protocol import ChatProtocol
from .rooms import RoomRegistry
from .sessions import LifecycleState, Session, SessionRegistry

__all__ = [
    "ChatProtocol",
    "Command",
    "parse_command",
    "Session",
    "SessionRegistry",
    "LifecycleState",
    "RoomRegistry",
    "Reason",
    "ChatError",
    "NameConflict",
    "InvalidState",
    "TargetNotFound",
    "MalformedCommand",
    "ConnectionFatalError",
    "FrameDecodeError",
    "LineTooLong",
]
