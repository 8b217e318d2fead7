"""
=============================================================================
CHAT PROTOCOL ERRORS
=============================================================================

Two families of errors exist in the server, and they are handled at
different layers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Family              │ Examples              │ Outcome                │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ChatError           │ NameConflict          │ "ERROR <reason>" sent  │
    │ (recoverable)       │ InvalidState          │ to the invoker, state  │
    │                     │ TargetNotFound        │ left untouched         │
    │                     │ MalformedCommand      │                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ConnectionFatalError│ FrameDecodeError      │ that one connection is │
    │ (per connection)    │ LineTooLong           │ torn down              │
    └─────────────────────────────────────────────────────────────────────┘

Neither family is ever fatal to the process.

=============================================================================
"""

from enum import Enum


class Reason(Enum):
    """
    Reasons reported in ``ERROR <reason>`` lines.

    The value is the exact text written on the wire.
    """
    NICK_IN_USE = "Nome já em uso"
    INVALID_NICK = "Nome inválido"
    INVALID_ROOM = "Sala inválida"
    NOT_IN_ROOM = "Não está numa sala"
    NOT_ALLOWED = "Comando não permitido neste estado"
    UNSUPPORTED_COMMAND = "Comando não suportado"
    USER_NOT_FOUND = "Utilizador não encontrado"
    PRIV_USAGE = "Uso: /priv nome mensagem"

    def __str__(self) -> str:
        return self.value


class ChatError(Exception):
    """
    Base class for command errors that are reported back to the client.

    Carries the ``Reason`` to put on the wire after ``ERROR``.
    """

    def __init__(self, reason: Reason):
        super().__init__(reason.value)
        self.reason = reason


class NameConflict(ChatError):
    """Nickname already bound, empty, or containing whitespace."""


class InvalidState(ChatError):
    """Command not allowed in the session's current lifecycle state."""


class TargetNotFound(ChatError):
    """Private message recipient is not connected."""


class MalformedCommand(ChatError):
    """Command is missing required arguments."""


class ConnectionFatalError(Exception):
    """Error that terminates one connection (and nothing else)."""


class FrameDecodeError(ConnectionFatalError):
    """Inbound bytes are not valid UTF-8."""


class LineTooLong(ConnectionFatalError):
    """A line (or pending unterminated tail) exceeded the configured limit."""

    def __init__(self, length: int, limit: int):
        super().__init__(f"Line too long: {length} characters (limit {limit})")
        self.length = length
        self.limit = limit
