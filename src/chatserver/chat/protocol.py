"""
=============================================================================
CHAT PROTOCOL STATE MACHINE
=============================================================================

One ChatProtocol instance serves every connection. It receives framed
lines, parses them into commands, checks them against the sender's
lifecycle state, and applies the transition.

=============================================================================
COMMAND TABLE
=============================================================================

    ┌──────────────────────┬──────────┬──────────────┬──────────────────────┐
    │ Command              │ INIT     │ OUTSIDE      │ INSIDE               │
    ├──────────────────────┼──────────┼──────────────┼──────────────────────┤
    │ /nick <name>         │ → OUTSIDE│ rename       │ rename + NEWNICK     │
    │ /join <room>         │ ERROR    │ → INSIDE     │ leave, then join     │
    │ /leave               │ ERROR    │ ERROR        │ → OUTSIDE            │
    │ /priv <nick> <text>  │ ERROR    │ PRIVATE      │ PRIVATE              │
    │ /bye                 │ BYE      │ BYE          │ leave, then BYE      │
    │ <text>               │ ERROR    │ ERROR        │ MESSAGE to room      │
    │ /<unknown> ...       │ ERROR    │ ERROR        │ MESSAGE (unescaped)  │
    └──────────────────────┴──────────┴──────────────┴──────────────────────┘

=============================================================================
ERROR HANDLING
=============================================================================

Handlers validate BEFORE they mutate anything and signal failure by
raising a ChatError subclass. ``handle_line`` catches it in one place and
answers ``ERROR <reason>``, so a failed command never leaves a partial
transition behind.

=============================================================================
"""

import logging
from typing import Callable, Dict, Optional

from . import commands, replies
from .commands import Command, parse_command
from .errors import ChatError, InvalidState, MalformedCommand, Reason, TargetNotFound
from .rooms import RoomRegistry
from .sessions import LifecycleState, Session, SessionRegistry


logger = logging.getLogger(__name__)

# Chat activity gets its own logger so it can be routed separately:
#   logging.getLogger("chatserver.events").addHandler(file_handler)
events = logging.getLogger("chatserver.events")


class ChatProtocol:
    """
    Applies client commands to the session and room registries.

    Usage:
        protocol = ChatProtocol(on_disconnect=server.close_session)

        session = protocol.open_session(conn)
        for line in conn.framer.feed(data):
            protocol.handle_line(session, line)
        ...
        protocol.close_session(session)
    """

    def __init__(
        self,
        sessions: Optional[SessionRegistry] = None,
        rooms: Optional[RoomRegistry] = None,
        on_disconnect: Optional[Callable[[Session], None]] = None,
    ):
        """
        Args:
            sessions: Nickname registry (a fresh one by default).
            rooms: Room registry (a fresh one by default).
            on_disconnect: Called when a client says /bye. The event loop
                passes its teardown here; the default closes the session
                and its connection directly.
        """
        self.sessions = sessions if sessions is not None else SessionRegistry()
        self.rooms = rooms if rooms is not None else RoomRegistry()
        self._on_disconnect = on_disconnect or self._close_directly

        self._handlers: Dict[str, Callable[[Session, Command], None]] = {
            commands.NICK: self._handle_nick,
            commands.JOIN: self._handle_join,
            commands.LEAVE: self._handle_leave,
            commands.PRIV: self._handle_priv,
            commands.BYE: self._handle_bye,
        }

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    def open_session(self, connection) -> Session:
        """Create the INIT session for a freshly accepted connection."""
        session = Session(connection=connection)
        logger.debug(f"[{session.id}] Session opened")
        return session

    def close_session(self, session: Session):
        """
        Release everything a session holds in the registries.

        Leaves the current room (notifying the remaining members) and frees
        the nickname. Safe to call on a session that was already closed.
        """
        if session.state is LifecycleState.INSIDE:
            self.rooms.leave(session)

        nickname = session.nickname
        if nickname is not None and self.sessions.lookup(nickname) is session:
            self.sessions.remove(nickname)
            events.info(f"{nickname} disconnected")

        logger.debug(f"[{session.id}] Session closed")

    def _close_directly(self, session: Session):
        self.close_session(session)
        session.connection.close()

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle_line(self, session: Session, line: str):
        """
        Process one framed line from a client.

        Args:
            session: The sender's session.
            line: A trimmed, non-empty line.
        """
        command = parse_command(line)

        try:
            if command.is_text:
                self._handle_text(session, command)
            elif command.is_known:
                self._handlers[command.name](session, command)
            else:
                self._handle_unknown(session, command)
        except ChatError as e:
            logger.debug(f"[{session.id}] {command.name or 'text'} rejected: {e.reason.value}")
            session.send(replies.error(e.reason))

    # =========================================================================
    # COMMAND HANDLERS
    # =========================================================================

    def _handle_nick(self, session: Session, command: Command):
        nickname = command.arg(0)
        if nickname is None:
            raise MalformedCommand(Reason.INVALID_NICK)

        if session.state is LifecycleState.INIT:
            self.sessions.register(nickname, session)
            session.nickname = nickname
            session.state = LifecycleState.OUTSIDE
            events.info(f"{nickname} connected")
            session.send(replies.OK)
            return

        old = session.nickname
        self.sessions.rename(old, nickname, session)
        session.nickname = nickname
        events.info(f"{old} is now known as {nickname}")

        if session.state is LifecycleState.INSIDE:
            self.rooms.broadcast(session.room, replies.new_nick(old, nickname), exclude=session)
        session.send(replies.OK)

    def _handle_join(self, session: Session, command: Command):
        room = command.arg(0)
        if room is None:
            raise MalformedCommand(Reason.INVALID_ROOM)
        if session.state is LifecycleState.INIT:
            raise InvalidState(Reason.NOT_ALLOWED)

        if session.state is LifecycleState.INSIDE:
            self._leave_room(session)

        self.rooms.join(room, session)
        events.info(f"{session.nickname} joined {room}")
        self.rooms.broadcast(room, replies.joined(session.nickname), exclude=session)
        session.send(replies.OK)

    def _handle_leave(self, session: Session, command: Command):
        if session.state is not LifecycleState.INSIDE:
            raise InvalidState(Reason.NOT_IN_ROOM)

        self._leave_room(session)
        session.send(replies.OK)

    def _handle_priv(self, session: Session, command: Command):
        if len(command.args) < 2:
            raise MalformedCommand(Reason.PRIV_USAGE)
        if session.state is LifecycleState.INIT:
            raise InvalidState(Reason.NOT_ALLOWED)

        target_nick, text = command.args
        target = self.sessions.lookup(target_nick)
        if target is None:
            raise TargetNotFound(Reason.USER_NOT_FOUND)

        events.info(f"{session.nickname} -> {target_nick} (private)")
        target.send(replies.private(session.nickname, text))
        session.send(replies.OK)

    def _handle_bye(self, session: Session, command: Command):
        if session.state is LifecycleState.INSIDE:
            self._leave_room(session)

        session.send(replies.BYE)
        self._on_disconnect(session)

    def _handle_text(self, session: Session, command: Command):
        if session.state is not LifecycleState.INSIDE:
            raise InvalidState(Reason.NOT_IN_ROOM)
        self._broadcast_message(session, command.raw)

    def _handle_unknown(self, session: Session, command: Command):
        # Inside a room an unknown "/word" is treated as text
        if session.state is not LifecycleState.INSIDE:
            raise InvalidState(Reason.UNSUPPORTED_COMMAND)
        self._broadcast_message(session, command.raw)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _leave_room(self, session: Session):
        room = session.room
        self.rooms.leave(session)
        events.info(f"{session.nickname} left {room}")

    def _broadcast_message(self, session: Session, text: str):
        text = replies.unescape(text)
        events.debug(f"{session.nickname}@{session.room}: {text}")
        self.rooms.broadcast(session.room, replies.message(session.nickname, text), exclude=session)
