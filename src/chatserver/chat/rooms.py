"""
=============================================================================
ROOM REGISTRY AND BROADCAST
=============================================================================

Rooms are created by the first join and destroyed by the last leave.
There is never an empty room in the registry.

SESSION ↔ ROOM LINK
───────────────────

Membership is stored twice and the two copies must always agree:

    RoomRegistry._rooms                      Session.room
    ┌──────────┬─────────────────┐           ┌─────────┬────────┐
    │ "lobby"  │ {alice, bob}    │ ◄───────► │ alice   │ lobby  │
    │ "dev"    │ {carol}         │           │ bob     │ lobby  │
    └──────────┴─────────────────┘           │ carol   │ dev    │
                                             │ dave    │ None   │
                                             └─────────┴────────┘

Only ``join()`` and ``leave()`` touch either side, which keeps them in
lockstep. Callers never mutate member sets directly.

=============================================================================
"""

import logging
from typing import Dict, List, Optional, Set

from . import replies
from .sessions import LifecycleState, Session


logger = logging.getLogger(__name__)


class RoomRegistry:
    """Room name → member sessions."""

    def __init__(self):
        self._rooms: Dict[str, Set[Session]] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room: str) -> bool:
        return room in self._rooms

    def room_names(self) -> List[str]:
        return sorted(self._rooms)

    def members(self, room: str) -> Set[Session]:
        """Snapshot of a room's members (empty set if the room is gone)."""
        return set(self._rooms.get(room, ()))

    def join(self, room: str, session: Session):
        """
        Add a session to a room, creating the room if needed.

        The session must not currently be in a room. Sending the
        JOINED notice is the caller's job.
        """
        if session.room is not None:
            raise RuntimeError(f"{session!r} is already in room {session.room!r}")

        if room not in self._rooms:
            self._rooms[room] = set()
            logger.debug(f"Created room {room!r}")

        self._rooms[room].add(session)
        session.room = room
        session.state = LifecycleState.INSIDE

    def leave(self, session: Session):
        """
        Remove a session from its current room.

        If the room still has members they receive ``LEFT <nick>``.
        If the room is now empty it is deleted and nobody is notified.
        """
        room = session.room
        if room is None:
            return

        members = self._rooms.get(room)
        if members is not None:
            members.discard(session)
            if not members:
                del self._rooms[room]
                logger.debug(f"Removed empty room {room!r}")

        session.room = None
        session.state = LifecycleState.OUTSIDE

        if room in self._rooms:
            self.broadcast(room, replies.left(session.nickname))

    def broadcast(self, room: str, line: str, exclude: Optional[Session] = None) -> int:
        """
        Send a line to every member of a room.

        Members whose connection is already closed are skipped silently;
        their own teardown will remove them from the room.

        Args:
            room: Target room name.
            line: Protocol line (no trailing newline).
            exclude: Member to skip, usually the originator.

        Returns:
            Number of members the line was written to.
        """
        delivered = 0
        # Snapshot: a failed write must not disturb the iteration
        for member in list(self._rooms.get(room, ())):
            if member is exclude or not member.is_connected:
                continue
            if member.send(line):
                delivered += 1
        return delivered
