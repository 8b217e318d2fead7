"""
=============================================================================
SESSIONS AND THE NICKNAME REGISTRY
=============================================================================

A Session is the server-side state of one connected client. The
SessionRegistry maps nicknames to sessions and is the single place where
nickname uniqueness is enforced.

SESSION LIFECYCLE
─────────────────

    INIT ──/nick──► OUTSIDE ──/join──► INSIDE
                      ▲                  │
                      └──────/leave──────┘

    INIT     connected, no nickname yet
    OUTSIDE  nickname set, not in a room
    INSIDE   nickname set, member of ``session.room``

There is no terminal state: a session ends when its connection closes.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from .errors import NameConflict, Reason

if TYPE_CHECKING:
    from ..core.connection import Connection


logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Which commands a session may use."""
    INIT = "init"
    OUTSIDE = "outside"
    INSIDE = "inside"


@dataclass(eq=False)
class Session:
    """
    One client's protocol state.

    Compared and hashed by identity so sessions can live in room member
    sets regardless of nickname changes.

    Attributes:
        connection: The owning transport connection.
        nickname: Unique nickname, None until the first /nick.
        state: Current lifecycle state.
        room: Name of the current room; set iff state is INSIDE.
    """
    connection: "Connection"
    nickname: Optional[str] = None
    state: LifecycleState = LifecycleState.INIT
    room: Optional[str] = field(default=None)

    @property
    def id(self) -> str:
        return self.connection.id

    @property
    def is_connected(self) -> bool:
        return self.connection.is_open

    def send(self, line: str) -> bool:
        """Write one protocol line to this client."""
        return self.connection.send_line(line)

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, nickname={self.nickname!r}, state={self.state.value}, room={self.room!r})"


def is_valid_nickname(nickname: Optional[str]) -> bool:
    """A nickname is non-empty and has no whitespace anywhere."""
    return bool(nickname) and not any(ch.isspace() for ch in nickname)


class SessionRegistry:
    """
    Nickname → Session index.

    All methods are synchronous and only ever called from the event loop
    thread, so no locking is needed.
    """

    def __init__(self):
        self._by_nickname: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._by_nickname)

    def __contains__(self, nickname: str) -> bool:
        return nickname in self._by_nickname

    def nicknames(self) -> List[str]:
        return sorted(self._by_nickname)

    def _check_available(self, nickname: str):
        if not is_valid_nickname(nickname):
            raise NameConflict(Reason.INVALID_NICK)
        if nickname in self._by_nickname:
            raise NameConflict(Reason.NICK_IN_USE)

    def register(self, nickname: str, session: Session):
        """
        Bind a nickname to a session.

        Raises:
            NameConflict: If the nickname is taken or invalid.
        """
        self._check_available(nickname)
        self._by_nickname[nickname] = session

    def rename(self, old_nickname: str, new_nickname: str, session: Session):
        """
        Move a session from one nickname to another in a single step.

        The new name is validated first; on failure nothing changes.

        Raises:
            NameConflict: If the new nickname is taken or invalid.
        """
        self._check_available(new_nickname)
        self._by_nickname[new_nickname] = session
        if self._by_nickname.get(old_nickname) is session:
            del self._by_nickname[old_nickname]

    def lookup(self, nickname: str) -> Optional[Session]:
        return self._by_nickname.get(nickname)

    def remove(self, nickname: str):
        """Forget a nickname. Unknown nicknames are ignored."""
        if self._by_nickname.pop(nickname, None) is not None:
            logger.debug(f"Released nickname {nickname!r}")
