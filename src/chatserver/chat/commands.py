"""
=============================================================================
COMMAND PARSING
=============================================================================

Turns one framed line into a ``Command``.

    "/priv bob see you at 5"
        │
        ▼  line.split(None, 2)
    ["/priv", "bob", "see you at 5"]
       │        │         │
       name     arg       remainder (may contain spaces)

At most three tokens are produced, so only the LAST argument can carry
spaces. Lines that do not start with "/" are plain text.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional


NICK = "/nick"
JOIN = "/join"
LEAVE = "/leave"
BYE = "/bye"
PRIV = "/priv"

KNOWN_COMMANDS = frozenset({NICK, JOIN, LEAVE, BYE, PRIV})


@dataclass
class Command:
    """
    A parsed client line.

    Attributes:
        raw: The full (trimmed) line as received.
        name: Command keyword ("/nick", ...), or None for plain text.
        args: Arguments after the keyword (at most two).
    """
    raw: str
    name: Optional[str] = None
    args: List[str] = field(default_factory=list)

    @property
    def is_text(self) -> bool:
        """True for plain text (no leading slash)."""
        return self.name is None

    @property
    def is_known(self) -> bool:
        return self.name in KNOWN_COMMANDS

    def arg(self, index: int) -> Optional[str]:
        """Get an argument by position, or None if missing."""
        if index < len(self.args):
            return self.args[index]
        return None


def parse_command(line: str) -> Command:
    """
    Parse a framed line.

    Args:
        line: A trimmed, non-empty line.

    Returns:
        Command with ``name`` set for slash-prefixed lines.
    """
    if not line.startswith("/"):
        return Command(raw=line)

    parts = line.split(None, 2)
    return Command(raw=line, name=parts[0], args=parts[1:])
