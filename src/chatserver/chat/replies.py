"""
=============================================================================
SERVER → CLIENT LINES
=============================================================================

Every line the server writes is built here, so the wire format lives in
exactly one place.

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ Line                         │ Audience                             │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ OK                           │ invoker                              │
    │ ERROR <reason>               │ invoker                              │
    │ MESSAGE <nick> <text>        │ room, minus the sender               │
    │ NEWNICK <old> <new>          │ room, minus the renamer              │
    │ JOINED <nick>                │ room, minus the joiner               │
    │ LEFT <nick>                  │ remaining room members               │
    │ PRIVATE <from> <text>        │ the single recipient                 │
    │ BYE                          │ invoker, right before close          │
    └──────────────────────────────┴──────────────────────────────────────┘

Lines are returned WITHOUT the trailing newline; the connection appends it
when writing.

=============================================================================
ESCAPE RULE
=============================================================================

A client that wants to send text starting with "/" doubles the slash so
the server does not read it as a command:

    typed by user      sent by client      delivered to room
    ─────────────      ──────────────      ─────────────────
    /shrug             //shrug             /shrug
    //x                ///x                //x

The server strips exactly one leading slash, once.

=============================================================================
"""

from .errors import Reason


OK = "OK"
BYE = "BYE"


def unescape(text: str) -> str:
    """Strip one leading slash from text that starts with ``//``."""
    if text.startswith("//"):
        return text[1:]
    return text


def error(reason: Reason) -> str:
    return f"ERROR {reason.value}"


def message(nickname: str, text: str) -> str:
    return f"MESSAGE {nickname} {text}"


def new_nick(old: str, new: str) -> str:
    return f"NEWNICK {old} {new}"


def joined(nickname: str) -> str:
    return f"JOINED {nickname}"


def left(nickname: str) -> str:
    return f"LEFT {nickname}"


def private(sender: str, text: str) -> str:
    return f"PRIVATE {sender} {text}"
