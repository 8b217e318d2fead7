"""
=============================================================================
LINE FRAMING
=============================================================================

TCP delivers a byte stream, not messages. A single recv() may return
half a line, several lines, or a line split in the middle of a UTF-8
character:

    recv() #1 → b"/nick al"
    recv() #2 → b"ice\n/join lob"
    recv() #3 → b"by\nol\xc3"          (first byte of "á")
    recv() #4 → b"\xa1\n"

The framer turns that back into logical lines:

    feed(#1) → (nothing)              tail = "/nick al"
    feed(#2) → "/nick alice"          tail = "/join lob"
    feed(#3) → "/join lobby"          tail = "ol"
    feed(#4) → "olá"                  tail = ""

=============================================================================
RULES
=============================================================================

1. Bytes are decoded with an INCREMENTAL strict UTF-8 decoder, so a
   character split across reads is reassembled, but malformed input
   raises FrameDecodeError.
2. Lines end at "\n". Each line is stripped of surrounding whitespace
   (this also drops a "\r" sent by CRLF clients).
3. Lines that are empty after stripping are discarded.
4. Whatever follows the last "\n" is kept as the tail for the next read.
5. A line or tail longer than ``max_line_length`` characters raises
   LineTooLong. Without a limit one client could grow the tail forever.

=============================================================================
"""

import codecs
from typing import Iterator

from ..chat.errors import FrameDecodeError, LineTooLong


DEFAULT_MAX_LINE_LENGTH = 64 * 1024


class LineFramer:
    """
    Reassembles newline-delimited text from a byte stream.

    One framer per connection; it owns that connection's pending tail.

    Example:
        framer = LineFramer()
        for line in framer.feed(b"hello\\nwor"):
            print(line)          # "hello"
        list(framer.feed(b"ld\\n"))   # ["world"]
    """

    def __init__(self, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
        self.max_line_length = max_line_length
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._tail = ""

    @property
    def tail(self) -> str:
        """Text received after the last newline."""
        return self._tail

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Add bytes and yield every complete, non-empty line.

        This is a generator: lines are produced lazily, so a caller that
        stops early (for example after /bye) leaves the rest unprocessed.

        Raises:
            FrameDecodeError: If the bytes are not valid UTF-8.
            LineTooLong: If a line exceeds ``max_line_length``.
        """
        try:
            text = self._decoder.decode(data)
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Invalid UTF-8 input: {e.reason}") from e

        self._tail += text

        while True:
            newline = self._tail.find("\n")
            if newline == -1:
                break

            segment = self._tail[:newline]
            self._tail = self._tail[newline + 1:]
            self._check_length(len(segment))

            line = segment.strip()
            if line:
                yield line

        self._check_length(len(self._tail))

    def _check_length(self, length: int):
        if self.max_line_length and length > self.max_line_length:
            raise LineTooLong(length, self.max_line_length)
