"""
Unit tests for line framing.
"""

import pytest

from chatserver.core.framer import LineFramer
from chatserver.chat.errors import FrameDecodeError, LineTooLong


class TestLineFramer:
    """Tests for LineFramer class."""

    def test_single_line(self):
        """Test one complete line."""
        framer = LineFramer()
        assert list(framer.feed(b"hello\n")) == ["hello"]
        assert framer.tail == ""

    def test_multiple_lines_in_one_read(self):
        """Test several lines arriving together keep their order."""
        framer = LineFramer()
        lines = list(framer.feed(b"/nick alice\n/join lobby\nhi\n"))
        assert lines == ["/nick alice", "/join lobby", "hi"]

    def test_partial_line_is_retained(self):
        """Test an unterminated fragment waits for the next read."""
        framer = LineFramer()
        assert list(framer.feed(b"/nick al")) == []
        assert framer.tail == "/nick al"

        assert list(framer.feed(b"ice\n/join lob")) == ["/nick alice"]
        assert framer.tail == "/join lob"

        assert list(framer.feed(b"by\n")) == ["/join lobby"]
        assert framer.tail == ""

    def test_lines_are_trimmed(self):
        """Test surrounding whitespace and CR are stripped."""
        framer = LineFramer()
        assert list(framer.feed(b"  hello world \r\n")) == ["hello world"]

    def test_empty_lines_dropped(self):
        """Test blank and whitespace-only lines produce nothing."""
        framer = LineFramer()
        assert list(framer.feed(b"\n   \n\t\nx\n\n")) == ["x"]

    def test_multibyte_character_split_across_reads(self):
        """Test a UTF-8 character split between two reads is rebuilt."""
        framer = LineFramer()
        encoded = "olá\n".encode("utf-8")
        first, second = encoded[:3], encoded[3:]  # splits inside "á"

        assert list(framer.feed(first)) == []
        assert list(framer.feed(second)) == ["olá"]

    def test_invalid_utf8_raises(self):
        """Test malformed bytes are a decode error."""
        framer = LineFramer()
        with pytest.raises(FrameDecodeError):
            list(framer.feed(b"bad \xff\xfe bytes\n"))

    def test_feed_is_lazy(self):
        """Test lines are produced one at a time."""
        framer = LineFramer()
        lines = framer.feed(b"a\nb\nc\n")

        assert next(lines) == "a"
        assert next(lines) == "b"

    def test_line_too_long(self):
        """Test a complete line over the limit is rejected."""
        framer = LineFramer(max_line_length=10)
        with pytest.raises(LineTooLong) as exc_info:
            list(framer.feed(b"x" * 11 + b"\n"))

        assert exc_info.value.limit == 10

    def test_unterminated_tail_too_long(self):
        """Test an unterminated tail over the limit is rejected."""
        framer = LineFramer(max_line_length=10)
        assert list(framer.feed(b"x" * 8)) == []

        with pytest.raises(LineTooLong):
            list(framer.feed(b"x" * 8))

    def test_line_at_limit_accepted(self):
        """Test a line exactly at the limit passes."""
        framer = LineFramer(max_line_length=5)
        assert list(framer.feed(b"abcde\n")) == ["abcde"]
