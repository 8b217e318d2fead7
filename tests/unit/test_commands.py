"""
Unit tests for command parsing and reply formatting.
"""

import pytest

from chatserver.chat import replies
from chatserver.chat.commands import parse_command, Command
from chatserver.chat.errors import Reason


class TestParseCommand:
    """Tests for parse_command()."""

    def test_plain_text(self):
        """Test lines without a slash are text."""
        command = parse_command("hello there")

        assert command.is_text is True
        assert command.name is None
        assert command.raw == "hello there"

    def test_command_with_argument(self):
        """Test keyword and single argument."""
        command = parse_command("/nick alice")

        assert command.name == "/nick"
        assert command.args == ["alice"]
        assert command.is_known is True

    def test_remainder_keeps_spaces(self):
        """Test only the last argument may contain spaces."""
        command = parse_command("/priv bob see you   at 5")

        assert command.name == "/priv"
        assert command.args == ["bob", "see you   at 5"]

    def test_runs_of_whitespace_separate_tokens(self):
        """Test multiple spaces/tabs between tokens."""
        command = parse_command("/join \t  lobby")
        assert command.args == ["lobby"]

    def test_command_without_arguments(self):
        """Test bare keyword."""
        command = parse_command("/leave")

        assert command.args == []
        assert command.arg(0) is None

    def test_unknown_command(self):
        """Test unrecognized keywords are still commands."""
        command = parse_command("/dance wildly")

        assert command.is_text is False
        assert command.is_known is False

    def test_keywords_are_case_sensitive(self):
        """Test /NICK is not /nick."""
        assert parse_command("/NICK alice").is_known is False


class TestEscapeRule:
    """Tests for replies.unescape()."""

    @pytest.mark.parametrize("text, expected", [
        ("//x", "/x"),
        ("/x", "/x"),
        ("///x", "//x"),
        ("plain", "plain"),
        ("//", "/"),
    ])
    def test_unescape(self, text: str, expected: str):
        """Test exactly one leading slash is stripped from '//' text."""
        assert replies.unescape(text) == expected


class TestReplies:
    """Tests for server line formatting."""

    def test_error_uses_reason_text(self):
        assert replies.error(Reason.NICK_IN_USE) == "ERROR Nome já em uso"

    def test_event_lines(self):
        assert replies.message("alice", "hi all") == "MESSAGE alice hi all"
        assert replies.new_nick("alice", "ally") == "NEWNICK alice ally"
        assert replies.joined("bob") == "JOINED bob"
        assert replies.left("bob") == "LEFT bob"
        assert replies.private("alice", "psst") == "PRIVATE alice psst"
