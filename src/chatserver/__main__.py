"""
=============================================================================
CHAT SERVER CLI ENTRY POINT
=============================================================================

    # Listen on port 5000, all interfaces
    python -m chatserver 5000

    # Localhost only, verbose
    python -m chatserver 5000 --host 127.0.0.1 --log-level DEBUG

A missing or invalid port prints usage and exits with status 2 before
anything is bound.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import ChatServer
from .config import ServerConfig, LOG_LEVELS


def port_number(value: str) -> int:
    """argparse type for a TCP port."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatserver",
        description="Multi-room line protocol chat server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m chatserver 5000                     # All interfaces
  python -m chatserver 5000 --host 127.0.0.1    # Localhost only
  python -m chatserver 5000 -l DEBUG            # Log every message
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "port",
        type=port_number,
        help="TCP port to listen on"
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $CHAT_HOST or 0.0.0.0)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LIMITS AND LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-line-length",
        type=int,
        default=None,
        help="Disconnect clients sending longer lines (default: 65536)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $CHAT_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"chatserver {__version__}"
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        # CLI arguments win over CHAT_* environment variables
        config = ServerConfig.from_env()
        config.port = args.port
        if args.host is not None:
            config.host = args.host
        if args.max_line_length is not None:
            config.max_line_length = args.max_line_length
        if args.log_level is not None:
            config.log_level = args.log_level

        server = ChatServer(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
