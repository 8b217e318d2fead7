"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the chat server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m chatserver 5000 --host 127.0.0.1                 │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── CHAT_PORT=5000 python -m chatserver                        │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Values are validated once at startup (fail fast), not on first use.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the chat server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    I/O SETTINGS
    - buffer_size, max_line_length, write_timeout, poll_interval

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces
    - "127.0.0.1" - Localhost only
    """

    port: int = 5000
    """
    The port number to listen on. 0 lets the OS pick a free port
    (useful in tests; read the real one from ChatServer.address).
    """

    backlog: int = 128
    """Maximum number of connections queued before accept()."""

    # ─────────────────────────────────────────────────────────────────────
    # I/O SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 16384
    """Bytes requested per recv() call (16 KB)."""

    max_line_length: int = 64 * 1024
    """
    Longest accepted line, in characters. A client that exceeds it
    (terminated or not) is disconnected.
    """

    write_timeout: Optional[float] = 5.0
    """
    How long a single line write may block before the client is
    considered dead. None = wait forever.
    """

    poll_interval: float = 1.0
    """
    Upper bound on how long the event loop sleeps in select() before
    re-checking whether shutdown was requested.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        CHAT_HOST              Server host (default: 0.0.0.0)
        CHAT_PORT              Server port (default: 5000)
        CHAT_MAX_LINE_LENGTH   Line limit in characters (default: 65536)
        CHAT_WRITE_TIMEOUT     Write timeout in seconds (default: 5)
        CHAT_LOG_LEVEL         Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("CHAT_HOST", "0.0.0.0"),
            port=int(os.getenv("CHAT_PORT", "5000")),
            max_line_length=int(os.getenv("CHAT_MAX_LINE_LENGTH", str(64 * 1024))),
            write_timeout=float(os.getenv("CHAT_WRITE_TIMEOUT", "5")),
            log_level=os.getenv("CHAT_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_line_length < 1:
            raise ValueError("max_line_length must be >= 1")

        if self.write_timeout is not None and self.write_timeout <= 0:
            raise ValueError("write_timeout must be > 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
