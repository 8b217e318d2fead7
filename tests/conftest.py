"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chatserver import ChatServer, ServerConfig
from chatserver.chat import ChatProtocol, Session


class FakeConnection:
    """
    Stand-in for core.Connection that records written lines.

    Lets protocol tests run without sockets.
    """

    _counter = 0

    def __init__(self, fail_writes: bool = False):
        FakeConnection._counter += 1
        self.id = f"fake{FakeConnection._counter:04d}"
        self.sent: List[str] = []
        self.is_open = True
        self.closed = False
        self.fail_writes = fail_writes

    def send_line(self, line: str) -> bool:
        if not self.is_open:
            return False
        if self.fail_writes:
            self.is_open = False
            return False
        self.sent.append(line)
        return True

    def close(self):
        self.is_open = False
        self.closed = True

    def take(self) -> List[str]:
        """Return and clear everything sent so far."""
        sent, self.sent = self.sent, []
        return sent


@pytest.fixture
def make_session():
    """Factory: a bare Session on a FakeConnection."""
    def _make(nickname: str = None) -> Session:
        return Session(connection=FakeConnection(), nickname=nickname)
    return _make


@pytest.fixture
def protocol() -> ChatProtocol:
    """A protocol with fresh registries and direct teardown."""
    return ChatProtocol()


@pytest.fixture
def connect(protocol: ChatProtocol):
    """
    Factory: open a session on a FakeConnection.

    Setup traffic (OK replies, JOINED notices to earlier members) is
    cleared from every session opened so far, so tests only see what
    their own commands produce.
    """
    opened: List[Session] = []

    def _connect(nickname: str = None, room: str = None, fail_writes: bool = False) -> Session:
        session = protocol.open_session(FakeConnection())
        opened.append(session)
        if nickname is not None:
            protocol.handle_line(session, f"/nick {nickname}")
        if room is not None:
            protocol.handle_line(session, f"/join {room}")
        for each in opened:
            each.connection.take()
        session.connection.fail_writes = fail_writes
        return session
    return _connect


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        write_timeout=2.0,
        poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: ChatServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


class LineClient:
    """Blocking test client speaking the line protocol."""

    def __init__(self, port: int, rcvbuf: int = None):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if rcvbuf is not None:
            # Set before connect so the advertised window stays small
            self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, rcvbuf)
        self.sock.settimeout(3.0)
        self.sock.connect(("127.0.0.1", port))
        self._file = self.sock.makefile("r", encoding="utf-8", newline="\n")

    def send(self, line: str):
        self.sock.sendall((line + "\n").encode("utf-8"))

    def send_raw(self, data: bytes):
        self.sock.sendall(data)

    def recv(self) -> str:
        """Read one line (without the newline); '' at end-of-stream."""
        return self._file.readline().rstrip("\n")

    def request(self, line: str) -> str:
        self.send(line)
        return self.recv()

    def close(self):
        self._file.close()
        self.sock.close()


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """Run a chat server on an ephemeral port."""
    test_srv = TestServer(ChatServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory() -> Generator:
    """Factory for servers with a custom config; stops them afterwards."""
    servers = []

    def _factory(config: ServerConfig) -> TestServer:
        test_srv = TestServer(ChatServer(config))
        test_srv.start()
        servers.append(test_srv)
        return test_srv

    yield _factory

    for test_srv in servers:
        test_srv.stop()


@pytest.fixture
def client_factory(request):
    """
    Factory for connected LineClients; closes them afterwards.

    Connects to the default ``test_server`` unless another server is given.
    """
    clients = []

    def _factory(server: TestServer = None, rcvbuf: int = None) -> LineClient:
        if server is None:
            server = request.getfixturevalue("test_server")
        client = LineClient(server.port, rcvbuf=rcvbuf)
        clients.append(client)
        return client

    yield _factory

    for client in clients:
        try:
            client.close()
        except OSError:
            pass
