"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scratchhttp import HTTPServer, ServerConfig
from scratchhttp.core.connection import Connection


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """A connected (server_side, client_side) socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


@pytest.fixture
def make_connection(socket_pair):
    """
    Build a Connection over the server side of a socket pair.

    The client side is pre-loaded with ``data``; ``close_client`` shuts the
    client's write half afterwards so the reader sees EOF.
    """
    server_side, client_side = socket_pair

    def _make(data: bytes = b"", close_client: bool = True, **kwargs) -> Connection:
        if data:
            client_side.sendall(data)
        if close_client:
            client_side.shutdown(socket.SHUT_WR)
        kwargs.setdefault("timeout", 2.0)
        return Connection(socket=server_side, address=("127.0.0.1", 50000), **kwargs)

    return _make


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Empty serving directory."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Test server configuration on an ephemeral port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        directory=str(files_dir),
        min_workers=2,
        timeout=5.0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for run() to return."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=15.0)

    def request(self, raw: bytes, shutdown_write: bool = False) -> bytes:
        """
        Send raw request bytes and read until the server closes.

        With ``shutdown_write`` the client half-closes after sending, which
        is how a truncated request is simulated.
        """
        with socket.create_connection(self.address, timeout=5.0) as sock:
            sock.sendall(raw)
            if shutdown_write:
                sock.shutdown(socket.SHUT_WR)
            return self.recv_all(sock)

    @staticmethod
    def recv_all(sock: socket.socket) -> bytes:
        """Read from ``sock`` until EOF."""
        chunks = []
        while True:
            try:
                chunk = sock.recv(4096)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def server_factory():
    """Start servers from arbitrary HTTPServer instances; stopped on teardown."""
    started = []

    def _start(server: HTTPServer) -> TestServer:
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield _start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(config: ServerConfig, server_factory) -> TestServer:
    """A running server bound to an ephemeral port."""
    return server_factory(HTTPServer(config))
