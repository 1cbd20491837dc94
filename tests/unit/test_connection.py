"""
Unit tests for Connection buffering over a socket pair.
"""

import socket
import threading
import time

import pytest

from scratchhttp.core.connection import Connection, ConnectionState, DRAIN_TIMEOUT


class TestReadLine:
    """Tests for Connection.read_line."""

    def test_lines_split_from_one_chunk(self, make_connection):
        conn = make_connection(b"first\r\nsecond\r\n")

        assert conn.read_line() == b"first\r\n"
        assert conn.read_line() == b"second\r\n"
        assert conn.read_line() == b""

    def test_line_across_chunks(self, make_connection, socket_pair):
        """Test a line split over several send() calls."""
        _, client_side = socket_pair
        conn = make_connection(b"GET /ec", close_client=False)
        client_side.sendall(b"ho HTTP/1.1\r\n")

        assert conn.read_line() == b"GET /echo HTTP/1.1\r\n"

    def test_unterminated_tail_on_eof(self, make_connection):
        conn = make_connection(b"partial")
        assert conn.read_line() == b"partial"

    def test_line_limit(self, make_connection):
        conn = make_connection(b"x" * 2000 + b"\r\n", max_line_size=256)

        with pytest.raises(ValueError):
            conn.read_line()

    def test_timeout(self, make_connection):
        conn = make_connection(b"no newline", close_client=False, timeout=0.1)

        with pytest.raises(socket.timeout):
            conn.read_line()


class TestReadExactly:
    """Tests for Connection.read_exactly."""

    def test_uses_buffered_bytes_first(self, make_connection):
        conn = make_connection(b"line\r\nBODY")

        assert conn.read_line() == b"line\r\n"
        assert conn.read_exactly(4) == b"BODY"

    def test_short_read_on_eof(self, make_connection):
        conn = make_connection(b"abc")
        assert conn.read_exactly(10) == b"abc"

    def test_zero(self, make_connection):
        conn = make_connection(b"abc")
        assert conn.read_exactly(0) == b""
        assert conn.read_exactly(3) == b"abc"

    def test_does_not_over_read(self, make_connection, socket_pair):
        """Test bytes beyond the request stay in the socket."""
        server_side, client_side = socket_pair
        conn = make_connection(b"", close_client=False, buffer_size=4096)
        client_side.sendall(b"12345")

        assert conn.read_exactly(3) == b"123"
        assert conn.read_exactly(2) == b"45"

    def test_large_read_is_linear(self, make_connection, socket_pair):
        """Test a 32 MiB body arrives in small recv() chunks without slowing down."""
        _, client_side = socket_pair
        size = 32 * 1024 * 1024
        conn = make_connection(b"", close_client=False, timeout=10.0)
        sender = threading.Thread(target=client_side.sendall, args=(b"x" * size,))

        start = time.time()
        sender.start()
        data = conn.read_exactly(size)
        elapsed = time.time() - start
        sender.join(timeout=10.0)

        assert len(data) == size
        assert elapsed < 5.0


class TestSendAndClose:
    """Tests for writing and closing."""

    def test_send_response(self, make_connection, socket_pair):
        _, client_side = socket_pair
        conn = make_connection(b"", close_client=False)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_side.recv(100) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_close_is_idempotent(self, make_connection):
        conn = make_connection(b"")
        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_context_manager_closes(self, make_connection, socket_pair):
        _, client_side = socket_pair

        with make_connection(b"") as conn:
            conn.send_response(b"bye")

        assert conn.state == ConnectionState.CLOSED
        assert client_side.recv(100) == b"bye"
        assert client_side.recv(100) == b""

    def test_send_after_peer_closed(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        client_side.close()

        # A broken pipe may need more than one write to surface
        results = [conn.send_response(b"x" * 65536) for _ in range(20)]
        assert False in results

    def test_ids_are_unique(self, socket_pair):
        server_side, _ = socket_pair
        a = Connection(socket=server_side, address=("127.0.0.1", 1))
        b = Connection(socket=server_side, address=("127.0.0.1", 1))

        assert a.id != b.id
        assert len(a.id) == 8

    def test_close_drains_unread_input(self, socket_pair):
        """Test unread request bytes are swallowed so the response survives."""
        server_side, client_side = socket_pair
        client_side.sendall(b"unread body" * 100)
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))

        conn.send_response(b"HTTP/1.1 411 Length Required\r\n\r\n")
        conn.close()

        assert client_side.recv(100) == b"HTTP/1.1 411 Length Required\r\n\r\n"

    def test_close_with_endless_sender_is_bounded(self, socket_pair):
        """Test a client that never stops sending cannot hold close() open."""
        server_side, client_side = socket_pair
        client_side.settimeout(5.0)
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)
        stop = threading.Event()

        def flood():
            chunk = b"x" * 4096
            while not stop.is_set():
                try:
                    client_side.sendall(chunk)
                except OSError:
                    return

        sender = threading.Thread(target=flood, daemon=True)
        sender.start()

        start = time.time()
        conn.close()
        elapsed = time.time() - start
        stop.set()
        sender.join(timeout=10.0)

        assert conn.state == ConnectionState.CLOSED
        assert elapsed < DRAIN_TIMEOUT + 1.0
