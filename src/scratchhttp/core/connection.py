"""
=============================================================================
CONNECTION: A BUFFERED BYTE STREAM OVER ONE CLIENT SOCKET
=============================================================================

This module wraps an accepted client socket with the three primitives the
request reader and response writer need:

    read_line()        bytes up to and including the next line terminator
    read_exactly(n)    the next n bytes of the stream (body reads)
    send_response(b)   write all bytes back to the client

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP only guarantees that bytes arrive IN ORDER and INTACT. It does not keep
the boundaries of what the peer passed to send():

    Client sends:
        send(b"GET /echo/hi HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")

    Server might receive:
        recv() -> b"GET /ec"
        recv() -> b"ho/hi HTTP/1.1\\r\\nHo"
        recv() -> b"st: x\\r\\n\\r\\n"

So a Connection keeps a private buffer. Every read primitive first looks in
the buffer and only calls recv() when the buffer cannot satisfy it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       read_line() / read_exactly()                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _buffer = b"GET /ec"          no b"\\n" yet                         │
    │        │                                                             │
    │        ▼                                                             │
    │   recv() ──► _buffer = b"GET /echo/hi HTTP/1.1\\r\\nHo"                │
    │        │                                                             │
    │        ▼                                                             │
    │   split at b"\\n"                                                     │
    │        ├── returned:  b"GET /echo/hi HTTP/1.1\\r\\n"                   │
    │        └── kept:      b"Ho"   (start of the first header line)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The buffer is a bytearray that grows in place, so reading an N-byte body
costs O(N) however many recv() calls it takes. Body reads never ask the
socket for more than the bytes still missing, so a request body is not read
past its declared length.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive: each connection carries exactly one request and one
response, then the server closes it.

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └───────────── (parse failure) ─────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


# Budget for swallowing unread request bytes in close()
DRAIN_LIMIT = 64 * 1024   # bytes
DRAIN_TIMEOUT = 2.0       # seconds


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and so close() can be made idempotent.
    """
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading request line / headers / body
    PROCESSING = "processing"  # Request parsed, handler is executing
    WRITING = "writing"        # Sending response bytes
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── TCP delivers bytes in arbitrary chunks                       │
    │     └── _buffer holds bytes received but not yet consumed            │
    │                                                                      │
    │  2. TIMEOUTS                                                         │
    │     └── One socket timeout for every blocking call                   │
    │     └── None = wait forever (a stalled peer keeps its worker)        │
    │                                                                      │
    │  3. GRACEFUL CLOSE                                                   │
    │     └── FIN first, drain unread input, then release the fd           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used to tag log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192              # Max bytes per recv()
    timeout: Optional[float] = 30.0      # Socket timeout, None = block forever
    max_line_size: int = 8192            # Longest accepted request/header line

    _buffer: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> bytes:
        """
        Read one line, terminator included.

        The terminator is LF; a preceding CR stays part of the returned
        bytes, so a well-formed HTTP line ends in b"\\r\\n".

        Returns:
            The line including its terminator. If the peer closes the
            stream first, whatever was buffered is returned without a
            terminator (b"" if nothing was).

        Raises:
            ValueError: If no terminator shows up within max_line_size bytes.
            socket.timeout: If the peer stalls longer than the timeout.
        """
        self.state = ConnectionState.READING

        scanned = 0  # Bytes already searched for a terminator

        while True:
            newline = self._buffer.find(b"\n", scanned)
            if newline != -1:
                if newline > self.max_line_size:
                    raise ValueError(f"Line exceeds {self.max_line_size} bytes")
                line = bytes(self._buffer[:newline + 1])
                del self._buffer[:newline + 1]
                return line

            scanned = len(self._buffer)
            if len(self._buffer) > self.max_line_size:
                raise ValueError(f"Line exceeds {self.max_line_size} bytes")

            chunk = self._recv(self.buffer_size)
            if not chunk:
                # Peer closed: hand back the unterminated tail
                line = bytes(self._buffer)
                self._buffer.clear()
                return line

            self._buffer += chunk

    def read_exactly(self, size: int) -> bytes:
        """
        Read the next ``size`` bytes of the stream.

        Bytes already buffered are used first. The socket is then asked for
        at most the number of bytes still missing, so nothing past the
        requested length is pulled off the wire.

        Returns:
            Exactly ``size`` bytes, or fewer if the peer closed the stream
            early. Callers compare the length.
        """
        self.state = ConnectionState.READING

        while len(self._buffer) < size:
            missing = size - len(self._buffer)
            chunk = self._recv(min(self.buffer_size, missing))
            if not chunk:
                break  # Closed mid-body
            self._buffer += chunk

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def _recv(self, size: int) -> bytes:
        """
        Receive up to ``size`` bytes.

        A reset from the peer is reported like an orderly close (b"").
        """
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        sendall() keeps calling send() until every byte is out.

        Returns:
            True if send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

            Server                              Client
               │   FIN ──────────────────────────► │  shutdown(SHUT_WR)
               │ ◄───────────────────────── ACK    │
               │   (drain unread request bytes)    │
               │ ◄───────────────────────── FIN    │  client closes
               │   ACK ──────────────────────────► │

        Draining matters when a handler answered without reading the body
        (e.g. 411): closing with unread input would make the kernel send
        RST, and the client could lose the response. The drain stops after
        DRAIN_LIMIT bytes or DRAIN_TIMEOUT seconds, whichever comes first.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        drained = 0
        deadline = time.time() + DRAIN_TIMEOUT
        try:
            self.socket.settimeout(0.5)
            while drained < DRAIN_LIMIT and time.time() < deadline:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
            else:
                logger.debug(f"[{self.id}] Drain budget used up, closing with unread input")
        except OSError:
            pass  # Timeout or reset while draining

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
