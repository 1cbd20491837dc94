"""
=============================================================================
HTTP REQUEST READER
=============================================================================

Reads one HTTP/1.1 request off a Connection and turns it into an
HTTPRequest. Request line and headers are read eagerly; the body is read
lazily, only when a handler asks for it.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /files/foo.txt HTTP/1.1\\r\\n       ◄── request line            │
    │   ─┬── ──────┬─────── ───┬────                                       │
    │    │         │           │                                           │
    │  Method     Path      Version (kept, not validated)                  │
    │                                                                      │
    │   Host: localhost:4221\\r\\n               ◄── headers                 │
    │   User-Agent: curl/8.4.0\\r\\n                 Name: Value             │
    │   Content-Length: 4\\r\\n                                              │
    │   \\r\\n                                   ◄── end of headers          │
    │                                                                      │
    │   abcd                                   ◄── body, exactly           │
    │                                              Content-Length bytes    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READER STATE MACHINE
=============================================================================

    REQUEST_LINE ──► HEADERS ──► (headers complete) ──► HTTPRequest
         │              │                                    │
         │              │                      handler calls read_body()
         ▼              ▼                                    ▼
    MalformedRequestLine  StreamClosed                  BODY (lazy)
                        HeaderTooLarge                       │
                                                             ▼
                                              TruncatedBody / InvalidContentLength

=============================================================================
PARSING RULES
=============================================================================

1. REQUEST LINE: split on whitespace, at least 3 tokens. Extra tokens are
   ignored. Unknown methods are passed through, the router decides.

2. HEADERS: split on the FIRST colon only, so "Host: localhost:4221" keeps
   its port. Name and value are trimmed. Lines with no colon are skipped.
   Header names keep the exact casing the client sent; a repeated name
   overwrites the earlier value (last wins).

3. BODY: only Content-Length framing. A missing header means no body; an
   unparseable one is reported as InvalidContentLength when someone asks
   for the length, so the route decides whether that matters.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP PARSING
=============================================================================

Q: "Why not read the body together with the headers?"
A: "Only uploads need it. Reading lazily means a GET never blocks on bytes
   that will never come, and an upload handler can answer 411 before
   touching the stream."

Q: "How do you know where the body ends?"
A: "Content-Length. We read exactly that many bytes and never more. If the
   peer closes before that, the body is truncated and we answer 400."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple
import logging

from ..core.connection import Connection


logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class RequestError(Exception):
    """
    Base class for everything that can go wrong while reading a request.

    Carries the HTTP status code a server could answer with. Errors raised
    before the headers are complete are transport-level: the server drops
    the connection instead of answering.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequestLine(RequestError):
    """Request line missing, unterminated, or with fewer than 3 tokens."""


class StreamClosed(RequestError):
    """The peer closed the stream before the header block ended."""


class HeaderTooLarge(RequestError):
    """A header line ran past the connection's line limit."""


class TruncatedBody(RequestError):
    """The stream ended before Content-Length body bytes arrived."""


class InvalidContentLength(RequestError):
    """Content-Length is present but not a non-negative integer."""


# =============================================================================
# REQUEST
# =============================================================================

@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

        Connection                HTTPRequest                Router
        bytes      ──read──►      dataclass     ──route──►   handler
                                      │
                                      └── read_body() pulls the body
                                          from the same Connection

    Attributes:
        method:         Request method as sent ("GET", "POST", ...)
        path:           Request target as sent, always starts with "/"
        version:        Third request-line token ("HTTP/1.1")
        headers:        Header name -> value, names case-sensitive
        body:           Body bytes once read (None = not read yet)
        client_address: Peer (ip, port), for logging
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    client_address: Tuple[str, int] = ("", 0)

    # Stream the body is read from (None for requests built in memory)
    _stream: Optional[Connection] = field(default=None, repr=False, compare=False)

    @property
    def content_length(self) -> Optional[int]:
        """
        The declared body length.

        Returns:
            None if the header is absent, the length otherwise.

        Raises:
            InvalidContentLength: If the header is not a non-negative
                decimal integer ("abc", "-1", "4.0", "").
        """
        raw = self.headers.get("Content-Length")
        if raw is None:
            return None
        if not (raw.isascii() and raw.isdigit()):
            raise InvalidContentLength(f"Invalid Content-Length: {raw!r}")
        return int(raw)

    @property
    def user_agent(self) -> str:
        """The User-Agent header value, or "" when absent."""
        return self.headers.get("User-Agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (exact-case lookup)."""
        return self.headers.get(name, default)

    def read_body(self) -> bytes:
        """
        Read the request body from the stream.

        Reads exactly content_length bytes, once; later calls return the
        cached bytes. Without a Content-Length header the body is empty.

        Raises:
            InvalidContentLength: If the header cannot be parsed.
            TruncatedBody: If the stream ended early.
        """
        if self.body is not None:
            return self.body

        length = self.content_length
        if not length:
            self.body = b""
            return self.body

        if self._stream is None:
            raise TruncatedBody(f"No stream to read {length} body bytes from")

        data = self._stream.read_exactly(length)
        if len(data) < length:
            raise TruncatedBody(
                f"Incomplete body: expected {length} bytes, got {len(data)}"
            )

        self.body = data
        return self.body


# =============================================================================
# READER
# =============================================================================

class RequestReader:
    """
    Reads request line and headers from a Connection.

    One reader per connection, one request per reader. The reader keeps no
    state between calls beyond the connection it wraps.

    Usage:
        reader = RequestReader(conn)
        request = reader.read_request()
        body = request.read_body()  # only if the handler needs it
    """

    # HTTP/1.1 headers are ISO-8859-1; every byte maps to one character,
    # so len(text) is also the byte length. Splitting and trimming happen
    # on the raw bytes: str.split() also breaks on \xa0, \x85 and \x1c-\x1f,
    # bytes.split() only on ASCII whitespace.
    ENCODING = "latin-1"

    def __init__(self, stream: Connection):
        self.stream = stream

    def read_request(self) -> HTTPRequest:
        """
        Read one request, up to the end of the header block.

        Returns:
            HTTPRequest bound to the stream for lazy body reads.

        Raises:
            MalformedRequestLine: Bad or unterminated request line.
            StreamClosed: Stream ended inside the header block.
            HeaderTooLarge: A header line exceeded the line limit.
        """
        method, path, version = self._read_request_line()
        headers = self._read_headers()

        logger.debug(f"Parsed {method} {path} with {len(headers)} headers")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            client_address=self.stream.address,
            _stream=self.stream,
        )

    def _read_request_line(self) -> Tuple[str, str, str]:
        """
        Read and split the request line.

            b"GET /echo/a\\xa0b HTTP/1.1\\r\\n".split() → [b"GET", b"/echo/a\\xa0b", b"HTTP/1.1"]
        """
        try:
            raw = self.stream.read_line()
        except ValueError as e:
            raise MalformedRequestLine(f"Request line too long: {e}")

        if not raw.endswith(b"\n"):
            raise MalformedRequestLine("Stream closed before end of request line")

        parts = [token.decode(self.ENCODING) for token in raw.split()]
        if len(parts) < 3:
            raise MalformedRequestLine(f"Invalid request line: {raw!r}")

        method, path, version = parts[0], parts[1], parts[2]
        if not path.startswith("/"):
            raise MalformedRequestLine(f"Request target must start with '/': {path!r}")

        return method, path, version

    def _read_headers(self) -> Dict[str, str]:
        """
        Read "Name: Value" lines until the blank line.

        Examples:
            "Host: localhost:4221"   → {"Host": "localhost:4221"}
            "X-Pad:   spaced   "     → {"X-Pad": "spaced"}
            "garbage line"           → skipped
        """
        headers: Dict[str, str] = {}

        while True:
            try:
                raw = self.stream.read_line()
            except ValueError as e:
                raise HeaderTooLarge(f"Header line too long: {e}")

            if not raw.endswith(b"\n"):
                raise StreamClosed("Stream closed before end of headers")

            line = raw.rstrip(b"\r\n")
            if not line:
                return headers

            name, sep, value = line.partition(b":")
            if not sep:
                continue  # No colon: lenient skip

            headers[name.strip().decode(self.ENCODING)] = value.strip().decode(self.ENCODING)


def read_request(stream: Connection) -> HTTPRequest:
    """Read one request from ``stream`` with a fresh RequestReader."""
    return RequestReader(stream).read_request()
