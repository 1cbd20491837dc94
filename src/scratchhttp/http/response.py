"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Builds HTTP/1.1 responses and serializes them to wire bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │    HTTP/1.1 200 OK\\r\\n                                         │ │
    │  │    ────┬─── ─┬─ ─┬─                                            │ │
    │  │    Version  Code Phrase                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (zero or more, in the order they were added) ─────────┐ │
    │  │    Content-Type: text/plain\\r\\n                                │ │
    │  │    Content-Length: 5\\r\\n                                       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \\r\\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing is added behind the handler's back: no Date, no Server, no
automatic Content-Length. A handler that wants a header adds it. Error
responses are therefore just the status line and the empty line:

    b"HTTP/1.1 404 Not Found\\r\\n\\r\\n"

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text("hello")
        .build())

Each method returns ``self`` except build(), which hands back a plain
HTTPResponse.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .status_codes import HTTPStatus


# Wire encoding for the status line, header lines and text bodies. Matches
# the decoding used by the request reader, so echoed text round-trips.
WIRE_ENCODING = "latin-1"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written.

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes

    Headers are an ordered list of (name, value) pairs so they reach the
    wire in exactly the order the handler added them.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 411 Length Required"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def get_header(self, name: str) -> Optional[str]:
        """Return the first value for ``name`` (exact case), or None."""
        for key, value in self.headers:
            if key == name:
                return value
        return None

    def to_bytes(self) -> bytes:
        """
        Serialize the response for Connection.send_response().

            HTTP/1.1 200 OK\\r\\n                ← Status line
            Content-Type: text/plain\\r\\n       ← Headers, in order
            Content-Length: 5\\r\\n
            \\r\\n                               ← Empty line
            hello                              ← Body bytes
        """
        lines = [self.status_line]
        for name, value in self.headers:
            lines.append(f"{name}: {value}")

        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode(WIRE_ENCODING) + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Usage:
        (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(data)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: List[Tuple[str, str]] = []
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Append a response header. Order of calls is wire order."""
        self._headers.append((name, value))
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body.

        Strings are encoded with the wire encoding (latin-1), one byte per
        character.
        """
        if isinstance(body, str):
            body = body.encode(WIRE_ENCODING)
        self._body = body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """
        Set a text/plain body with its Content-Length.

            .text("hello")  →  Content-Type: text/plain
                               Content-Length: 5
        """
        self.body(text)
        self.header("Content-Type", "text/plain")
        self.header("Content-Length", str(len(self._body)))
        return self

    def file(self, content: bytes) -> "ResponseBuilder":
        """Set raw file bytes as an application/octet-stream body."""
        self._body = content
        self.header("Content-Type", "application/octet-stream")
        self.header("Content-Length", str(len(content)))
        return self

    def build(self) -> HTTPResponse:
        """Build the final HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=list(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the bare responses: status line, empty line, nothing else.
#
#     return not_found()      → b"HTTP/1.1 404 Not Found\r\n\r\n"
#
# =============================================================================

def empty(status: HTTPStatus) -> HTTPResponse:
    """Create a response with the given status, no headers and no body."""
    return HTTPResponse(status=status)


def ok() -> HTTPResponse:
    """Create a bare 200 OK response."""
    return empty(HTTPStatus.OK)


def created() -> HTTPResponse:
    """Create a bare 201 Created response (upload stored)."""
    return empty(HTTPStatus.CREATED)


def bad_request() -> HTTPResponse:
    """Create a bare 400 Bad Request response."""
    return empty(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    """Create a bare 404 Not Found response."""
    return empty(HTTPStatus.NOT_FOUND)


def length_required() -> HTTPResponse:
    """Create a bare 411 Length Required response."""
    return empty(HTTPStatus.LENGTH_REQUIRED)


def internal_error() -> HTTPResponse:
    """
    Create a bare 500 Internal Server Error response.

    Used both for failed uploads and for handlers that raised.
    """
    return empty(HTTPStatus.INTERNAL_SERVER_ERROR)
