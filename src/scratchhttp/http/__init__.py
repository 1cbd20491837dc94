"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

Everything that knows about HTTP/1.1 framing, and nothing about sockets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request.py   ─── bytes → HTTPRequest  (RequestReader)              │
    │   router.py    ─── HTTPRequest → RouteMatch → handler                │
    │   response.py  ─── HTTPResponse → bytes (to_bytes)                   │
    │   status_codes.py ─ HTTPStatus codes and reason phrases              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestReader,
    read_request,
    # Reader errors
    RequestError,
    MalformedRequestLine,
    StreamClosed,
    HeaderTooLarge,
    TruncatedBody,
    InvalidContentLength,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,               # 200 OK
    created,          # 201 Created
    bad_request,      # 400 Bad Request
    not_found,        # 404 Not Found
    length_required,  # 411 Length Required
    internal_error,   # 500 Internal Server Error
)
from .router import Router, RouteKind, RouteMatch, resolve_route
from .status_codes import HTTPStatus

__all__ = [
    # Request reading
    "HTTPRequest",
    "RequestReader",
    "read_request",
    "RequestError",
    "MalformedRequestLine",
    "StreamClosed",
    "HeaderTooLarge",
    "TruncatedBody",
    "InvalidContentLength",

    # Response writing
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "length_required",
    "internal_error",

    # Routing
    "Router",
    "RouteKind",
    "RouteMatch",
    "resolve_route",

    # Status codes
    "HTTPStatus",
]
