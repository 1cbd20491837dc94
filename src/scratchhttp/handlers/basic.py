"""
Handlers that need nothing but the request itself.

    GET /                 → 200, no headers, empty body
    GET /echo/{text}      → 200, text/plain, body = text
    GET /user-agent       → 200, text/plain, body = User-Agent header
    anything unmatched    → 404, no headers, empty body
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, ok, not_found
from ..http.router import RouteMatch


logger = logging.getLogger(__name__)


def handle_root(request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
    """Answer the root path with a bare 200."""
    return ok()


def handle_echo(request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
    """
    Echo the path remainder back as plain text.

        GET /echo/hello   → "hello"   (Content-Length: 5)
        GET /echo/a/b     → "a/b"
        GET /echo/        → ""        (Content-Length: 0)

    The text is returned verbatim: no URL decoding.
    """
    return ResponseBuilder().text(match.param).build()


def handle_user_agent(request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
    """Reflect the User-Agent header, or an empty body if it was not sent."""
    return ResponseBuilder().text(request.user_agent).build()


def handle_not_found(request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
    logger.debug(f"No route for {request.method} {request.path}")
    return not_found()
