"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to one of a fixed, closed set of behaviours, then calls
the handler registered for that behaviour.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /echo/hello                                                    │
    │        │                                                             │
    │        ▼                                                             │
    │   resolve_route("GET", "/echo/hello")       (pure, no I/O)           │
    │        │                                                             │
    │        ▼                                                             │
    │   RouteMatch(kind=RouteKind.ECHO, param="hello")                     │
    │        │                                                             │
    │        ▼                                                             │
    │   Router.dispatch(): handlers[RouteKind.ECHO](request, match)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCH ORDER (first match wins)
=============================================================================

    ┌───┬────────────────────────────────────────┬─────────────────────────┐
    │ # │ Condition                              │ Outcome                 │
    ├───┼────────────────────────────────────────┼─────────────────────────┤
    │ 1 │ POST and path starts with /files/      │ FILE_POST(rest of path) │
    │ 2 │ path == /user-agent                    │ USER_AGENT              │
    │ 3 │ path starts with /files/               │ FILE_GET(rest of path)  │
    │ 4 │ path starts with /echo/                │ ECHO(rest of path)      │
    │ 5 │ path == /                              │ ROOT                    │
    │ 6 │ anything else                          │ NOT_FOUND               │
    └───┴────────────────────────────────────────┴─────────────────────────┘

Rule 3 does not look at the method: GET, HEAD, DELETE or "FOO" on /files/x
all read the file. Only POST uploads.

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "Why an enum plus a table instead of decorators and regex patterns?"
A: "The set of behaviours is closed. An enum makes selection total: every
   request gets exactly one kind, and the table is checked up front to
   cover every kind. Resolution stays a pure function that tests can
   hammer without sockets or files."

Q: "How do you handle route conflicts?"
A: "First match wins, so order is the contract. POST on /files/ has to be
   checked before the generic /files/ read."

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Mapping

from .request import HTTPRequest
from .response import HTTPResponse


class RouteKind(Enum):
    """The closed set of behaviours a request can be routed to."""
    ROOT = "root"
    ECHO = "echo"
    USER_AGENT = "user_agent"
    FILE_GET = "file_get"
    FILE_POST = "file_post"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class RouteMatch:
    """
    Result of routing one request.

    ``param`` carries the path remainder for ECHO, FILE_GET and FILE_POST
    (the echo text or the file name, possibly empty) and is "" otherwise.

    Example:
        Path:    /files/foo.txt
        Result:  RouteMatch(kind=RouteKind.FILE_GET, param="foo.txt")
    """
    kind: RouteKind
    param: str = ""


# Handler: takes the request and its match, returns a response
Handler = Callable[[HTTPRequest, RouteMatch], HTTPResponse]


FILES_PREFIX = "/files/"
ECHO_PREFIX = "/echo/"
USER_AGENT_PATH = "/user-agent"
ROOT_PATH = "/"


def resolve_route(method: str, path: str) -> RouteMatch:
    """
    Select the behaviour for a method and path.

    Total and deterministic: any pair of strings maps to exactly one
    RouteMatch, and the same pair always maps to the same one.
    """
    if method == "POST" and path.startswith(FILES_PREFIX):
        return RouteMatch(RouteKind.FILE_POST, path[len(FILES_PREFIX):])

    if path == USER_AGENT_PATH:
        return RouteMatch(RouteKind.USER_AGENT)

    if path.startswith(FILES_PREFIX):
        return RouteMatch(RouteKind.FILE_GET, path[len(FILES_PREFIX):])

    if path.startswith(ECHO_PREFIX):
        return RouteMatch(RouteKind.ECHO, path[len(ECHO_PREFIX):])

    if path == ROOT_PATH:
        return RouteMatch(RouteKind.ROOT)

    return RouteMatch(RouteKind.NOT_FOUND)


class Router:
    """
    Dispatch table from RouteKind to handler.

    Usage:
        router = Router({
            RouteKind.ROOT: handle_root,
            RouteKind.ECHO: handle_echo,
            ...
        })
        response = router.dispatch(request)

    Raises:
        ValueError: If the table leaves any RouteKind without a handler.
    """

    def __init__(self, handlers: Mapping[RouteKind, Handler]):
        missing = [kind.value for kind in RouteKind if kind not in handlers]
        if missing:
            raise ValueError(f"No handler for route kinds: {', '.join(missing)}")

        self._handlers: Dict[RouteKind, Handler] = dict(handlers)

    def resolve(self, request: HTTPRequest) -> RouteMatch:
        """Route a parsed request."""
        return resolve_route(request.method, request.path)

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """Route the request and run the matching handler."""
        match = self.resolve(request)
        handler = self._handlers[match.kind]
        return handler(request, match)
