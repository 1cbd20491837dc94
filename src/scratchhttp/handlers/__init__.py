"""
=============================================================================
HANDLERS MODULE
=============================================================================

One handler per RouteKind. A handler takes the parsed request and its
RouteMatch and returns an HTTPResponse:

    Handler = Callable[[HTTPRequest, RouteMatch], HTTPResponse]

    ┌──────────────┬───────────────────────────────┬──────────────────────┐
    │ RouteKind    │ Handler                       │ Needs                │
    ├──────────────┼───────────────────────────────┼──────────────────────┤
    │ ROOT         │ handle_root                   │ nothing              │
    │ ECHO         │ handle_echo                   │ path remainder       │
    │ USER_AGENT   │ handle_user_agent             │ User-Agent header    │
    │ FILE_GET     │ FileHandler.handle_get        │ FileStore            │
    │ FILE_POST    │ FileHandler.handle_post       │ FileStore, body      │
    │ NOT_FOUND    │ handle_not_found              │ nothing              │
    └──────────────┴───────────────────────────────┴──────────────────────┘

=============================================================================
"""

from .basic import handle_root, handle_echo, handle_user_agent, handle_not_found
from .files import FileStore, FileHandler

__all__ = [
    "handle_root",
    "handle_echo",
    "handle_user_agent",
    "handle_not_found",
    "FileStore",
    "FileHandler",
]
