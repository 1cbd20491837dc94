"""
=============================================================================
CORE MODULE
=============================================================================

Transport plumbing: sockets, connections and worker threads. Nothing in
here knows about HTTP.

    SocketServer ── accept() ──► Connection ── submit() ──► ThreadPool
                                                              │
                                                    worker runs the
                                                    connection handler

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Listening socket and accept loop
    "Connection",       # Buffered byte stream over one client socket
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Worker threads, one task per connection
]
