"""
=============================================================================
SCRATCHHTTP: AN HTTP/1.1 SERVER OVER RAW SOCKETS
=============================================================================

A small HTTP/1.1 server written directly against the socket API: no
http.server, no framework. It reads requests byte by byte, routes them to
a fixed set of handlers and writes responses by hand.

=============================================================================
ROUTES
=============================================================================

    GET  /                  200, empty body
    GET  /echo/{text}       200, text/plain body = {text}
    GET  /user-agent        200, text/plain body = User-Agent header
    GET  /files/{name}      200 application/octet-stream, or 404
    POST /files/{name}      201 stored; 411 / 400 / 500 on failure
    anything else           404

=============================================================================
PACKAGE LAYOUT
=============================================================================

    scratchhttp/
    ├── core/              Sockets, connections, worker threads
    │   ├── connection.py
    │   ├── socket_server.py
    │   └── thread_pool.py
    ├── http/              HTTP framing, no sockets
    │   ├── request.py
    │   ├── response.py
    │   ├── router.py
    │   └── status_codes.py
    ├── handlers/          One handler per route kind
    │   ├── basic.py
    │   └── files.py
    ├── access_log.py      Per-request access records
    ├── config.py          ServerConfig
    ├── server.py          HTTPServer: wires it all together
    └── __main__.py        CLI

=============================================================================
QUICK START
=============================================================================

    from scratchhttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=4221, directory="/tmp/files"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
