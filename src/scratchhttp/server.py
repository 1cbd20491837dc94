"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the pieces together. For every accepted connection, on a worker
thread:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONE UNIT OF WORK PER CONNECTION                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Connection                                                         │
    │       │                                                              │
    │       ▼                                                              │
    │   RequestReader.read_request()  ── RequestError / timeout ──► drop   │
    │       │                                                   (no reply) │
    │       ▼                                                              │
    │   Router.dispatch(request)      ── handler raised ──────► 500        │
    │       │                                                              │
    │       ▼                                                              │
    │   response.to_bytes() ──► Connection.send_response()                 │
    │       │                                                              │
    │       ▼                                                              │
    │   access log record, close                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No keep-alive: one request, one response, then the connection is closed.
Nothing is shared between connections except the configuration and the
serving directory on disk.

=============================================================================
ERROR LEVELS
=============================================================================

    Transport   bad request line, stream closed inside headers, oversized
                header line, read timeout
                → WARNING, connection dropped without a response

    Framing     missing / invalid Content-Length, truncated body
                → 411 / 400 from the upload handler

    Resource    missing file, failed write
                → 404 / 500 from the file handlers

    Bug         handler raised anything else
                → logged with traceback, bare 500

=============================================================================
"""

import logging
import socket
import time
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .core.connection import ConnectionState
from .http import (
    HTTPRequest, HTTPResponse, RequestReader, RequestError,
    Router, RouteKind, internal_error,
)
from .handlers import (
    FileStore, FileHandler,
    handle_root, handle_echo, handle_user_agent, handle_not_found,
)
from .access_log import AccessLogger


logger = logging.getLogger(__name__)


# Longest wait for in-flight connections at shutdown
SHUTDOWN_TIMEOUT = 10.0


def create_router(directory: str) -> Router:
    """Build the dispatch table for a serving directory."""
    files = FileHandler(FileStore(directory))

    return Router({
        RouteKind.ROOT: handle_root,
        RouteKind.ECHO: handle_echo,
        RouteKind.USER_AGENT: handle_user_agent,
        RouteKind.FILE_GET: files.handle_get,
        RouteKind.FILE_POST: files.handle_post,
        RouteKind.NOT_FOUND: handle_not_found,
    })


class HTTPServer:
    """
    HTTP/1.1 server over raw sockets.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=4221, directory="/tmp/files"))
        server.run()   # Blocks until SIGINT / SIGTERM or shutdown()

    From another thread (tests):

        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready()
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the HTTP server.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._router = create_router(self.config.directory)
        self._access_log = AccessLogger(log_format=self.config.log_format)

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def router(self) -> Router:
        return self._router

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Returns after shutdown() or a SIGINT/SIGTERM, once in-flight
        connections have finished (bounded by SHUTDOWN_TIMEOUT).

        Raises:
            OSError: If the address cannot be bound.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.directory!r} on {self.config.host}:{self.config.port}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Stop accepting connections; run() returns once drained."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is closed. False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("scratchhttp").setLevel(level)

    def _shutdown(self):
        """Let in-flight connections finish, then stop the workers."""
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=SHUTDOWN_TIMEOUT)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a connection for a worker (called by the accept loop)."""
        try:
            self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Rejecting connection: {e}")
            conn.close()

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a parsed request and run its handler.

        An exception from a handler becomes a bare 500. A socket timeout
        while a handler reads the body is re-raised: the connection is
        dropped, not answered.
        """
        try:
            return self._router.dispatch(request)
        except socket.timeout:
            raise
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error()

    def _process_connection(self, conn: Connection):
        """Run one read/route/handle/write cycle (runs in worker thread)."""
        with conn:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST LINE AND HEADERS
            # ─────────────────────────────────────────────────────────────
            try:
                request = RequestReader(conn).read_request()
            except RequestError as e:
                logger.warning(f"[{conn.id}] Dropping connection from {conn.client_ip}: {e}")
                return
            except socket.timeout:
                logger.warning(f"[{conn.id}] Timed out reading request from {conn.client_ip}")
                return
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            start_time = time.time()

            # ─────────────────────────────────────────────────────────────
            # ROUTE AND HANDLE
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.PROCESSING
            try:
                response = self.handle_request(request)
            except socket.timeout:
                logger.warning(f"[{conn.id}] Timed out reading body from {conn.client_ip}")
                return

            # ─────────────────────────────────────────────────────────────
            # SEND RESPONSE
            # ─────────────────────────────────────────────────────────────
            if not conn.send_response(response.to_bytes()):
                return

            duration_ms = (time.time() - start_time) * 1000
            self._access_log.log(request, response, duration_ms, connection_id=conn.id)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Component wiring: config, socket server, thread pool, router
# 2. Per-connection flow: read → route → handle → write → log → close
# 3. Error levels: transport drops, framing/resource statuses, 500 on bugs
# 4. Lifecycle: run() blocks, shutdown() or a signal stops it gracefully
# =============================================================================
