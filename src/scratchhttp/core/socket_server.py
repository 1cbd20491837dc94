"""
=============================================================================
SOCKET SERVER: LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the listening socket. Binds, listens, accepts, wraps every accepted
socket in a Connection and hands it to a callback. What happens to the
connection after that is the caller's business.

=============================================================================
SOCKET LIFECYCLE (SERVER SIDE)
=============================================================================

    socket() ──► setsockopt() ──► bind() ──► listen() ──► accept() ─┐
                                                            ▲       │
                                                            └───────┘
                                                         one new socket
                                                         per client

    ┌─────────────────────────────────────────────────────────────────────┐
    │  accept() runs with a 1 second timeout. Each timeout is a chance to │
    │  look at the running flag, which is how shutdown() from a signal    │
    │  handler or another thread stops the loop.                          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EPHEMERAL PORTS
=============================================================================

Binding port 0 asks the OS for any free port. ``address`` reports the
address actually bound (via getsockname), and ``wait_until_ready()`` lets
another thread block until the socket is listening:

    server = SocketServer(ServerConfig(port=0))
    threading.Thread(target=server.start, args=(handler,)).start()
    server.wait_until_ready()
    host, port = server.address   # e.g. ("127.0.0.1", 53817)

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        The socket is not created here; start() does that.
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening / once the loop has stopped
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        # Handlers we replaced, restored on cleanup
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Once listening this is the real address, so a configured port of 0
        reads back as the port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # ─────────────────────────────────────────────────────────────────
        # SOCKET OPTIONS
        # ─────────────────────────────────────────────────────────────────
        # SO_REUSEADDR: rebind immediately after a restart (TIME_WAIT)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # TCP_NODELAY: send small responses right away (no Nagle delay)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() timeout so the loop can notice shutdown
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers for graceful shutdown.

        signal.signal() only works in the main thread, so a server started
        from any other thread (tests, embedding) leaves signals alone.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        Blocks until shutdown() is called.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._shutdown_event.clear()
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            self._shutdown_event.set()
            raise

        self._socket.listen(self.config.backlog)
        self._running = True

        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown.

            while running:
                accept()  ── timeout ──► loop again
                    │
                    ▼
                Connection(...) ──► connection_handler(conn)
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Socket error, usually the socket being closed on shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_line_size=self.config.max_line_size,
            )

            connection_handler(conn)

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from a signal handler, another thread, or repeatedly.
        The loop notices within one accept() timeout.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Restore signals and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is listening.

        Returns:
            True once listening, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the accept loop to exit and the socket to close.

        Returns:
            True if shutdown completed, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
