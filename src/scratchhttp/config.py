"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every setting the server reads, in one dataclass.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. CLI flags          --port 8080 --directory /tmp/files           │
    │          │  (override)                                              │
    │          ▼                                                          │
    │   2. Environment        HTTP_PORT=8080 HTTP_DIRECTORY=/tmp/files     │
    │          │  (override)                                              │
    │          ▼                                                          │
    │   3. Defaults           the field defaults below                    │
    └─────────────────────────────────────────────────────────────────────┘

ServerConfig.from_env() merges 2 into 3; __main__ then applies 1.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _optional_number(raw: Optional[str], convert, default):
    """
    Parse an optional numeric environment value.

    Unset keeps the default; "", "none" and "unbounded" mean None.
    """
    if raw is None:
        return default
    if raw.strip().lower() in ("", "none", "unbounded"):
        return None
    return convert(raw)


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, max_line_size

    FILES
    - directory

    THREADING SETTINGS
    - min_workers, max_workers

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces
    - "127.0.0.1" - Localhost only
    """

    port: int = 4221
    """
    The port number to listen on. 0 lets the OS pick a free port; the
    bound port is then available from HTTPServer.address.
    """

    backlog: int = 128
    """
    Maximum number of queued, not yet accepted connections.
    """

    buffer_size: int = 8192
    """
    Largest single recv() in bytes.
    """

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    A client that stalls longer is dropped without a response.
    None = wait forever (a stalled client holds its worker).
    """

    max_line_size: int = 8192
    """
    Longest accepted request line or header line, in bytes.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """
    Serving directory for GET /files/{name} and POST /files/{name}.
    Must exist; uploads never create it.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """
    Worker threads created at startup.
    """

    max_workers: Optional[int] = None
    """
    Upper bound on worker threads.
    None = one worker per concurrent connection, no bound.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: 'text' (Apache style) or 'json' (one object per line).
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST         Bind address (default: 0.0.0.0)
        HTTP_PORT         Port (default: 4221)
        HTTP_DIRECTORY    Serving directory (default: .)
        HTTP_WORKERS      Startup worker threads (default: 4)
        HTTP_MAX_WORKERS  Worker cap, "none" for unbounded (default: none)
        HTTP_TIMEOUT      Socket timeout seconds, "none" to disable (default: 30)
        HTTP_LOG_LEVEL    Logging level (default: INFO)
        HTTP_LOG_FORMAT   Access log format, text or json (default: text)

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        defaults = cls()
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            directory=os.getenv("HTTP_DIRECTORY", defaults.directory),
            min_workers=int(os.getenv("HTTP_WORKERS", str(defaults.min_workers))),
            max_workers=_optional_number(
                os.getenv("HTTP_MAX_WORKERS"), int, defaults.max_workers
            ),
            timeout=_optional_number(
                os.getenv("HTTP_TIMEOUT"), float, defaults.timeout
            ),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value stops the server before it binds.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers is not None and self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_line_size < 256:
            raise ValueError("max_line_size must be >= 256")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not os.path.isdir(self.directory):
            raise ValueError(f"Serving directory does not exist: {self.directory}")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Typed configuration with a dataclass
# 2. Environment variable overrides (from_env)
# 3. Validation at startup (validate)
#
# The serving directory is the only setting request handling depends on;
# everything else is transport and logging plumbing.
# =============================================================================
