"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m scratchhttp --directory /tmp/files
    scratchhttp -d /tmp/files -p 4221 --log-format json

Flags override HTTP_* environment variables, which override the defaults
in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .server import HTTPServer
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS


def _optional_int(value: str) -> Optional[int]:
    """argparse type: an int, or "none"/"unbounded" for no limit."""
    if value.lower() in ("none", "unbounded"):
        return None
    return int(value)


def _optional_float(value: str) -> Optional[float]:
    """argparse type: a float, or "none" to disable."""
    if value.lower() == "none":
        return None
    return float(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scratchhttp",
        description="HTTP/1.1 server over raw sockets: echo, user-agent and file upload/download",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scratchhttp                           # Serve . on 0.0.0.0:4221
  python -m scratchhttp --directory /tmp/files    # Serve /tmp/files
  python -m scratchhttp --port 8080 --workers 8   # Other port, 8 warm threads
  python -m scratchhttp --max-workers 64          # Cap worker threads
  python -m scratchhttp --timeout none            # Never time out clients
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Serving directory for /files/ (default: .)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on, 0 for any free port (default: 4221)"
    )

    parser.add_argument(
        "--timeout",
        type=_optional_float,
        default=argparse.SUPPRESS,
        help="Client socket timeout in seconds, 'none' to disable (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads started up front (default: 4)"
    )

    parser.add_argument(
        "--max-workers",
        type=_optional_int,
        default=argparse.SUPPRESS,
        help="Upper bound on worker threads (default: unbounded)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"scratchhttp {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Merge parsed flags over the environment.

    Flags left unset keep whatever ServerConfig.from_env() produced. The
    timeout and max-workers flags can be set to None explicitly, so they
    are only applied when present on the namespace.
    """
    config = ServerConfig.from_env()

    if args.directory is not None:
        config.directory = args.directory
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.min_workers = args.workers
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    if hasattr(args, "timeout"):
        config.timeout = args.timeout
    if hasattr(args, "max_workers"):
        config.max_workers = args.max_workers

    return config


def main(argv: Optional[Sequence[str]] = None):
    """
    Main CLI entry point.

    Exits with status 1 on a bad configuration (environment or flags) or
    when the server cannot start.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        server = HTTPServer(config)
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
