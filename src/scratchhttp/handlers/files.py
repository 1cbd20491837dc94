"""
=============================================================================
FILE HANDLERS
=============================================================================

Serves files from, and stores uploads into, one serving directory.

    GET  /files/{name}   → 200 application/octet-stream, or 404
    POST /files/{name}   → 201 on success, 411 / 400 / 500 otherwise

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The router hands over whatever follows "/files/", unchecked. FileStore is
the one place that turns a name into a filesystem path, and it refuses any
name that resolves outside the serving directory:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /files/../../etc/passwd HTTP/1.1                               │
    │                                                                      │
    │  root       = /srv/files                                             │
    │  candidate  = (root / "../../etc/passwd").resolve()                  │
    │             = /etc/passwd                                            │
    │  candidate.relative_to(root)  →  ValueError  →  refused              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

resolve() also follows symlinks, so a link inside the directory that points
outside it is refused the same way.

=============================================================================
UPLOAD STATUS DECISIONS
=============================================================================

    Content-Length missing ─────────────────────────► 411 Length Required
    Content-Length not a non-negative integer ──────► 400 Bad Request
    Stream ended before Content-Length bytes ───────► 400 Bad Request
    Write failed (escape, directory, no parent, ...) ► 500 Internal Error
    Written ────────────────────────────────────────► 201 Created

Uploads overwrite. Two concurrent uploads to the same name race and the
last writer wins; there is no locking.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.request import HTTPRequest, InvalidContentLength, TruncatedBody
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    created, bad_request, not_found, length_required, internal_error,
)
from ..http.router import RouteMatch


logger = logging.getLogger(__name__)


class FileStore:
    """
    Filesystem access confined to one root directory.

    Usage:
        store = FileStore("/srv/files")
        store.write("foo.txt", b"abcd")
        store.read("foo.txt")  # b"abcd"
    """

    def __init__(self, root_dir: Union[str, Path]):
        # Resolve once so the containment check compares absolute paths
        self.root_dir = Path(root_dir).resolve()

    def resolve(self, name: str) -> Path:
        """
        Map a file name to a path inside the root directory.

        Raises:
            PermissionError: If the name resolves outside the root, or is
                not a usable path at all (embedded NUL byte).
        """
        try:
            full_path = (self.root_dir / name).resolve()
            full_path.relative_to(self.root_dir)
        except ValueError:
            raise PermissionError(f"Path escapes serving directory: {name!r}")
        return full_path

    def read(self, name: str) -> bytes:
        """
        Read a whole file.

        Raises:
            FileNotFoundError: Missing file, a directory, or a name outside
                the root directory.
            OSError: Any other read failure.
        """
        try:
            full_path = self.resolve(name)
        except PermissionError:
            raise FileNotFoundError(f"No such file: {name!r}")

        if not full_path.is_file():
            raise FileNotFoundError(f"No such file: {name!r}")

        return full_path.read_bytes()

    def write(self, name: str, data: bytes) -> None:
        """
        Create or overwrite a file with ``data``.

        Parent directories are not created.

        Raises:
            PermissionError: If the name resolves outside the root.
            OSError: Any write failure (directory target, missing parent,
                permissions, disk full).
        """
        full_path = self.resolve(name)
        full_path.write_bytes(data)


class FileHandler:
    """
    GET and POST handlers for /files/{name}, bound to one FileStore.

    Usage:
        files = FileHandler(FileStore(config.directory))
        Router({RouteKind.FILE_GET: files.handle_get,
                RouteKind.FILE_POST: files.handle_post, ...})
    """

    def __init__(self, store: FileStore):
        self.store = store

    def handle_get(self, request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
        """Serve a file; anything that prevents reading it is a 404."""
        try:
            content = self.store.read(match.param)
        except OSError as e:
            logger.debug(f"File read failed for {match.param!r}: {e}")
            return not_found()

        return ResponseBuilder().file(content).build()

    def handle_post(self, request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
        """Store the request body under the given name."""
        # ─────────────────────────────────────────────────────────────────
        # BODY FRAMING
        # ─────────────────────────────────────────────────────────────────
        try:
            length = request.content_length
        except InvalidContentLength as e:
            logger.info(f"Upload rejected: {e}")
            return bad_request()

        if length is None:
            return length_required()

        try:
            body = request.read_body()
        except TruncatedBody as e:
            logger.info(f"Upload rejected: {e}")
            return bad_request()

        # ─────────────────────────────────────────────────────────────────
        # WRITE
        # ─────────────────────────────────────────────────────────────────
        try:
            self.store.write(match.param, body)
        except OSError as e:
            logger.error(f"Upload write failed for {match.param!r}: {e}")
            return internal_error()

        logger.debug(f"Stored {len(body)} bytes as {match.param!r}")
        return created()
