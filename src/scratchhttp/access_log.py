"""
=============================================================================
ACCESS LOG
=============================================================================

One record per answered request, on its own logger so it can be routed
separately from diagnostics:

    logging.getLogger("scratchhttp.access").addHandler(file_handler)

=============================================================================
FORMATS
=============================================================================

    text (Apache style):
        127.0.0.1 - - [18/Oct/2026:10:00:00 +0000] "GET /echo/hi HTTP/1.1" 200 2 0.41ms

    json (one object per line, for log aggregators):
        {"connection_id": "1a2b3c4d", "method": "GET", "path": "/echo/hi",
         "version": "HTTP/1.1", "client_ip": "127.0.0.1", "user_agent": "-",
         "status_code": 200, "content_length": 2, "duration_ms": 0.41,
         "timestamp": "18/Oct/2026:10:00:00 +0000"}

Connections dropped before a full request arrived never produce an access
record; they show up as warnings on the server logger instead.

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass, asdict

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("scratchhttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    Fields:
        connection_id:  Id of the connection, matches "[id]" in other logs
        method:         HTTP method as sent
        path:           Request target as sent
        version:        HTTP version token as sent
        client_ip:      Peer IP address
        user_agent:     User-Agent header, "-" when absent
        status_code:    Response status
        content_length: Response body size in bytes
        duration_ms:    Time from request parsed to response sent
        timestamp:      When the record was made
    """

    connection_id: str
    method: str
    path: str
    version: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def from_exchange(
        cls,
        request: HTTPRequest,
        response: HTTPResponse,
        duration_ms: float,
        connection_id: str = "-",
    ) -> "RequestLog":
        """Build a record from a request and the response sent for it."""
        return cls(
            connection_id=connection_id,
            method=request.method,
            path=request.path,
            version=request.version,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_dict(self) -> dict:
        """Convert to a dict for JSON serialization."""
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Format as an Apache style access line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog records in the configured format.

    Usage:
        access = AccessLogger(log_format="json")
        access.log(request, response, duration_ms=1.2, connection_id=conn.id)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown access log format: {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def log(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        duration_ms: float,
        connection_id: str = "-",
    ) -> RequestLog:
        """Build, emit and return the record for one request."""
        entry = RequestLog.from_exchange(request, response, duration_ms, connection_id)
        logger.log(self.log_level, self.format(entry))
        return entry
