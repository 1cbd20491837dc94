"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can answer with, and their reason phrases.

=============================================================================
WHERE EACH CODE COMES FROM
=============================================================================

    ┌──────┬─────────────────────────┬──────────────────────────────────────┐
    │ Code │ Phrase                  │ Produced by                          │
    ├──────┼─────────────────────────┼──────────────────────────────────────┤
    │ 200  │ OK                      │ /, /echo/*, /user-agent, GET /files/*│
    │ 201  │ Created                 │ POST /files/* (upload stored)        │
    │ 400  │ Bad Request             │ bad Content-Length, truncated body   │
    │ 404  │ Not Found               │ unknown route, missing file          │
    │ 411  │ Length Required         │ POST /files/* with no Content-Length │
    │ 500  │ Internal Server Error   │ upload write failure, handler crash  │
    └──────┴─────────────────────────┴──────────────────────────────────────┘

Status classes (first digit):

    1xx  Informational   request received, continuing
    2xx  Success         request understood and accepted
    3xx  Redirection     further action needed
    4xx  Client error    the request is at fault
    5xx  Server error    the server failed a valid request

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.LENGTH_REQUIRED.phrase
        'Length Required'
    """

    # 2xx SUCCESS
    OK = 200                        # Standard success response
    CREATED = 201                   # Upload stored

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400               # Body framing was wrong
    NOT_FOUND = 404                 # No route, or no such file
    LENGTH_REQUIRED = 411           # Upload without Content-Length

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500     # Write failed / handler raised

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

        The reason phrase is the text after the code in the status line:

            HTTP/1.1 411 Length Required
                     ─── ───────────────
                      │         │
                      │         └── Reason phrase
                      └──────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.LENGTH_REQUIRED: "Length Required",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
