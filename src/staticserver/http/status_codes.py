"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static file server actually sends, with their reason
phrases (RFC 7231).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 STATUS CODES USED BY THIS SERVER                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                  File, default document or listing         │
    │   301/302/307/308         redirect()                                │
    │   304 Not Modified        If-Modified-Since still within max-age    │
    │   400 Bad Request         Malformed request line                    │
    │   403 Forbidden           Path escapes the root directory           │
    │   404 Not Found           Missing root, file or directory           │
    │   500 Internal Error      Unexpected filesystem or encoding error   │
    │   503 Unavailable         Worker queue full                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Responders may still send any integer status; reason_phrase() falls back
to "Unknown" for codes not listed here.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:
        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304          # Cached version is still valid
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. 'Not Found'."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.PERMANENT_REDIRECT: "Permanent Redirect",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """
    Reason phrase for any integer status code.

    Unlisted codes (e.g. 418 or 299 from a caller) get
    "Unknown" instead of raising.
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
