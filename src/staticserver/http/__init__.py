"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Bytes in, bytes out. Nothing here knows about files or caching.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest (or HTTPParseError)        │
    │ response.py      ResponseWriter: headers, then streamed body        │
    │ status_codes.py  HTTPStatus enum and reason phrases                 │
    │ mime_types.py    extension → Content-Type                           │
    │ dates.py         HTTP-date formatting and parsing                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .dates import format_http_date, parse_http_date
from .mime_types import content_type_for, get_content_type, get_mime_type
from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import HeadersSentError, ResponseWriter
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response writing
    "ResponseWriter",
    "HeadersSentError",

    # Status codes
    "HTTPStatus",
    "reason_phrase",

    # MIME types
    "content_type_for",
    "get_mime_type",
    "get_content_type",

    # Dates
    "format_http_date",
    "parse_http_date",
]
