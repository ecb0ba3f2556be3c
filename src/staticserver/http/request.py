"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes of one HTTP/1.1 request into an HTTPRequest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       WHAT WE READ                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /docs/index.html HTTP/1.1\r\n        ← request line            │
    │   Host: example.com\r\n                                              │
    │   Cache-Control: max-age=60\r\n            ← revalidation hint      │
    │   If-Modified-Since: Wed, 15 Jun ...\r\n   ← conditional GET        │
    │   X-Forwarded-For: 10.0.0.7\r\n            ← proxy detection        │
    │   \r\n                                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The static responder only looks at the path and a handful of headers.
The method is parsed and validated but never branched on: GET, HEAD and
friends are all served the same way.

Header names are normalized to lowercase at parse time (RFC 7230 says
they are case-insensitive), so lookups never need .lower().

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code the server should answer with:

        400 Bad Request                 Malformed request syntax
        405 Method Not Allowed          Unknown method
        413 Payload Too Large           Request exceeds size limit
        505 HTTP Version Not Supported  Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         GET, HEAD, POST, ...
        path:           URL-decoded path without query string.
        version:        "HTTP/1.1" or "HTTP/1.0".
        headers:        Lowercase header name → value.
        query_params:   Parsed query string, name → list of values.
        body:           Raw body bytes (normally empty for static GETs).
        client_address: (ip, port) of the client, for logging.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def cache_control(self) -> Optional[str]:
        """Raw Cache-Control request header, None when absent."""
        return self.headers.get("cache-control")

    @property
    def if_modified_since(self) -> Optional[str]:
        """Raw If-Modified-Since header, None when absent."""
        return self.headers.get("if-modified-since")

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. Size check              too large?        → 413
        2. Split at \\r\\n\\r\\n       no terminator?    → 400
        3. Request line            bad syntax        → 400
                                   unknown method    → 405
                                   unknown version   → 505
        4. Headers                 lowercased, duplicates comma-joined
        5. Body                    exactly Content-Length bytes

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Latin-1 never fails and round-trips every byte of a header
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0 or len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            Tuple of (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line[:100]}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        # First line of defence only; the responder re-checks containment
        # after resolving symlinks.
        if ".." in path.split("/") or "\x00" in path:
            raise HTTPParseError("Invalid path", status_code=400)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dictionary with lowercase names.

        Continuation lines (leading whitespace) extend the previous header.
        Repeated headers are joined with ", " per RFC 7230.
        Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
