"""
=============================================================================
STATIC RESPONDER
=============================================================================

Answers one request from a directory on disk, applying the cache policy
engine on the way out.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /static/..%2f..%2fetc/passwd HTTP/1.1                          │
    │                                                                      │
    │  If not protected, this could read:                                 │
    │  /srv/www/../../etc/passwd  →  /etc/passwd                          │
    │                                                                      │
    │  Protection:                                                         │
    │  1. Resolve the full path (follow .. and symlinks)                  │
    │  2. Check it is still inside the root directory                     │
    │  3. If not, 403 Forbidden before touching the file                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    PYTHON PROTECTION:

        full_path = (root_dir / user_input).resolve()
        full_path.relative_to(root_dir)  # Raises if outside root!

=============================================================================
SERVING A FILE
=============================================================================

    stream_file(path)
        │
        ├── 1. effective max-age  (override → request → discovered → default)
        ├── 2. If-Modified-Since still fresh?  ──yes──► 304 "Not Modified"
        │                                               (file never opened)
        ├── 3. open file, pick Content-Type from the extension
        ├── 4. HTML with no known policy?  wrap chunks in a MetaScanner
        ├── 5. read the first chunk (may discover a tag)
        ├── 6. effective max-age again, then headers:
        │        Content-Type, Content-Length,
        │        Cache-Control: max-age=N + Last-Modified   (only if N > 0)
        └── 7. stream the chunks in order

A page whose meta tag sits in its first chunk gets its own policy on the
very first response. A tag found later only helps the next request for
the same file, because the headers are already on the wire.

=============================================================================
ERRORS
=============================================================================

    Root missing              404  "Directory not found"
    Outside root              403  "Access denied"
    Path missing              404  "404 Not Found"
    Not a regular file        404  "404 Not Found"   (FIFO, socket, device)
    Unexpected OS error       500  "Internal server error"
    File missing or special   404  "File not found"    (stream_file)
    Read error before send    500  "Server error"
    Read error mid-stream     connection closed (headers already sent)
    Client went away          stop quietly

Error pages are fixed strings. Paths and exception text go to the log,
never to the client.

=============================================================================
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional, Union

from ..cache.meta_scanner import MetaScanner
from ..cache.policy import (
    CachePolicyStore,
    is_conditional_hit,
    max_age_from_directives,
    parse_cache_control_header,
    resolve_max_age,
)
from ..config import ServerConfig
from ..http.dates import format_http_date
from ..http.mime_types import get_content_type, get_mime_type
from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus, reason_phrase
from .listing import find_default_document, list_directory, render_directory_listing


logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

CORS_ALLOW_HEADERS = "Content-type,Content-Length,Authorization,Accept,X-Requested-Width"
CORS_ALLOW_METHODS = "PUT,POST,GET,DELETE,OPTIONS"


def error_page(status: int, heading: str) -> str:
    """Minimal HTML page for an error response."""
    return (
        f"<html><head><title>{int(status)} {reason_phrase(status)}</title></head>"
        f"<body><center><h1>{heading}</h1></center></body></html>"
    )


class Responder:
    """
    Per-exchange facade over a ResponseWriter.

    =========================================================================
    USAGE
    =========================================================================

        store = CachePolicyStore()                 # one per server

        responder = Responder(request, response, store, config)
        responder.serve_directory_or_file("/srv/www", request.path)

        # or pick the file yourself and force a policy
        responder.stream_file("/srv/www/app.js", max_age=600)

    Everything a Responder writes goes through `response`. The store is the
    only state shared with other requests.

    =========================================================================
    """

    def __init__(
        self,
        request: HTTPRequest,
        response: ResponseWriter,
        store: CachePolicyStore,
        config: Optional[ServerConfig] = None,
    ):
        self.request = request
        self.response = response
        self.store = store
        self.config = config or ServerConfig()

    # =========================================================================
    # SIMPLE RESPONSES
    # =========================================================================

    def send_body(
        self,
        body: Union[bytes, str, None] = None,
        status: int = HTTPStatus.OK,
        content_type: str = "text/html",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Send a complete response in one go.

        Extra headers are applied after Content-Type, so they can override
        it. An empty body sends the headers only.
        """
        self.response.set_status(status)
        self.response.set_header("Content-Type", content_type)
        for name, value in (headers or {}).items():
            self.response.set_header(name, value)
        self.response.end(body)

    def send_json(self, data: Any, status: int = HTTPStatus.OK) -> None:
        """Serialize data as JSON. Unserializable data becomes a 500."""
        try:
            body = json.dumps(data)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON serialization failed: {e}")
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, "json error")
            return
        self.send_body(body, status, JSON_CONTENT_TYPE)

    def redirect(self, location: str, status: int = HTTPStatus.FOUND) -> None:
        self.response.set_status(status)
        self.response.set_header("Location", location)
        self.response.end()

    def send_error(
        self,
        status: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        message: str = "Internal Server Error",
    ) -> None:
        self.send_body(message, status, TEXT_CONTENT_TYPE)

    def allow_origin(self, domain: str = "*") -> "Responder":
        """Add CORS headers to the pending response."""
        self.response.set_header("Access-Control-Allow-Origin", domain)
        self.response.set_header("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS)
        self.response.set_header("Access-Control-Allow-Methods", CORS_ALLOW_METHODS)
        return self

    def download(self, file_path: Union[str, Path], filename: str = "file") -> None:
        """Stream a file as an attachment instead of displaying it."""
        safe_name = filename.replace("\\", "\\\\").replace('"', '\\"')
        self.response.set_header(
            "Content-Disposition", f'attachment; filename="{safe_name}"'
        )
        self.stream_file(file_path)

    def is_proxied(self) -> bool:
        """True when the request looks like it came through a reverse proxy."""
        headers = self.request.headers
        return bool(
            headers.get("x-forwarded-for")
            or headers.get("x-real-ip")
            or headers.get("x-proxy-server") == "nginx"
        )

    def _send_error_page(self, status: int, heading: str) -> None:
        self.send_body(error_page(status, heading), status, HTML_CONTENT_TYPE)

    # =========================================================================
    # PATH RESOLUTION
    # =========================================================================

    def serve_directory_or_file(
        self,
        root_dir: Union[str, Path],
        requested_path: str = "",
        max_age: Optional[int] = None,
    ) -> None:
        """
        Serve `requested_path` from under `root_dir`.

        Args:
            root_dir: Directory being served.
            requested_path: URL path of the request ("/docs/guide.html").
            max_age: Optional override for the cache policy.
        """
        if self.is_proxied():
            logger.debug(f"Request for {requested_path!r} arrived through a proxy")

        try:
            target = self._resolve(Path(root_dir), requested_path)
        except (OSError, ValueError):
            # ValueError: NUL byte in root_dir
            logger.exception(f"Failed to resolve {requested_path!r}")
            self._send_error_page(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error"
            )
            return

        if target is not None:
            self.stream_file(target, max_age=max_age)

    def _resolve(self, root_dir: Path, requested_path: str) -> Optional[Path]:
        """
        Map a URL path to a file to stream.

        Returns the file, or None when a response (error page or listing)
        has already been sent.
        """
        # ─────────────────────────────────────────────────────────────────
        # ROOT DIRECTORY
        # ─────────────────────────────────────────────────────────────────
        root = root_dir.resolve()
        if not root.is_dir():
            logger.error(f"Root directory does not exist: {root_dir}")
            self._send_error_page(HTTPStatus.NOT_FOUND, "Directory not found")
            return None

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        relative = requested_path.lstrip("/")
        if "\x00" in relative:
            self._send_error_page(HTTPStatus.NOT_FOUND, "404 Not Found")
            return None
        full_path = (root / relative).resolve()
        if not _is_within(full_path, root):
            logger.warning(f"Path traversal attempt: {requested_path!r}")
            self._send_error_page(HTTPStatus.FORBIDDEN, "Access denied")
            return None

        if not full_path.exists():
            self._send_error_page(HTTPStatus.NOT_FOUND, "404 Not Found")
            return None

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORY: DEFAULT DOCUMENT OR LISTING
        # ─────────────────────────────────────────────────────────────────
        if full_path.is_dir():
            document = find_default_document(full_path, self.config.default_files)
            if document is not None:
                document = document.resolve()
                if not _is_within(document, root):
                    logger.warning(f"Default document escapes root: {requested_path!r}")
                    self._send_error_page(HTTPStatus.FORBIDDEN, "Access denied")
                    return None
                return document

            url_path = "/" + relative
            listing = render_directory_listing(
                url_path, full_path, list_directory(full_path)
            )
            self.send_body(listing, HTTPStatus.OK, HTML_CONTENT_TYPE)
            return None

        # FIFOs, sockets and devices are never opened
        if not full_path.is_file():
            logger.warning(f"Not a regular file: {requested_path!r}")
            self._send_error_page(HTTPStatus.NOT_FOUND, "404 Not Found")
            return None

        return full_path

    # =========================================================================
    # FILE STREAMING
    # =========================================================================

    def stream_file(
        self,
        file_path: Union[str, Path],
        max_age: Optional[int] = None,
    ) -> None:
        """
        Stream one file to the client, or answer 304 when the client's copy
        is still fresh.

        Args:
            file_path: File to send.
            max_age: Optional override for the cache policy.
        """
        if "\x00" in str(file_path):
            self._send_error_page(HTTPStatus.NOT_FOUND, "File not found")
            return

        path = Path(file_path).resolve()
        key = str(path)
        directives = parse_cache_control_header(self.request.cache_control)

        # ─────────────────────────────────────────────────────────────────
        # CONDITIONAL REQUEST
        # ─────────────────────────────────────────────────────────────────
        effective = self._effective_max_age(key, max_age, directives)
        if is_conditional_hit(self.request.if_modified_since, effective):
            logger.debug(f"Not modified: {key} (max-age={effective})")
            self.response.set_status(HTTPStatus.NOT_MODIFIED)
            self.response.end("Not Modified")
            return

        if not path.is_file():
            self._send_error_page(HTTPStatus.NOT_FOUND, "File not found")
            return

        mime_type = get_mime_type(path)

        try:
            handle = open(path, "rb")
        except FileNotFoundError:
            self._send_error_page(HTTPStatus.NOT_FOUND, "File not found")
            return
        except OSError:
            logger.exception(f"Failed to open {key}")
            self._send_error_page(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
            return

        with handle:
            try:
                size = os.fstat(handle.fileno()).st_size
                chunks = self._read_chunks(handle)
                if mime_type == "text/html" and key not in self.store:
                    scanner = MetaScanner(
                        on_discovery=lambda value: self._record_discovery(key, value),
                        limit=self.config.meta_scan_limit,
                        encoding=self.config.encoding,
                    )
                    chunks = scanner.scan(chunks)
                first = next(chunks, b"")
            except OSError:
                logger.exception(f"Failed to read {key}")
                self._send_error_page(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
                return

            # The first chunk may have produced a discovery
            effective = self._effective_max_age(key, max_age, directives)

            self.response.set_status(HTTPStatus.OK)
            self.response.set_header(
                "Content-Type", get_content_type(path, charset=self.config.encoding)
            )
            self.response.set_header("Content-Length", str(size))
            if effective:
                self.response.set_header("Cache-Control", f"max-age={effective}")
                self.response.set_header("Last-Modified", format_http_date())

            try:
                if not self.response.write_head() or not self.response.write(first):
                    self._client_gone(key)
                    return
                for chunk in chunks:
                    if not self.response.write(chunk):
                        self._client_gone(key)
                        return
            except OSError:
                logger.exception(f"Error while streaming {key}")
                self.response.abort()
                return

        self.response.end()

    def _read_chunks(self, handle: BinaryIO) -> Iterator[bytes]:
        while True:
            chunk = handle.read(self.config.chunk_size)
            if not chunk:
                return
            yield chunk

    def _effective_max_age(
        self,
        key: str,
        explicit: Optional[int],
        directives: Dict[str, Any],
    ) -> int:
        return resolve_max_age(
            explicit=explicit,
            request_directives=directives,
            stored=self.store.get(key),
            default=self.config.max_age,
        )

    def _record_discovery(self, key: str, value: str) -> None:
        max_age = max_age_from_directives(parse_cache_control_header(value))
        self.store.set(key, max_age)
        logger.debug(f"Cache policy for {key}: max-age={max_age} (from {value!r})")

    def _client_gone(self, key: str) -> None:
        logger.debug(f"Client disconnected while streaming {key}")
        self.response.abort()


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
