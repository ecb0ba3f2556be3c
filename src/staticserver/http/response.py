"""
=============================================================================
STREAMING HTTP RESPONSE WRITER
=============================================================================

A writable header map plus a body sink over one client connection.

=============================================================================
WHY STREAM?
=============================================================================

Building a whole response in memory works for JSON, but not for a 2 GB
video or an HTML file we want to inspect while it is being sent:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    BUFFERED VS STREAMED                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   BUFFERED                         STREAMED                         │
    │   ────────                         ────────                         │
    │   read whole file                  write_head(200, headers)         │
    │   build bytes                      write(chunk) ─┐                  │
    │   sendall(everything)              write(chunk)  │ one chunk at a   │
    │                                    write(chunk) ─┘ time from disk   │
    │   memory = file size               end()                            │
    │                                    memory = chunk size              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    set_header() ... ──► write_head() ──► write() ... ──► end()
         │                   │                              │
    headers mutable     headers frozen,               finished = True
                        status line sent

Once the status line has been sent it cannot be changed. Code that hits
an error mid-stream can only abort() (close the connection).

=============================================================================
THE SINK
=============================================================================

The writer does not know about sockets. It needs one method:

    sink.send_response(data: bytes) -> bool    # False = client went away

core.connection.Connection provides it; tests pass a list-backed fake.

=============================================================================
"""

from typing import Dict, Optional, Union

from .dates import format_http_date
from .status_codes import HTTPStatus, reason_phrase

# Responses that must not carry a body on the wire. A body is still
# written when a caller asks for one, so the connection is closed after
# them to keep stray bytes out of the next response.
_BODYLESS_STATUSES = {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}


class HeadersSentError(RuntimeError):
    """Raised when headers are modified after the status line was sent."""


class ResponseWriter:
    """
    Incrementally written HTTP/1.1 response.

    =========================================================================
    HEADER RULES
    =========================================================================

    - Header names are matched case-insensitively: setting "cache-control"
      replaces an earlier "Cache-Control". The last value wins.
    - Date and Server are added automatically.
    - end(body) adds Content-Length when the caller did not.
    - A response streamed without Content-Length gets "Connection: close",
      since closing the socket is the only way to mark its end.

    =========================================================================
    """

    def __init__(
        self,
        sink,
        server_name: str = "staticserver/1.0",
        keep_alive: bool = True,
    ):
        self._sink = sink
        self._server_name = server_name
        self.status: int = HTTPStatus.OK
        self.headers: Dict[str, str] = {}
        self.keep_alive = keep_alive
        self.headers_sent = False
        self.finished = False
        self.disconnected = False
        self.bytes_sent = 0
        self._content_length: Optional[int] = None

    # =========================================================================
    # HEADERS
    # =========================================================================

    def _find_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def set_header(self, name: str, value: str) -> "ResponseWriter":
        """Set a header, replacing any existing one with the same name."""
        if self.headers_sent:
            raise HeadersSentError(f"Cannot set {name}: headers already sent")
        existing = self._find_header(name)
        if existing is not None:
            del self.headers[existing]
        self.headers[name] = str(value)
        return self

    def get_header(self, name: str) -> Optional[str]:
        existing = self._find_header(name)
        return self.headers[existing] if existing is not None else None

    def remove_header(self, name: str) -> "ResponseWriter":
        existing = self._find_header(name)
        if existing is not None:
            del self.headers[existing]
        return self

    def set_status(self, status: int) -> "ResponseWriter":
        if self.headers_sent:
            raise HeadersSentError("Cannot change status: headers already sent")
        self.status = status
        return self

    # =========================================================================
    # WRITING
    # =========================================================================

    def write_head(
        self,
        status: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> bool:
        """
        Send the status line and headers.

        Args:
            status: Status code; defaults to the current status.
            headers: Extra headers, applied on top of those already set.

        Returns:
            True if the header block reached the client.
        """
        if status is not None:
            self.set_status(status)
        for name, value in (headers or {}).items():
            self.set_header(name, value)

        length = self.get_header("Content-Length")
        self._content_length = int(length) if length is not None else None

        if self._content_length is None or self.status in _BODYLESS_STATUSES:
            self.keep_alive = False
        if not self.keep_alive:
            self.remove_header("Keep-Alive")
            self.set_header("Connection", "close")

        if self.get_header("Date") is None:
            self.set_header("Date", format_http_date())
        if self.get_header("Server") is None:
            self.set_header("Server", self._server_name)

        lines = [f"HTTP/1.1 {int(self.status)} {reason_phrase(self.status)}"]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        head = "\r\n".join(lines).encode("latin-1", errors="replace") + b"\r\n"

        self.headers_sent = True
        return self._send(head)

    def write(self, chunk: Union[bytes, str]) -> bool:
        """
        Write part of the body, sending headers first if needed.

        Returns:
            False once the client has disconnected; callers should stop
            producing data.
        """
        if self.finished:
            raise RuntimeError("Response already finished")
        if not self.headers_sent:
            if not self.write_head():
                return False
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if not chunk:
            return not self.disconnected
        if not self._send(chunk):
            return False
        self.bytes_sent += len(chunk)
        return True

    def end(self, body: Union[bytes, str, None] = None) -> None:
        """
        Finish the response, optionally writing a final body.

        When headers are still pending, Content-Length is derived from
        body so the connection can be reused.
        """
        if self.finished:
            return
        if isinstance(body, str):
            body = body.encode("utf-8")
        body = body or b""

        if not self.headers_sent:
            if self.get_header("Content-Length") is None:
                self.set_header("Content-Length", str(len(body)))
            self.write_head()

        if body and not self.disconnected:
            self.write(body)

        if self._content_length is not None and self.bytes_sent != self._content_length:
            # Short or long body: the client cannot find the next response
            self.keep_alive = False
        self.finished = True

    def abort(self) -> None:
        """Give up on this response; the connection will be closed."""
        self.keep_alive = False
        self.finished = True

    def _send(self, data: bytes) -> bool:
        if self.disconnected:
            return False
        if not self._sink.send_response(data):
            self.disconnected = True
            self.keep_alive = False
            return False
        return True
