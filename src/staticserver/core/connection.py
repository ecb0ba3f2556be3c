"""
=============================================================================
CLIENT CONNECTIONS
=============================================================================

Wraps one accepted client socket: reads whole HTTP requests off it and
writes response bytes back.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP keeps bytes in order but does not keep message boundaries:

    Client sends:                    Server may recv():
        GET /index.html HTTP/1.1\r\n     "GET /ind"
        Host: localhost\r\n              "ex.html HTTP/1.1\r\nHo"
        \r\n                             "st: localhost\r\n\r\n"

So reads are buffered until the header terminator (\r\n\r\n) shows up,
then Content-Length more bytes are read for the body. Anything past the
end of the request stays in the buffer for the next keep-alive request.

=============================================================================
TIMEOUTS
=============================================================================

    first request on a connection     timeout             (30 s default)
    later keep-alive requests         keep_alive_timeout  (5 s default)

An idle keep-alive connection timing out is normal and simply ends the
connection. The first request timing out is an error.

=============================================================================
AS A RESPONSE SINK
=============================================================================

http.response.ResponseWriter writes through send_response(), which never
raises: a vanished client is reported as False so a file being streamed
can stop early.

=============================================================================
"""


import logging
import socket
import uuid
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """
    One accepted client socket.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short random id that prefixes this connection's log lines.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _closed: bool = field(default=False, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_closed(self) -> bool:
        return self._closed

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request (headers plus Content-Length body).

        Returns:
            The request bytes, or None when the client hung up or an idle
            keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        idle = self.requests_handled > 0
        if idle:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_END not in self._buffer:
                if not self._fill():
                    return None

            body_start = self._buffer.index(HEADER_END) + len(HEADER_END)
            request_end = body_start + _content_length(self._buffer[:body_start])
            while len(self._buffer) < request_end:
                if not self._fill():
                    break
        except socket.timeout:
            if idle:
                logger.debug(f"[{self.id}] Idle keep-alive connection timed out")
                return None
            raise TimeoutError("Timed out waiting for the request")
        finally:
            if idle and not self._closed:
                self.socket.settimeout(self.timeout)

        request, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
        self.requests_handled += 1
        return request

    def _fill(self) -> bool:
        """Append one recv() to the buffer. False once the peer is gone."""
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not data:
            return False
        self._buffer += data
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")
        return True

    def send_response(self, data: bytes) -> bool:
        """
        sendall() the bytes.

        Returns:
            True if sent, False if the client has gone away.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def set_keep_alive(self):
        logger.debug(f"[{self.id}] Waiting for request {self.requests_handled + 1}")

    def close(self):
        """
        Half-close, drain what the client still sends, then close.
        Calling it again does nothing.
        """
        if self._closed:
            return
        self._closed = True

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Peer already gone
        finally:
            self.socket.close()

        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _content_length(head: bytes) -> int:
    """
    Content-Length from raw header bytes, 0 when missing or malformed.

    Runs before the request is parsed; the parser reports bad values.
    """
    for line in head.decode("latin-1").split("\r\n"):
        name, _, value = line.partition(":")
        if name.strip().lower() == "content-length":
            try:
                return max(0, int(value.strip()))
            except ValueError:
                return 0
    return 0
