"""
Shared test helpers: fake transports and request builders.
"""

from typing import Dict, List, Optional, Tuple

from staticserver.http import HTTPRequest


CACHED_PAGE = (
    b"<!DOCTYPE html>\n<html>\n<head>\n"
    b'<meta http-equiv="Cache-Control" content="max-age=120">\n'
    b"<title>Cached</title>\n</head>\n<body>cached page</body>\n</html>\n"
)

PLAIN_PAGE = b"<html><head><title>Home</title></head><body>home</body></html>"


class FakeSink:
    """
    In-memory stand-in for a Connection.

    fail_after: number of successful sends before the "client" goes away.
    """

    def __init__(self, fail_after: Optional[int] = None):
        self.chunks: List[bytes] = []
        self.fail_after = fail_after

    def send_response(self, data: bytes) -> bool:
        if self.fail_after is not None and len(self.chunks) >= self.fail_after:
            return False
        self.chunks.append(bytes(data))
        return True

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)

    def parsed(self) -> Tuple[int, Dict[str, str], bytes]:
        """Split what was sent into (status, headers, body)."""
        head, _, body = self.data.partition(b"\r\n\r\n")
        lines = head.decode("latin-1").split("\r\n")
        status = int(lines[0].split(" ")[1])
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()
        return status, headers, body


def make_request(
    path: str = "/",
    headers: Optional[Dict[str, str]] = None,
    method: str = "GET",
) -> HTTPRequest:
    return HTTPRequest(
        method=method,
        path=path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client_address=("127.0.0.1", 50000),
    )
