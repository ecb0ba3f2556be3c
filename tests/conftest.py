"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, Generator, Optional, Tuple

import pytest

from staticserver import ServerConfig, StaticServer
from staticserver.cache import CachePolicyStore
from staticserver.handlers import Responder
from staticserver.http import HTTPRequest, ResponseWriter

from helpers import CACHED_PAGE, PLAIN_PAGE, FakeSink


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small document root:

        www/
        ├── index.html
        ├── cached.html          (meta max-age=120)
        ├── style.css
        ├── blog/index.htm
        └── docs/
            ├── a.txt
            ├── b.txt
            └── images/
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(PLAIN_PAGE)
    (root / "cached.html").write_bytes(CACHED_PAGE)
    (root / "style.css").write_text("body { color: red; }\n")

    (root / "blog").mkdir()
    (root / "blog" / "index.htm").write_text("<html><body>blog</body></html>")

    docs = root / "docs"
    docs.mkdir()
    (docs / "a.txt").write_text("alpha")
    (docs / "b.txt").write_text("beta")
    (docs / "images").mkdir()

    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def store() -> CachePolicyStore:
    return CachePolicyStore()


@pytest.fixture
def config(site: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(site),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def responder_for(store: CachePolicyStore, config: ServerConfig):
    """Factory: responder_for(request, sink=None, **config_overrides) -> (Responder, FakeSink)."""

    def factory(request: HTTPRequest, sink: Optional[FakeSink] = None, **overrides):
        sink = sink or FakeSink()
        cfg = config
        if overrides:
            cfg = replace(config, **overrides)
        response = ResponseWriter(sink, server_name=cfg.server_name)
        return Responder(request, response, store, cfg), sink

    return factory


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class RunningServer:
    """A StaticServer serving in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown(timeout=10.0)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, path: str, headers: Optional[Dict[str, str]] = None) -> Tuple[int, Dict[str, str], bytes]:
        lines = [f"GET {path} HTTP/1.1", "Host: localhost", "Connection: close"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
        sink = FakeSink()
        sink.send_response(self.request(raw))
        return sink.parsed()


@pytest.fixture
def live_server(config: ServerConfig, free_port: int) -> Generator[RunningServer, None, None]:
    """A real server on a free port, serving the `site` tree."""
    config.port = free_port
    running = RunningServer(StaticServer(config))
    running.start()

    yield running

    running.stop()
