"""
Unit tests for the server plumbing: exchanges, connections, workers, access log.
"""

import json
import logging
import socket
import threading
import time

import pytest

from staticserver import StaticServer
from staticserver.access_log import AccessLogger
from staticserver.core import Connection, RequestTooLarge, ThreadPool
from staticserver.handlers import static as static_module

from helpers import FakeSink, make_request


@pytest.fixture
def server(config) -> StaticServer:
    return StaticServer(config)


class TestHandleExchange:
    """Tests for StaticServer.handle_exchange()."""

    def test_serves_file_with_keep_alive(self, server):
        sink = FakeSink()

        response = server.handle_exchange(make_request("/style.css"), sink)

        status, headers, body = sink.parsed()
        assert status == 200
        assert headers["keep-alive"] == "timeout=5"
        assert "connection" not in headers
        assert response.keep_alive is True
        assert body == b"body { color: red; }\n"

    def test_connection_close_requested(self, server):
        sink = FakeSink()
        request = make_request("/style.css", headers={"Connection": "close"})

        response = server.handle_exchange(request, sink)

        _, headers, _ = sink.parsed()
        assert headers["connection"] == "close"
        assert "keep-alive" not in headers
        assert response.keep_alive is False

    def test_head_closes_connection(self, server):
        sink = FakeSink()

        response = server.handle_exchange(make_request("/style.css", method="HEAD"), sink)

        _, headers, _ = sink.parsed()
        assert headers["connection"] == "close"
        assert response.keep_alive is False

    def test_store_is_shared_between_exchanges(self, server):
        server.handle_exchange(make_request("/cached.html"), FakeSink())
        assert len(server.store) == 1

        sink = FakeSink()
        server.handle_exchange(make_request("/cached.html"), sink)
        assert sink.parsed()[1]["cache-control"] == "max-age=120"

    def test_not_modified_closes_connection(self, server):
        server.handle_exchange(make_request("/cached.html"), FakeSink())
        sink = FakeSink()
        request = make_request(
            "/cached.html",
            headers={"If-Modified-Since": time.strftime("%a, %d %b %Y %H:%M:%S GMT", time.gmtime())},
        )

        response = server.handle_exchange(request, sink)

        assert sink.parsed()[0] == 304
        assert response.keep_alive is False

    def test_handler_crash_becomes_500(self, server, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(static_module.Responder, "serve_directory_or_file", boom)
        sink = FakeSink()

        response = server.handle_exchange(make_request("/"), sink)

        status, headers, body = sink.parsed()
        assert status == 500
        assert body == b"Internal Server Error"
        assert headers["connection"] == "close"
        assert response.status == 500

    def test_crash_after_headers_aborts(self, server, monkeypatch):
        def half_written(self, root_dir, requested_path="", max_age=None):
            self.response.set_header("Content-Length", "100")
            self.response.write(b"partial")
            raise RuntimeError("boom")

        monkeypatch.setattr(static_module.Responder, "serve_directory_or_file", half_written)
        sink = FakeSink()

        response = server.handle_exchange(make_request("/"), sink)

        assert sink.parsed()[0] == 200
        assert response.finished is True
        assert response.keep_alive is False

    def test_invalid_config_rejected(self, config):
        config.max_age = -5
        with pytest.raises(ValueError):
            StaticServer(config)


class TestConnection:
    """Tests for Connection over a socketpair."""

    @pytest.fixture
    def pair(self):
        server_side, client_side = socket.socketpair()
        yield server_side, client_side
        client_side.close()
        server_side.close()

    def test_reads_one_request_at_a_time(self, pair):
        server_side, client_side = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=2.0)
        client_side.sendall(
            b"GET /a HTTP/1.1\r\n\r\n"
            b"POST /b HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc"
        )

        assert conn.read_request() == b"GET /a HTTP/1.1\r\n\r\n"
        assert conn.read_request().endswith(b"\r\n\r\nabc")
        assert conn.requests_handled == 2

    def test_client_close_returns_none(self, pair):
        server_side, client_side = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=2.0)
        client_side.shutdown(socket.SHUT_WR)

        assert conn.read_request() is None

    def test_first_request_timeout(self, pair):
        server_side, _ = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_idle_keep_alive_returns_none(self, pair):
        server_side, client_side = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=2.0, keep_alive_timeout=0.1)
        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()

        assert conn.read_request() is None

    def test_too_large(self, pair):
        server_side, client_side = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=2.0, max_request_size=64)
        client_side.sendall(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 100 + b"\r\n\r\n")

        with pytest.raises(RequestTooLarge):
            conn.read_request()

    def test_send_and_close(self, pair):
        server_side, client_side = pair
        conn = Connection(server_side, ("127.0.0.1", 1), timeout=2.0)

        assert conn.send_response(b"hello") is True
        conn.close()
        conn.close()

        assert client_side.recv(100) == b"hello"
        assert conn.is_closed
        assert conn.client_ip == "127.0.0.1"


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=4)
        pool.start()
        done = threading.Event()
        results = []

        def task(value):
            results.append(value)
            if len(results) == 3:
                done.set()

        try:
            for i in range(3):
                assert pool.submit(task, args=(i,))
            assert done.wait(5.0)
        finally:
            pool.shutdown(wait=True, timeout=5.0)

        assert sorted(results) == [0, 1, 2]

    def test_scales_up_when_busy(self):
        pool = ThreadPool(min_workers=1, max_workers=3)
        pool.start()
        release = threading.Event()

        try:
            for _ in range(3):
                pool.submit(release.wait, args=(5.0,))
                time.sleep(0.1)
            assert pool.worker_count > 1
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5.0)

        try:
            pool.submit(blocker)
            assert started.wait(5.0)
            assert pool.submit(release.wait, args=(5.0,), block=False) is True
            assert pool.submit(release.wait, args=(5.0,), block=False) is False
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    @pytest.mark.parametrize("kwargs", [
        {"min_workers": 0},
        {"min_workers": 4, "max_workers": 2},
    ])
    def test_invalid_sizes(self, kwargs):
        with pytest.raises(ValueError):
            ThreadPool(**kwargs)


class TestAccessLogger:
    """Tests for AccessLogger."""

    def test_text_line(self, caplog):
        access = AccessLogger()
        request = make_request("/index.html", headers={"User-Agent": "curl/8"})

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            entry = access.log(request, 200, 512, time.time())

        assert entry.status_code == 200
        assert entry.user_agent == "curl/8"
        assert '127.0.0.1 - - [' in caplog.text
        assert '"GET /index.html" 200 512' in caplog.text

    def test_json_line(self, caplog):
        access = AccessLogger(log_format="json")

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            access.log(make_request("/a"), 304, 12, time.time())

        record = json.loads(caplog.records[-1].getMessage())
        assert record["path"] == "/a"
        assert record["status_code"] == 304
        assert record["bytes_sent"] == 12

    def test_unparsed_request(self):
        entry = AccessLogger().build(None, 400, 11, time.time(), client_ip="10.0.0.9")

        assert entry.method == "-"
        assert entry.path == "-"
        assert entry.client_ip == "10.0.0.9"

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            AccessLogger(log_format="xml")
