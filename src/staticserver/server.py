"""
=============================================================================
STATIC SERVER
=============================================================================

Ties the pieces together: sockets, worker threads, request parsing, and a
Responder per request.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                             │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(conn) ──full──► 503 Service Unavailable         │
    │        │                                                             │
    │        ▼  (worker thread)                                            │
    │   ┌─► conn.read_request()  ──timeout──► 408                        │
    │   │        │               ──too big──► 413                        │
    │   │        ▼                                                         │
    │   │   RequestParser.parse() ──error──► 400 / 405 / 505             │
    │   │        │                                                         │
    │   │        ▼                                                         │
    │   │   handle_exchange()                                             │
    │   │     ResponseWriter + Responder(store)                          │
    │   │     serve_directory_or_file(root_dir, request.path)           │
    │   │        │                                                         │
    │   │        ▼                                                         │
    │   │   access log line                                               │
    │   │        │                                                         │
    │   └── keep-alive? ──no──► close                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The CachePolicyStore is created here, once, and shared by every request.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional, Tuple

from .access_log import AccessLogger
from .cache.policy import CachePolicyStore
from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .handlers.static import Responder
from .http.request import HTTPParseError, HTTPRequest, RequestParser
from .http.response import ResponseWriter
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class StaticServer:
    """
    Multi-threaded static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticServer(ServerConfig(root_dir="./public", max_age=60))
        server.run()                      # blocks until Ctrl+C

        # In tests: background thread, OS-assigned port
        server = StaticServer(ServerConfig(root_dir=tmp, port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        store: Optional[CachePolicyStore] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.store = store if store is not None else CachePolicyStore()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._access_log = AccessLogger(log_format=self.config.log_format)

        self._running = False
        self._stopped = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve config.root_dir until shutdown() or a signal.

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._stopped.clear()
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.root_dir} on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Ask a running server to stop.

        Returns:
            True once run() has finished cleaning up, False on timeout.
        """
        self._socket_server.shutdown()
        if not self._running:
            return True
        return self._stopped.wait(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info(f"Server stopped ({len(self.store)} cache policies learned)")
        self._stopped.set()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            block=False,
        )
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            while self._running:
                started_at = time.time()
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, e.status_code, str(e), started_at)
                    break

                response = self.handle_exchange(request, conn)
                self._access_log.log(
                    request, response.status, response.bytes_sent, started_at
                )

                if not response.keep_alive or response.disconnected:
                    break
                conn.set_keep_alive()

    def handle_exchange(self, request: HTTPRequest, connection) -> ResponseWriter:
        """
        Answer one parsed request on `connection`.

        `connection` only needs send_response(bytes) -> bool, so tests can
        pass a fake.

        Returns:
            The finished ResponseWriter, for logging and keep-alive.
        """
        keep_alive = (
            self.config.keep_alive
            and request.is_keep_alive
            # HEAD is answered with a body like GET, so the connection is not reused
            and request.method != "HEAD"
        )
        response = ResponseWriter(
            connection, server_name=self.config.server_name, keep_alive=keep_alive
        )
        if keep_alive:
            response.set_header("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")

        responder = Responder(request, response, self.store, self.config)
        try:
            responder.serve_directory_or_file(self.config.root_dir, request.path)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            if response.headers_sent:
                response.abort()
                return response
            response = ResponseWriter(
                connection, server_name=self.config.server_name, keep_alive=False
            )
            response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
            response.set_header("Content-Type", "text/plain; charset=utf-8")
            response.end("Internal Server Error")
            return response

        if not response.finished:
            response.abort()
        return response

    def _send_error(
        self,
        conn: Connection,
        status: int,
        message: str,
        started_at: Optional[float] = None,
    ):
        """Answer a request that never reached a Responder, then close."""
        response = ResponseWriter(conn, server_name=self.config.server_name, keep_alive=False)
        response.set_status(status)
        response.set_header("Content-Type", "text/plain; charset=utf-8")
        response.end(message)
        if started_at is not None:
            self._access_log.log(
                None, status, response.bytes_sent, started_at, client_ip=conn.client_ip
            )
