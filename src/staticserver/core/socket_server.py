"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Binds the listening socket and hands every accepted client to a callback.
HTTP is not spoken here.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket()  →  setsockopt()  →  bind()  →  listen()                 │
    │                                               │                      │
    │                                               ▼                      │
    │                              ┌──────── accept() ◄──────┐            │
    │                              │  (1 s timeout, so the   │            │
    │                              │   loop can notice        │            │
    │                              │   shutdown)              │            │
    │                              ▼                          │            │
    │                      Connection(client) ──► callback ───┘            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Socket options:

    SO_REUSEADDR   restart without "Address already in use"
    SO_REUSEPORT   several processes on one port, where available
    TCP_NODELAY    send small responses (304s, error pages) immediately

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown().
Python only allows signal handlers in the main thread, so when the server
runs in a background thread (tests, embedding) signals are left alone and
the owner calls shutdown() itself.

=============================================================================
"""


import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_SECONDS = 1.0


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:
        server = SocketServer(config)
        server.start(on_connection)      # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._previous_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        With port 0 the OS picks a free port; this reports the real one
        once the server has started.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _listen(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_SECONDS)

        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Cannot bind {self.config.host}:{self.config.port}: {e}")
            sock.close()
            raise
        sock.listen(self.config.backlog)
        return sock

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signal_handlers(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Args:
            on_connection: Called with each new Connection on the accept
                           thread, so it should hand the work off quickly.

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._listen()
        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._install_signal_handlers()
        self._ready.set()
        logger.info(f"Listening on {self._bound_address[0]}:{self._bound_address[1]}")

        try:
            while self._running:
                try:
                    client, client_address = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._running:
                        logger.error(f"Accept failed: {e}")
                    break

                on_connection(Connection(
                    socket=client,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                    max_request_size=self.config.max_request_size,
                ))
        finally:
            self._restore_signal_handlers()
            self._socket.close()
            self._socket = None
            self._ready.clear()
            logger.info("Socket server stopped")

    def shutdown(self):
        """Stop the accept loop within a second. Safe from any thread."""
        self._running = False

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)
