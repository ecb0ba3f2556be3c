"""
=============================================================================
CORE NETWORKING
=============================================================================

The transport underneath the responder:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ socket_server.py  bind / listen / accept loop, signal handling      │
    │ connection.py     one client socket: buffered request reads,        │
    │                   sendall() writes, keep-alive timeouts             │
    │ thread_pool.py    bounded worker pool; one connection per task      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Client socket I/O
    "RequestTooLarge",  # Request exceeded max_request_size
    "ThreadPool",       # Worker threads
]
