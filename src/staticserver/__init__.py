"""
=============================================================================
STATICSERVER - Static File Server With Page-Declared Caching
=============================================================================

Serves a directory over HTTP/1.1. HTML pages can set their own cache
lifetime with a meta tag, which the server learns while streaming them:

    <meta http-equiv="Cache-Control" content="max-age=120">

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticServer: accept, parse, respond, log
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One line per request
    ├── cache/               # Cache policy engine
    │   ├── policy.py        # Store, precedence, If-Modified-Since
    │   └── meta_scanner.py  # Streaming <meta> tag discovery
    ├── handlers/            # What to send
    │   ├── static.py        # Responder facade
    │   └── listing.py       # Default documents and directory listings
    ├── http/                # HTTP protocol
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Streaming response writer
    │   ├── status_codes.py  # Status enum
    │   ├── mime_types.py    # Content-Type lookup
    │   └── dates.py         # HTTP-date helpers
    └── core/                # Networking
        ├── socket_server.py # TCP accept loop
        ├── connection.py    # Client socket wrapper
        └── thread_pool.py   # Worker threads

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticServer, ServerConfig

    server = StaticServer(ServerConfig(root_dir="./public", max_age=60))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .cache import CachePolicy, CachePolicyStore, MetaScanner
from .config import ServerConfig
from .handlers import Responder
from .server import StaticServer

__all__ = [
    "StaticServer",
    "ServerConfig",
    "Responder",
    "CachePolicy",
    "CachePolicyStore",
    "MetaScanner",
    "__version__",
]
