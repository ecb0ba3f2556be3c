"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
WHAT CAN BE CONFIGURED?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION GROUPS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NETWORK        host, port, backlog, buffer_size, timeout          │
    │   HTTP           keep_alive, keep_alive_timeout, max_request_size   │
    │   THREADING      min_workers, max_workers                           │
    │   SERVING        root_dir, default_files, chunk_size, encoding      │
    │   CACHING        max_age, meta_scan_limit                           │
    │   LOGGING        log_level, log_format                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values come from (highest priority first):

    1. Command-line arguments       python -m staticserver --port 3000
    2. Environment variables        STATIC_PORT=3000 python -m staticserver
    3. Defaults in this dataclass

=============================================================================
DEFAULT DOCUMENTS
=============================================================================

default_files accepts the comma-separated form used on the command line
and in the environment:

    "index.html, index.htm"  →  ["index.html", "index.htm"]

The list is normalized in __post_init__, so the rest of the code only
ever sees a list.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Union


DEFAULT_FILES = "index.html,index.htm"


def parse_default_files(value: Union[str, List[str], None]) -> List[str]:
    """
    Split a comma-separated list of default document names.

    Whitespace around names is trimmed and empty entries are dropped.
    Lists are normalized the same way.

    Examples:
        >>> parse_default_files("index.html, index.htm,")
        ['index.html', 'index.htm']
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [name.strip() for name in value if name and name.strip()]


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    DEVELOPMENT VS PRODUCTION
    =========================================================================

    Development:
        ServerConfig(
            root_dir="./public",
            log_level="DEBUG",     # See cache discoveries
        )

    Production (behind nginx):
        ServerConfig(
            host="0.0.0.0",
            root_dir="/srv/www",
            max_age=300,           # Fallback when pages declare nothing
            max_workers=32,
            log_format="json",
        )

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (containers, production)
    """

    port: int = 8080
    """Port number to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    buffer_size: int = 8192
    """Size of each socket recv() in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds.
    None = blocking (infinite wait, dangerous in production!)
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow multiple requests on the same TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a keep-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Maximum accepted request size in bytes.
    A static server only needs headers, so this stays small.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads under load."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory served to clients.
    Every resolved path MUST stay inside this directory.
    """

    default_files: Union[str, List[str]] = DEFAULT_FILES
    """
    Candidate index documents for directory requests, tried in order.
    Accepts "index.html,index.htm" or ["index.html", "index.htm"].
    """

    chunk_size: int = 64 * 1024
    """Bytes read from disk per chunk while streaming a file."""

    encoding: str = "utf-8"
    """
    Text encoding of served HTML.
    Used to decode the value of a discovered Cache-Control meta tag.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CACHING
    # ─────────────────────────────────────────────────────────────────────

    max_age: int = 0
    """
    Server-wide default Cache-Control max-age in seconds.
    Applied only when no override, request directive or discovered
    meta tag provides a value. 0 = no caching headers.
    """

    meta_scan_limit: int = 64 * 1024
    """
    How many bytes at the start of an HTML file are searched for a
    <meta http-equiv="Cache-Control"> tag. The tag belongs in <head>,
    so there is no reason to scan a whole document.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' (Apache style) or 'json'.
    JSON is better for log aggregators (ELK, Datadog).
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "staticserver/1.0"
    """Value of the Server response header."""

    def __post_init__(self):
        self.default_files = parse_default_files(self.default_files)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_HOST              Server host (default: 127.0.0.1)
        STATIC_PORT              Server port (default: 8080)
        STATIC_ROOT              Directory to serve (default: .)
        STATIC_DEFAULT_FILES     Index documents (default: index.html,index.htm)
        STATIC_MAX_AGE           Default max-age seconds (default: 0)
        STATIC_ENCODING          HTML encoding (default: utf-8)
        STATIC_META_SCAN_LIMIT   Bytes scanned for meta tags (default: 65536)
        STATIC_WORKERS           Max worker threads (default: 16)
        STATIC_LOG_LEVEL         Logging level (default: INFO)
        STATIC_LOG_FORMAT        Access log format (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("STATIC_HOST", "127.0.0.1"),
            port=int(os.getenv("STATIC_PORT", "8080")),
            root_dir=os.getenv("STATIC_ROOT", "."),
            default_files=os.getenv("STATIC_DEFAULT_FILES", DEFAULT_FILES),
            max_age=int(os.getenv("STATIC_MAX_AGE", "0")),
            encoding=os.getenv("STATIC_ENCODING", "utf-8"),
            meta_scan_limit=int(os.getenv("STATIC_META_SCAN_LIMIT", str(64 * 1024))),
            max_workers=int(os.getenv("STATIC_WORKERS", "16")),
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO"),
            log_format=os.getenv("STATIC_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup rather than on the first request.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_age < 0:
            raise ValueError("max_age must be >= 0")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.meta_scan_limit < 1:
            raise ValueError("meta_scan_limit must be >= 1")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with a dataclass
# 2. Environment variable support for 12-factor deployments
# 3. Validation at startup (fail-fast)
# 4. default_files normalized once, so callers always get a list
# =============================================================================
