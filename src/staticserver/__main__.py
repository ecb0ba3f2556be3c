"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m staticserver

    # Serve ./public on all interfaces, port 3000
    python -m staticserver ./public --host 0.0.0.0 --port 3000

    # Cache pages for a minute unless they declare their own policy
    python -m staticserver ./public --max-age 60

    # Different index documents
    python -m staticserver ./public --default-files "home.html,index.html"

Settings are layered: command-line flags win over STATIC_* environment
variables, which win over the ServerConfig defaults. See
ServerConfig.from_env() for the variable names.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import StaticServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Static file server that honours <meta http-equiv=\"Cache-Control\"> tags",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                         # Serve . on 127.0.0.1:8080
  python -m staticserver ./public --port 3000    # Custom root and port
  python -m staticserver ./public --max-age 60   # Default cache lifetime
  python -m staticserver --log-format json       # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # WHAT TO SERVE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        metavar="ROOT",
        help="Directory to serve (default: STATIC_ROOT or .)"
    )

    parser.add_argument(
        "--default-files",
        default=None,
        help="Comma-separated index documents (default: index.html,index.htm)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CACHING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-age",
        type=int,
        default=None,
        help="Default Cache-Control max-age in seconds (default: 0, no caching headers)"
    )

    parser.add_argument(
        "--meta-scan-limit",
        type=int,
        default=None,
        help="Bytes of each HTML file searched for a Cache-Control meta tag (default: 65536)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def config_from_args(
    args: argparse.Namespace,
    base: Optional[ServerConfig] = None,
) -> ServerConfig:
    """Apply command-line overrides on top of `base` (default: environment)."""
    config = base or ServerConfig.from_env()
    overrides = {}

    if args.root is not None:
        overrides["root_dir"] = args.root
    if args.default_files is not None:
        overrides["default_files"] = args.default_files
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = min(config.min_workers, args.workers)
    if args.max_age is not None:
        overrides["max_age"] = args.max_age
    if args.meta_scan_limit is not None:
        overrides["meta_scan_limit"] = args.meta_scan_limit
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format

    return replace(config, **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = StaticServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
